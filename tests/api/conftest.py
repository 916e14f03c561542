import pytest
from fastapi.testclient import TestClient

from orderdesk.config.database import get_db
from orderdesk.core.dependencies import get_notifier
from orderdesk.main import app

@pytest.fixture
def client(session_factory, notifier):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    yield TestClient(app)
    app.dependency_overrides.clear()

@pytest.fixture
def order_payload():
    def _payload(*lines):
        return {
            "customer_name": "Ama Mensah",
            "customer_phone": "0241234567",
            "city": "Accra",
            "items": [{"product_id": pid, "quantity": qty} for pid, qty in lines],
        }
    return _payload

@pytest.fixture
def admin_headers():
    return {"X-User-Id": "900", "X-User-Role": "ADMIN", "X-User-Name": "Ops Admin"}

@pytest.fixture
def rep_headers():
    def _headers(rep_id):
        return {"X-User-Id": str(rep_id), "X-User-Role": "SALES_REP"}
    return _headers
