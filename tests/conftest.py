"""Shared fixtures: a fresh SQLite file database per test and seeding helpers."""

import pytest
from sqlalchemy.orm import sessionmaker

from orderdesk import models  # noqa: F401  registers every table on Base
from orderdesk.config.database import Base, create_db_engine
from orderdesk.repositories.product_repo import product_repo, agent_repo, agent_stock_repo
from orderdesk.schemas.inventory import ProductCreate, DeliveryAgentCreate, AgentStockCreate
from orderdesk.schemas.order import OrderCreate, OrderItemCreate
from orderdesk.services.inventory_service import InventoryLedger
from orderdesk.services.notification_service import RecordingNotifier
from orderdesk.services.order_service import OrderFulfillmentMachine
from orderdesk.services.rotation_service import RoundRobinAssigner


def pytest_collection_modifyitems(items):
    for item in items:
        path = str(item.path)
        if "/api/" in path:
            item.add_marker(pytest.mark.api)
        if "concurren" in path:
            item.add_marker(pytest.mark.concurrency)


@pytest.fixture
def engine(tmp_path):
    engine = create_db_engine(f"sqlite:///{tmp_path / 'orderdesk.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    # Objects stay readable after commit without reopening a transaction,
    # which on SQLite would take the write lock.
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def assigner(db):
    return RoundRobinAssigner(db)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def machine(db, notifier):
    return OrderFulfillmentMachine(db, notifier=notifier)


@pytest.fixture
def add_reps(db):
    """Register representatives in the given order; returns their ids."""
    def _add(*names):
        assigner = RoundRobinAssigner(db)
        ids = [assigner.add_representative(name, f"{name.lower()}@example.com").id for name in names]
        db.commit()
        return ids
    return _add


@pytest.fixture
def add_product(db):
    def _add(name, stock, price, cost=0.0):
        product = product_repo.create(
            db, obj_in=ProductCreate(name=name, sku=name.upper(), price=price, cost=cost, current_stock=stock)
        )
        db.commit()
        return product.id
    return _add


@pytest.fixture
def add_agent(db):
    """Create a delivery agent, optionally holding stock: add_agent("Kofi", {product_id: qty})."""
    def _add(name, holdings=None):
        agent = agent_repo.create(db, obj_in=DeliveryAgentCreate(name=name))
        for product_id, quantity in (holdings or {}).items():
            agent_stock_repo.create(
                db, obj_in=AgentStockCreate(agent_id=agent.id, product_id=product_id, quantity=quantity)
            )
        db.commit()
        return agent.id
    return _add


@pytest.fixture
def stock_of(db):
    def _stock(product_id):
        value = product_repo.current_stock(db, product_id)
        db.commit()
        return value
    return _stock


@pytest.fixture
def agent_stock_of(db):
    def _stock(agent_id, product_id):
        holding = agent_stock_repo.get_for_agent(db, agent_id, product_id)
        db.refresh(holding)
        db.commit()
        return holding.quantity
    return _stock


@pytest.fixture
def draft():
    """Build an order draft from (product_id, quantity) pairs."""
    def _draft(*lines, customer="Ama Mensah"):
        return OrderCreate(
            customer_name=customer,
            customer_phone="0241234567",
            city="Accra",
            items=[OrderItemCreate(product_id=pid, quantity=qty) for pid, qty in lines],
        )
    return _draft


@pytest.fixture
def strict_ledger(db):
    return InventoryLedger(db, allow_oversell=False)
