# orderdesk/core/middleware.py
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import time
import uuid
from typing import Callable

from ..config.logging import get_logger, log_api_request, log_api_response

logger = get_logger(__name__)

# Request ID Middleware
class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a request id to each request, reusing the caller's if present."""

    async def dispatch(self, request: Request, call_next: Callable):
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id

        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id

        return response

# Logging Middleware
class LoggingMiddleware(BaseHTTPMiddleware):
    """Log all API requests and responses."""

    def __init__(self, app, skip_paths: list = None):
        super().__init__(app)
        self.skip_paths = skip_paths or ["/health", "/docs", "/openapi.json"]

    async def dispatch(self, request: Request, call_next: Callable):
        if any(request.url.path.startswith(path) for path in self.skip_paths):
            return await call_next(request)

        start_time = time.time()
        request_id = getattr(request.state, "request_id", "unknown")

        log_api_request(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            user_id=request.headers.get("X-User-Id")
        )

        try:
            response = await call_next(request)
            duration = time.time() - start_time

            log_api_response(
                request_id=request_id,
                status_code=response.status_code,
                duration=duration
            )

            response.headers["X-Process-Time"] = f"{duration:.4f}"

            return response

        except Exception as e:
            duration = time.time() - start_time
            logger.error(f"Request {request_id} failed after {duration:.3f}s: {str(e)}")
            raise
