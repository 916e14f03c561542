# orderdesk/main.py
"""
OrderDesk Fulfillment Core - API Entry Point
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import uvicorn
import logging
from contextlib import asynccontextmanager

from .config.settings import get_settings
from .config.logging import setup_logging
from .config.database import init_database, cleanup_database, check_database_health
from .core.middleware import LoggingMiddleware, RequestIDMiddleware
from .core.exceptions import BaseCustomException, custom_exception_handler
from .api.v1.endpoints import orders, rotation

settings = get_settings()

# Configure logging
setup_logging(settings)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"Starting {settings.APP_NAME}...")
    init_database()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    cleanup_database()


# Create FastAPI application
app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Round-robin order assignment and order fulfillment with inventory tracking",
    version=settings.VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

# Add exception handlers
app.add_exception_handler(BaseCustomException, custom_exception_handler)

# Include routers
app.include_router(
    orders.router,
    prefix="/api/v1/orders",
    tags=["Orders"]
)
app.include_router(
    rotation.router,
    prefix="/api/v1/rotation",
    tags=["Rotation"]
)


@app.get("/")
def root():
    """Root endpoint"""
    return {
        "message": f"{settings.APP_NAME} API",
        "version": settings.VERSION,
        "docs": "/docs"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    database_ok = check_database_health()
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "ok" if database_ok else "unavailable",
        "version": settings.VERSION
    }


def run():
    uvicorn.run(
        "orderdesk.main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    run()
