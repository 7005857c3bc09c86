"""
FastAPI Application Entry Point.

This is the main application file for the Tollway Backend.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from tollway.app.core.config import settings
from tollway.app.api.v1.router import router as api_v1_router
from tollway.app.db.session import engine, Base
from tollway.app.core.observability import ObservabilityMiddleware, configure_logging
from tollway.app.core.redis_client import ping_redis
from tollway.app.core.exceptions import (
    AppException,
    app_exception_handler,
    http_exception_handler,
    validation_exception_handler,
    generic_exception_handler
)

# Import models to ensure they are registered with Base
from tollway.app.models.user import User
from tollway.app.models.account import Account
from tollway.app.models.vehicle import Vehicle
from tollway.app.models.toll_gate import TollGate
from tollway.app.models.transaction import Transaction
from tollway.app.models.toll_passage import TollPassage
from tollway.app.models.manual_transaction import ManualTransaction
from tollway.app.models.notification import Notification
from tollway.app.models.audit_log import AuditLog
from tollway.app.models.dlq import DeadLetterQueue

configure_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()

# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.api_version,
    debug=settings.debug,
    description="Toll-gate passage authorization and wallet settlement",
    lifespan=lifespan,
)

app.add_middleware(ObservabilityMiddleware)

# Register global exception handlers
app.add_exception_handler(AppException, app_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Redis only carries receipts, so an unreachable Redis degrades the
    service without making it unhealthy.
    """
    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.api_version,
        "receipt_queue": "up" if await ping_redis() else "down",
    }


# Include API v1 router
app.include_router(api_v1_router, prefix=f"/{settings.api_version}")


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": "Welcome to Tollway Backend API",
        "docs": "/docs",
        "health": "/health",
    }
