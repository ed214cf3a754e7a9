"""
Ticketbook Booking API - Main Application Entry Point

An event ticketing service demonstrating:
- Reservation and cancellation that never oversell under concurrent demand
- Row-level locking plus conditional updates as the only consistency mechanism
- Fire-and-forget audit trail that cannot fail a booking
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ticketbook.core.config import get_settings
from ticketbook.core.exceptions import register_exception_handlers
from ticketbook.core.logging import setup_logging, get_logger
from ticketbook.core.metrics import metrics_endpoint
from ticketbook.api.router import api_router
from ticketbook.api.middleware import RequestLoggingMiddleware
from ticketbook.db.session import engine, get_db
from ticketbook.services.audit_factory import get_audit_dispatcher

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        audit_sink=settings.AUDIT_SINK if settings.AUDIT_ENABLED else "disabled",
    )

    yield

    # Let in-flight audit records land before the pool goes away
    await get_audit_dispatcher().drain()
    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event ticket booking API with oversell-proof reservations",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """Health check endpoint for Docker and load balancers."""
    try:
        await db.execute(text("SELECT 1"))
        database = "connected"
    except SQLAlchemyError:
        database = "unavailable"

    return {
        "status": "healthy" if database == "connected" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "database": database,
    }


@app.get("/metrics", tags=["Health"], include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", tags=["Root"])
async def root():
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
    }
