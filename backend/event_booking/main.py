"""
Event Booking API - Main Application Entry Point

Books seats for events:
- Deduplicated user identity per email
- Paid bookings gated on payment confirmation
- Concurrency-safe capacity accounting on finalize
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from event_booking.core.config import Settings, get_settings
from event_booking.core.logging import setup_logging, get_logger
from event_booking.core.metrics import metrics_endpoint
from event_booking.api.errors import register_exception_handlers
from event_booking.api.router import api_router
from event_booking.api.middleware import RequestLoggingMiddleware
from event_booking.services.booking_service import BookingWorkflow
from event_booking.services.email_service import MockEmailService
from event_booking.services.interfaces.notifier import Notifier
from event_booking.services.interfaces.payment import PaymentGateway
from event_booking.services.payment_gateway import MockPaymentGateway
from event_booking.stores.factory import get_record_store
from event_booking.stores.interfaces import RecordStore


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    settings: Settings = app.state.settings
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        store=type(app.state.store).__name__,
    )

    await app.state.store.open()

    yield

    # Cleanup
    await app.state.store.close()
    logger.info("application_shutdown")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    payments: Optional[PaymentGateway] = None,
    notifier: Optional[Notifier] = None,
) -> FastAPI:
    """
    Build an application with its own store and collaborators.

    Anything not passed in is built from settings, so every call yields an
    isolated instance.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Event booking API with payment-gated, capacity-safe reservations",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.settings = settings
    app.state.store = store or get_record_store(settings)
    app.state.payments = payments or MockPaymentGateway()
    app.state.notifier = notifier or MockEmailService(settings)
    app.state.workflow = BookingWorkflow(
        store=app.state.store,
        payments=app.state.payments,
        notifier=app.state.notifier,
        settings=settings,
    )

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Restrict in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Custom middleware
    app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app)

    # Routes
    app.include_router(api_router)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """Health check endpoint for Docker and load balancers."""
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "store": type(app.state.store).__name__,
        }

    @app.get("/metrics", tags=["Health"])
    def metrics():
        return metrics_endpoint()

    @app.get("/", tags=["Root"])
    async def root():
        return {
            "message": f"Welcome to {settings.APP_NAME}",
            "version": settings.APP_VERSION,
            "docs": "/docs",
        }

    return app


app = create_app()
