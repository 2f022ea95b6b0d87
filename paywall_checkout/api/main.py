"""FastAPI application factory"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from paywall_checkout.api.dependencies import get_request_id
from paywall_checkout.api.middleware import RequestIDMiddleware, MetricsMiddleware
from paywall_checkout.api.sessions import FlowRegistry
from paywall_checkout.api.v1 import catalog, checkout, session
from paywall_checkout.domain.exceptions import (
    InvalidTransitionError,
    OnboardingValidationError,
    UnknownPlanError,
)
from paywall_checkout.infrastructure.database.models import Base
from paywall_checkout.infrastructure.database.session import engine
from paywall_checkout.infrastructure.observability.logging import setup_logging
from paywall_checkout.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidTransitionError)
    async def invalid_transition_handler(request: Request, exc: InvalidTransitionError):
        logging.warning(f"Rejected checkout operation: {exc}", extra={"request_id": get_request_id(request)})
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(UnknownPlanError)
    async def unknown_plan_handler(request: Request, exc: UnknownPlanError):
        logging.warning(f"Unknown plan: {exc}", extra={"request_id": get_request_id(request)})
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(OnboardingValidationError)
    async def onboarding_validation_handler(request: Request, exc: OnboardingValidationError):
        logging.warning(f"Onboarding validation failed: {exc}", extra={"request_id": get_request_id(request)})
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logging.error(f"Unexpected error: {exc}", extra={"request_id": get_request_id(request)})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(registry: FlowRegistry | None = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Without an explicit registry the session tables are created on the
    configured database and flows use the asyncio scheduler.
    """
    app = FastAPI(
        title="Paywall Checkout",
        description="Onboarding, paywall and simulated 3-D Secure checkout service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    if registry is None:
        Base.metadata.create_all(bind=engine)
        registry = FlowRegistry()
    app.state.registry = registry

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    _register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(catalog.router, prefix="/v1", tags=["catalog"])
    app.include_router(session.router, prefix="/v1", tags=["session"])
    app.include_router(checkout.router, prefix="/v1", tags=["checkout"])

    return app


app = create_app()
