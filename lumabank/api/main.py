"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from lumabank.api.errors import register_exception_handlers
from lumabank.api.middleware import RequestIDMiddleware, MetricsMiddleware
from lumabank.api.v1 import admin, auth, user
from lumabank.config import settings
from lumabank.infrastructure.observability.logging import setup_logging
from lumabank.infrastructure.ratelimit import RateLimiter
from lumabank.infrastructure.settlement import (
    ManualSettlementScheduler,
    SettlementScheduler,
    TimerSettlementScheduler,
)
from lumabank.services.settlement import settle_external_transfer

# Setup structured logging
setup_logging(settings.log_level)


def build_settlement_scheduler() -> SettlementScheduler:
    if settings.settlement_mode == "manual":
        return ManualSettlementScheduler()
    if settings.settlement_mode == "timer":
        return TimerSettlementScheduler(
            settle_external_transfer,
            min_delay_seconds=settings.settlement_min_delay_seconds,
            max_delay_seconds=settings.settlement_max_delay_seconds,
        )
    raise ValueError(f"Unknown settlement mode: {settings.settlement_mode}")


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="LumaBank",
        description="Retail banking service: accounts, transfers, deposits and admin settlement",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Per-app state so each app (and each test client) counts separately
    app.state.rate_limiter = RateLimiter.from_settings(settings)
    app.state.settlement_scheduler = build_settlement_scheduler()

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # Health check endpoint
    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    # Prometheus metrics endpoint
    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(auth.router, prefix="/v1/auth", tags=["auth"])
    app.include_router(user.router, prefix="/v1/user", tags=["user"])
    app.include_router(admin.router, prefix="/v1/admin", tags=["admin"])

    return app


app = create_app()
