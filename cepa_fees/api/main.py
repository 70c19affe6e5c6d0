"""FastAPI application factory"""

from fastapi import FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from cepa_fees.api.middleware import RequestIDMiddleware, MetricsMiddleware
from cepa_fees.api.v1 import fees, fee_structures, history, invoices
from cepa_fees.infrastructure.observability.logging import setup_logging
from cepa_fees.config import settings

# Setup structured logging
setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    app = FastAPI(
        title="CEPA Fee Service",
        description="Permit fee calculation and invoicing service",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Add middleware (order matters: last added = first executed)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check():
        return {"status": "ok", "service": settings.service_name}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    # Register API routers
    app.include_router(fees.router, prefix="/v1", tags=["fees"])
    app.include_router(history.router, prefix="/v1", tags=["history"])
    app.include_router(fee_structures.router, prefix="/v1", tags=["fee-structures"])
    app.include_router(invoices.router, prefix="/v1", tags=["invoices"])

    return app


app = create_app()
