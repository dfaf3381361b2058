"""FastAPI application factory"""

from fastapi import Depends, FastAPI
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from negotiation_gateway.api.dependencies import get_wizard_store
from negotiation_gateway.api.middleware import RequestIDMiddleware, MetricsMiddleware
from negotiation_gateway.api.v1 import negotiations, settings as settings_routes, wizard
from negotiation_gateway.infrastructure.observability.logging import setup_logging
from negotiation_gateway.services.wizard import WizardStore
from negotiation_gateway.config import settings

setup_logging(settings.log_level)


def create_app() -> FastAPI:
    """Wire the wizard, negotiation and settings routes behind tracing middleware"""
    app = FastAPI(
        title="Debt Negotiation Gateway",
        description="Overdue contribution negotiation and installment plan service",
        version="0.1.0",
    )

    # Last added runs first, so every metric sample carries a request ID
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/health")
    def health_check(store: WizardStore = Depends(get_wizard_store)):
        return {"status": "ok", "service": settings.service_name, "open_sessions": len(store)}

    @app.get("/metrics")
    def metrics():
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    app.include_router(wizard.router, prefix="/v1", tags=["wizard"])
    app.include_router(negotiations.router, prefix="/v1", tags=["negotiations"])
    app.include_router(settings_routes.router, prefix="/v1", tags=["settings"])

    return app


app = create_app()
