"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
import structlog

logger = structlog.get_logger(__name__)


def create_router(telemetry_path: str = "/metrics") -> APIRouter:
    """Build the router serving the exposition at ``telemetry_path``."""
    router = APIRouter()

    @router.get(telemetry_path)
    def metrics(request: Request):
        """
        Prometheus metrics endpoint.

        Runs one scrape of the admin interface and renders the app registry
        in text format. Declared sync so the blocking scrape runs in the
        threadpool.
        """
        logger.debug("metrics_requested", path=telemetry_path)

        metrics_output = generate_latest(request.app.state.registry)

        return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)

    return router
