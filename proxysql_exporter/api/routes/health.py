"""Health check endpoint using HealthCheckService."""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
import structlog

from proxysql_exporter.monitoring.health_check import HealthCheckService, HealthStatus

logger = structlog.get_logger(__name__)

router = APIRouter()


def get_health_service(request: Request) -> HealthCheckService:
    """Health service bound to the app's exporter and admin repository."""
    exporter = request.app.state.exporter
    return HealthCheckService(repository=exporter.repository, exporter=exporter)


@router.get("/health")
def health_check(health_service: HealthCheckService = Depends(get_health_service)):
    """
    Health check endpoint.

    Returns 200 when the admin interface answers (degraded included), 503 otherwise.

    Response format:
    {
        "status": "healthy" | "unhealthy" | "degraded",
        "check_time": "2026-01-01T08:00:00Z",
        "components": {
            "proxysql": {"service": "proxysql", "status": "healthy", "details": {...}},
            "exporter": {"service": "exporter", "status": "healthy", "details": {...}}
        }
    }
    """
    logger.info("health_check_requested")

    health_result = health_service.check_all()

    response_data = {
        "status": health_result["status"],
        "check_time": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "components": health_result["components"],
    }

    if health_result["status"] == HealthStatus.UNHEALTHY:
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    else:
        status_code = status.HTTP_200_OK

    logger.info(
        "health_check_completed",
        overall_status=health_result["status"],
        status_code=status_code,
    )

    return JSONResponse(status_code=status_code, content=response_data)
