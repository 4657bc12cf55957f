"""FastAPI application exposing the ProxySQL exporter."""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse
from prometheus_client import CollectorRegistry, Info, PlatformCollector, ProcessCollector
import structlog

from proxysql_exporter import __version__
from proxysql_exporter.api.routes import health, metrics
from proxysql_exporter.config.settings import Settings
from proxysql_exporter.exporter import ProxySQLExporter
from proxysql_exporter.middleware import RequestIDMiddleware

logger = structlog.get_logger(__name__)

LANDING_PAGE = """<html>
<head><title>ProxySQL exporter</title></head>
<body>
<h1>ProxySQL exporter</h1>
<p><a href="{path}">Metrics</a></p>
<p><a href="/health">Health</a></p>
</body>
</html>
"""


def build_registry(exporter: ProxySQLExporter) -> CollectorRegistry:
    """Registry served on the telemetry path: the exporter plus process metrics."""
    registry = CollectorRegistry()
    registry.register(exporter)
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    build_info = Info(
        "proxysql_exporter_build",
        "Build information of the ProxySQL exporter.",
        registry=registry,
    )
    build_info.info({"version": __version__})
    return registry


def create_app(
    settings: Optional[Settings] = None,
    exporter: Optional[ProxySQLExporter] = None,
) -> FastAPI:
    """Create and configure FastAPI application."""
    if settings is None:
        settings = exporter.settings if exporter is not None else Settings()
    if exporter is None:
        exporter = ProxySQLExporter(settings=settings)

    app = FastAPI(
        title="ProxySQL Exporter",
        description="Prometheus exporter for the ProxySQL admin interface",
        version=__version__,
        docs_url=None,
        redoc_url=None,
    )
    app.state.settings = settings
    app.state.exporter = exporter
    app.state.registry = build_registry(exporter)

    app.add_middleware(RequestIDMiddleware)

    # Exception handlers
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={
                "status": "error",
                "message": "Internal server error",
                "detail": str(exc) if settings.environment == "development" else None,
            },
        )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all HTTP requests."""
        response = await call_next(request)
        logger.debug(
            "http_request",
            method=request.method,
            path=request.url.path,
            client=request.client.host if request.client else None,
            status_code=response.status_code,
        )
        return response

    @app.get("/", response_class=HTMLResponse)
    def landing_page():
        return LANDING_PAGE.format(path=settings.web.telemetry_path)

    app.include_router(health.router, tags=["health"])
    app.include_router(metrics.create_router(settings.web.telemetry_path), tags=["metrics"])

    @app.on_event("startup")
    async def startup_event():
        """Run on application startup."""
        logger.info(
            "proxysql_exporter_starting",
            version=__version__,
            telemetry_path=settings.web.telemetry_path,
            collectors=[group.value for group in exporter.enabled_groups],
        )

    @app.on_event("shutdown")
    async def shutdown_event():
        """Run on application shutdown."""
        logger.info("proxysql_exporter_shutting_down")
        exporter.repository.close()

    return app


app = create_app()
