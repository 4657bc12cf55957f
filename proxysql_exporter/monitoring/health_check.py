"""
Health check service for the ProxySQL admin interface and the exporter.
"""
import time
from enum import Enum
from typing import Any, Dict, Optional

from proxysql_exporter.config.logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status"""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


class HealthCheckService:
    """Service for checking health of the admin connection and of the last scrape"""

    def __init__(self, repository: Any = None, exporter: Any = None) -> None:
        """
        Initialize health check service.

        Args:
            repository: Admin interface repository
            exporter: ProxySQLExporter whose last scrape is reported
        """
        self.repository = repository
        self.exporter = exporter

    def check_proxysql(self) -> Dict[str, Any]:
        """Check the admin interface answers a trivial query"""
        if self.repository is None:
            return {
                "service": "proxysql",
                "status": HealthStatus.DEGRADED,
                "details": {"connected": False, "message": "Repository not initialized"},
            }

        start_time = time.time()
        healthy = self.repository.health_check()
        latency_ms = (time.time() - start_time) * 1000

        return {
            "service": "proxysql",
            "status": HealthStatus.HEALTHY if healthy else HealthStatus.UNHEALTHY,
            "details": {"connected": healthy, "latency_ms": round(latency_ms, 2)},
        }

    def check_last_scrape(self) -> Dict[str, Any]:
        """Report the outcome of the most recent scrape, if any"""
        result = self.exporter.last_result if self.exporter is not None else None
        if result is None:
            return {
                "service": "exporter",
                "status": HealthStatus.HEALTHY,
                "details": {"scraped": False},
            }

        failed = [group.value for group in result.failed_groups]
        if not result.up:
            status = HealthStatus.UNHEALTHY
        elif failed:
            status = HealthStatus.DEGRADED
        else:
            status = HealthStatus.HEALTHY

        details: Dict[str, Any] = {
            "scraped": True,
            "up": result.up,
            "samples": len(result.samples),
            "failed_collectors": failed,
            "duration_seconds": round(result.duration_seconds, 4),
        }
        if result.connection_error:
            details["error"] = result.connection_error
        return {"service": "exporter", "status": status, "details": details}

    def check_all(self) -> Dict[str, Any]:
        """
        Check all components.

        The overall status follows the admin interface; a last scrape with
        failed collectors downgrades a healthy result to degraded.

        Returns:
            Dict with ``status`` and per-component ``components``
        """
        proxysql = self.check_proxysql()
        exporter = self.check_last_scrape()

        overall = proxysql["status"]
        if overall == HealthStatus.HEALTHY and exporter["status"] != HealthStatus.HEALTHY:
            overall = HealthStatus.DEGRADED

        if overall != HealthStatus.HEALTHY:
            logger.warning("health_check_not_healthy", status=overall.value)

        return {
            "status": overall,
            "components": {"proxysql": proxysql, "exporter": exporter},
        }
