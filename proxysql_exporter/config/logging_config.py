"""
Structured logging configuration using structlog with JSON output.
"""
import logging
import sys
from typing import Any, Dict, Optional

import structlog

from proxysql_exporter.config.settings import settings

SENSITIVE_KEYS = ("password", "passwd", "token", "secret", "dsn", "data_source_name", "credential")


def filter_sensitive_data(logger: Any, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Filter sensitive data from logs (passwords, DSNs, etc.)"""
    return {
        k: "***REDACTED***" if any(sensitive in k.lower() for sensitive in SENSITIVE_KEYS) else v
        for k, v in event_dict.items()
    }


def configure_logging(log_level: Optional[str] = None) -> None:
    """Configure structlog for JSON logging through the standard library root logger"""
    level = (log_level or settings.log_level).upper()

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        filter_sensitive_data,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, level, logging.INFO))


def get_logger(name: str) -> Any:
    """Get a structured logger instance"""
    return structlog.get_logger(name)
