"""Middleware modules for FastAPI."""

from proxysql_exporter.middleware.request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware"]
