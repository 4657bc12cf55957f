"""
Error taxonomy for the scrape engine.

Connection errors abort a scrape cycle, query errors abort one table group,
malformed values skip one field.
"""
from typing import Any, Optional


class ExporterError(Exception):
    """Base class for all exporter errors"""
    pass


class RegistryError(ExporterError):
    """Raised when a metric registry violates its naming invariants"""
    pass


class AdminConnectionError(ExporterError):
    """Raised when the ProxySQL admin interface cannot be reached"""
    pass


class ScrapeError(ExporterError):
    """Raised when a table group cannot be scraped"""

    def __init__(self, collector: str, message: str, cause: Optional[BaseException] = None):
        self.collector = collector
        self.cause = cause
        super().__init__(f"{collector}: {message}")


class QueryError(ScrapeError):
    """Raised when the query for a table group fails"""

    def __init__(self, collector: str, query: str, cause: BaseException):
        self.query = query
        super().__init__(collector, f"query failed: {cause}", cause)


class MalformedValueError(ExporterError):
    """Raised when a raw field cannot be turned into a sample"""

    def __init__(self, field: str, raw: Any, reason: str = "not numeric"):
        self.field = field
        self.raw = raw
        self.reason = reason
        super().__init__(f"field {field!r} value {raw!r}: {reason}")


class UnknownStatusError(MalformedValueError):
    """Raised when a backend status is outside the ordinal mapping"""

    def __init__(self, raw: Any):
        super().__init__("status", raw, "unknown status")
