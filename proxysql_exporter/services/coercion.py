"""
Value coercion: raw admin column values to sample values and labels.

All helpers are pure functions, shared by every table scraper.
"""
import math
from decimal import Decimal
from typing import Any, NamedTuple

from proxysql_exporter.exceptions import MalformedValueError, UnknownStatusError

# Ordered by severity, see stats_mysql_connection_pool.status
STATUS_ORDINALS = {
    "ONLINE": 1,
    "SHUNNED": 2,
    "OFFLINE_SOFT": 3,
    "OFFLINE_HARD": 4,
}

STATUS_FIELD = "status"

# Connection pool columns that only contribute to the label set
LABEL_FIELDS = frozenset({"hostgroup", "srv_host", "srv_port"})


class ParsedValue(NamedTuple):
    value: float
    is_label: bool


def normalize_field_name(column: str) -> str:
    """Lower-case a column name as reported by the admin interface."""
    return column.strip().lower()


def text_value(raw: Any) -> str:
    """Render a raw column value as text; NULL becomes the empty string."""
    if raw is None:
        return ""
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw).decode("utf-8", errors="replace")
    return str(raw)


def parse_float(field: str, raw: Any) -> float:
    """
    Parse a numeric column value.

    Raises:
        MalformedValueError: If the value is NULL, empty, boolean, not numeric
            or not finite
    """
    if raw is None:
        raise MalformedValueError(field, raw, "NULL value")
    if isinstance(raw, bool):
        raise MalformedValueError(field, raw, "boolean is not a metric value")
    if isinstance(raw, (int, float, Decimal)):
        value = float(raw)
    else:
        text = text_value(raw).strip()
        if not text:
            raise MalformedValueError(field, raw, "empty value")
        try:
            value = float(text)
        except ValueError:
            raise MalformedValueError(field, raw) from None

    if not math.isfinite(value):
        raise MalformedValueError(field, raw, "not a finite number")
    return value


def status_ordinal(raw: Any) -> int:
    """
    Map a backend status string to its gauge value.

    Raises:
        UnknownStatusError: If the status is not one of STATUS_ORDINALS
    """
    ordinal = STATUS_ORDINALS.get(text_value(raw).strip().upper())
    if ordinal is None:
        raise UnknownStatusError(raw)
    return ordinal


def endpoint_label(host: Any, port: Any) -> str:
    """Compose the ``endpoint`` label shared by all connection pool metrics."""
    return f"{text_value(host)}:{text_value(port)}"


def is_label_field(field: str) -> bool:
    return field in LABEL_FIELDS


def parse(field: str, raw: Any) -> ParsedValue:
    """
    Coerce one field of a row.

    Label fields come back with ``is_label`` set and a value of 0; callers
    read their text from the row instead. The status field is coerced through
    the ordinal table.

    Args:
        field: Lower-cased field name
        raw: Raw value as returned by the driver

    Returns:
        ParsedValue(value, is_label)

    Raises:
        MalformedValueError: If a metric field is not numeric
        UnknownStatusError: If the status field holds an unknown status
    """
    if is_label_field(field):
        return ParsedValue(0.0, True)
    if field == STATUS_FIELD:
        return ParsedValue(float(status_ordinal(raw)), False)
    return ParsedValue(parse_float(field, raw), False)
