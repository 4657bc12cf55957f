"""
Validators for connection strings and exporter settings.
"""
import re
from typing import Any, Dict

_NET_ADDR_RE = re.compile(r"(?P<net>\w+)(?:\((?P<addr>[^)]*)\))?")


class ValidationError(ValueError):
    """Raised when validation fails"""
    pass


def parse_dsn(dsn: str, default_port: int = 6032) -> Dict[str, Any]:
    """
    Parse a Go MySQL driver style DSN into PyMySQL connect arguments.

    Format: ``[user[:password]@][net[(addr)]]/[dbname][?params]``, for example
    ``admin:admin@tcp(127.0.0.1:6032)/`` or ``admin:admin@unix(/tmp/proxysql_admin.sock)/``.
    Query parameters are accepted and ignored.

    Args:
        dsn: Data source name
        default_port: Port used when the tcp address has none

    Returns:
        Dictionary with ``user``/``password`` and either ``host``/``port``
        or ``unix_socket``

    Raises:
        ValidationError: If the DSN cannot be parsed
    """
    dsn = dsn.strip()
    slash = dsn.rfind("/")
    if slash < 0:
        raise ValidationError(f"Invalid DSN: missing '/' separator in {_redact_dsn(dsn)!r}")

    head = dsn[:slash]
    params: Dict[str, Any] = {}

    # Passwords may contain '@', the last one separates credentials from the address
    at = head.rfind("@")
    if at >= 0:
        credentials, address = head[:at], head[at + 1:]
        user, _, password = credentials.partition(":")
        params["user"] = user
        params["password"] = password
    else:
        address = head

    if not address:
        return params

    match = _NET_ADDR_RE.fullmatch(address)
    if not match:
        raise ValidationError(f"Invalid DSN address: {address!r}")

    net = match.group("net")
    addr = match.group("addr") or ""

    if net == "unix":
        if not addr:
            raise ValidationError("Invalid DSN: unix socket path is empty")
        params["unix_socket"] = addr
    elif net == "tcp":
        host, port = _split_host_port(addr, default_port)
        params["host"] = host
        params["port"] = port
    else:
        raise ValidationError(f"Invalid DSN: unsupported network {net!r}")

    return params


def _split_host_port(addr: str, default_port: int) -> tuple:
    if not addr:
        return "127.0.0.1", default_port

    if addr.startswith("["):
        host, _, rest = addr[1:].partition("]")
        port_text = rest[1:] if rest.startswith(":") else ""
    elif addr.count(":") == 1:
        host, _, port_text = addr.partition(":")
    else:
        host, port_text = addr, ""

    if not port_text:
        return host or "127.0.0.1", default_port

    try:
        port = int(port_text)
    except ValueError:
        raise ValidationError(f"Invalid DSN port: {port_text!r}") from None

    validate_in_range(port, 1, 65535, "port")
    return host or "127.0.0.1", port


def _redact_dsn(dsn: str) -> str:
    at = dsn.rfind("@")
    if at < 0:
        return dsn
    user = dsn[:at].partition(":")[0]
    return f"{user}:***@{dsn[at + 1:]}"


def validate_telemetry_path(path: str) -> str:
    """Validate an HTTP path used to expose metrics"""
    if not path.startswith("/"):
        raise ValidationError(f"telemetry path must start with '/', got {path!r}")
    if path == "/":
        raise ValidationError("telemetry path cannot be '/', it serves the landing page")
    return path


def validate_in_range(value: int, min_val: int, max_val: int, field_name: str) -> None:
    """Validate value is within range"""
    if not min_val <= value <= max_val:
        raise ValidationError(
            f"{field_name} must be between {min_val} and {max_val}, got {value}"
        )
