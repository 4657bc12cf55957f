"""
Command line entry point: ``python -m proxysql_exporter``.

Flags override the environment; anything not given on the command line keeps
its environment or default value.
"""
import argparse
import sys
from typing import List, Optional, Tuple

import uvicorn

from proxysql_exporter.config.logging_config import configure_logging, get_logger
from proxysql_exporter.config.settings import Settings
from proxysql_exporter.utils.validators import ValidationError, validate_in_range, validate_telemetry_path


def str2bool(value: str) -> bool:
    if value.lower() in ("1", "true", "yes", "on"):
        return True
    if value.lower() in ("0", "false", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got {value!r}")


def split_listen_address(address: str) -> Tuple[str, int]:
    """Split ``host:port`` (``:42004`` binds every interface)."""
    host, sep, port_text = address.rpartition(":")
    if not sep:
        raise ValidationError(f"listen address must be host:port, got {address!r}")
    try:
        port = int(port_text)
    except ValueError:
        raise ValidationError(f"invalid port in listen address {address!r}") from None
    validate_in_range(port, 1, 65535, "listen port")
    return host.strip("[]") or "0.0.0.0", port


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proxysql-exporter",
        description="Prometheus exporter for the ProxySQL admin interface",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        help="Address to listen on for web interface and telemetry (default: :42004)",
    )
    parser.add_argument(
        "--web.telemetry-path",
        dest="telemetry_path",
        help="Path under which to expose metrics (default: /metrics)",
    )
    parser.add_argument(
        "--collect.mysql_status",
        dest="mysql_status",
        type=str2bool,
        help="Collect from stats_mysql_global (SHOW MYSQL STATUS)",
    )
    parser.add_argument(
        "--collect.mysql_connection_pool",
        dest="mysql_connection_pool",
        type=str2bool,
        help="Collect from stats_mysql_connection_pool",
    )
    parser.add_argument(
        "--collect.mysql_connection_list",
        dest="mysql_connection_list",
        type=str2bool,
        help="Collect connection list from stats_mysql_processlist",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        choices=["debug", "info", "warning", "error", "critical"],
        type=str.lower,
        help="Log level (default: info)",
    )
    return parser


def apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return a copy of ``settings`` with the given flags applied."""
    web_update = {}
    if args.listen_address:
        web_update["listen_address"], web_update["port"] = split_listen_address(args.listen_address)
    if args.telemetry_path:
        web_update["telemetry_path"] = validate_telemetry_path(args.telemetry_path)

    collectors_update = {
        name: getattr(args, name)
        for name in ("mysql_status", "mysql_connection_pool", "mysql_connection_list")
        if getattr(args, name) is not None
    }

    update = {
        "web": settings.web.model_copy(update=web_update),
        "collectors": settings.collectors.model_copy(update=collectors_update),
    }
    if args.log_level:
        update["log_level"] = args.log_level.upper()
    return settings.model_copy(update=update)


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = apply_args(Settings(), args)
    except ValidationError as e:
        parser.error(str(e))

    configure_logging(settings.log_level)
    logger = get_logger("proxysql_exporter")

    from proxysql_exporter.api.main import create_app

    app = create_app(settings=settings)
    logger.info(
        "proxysql_exporter_listening",
        address=settings.web.listen_address,
        port=settings.web.port,
        telemetry_path=settings.web.telemetry_path,
    )
    uvicorn.run(
        app,
        host=settings.web.listen_address,
        port=settings.web.port,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    sys.exit(main())
