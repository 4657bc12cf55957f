import threading
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence, Tuple

import pymysql
import structlog
from pymysql.cursors import Cursor
from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt, wait_fixed

from proxysql_exporter.config.settings import ProxySQLSettings
from proxysql_exporter.exceptions import AdminConnectionError
from proxysql_exporter.repositories.base import AbstractRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class QueryResult:
    """Column names and raw records of one statement."""

    columns: Tuple[str, ...]
    records: Sequence[Tuple[Any, ...]] = field(default_factory=tuple)


class ProxySQLAdminRepository(AbstractRepository):
    """
    Connection to the ProxySQL admin interface.

    The admin interface speaks the MySQL protocol. A single connection is
    opened lazily, cached across scrapes and reopened when a ping fails.
    PyMySQL connections are not thread-safe, so statements from concurrent
    scrapers are serialised by a lock.
    """

    def __init__(self, settings: ProxySQLSettings):
        """
        Initialize the repository.

        Args:
            settings: Admin interface connection settings
        """
        self.settings = settings
        self.connection: Optional[pymysql.connections.Connection] = None
        self._lock = threading.RLock()
        self._logger = logger.bind(component="proxysql_repository")

    def connect(self) -> None:
        """
        Open a new admin connection.

        Attempts are bounded by ``connect_attempts``; no backoff beyond one
        second between attempts.

        Raises:
            AdminConnectionError: If no attempt succeeds
        """
        params = self.settings.connection_params()
        target = params.get("unix_socket") or f"{params.get('host')}:{params.get('port')}"

        with self._lock:
            self._close_quietly()
            try:
                for attempt in Retrying(
                    stop=stop_after_attempt(self.settings.connect_attempts),
                    wait=wait_fixed(1),
                    retry=retry_if_exception_type((pymysql.MySQLError, OSError)),
                    reraise=True,
                ):
                    with attempt:
                        self.connection = pymysql.connect(
                            cursorclass=Cursor,
                            autocommit=True,
                            **params,
                        )
            except (pymysql.MySQLError, OSError, RetryError) as e:
                self._logger.error(
                    "proxysql_connection_failed",
                    target=target,
                    error=str(e),
                )
                raise AdminConnectionError(f"cannot connect to ProxySQL admin at {target}: {e}") from e

        self._logger.info("proxysql_connection_opened", target=target)

    def ensure_connected(self) -> None:
        """
        Reuse the cached connection if it still answers, reconnect otherwise.

        Raises:
            AdminConnectionError: If a new connection cannot be opened
        """
        with self._lock:
            if self.connection is not None:
                try:
                    self.connection.ping(reconnect=False)
                    return
                except (pymysql.MySQLError, OSError) as e:
                    self._logger.warning("proxysql_connection_lost", error=str(e))
            self.connect()

    def query(self, sql: str) -> QueryResult:
        """
        Execute a statement on the cached connection.

        Args:
            sql: Fixed admin statement

        Returns:
            QueryResult with the column names and all records

        Raises:
            AdminConnectionError: If there is no open connection
            pymysql.MySQLError: If the statement fails
        """
        with self._lock:
            if self.connection is None:
                raise AdminConnectionError("no open ProxySQL admin connection")
            with self.connection.cursor() as cursor:
                cursor.execute(sql)
                columns = tuple(column[0] for column in (cursor.description or ()))
                records = tuple(cursor.fetchall())

        return QueryResult(columns=columns, records=records)

    def health_check(self) -> bool:
        """
        Check if the admin interface answers.

        Returns:
            True if the connection is healthy, False otherwise
        """
        try:
            self.ensure_connected()
            result = self.query("SELECT 1")
            return bool(result.records) and int(result.records[0][0]) == 1
        except Exception as e:
            self._logger.error("health_check_failed", error=str(e))
            return False

    def close(self) -> None:
        """Close the admin connection"""
        with self._lock:
            if self.connection is not None:
                self._close_quietly()
                self._logger.info("proxysql_connection_closed")

    def _close_quietly(self) -> None:
        if self.connection is None:
            return
        try:
            self.connection.close()
        except (pymysql.MySQLError, OSError) as e:
            self._logger.debug("proxysql_connection_close_failed", error=str(e))
        finally:
            self.connection = None
