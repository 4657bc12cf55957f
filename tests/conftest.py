"""
Pytest configuration and fixtures for ProxySQL exporter tests.
"""
from typing import Dict, List, Optional

import pytest

from proxysql_exporter.config.settings import CollectorSettings, Settings
from proxysql_exporter.exceptions import AdminConnectionError
from proxysql_exporter.repositories.base import AbstractRepository
from proxysql_exporter.repositories.proxysql_repository import QueryResult
from proxysql_exporter.scrapers import connection_list, connection_pool, global_status

GLOBAL_COLUMNS = ("Variable_Name", "Variable_Value")

POOL_COLUMNS = (
    "hostgroup", "srv_host", "srv_port", "status", "ConnUsed", "ConnFree", "ConnOK",
    "ConnERR", "Queries", "Bytes_data_sent", "Bytes_data_recv", "Latency_us",
)

LIST_COLUMNS = ("cli_host", "srv_host")


class FakeAdminRepository(AbstractRepository):
    """
    In-memory stand-in for the admin connection.

    Results are keyed by the exact statement text; a statement mapped to an
    exception raises it.
    """

    def __init__(self, results: Optional[Dict[str, object]] = None, connect_error: Optional[str] = None):
        self.results = dict(results or {})
        self.connect_error = connect_error
        self.queries: List[str] = []
        self.connects = 0
        self.closed = False

    def connect(self) -> None:
        self.connects += 1
        if self.connect_error:
            raise AdminConnectionError(self.connect_error)

    def ensure_connected(self) -> None:
        self.connect()

    def query(self, sql: str) -> QueryResult:
        self.queries.append(sql)
        result = self.results[sql]
        if isinstance(result, Exception):
            raise result
        return result

    def health_check(self) -> bool:
        return self.connect_error is None

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def global_status_result() -> QueryResult:
    """stats_mysql_global rows, including names the registry does not know"""
    return QueryResult(
        columns=GLOBAL_COLUMNS,
        records=(
            ("Active_Transactions", "3"),
            ("Backend_query_time_nsec", "76355784684851"),
            ("Client_Connections_aborted", "0"),
            ("Client_Connections_connected", "64"),
            ("Client_Connections_created", "1087931"),
            ("Servers_table_version", "2019470"),
            ("mysql_unknown_variable", "42"),
            ("ProxySQL_Uptime_unregistered", "1"),
        ),
    )


@pytest.fixture
def connection_pool_result() -> QueryResult:
    """stats_mysql_connection_pool rows, one per backend status"""
    return QueryResult(
        columns=POOL_COLUMNS,
        records=(
            ("0", "10.91.142.80", "3306", "ONLINE", "0", "45", "1895677", "46", "197941647", "10984550806", "321063484988", "163"),
            ("0", "10.91.142.82", "3306", "SHUNNED", "0", "97", "39859", "0", "386686994", "21643682247", "641406745151", "255"),
            ("1", "10.91.142.88", "3306", "OFFLINE_SOFT", "0", "18", "31471", "6391", "255993467", "14327840185", "420795691329", "283"),
            ("2", "10.91.142.89", "3306", "OFFLINE_HARD", "0", "18", "31471", "6391", "255993467", "14327840185", "420795691329", "283"),
        ),
    )


@pytest.fixture
def connection_list_result() -> QueryResult:
    """stats_mysql_processlist rows"""
    return QueryResult(
        columns=LIST_COLUMNS,
        records=(
            ("10.91.142.80", "10.91.142.90"),
            ("10.91.142.82", "10.91.142.91"),
        ),
    )


@pytest.fixture
def make_repository():
    """The fake repository class, for tests that build their own results"""
    return FakeAdminRepository


@pytest.fixture
def fake_repository(global_status_result, connection_pool_result, connection_list_result) -> FakeAdminRepository:
    return FakeAdminRepository(
        {
            global_status.QUERY: global_status_result,
            connection_pool.QUERY: connection_pool_result,
            connection_list.QUERY: connection_list_result,
        }
    )


@pytest.fixture
def test_settings() -> Settings:
    """Settings with every collector enabled and scrapers run in parallel"""
    return Settings(
        collectors=CollectorSettings(
            mysql_status=True,
            mysql_connection_pool=True,
            mysql_connection_list=True,
            concurrent=True,
        ),
    )
