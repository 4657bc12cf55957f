"""
Pytest configuration and shared fixtures for integration tests.

These tests need a running ProxySQL admin interface, reachable with the
PROXYSQL_* / DATA_SOURCE_NAME environment (default admin:admin@127.0.0.1:6032).
"""
from typing import Generator

import pymysql
import pytest

from proxysql_exporter.config.settings import ProxySQLSettings
from proxysql_exporter.repositories.proxysql_repository import ProxySQLAdminRepository


def check_proxysql_available() -> bool:
    """Check if the ProxySQL admin interface is available."""
    try:
        connection = pymysql.connect(**ProxySQLSettings().connection_params())
        connection.close()
        return True
    except Exception:
        return False


requires_proxysql = pytest.mark.skipif(
    not check_proxysql_available(),
    reason="ProxySQL admin interface not available",
)


@pytest.fixture
def admin_repository() -> Generator[ProxySQLAdminRepository, None, None]:
    """Connected admin repository, closed after the test."""
    repository = ProxySQLAdminRepository(ProxySQLSettings())
    repository.connect()
    yield repository
    repository.close()
