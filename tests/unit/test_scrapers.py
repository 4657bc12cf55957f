"""Unit tests for the table scrapers, run against an in-memory repository."""

from collections import Counter

import pytest

from proxysql_exporter.exceptions import QueryError, ScrapeError
from proxysql_exporter.models.metric import MetricDescriptor, MetricKind, TableGroup
from proxysql_exporter.monitoring.registry import (
    MYSQL_CONNECTION_POOL_METRICS,
    Registry,
    default_registry,
)
from proxysql_exporter.repositories.proxysql_repository import QueryResult
from proxysql_exporter.scrapers.base import ScrapeStats, emit_sample
from proxysql_exporter.scrapers import (
    SampleStream,
    connection_list,
    connection_pool,
    global_status,
    scrape_connection_list,
    scrape_connection_pool,
    scrape_global_status,
)


def _by_name(stream: SampleStream):
    return {(s.name, tuple(sorted(s.labels.items()))): s.value for s in stream}


class TestGlobalStatusScraper:
    """stats_mysql_global -> proxysql_mysql_status_*"""

    def test_only_registered_names_emit(self, fake_repository) -> None:
        stream = SampleStream()

        stats = scrape_global_status(fake_repository, stream, default_registry())

        names = [s.name for s in stream]
        assert names == [
            "proxysql_mysql_status_active_transactions",
            "proxysql_mysql_status_backend_query_time_nsec",
            "proxysql_mysql_status_client_connections_aborted",
            "proxysql_mysql_status_client_connections_connected",
            "proxysql_mysql_status_client_connections_created",
            "proxysql_mysql_status_servers_table_version",
        ]
        assert stats.rows == 8
        assert stats.emitted == 6
        assert stats.malformed == 0

    def test_values_and_kinds(self, fake_repository) -> None:
        stream = SampleStream()

        scrape_global_status(fake_repository, stream, default_registry())

        samples = {s.name: s for s in stream}
        active = samples["proxysql_mysql_status_active_transactions"]
        assert active.value == 3.0
        assert active.descriptor.kind == MetricKind.GAUGE
        assert active.labels == {}
        assert samples["proxysql_mysql_status_client_connections_created"].descriptor.kind == MetricKind.COUNTER
        assert samples["proxysql_mysql_status_servers_table_version"].descriptor.kind == MetricKind.UNTYPED

    def test_malformed_value_skips_only_that_row(self, make_repository) -> None:
        repository = make_repository({
            global_status.QUERY: QueryResult(
                columns=("Variable_Name", "Variable_Value"),
                records=(("Questions", "not-a-number"), ("Slow_queries", "5")),
            )
        })
        stream = SampleStream()

        stats = scrape_global_status(repository, stream, default_registry())

        assert [s.name for s in stream] == ["proxysql_mysql_status_slow_queries"]
        assert stats.malformed == 1

    def test_non_finite_value_is_malformed(self, make_repository) -> None:
        repository = make_repository({
            global_status.QUERY: QueryResult(
                columns=("Variable_Name", "Variable_Value"),
                records=(("Questions", "nan"), ("Slow_queries", "inf"), ("Active_Transactions", "2")),
            )
        })
        stream = SampleStream()

        stats = scrape_global_status(repository, stream, default_registry())

        assert [s.name for s in stream] == ["proxysql_mysql_status_active_transactions"]
        assert stats.malformed == 2

    def test_query_failure_emits_nothing(self, make_repository) -> None:
        repository = make_repository({global_status.QUERY: RuntimeError("table locked")})
        stream = SampleStream()

        with pytest.raises(QueryError) as exc_info:
            scrape_global_status(repository, stream, default_registry())

        assert exc_info.value.collector == TableGroup.GLOBAL_STATUS.value
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert len(stream) == 0

    def test_single_column_result_is_a_scrape_error(self, make_repository) -> None:
        repository = make_repository({
            global_status.QUERY: QueryResult(columns=("Variable_Name",), records=(("Questions",),))
        })

        with pytest.raises(ScrapeError):
            scrape_global_status(repository, SampleStream(), default_registry())

    def test_placeholder_registration_is_reported_not_raised(self, make_repository) -> None:
        registry = Registry(
            global_status={
                "active_transactions": None,
                "questions": MetricDescriptor(name="questions", kind=MetricKind.COUNTER, help="Questions."),
            },
            connection_pool={},
            connection_list={},
        )
        repository = make_repository({
            global_status.QUERY: QueryResult(
                columns=("Variable_Name", "Variable_Value"),
                records=(("Active_Transactions", "3"), ("Questions", "10")),
            )
        })
        stream = SampleStream()

        stats = scrape_global_status(repository, stream, registry)

        assert [s.name for s in stream] == ["proxysql_mysql_status_questions"]
        assert stats.malformed == 1


class TestConnectionPoolScraper:
    """stats_mysql_connection_pool -> proxysql_connection_pool_*"""

    def test_status_ordinals(self, fake_repository) -> None:
        stream = SampleStream()

        scrape_connection_pool(fake_repository, stream, default_registry())

        status = {
            s.labels["endpoint"]: (s.labels["hostgroup"], s.value)
            for s in stream
            if s.name == "proxysql_connection_pool_status"
        }
        assert status == {
            "10.91.142.80:3306": ("0", 1.0),
            "10.91.142.82:3306": ("0", 2.0),
            "10.91.142.88:3306": ("1", 3.0),
            "10.91.142.89:3306": ("2", 4.0),
        }

    def test_row_emission_order(self, fake_repository) -> None:
        stream = SampleStream()

        scrape_connection_pool(fake_repository, stream, default_registry())

        first_row = [s.descriptor.name for s in list(stream)[:9]]
        assert first_row == [
            "status", "conn_used", "conn_free", "conn_ok", "conn_err",
            "queries", "bytes_data_sent", "bytes_data_recv", "latency_us",
        ]

    def test_all_samples_of_a_row_share_labels(self, fake_repository) -> None:
        stream = SampleStream()

        stats = scrape_connection_pool(fake_repository, stream, default_registry())

        first_row = list(stream)[:9]
        assert {tuple(sorted(s.labels.items())) for s in first_row} == {
            (("endpoint", "10.91.142.80:3306"), ("hostgroup", "0")),
        }
        assert stats.emitted == 36

    def test_values(self, fake_repository) -> None:
        stream = SampleStream()

        scrape_connection_pool(fake_repository, stream, default_registry())

        values = _by_name(stream)
        labels = (("endpoint", "10.91.142.80:3306"), ("hostgroup", "0"))
        assert values[("proxysql_connection_pool_conn_free", labels)] == 45
        assert values[("proxysql_connection_pool_bytes_data_recv", labels)] == 321063484988
        assert values[("proxysql_connection_pool_latency_us", labels)] == 163

    def test_legacy_latency_ms_column(self, make_repository) -> None:
        repository = make_repository({
            connection_pool.QUERY: QueryResult(
                columns=("hostgroup", "srv_host", "srv_port", "status", "Latency_ms"),
                records=(("0", "db1", "3306", "ONLINE", "120"),),
            )
        })
        stream = SampleStream()

        scrape_connection_pool(repository, stream, default_registry())

        assert [(s.name, s.value) for s in stream] == [
            ("proxysql_connection_pool_status", 1.0),
            ("proxysql_connection_pool_latency_us", 120.0),
        ]

    def test_unknown_status_skips_status_only(self, make_repository) -> None:
        repository = make_repository({
            connection_pool.QUERY: QueryResult(
                columns=("hostgroup", "srv_host", "srv_port", "status", "ConnUsed"),
                records=(("0", "db1", "3306", "DRAINING", "4"),),
            )
        })
        stream = SampleStream()

        stats = scrape_connection_pool(repository, stream, default_registry())

        assert [s.descriptor.name for s in stream] == ["conn_used"]
        assert stats.malformed == 1

    def test_row_without_host_is_skipped(self, make_repository) -> None:
        repository = make_repository({
            connection_pool.QUERY: QueryResult(
                columns=("hostgroup", "srv_host", "srv_port", "status"),
                records=(("0", None, "3306", "ONLINE"), ("1", "db2", "3306", "ONLINE")),
            )
        })
        stream = SampleStream()

        stats = scrape_connection_pool(repository, stream, default_registry())

        assert [s.labels["endpoint"] for s in stream] == ["db2:3306"]
        assert stats.malformed == 1

    def test_missing_label_columns(self, make_repository) -> None:
        repository = make_repository({
            connection_pool.QUERY: QueryResult(columns=("hostgroup", "status"), records=(("0", "ONLINE"),))
        })
        stream = SampleStream()

        with pytest.raises(ScrapeError, match="srv_host"):
            scrape_connection_pool(repository, stream, default_registry())

        assert len(stream) == 0

    def test_reduced_registry_omits_fields(self, fake_repository) -> None:
        registry = default_registry().replace(
            TableGroup.CONNECTION_POOL,
            {"status": MYSQL_CONNECTION_POOL_METRICS["status"]},
        )
        stream = SampleStream()

        scrape_connection_pool(fake_repository, stream, registry)

        assert {s.descriptor.name for s in stream} == {"status"}
        assert len(stream) == 4


class TestConnectionListScraper:
    """stats_mysql_processlist -> proxysql_processlist_*_connection_list"""

    def test_two_families_per_row(self, fake_repository) -> None:
        stream = SampleStream()

        stats = scrape_connection_list(fake_repository, stream, default_registry())

        assert Counter((s.name, tuple(s.labels.items()), s.value) for s in stream) == Counter({
            ("proxysql_processlist_client_connection_list", (("client_host", "10.91.142.80"),), 1.0): 1,
            ("proxysql_processlist_server_connection_list", (("server_host", "10.91.142.90"),), 1.0): 1,
            ("proxysql_processlist_client_connection_list", (("client_host", "10.91.142.82"),), 1.0): 1,
            ("proxysql_processlist_server_connection_list", (("server_host", "10.91.142.91"),), 1.0): 1,
        })
        assert stats.emitted == 4

    def test_repeated_hosts_are_not_deduplicated(self, make_repository) -> None:
        repository = make_repository({
            connection_list.QUERY: QueryResult(
                columns=("cli_host", "srv_host"),
                records=(("10.0.0.1", "10.0.0.9"), ("10.0.0.1", "10.0.0.9")),
            )
        })
        stream = SampleStream()

        scrape_connection_list(repository, stream, default_registry())

        assert len(stream) == 4

    def test_idle_session_without_backend(self, make_repository) -> None:
        repository = make_repository({
            connection_list.QUERY: QueryResult(
                columns=("cli_host", "srv_host"),
                records=(("10.0.0.1", None), ("10.0.0.2", "")),
            )
        })
        stream = SampleStream()

        stats = scrape_connection_list(repository, stream, default_registry())

        assert [s.labels for s in stream] == [{"client_host": "10.0.0.1"}, {"client_host": "10.0.0.2"}]
        assert stats.malformed == 0

    def test_placeholder_entry(self, fake_repository) -> None:
        registry = default_registry().replace(
            TableGroup.CONNECTION_LIST,
            {
                "cli_host": None,
                "srv_host": MetricDescriptor(
                    name="server_connection_list", kind=MetricKind.GAUGE, help="h", labels=("server_host",),
                ),
            },
        )
        stream = SampleStream()

        stats = scrape_connection_list(fake_repository, stream, registry)

        assert {s.name for s in stream} == {"proxysql_processlist_server_connection_list"}
        assert stats.malformed == 2


class TestEmitSample:
    """Label names of an emitted sample must match its descriptor."""

    def test_matching_labels_emit(self) -> None:
        descriptor = MetricDescriptor(name="status", kind=MetricKind.GAUGE, help="h", labels=("hostgroup", "endpoint"))
        stream = SampleStream()
        stats = ScrapeStats(group=TableGroup.CONNECTION_POOL)

        emit_sample(stream, stats, descriptor, 1.0, {"endpoint": "10.0.0.1:3306", "hostgroup": "0"})

        assert len(stream) == 1
        assert stats.emitted == 1
        assert stats.malformed == 0

    def test_unexpected_labels_are_reported_as_malformed(self) -> None:
        descriptor = MetricDescriptor(name="questions", kind=MetricKind.COUNTER, help="h", labels=("x",))
        stream = SampleStream()
        stats = ScrapeStats(group=TableGroup.GLOBAL_STATUS)

        emit_sample(stream, stats, descriptor, 5.0)

        assert len(stream) == 0
        assert stats.emitted == 0
        assert stats.malformed == 1

    def test_missing_labels_are_reported_as_malformed(self) -> None:
        descriptor = MetricDescriptor(name="status", kind=MetricKind.GAUGE, help="h")
        stream = SampleStream()
        stats = ScrapeStats(group=TableGroup.CONNECTION_POOL)

        emit_sample(stream, stats, descriptor, 1.0, {"hostgroup": "0", "endpoint": "10.0.0.1:3306"})

        assert len(stream) == 0
        assert stats.malformed == 1
