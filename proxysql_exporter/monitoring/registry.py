"""
Metric descriptor registry: how ProxySQL admin fields become Prometheus metrics.

One map per table group, keyed by the lower-cased admin column (or, for the
global status table, variable) name. A field absent from a map is not
exported. A field mapped to ``None`` or to a descriptor with an empty name is a
placeholder: scrapers report it as a malformed value instead of exporting it.
"""
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from proxysql_exporter.exceptions import MalformedValueError, RegistryError
from proxysql_exporter.models.metric import MetricDescriptor, MetricKind, TableGroup

GroupMap = Mapping[str, Optional[MetricDescriptor]]

GAUGE = MetricKind.GAUGE
COUNTER = MetricKind.COUNTER
UNTYPED = MetricKind.UNTYPED

POOL_LABELS = ("hostgroup", "endpoint")


def _global(name: str, kind: MetricKind, help_text: str) -> Tuple[str, MetricDescriptor]:
    return name, MetricDescriptor(name=name, kind=kind, help=help_text)


def _pool(field: str, name: str, kind: MetricKind, help_text: str) -> Tuple[str, MetricDescriptor]:
    return field, MetricDescriptor(name=name, kind=kind, help=help_text, labels=POOL_LABELS)


# stats_mysql_global: Variable_Name -> descriptor
MYSQL_GLOBAL_METRICS: Dict[str, Optional[MetricDescriptor]] = dict([
    _global("active_transactions", GAUGE,
            "Current number of active transactions."),
    _global("backend_query_time_nsec", UNTYPED,
            "Time spent making network calls to communicate with the backends."),
    _global("client_connections_aborted", COUNTER,
            "Number of frontend connections aborted due to invalid credential or max_connections reached."),
    _global("client_connections_connected", GAUGE,
            "Number of frontend connections currently connected."),
    _global("client_connections_created", COUNTER,
            "Number of frontend connections created so far."),
    _global("client_connections_non_idle", GAUGE,
            "Number of frontend connections that are not currently idle."),
    _global("client_connections_hostgroup_locked", COUNTER,
            "Number of frontend connections locked to a specific hostgroup."),
    _global("access_denied_wrong_password", COUNTER,
            "Number of frontend connections rejected because of a wrong password."),
    _global("access_denied_max_connections", COUNTER,
            "Number of frontend connections rejected because mysql-max_connections was reached."),
    _global("access_denied_max_user_connections", COUNTER,
            "Number of frontend connections rejected because the user max_connections was reached."),
    _global("com_autocommit", COUNTER,
            "Number of autocommit statements received."),
    _global("com_autocommit_filtered", COUNTER,
            "Number of autocommit statements answered by ProxySQL without reaching a backend."),
    _global("com_commit", COUNTER,
            "Number of COMMIT statements received."),
    _global("com_commit_filtered", COUNTER,
            "Number of COMMIT statements answered by ProxySQL without reaching a backend."),
    _global("com_rollback", COUNTER,
            "Number of ROLLBACK statements received."),
    _global("com_rollback_filtered", COUNTER,
            "Number of ROLLBACK statements answered by ProxySQL without reaching a backend."),
    _global("com_backend_change_user", COUNTER,
            "Number of COM_CHANGE_USER commands sent to backends."),
    _global("com_backend_init_db", COUNTER,
            "Number of COM_INIT_DB commands sent to backends."),
    _global("com_backend_set_names", COUNTER,
            "Number of SET NAMES statements sent to backends."),
    _global("com_frontend_init_db", COUNTER,
            "Number of COM_INIT_DB commands received from clients."),
    _global("com_frontend_set_names", COUNTER,
            "Number of SET NAMES statements received from clients."),
    _global("com_frontend_use_db", COUNTER,
            "Number of USE statements received from clients."),
    _global("com_backend_stmt_prepare", COUNTER,
            "Number of prepared statements prepared on backends."),
    _global("com_backend_stmt_execute", COUNTER,
            "Number of prepared statements executed on backends."),
    _global("com_backend_stmt_close", COUNTER,
            "Number of prepared statements closed on backends."),
    _global("com_frontend_stmt_prepare", COUNTER,
            "Number of prepared statements prepared by clients."),
    _global("com_frontend_stmt_execute", COUNTER,
            "Number of prepared statements executed by clients."),
    _global("com_frontend_stmt_close", COUNTER,
            "Number of prepared statements closed by clients."),
    _global("connpool_get_conn_failure", COUNTER,
            "Number of requests for a backend connection that failed."),
    _global("connpool_get_conn_immediate", COUNTER,
            "Number of backend connections reused from the thread local cache."),
    _global("connpool_get_conn_success", COUNTER,
            "Number of requests for a backend connection that succeeded."),
    _global("connpool_memory_bytes", GAUGE,
            "Memory used by the connection pool to store connections metadata."),
    _global("generated_error_packets", COUNTER,
            "Number of error packets generated by ProxySQL."),
    _global("max_connect_timeouts", COUNTER,
            "Number of times a backend connection could not be established within the timeout."),
    _global("mysql_backend_buffers_bytes", GAUGE,
            "Buffers related to backend connections if fast_forward is used."),
    _global("mysql_frontend_buffers_bytes", GAUGE,
            "Buffers related to frontend connections (read/write buffers and other queues)."),
    _global("mysql_session_internal_bytes", GAUGE,
            "Other memory used by ProxySQL to handle MySQL sessions."),
    _global("mysql_killed_backend_connections", COUNTER,
            "Number of backend connections killed by ProxySQL."),
    _global("mysql_killed_backend_queries", COUNTER,
            "Number of backend queries killed by ProxySQL."),
    _global("mysql_monitor_workers", GAUGE,
            "Number of monitor threads."),
    _global("mysql_thread_workers", GAUGE,
            "Number of MySQL thread workers."),
    _global("mysql_unexpected_frontend_com_quit", COUNTER,
            "Number of unexpected COM_QUIT commands received from clients."),
    _global("mysql_unexpected_frontend_packets", COUNTER,
            "Number of unexpected packets received from clients."),
    _global("proxysql_uptime", COUNTER,
            "Seconds since ProxySQL started."),
    _global("query_processor_time_nsec", UNTYPED,
            "Time spent inside the query processor determining what action to take with a query."),
    _global("questions", COUNTER,
            "Number of client requests / statements executed."),
    _global("queries_backends_bytes_recv", COUNTER,
            "Bytes received from backends."),
    _global("queries_backends_bytes_sent", COUNTER,
            "Bytes sent to backends."),
    _global("queries_frontends_bytes_recv", COUNTER,
            "Bytes received from clients."),
    _global("queries_frontends_bytes_sent", COUNTER,
            "Bytes sent to clients."),
    _global("query_cache_bytes_in", COUNTER,
            "Bytes written into the query cache."),
    _global("query_cache_bytes_out", COUNTER,
            "Bytes read from the query cache."),
    _global("query_cache_count_get", COUNTER,
            "Number of read requests to the query cache."),
    _global("query_cache_count_get_ok", COUNTER,
            "Number of successful read requests to the query cache."),
    _global("query_cache_count_set", COUNTER,
            "Number of write requests to the query cache."),
    _global("query_cache_entries", GAUGE,
            "Number of entries currently stored in the query cache."),
    _global("query_cache_memory_bytes", GAUGE,
            "Memory currently used by the query cache."),
    _global("query_cache_purged", COUNTER,
            "Number of entries purged from the query cache due to TTL expiration."),
    _global("server_connections_aborted", COUNTER,
            "Number of backend connections that failed."),
    _global("server_connections_connected", GAUGE,
            "Number of backend connections currently connected."),
    _global("server_connections_created", COUNTER,
            "Number of backend connections created so far."),
    _global("server_connections_delayed", COUNTER,
            "Number of backend connections that were delayed."),
    _global("servers_table_version", UNTYPED,
            "Version of the servers table, incremented on every change."),
    _global("slow_queries", COUNTER,
            "Number of queries with an execution time greater than mysql-long_query_time."),
    _global("sqlite3_memory_bytes", GAUGE,
            "Memory used by the embedded SQLite."),
    _global("stmt_cached", GAUGE,
            "Number of global prepared statements cached by ProxySQL."),
    _global("stmt_client_active_total", GAUGE,
            "Number of prepared statements in use by clients."),
    _global("stmt_client_active_unique", GAUGE,
            "Number of unique prepared statements in use by clients."),
    _global("stmt_max_stmt_id", GAUGE,
            "Highest statement id allocated by ProxySQL."),
    _global("stmt_server_active_total", GAUGE,
            "Number of prepared statements active on backends."),
    _global("stmt_server_active_unique", GAUGE,
            "Number of unique prepared statements active on backends."),
])

_LATENCY_HELP = "The currently ping time in microseconds, as reported from Monitor."

# stats_mysql_connection_pool: column -> descriptor
MYSQL_CONNECTION_POOL_METRICS: Dict[str, Optional[MetricDescriptor]] = dict([
    _pool("status", "status", GAUGE,
          "The status of the backend server (1 - ONLINE, 2 - SHUNNED, 3 - OFFLINE_SOFT, 4 - OFFLINE_HARD)."),
    _pool("connused", "conn_used", GAUGE,
          "How many connections are currently used by ProxySQL for sending queries to the backend server."),
    _pool("connfree", "conn_free", GAUGE,
          "How many connections are currently free."),
    _pool("connok", "conn_ok", COUNTER,
          "How many connections were established successfully."),
    _pool("connerr", "conn_err", COUNTER,
          "How many connections weren't established successfully."),
    _pool("maxconnused", "max_conn_used", GAUGE,
          "The highest number of connections ever used by ProxySQL towards the backend server."),
    _pool("queries", "queries", COUNTER,
          "The number of queries routed towards this particular backend server."),
    _pool("queries_gtid_sync", "queries_gtid_sync", COUNTER,
          "The number of queries routed towards this backend server that required GTID consistency."),
    _pool("bytes_data_sent", "bytes_data_sent", COUNTER,
          "The amount of data sent to the backend, excluding metadata."),
    _pool("bytes_data_recv", "bytes_data_recv", COUNTER,
          "The amount of data received from the backend, excluding metadata."),
    _pool("latency_us", "latency_us", GAUGE, _LATENCY_HELP),
    # ProxySQL 1.3 named the column Latency_ms although it held microseconds
    _pool("latency_ms", "latency_us", GAUGE, _LATENCY_HELP),
])

# stats_mysql_processlist: column -> descriptor
MYSQL_CONNECTION_LIST_METRICS: Dict[str, Optional[MetricDescriptor]] = {
    "cli_host": MetricDescriptor(
        name="client_connection_list",
        kind=GAUGE,
        help="Number of client connections per host.",
        labels=("client_host",),
    ),
    "srv_host": MetricDescriptor(
        name="server_connection_list",
        kind=GAUGE,
        help="Number of server connections per host.",
        labels=("server_host",),
    ),
}


def _check_labels(group: TableGroup, descriptor: MetricDescriptor) -> None:
    # Label names must match the label set each scraper builds
    if group is TableGroup.GLOBAL_STATUS:
        valid = descriptor.labels == ()
        expected = "no labels"
    elif group is TableGroup.CONNECTION_POOL:
        valid = descriptor.labels == POOL_LABELS
        expected = f"labels {POOL_LABELS}"
    else:
        valid = len(descriptor.labels) == 1
        expected = "exactly one host label"

    if not valid:
        raise RegistryError(
            f"{group.value}: metric {descriptor.name!r} has labels {descriptor.labels}, expected {expected}"
        )


class Registry:
    """
    Immutable set of per-group field maps.

    Build a new instance to change the mapping; scrapers never mutate it.
    """

    def __init__(
        self,
        global_status: GroupMap,
        connection_pool: GroupMap,
        connection_list: GroupMap,
    ) -> None:
        self._maps: Dict[TableGroup, Dict[str, Optional[MetricDescriptor]]] = {
            TableGroup.GLOBAL_STATUS: dict(global_status),
            TableGroup.CONNECTION_POOL: dict(connection_pool),
            TableGroup.CONNECTION_LIST: dict(connection_list),
        }
        self.validate()

    def validate(self) -> None:
        """
        Check the naming invariants.

        Raises:
            RegistryError: If a key or a descriptor name is not lower-case, if
                a descriptor's labels do not match what its group's scraper
                produces, or if one group maps two fields to conflicting
                descriptors
        """
        for group, fields in self._maps.items():
            seen: Dict[str, MetricDescriptor] = {}
            for field, descriptor in fields.items():
                if field != field.lower():
                    raise RegistryError(f"{group.value}: field {field!r} is not lower-case")
                if descriptor is None or not descriptor.name:
                    continue
                if descriptor.name != descriptor.name.lower():
                    raise RegistryError(
                        f"{group.value}: metric name {descriptor.name!r} is not lower-case"
                    )
                for label in descriptor.labels:
                    if label != label.lower():
                        raise RegistryError(f"{group.value}: label {label!r} is not lower-case")
                _check_labels(group, descriptor)
                previous = seen.setdefault(descriptor.name, descriptor)
                if previous != descriptor:
                    raise RegistryError(
                        f"{group.value}: conflicting descriptors for metric {descriptor.name!r}"
                    )

    def lookup(self, group: TableGroup, field: str) -> Optional[MetricDescriptor]:
        """
        Find the descriptor for an admin field.

        Args:
            group: Table group the field was read from
            field: Lower-cased field name

        Returns:
            The descriptor, or None when the field is not registered

        Raises:
            MalformedValueError: If the field is registered as a placeholder
        """
        fields = self._maps[group]
        if field not in fields:
            return None

        descriptor = fields[field]
        if descriptor is None or not descriptor.name:
            raise MalformedValueError(field, None, "registered without a usable descriptor")
        return descriptor

    def descriptors(self, group: TableGroup) -> List[MetricDescriptor]:
        """Distinct usable descriptors of a group, in registration order."""
        unique: Dict[str, MetricDescriptor] = {}
        for descriptor in self._maps[group].values():
            if descriptor is not None and descriptor.name:
                unique.setdefault(descriptor.name, descriptor)
        return list(unique.values())

    def replace(self, group: TableGroup, fields: GroupMap) -> "Registry":
        """Return a new registry with one group's map swapped out."""
        maps = {g: m for g, m in self._maps.items()}
        maps[group] = dict(fields)
        return Registry(
            global_status=maps[TableGroup.GLOBAL_STATUS],
            connection_pool=maps[TableGroup.CONNECTION_POOL],
            connection_list=maps[TableGroup.CONNECTION_LIST],
        )

    def __iter__(self) -> Iterator[Tuple[TableGroup, str, Optional[MetricDescriptor]]]:
        for group, fields in self._maps.items():
            for field, descriptor in fields.items():
                yield group, field, descriptor


def default_registry() -> Registry:
    """Registry describing the ProxySQL 1.x / 2.x admin tables."""
    return Registry(
        global_status=MYSQL_GLOBAL_METRICS,
        connection_pool=MYSQL_CONNECTION_POOL_METRICS,
        connection_list=MYSQL_CONNECTION_LIST_METRICS,
    )
