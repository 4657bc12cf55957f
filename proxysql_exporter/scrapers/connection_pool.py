"""
Scraper for stats_mysql_connection_pool, one row per backend server.
"""
from typing import Dict

from proxysql_exporter.exceptions import MalformedValueError, ScrapeError
from proxysql_exporter.models.metric import TableGroup
from proxysql_exporter.monitoring.registry import Registry
from proxysql_exporter.scrapers.base import (
    Queryable,
    ScrapeStats,
    emit_sample,
    report_malformed,
    run_query,
)
from proxysql_exporter.scrapers.stream import SampleStream
from proxysql_exporter.services.coercion import (
    endpoint_label,
    normalize_field_name,
    parse,
    text_value,
)

QUERY = "SELECT * FROM stats_mysql_connection_pool"

GROUP = TableGroup.CONNECTION_POOL

REQUIRED_COLUMNS = ("hostgroup", "srv_host", "srv_port")


def row_labels(row: Dict[str, object]) -> Dict[str, str]:
    """
    Build the ``{hostgroup, endpoint}`` label set of one pool row.

    Raises:
        MalformedValueError: If the hostgroup or host is empty
    """
    hostgroup = text_value(row["hostgroup"])
    if not hostgroup:
        raise MalformedValueError("hostgroup", row["hostgroup"], "empty label")
    host = text_value(row["srv_host"])
    if not host:
        raise MalformedValueError("srv_host", row["srv_host"], "empty label")
    return {"hostgroup": hostgroup, "endpoint": endpoint_label(host, row["srv_port"])}


def scrape_connection_pool(
    repository: Queryable,
    stream: SampleStream,
    registry: Registry,
) -> ScrapeStats:
    """
    Emit the status ordinal and counters of every backend server.

    Every sample of a row shares the row's ``{hostgroup, endpoint}`` labels.
    A row whose labels cannot be built is skipped entirely; a field whose
    value cannot be coerced is skipped alone.

    Raises:
        QueryError: If the query fails; nothing is emitted in that case
        ScrapeError: If the label columns are missing from the result
    """
    result = run_query(repository, QUERY, GROUP)
    fields = [normalize_field_name(column) for column in result.columns]
    missing = [column for column in REQUIRED_COLUMNS if column not in fields]
    if missing:
        raise ScrapeError(GROUP.value, f"missing columns: {', '.join(missing)}")

    stats = ScrapeStats(group=GROUP)
    for record in result.records:
        stats.rows += 1
        row = dict(zip(fields, record))
        try:
            labels = row_labels(row)
        except MalformedValueError as e:
            report_malformed(stats, e)
            continue

        for field, raw in row.items():
            try:
                descriptor = registry.lookup(GROUP, field)
                if descriptor is None:
                    continue
                parsed = parse(field, raw)
            except MalformedValueError as e:
                report_malformed(stats, e)
                continue
            if parsed.is_label:
                continue
            emit_sample(stream, stats, descriptor, parsed.value, dict(labels))

    return stats
