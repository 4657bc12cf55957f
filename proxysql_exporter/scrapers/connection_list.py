"""
Scraper for stats_mysql_processlist.

Each session row yields a presence sample for its client host and one for
its server host. Hosts that repeat across rows are emitted once per row.
"""
from proxysql_exporter.exceptions import MalformedValueError
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
from proxysql_exporter.services.coercion import normalize_field_name, text_value

QUERY = "SELECT cli_host, srv_host FROM stats_mysql_processlist"

GROUP = TableGroup.CONNECTION_LIST

PRESENT = 1.0


def scrape_connection_list(
    repository: Queryable,
    stream: SampleStream,
    registry: Registry,
) -> ScrapeStats:
    """
    Emit client and server host presence samples.

    Sessions without a backend report an empty or NULL ``srv_host``; such
    hosts are not samples and are skipped.

    Raises:
        QueryError: If the query fails; nothing is emitted in that case
    """
    result = run_query(repository, QUERY, GROUP)
    fields = [normalize_field_name(column) for column in result.columns]

    stats = ScrapeStats(group=GROUP)
    for record in result.records:
        stats.rows += 1
        for field, raw in zip(fields, record):
            try:
                descriptor = registry.lookup(GROUP, field)
            except MalformedValueError as e:
                report_malformed(stats, e)
                continue
            if descriptor is None:
                continue

            host = text_value(raw)
            if not host:
                continue
            emit_sample(stream, stats, descriptor, PRESENT, dict(zip(descriptor.labels, (host,))))

    return stats
