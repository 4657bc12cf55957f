"""
Scraper for stats_mysql_global, a plain name/value table.
"""
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
from proxysql_exporter.services.coercion import normalize_field_name, parse_float, text_value

QUERY = "SELECT Variable_Name, Variable_Value FROM stats_mysql_global"

GROUP = TableGroup.GLOBAL_STATUS


def scrape_global_status(
    repository: Queryable,
    stream: SampleStream,
    registry: Registry,
) -> ScrapeStats:
    """
    Emit one sample per registered variable.

    Unregistered variables are skipped without being counted as errors.

    Raises:
        QueryError: If the query fails; nothing is emitted in that case
        ScrapeError: If the result is not a name/value table
    """
    result = run_query(repository, QUERY, GROUP)
    if len(result.columns) < 2:
        raise ScrapeError(GROUP.value, f"expected 2 columns, got {len(result.columns)}")

    stats = ScrapeStats(group=GROUP)
    for record in result.records:
        stats.rows += 1
        field = normalize_field_name(text_value(record[0]))
        raw = record[1]
        try:
            descriptor = registry.lookup(GROUP, field)
            if descriptor is None:
                continue
            value = parse_float(field, raw)
        except MalformedValueError as e:
            report_malformed(stats, e)
            continue
        emit_sample(stream, stats, descriptor, value)

    return stats
