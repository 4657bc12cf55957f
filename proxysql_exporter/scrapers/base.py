"""
Shared plumbing for the table scrapers.
"""
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, Sequence, Tuple

import structlog

from proxysql_exporter.exceptions import MalformedValueError, QueryError
from proxysql_exporter.models.metric import MetricDescriptor, MetricSample, TableGroup
from proxysql_exporter.scrapers.stream import SampleStream

logger = structlog.get_logger(__name__)


class QueryResultLike(Protocol):
    columns: Tuple[str, ...]
    records: Sequence[Tuple[Any, ...]]


class Queryable(Protocol):
    """The only capability a scraper needs from the admin connection."""

    def query(self, sql: str) -> QueryResultLike:
        ...


@dataclass
class ScrapeStats:
    """Counts of what one scraper did in one cycle."""

    group: TableGroup
    rows: int = 0
    emitted: int = 0
    malformed: int = 0


def run_query(repository: Queryable, sql: str, group: TableGroup) -> QueryResultLike:
    """
    Execute the fixed query of a table group.

    Raises:
        QueryError: Wrapping whatever the driver raised
    """
    try:
        return repository.query(sql)
    except QueryError:
        raise
    except Exception as e:
        raise QueryError(group.value, sql, e) from e


def emit_sample(
    stream: SampleStream,
    stats: ScrapeStats,
    descriptor: MetricDescriptor,
    value: float,
    labels: Optional[Dict[str, str]] = None,
) -> None:
    """Emit one sample, or report it when its labels differ from the descriptor's."""
    labels = labels or {}
    if set(labels) != set(descriptor.labels):
        report_malformed(
            stats,
            MalformedValueError(descriptor.name, labels, f"labels do not match {descriptor.labels}"),
        )
        return

    stream.emit(
        MetricSample(
            group=stats.group,
            descriptor=descriptor,
            labels=labels,
            value=value,
        )
    )
    stats.emitted += 1


def report_malformed(stats: ScrapeStats, error: MalformedValueError) -> None:
    """Record a skipped field; the rest of the row still emits."""
    stats.malformed += 1
    logger.debug(
        "field_skipped",
        collector=stats.group.value,
        field=error.field,
        reason=error.reason,
        raw=repr(error.raw),
    )
