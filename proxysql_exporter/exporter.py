"""
ProxySQL exporter: a prometheus_client custom collector.

``describe()`` publishes the static descriptor set without touching the
admin interface; ``collect()`` runs one scrape cycle and renders its samples
as metric families, followed by the exporter's own telemetry.
"""
import threading
import time
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

import structlog
from prometheus_client.core import CounterMetricFamily, GaugeMetricFamily, UnknownMetricFamily
from prometheus_client.metrics_core import Metric

from proxysql_exporter.config.settings import Settings
from proxysql_exporter.config.settings import settings as default_settings
from proxysql_exporter.exceptions import ScrapeError
from proxysql_exporter.models.metric import (
    MetricDescriptor,
    MetricKind,
    MetricSample,
    TableGroup,
    metric_name,
)
from proxysql_exporter.monitoring.metrics import ExporterTelemetry
from proxysql_exporter.monitoring.registry import Registry, default_registry
from proxysql_exporter.repositories.base import AbstractRepository
from proxysql_exporter.repositories.proxysql_repository import ProxySQLAdminRepository
from proxysql_exporter.scrapers import SCRAPERS, SampleStream

logger = structlog.get_logger(__name__)

_FAMILY_TYPES = {
    MetricKind.GAUGE: GaugeMetricFamily,
    MetricKind.COUNTER: CounterMetricFamily,
    MetricKind.UNTYPED: UnknownMetricFamily,
}


@dataclass
class CollectorOutcome:
    """What one table group contributed to a scrape."""

    group: TableGroup
    ok: bool
    samples: int = 0
    malformed: int = 0
    error: Optional[str] = None


@dataclass
class ScrapeResult:
    """Samples and bookkeeping of one scrape cycle."""

    samples: List[MetricSample] = field(default_factory=list)
    outcomes: Dict[TableGroup, CollectorOutcome] = field(default_factory=dict)
    up: bool = False
    duration_seconds: float = 0.0
    connection_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.up and all(outcome.ok for outcome in self.outcomes.values())

    @property
    def failed_groups(self) -> List[TableGroup]:
        return [group for group, outcome in self.outcomes.items() if not outcome.ok]


def build_family(group: TableGroup, descriptor: MetricDescriptor) -> Metric:
    family_type = _FAMILY_TYPES[descriptor.kind]
    return family_type(
        metric_name(group, descriptor),
        descriptor.help,
        labels=list(descriptor.labels),
    )


def samples_to_families(samples: List[MetricSample]) -> List[Metric]:
    """
    Group samples into metric families, in first-seen order.

    The exposition format allows a label set once per family. Repeated
    connection-list label sets are presence samples and are summed into a
    connection count; any other repeat keeps the last value. A sample whose
    label names differ from its descriptor's is dropped.
    """
    series: "OrderedDict[Tuple[TableGroup, str], Tuple[MetricDescriptor, OrderedDict]]" = OrderedDict()
    for sample in samples:
        if set(sample.labels) != set(sample.descriptor.labels):
            logger.warning(
                "sample_labels_mismatch",
                metric=sample.name,
                labels=sorted(sample.labels),
                expected=list(sample.descriptor.labels),
            )
            continue
        key = (sample.group, sample.descriptor.name)
        if key not in series:
            series[key] = (sample.descriptor, OrderedDict())
        values = series[key][1]
        label_values = sample.label_values()
        if sample.group is TableGroup.CONNECTION_LIST:
            values[label_values] = values.get(label_values, 0.0) + sample.value
        else:
            values[label_values] = sample.value

    families: List[Metric] = []
    for (group, _), (descriptor, values) in series.items():
        family = build_family(group, descriptor)
        for label_values, value in values.items():
            family.add_metric(list(label_values), value)
        families.append(family)
    return families


class ProxySQLExporter:
    """
    Collector that scrapes the ProxySQL admin interface on every collect().

    Args:
        settings: Application settings; the module level settings by default
        registry: Field to metric mapping; :func:`default_registry` by default
        repository: Admin connection; built from ``settings.proxysql`` by default
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[Registry] = None,
        repository: Optional[AbstractRepository] = None,
    ):
        if settings is None:
            settings = default_settings

        self.settings = settings
        self.registry = registry if registry is not None else default_registry()
        self.repository = repository if repository is not None else ProxySQLAdminRepository(settings.proxysql)
        self.telemetry = ExporterTelemetry(self.enabled_groups)
        self.last_result: Optional[ScrapeResult] = None
        self._scrape_lock = threading.Lock()
        self._logger = logger.bind(component="proxysql_exporter")

    @property
    def enabled_groups(self) -> List[TableGroup]:
        collectors = self.settings.collectors
        enabled = {
            TableGroup.GLOBAL_STATUS: collectors.mysql_status,
            TableGroup.CONNECTION_POOL: collectors.mysql_connection_pool,
            TableGroup.CONNECTION_LIST: collectors.mysql_connection_list,
        }
        return [group for group in TableGroup if enabled[group]]

    def descriptors(self) -> List[Tuple[TableGroup, MetricDescriptor]]:
        """Static union of the descriptors of every enabled group."""
        return [
            (group, descriptor)
            for group in self.enabled_groups
            for descriptor in self.registry.descriptors(group)
        ]

    def describe(self) -> Iterator[Metric]:
        for group, descriptor in self.descriptors():
            yield build_family(group, descriptor)
        yield from self.telemetry.describe()

    def collect(self) -> Iterator[Metric]:
        result = self.scrape()
        yield from samples_to_families(result.samples)
        yield from self.telemetry.collect()

    def scrape(self) -> ScrapeResult:
        """
        Run one scrape cycle.

        Never raises. A connection failure yields a result with ``up`` unset
        and no samples; a failing table group contributes no samples and is
        reported in ``outcomes``.

        Returns:
            ScrapeResult of the cycle
        """
        with self._scrape_lock:
            start = time.monotonic()
            result = self._scrape()
            result.duration_seconds = time.monotonic() - start
            self.telemetry.record(result)
            self.last_result = result

        self._logger.debug(
            "scrape_finished",
            up=result.up,
            samples=len(result.samples),
            failed=[group.value for group in result.failed_groups],
            duration_seconds=round(result.duration_seconds, 4),
        )
        return result

    def _scrape(self) -> ScrapeResult:
        try:
            self.repository.ensure_connected()
        except Exception as e:
            self._logger.error("scrape_connection_failed", error=str(e))
            return ScrapeResult(up=False, connection_error=str(e))

        stream = SampleStream()
        outcomes: Dict[TableGroup, CollectorOutcome] = {}
        groups = self.enabled_groups

        if self.settings.collectors.concurrent and len(groups) > 1:
            with ThreadPoolExecutor(max_workers=len(groups), thread_name_prefix="scraper") as executor:
                futures = [executor.submit(self._run_scraper, group, stream) for group in groups]
                for future in as_completed(futures):
                    outcome = future.result()
                    outcomes[outcome.group] = outcome
        else:
            for group in groups:
                outcomes[group] = self._run_scraper(group, stream)

        stream.close()
        ordered = {group: outcomes[group] for group in groups}
        return ScrapeResult(samples=stream.samples(), outcomes=ordered, up=True)

    def _run_scraper(self, group: TableGroup, stream: SampleStream) -> CollectorOutcome:
        """Run one scraper into a private buffer and merge it on success."""
        buffer = SampleStream()
        try:
            stats = SCRAPERS[group](self.repository, buffer, self.registry)
        except ScrapeError as e:
            self._logger.error("scrape_collector_failed", collector=group.value, error=str(e))
            return CollectorOutcome(group=group, ok=False, error=str(e))
        except Exception as e:
            self._logger.error(
                "scrape_collector_failed",
                collector=group.value,
                error=str(e),
                exc_info=True,
            )
            return CollectorOutcome(group=group, ok=False, error=str(e))

        buffer.close()
        stream.extend(buffer)
        return CollectorOutcome(
            group=group,
            ok=True,
            samples=stats.emitted,
            malformed=stats.malformed,
        )
