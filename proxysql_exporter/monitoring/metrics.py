"""
Exporter self-telemetry: scrape counts, failures and duration.

Metrics are created per exporter instance and left unregistered
(``registry=None``); the exporter yields them from its own collect().
"""
from typing import Any, Iterable, List

from prometheus_client import Counter, Gauge
from prometheus_client.metrics_core import Metric

from proxysql_exporter.models.metric import TableGroup


class ExporterTelemetry:
    """Metrics describing the exporter's own scrapes."""

    def __init__(self, groups: Iterable[TableGroup] = tuple(TableGroup)):
        self.up = Gauge(
            "proxysql_up",
            "Whether the ProxySQL admin interface answered the last scrape.",
            registry=None,
        )
        self.scrapes_total = Counter(
            "proxysql_exporter_scrapes_total",
            "Total number of times ProxySQL was scraped for metrics.",
            registry=None,
        )
        self.scrape_errors_total = Counter(
            "proxysql_exporter_scrape_errors_total",
            "Total number of times an error occurred scraping a ProxySQL table group.",
            ["collector"],
            registry=None,
        )
        self.malformed_values_total = Counter(
            "proxysql_exporter_malformed_values_total",
            "Total number of admin fields skipped because their value could not be coerced.",
            ["collector"],
            registry=None,
        )
        self.last_scrape_error = Gauge(
            "proxysql_exporter_last_scrape_error",
            "Whether the last scrape of metrics from ProxySQL resulted in an error (1 for error, 0 for success).",
            registry=None,
        )
        self.last_scrape_duration_seconds = Gauge(
            "proxysql_exporter_last_scrape_duration_seconds",
            "Duration of the last scrape of metrics from ProxySQL.",
            registry=None,
        )

        for group in groups:
            self.scrape_errors_total.labels(collector=group.value)
            self.malformed_values_total.labels(collector=group.value)

    def record(self, result: Any) -> None:
        """
        Fold one scrape result into the telemetry.

        Args:
            result: ScrapeResult of the cycle that just finished
        """
        self.scrapes_total.inc()
        self.up.set(1 if result.up else 0)
        self.last_scrape_duration_seconds.set(result.duration_seconds)

        for group, outcome in result.outcomes.items():
            if not outcome.ok:
                self.scrape_errors_total.labels(collector=group.value).inc()
            if outcome.malformed:
                self.malformed_values_total.labels(collector=group.value).inc(outcome.malformed)

        self.last_scrape_error.set(0 if result.ok else 1)

    def _metrics(self) -> List[Any]:
        return [
            self.up,
            self.scrapes_total,
            self.scrape_errors_total,
            self.malformed_values_total,
            self.last_scrape_error,
            self.last_scrape_duration_seconds,
        ]

    def describe(self) -> List[Metric]:
        families: List[Metric] = []
        for metric in self._metrics():
            families.extend(metric.describe())
        return families

    def collect(self) -> List[Metric]:
        families: List[Metric] = []
        for metric in self._metrics():
            families.extend(metric.collect())
        return families
