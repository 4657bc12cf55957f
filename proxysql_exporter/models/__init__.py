from proxysql_exporter.models.metric import (
    NAMESPACE,
    MetricDescriptor,
    MetricKind,
    MetricSample,
    TableGroup,
    metric_name,
)

__all__ = [
    "NAMESPACE",
    "MetricDescriptor",
    "MetricKind",
    "MetricSample",
    "TableGroup",
    "metric_name",
]
