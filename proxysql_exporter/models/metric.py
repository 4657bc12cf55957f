from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field

NAMESPACE = "proxysql"


class MetricKind(str, Enum):
    """Prometheus value type of a metric family."""

    GAUGE = "gauge"
    COUNTER = "counter"
    UNTYPED = "untyped"


class TableGroup(str, Enum):
    """
    Administrative table group scraped by one routine.

    The value doubles as the ``collector`` label of the scrape error counters.
    """

    GLOBAL_STATUS = "mysql_global"
    CONNECTION_POOL = "mysql_connection_pool"
    CONNECTION_LIST = "mysql_connection_list"

    @property
    def subsystem(self) -> str:
        """Metric name segment between the namespace and the descriptor name."""
        return _SUBSYSTEMS[self]


_SUBSYSTEMS = {
    TableGroup.GLOBAL_STATUS: "mysql_status",
    TableGroup.CONNECTION_POOL: "connection_pool",
    TableGroup.CONNECTION_LIST: "processlist",
}


class MetricDescriptor(BaseModel):
    """
    Static metadata of a metric family.

    ``name`` is the short, lower-case name; the exposed name is built by
    :func:`metric_name` from the namespace and the table group.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Lower-case metric name without prefix")
    kind: MetricKind = Field(..., description="Prometheus value type")
    help: str = Field(..., description="Help text published with the family")
    labels: Tuple[str, ...] = Field(
        default=(),
        description="Variable label names, in exposition order",
    )


class MetricSample(BaseModel):
    """One labeled value produced while scraping a row."""

    model_config = ConfigDict(frozen=True)

    group: TableGroup
    descriptor: MetricDescriptor
    labels: Dict[str, str] = Field(default_factory=dict)
    value: float

    @property
    def name(self) -> str:
        return metric_name(self.group, self.descriptor)

    def label_values(self) -> Tuple[str, ...]:
        """Label values ordered like ``descriptor.labels``."""
        return tuple(self.labels[label] for label in self.descriptor.labels)

    def __repr__(self) -> str:
        return f"MetricSample({self.name}, labels={self.labels}, value={self.value})"


def metric_name(group: TableGroup, descriptor: MetricDescriptor) -> str:
    """Fully qualified metric name, e.g. ``proxysql_connection_pool_conn_used``."""
    return f"{NAMESPACE}_{group.subsystem}_{descriptor.name}"
