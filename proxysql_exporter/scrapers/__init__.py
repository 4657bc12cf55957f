from typing import Callable, Dict

from proxysql_exporter.models.metric import TableGroup
from proxysql_exporter.monitoring.registry import Registry
from proxysql_exporter.scrapers.base import Queryable, ScrapeStats
from proxysql_exporter.scrapers.connection_list import scrape_connection_list
from proxysql_exporter.scrapers.connection_pool import scrape_connection_pool
from proxysql_exporter.scrapers.global_status import scrape_global_status
from proxysql_exporter.scrapers.stream import SampleStream

Scraper = Callable[[Queryable, SampleStream, Registry], ScrapeStats]

SCRAPERS: Dict[TableGroup, Scraper] = {
    TableGroup.GLOBAL_STATUS: scrape_global_status,
    TableGroup.CONNECTION_POOL: scrape_connection_pool,
    TableGroup.CONNECTION_LIST: scrape_connection_list,
}

__all__ = [
    "SCRAPERS",
    "SampleStream",
    "ScrapeStats",
    "Scraper",
    "scrape_connection_list",
    "scrape_connection_pool",
    "scrape_global_status",
]
