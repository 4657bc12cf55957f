"""Prometheus exporter for the ProxySQL admin interface."""

__version__ = "1.0.0"
