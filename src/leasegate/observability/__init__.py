"""Observability helpers for LeaseGate."""

from leasegate.observability.metrics import MetricsSink, MetricsRegistry, metrics

__all__ = ["MetricsSink", "MetricsRegistry", "metrics"]
