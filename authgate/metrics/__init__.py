"""
authgate Metrics Package

Prometheus counters and histograms for access-control decisions.
"""

from .collector import (
    DecisionMetrics,
    MetricConfig,
)


__all__ = [
    'DecisionMetrics',
    'MetricConfig',
]
