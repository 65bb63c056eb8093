"""
Prometheus metrics for authgate decisions.

Counts every decision by operation and outcome, times decisions, and
counts refresh failures per provider. Metrics live on a private
CollectorRegistry so several services can coexist in one process.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator

from prometheus_client import (
    Counter, Histogram, CollectorRegistry, generate_latest,
)

logger = logging.getLogger(__name__)


@dataclass
class MetricConfig:
    """Configuration for metrics collection."""

    enabled: bool = True
    namespace: str = "authgate"


class DecisionMetrics:
    """Decision and refresh metrics for one decision service."""

    def __init__(self, config: MetricConfig = None):
        """
        Initialize metrics.

        Args:
            config: Metrics configuration
        """
        self.config = config or MetricConfig()
        self.registry = CollectorRegistry()
        self._counts: Dict[str, int] = {}

        if not self.config.enabled:
            logger.info("Metrics collection disabled")
            return

        ns = self.config.namespace

        self.decisions = Counter(
            f'{ns}_decisions_total',
            'Total number of decisions',
            ['operation', 'result'],
            registry=self.registry
        )

        self.decision_latency = Histogram(
            f'{ns}_decision_duration_seconds',
            'Decision duration in seconds',
            ['operation'],
            buckets=[0.0001, 0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
            registry=self.registry
        )

        self.refresh_failures = Counter(
            f'{ns}_refresh_failures_total',
            'Total number of failed provider refreshes',
            ['provider'],
            registry=self.registry
        )

    def record_decision(self, operation: str, result: str) -> None:
        """Record a decision outcome (``allow``, ``deny`` or ``error``)."""
        if not self.config.enabled:
            return

        key = f"{operation}:{result}"
        self._counts[key] = self._counts.get(key, 0) + 1
        self.decisions.labels(operation=operation, result=result).inc()

    def record_refresh_failure(self, provider: str) -> None:
        if not self.config.enabled:
            return

        key = f"refresh_failure:{provider}"
        self._counts[key] = self._counts.get(key, 0) + 1
        self.refresh_failures.labels(provider=provider).inc()

    @contextmanager
    def time(self, operation: str) -> Iterator[None]:
        """Time the enclosed block as one ``operation`` decision."""
        start = time.perf_counter()
        try:
            yield
        finally:
            if self.config.enabled:
                self.decision_latency.labels(operation=operation).observe(
                    time.perf_counter() - start
                )

    def count(self, operation: str, result: str) -> int:
        """Number of recorded decisions for an operation and outcome."""
        return self._counts.get(f"{operation}:{result}", 0)

    def export(self) -> str:
        """Export metrics in Prometheus text format."""
        return generate_latest(self.registry).decode('utf-8')
