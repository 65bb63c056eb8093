"""
Refresh coordination for caching providers.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from ..errors import RefreshPartialFailure
from ..events import Event, EventAction, EventBus, EventType
from ..metrics import DecisionMetrics
from ..types import RefreshableProvider

logger = logging.getLogger(__name__)


@dataclass
class RefreshResult:
    """Outcome of one refresh-all pass."""
    refreshed: List[str] = field(default_factory=list)
    failure: Optional[RefreshPartialFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class RefreshRegistry:
    """
    Ordered set of refreshable providers.

    ``refresh_all`` is best effort: every provider is refreshed in
    registration order, failures are collected and reported, and nothing
    is raised.
    """

    def __init__(self, providers: Iterable[RefreshableProvider] = (),
                 event_bus: Optional[EventBus] = None,
                 metrics: Optional[DecisionMetrics] = None):
        self._providers: List[RefreshableProvider] = []
        self.event_bus = event_bus
        self.metrics = metrics
        for provider in providers:
            self.register(provider)

    @property
    def providers(self) -> Tuple[RefreshableProvider, ...]:
        return tuple(self._providers)

    def register(self, provider: RefreshableProvider) -> bool:
        """Register a provider once; returns False if it was already registered."""
        if any(existing is provider for existing in self._providers):
            return False
        self._providers.append(provider)
        return True

    async def refresh_all(self) -> RefreshResult:
        result = RefreshResult()
        failures: List[Tuple[str, Exception]] = []

        for provider in self._providers:
            try:
                await provider.refresh()
            except Exception as e:
                logger.warning(f"Refresh of {provider.name} failed: {e}")
                failures.append((provider.name, e))
                if self.metrics is not None:
                    self.metrics.record_refresh_failure(provider.name)
                await self._publish(EventType.REFRESH_FAILED, provider.name, {"error": str(e)})
                continue

            result.refreshed.append(provider.name)
            await self._publish(EventType.PROVIDER_REFRESHED, provider.name)

        if failures:
            result.failure = RefreshPartialFailure(failures)
            logger.error(result.failure.message)

        return result

    async def _publish(self, event_type: EventType, provider: str, metadata=None) -> None:
        if self.event_bus is None:
            return
        await self.event_bus.publish(Event(
            type=event_type,
            action=EventAction.RELOAD,
            subject=provider,
            metadata=metadata or {},
        ))
