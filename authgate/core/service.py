"""
Decision service: the single entry point a transport layer talks to.

The service owns no data. It holds one authentication chain, one
authorization resolver, one host trust resolver and one refresh registry,
all handed to it at construction, and routes each decision to the right
one.
"""

import logging
from typing import Optional

from ..auth import AuthenticationChain
from ..authz import AuthorizationResolver, HostTrustResolver, ResourceMatches
from ..errors import AuthGateError
from ..events import Event, EventBus
from ..metrics import DecisionMetrics, MetricConfig
from .config import Config
from .refresh import RefreshRegistry, RefreshResult

logger = logging.getLogger(__name__)


def _log_event(event: Event) -> None:
    logger.info(
        f"event {event.type.value} {event.action.value} from {event.source}: {event.subject}"
    )


class DecisionService:
    """
    Access-control decisions: authenticate, authorize, enumerate authorized
    resources, check host trust, and refresh cached provider data.

    Use ``DecisionService.from_config()`` to assemble one from a
    configuration, or pass the components directly.
    """

    def __init__(
        self,
        authenticator: AuthenticationChain,
        authorizer: AuthorizationResolver,
        host_resolver: HostTrustResolver,
        refresher: Optional[RefreshRegistry] = None,
        metrics: Optional[DecisionMetrics] = None,
        event_bus: Optional[EventBus] = None,
    ):
        """
        Initialize a decision service.

        Args:
            authenticator: Ordered authentication providers
            authorizer: Resolver over the principal directory and grants
            host_resolver: Resolver over the host trust table
            refresher: Providers to reload on refresh (defaults to none)
            metrics: Decision metrics (defaults to a private registry)
            event_bus: Bus the providers publish principal changes on
        """
        self.authenticator = authenticator
        self.authorizer = authorizer
        self.host_resolver = host_resolver
        self.metrics = metrics or DecisionMetrics()
        self.refresher = refresher or RefreshRegistry(metrics=self.metrics)
        self.event_bus = event_bus or EventBus()
        self.event_bus.subscribe_all(_log_event)
        self.last_refresh: Optional[RefreshResult] = None

    @classmethod
    def from_config(cls, config: Config, event_bus: Optional[EventBus] = None) -> "DecisionService":
        """
        Assemble a service from a configuration.

        Raises:
            ConfigurationError: If the configuration is invalid or names an
            unknown provider type
        """
        from .plugins import assemble

        config.validate()
        event_bus = event_bus or EventBus()
        metrics = DecisionMetrics(MetricConfig(enabled=config.metrics_enabled))
        parts = assemble(config, event_bus)

        service = cls(
            authenticator=AuthenticationChain(parts.auth_providers),
            authorizer=AuthorizationResolver(
                parts.authz_store.directory, parts.authz_store.grants, parts.catalog
            ),
            host_resolver=HostTrustResolver(parts.authz_store.hosts),
            refresher=RefreshRegistry(parts.refreshable, event_bus=event_bus, metrics=metrics),
            metrics=metrics,
            event_bus=event_bus,
        )
        logger.info(
            f"Decision service assembled: auth chain "
            f"[{', '.join(p.name for p in parts.auth_providers)}], "
            f"authz {parts.authz_store.name}, "
            f"{len(parts.refreshable)} refreshable provider(s)"
        )
        return service

    async def authenticate(self, username: str, credential: str) -> bool:
        """Verify a username and credential against the authentication chain."""
        with self.metrics.time("authenticate"):
            return await self._decide(
                "authenticate", self.authenticator.authenticate(username, credential)
            )

    async def is_authorized(self, user: str, action: str, resource: str) -> bool:
        """Check whether ``user`` may perform ``action`` on ``resource``."""
        with self.metrics.time("authorize"):
            return await self._decide(
                "authorize", self.authorizer.is_authorized(user, action, resource)
            )

    def matching_resources(self, user: str, action: str, pattern: str) -> ResourceMatches:
        """Resources matching ``pattern`` that ``user`` may perform ``action`` on."""
        try:
            matches = self.authorizer.matching_resources(user, action, pattern)
        except AuthGateError:
            self.metrics.record_decision("resources", "error")
            raise
        self.metrics.record_decision("resources", "query")
        return matches

    async def is_trusted_host(self, host: str) -> bool:
        """Check whether a host is trusted."""
        with self.metrics.time("host"):
            return await self._decide("host", self.host_resolver.is_trusted_host(host))

    async def refresh_all(self) -> bool:
        """
        Reload every refreshable provider.

        Always returns True; partial failures are logged and kept on
        ``last_refresh``.
        """
        self.last_refresh = await self.refresher.refresh_all()
        return True

    async def close(self) -> None:
        """Release provider resources such as HTTP sessions."""
        for provider in self.authenticator.providers:
            if hasattr(provider, "close"):
                try:
                    await provider.close()
                except Exception as e:
                    logger.error(f"Error closing {provider.name}: {e}")

    async def _decide(self, operation: str, decision) -> bool:
        try:
            result = await decision
        except AuthGateError:
            self.metrics.record_decision(operation, "error")
            raise
        self.metrics.record_decision(operation, "allow" if result else "deny")
        return result
