"""
Provider registry and service assembly.

Each configured descriptor names a provider type, either a built-in name
or a ``package.module:ClassName`` path. Factories are called with the
service configuration, the descriptor options and the event bus.
"""

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..auth import BasicAuthConfig, MemoryAuthProvider, RemoteAuthConfig, RemoteAuthProvider
from ..errors import ConfigurationError
from ..events import EventBus
from ..store import (
    FlatAuthProvider, FlatAuthzStore, MemoryAuthzStore, MemoryGrantTable,
    MemoryHostTrustTable, MemoryPrincipalDirectory,
)
from ..types import (
    AuthenticationProvider, AuthorizationStore, RefreshableProvider, ResourceCatalog,
)
from .config import Config, ProviderDescriptor

logger = logging.getLogger(__name__)


ProviderFactory = Callable[[Config, Mapping[str, Any], EventBus], Any]


def _flat_auth(config: Config, options: Mapping[str, Any], event_bus: EventBus) -> FlatAuthProvider:
    user_file = options.get("user_file", config.user_file)
    if not user_file:
        raise ConfigurationError("flat_auth requires user_file")
    return FlatAuthProvider(
        user_file,
        hash_algorithm=options.get("hash_algorithm", "sha256"),
        name=options.get("name"),
    )


def _memory_auth(config: Config, options: Mapping[str, Any], event_bus: EventBus) -> MemoryAuthProvider:
    return MemoryAuthProvider(BasicAuthConfig.from_options(options))


def _remote_auth(config: Config, options: Mapping[str, Any], event_bus: EventBus) -> RemoteAuthProvider:
    remote = RemoteAuthConfig.from_options(options, default_url=config.remote_url)
    if not remote.url:
        raise ConfigurationError("remote_auth requires a url")
    return RemoteAuthProvider(remote)


def _flat_authz(config: Config, options: Mapping[str, Any], event_bus: EventBus) -> FlatAuthzStore:
    user_file = options.get("user_file", config.user_file)
    resource_file = options.get("resource_file", config.resource_file)
    if not user_file or not resource_file:
        raise ConfigurationError("flat_authz requires user_file and resource_file")
    return FlatAuthzStore(
        user_file=user_file,
        resource_file=resource_file,
        group_file=options.get("group_file", config.group_file),
        host_file=options.get("host_file", config.host_file),
        event_bus=event_bus,
        name=options.get("name"),
    )


def _memory_authz(config: Config, options: Mapping[str, Any], event_bus: EventBus) -> MemoryAuthzStore:
    grants = {}
    for entry in options.get("grants", []):
        grants.setdefault((entry["action"], entry["resource"]), set()).update(entry["principals"])
    return MemoryAuthzStore(
        directory=MemoryPrincipalDirectory(
            users=options.get("users", []),
            groups=options.get("groups", {}),
            event_bus=event_bus,
        ),
        grants=MemoryGrantTable(grants),
        hosts=MemoryHostTrustTable(options.get("hosts", {})),
        name=options.get("name"),
    )


PROVIDER_TYPES: Dict[str, ProviderFactory] = {
    "flat_auth": _flat_auth,
    "memory_auth": _memory_auth,
    "remote_auth": _remote_auth,
    "flat_authz": _flat_authz,
    "memory_authz": _memory_authz,
}


def register_provider_type(name: str, factory: ProviderFactory) -> None:
    """Make a provider type available to configuration files by name."""
    PROVIDER_TYPES[name] = factory


def resolve_factory(provider_type: str) -> ProviderFactory:
    """Find the factory for a built-in name or a ``module:Class`` path."""
    if provider_type in PROVIDER_TYPES:
        return PROVIDER_TYPES[provider_type]

    module_name, sep, attr = provider_type.partition(":")
    if not sep:
        module_name, _, attr = provider_type.rpartition(".")
    if not module_name or not attr:
        raise ConfigurationError(f"Unknown provider type: {provider_type}")

    try:
        target = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise ConfigurationError(f"Cannot load provider {provider_type}: {e}", cause=e) from e

    if isinstance(target, type):
        return lambda config, options, event_bus: target(config, options, event_bus)
    if callable(target):
        return target
    raise ConfigurationError(f"{provider_type} is not a provider class or factory")


@dataclass
class AssembledProviders:
    """Typed provider references a decision service is built from."""
    auth_providers: List[AuthenticationProvider] = field(default_factory=list)
    authz_store: Optional[AuthorizationStore] = None
    catalog: Optional[ResourceCatalog] = None
    refreshable: List[RefreshableProvider] = field(default_factory=list)

    def add_refreshable(self, provider: Any) -> None:
        if isinstance(provider, RefreshableProvider) and not any(
            existing is provider for existing in self.refreshable
        ):
            self.refreshable.append(provider)


def build_provider(descriptor: ProviderDescriptor, config: Config, event_bus: EventBus) -> Any:
    factory = resolve_factory(descriptor.type)
    provider = factory(config, descriptor.options, event_bus)
    logger.debug(f"Loaded provider {descriptor.type}: {type(provider).__name__}")
    return provider


def assemble(config: Config, event_bus: EventBus) -> AssembledProviders:
    """
    Instantiate the configured providers and sort them by capability.

    Authentication providers keep configuration order. The first
    authorization store configured wins. Defaults fill in a missing
    authentication chain (``flat_auth``, preceded by ``remote_auth`` when
    ``remote_url`` is set) and a missing authorization store
    (``flat_authz``).
    """
    parts = AssembledProviders()

    for descriptor in config.plugins:
        provider = build_provider(descriptor, config, event_bus)
        matched = False

        if isinstance(provider, AuthorizationStore):
            if parts.authz_store is not None:
                logger.warning(
                    f"Ignoring authorization store {provider.name}; "
                    f"{parts.authz_store.name} is already configured"
                )
                continue
            parts.authz_store = provider
            matched = True
        if isinstance(provider, AuthenticationProvider):
            parts.auth_providers.append(provider)
            matched = True
        if isinstance(provider, ResourceCatalog):
            if parts.catalog is None:
                parts.catalog = provider
            matched = True
        if isinstance(provider, RefreshableProvider):
            matched = True

        if not matched:
            raise ConfigurationError(f"{descriptor.type} is not an authgate provider")
        parts.add_refreshable(provider)

    if not parts.auth_providers:
        if config.remote_url:
            parts.auth_providers.append(
                build_provider(ProviderDescriptor("remote_auth"), config, event_bus)
            )
        default_auth = build_provider(ProviderDescriptor("flat_auth"), config, event_bus)
        parts.auth_providers.append(default_auth)
        parts.add_refreshable(default_auth)

    if parts.authz_store is None:
        parts.authz_store = build_provider(ProviderDescriptor("flat_authz"), config, event_bus)
        parts.add_refreshable(parts.authz_store)

    return parts
