"""
Provider capability interfaces.

A storage or credential backend implements one or more of these. The
decision service is assembled from typed references to these capabilities;
nothing asks a provider at request time what it can do.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, FrozenSet, Optional


class Provider(ABC):
    """Common base giving every provider a display name for logs and errors."""

    @property
    def name(self) -> str:
        return getattr(self, "_name", None) or self.__class__.__name__


class AuthenticationProvider(Provider):
    """
    Verifies a username and credential pair.

    ``verify`` returns False to reject the credential. Raising signals a
    hard error (backend unreachable, unreadable data); the authentication
    chain decides whether that is absorbed or surfaced.
    """

    @abstractmethod
    async def verify(self, username: str, credential: str) -> bool:
        pass


class RefreshableProvider(Provider):
    """A provider holding an in-memory snapshot that can be reloaded."""

    @abstractmethod
    async def refresh(self) -> None:
        """Invalidate and reload the snapshot from the backing store."""
        pass


class PrincipalDirectory(Provider):
    """Users and flat groups."""

    @abstractmethod
    async def list_users(self) -> FrozenSet[str]:
        pass

    @abstractmethod
    async def list_groups(self) -> FrozenSet[str]:
        pass

    @abstractmethod
    async def groups_for(self, user: str) -> FrozenSet[str]:
        """Names of every group that has ``user`` as a member."""
        pass

    @abstractmethod
    async def members_of(self, group: str) -> FrozenSet[str]:
        pass

    async def has_user(self, user: str) -> bool:
        return user in await self.list_users()

    async def is_member(self, user: str, group: str) -> bool:
        return group in await self.groups_for(user)


class GrantTable(Provider):
    """Grants indexed by ``(action, resource_prefix)``."""

    @abstractmethod
    async def principals_for(self, action: str, prefix: str) -> FrozenSet[str]:
        """Principal names granted ``action`` at exactly ``prefix``."""
        pass

    @abstractmethod
    async def resources(self) -> FrozenSet[str]:
        """Every resource prefix the table knows about."""
        pass


class HostTrustTable(Provider):
    """Host identifier -> trusted flag."""

    @abstractmethod
    async def lookup(self, host: str) -> Optional[bool]:
        """The configured flag for ``host``, or None when it is not listed."""
        pass


class ResourceCatalog(Provider):
    """External listing of resources, used for resource enumeration."""

    @abstractmethod
    def list_resources(self) -> AsyncIterator[str]:
        pass


class AuthorizationStore(Provider):
    """
    The data an authorization backend provides: a principal directory, a
    grant table and a host trust table.
    """

    @property
    @abstractmethod
    def directory(self) -> PrincipalDirectory:
        pass

    @property
    @abstractmethod
    def grants(self) -> GrantTable:
        pass

    @property
    @abstractmethod
    def hosts(self) -> HostTrustTable:
        pass
