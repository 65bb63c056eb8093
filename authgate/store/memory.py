"""
In-memory storage providers for authgate.
Suitable for tests, embedding, and as the cache layer of file-backed providers.

Each provider holds one immutable snapshot. Writers build a new snapshot
under a lock and swap it in with a single assignment; readers take the
current snapshot without locking and never see a partial update.
"""

import logging
import threading
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple

from ..errors import InvalidArgumentError
from ..events import EventAction, EventBus, create_principals_event
from ..types import (
    AuthorizationStore, DirectorySnapshot, GrantSnapshot, GrantTable,
    HostSnapshot, HostTrustTable, PrincipalDirectory, normalize_resource,
)
from ..util.validation import is_valid_identifier, require_non_empty, require_resource_path

logger = logging.getLogger(__name__)


def _check_name(name: str, field: str) -> str:
    require_non_empty(name, field)
    if not is_valid_identifier(name):
        raise InvalidArgumentError(f"{field} contains reserved characters: {name!r}", field=field)
    return name


class MemoryPrincipalDirectory(PrincipalDirectory):
    """
    In-memory users and groups.

    Publishes ``PRINCIPALS_CHANGED`` on the event bus whenever the set of
    users changes.
    """

    def __init__(self, users: Iterable[str] = (),
                 groups: Optional[Mapping[str, Iterable[str]]] = None,
                 event_bus: Optional[EventBus] = None):
        self._lock = threading.RLock()
        self._snapshot = DirectorySnapshot.build(users, groups)
        self.event_bus = event_bus

    @property
    def snapshot(self) -> DirectorySnapshot:
        return self._snapshot

    async def list_users(self) -> FrozenSet[str]:
        return self._snapshot.users

    async def list_groups(self) -> FrozenSet[str]:
        return frozenset(self._snapshot.groups)

    async def groups_for(self, user: str) -> FrozenSet[str]:
        return self._snapshot.groups_of(user)

    async def members_of(self, group: str) -> FrozenSet[str]:
        return self._snapshot.groups.get(group, frozenset())

    async def replace(self, snapshot: DirectorySnapshot) -> bool:
        """
        Swap in a new snapshot.

        Returns True if the set of users changed, in which case a
        principals-changed event has been published.
        """
        with self._lock:
            previous = self._snapshot
            self._snapshot = snapshot

        if previous.users == snapshot.users:
            return False

        added = snapshot.users - previous.users
        removed = previous.users - snapshot.users
        await self._publish_change(
            EventAction.RELOAD,
            sorted(added | removed),
            {"added": sorted(added), "removed": sorted(removed)},
        )
        return True

    async def add_user(self, user: str) -> bool:
        """Create a user. Returns False if it already exists."""
        _check_name(user, "user")
        with self._lock:
            current = self._snapshot
            if user in current.users:
                return False
            self._snapshot = DirectorySnapshot.build(current.users | {user}, current.groups)

        logger.info(f"User {user} created")
        await self._publish_change(EventAction.CREATE, [user])
        return True

    async def remove_user(self, user: str) -> bool:
        """Delete a user and drop it from every group."""
        with self._lock:
            current = self._snapshot
            if user not in current.users:
                return False
            groups = {
                group: members - {user} for group, members in current.groups.items()
            }
            self._snapshot = DirectorySnapshot.build(current.users - {user}, groups)

        logger.info(f"User {user} deleted")
        await self._publish_change(EventAction.DELETE, [user])
        return True

    async def set_group(self, group: str, members: Iterable[str]) -> None:
        """Create or replace a group's member list."""
        _check_name(group, "group")
        with self._lock:
            current = self._snapshot
            groups = dict(current.groups)
            groups[group] = frozenset(members)
            self._snapshot = DirectorySnapshot.build(current.users, groups)

    async def remove_group(self, group: str) -> bool:
        with self._lock:
            current = self._snapshot
            if group not in current.groups:
                return False
            groups = dict(current.groups)
            del groups[group]
            self._snapshot = DirectorySnapshot.build(current.users, groups)
            return True

    async def _publish_change(self, action: EventAction, users, metadata=None) -> None:
        if self.event_bus is None:
            return
        await self.event_bus.publish(
            create_principals_event(action, self.name, users, metadata)
        )


class MemoryGrantTable(GrantTable):
    """In-memory grants keyed by ``(action, resource_prefix)``."""

    def __init__(self, grants: Optional[Mapping[Tuple[str, str], Iterable[str]]] = None):
        self._lock = threading.RLock()
        self._snapshot = GrantSnapshot.build(grants or {})

    @property
    def snapshot(self) -> GrantSnapshot:
        return self._snapshot

    async def principals_for(self, action: str, prefix: str) -> FrozenSet[str]:
        return self._snapshot.principals_for(action, prefix)

    async def resources(self) -> FrozenSet[str]:
        return self._snapshot.resources

    def replace(self, snapshot: GrantSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot

    async def grant(self, action: str, prefix: str, *names: str) -> None:
        """Grant ``action`` on ``prefix`` and everything below it to ``names``."""
        require_non_empty(action, "action")
        require_resource_path(prefix, "prefix")
        for name in names:
            _check_name(name, "principal")

        key = (action, normalize_resource(prefix))
        with self._lock:
            grants = {k: set(v) for k, v in self._snapshot.grants.items()}
            grants.setdefault(key, set()).update(names)
            self._snapshot = GrantSnapshot.build(grants)

    async def revoke(self, action: str, prefix: str, *names: str) -> bool:
        """Remove ``names`` from a grant; the grant is dropped once empty."""
        key = (action, normalize_resource(prefix))
        with self._lock:
            if key not in self._snapshot.grants:
                return False
            grants = {k: set(v) for k, v in self._snapshot.grants.items()}
            grants[key].difference_update(names)
            if not grants[key]:
                del grants[key]
            self._snapshot = GrantSnapshot.build(grants)
            return True


class MemoryHostTrustTable(HostTrustTable):
    """In-memory host trust flags."""

    def __init__(self, hosts: Optional[Mapping[str, bool]] = None):
        self._lock = threading.RLock()
        self._snapshot = HostSnapshot.build(hosts or {})

    @property
    def snapshot(self) -> HostSnapshot:
        return self._snapshot

    async def lookup(self, host: str) -> Optional[bool]:
        return self._snapshot.hosts.get(host)

    def replace(self, snapshot: HostSnapshot) -> None:
        with self._lock:
            self._snapshot = snapshot

    async def set_host(self, host: str, trusted: bool) -> None:
        require_non_empty(host, "host")
        with self._lock:
            hosts = dict(self._snapshot.hosts)
            hosts[host] = bool(trusted)
            self._snapshot = HostSnapshot.build(hosts)


class MemoryAuthzStore(AuthorizationStore):
    """Bundles the three in-memory tables into one authorization backend."""

    def __init__(self, directory: Optional[MemoryPrincipalDirectory] = None,
                 grants: Optional[MemoryGrantTable] = None,
                 hosts: Optional[MemoryHostTrustTable] = None,
                 name: Optional[str] = None):
        self._directory = directory or MemoryPrincipalDirectory()
        self._grants = grants or MemoryGrantTable()
        self._hosts = hosts or MemoryHostTrustTable()
        self._name = name

    @property
    def directory(self) -> MemoryPrincipalDirectory:
        return self._directory

    @property
    def grants(self) -> MemoryGrantTable:
        return self._grants

    @property
    def hosts(self) -> MemoryHostTrustTable:
        return self._hosts
