"""
Immutable data snapshots held by the storage providers.

A provider that caches its backing store keeps exactly one snapshot and
replaces it wholesale on refresh, so readers always see a complete table.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple

from .common import normalize_resource, resource_prefixes


def _freeze(mapping: Dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class DirectorySnapshot:
    """Users and flat groups, with a reverse membership index."""
    users: FrozenSet[str] = frozenset()
    groups: Mapping[str, FrozenSet[str]] = field(default_factory=lambda: _freeze({}))
    memberships: Mapping[str, FrozenSet[str]] = field(default_factory=lambda: _freeze({}))

    @classmethod
    def build(cls, users: Iterable[str],
              groups: Optional[Mapping[str, Iterable[str]]] = None) -> 'DirectorySnapshot':
        """Build a snapshot, deriving the user -> groups index."""
        frozen_groups = {
            group: frozenset(members) for group, members in (groups or {}).items()
        }

        memberships: Dict[str, set] = {}
        for group, members in frozen_groups.items():
            for member in members:
                memberships.setdefault(member, set()).add(group)

        return cls(
            users=frozenset(users),
            groups=_freeze(frozen_groups),
            memberships=_freeze({
                user: frozenset(names) for user, names in memberships.items()
            }),
        )

    def groups_of(self, user: str) -> FrozenSet[str]:
        return self.memberships.get(user, frozenset())


@dataclass(frozen=True)
class GrantSnapshot:
    """
    Grants indexed by ``(action, resource_prefix)``.

    ``resources`` lists every prefix that appears in a grant together with
    its ancestors, which is the universe used for resource enumeration.
    """
    grants: Mapping[Tuple[str, str], FrozenSet[str]] = field(default_factory=lambda: _freeze({}))
    resources: FrozenSet[str] = frozenset()

    @classmethod
    def build(cls, grants: Mapping[Tuple[str, str], Iterable[str]]) -> 'GrantSnapshot':
        merged: Dict[Tuple[str, str], set] = {}
        for (action, prefix), names in grants.items():
            key = (action, normalize_resource(prefix))
            merged.setdefault(key, set()).update(names)

        resources = set()
        for _, prefix in merged:
            resources.update(resource_prefixes(prefix))

        return cls(
            grants=_freeze({key: frozenset(names) for key, names in merged.items()}),
            resources=frozenset(resources),
        )

    def principals_for(self, action: str, prefix: str) -> FrozenSet[str]:
        return self.grants.get((action, prefix), frozenset())


@dataclass(frozen=True)
class HostSnapshot:
    """Host identifier -> trusted flag."""
    hosts: Mapping[str, bool] = field(default_factory=lambda: _freeze({}))

    @classmethod
    def build(cls, hosts: Mapping[str, bool]) -> 'HostSnapshot':
        return cls(hosts=_freeze({host: bool(trusted) for host, trusted in hosts.items()}))
