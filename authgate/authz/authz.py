"""
Authorization resolution for authgate.

A user may perform an action on a resource when some prefix of the
resource, from the resource itself up to ``/``, grants that action to the
user or to a group the user belongs to. There is no deny rule, so adding a
grant or a membership can only widen access.
"""

import logging
from typing import AsyncIterator, FrozenSet, List, Optional, Pattern

from ..types import (
    GrantTable, PrincipalDirectory, ResourceCatalog, normalize_resource,
    resource_prefixes,
)
from ..util.validation import compile_pattern, require_non_empty, require_resource_path

logger = logging.getLogger(__name__)


class AuthorizationResolver:
    """
    Answers point and enumeration authorization queries against a principal
    directory and a grant table.
    """

    def __init__(self, directory: PrincipalDirectory, grants: GrantTable,
                 catalog: Optional[ResourceCatalog] = None):
        self.directory = directory
        self.grants = grants
        self.catalog = catalog

    async def is_authorized(self, user: str, action: str, resource: str) -> bool:
        """
        Determine if a user can perform an action on a resource.

        Args:
            user: The user requesting access
            action: The operation to be performed (case-sensitive)
            resource: Slash-delimited resource path starting with ``/``

        Returns:
            bool: True if a grant on any prefix of the resource names the
            user or one of the user's groups

        Raises:
            InvalidArgumentError: On an empty user or action, or a resource
            not rooted at ``/``
        """
        require_non_empty(user, "user")
        require_non_empty(action, "action")
        require_resource_path(resource)

        groups = await self.directory.groups_for(user)
        allowed = await self._check(user, groups, action, resource)
        logger.debug(
            f"authz {user} {action} {resource}: {'allowed' if allowed else 'denied'}"
        )
        return allowed

    async def _check(self, user: str, groups: FrozenSet[str],
                     action: str, resource: str) -> bool:
        for prefix in resource_prefixes(resource):
            principals = await self.grants.principals_for(action, prefix)
            if not principals:
                continue
            # A granted name may be both a user and a group; either match counts
            if user in principals or not principals.isdisjoint(groups):
                return True
        return False

    def matching_resources(self, user: str, action: str, pattern: str) -> 'ResourceMatches':
        """
        Find every known resource matching ``pattern`` that the user may
        perform ``action`` on.

        The pattern is validated immediately; the resources are computed
        lazily each time the result is iterated.

        Raises:
            InvalidArgumentError: On an empty user or action, or an invalid
            regular expression
        """
        require_non_empty(user, "user")
        require_non_empty(action, "action")
        regex = compile_pattern(pattern)
        return ResourceMatches(self, user, action, regex)

    async def known_resources(self) -> List[str]:
        """All resources known to the grant table and the catalog, sorted."""
        resources = set(await self.grants.resources())
        if self.catalog is not None:
            async for resource in self.catalog.list_resources():
                if isinstance(resource, str) and resource.startswith("/"):
                    resources.add(normalize_resource(resource))
        return sorted(resources)


class ResourceMatches:
    """
    Lazy, restartable result of a resource enumeration query.

    Every ``async for`` re-reads the current data and yields matching
    resources in path order.
    """

    def __init__(self, resolver: AuthorizationResolver, user: str,
                 action: str, pattern: Pattern[str]):
        self.resolver = resolver
        self.user = user
        self.action = action
        self.pattern = pattern

    def __aiter__(self) -> AsyncIterator[str]:
        return self._generate()

    async def _generate(self) -> AsyncIterator[str]:
        groups = await self.resolver.directory.groups_for(self.user)
        for resource in await self.resolver.known_resources():
            if not self.pattern.search(resource):
                continue
            if await self.resolver._check(self.user, groups, self.action, resource):
                yield resource

    async def to_list(self) -> List[str]:
        return [resource async for resource in self]

    def __repr__(self) -> str:
        return (f"ResourceMatches(user={self.user!r}, action={self.action!r}, "
                f"pattern={self.pattern.pattern!r})")
