"""
Flat-file storage providers for authgate.

File formats (``#`` starts a comment, blank lines are ignored):

    user file       alice:<sha256 hex digest of the password>
    group file      admins: alice, bob
    resource file   /docs (GET,HEAD): alice, admins
    host file       build01.example.com: trusted

Files are read asynchronously with aiofiles and cached as immutable
snapshots. ``refresh()`` reloads a file only when its modification time or
size changed; providers load lazily on first use.
"""

import asyncio
import logging
import re
from typing import Dict, Optional, Set, Tuple

import aiofiles
import aiofiles.os

from ..errors import BackendUnavailableError
from ..events import EventBus
from ..types import (
    AuthenticationProvider, DirectorySnapshot, GrantSnapshot, HostSnapshot,
    RefreshableProvider,
)
from ..auth.basic import verify_password
from .memory import (
    MemoryGrantTable, MemoryHostTrustTable, MemoryPrincipalDirectory,
    MemoryAuthzStore,
)

logger = logging.getLogger(__name__)


RESOURCE_LINE = re.compile(r'^(/\S*)\s*\(([^)]*)\)\s*:\s*(.*)$')

TRUSTED_VALUES = {"trusted", "yes", "true", "1"}
UNTRUSTED_VALUES = {"untrusted", "no", "false", "0"}


def _content_lines(text: str):
    for number, raw in enumerate(text.splitlines(), start=1):
        line = raw.split("#", 1)[0].strip()
        if line:
            yield number, line


def _split_names(value: str) -> Set[str]:
    return {name.strip() for name in value.split(",") if name.strip()}


def parse_user_file(text: str, source: str = "<users>") -> Dict[str, str]:
    """Parse ``user:hash`` lines."""
    users = {}
    for number, line in _content_lines(text):
        username, sep, password_hash = line.partition(":")
        username = username.strip()
        if not sep or not username:
            logger.warning(f"{source}:{number}: skipping malformed user line")
            continue
        users[username] = password_hash.strip()
    return users


def parse_group_file(text: str, source: str = "<groups>") -> Dict[str, Set[str]]:
    """Parse ``group: member, member`` lines."""
    groups: Dict[str, Set[str]] = {}
    for number, line in _content_lines(text):
        group, sep, members = line.partition(":")
        group = group.strip()
        if not sep or not group:
            logger.warning(f"{source}:{number}: skipping malformed group line")
            continue
        groups.setdefault(group, set()).update(_split_names(members))
    return groups


def parse_resource_file(text: str, source: str = "<resources>") -> Dict[Tuple[str, str], Set[str]]:
    """Parse ``/prefix (action, action): principal, principal`` lines."""
    grants: Dict[Tuple[str, str], Set[str]] = {}
    for number, line in _content_lines(text):
        match = RESOURCE_LINE.match(line)
        if not match:
            logger.warning(f"{source}:{number}: skipping malformed resource line")
            continue
        prefix, actions, names = match.groups()
        for action in _split_names(actions):
            grants.setdefault((action, prefix), set()).update(_split_names(names))
    return grants


def parse_host_file(text: str, source: str = "<hosts>") -> Dict[str, bool]:
    """Parse ``host: trusted`` lines."""
    hosts = {}
    for number, line in _content_lines(text):
        host, sep, flag = line.rpartition(":")
        host, flag = host.strip(), flag.strip().lower()
        if not sep or not host or flag not in TRUSTED_VALUES | UNTRUSTED_VALUES:
            logger.warning(f"{source}:{number}: skipping malformed host line")
            continue
        hosts[host] = flag in TRUSTED_VALUES
    return hosts


class FlatFile:
    """
    A watched text file; ``read`` returns None when it is unchanged.

    A read becomes the change-detection baseline only once ``commit`` is
    called; until then the same change is reported again.
    """

    def __init__(self, path: Optional[str], provider: str):
        self.path = path
        self.provider = provider
        self._signature = None
        self._pending = None

    async def read(self, force: bool = False) -> Optional[str]:
        if not self.path:
            if self._signature is None:
                self._pending = ()
                return ""
            return None

        try:
            stat = await aiofiles.os.stat(self.path)
            signature = (stat.st_mtime_ns, stat.st_size)
            if not force and signature == self._signature:
                return None

            async with aiofiles.open(self.path, 'r', encoding='utf-8') as f:
                text = await f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise BackendUnavailableError(
                f"Cannot read {self.path}: {e}",
                provider=self.provider,
                cause=e
            ) from e

        self._pending = signature
        return text

    def commit(self) -> None:
        """Accept the last read as the current contents."""
        if self._pending is not None:
            self._signature = self._pending
            self._pending = None


class _LazyRefresh(RefreshableProvider):
    """Shared lazy-load and refresh bookkeeping for the flat providers."""

    def _init_refresh(self) -> None:
        # Created on first refresh so it belongs to the running loop
        self._load_lock: Optional[asyncio.Lock] = None
        self._loaded = False

    async def _ensure_loaded(self) -> None:
        if not self._loaded:
            await self.refresh()

    async def refresh(self, force: bool = False) -> None:
        if self._load_lock is None:
            self._load_lock = asyncio.Lock()
        async with self._load_lock:
            changed = await self._reload(force)
            self._loaded = True
        if changed:
            logger.info(f"{self.name} reloaded")

    async def _reload(self, force: bool) -> bool:
        raise NotImplementedError


class FlatAuthProvider(AuthenticationProvider, _LazyRefresh):
    """Authenticates against a ``user:hash`` file."""

    def __init__(self, user_file: str, hash_algorithm: str = "sha256",
                 name: Optional[str] = None):
        self._name = name
        self.user_file = FlatFile(user_file, self.name)
        self.hash_algorithm = hash_algorithm
        self._users: Dict[str, str] = {}
        self._init_refresh()

    async def verify(self, username: str, credential: str) -> bool:
        await self._ensure_loaded()
        expected_hash = self._users.get(username)
        if expected_hash is None:
            return False
        return verify_password(credential or "", expected_hash, self.hash_algorithm)

    async def _reload(self, force: bool) -> bool:
        text = await self.user_file.read(force)
        if text is None:
            return False
        self._users = parse_user_file(text, self.user_file.path)
        self.user_file.commit()
        return True


class FlatPrincipalDirectory(MemoryPrincipalDirectory, _LazyRefresh):
    """Users from the user file and groups from the group file."""

    def __init__(self, user_file: str, group_file: Optional[str] = None,
                 event_bus: Optional[EventBus] = None, name: Optional[str] = None):
        super().__init__(event_bus=event_bus)
        self._name = name
        self.user_file = FlatFile(user_file, self.name)
        self.group_file = FlatFile(group_file, self.name)
        self._users: Set[str] = set()
        self._groups: Dict[str, Set[str]] = {}
        self._init_refresh()

    async def list_users(self):
        await self._ensure_loaded()
        return await super().list_users()

    async def list_groups(self):
        await self._ensure_loaded()
        return await super().list_groups()

    async def groups_for(self, user: str):
        await self._ensure_loaded()
        return await super().groups_for(user)

    async def members_of(self, group: str):
        await self._ensure_loaded()
        return await super().members_of(group)

    async def _reload(self, force: bool) -> bool:
        users_text = await self.user_file.read(force)
        groups_text = await self.group_file.read(force)
        if users_text is None and groups_text is None:
            return False

        users = self._users
        if users_text is not None:
            users = set(parse_user_file(users_text, self.user_file.path))
        groups = self._groups
        if groups_text is not None:
            groups = parse_group_file(groups_text, self.group_file.path)

        snapshot = DirectorySnapshot.build(users, groups)
        if self._loaded:
            await self.replace(snapshot)
        else:
            # First load populates the directory without announcing a change
            self._snapshot = snapshot

        self._users, self._groups = users, groups
        self.user_file.commit()
        self.group_file.commit()
        return True


class FlatGrantTable(MemoryGrantTable, _LazyRefresh):
    """Grants from a resource file."""

    def __init__(self, resource_file: str, name: Optional[str] = None):
        super().__init__()
        self._name = name
        self.resource_file = FlatFile(resource_file, self.name)
        self._init_refresh()

    async def principals_for(self, action: str, prefix: str):
        await self._ensure_loaded()
        return await super().principals_for(action, prefix)

    async def resources(self):
        await self._ensure_loaded()
        return await super().resources()

    async def _reload(self, force: bool) -> bool:
        text = await self.resource_file.read(force)
        if text is None:
            return False
        self.replace(GrantSnapshot.build(parse_resource_file(text, self.resource_file.path)))
        self.resource_file.commit()
        return True


class FlatHostTrustTable(MemoryHostTrustTable, _LazyRefresh):
    """Host trust flags from a host file."""

    def __init__(self, host_file: Optional[str], name: Optional[str] = None):
        super().__init__()
        self._name = name
        self.host_file = FlatFile(host_file, self.name)
        self._init_refresh()

    async def lookup(self, host: str):
        await self._ensure_loaded()
        return await super().lookup(host)

    async def _reload(self, force: bool) -> bool:
        text = await self.host_file.read(force)
        if text is None:
            return False
        self.replace(HostSnapshot.build(parse_host_file(text, self.host_file.path)))
        self.host_file.commit()
        return True


class FlatAuthzStore(MemoryAuthzStore, RefreshableProvider):
    """
    Authorization backend over the user, group, resource and host files.

    ``refresh`` reloads every table; a table that fails does not stop the
    others, and the first failure is raised once all have been tried.
    """

    def __init__(self, user_file: str, resource_file: str,
                 group_file: Optional[str] = None, host_file: Optional[str] = None,
                 event_bus: Optional[EventBus] = None, name: Optional[str] = None):
        super().__init__(
            directory=FlatPrincipalDirectory(user_file, group_file, event_bus=event_bus),
            grants=FlatGrantTable(resource_file),
            hosts=FlatHostTrustTable(host_file),
            name=name,
        )

    async def refresh(self, force: bool = False) -> None:
        errors = []
        for table in (self.directory, self.grants, self.hosts):
            try:
                await table.refresh(force)
            except BackendUnavailableError as e:
                logger.error(f"{self.name}: {e}")
                errors.append(e)

        if errors:
            raise errors[0].with_provider(self.name)
