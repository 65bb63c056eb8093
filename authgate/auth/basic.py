"""
Password-based authentication provider for authgate.
"""

import hashlib
import hmac
import logging
import threading
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from ..types import AuthenticationProvider

logger = logging.getLogger(__name__)


def hash_password(password: str, algorithm: str = "sha256") -> str:
    """Hash password using the given hashlib algorithm (hex digest)."""
    return hashlib.new(algorithm, password.encode("utf-8")).hexdigest()


def verify_password(password: str, expected_hash: str, algorithm: str = "sha256") -> bool:
    """Constant-time comparison of a password against a stored hash."""
    if not expected_hash:
        return False
    return hmac.compare_digest(hash_password(password, algorithm), expected_hash.lower())


@dataclass
class BasicAuthConfig:
    """Password authentication configuration."""
    users: Dict[str, str] = field(default_factory=dict)  # username -> password_hash
    hash_algorithm: str = "sha256"
    name: Optional[str] = None

    @classmethod
    def from_options(cls, options: Mapping) -> 'BasicAuthConfig':
        """
        Build from provider options.

        ``users`` holds stored hashes; ``passwords`` holds plain passwords
        that are hashed on load.
        """
        algorithm = options.get("hash_algorithm", "sha256")
        users = dict(options.get("users", {}))
        for username, password in dict(options.get("passwords", {})).items():
            users[username] = hash_password(str(password), algorithm)
        return cls(users=users, hash_algorithm=algorithm, name=options.get("name"))


class MemoryAuthProvider(AuthenticationProvider):
    """
    Authenticates against an in-memory table of password hashes.

    The table is an immutable mapping replaced as a whole by ``set_password``
    and ``remove_user``.
    """

    def __init__(self, config: Optional[BasicAuthConfig] = None):
        self.config = config or BasicAuthConfig()
        self._name = self.config.name
        self._lock = threading.RLock()
        self._users: Mapping[str, str] = MappingProxyType(dict(self.config.users))

    async def verify(self, username: str, credential: str) -> bool:
        """Check a password against the stored hash."""
        expected_hash = self._users.get(username)
        if expected_hash is None:
            logger.debug(f"{self.name}: unknown user {username}")
            return False

        return verify_password(credential or "", expected_hash, self.config.hash_algorithm)

    def set_password(self, username: str, password: str) -> None:
        """Create a user or replace its password."""
        with self._lock:
            users = dict(self._users)
            users[username] = hash_password(password, self.config.hash_algorithm)
            self._users = MappingProxyType(users)

    def remove_user(self, username: str) -> bool:
        with self._lock:
            if username not in self._users:
                return False
            users = dict(self._users)
            del users[username]
            self._users = MappingProxyType(users)
            return True

    @property
    def usernames(self):
        return frozenset(self._users)
