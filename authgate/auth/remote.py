"""
Authentication delegated to another authgate-compatible decision server.

The remote server is asked ``GET {url}/auth`` with HTTP Basic credentials
and answers 200 to accept or 401/403 to reject.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

import aiohttp

from ..errors import BackendUnavailableError, ErrorSource
from ..types import AuthenticationProvider

logger = logging.getLogger(__name__)


@dataclass
class RemoteAuthConfig:
    """Remote delegate configuration."""
    url: str
    timeout: float = 10.0
    verify_ssl: bool = True
    name: Optional[str] = None

    @classmethod
    def from_options(cls, options: Mapping, default_url: Optional[str] = None) -> 'RemoteAuthConfig':
        return cls(
            url=options.get("url", default_url) or "",
            timeout=float(options.get("timeout", 10.0)),
            verify_ssl=bool(options.get("verify_ssl", True)),
            name=options.get("name"),
        )


class RemoteAuthProvider(AuthenticationProvider):
    """Delegates credential checks to a remote decision server."""

    ACCEPT_STATUS = (200,)
    REJECT_STATUS = (401, 403)

    def __init__(self, config: RemoteAuthConfig,
                 session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._name = config.name or f"RemoteAuthProvider({config.url})"
        self.auth_url = config.url.rstrip("/") + "/auth"
        self.timeout = aiohttp.ClientTimeout(total=config.timeout)
        self._session = session

    async def verify(self, username: str, credential: str) -> bool:
        """Ask the remote server whether the credential is valid."""
        auth = aiohttp.BasicAuth(username, credential or "")
        try:
            if self._session is not None:
                return await self._request(self._session, auth)
            async with aiohttp.ClientSession(timeout=self.timeout) as session:
                return await self._request(session, auth)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Remote auth request to {self.auth_url} failed: {e}")
            raise BackendUnavailableError(
                f"Remote auth server {self.auth_url} unreachable: {e}",
                provider=self.name,
                source=ErrorSource.AUTHENTICATION,
                cause=e
            ) from e

    async def _request(self, session: aiohttp.ClientSession, auth: aiohttp.BasicAuth) -> bool:
        async with session.get(
            self.auth_url,
            auth=auth,
            ssl=self.config.verify_ssl,
        ) as resp:
            if resp.status in self.ACCEPT_STATUS:
                return True
            if resp.status in self.REJECT_STATUS:
                logger.debug(f"Remote auth rejected {auth.login}: HTTP {resp.status}")
                return False

            raise BackendUnavailableError(
                f"Remote auth server {self.auth_url} answered HTTP {resp.status}",
                provider=self.name,
                source=ErrorSource.AUTHENTICATION
            )

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None
