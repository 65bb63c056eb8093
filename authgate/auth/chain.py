"""
Ordered authentication fallback chain.

Providers are tried in configuration order until one accepts the
credential. A rejection falls through to the next provider. A hard error
also falls through, except at the last provider, where it is surfaced so
that an unreachable terminal backend is not mistaken for a denial.
"""

import logging
from typing import Iterable, Tuple

from ..errors import wrap_backend_error
from ..types import AuthenticationProvider
from ..util.validation import require_non_empty

logger = logging.getLogger(__name__)


class AuthenticationChain:
    """Immutable, ordered sequence of authentication providers."""

    def __init__(self, providers: Iterable[AuthenticationProvider] = ()):
        self._providers: Tuple[AuthenticationProvider, ...] = tuple(providers)

    @property
    def providers(self) -> Tuple[AuthenticationProvider, ...]:
        return self._providers

    def __len__(self) -> int:
        return len(self._providers)

    async def authenticate(self, username: str, credential: str) -> bool:
        """
        Verify a username and credential pair.

        Args:
            username: The user to authenticate
            credential: The secret presented for that user

        Returns:
            bool: True if some provider accepted the credential

        Raises:
            InvalidArgumentError: If username is empty
            AuthGateError: If the last provider fails with a hard error
        """
        require_non_empty(username, "username")
        if credential is None:
            credential = ""

        last = len(self._providers) - 1
        for index, provider in enumerate(self._providers):
            try:
                if await provider.verify(username, credential):
                    logger.debug(f"User {username} authenticated by {provider.name}")
                    return True
            except Exception as e:
                if index == last:
                    logger.error(f"Authentication backend {provider.name} failed: {e}")
                    error = wrap_backend_error(e, provider.name)
                    if error is e:
                        raise
                    raise error from e
                logger.warning(
                    f"Authentication backend {provider.name} failed, "
                    f"falling through to next provider: {e}"
                )
                continue

            logger.debug(f"User {username} rejected by {provider.name}")

        return False
