"""
Host trust resolution for authgate.
"""

import logging

from ..types import HostTrustTable
from ..util.validation import require_non_empty

logger = logging.getLogger(__name__)


class HostTrustResolver:
    """Exact-match, default-deny host trust lookups."""

    def __init__(self, hosts: HostTrustTable):
        self.hosts = hosts

    async def is_trusted_host(self, host: str) -> bool:
        """
        Check whether a host is trusted.

        Hosts missing from the table are not trusted.

        Raises:
            InvalidArgumentError: If host is empty
        """
        require_non_empty(host, "host")
        trusted = await self.hosts.lookup(host) is True
        logger.debug(f"host {host}: {'trusted' if trusted else 'untrusted'}")
        return trusted
