"""
Shared fixtures for the authgate test suite.
"""

import pytest

from authgate.auth import hash_password
from authgate.events import EventBus, EventType
from authgate.store import (
    MemoryAuthzStore, MemoryGrantTable, MemoryHostTrustTable, MemoryPrincipalDirectory,
)
from authgate.types import AuthenticationProvider, RefreshableProvider


class StubAuthProvider(AuthenticationProvider):
    """Authentication provider with a scripted outcome that records calls."""

    def __init__(self, name, accept=False, error=None):
        self._name = name
        self.accept = accept
        self.error = error
        self.calls = []

    async def verify(self, username, credential):
        self.calls.append((username, credential))
        if self.error is not None:
            raise self.error
        return self.accept


class StubRefreshable(RefreshableProvider):
    """Refreshable provider that counts refreshes and can be made to fail."""

    def __init__(self, name, error=None):
        self._name = name
        self.error = error
        self.refreshes = 0

    async def refresh(self):
        self.refreshes += 1
        if self.error is not None:
            raise self.error


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def principal_events(event_bus):
    """Collects every principals-changed event published on ``event_bus``."""
    received = []
    event_bus.subscribe_function(EventType.PRINCIPALS_CHANGED, received.append)
    return received


@pytest.fixture
def docs_store(event_bus):
    """alice may read /docs; bob exists with no grants."""
    return MemoryAuthzStore(
        directory=MemoryPrincipalDirectory(users=["alice", "bob"], event_bus=event_bus),
        grants=MemoryGrantTable({("read", "/docs"): {"alice"}}),
        hosts=MemoryHostTrustTable({"build01": True, "laptop": False}),
        name="docs",
    )


@pytest.fixture
def flat_files(tmp_path):
    """A complete set of flat files for the file-backed providers."""
    users = tmp_path / "user.txt"
    users.write_text(
        "# users\n"
        f"alice:{hash_password('wonderland')}\n"
        f"bob:{hash_password('builder')}\n"
        f"carol:{hash_password('singer')}\n"
    )
    groups = tmp_path / "group.txt"
    groups.write_text("eng: carol, bob\n")
    resources = tmp_path / "resource.txt"
    resources.write_text(
        "/docs (read): alice\n"
        "/build (GET, POST): eng\n"
        "/build/secret (GET): alice\n"
    )
    hosts = tmp_path / "host.txt"
    hosts.write_text(
        "build01.example.com: trusted\n"
        "laptop.example.com: untrusted\n"
    )
    return {
        "user_file": str(users),
        "group_file": str(groups),
        "resource_file": str(resources),
        "host_file": str(hosts),
    }
