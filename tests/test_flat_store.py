"""
Tests for the flat-file providers and their parsers.
"""

import asyncio
import os

import pytest

from authgate.auth import hash_password
from authgate.authz import AuthorizationResolver, HostTrustResolver
from authgate.errors import BackendUnavailableError
from authgate.events import EventAction
import authgate.store.flat as flat_module
from authgate.store import (
    FlatAuthProvider,
    FlatAuthzStore,
    FlatFile,
    parse_group_file,
    parse_host_file,
    parse_resource_file,
    parse_user_file,
)


def rewrite(path, text):
    """Rewrite a file and move its mtime forward so the change is always seen."""
    with open(path, "w", encoding="utf-8") as f:
        f.write(text)
    stat = os.stat(path)
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 5_000_000_000))


class TestParsers:
    """Test the line formats"""

    def test_user_file(self):
        users = parse_user_file("# comment\n\nalice:abc123\nbob : DEF \nmalformed\n:nohash\n")

        assert users == {"alice": "abc123", "bob": "DEF"}

    def test_group_file(self):
        groups = parse_group_file("eng: alice, bob\nops:\neng: carol  # trailing\nnocolon\n")

        assert groups == {"eng": {"alice", "bob", "carol"}, "ops": set()}

    def test_resource_file(self):
        grants = parse_resource_file(
            "/docs (GET, HEAD): alice, eng\n"
            "/ (read): root\n"
            "docs (GET): alice\n"
            "/broken GET: alice\n"
        )

        assert grants == {
            ("GET", "/docs"): {"alice", "eng"},
            ("HEAD", "/docs"): {"alice", "eng"},
            ("read", "/"): {"root"},
        }

    def test_host_file(self):
        hosts = parse_host_file(
            "build01: trusted\n"
            "10.0.0.5: yes\n"
            "fe80::1: true\n"
            "laptop: untrusted\n"
            "weird: maybe\n"
        )

        assert hosts == {"build01": True, "10.0.0.5": True, "fe80::1": True, "laptop": False}


class TestFlatFile:
    """Test change detection"""

    @pytest.mark.asyncio
    async def test_unchanged_file_reads_none(self, tmp_path):
        path = tmp_path / "data.txt"
        path.write_text("one\n")
        watched = FlatFile(str(path), "test")

        assert await watched.read() == "one\n"
        watched.commit()
        assert await watched.read() is None
        assert await watched.read(force=True) == "one\n"

        rewrite(path, "two\n")
        assert await watched.read() == "two\n"

    @pytest.mark.asyncio
    async def test_uncommitted_read_is_seen_again(self, tmp_path):
        path = tmp_path / "data.txt"
        path.write_text("one\n")
        watched = FlatFile(str(path), "test")

        assert await watched.read() == "one\n"
        assert await watched.read() == "one\n"
        watched.commit()
        assert await watched.read() is None

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        watched = FlatFile(str(tmp_path / "missing.txt"), "test")

        with pytest.raises(BackendUnavailableError) as exc_info:
            await watched.read()

        assert exc_info.value.provider == "test"

    @pytest.mark.asyncio
    async def test_optional_file(self):
        watched = FlatFile(None, "test")

        assert await watched.read() == ""
        watched.commit()
        assert await watched.read() is None


class TestFlatAuthProvider:
    """Test file-backed authentication"""

    @pytest.mark.asyncio
    async def test_verify(self, flat_files):
        provider = FlatAuthProvider(flat_files["user_file"])

        assert await provider.verify("alice", "wonderland")
        assert not await provider.verify("alice", "wrong")
        assert not await provider.verify("nobody", "wonderland")

    @pytest.mark.asyncio
    async def test_refresh_picks_up_changes(self, flat_files):
        provider = FlatAuthProvider(flat_files["user_file"])
        assert await provider.verify("alice", "wonderland")

        rewrite(flat_files["user_file"], f"alice:{hash_password('through-the-looking-glass')}\n")
        assert await provider.verify("alice", "wonderland")

        await provider.refresh()
        assert not await provider.verify("alice", "wonderland")
        assert await provider.verify("alice", "through-the-looking-glass")

    def test_built_outside_event_loop(self, flat_files):
        provider = FlatAuthProvider(flat_files["user_file"])

        assert asyncio.run(provider.verify("alice", "wonderland"))
        assert isinstance(provider._load_lock, asyncio.Lock)

    @pytest.mark.asyncio
    async def test_missing_file(self, tmp_path):
        provider = FlatAuthProvider(str(tmp_path / "missing.txt"), name="users")

        with pytest.raises(BackendUnavailableError) as exc_info:
            await provider.verify("alice", "pw")

        assert exc_info.value.provider == "users"


class TestFlatAuthzStore:
    """Test file-backed authorization data"""

    @pytest.fixture
    def store(self, flat_files, event_bus):
        return FlatAuthzStore(event_bus=event_bus, **flat_files)

    @pytest.mark.asyncio
    async def test_authorization_from_files(self, store):
        resolver = AuthorizationResolver(store.directory, store.grants)

        assert await resolver.is_authorized("alice", "read", "/docs/readme")
        assert await resolver.is_authorized("carol", "POST", "/build/linux")
        assert await resolver.is_authorized("alice", "GET", "/build/secret/key")
        assert not await resolver.is_authorized("alice", "GET", "/build/linux")
        assert not await resolver.is_authorized("bob", "read", "/docs")

    @pytest.mark.asyncio
    async def test_enumeration_from_files(self, store):
        resolver = AuthorizationResolver(store.directory, store.grants)

        matches = await resolver.matching_resources("bob", "GET", ".*").to_list()

        assert matches == ["/build", "/build/secret"]

    @pytest.mark.asyncio
    async def test_hosts_from_files(self, store):
        resolver = HostTrustResolver(store.hosts)

        assert await resolver.is_trusted_host("build01.example.com")
        assert not await resolver.is_trusted_host("laptop.example.com")
        assert not await resolver.is_trusted_host("unknown.example.com")

    @pytest.mark.asyncio
    async def test_optional_files_may_be_absent(self, flat_files):
        store = FlatAuthzStore(flat_files["user_file"], flat_files["resource_file"])

        assert await store.directory.groups_for("carol") == frozenset()
        assert await store.hosts.lookup("build01.example.com") is None

    @pytest.mark.asyncio
    async def test_first_load_is_silent(self, store, principal_events):
        assert await store.directory.list_users() == {"alice", "bob", "carol"}

        assert principal_events == []

    @pytest.mark.asyncio
    async def test_refresh_publishes_user_changes(self, store, flat_files, principal_events):
        await store.refresh()
        rewrite(flat_files["user_file"], f"alice:{hash_password('wonderland')}\ndave:abc\n")

        await store.refresh()

        assert await store.directory.list_users() == {"alice", "dave"}
        assert len(principal_events) == 1
        assert principal_events[0].action == EventAction.RELOAD
        assert principal_events[0].metadata["added"] == ["dave"]
        assert principal_events[0].metadata["removed"] == ["bob", "carol"]

    @pytest.mark.asyncio
    async def test_refresh_without_changes_is_quiet(self, store, principal_events):
        await store.refresh()
        await store.refresh()

        assert principal_events == []

    @pytest.mark.asyncio
    async def test_refresh_reloads_grants(self, store, flat_files):
        resolver = AuthorizationResolver(store.directory, store.grants)
        assert not await resolver.is_authorized("bob", "read", "/docs")

        rewrite(flat_files["resource_file"], "/docs (read): bob\n")
        await store.refresh()

        assert await resolver.is_authorized("bob", "read", "/docs")
        assert not await resolver.is_authorized("alice", "read", "/docs")

    @pytest.mark.asyncio
    async def test_refresh_failure_keeps_last_snapshot(self, store, flat_files):
        resolver = AuthorizationResolver(store.directory, store.grants)
        await store.refresh()

        os.remove(flat_files["resource_file"])
        with pytest.raises(BackendUnavailableError):
            await store.refresh()

        assert await resolver.is_authorized("alice", "read", "/docs")

    @pytest.mark.asyncio
    async def test_user_change_survives_failed_group_read(self, store, flat_files, principal_events):
        assert await store.directory.list_users() == {"alice", "bob", "carol"}
        with open(flat_files["group_file"], encoding="utf-8") as f:
            group_text = f.read()

        rewrite(flat_files["user_file"], f"alice:{hash_password('wonderland')}\ndave:abc\n")
        os.remove(flat_files["group_file"])
        with pytest.raises(BackendUnavailableError):
            await store.directory.refresh()

        assert await store.directory.list_users() == {"alice", "bob", "carol"}
        assert principal_events == []

        rewrite(flat_files["group_file"], group_text)
        await store.directory.refresh()

        assert await store.directory.list_users() == {"alice", "dave"}
        assert len(principal_events) == 1
        assert principal_events[0].metadata["added"] == ["dave"]


class TestConcurrentAccess:
    """Test readers running alongside loads and refreshes"""

    @pytest.mark.asyncio
    async def test_concurrent_first_use_loads_once(self, flat_files, monkeypatch):
        parsed = []
        original = flat_module.parse_resource_file

        def counting_parse(text, source="<resources>"):
            parsed.append(source)
            return original(text, source)

        monkeypatch.setattr(flat_module, "parse_resource_file", counting_parse)
        store = FlatAuthzStore(flat_files["user_file"], flat_files["resource_file"])
        resolver = AuthorizationResolver(store.directory, store.grants)

        results = await asyncio.gather(
            *(resolver.is_authorized("alice", "read", "/docs/readme") for _ in range(10))
        )

        assert results == [True] * 10
        assert parsed == [flat_files["resource_file"]]

    @pytest.mark.asyncio
    async def test_readers_see_whole_snapshots_during_refresh(self, flat_files):
        rewrite(flat_files["resource_file"], "/docs (read): alice\n/docs/a (read): alice\n")
        store = FlatAuthzStore(flat_files["user_file"], flat_files["resource_file"])
        resolver = AuthorizationResolver(store.directory, store.grants)
        await store.refresh()

        old = {
            "point": (True, False),
            "alice": ["/docs", "/docs/a"],
            "bob": [],
        }
        new = {
            "point": (False, True),
            "alice": [],
            "bob": ["/docs", "/docs/b"],
        }

        async def read():
            return {
                "point": (
                    await resolver.is_authorized("alice", "read", "/docs/readme"),
                    await resolver.is_authorized("bob", "read", "/docs/readme"),
                ),
                "alice": await resolver.matching_resources("alice", "read", ".*").to_list(),
                "bob": await resolver.matching_resources("bob", "read", ".*").to_list(),
            }

        rewrite(flat_files["resource_file"], "/docs (read): bob\n/docs/b (read): bob\n")
        results = await asyncio.gather(
            *(read() for _ in range(10)),
            store.refresh(force=True),
            *(read() for _ in range(10)),
        )

        for result in results[:10] + results[11:]:
            assert result in (old, new)
        assert await read() == new
