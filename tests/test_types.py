"""
Tests for resource path arithmetic and data snapshots.
"""

import pytest

from authgate.types import (
    DirectorySnapshot,
    GrantSnapshot,
    HostSnapshot,
    normalize_resource,
    parent_resource,
    resource_prefixes,
    split_resource,
)


class TestResourcePaths:
    """Test resource prefix computation"""

    @pytest.mark.parametrize("resource, expected", [
        ("/", ["/"]),
        ("/foo", ["/foo", "/"]),
        ("/foo/bar", ["/foo/bar", "/foo", "/"]),
        ("/foo/bar/baz", ["/foo/bar/baz", "/foo/bar", "/foo", "/"]),
    ])
    def test_prefixes_longest_first(self, resource, expected):
        assert resource_prefixes(resource) == expected

    @pytest.mark.parametrize("resource", ["/", "/a", "/a/b/c/d/e", "/x/y/"])
    def test_prefix_set_contains_self_and_root(self, resource):
        prefixes = resource_prefixes(resource)
        assert prefixes[0] == normalize_resource(resource)
        assert prefixes[-1] == "/"
        assert len(prefixes) == len(split_resource(resource)) + 1

    def test_empty_segments_are_dropped(self):
        assert normalize_resource("/a//b/") == "/a/b"
        assert resource_prefixes("//a//b") == ["/a/b", "/a", "/"]

    def test_parent_of_root_is_root(self):
        assert parent_resource("/") == "/"
        assert parent_resource("/a") == "/"
        assert parent_resource("/a/b") == "/a"


class TestSnapshots:
    """Test immutable snapshots"""

    def test_directory_memberships(self):
        snapshot = DirectorySnapshot.build(
            ["alice", "bob"], {"eng": ["alice"], "ops": ["alice", "bob"]}
        )

        assert snapshot.groups_of("alice") == {"eng", "ops"}
        assert snapshot.groups_of("bob") == {"ops"}
        assert snapshot.groups_of("nobody") == frozenset()

    def test_directory_is_read_only(self):
        snapshot = DirectorySnapshot.build(["alice"], {"eng": ["alice"]})

        with pytest.raises(TypeError):
            snapshot.groups["ops"] = frozenset()
        with pytest.raises(AttributeError):
            snapshot.users = frozenset()

    def test_grant_resources_include_ancestors(self):
        snapshot = GrantSnapshot.build({("read", "/a/b"): ["alice"], ("GET", "/c"): ["bob"]})

        assert snapshot.resources == {"/", "/a", "/a/b", "/c"}

    def test_grant_prefixes_are_normalized(self):
        snapshot = GrantSnapshot.build({
            ("read", "/docs/"): ["alice"],
            ("read", "/docs"): ["bob"],
        })

        assert snapshot.principals_for("read", "/docs") == {"alice", "bob"}
        assert snapshot.principals_for("write", "/docs") == frozenset()

    def test_host_flags_are_booleans(self):
        snapshot = HostSnapshot.build({"a": 1, "b": 0})

        assert snapshot.hosts["a"] is True
        assert snapshot.hosts["b"] is False
