"""
Common types shared across authgate packages.
Provides the resource path type and its arithmetic.
"""

from typing import List, NewType


ResourcePath = NewType('ResourcePath', str)


ROOT = ResourcePath("/")


def split_resource(resource: str) -> List[str]:
    """Split a resource path into its non-empty segments."""
    return [segment for segment in resource.split("/") if segment]


def normalize_resource(resource: str) -> ResourcePath:
    """
    Canonical form of a resource path.

    Empty segments are dropped, so ``/a//b/`` becomes ``/a/b``. The root
    is always ``/``.
    """
    return ResourcePath("/" + "/".join(split_resource(resource)))


def parent_resource(resource: str) -> ResourcePath:
    """Parent of a resource path; the parent of ``/`` is ``/``."""
    segments = split_resource(resource)
    return ResourcePath("/" + "/".join(segments[:-1]))


def resource_prefixes(resource: str) -> List[ResourcePath]:
    """
    All prefixes of a resource path, longest first, ending with ``/``.

    ``/foo/bar`` gives ``['/foo/bar', '/foo', '/']``. The list always has
    one entry per segment plus one for the root.
    """
    segments = split_resource(resource)
    return [
        ResourcePath("/" + "/".join(segments[:depth]))
        for depth in range(len(segments), -1, -1)
    ]
