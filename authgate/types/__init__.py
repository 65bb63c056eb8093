# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package types provides shared type definitions for authgate.

This package contains types used across the auth, authz and store packages:
- Resource paths and their arithmetic
- Immutable data snapshots held by caching providers
- Provider capability interfaces
"""

from .common import (
    # Resource paths
    ResourcePath,
    ROOT,
    split_resource,
    normalize_resource,
    parent_resource,
    resource_prefixes,
)

from .snapshots import (
    DirectorySnapshot,
    GrantSnapshot,
    HostSnapshot,
)

from .providers import (
    Provider,
    AuthenticationProvider,
    RefreshableProvider,
    PrincipalDirectory,
    GrantTable,
    HostTrustTable,
    ResourceCatalog,
    AuthorizationStore,
)

__all__ = [
    # Resource paths
    'ResourcePath',
    'ROOT',
    'split_resource',
    'normalize_resource',
    'parent_resource',
    'resource_prefixes',

    # Snapshots
    'DirectorySnapshot',
    'GrantSnapshot',
    'HostSnapshot',

    # Capabilities
    'Provider',
    'AuthenticationProvider',
    'RefreshableProvider',
    'PrincipalDirectory',
    'GrantTable',
    'HostTrustTable',
    'ResourceCatalog',
    'AuthorizationStore',
]
