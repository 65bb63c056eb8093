# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package store provides reference storage providers for authgate.

- In-memory users, groups, grants and host flags
- Flat-file providers reading the same data from text files
"""

from .memory import (
    # Memory storage implementation
    MemoryPrincipalDirectory,
    MemoryGrantTable,
    MemoryHostTrustTable,
    MemoryAuthzStore,
)

from .flat import (
    # Flat-file storage implementation
    FlatFile,
    FlatAuthProvider,
    FlatPrincipalDirectory,
    FlatGrantTable,
    FlatHostTrustTable,
    FlatAuthzStore,

    # File parsers
    parse_user_file,
    parse_group_file,
    parse_resource_file,
    parse_host_file,
)

__all__ = [
    # Memory
    'MemoryPrincipalDirectory',
    'MemoryGrantTable',
    'MemoryHostTrustTable',
    'MemoryAuthzStore',

    # Flat file
    'FlatFile',
    'FlatAuthProvider',
    'FlatPrincipalDirectory',
    'FlatGrantTable',
    'FlatHostTrustTable',
    'FlatAuthzStore',

    # Parsers
    'parse_user_file',
    'parse_group_file',
    'parse_resource_file',
    'parse_host_file',
]
