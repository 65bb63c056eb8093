# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Package auth provides credential verification for authgate.

This package implements:
- The ordered authentication fallback chain
- Password authentication against an in-memory hash table
- Authentication delegated to a remote decision server

File-backed authentication lives with the other flat-file providers in
``authgate.store.flat``.
"""

from .basic import (
    # Password authentication
    BasicAuthConfig,
    MemoryAuthProvider,
    hash_password,
    verify_password,
)

from .chain import (
    # Fallback chain
    AuthenticationChain,
)

from .remote import (
    # Remote delegate
    RemoteAuthConfig,
    RemoteAuthProvider,
)

__all__ = [
    # Password authentication
    'BasicAuthConfig',
    'MemoryAuthProvider',
    'hash_password',
    'verify_password',

    # Fallback chain
    'AuthenticationChain',

    # Remote delegate
    'RemoteAuthConfig',
    'RemoteAuthProvider',
]
