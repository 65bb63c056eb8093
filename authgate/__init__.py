# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
authgate: access-control decision service

Authenticates users against an ordered chain of providers, authorizes
actions on hierarchical resources through a principal directory and a
grant table, enumerates authorized resources and answers host trust
queries.
"""

__version__ = "0.1.0"

from .core import Config, DecisionService, ProviderDescriptor, RefreshResult
from .errors import (
    AuthGateError,
    BackendUnavailableError,
    ConfigurationError,
    InvalidArgumentError,
    RefreshPartialFailure,
)
from .events import EventBus, EventType

__all__ = [
    "Config",
    "DecisionService",
    "ProviderDescriptor",
    "RefreshResult",
    "AuthGateError",
    "BackendUnavailableError",
    "ConfigurationError",
    "InvalidArgumentError",
    "RefreshPartialFailure",
    "EventBus",
    "EventType",
]
