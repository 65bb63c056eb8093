# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Utility package providing common helper functions for authgate.

This package includes:
- Validation utilities for names, resource paths and patterns
- Configuration utilities for loading and expanding settings
- Logging setup for the command line
"""

from .validation import (
    require_non_empty, require_resource_path, compile_pattern,
    is_valid_identifier
)
from .config import (
    get_config_value, merge_configs, normalize_config_key,
    expand_config_variables, load_config_file, get_bool_config
)
from .logging import configure_logging

__all__ = [
    # Validation utilities
    'require_non_empty', 'require_resource_path', 'compile_pattern',
    'is_valid_identifier',

    # Configuration utilities
    'get_config_value', 'merge_configs', 'normalize_config_key',
    'expand_config_variables', 'load_config_file', 'get_bool_config',

    # Logging
    'configure_logging',
]
