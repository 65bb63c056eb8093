"""
Validation utilities for authgate.
Provides argument checks shared by the decision operations.
"""

import re
from typing import Any, Pattern

from ..errors import InvalidArgumentError


def require_non_empty(value: Any, field: str) -> str:
    """
    Return ``value`` unchanged if it is a non-empty string.

    Raises InvalidArgumentError otherwise.
    """
    if not isinstance(value, str) or not value:
        raise InvalidArgumentError(f"{field} must be a non-empty string", field=field)
    return value


def require_resource_path(resource: Any, field: str = "resource") -> str:
    """Check that a resource path is a string rooted at ``/``."""
    if not isinstance(resource, str) or not resource.startswith("/"):
        raise InvalidArgumentError(
            f"{field} must be a path starting with '/', got {resource!r}",
            field=field
        )
    return resource


def compile_pattern(pattern: Any, field: str = "pattern") -> Pattern[str]:
    """Compile a regular expression over resource paths."""
    if not isinstance(pattern, str):
        raise InvalidArgumentError(f"{field} must be a string", field=field)

    try:
        return re.compile(pattern)
    except re.error as e:
        raise InvalidArgumentError(
            f"Invalid regular expression {pattern!r}: {e}",
            field=field,
            cause=e
        ) from e


def is_valid_identifier(identifier: str) -> bool:
    """
    Check that a user, group or action name can be stored in a flat file.

    Names may not be empty, contain whitespace, or contain the ``:``
    ``,`` ``(`` ``)`` and ``#`` characters the file formats use as
    delimiters.
    """
    if not identifier or not isinstance(identifier, str):
        return False

    return re.search(r'[\s:,()#]', identifier) is None
