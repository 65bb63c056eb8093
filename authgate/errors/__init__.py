"""
Structured error handling for authgate.

Every failure surfaced by the decision service is an ``AuthGateError``
carrying an error code, the component it originated from and a context
with free-form metadata. Denials are never errors: an unauthorized request
is an ordinary ``False`` result.
"""

from enum import Enum
from datetime import datetime
from typing import Dict, Any, Optional, List, Tuple
from dataclasses import dataclass


class ErrorCode(Enum):
    """Structured error codes for authgate."""

    # Input errors
    INVALID_ARGUMENT = "invalid_argument"
    INVALID_CONFIGURATION = "invalid_configuration"

    # Backend errors
    BACKEND_UNAVAILABLE = "backend_unavailable"
    REFRESH_PARTIAL_FAILURE = "refresh_partial_failure"


class ErrorSource(Enum):
    """Sources where errors can originate."""

    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    STORAGE = "storage"
    AUTHENTICATION = "authentication"
    REFRESH = "refresh"
    SERVER = "server"


@dataclass
class ErrorContext:
    """Additional context for errors."""

    provider: Optional[str] = None
    timestamp: datetime = None
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()
        if self.metadata is None:
            self.metadata = {}


class AuthGateError(Exception):
    """
    Base exception class for all authgate errors.

    Provides structured error information with an error code, the
    originating source and additional context.
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        source: ErrorSource = ErrorSource.SERVER,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None
    ):
        self.code = code
        self.message = message
        self.source = source
        self.context = context or ErrorContext()
        self.cause = cause

        super().__init__(self.message)

    @property
    def provider(self) -> Optional[str]:
        """Name of the provider the error is attributed to, if any."""
        return self.context.provider

    def with_provider(self, provider: str) -> "AuthGateError":
        """Attribute the error to a provider unless it already names one."""
        if not self.context.provider:
            self.context.provider = provider
        return self

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "error": self.code.value,
            "error_description": self.message,
            "error_source": self.source.value,
            "timestamp": self.context.timestamp.isoformat(),
        }

        if self.context.provider:
            result["provider"] = self.context.provider

        if self.context.metadata:
            result["metadata"] = self.context.metadata

        if self.cause:
            result["caused_by"] = str(self.cause)

        return result

    def is_retryable(self) -> bool:
        """Check if this error might be resolved by retrying."""
        return self.code == ErrorCode.BACKEND_UNAVAILABLE


class InvalidArgumentError(AuthGateError):
    """Malformed input: empty names, unrooted resources, bad patterns."""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", ErrorContext())
        if field:
            context.metadata["field"] = field

        super().__init__(
            code=ErrorCode.INVALID_ARGUMENT,
            message=message,
            source=ErrorSource.VALIDATION,
            context=context,
            **kwargs
        )

    @property
    def field(self) -> Optional[str]:
        return self.context.metadata.get("field")


class BackendUnavailableError(AuthGateError):
    """A storage collaborator could not be reached or read."""

    def __init__(self, message: str, provider: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", ErrorContext())
        if provider:
            context.provider = provider

        super().__init__(
            code=ErrorCode.BACKEND_UNAVAILABLE,
            message=message,
            source=kwargs.pop("source", ErrorSource.STORAGE),
            context=context,
            **kwargs
        )


class ConfigurationError(AuthGateError):
    """Invalid configuration or unknown provider type."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            code=ErrorCode.INVALID_CONFIGURATION,
            message=message,
            source=ErrorSource.CONFIGURATION,
            **kwargs
        )


class RefreshPartialFailure(AuthGateError):
    """
    One or more refreshable providers failed to refresh.

    Collected and reported by the refresh registry; it is never raised out
    of a refresh-all call.
    """

    def __init__(self, failures: List[Tuple[str, Exception]]):
        self.failures = list(failures)
        names = ", ".join(name for name, _ in self.failures)
        super().__init__(
            code=ErrorCode.REFRESH_PARTIAL_FAILURE,
            message=f"{len(self.failures)} provider(s) failed to refresh: {names}",
            source=ErrorSource.REFRESH,
        )
        self.context.metadata["providers"] = [name for name, _ in self.failures]

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["failures"] = [
            {"provider": name, "error": str(error)} for name, error in self.failures
        ]
        return result


def wrap_backend_error(exc: Exception, provider: str) -> AuthGateError:
    """Wrap an arbitrary provider exception so it names its provider."""
    if isinstance(exc, AuthGateError):
        return exc.with_provider(provider)
    return BackendUnavailableError(
        f"Provider {provider} failed: {exc}",
        provider=provider,
        cause=exc,
    )


class ErrorCollection:
    """Collection of multiple errors."""

    def __init__(self):
        self.errors: List[AuthGateError] = []

    def add(self, error: AuthGateError):
        """Add an error to the collection."""
        self.errors.append(error)

    def has_errors(self) -> bool:
        """Check if collection has any errors."""
        return len(self.errors) > 0

    def raise_if_errors(self):
        """Raise the first error if any exist."""
        if self.has_errors():
            raise self.errors[0]


__all__ = [
    "ErrorCode",
    "ErrorSource",
    "ErrorContext",
    "AuthGateError",
    "InvalidArgumentError",
    "BackendUnavailableError",
    "ConfigurationError",
    "RefreshPartialFailure",
    "ErrorCollection",
    "wrap_backend_error",
]
