"""Core exception hierarchy for the credential bundle downloader."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

import requests


class ErrorSeverity(Enum):
    """Error severity levels for proper handling."""
    LOW = "low"           # Warnings, can continue
    MEDIUM = "medium"     # Errors, but recoverable
    HIGH = "high"         # Stop the current operation
    CRITICAL = "critical" # Nothing sensible can be done


class ErrorCategory(Enum):
    """Error categories for proper classification."""
    INPUT = "input"
    NETWORK = "network"
    EXTRACTION = "extraction"
    CONFIGURATION = "configuration"
    CANCELLATION = "cancellation"


@dataclass
class ErrorContext:
    """Structured information attached to every bundle error."""
    operation: Optional[str] = None
    file_path: Optional[str] = None
    url: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
    retry_count: int = 0
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "operation": self.operation,
            "file_path": self.file_path,
            "url": self.url,
            "timestamp": self.timestamp,
            "retry_count": self.retry_count,
            "metadata": self.metadata,
        }


class BundleError(Exception):
    """Base exception for all credential bundle errors."""

    def __init__(
        self,
        message: str,
        *,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        category: ErrorCategory = ErrorCategory.NETWORK,
        context: Optional[ErrorContext] = None,
        recoverable: bool = True,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.category = category
        self.context = context or ErrorContext()
        self.recoverable = recoverable
        self.cause = cause

        if cause:
            self.__cause__ = cause

    def __str__(self) -> str:
        parts = [self.message]

        if self.context.operation:
            parts.append(f"[operation: {self.context.operation}]")

        if self.context.retry_count > 0:
            parts.append(f"[retry: {self.context.retry_count}]")

        return " ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "severity": self.severity.value,
            "category": self.category.value,
            "recoverable": self.recoverable,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }


class InputValidationError(BundleError, ValueError):
    """The caller supplied a malformed source location."""

    def __init__(self, message: str, *, value: Optional[str] = None, **kwargs):
        context = kwargs.pop("context", None) or ErrorContext(operation="validate_source")
        if value is not None:
            context.metadata["value"] = value

        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.INPUT,
            context=context,
            recoverable=False,
            **kwargs,
        )
        self.value = value


class ConfigurationError(BundleError):
    """Configuration-related errors."""

    def __init__(
        self,
        message: str,
        *,
        config_file: Optional[str] = None,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", None) or ErrorContext(operation="load_config")
        context.file_path = config_file
        if config_key:
            context.metadata["config_key"] = config_key

        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            category=ErrorCategory.CONFIGURATION,
            context=context,
            recoverable=False,
            **kwargs,
        )
        self.config_file = config_file
        self.config_key = config_key


class NetworkError(BundleError):
    """HTTP, connection and timeout failures while probing or downloading."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        url: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", None) or ErrorContext(operation="download")
        context.url = url
        if status_code:
            context.metadata["status_code"] = status_code

        # Client errors other than throttling will not fix themselves.
        recoverable = not (status_code and 400 <= status_code < 500 and status_code != 429)

        super().__init__(
            message,
            severity=ErrorSeverity.MEDIUM if recoverable else ErrorSeverity.HIGH,
            category=ErrorCategory.NETWORK,
            context=context,
            recoverable=recoverable,
            **kwargs,
        )
        self.status_code = status_code
        self.url = url


class ExtractionError(BundleError):
    """Reading the archive or writing a destination file failed."""

    def __init__(
        self,
        message: str,
        *,
        entry_name: Optional[str] = None,
        file_path: Optional[str] = None,
        **kwargs,
    ):
        context = kwargs.pop("context", None) or ErrorContext(operation="extract")
        context.file_path = file_path
        if entry_name:
            context.metadata["entry_name"] = entry_name

        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=ErrorCategory.EXTRACTION,
            context=context,
            recoverable=False,
            **kwargs,
        )
        self.entry_name = entry_name
        self.file_path = file_path


class RetryExhaustedError(BundleError):
    """Every attempt of a retried operation failed.

    ``errors`` holds one exception per attempt, in attempt order.
    """

    def __init__(self, message: str, errors: Sequence[BaseException], **kwargs):
        context = kwargs.pop("context", None) or ErrorContext(operation="retry")
        context.retry_count = len(errors)

        super().__init__(
            message,
            severity=ErrorSeverity.HIGH,
            category=kwargs.pop("category", ErrorCategory.NETWORK),
            context=context,
            recoverable=False,
            cause=errors[-1] if errors else None,
            **kwargs,
        )
        self.errors: List[BaseException] = list(errors)

    @property
    def attempts(self) -> int:
        return len(self.errors)


class OperationCancelled(BundleError):
    """A cancellation token was triggered while work was in flight."""

    def __init__(self, message: str = "The operation was cancelled", **kwargs):
        super().__init__(
            message,
            severity=ErrorSeverity.LOW,
            category=ErrorCategory.CANCELLATION,
            recoverable=False,
            **kwargs,
        )


def classify_exception(exc: BaseException, url: Optional[str] = None) -> BaseException:
    """Map third-party transfer failures onto the bundle error hierarchy."""
    if isinstance(exc, BundleError):
        return exc

    if isinstance(exc, requests.HTTPError):
        status = exc.response.status_code if exc.response is not None else None
        return NetworkError(f"HTTP error {status}: {exc}", status_code=status, url=url, cause=exc)

    if isinstance(exc, requests.Timeout):
        return NetworkError(f"Request timed out: {exc}", url=url, cause=exc)

    if isinstance(exc, (requests.ConnectionError, ConnectionError)):
        return NetworkError(f"Connection failed: {exc}", url=url, cause=exc)

    if isinstance(exc, requests.RequestException):
        return NetworkError(f"Request failed: {exc}", url=url, cause=exc)

    return exc


def innermost_exception(error: BaseException) -> BaseException:
    """Follow aggregates and exception chains down to the root failure."""
    seen = set()
    current = error
    while id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, RetryExhaustedError) and current.errors:
            current = current.errors[-1]
        elif current.__cause__ is not None:
            current = current.__cause__
        elif current.__context__ is not None and not current.__suppress_context__:
            current = current.__context__
        else:
            break
    return current


def innermost_message(error: BaseException) -> str:
    """Message text of the innermost failure, as handed to error sinks."""
    inner = innermost_exception(error)
    if isinstance(inner, BundleError):
        return inner.message
    return str(inner) or inner.__class__.__name__


def format_error_for_logging(error: BaseException) -> Dict[str, Any]:
    """Format error for structured logging."""
    if isinstance(error, BundleError):
        return error.to_dict()

    return {
        "error_type": error.__class__.__name__,
        "message": str(error),
        "severity": ErrorSeverity.MEDIUM.value,
        "recoverable": False,
        "context": {"operation": "unknown"},
    }
