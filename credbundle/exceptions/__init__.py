"""Exception hierarchy for credential bundle operations.

Every failure raised by this package derives from :class:`BundleError` and
carries an :class:`ErrorContext` suitable for structured logging.
"""
from __future__ import annotations

from .core import (
    BundleError,
    ConfigurationError,
    ErrorCategory,
    ErrorContext,
    ErrorSeverity,
    ExtractionError,
    InputValidationError,
    NetworkError,
    OperationCancelled,
    RetryExhaustedError,
    classify_exception,
    format_error_for_logging,
    innermost_exception,
    innermost_message,
)

__all__ = [
    "BundleError",
    "ConfigurationError",
    "ErrorCategory",
    "ErrorContext",
    "ErrorSeverity",
    "ExtractionError",
    "InputValidationError",
    "NetworkError",
    "OperationCancelled",
    "RetryExhaustedError",
    "classify_exception",
    "format_error_for_logging",
    "innermost_exception",
    "innermost_message",
]
