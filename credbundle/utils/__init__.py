"""Public re‑exports so callers can simply ``from credbundle.utils import retry``."""

from .cancellation import CancellationToken  # noqa: F401
from .io import CHUNK, download, format_bytes, probe_content_length  # noqa: F401
from .retry import RetryOutcome, attempt_all, delete_with_retry, retry  # noqa: F401
from .rollback import FileRollback  # noqa: F401

__all__ = [
    "CancellationToken",
    "CHUNK",
    "download",
    "format_bytes",
    "probe_content_length",
    "RetryOutcome",
    "attempt_all",
    "delete_with_retry",
    "retry",
    "FileRollback",
]
