"""Download the credential provider bundle and unpack the files it needs."""

from .pipeline import execute
from .utils.cancellation import CancellationToken

__all__ = ["execute", "CancellationToken"]
