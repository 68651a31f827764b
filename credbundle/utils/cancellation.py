"""Cooperative cancellation shared between the fetcher and the extractor."""
from __future__ import annotations

import threading
from typing import Optional

from ..exceptions import OperationCancelled


class CancellationToken:
    """A thread-safe flag that long-running steps poll between units of work.

    ``cancel()`` may be called from any thread, such as a signal handler;
    the worker notices at its next check point.
    """

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        self.reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled(self.reason or "The operation was cancelled")

    def wait(self, timeout: float) -> bool:
        """Sleep for *timeout* seconds unless cancelled first; True if cancelled."""
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"

