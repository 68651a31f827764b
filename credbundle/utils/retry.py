"""Fixed-interval retry with failure aggregation.

The first attempt runs immediately; every further attempt is preceded by the
same sleep. Each failure is kept so the caller can inspect the full attempt
history once every attempt is used up.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Generic, List, Optional, TypeVar

from ..exceptions import RetryExhaustedError

log = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


@dataclass
class RetryOutcome(Generic[T]):
    """Result of running an operation under the retry policy."""

    value: Optional[T] = None
    errors: List[BaseException] = field(default_factory=list)
    succeeded: bool = False

    @property
    def attempts(self) -> int:
        return len(self.errors) + (1 if self.succeeded else 0)

    def unwrap(self, operation_name: str = "operation") -> T:
        """Return the value or raise the aggregate of every failure."""
        if self.succeeded:
            return self.value  # type: ignore[return-value]
        raise RetryExhaustedError(
            f"{operation_name} failed after {len(self.errors)} attempt(s): {self.errors[-1]}",
            self.errors,
        )


def attempt_all(
    operation: Callable[[], T],
    interval: float,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    operation_name: Optional[str] = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> RetryOutcome[T]:
    """Run *operation* until it succeeds or *max_attempts* is used up."""
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    name = operation_name or getattr(operation, "__name__", "operation")
    outcome: RetryOutcome[T] = RetryOutcome()

    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            sleep(interval)
        try:
            log.debug("🔄 %s attempt %d/%d", name, attempt, max_attempts)
            outcome.value = operation()
            outcome.succeeded = True
            if attempt > 1:
                log.info("✅ %s succeeded on attempt %d", name, attempt)
            return outcome
        except Exception as e:
            outcome.errors.append(e)
            if attempt < max_attempts:
                log.warning(
                    "⚠️  %s failed (attempt %d/%d): %s. Retrying in %.1fs",
                    name,
                    attempt,
                    max_attempts,
                    e,
                    interval,
                )
            else:
                log.debug("❌ %s failed after %d attempts: %s", name, attempt, e)

    return outcome


def retry(
    operation: Callable[[], T],
    interval: float,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    *,
    operation_name: Optional[str] = None,
    sleep: Callable[[float], Any] = time.sleep,
) -> T:
    """Run *operation* under the retry policy.

    Raises:
        RetryExhaustedError: every attempt failed; ``errors`` lists them all.
    """
    name = operation_name or getattr(operation, "__name__", "operation")
    outcome = attempt_all(operation, interval, max_attempts, operation_name=name, sleep=sleep)
    return outcome.unwrap(name)


def delete_with_retry(path: Path, interval: float, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> bool:
    """Best-effort removal of *path*; never raises.

    Returns True when the file is gone afterwards.
    """
    outcome = attempt_all(
        lambda: path.unlink(missing_ok=True),
        interval,
        max_attempts,
        operation_name=f"delete {path.name}",
    )
    if not outcome.succeeded:
        log.debug("🗑️ Could not remove %s: %s", path, outcome.errors[-1])
    return outcome.succeeded
