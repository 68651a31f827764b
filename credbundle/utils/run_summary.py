# credbundle/utils/run_summary.py
from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import List

from .io import format_bytes

MAX_ERRORS = 10


@dataclass(slots=True)
class Summary:
    """Outcome counters for one run, written to the ``summary`` logger at the end.

    Download statuses: ``done``, ``cached``, ``cancelled``, ``error``.
    Extraction statuses: ``written``, ``skip``, ``error``.
    """

    downloads: Counter = field(default_factory=Counter)
    extractions: Counter = field(default_factory=Counter)
    errors: List[str] = field(default_factory=list)
    bytes_downloaded: int = 0
    started: float = field(default_factory=time.monotonic)

    def log_download(self, status: str, nbytes: int = 0) -> None:
        self.downloads[status] += 1
        self.bytes_downloaded += nbytes

    def log_extraction(self, status: str, count: int = 1) -> None:
        self.extractions[status] += count

    def log_error(self, stage: str, msg: str) -> None:
        if len(self.errors) < MAX_ERRORS:
            self.errors.append(f"{stage}: {msg}")

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    @property
    def failed(self) -> bool:
        return bool(self.errors) or self.extractions["error"] > 0

    def dump(self) -> None:
        lg = logging.getLogger("summary")
        lg.info("📥 Download ▸ done=%d cached=%d cancelled=%d error=%d (%s)",
                self.downloads["done"], self.downloads["cached"],
                self.downloads["cancelled"], self.downloads["error"],
                format_bytes(self.bytes_downloaded))
        lg.info("📦 Extraction ▸ written=%d up-to-date=%d error=%d",
                self.extractions["written"], self.extractions["skip"],
                self.extractions["error"])

        if self.errors:
            lg.info("🚨 First errors:")
            for line in self.errors:
                lg.info("    • %s", line)

        lg.info("%s Finished in %.1fs", "❌" if self.failed else "🏁", self.elapsed)
