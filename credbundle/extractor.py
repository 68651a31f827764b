# credbundle/extractor.py
from __future__ import annotations

import logging
import os
import shutil
import time
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional, Sequence

from .config import DownloaderConfig
from .exceptions import ExtractionError
from .reporting import Reporter
from .utils.cancellation import CancellationToken
from .utils.io import CHUNK
from .utils.rollback import FileRollback
from .utils.run_summary import Summary

log = logging.getLogger(__name__)

WILDCARD = "*"


@dataclass(frozen=True)
class ExtractionItem:
    """One archive entry and the file it will be written to."""

    source: zipfile.ZipInfo
    destination: Path

    @property
    def is_current(self) -> bool:
        """True when the destination exists with the entry's size."""
        try:
            return self.destination.stat().st_size == self.source.file_size
        except FileNotFoundError:
            return False

    @property
    def timestamp(self) -> float:
        return time.mktime(self.source.date_time + (0, 0, -1))


@dataclass
class ExtractionResult:
    extracted: List[Path] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)
    cancelled: bool = False


def matches_filters(entry_name: str, filters: Sequence[str]) -> bool:
    """Whether the base name of *entry_name* ends with one of *filters*.

    Matching ignores case; a ``"*"`` filter matches everything.
    """
    if WILDCARD in filters:
        return True
    name = PurePosixPath(entry_name).name.lower()
    return any(name.endswith(pattern.lower()) for pattern in filters)


def plan_extraction(
    entries: Iterable[zipfile.ZipInfo], destination_dir: Path, filters: Sequence[str]
) -> List[ExtractionItem]:
    """Pair each wanted archive entry with its destination path.

    Raises:
        ExtractionError: an entry would be written outside *destination_dir*.
    """
    root = Path(destination_dir).resolve()
    plan: List[ExtractionItem] = []

    for entry in entries:
        if entry.is_dir() or not matches_filters(entry.filename, filters):
            continue

        destination = (root / entry.filename).resolve()
        if root != destination and root not in destination.parents:
            raise ExtractionError(
                f"Archive entry '{entry.filename}' points outside {root}",
                entry_name=entry.filename,
                file_path=str(destination),
            )
        plan.append(ExtractionItem(source=entry, destination=destination))

    return plan


class ArchiveExtractor:
    """
    Unpacks selected entries of a zip archive into a directory.

    Entries whose destination already has the same size are left alone, so a
    second run over an unchanged archive writes nothing. If anything fails,
    every file written by the current run is removed before the error
    propagates.
    """

    def __init__(
        self,
        reporter: Optional[Reporter] = None,
        token: Optional[CancellationToken] = None,
        config: Optional[DownloaderConfig] = None,
        summary: Optional[Summary] = None,
    ):
        self.reporter = reporter or Reporter()
        self.token = token or CancellationToken()
        self.config = config or DownloaderConfig()
        self.summary = summary

    def extract(
        self, archive_path: Path, destination_dir: Path, filters: Sequence[str]
    ) -> ExtractionResult:
        """Extract the entries of *archive_path* matching *filters*.

        Any failure is re-raised unchanged (``OSError``, ``zipfile.BadZipFile``
        and so on) once the files written by this call have been removed.

        Raises:
            ExtractionError: an entry would land outside *destination_dir*.
        """
        self.reporter.info("Unzipping credential bundle")

        result = ExtractionResult()
        rollback = FileRollback(
            "extract",
            interval=self.config.retry.cleanup_interval,
            max_workers=self.config.extraction.cleanup_workers,
        )

        try:
            with zipfile.ZipFile(archive_path) as archive:
                plan = plan_extraction(archive.infolist(), Path(destination_dir), filters)
                log.debug(
                    "📋 %d of %d entries selected from %s",
                    len(plan),
                    len(archive.infolist()),
                    archive_path,
                )

                for item in plan:
                    if self.token.cancelled:
                        done = len(result.extracted) + len(result.skipped)
                        log.info("🚫 Extraction cancelled, %d entries not processed", len(plan) - done)
                        result.cancelled = True
                        break

                    if item.is_current:
                        self.reporter.info("File '%s' is already up-to-date", item.destination)
                        result.skipped.append(item.destination)
                        continue

                    self._write(archive, item, rollback)
                    result.extracted.append(item.destination)

        except Exception as e:
            log.debug("Extraction of %s failed: %s", archive_path, e)
            rollback.execute(reason=str(e))
            self._count("error")
            raise

        self._count("written", len(result.extracted))
        self._count("skip", len(result.skipped))
        return result

    def _write(self, archive: zipfile.ZipFile, item: ExtractionItem, rollback: FileRollback) -> None:
        item.destination.parent.mkdir(parents=True, exist_ok=True)
        rollback.record(item.destination)

        self.reporter.info("Unzipping file '%s' -> '%s'", item.source.filename, item.destination)
        with archive.open(item.source) as src, item.destination.open("wb") as dst:
            shutil.copyfileobj(src, dst, CHUNK)

        os.utime(item.destination, (item.timestamp, item.timestamp))

    def _count(self, status: str, count: int = 1) -> None:
        if self.summary is not None and count:
            self.summary.log_extraction(status, count)
