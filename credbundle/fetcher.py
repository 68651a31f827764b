# credbundle/fetcher.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import requests

from .config import DownloaderConfig
from .exceptions import OperationCancelled, classify_exception
from .reporting import Reporter
from .utils.cancellation import CancellationToken
from .utils.http_session import build_session
from .utils.io import download, probe_content_length
from .utils.retry import delete_with_retry, retry
from .utils.run_summary import Summary

log = logging.getLogger(__name__)


class BundleFetcher:
    """
    Keeps a local copy of a remote archive current.

    An existing copy is reused when its size matches the size the server
    declares; otherwise the archive is downloaded again. Each probe+download
    attempt runs under a fixed-interval retry policy, and a failed attempt
    never leaves a partial file behind.
    """

    def __init__(
        self,
        reporter: Optional[Reporter] = None,
        token: Optional[CancellationToken] = None,
        config: Optional[DownloaderConfig] = None,
        session: Optional[requests.Session] = None,
        summary: Optional[Summary] = None,
    ):
        self.reporter = reporter or Reporter()
        self.token = token or CancellationToken()
        self.config = config or DownloaderConfig()
        self.summary = summary
        self._session = session
        self._owns_session = session is None

    @property
    def session(self) -> requests.Session:
        if self._session is None:
            self._session = build_session(self.config.http)
        return self._session

    def close(self) -> None:
        if self._owns_session and self._session is not None:
            self._session.close()
            self._session = None

    def ensure_local(self, uri: str, destination: Path) -> bool:
        """Make sure *destination* holds a current copy of *uri*.

        Returns False when the download was cancelled.

        Raises:
            RetryExhaustedError: every attempt failed.
        """
        destination = Path(destination)
        settings = self.config.retry
        return retry(
            lambda: self._attempt(uri, destination),
            settings.interval,
            settings.max_attempts,
            operation_name="download credential bundle",
            sleep=self.token.wait,
        )

    def _attempt(self, uri: str, destination: Path) -> bool:
        try:
            self.reporter.info("Determining if credential bundle has already been downloaded")

            if destination.exists():
                remote_size = self._probe(uri)
                if remote_size is not None and remote_size == destination.stat().st_size:
                    self.reporter.info("Credential bundle has already been downloaded")
                    self._count("cached")
                    return True
                log.debug(
                    "Local copy %s (%d bytes) does not match remote size %s",
                    destination,
                    destination.stat().st_size,
                    remote_size,
                )

            destination.parent.mkdir(parents=True, exist_ok=True)

            self.reporter.info("Downloading credential bundle from '%s'", uri)
            nbytes = download(self.session, uri, destination, self.token, self.config.http.chunk_size)
            self._count("done", nbytes)
            return True

        except Exception as e:
            error = classify_exception(e, url=uri)
            self.reporter.error(error)
            self._discard(destination)

            if isinstance(error, OperationCancelled):
                self.reporter.info("Credential bundle download was cancelled")
                self._count("cancelled")
                return False

            self._count("error")
            if error is e:
                raise
            raise error from e

    def _probe(self, uri: str) -> Optional[int]:
        """Declared remote size, or None when the server will not say."""
        try:
            return probe_content_length(self.session, uri, self.token)
        except requests.RequestException as e:
            log.warning("⚠️ Size probe for %s failed, downloading again: %s", uri, e)
            return None

    def _discard(self, destination: Path) -> None:
        if destination.exists():
            delete_with_retry(destination, self.config.retry.cleanup_interval)

    def _count(self, status: str, nbytes: int = 0) -> None:
        if self.summary is not None:
            self.summary.log_download(status, nbytes)

    def __enter__(self) -> "BundleFetcher":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
