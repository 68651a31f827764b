# credbundle/pipeline.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from .config import DownloaderConfig
from .exceptions import InputValidationError
from .extractor import ArchiveExtractor
from .fetcher import BundleFetcher
from .models import BundleSource
from .reporting import Reporter, Sink
from .utils.cancellation import CancellationToken
from .utils.run_summary import Summary

log = logging.getLogger(__name__)


def execute(
    path: str | Path,
    arguments: Optional[str] = None,
    log_info: Optional[Sink] = None,
    log_error: Optional[Sink] = None,
    cancellation: Optional[CancellationToken] = None,
    config: Optional[DownloaderConfig] = None,
    summary: Optional[Summary] = None,
) -> bool:
    """Download the credential provider bundle and unpack it into *path*.

    *arguments* optionally overrides the download URL and must point to
    ``CredentialProviderBundle.zip``. Only the entries matching the
    configured filters (``.exe``, ``.dll`` and ``.config`` by default) are
    extracted.

    Returns:
        True when the bundle was fetched and unpacked, False when the
        download was cancelled.

    Raises:
        InputValidationError: *arguments* is not a valid bundle URL.
        RetryExhaustedError: the download failed on every attempt.
        OSError, zipfile.BadZipFile, ExtractionError: unpacking failed and
            the original error is re-raised; files written by this run are
            removed first.
    """
    config = config or DownloaderConfig()
    source = BundleSource.parse(arguments if arguments is not None else config.source_url)

    if path is None or not str(path).strip():
        raise InputValidationError("A destination path is required", value=path)
    destination_dir = Path(path)

    token = cancellation or CancellationToken()
    reporter = Reporter(log_info, log_error)
    local_file = source.staging_path(config.paths.staging)
    log.debug("Staging %s at %s", source.uri, local_file)

    with BundleFetcher(reporter, token, config, summary=summary) as fetcher:
        if not fetcher.ensure_local(source.uri, local_file):
            return False

    extractor = ArchiveExtractor(reporter, token, config, summary=summary)
    try:
        extractor.extract(local_file, destination_dir, config.extraction.filters)
    except Exception as e:
        reporter.error(e)
        if summary is not None:
            summary.log_error("extract", str(e))
        raise

    return True
