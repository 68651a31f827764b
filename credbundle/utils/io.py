from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Final, Optional

import requests

from .cancellation import CancellationToken

log: Final = logging.getLogger(__name__)
CHUNK: Final[int] = 8192  # 8 KiB streaming buffer


def format_bytes(bytes_val: int) -> str:
    """Format bytes to human-readable string."""
    val: float = float(bytes_val)
    for unit in ["B", "KB", "MB", "GB"]:
        if val < 1024.0:
            return f"{val:.1f} {unit}"
        val /= 1024.0
    return f"{val:.1f} TB"


def _declared_length(resp: requests.Response) -> Optional[int]:
    content_length: Optional[str] = resp.headers.get("content-length")
    if content_length is None:
        return None
    try:
        return int(content_length)
    except ValueError:
        log.debug("Ignoring malformed Content-Length %r", content_length)
        return None


def probe_content_length(
    session: requests.Session, url: str, token: CancellationToken
) -> Optional[int]:
    """Return the remote size declared by the server without fetching the body.

    Tries HEAD first. Servers that reject HEAD or omit the header get a
    streamed GET whose body is never read.
    """
    token.raise_if_cancelled()
    with session.head(url, allow_redirects=True) as head_resp:
        if head_resp.ok:
            size = _declared_length(head_resp)
            if size is not None:
                return size
        log.debug("HEAD %s gave status %s without a size, falling back to GET", url, head_resp.status_code)

    token.raise_if_cancelled()
    with session.get(url, stream=True) as resp:
        resp.raise_for_status()
        return _declared_length(resp)


def download(
    session: requests.Session,
    url: str,
    dest: Path,
    token: CancellationToken,
    chunk_size: int = CHUNK,
) -> int:
    """Stream *url* into *dest*, overwriting it; returns the number of bytes written.

    The token is checked between chunks; a cancelled transfer closes the
    response and raises ``OperationCancelled`` leaving a partial file behind
    for the caller to clean up.
    """
    token.raise_if_cancelled()

    with session.get(url, stream=True) as resp:
        resp.raise_for_status()
        total_size = _declared_length(resp)

        if total_size:
            log.info("⬇ %s (%s)", dest.name, format_bytes(total_size))
        else:
            log.info("⬇ %s", dest.name)

        downloaded: int = 0
        last_progress_log: float = time.time()
        progress_interval: float = 5.0

        with dest.open("wb") as fh:
            for chunk in resp.iter_content(chunk_size):
                token.raise_if_cancelled()
                if not chunk:  # keep-alive
                    continue
                fh.write(chunk)
                downloaded += len(chunk)

                current_time = time.time()
                if current_time - last_progress_log >= progress_interval:
                    if total_size:
                        log.debug(
                            "📊 %s: %.1f%% (%s / %s)",
                            dest.name,
                            downloaded / total_size * 100,
                            format_bytes(downloaded),
                            format_bytes(total_size),
                        )
                    else:
                        log.debug("📊 %s: %s downloaded", dest.name, format_bytes(downloaded))
                    last_progress_log = current_time

    log.info("✅ %s (%s)", dest.name, format_bytes(downloaded))
    return downloaded
