"""HTTP session construction for the probe and the download."""

from __future__ import annotations

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import HttpSettings

log = logging.getLogger(__name__)


class TimeoutSession(requests.Session):
    """A session that applies a default timeout to every request."""

    def __init__(self, timeout: float):
        super().__init__()
        self.default_timeout = timeout

    def request(self, method, url, **kwargs):
        kwargs.setdefault("timeout", self.default_timeout)
        return super().request(method, url, **kwargs)


def build_session(settings: Optional[HttpSettings] = None) -> requests.Session:
    """Create a session with connection pooling and the configured headers.

    Adapter-level retries only cover connection setup and idempotent status
    retries; the fetcher's own retry loop governs whole attempts.
    """
    settings = settings or HttpSettings()

    session = TimeoutSession(settings.timeout)
    adapter = HTTPAdapter(
        pool_connections=2,
        pool_maxsize=2,
        max_retries=Retry(
            total=settings.adapter_retries,
            backoff_factor=0.3,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["HEAD", "GET"],
            raise_on_status=False,
        ),
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)

    session.verify = settings.verify_ssl
    session.headers.update(
        {
            "User-Agent": settings.user_agent,
            "Accept": "application/zip, application/octet-stream, */*;q=0.8",
            # Content-Length must describe the bytes written to disk
            "Accept-Encoding": "identity",
        }
    )
    log.debug("Created HTTP session (timeout=%.0fs, adapter_retries=%d)", settings.timeout, settings.adapter_retries)
    return session
