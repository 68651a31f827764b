"""Tests for HTTP session construction and the streaming helpers."""

import pytest
import requests
from unittest.mock import patch

from credbundle.config import HttpSettings
from credbundle.exceptions import OperationCancelled
from credbundle.utils.cancellation import CancellationToken
from credbundle.utils.http_session import TimeoutSession, build_session
from credbundle.utils.io import download, format_bytes, probe_content_length


class TestFormatBytes:
    """Test human-readable sizes."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value,expected",
        [(0, "0.0 B"), (1023, "1023.0 B"), (2048, "2.0 KB"), (5 * 1024 ** 2, "5.0 MB"), (3 * 1024 ** 4, "3.0 TB")],
    )
    def test_format_bytes(self, value, expected):
        assert format_bytes(value) == expected


class TestBuildSession:
    """Test the configured requests session."""

    @pytest.mark.unit
    def test_defaults(self):
        session = build_session()
        assert isinstance(session, TimeoutSession)
        assert session.default_timeout == 60.0
        assert session.verify is True
        assert session.headers["User-Agent"].startswith("credbundle/")
        assert session.get_adapter("https://example.com").max_retries.total == 0

    @pytest.mark.unit
    def test_requests_unencoded_bodies(self):
        session = build_session()
        assert session.headers["Accept-Encoding"] == "identity"

        prepared = session.prepare_request(requests.Request("GET", "https://example.com/CredentialProviderBundle.zip"))
        assert prepared.headers["Accept-Encoding"] == "identity"

    @pytest.mark.unit
    def test_custom_settings(self):
        settings = HttpSettings(timeout=5, verify_ssl=False, user_agent="mirror-sync", adapter_retries=2)
        session = build_session(settings)
        assert session.default_timeout == 5
        assert session.verify is False
        assert session.headers["User-Agent"] == "mirror-sync"
        assert session.get_adapter("http://example.com").max_retries.total == 2

    @pytest.mark.unit
    def test_default_timeout_is_applied(self):
        session = TimeoutSession(7)
        with patch("requests.Session.request") as request:
            session.get("https://example.com/x")
            assert request.call_args.kwargs["timeout"] == 7

            session.get("https://example.com/x", timeout=1)
            assert request.call_args.kwargs["timeout"] == 1


class TestProbeContentLength:
    """Test remote size discovery."""

    @pytest.mark.unit
    def test_head_length(self, fake_session):
        session = fake_session(b"x" * 42)
        assert probe_content_length(session, "https://h/f.zip", CancellationToken()) == 42
        assert session.get_calls == []

    @pytest.mark.unit
    def test_get_fallback_keeps_body_unread(self, fake_session):
        session = fake_session(b"x" * 42, head_status=403)
        assert probe_content_length(session, "https://h/f.zip", CancellationToken()) == 42
        assert session.responses[0].body_read is False

    @pytest.mark.unit
    def test_no_length_anywhere(self, fake_session, fake_response):
        session = fake_session(b"x", head_declares_length=False)
        session.get_effects = [fake_response(b"x", declare_length=False)]
        assert probe_content_length(session, "https://h/f.zip", CancellationToken()) is None

    @pytest.mark.unit
    def test_malformed_length(self, fake_session, fake_response):
        bad = [fake_response(b"x"), fake_response(b"x")]
        for response in bad:
            response.headers = {"content-length": "lots"}
        session = fake_session(b"x")
        session.head = lambda url, **kw: bad[0]
        session.get_effects = [bad[1]]
        assert probe_content_length(session, "https://h/f.zip", CancellationToken()) is None

    @pytest.mark.unit
    def test_cancelled(self, fake_session):
        token = CancellationToken()
        token.cancel()
        session = fake_session(b"x")
        with pytest.raises(OperationCancelled):
            probe_content_length(session, "https://h/f.zip", token)
        assert session.head_calls == []


class TestDownload:
    """Test streaming a body to disk."""

    @pytest.mark.unit
    def test_writes_body_in_chunks(self, fake_session, tmp_path):
        body = bytes(range(256)) * 10
        dest = tmp_path / "bundle.zip"

        written = download(fake_session(body), "https://h/f.zip", dest, CancellationToken(), chunk_size=100)

        assert written == len(body)
        assert dest.read_bytes() == body

    @pytest.mark.unit
    def test_overwrites_existing_file(self, fake_session, tmp_path):
        dest = tmp_path / "bundle.zip"
        dest.write_bytes(b"a much longer stale file")
        download(fake_session(b"new"), "https://h/f.zip", dest, CancellationToken())
        assert dest.read_bytes() == b"new"
