"""Shared fixtures: throwaway directories, real zip archives and a fake HTTP session."""
import io
import zipfile

import pytest
import requests

from credbundle.config import DownloaderConfig, RetrySettings

ENTRY_DATE = (2020, 1, 2, 3, 4, 6)


class FakeResponse:
    """Just enough of ``requests.Response`` for the probe and the download."""

    def __init__(self, body=b"", status_code=200, declare_length=True, on_chunk=None):
        self.body = body
        self.status_code = status_code
        self.headers = {"content-length": str(len(body))} if declare_length else {}
        self.on_chunk = on_chunk
        self.closed = False
        self.body_read = False

    @property
    def ok(self):
        return self.status_code < 400

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Server Error", response=self)

    def iter_content(self, chunk_size=1):
        self.body_read = True
        for start in range(0, len(self.body), chunk_size):
            yield self.body[start:start + chunk_size]
            if self.on_chunk:
                self.on_chunk()

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


class FakeSession:
    """Serves one archive; ``get_effects`` can script failures per GET call."""

    def __init__(self, body=b"", head_status=200, head_declares_length=True):
        self.body = body
        self.head_status = head_status
        self.head_declares_length = head_declares_length
        self.get_effects = []
        self.head_calls = []
        self.get_calls = []
        self.responses = []
        self.closed = False

    def head(self, url, **kwargs):
        self.head_calls.append(url)
        return FakeResponse(
            self.body, status_code=self.head_status, declare_length=self.head_declares_length
        )

    def get(self, url, **kwargs):
        self.get_calls.append(url)
        if self.get_effects:
            effect = self.get_effects.pop(0)
            if isinstance(effect, BaseException):
                raise effect
            response = effect
        else:
            response = FakeResponse(self.body)
        self.responses.append(response)
        return response

    def close(self):
        self.closed = True


def build_zip(entries):
    """Zip bytes holding ``{name: data}`` entries with a fixed timestamp."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            info = zipfile.ZipInfo(name, date_time=ENTRY_DATE)
            zf.writestr(info, data)
    return buffer.getvalue()


@pytest.fixture
def temp_dir(tmp_path):
    """A resolved temporary directory."""
    return tmp_path.resolve()


@pytest.fixture
def fast_config(temp_dir):
    """Configuration with no waiting between attempts and a private staging dir."""
    config = DownloaderConfig(retry=RetrySettings(interval=0.0, cleanup_interval=0.0))
    config.paths.staging_dir = str(temp_dir / "staging")
    return config


@pytest.fixture
def make_zip(temp_dir):
    """Write a zip archive to disk and return its path."""

    def _make(entries, name="CredentialProviderBundle.zip"):
        path = temp_dir / name
        path.write_bytes(build_zip(entries))
        return path

    return _make


@pytest.fixture
def zip_bytes():
    return build_zip


@pytest.fixture
def fake_session():
    return FakeSession


@pytest.fixture
def fake_response():
    return FakeResponse


@pytest.fixture
def sample_bundle():
    return {
        "CredentialProvider.VSS.exe": b"MZ" + b"\x00" * 300,
        "Microsoft.VisualStudio.Services.Common.dll": b"MZ" + b"\x01" * 500,
        "CredentialProvider.VSS.exe.config": b"<configuration />",
        "readme.txt": b"not extracted",
        "docs/license.rtf": b"{\\rtf1}",
    }
