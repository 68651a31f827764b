"""Domain models: the bundle source location and where it is staged."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Final, Optional
from urllib.parse import unquote, urlparse

from .exceptions import InputValidationError

log: Final = logging.getLogger(__name__)

BUNDLE_FILENAME: Final[str] = "CredentialProviderBundle.zip"

# A public feed that is expected to stay available to everyone.
DEFAULT_BUNDLE_URI: Final[str] = (
    "https://microsoft.pkgs.visualstudio.com/_apis/public/nuget/client/CredentialProviderBundle.zip"
)


def _filename_from_uri(uri: str) -> str:
    return unquote(urlparse(uri).path).rsplit("/", 1)[-1]


@dataclass(slots=True, frozen=True)
class BundleSource:
    """A validated location of the credential provider bundle."""

    uri: str
    is_default: bool = False

    @property
    def filename(self) -> str:
        return _filename_from_uri(self.uri)

    def staging_path(self, staging_dir: Path) -> Path:
        """Local file the archive is downloaded to and reused from."""
        return Path(staging_dir) / self.filename

    @classmethod
    def default(cls) -> BundleSource:
        return cls(uri=DEFAULT_BUNDLE_URI, is_default=True)

    @classmethod
    def parse(cls, arguments: Optional[str]) -> BundleSource:
        """Validate a caller-supplied location, or fall back to the default.

        Raises:
            InputValidationError: *arguments* is not an absolute URL whose
                last path segment is ``CredentialProviderBundle.zip``.
        """
        if arguments is None or not arguments.strip():
            return cls.default()

        value = arguments.strip()
        try:
            parsed = urlparse(value)
            filename = _filename_from_uri(value)
        except ValueError:
            parsed, filename = None, ""

        if (
            parsed is None
            or not parsed.scheme
            or not parsed.netloc
            or filename.lower() != BUNDLE_FILENAME.lower()
        ):
            raise InputValidationError(
                f"The specified downloader arguments '{arguments}' are invalid. "
                f"The value must be a valid URL that points to {BUNDLE_FILENAME}.",
                value=arguments,
            )

        log.debug("Using bundle source %s", value)
        return cls(uri=value)
