"""
Defines custom exceptions for the application to allow for more specific error handling.
"""

from pathlib import Path


class BootkitError(Exception):
    """Base exception for all application-specific errors."""


class TooManyRedirects(BootkitError):
    """Raised when a download exhausts its redirect budget."""

    def __init__(self, url: str, limit: int):
        self.url = url
        self.limit = limit
        super().__init__(f"Too many redirects (limit {limit}) while fetching '{url}'.")


class DownloadFailed(BootkitError):
    """
    Raised when a download cannot complete: a non-success HTTP status, an HTML
    page served in place of a binary, an empty or truncated body, or a transport
    failure mid-stream.
    """

    def __init__(self, url: str, reason: str, status: int | None = None):
        self.url = url
        self.reason = reason
        self.status = status
        prefix = f"HTTP {status}: " if status is not None else ""
        super().__init__(f"Download of '{url}' failed: {prefix}{reason}")


class UnsupportedContentType(BootkitError):
    """Raised when the filename cannot be derived from the response content type."""

    def __init__(self, url: str, content_type: str):
        self.url = url
        self.content_type = content_type
        super().__init__(f"Unsupported content-type '{content_type}' for '{url}'.")


class SignatureMismatch(BootkitError):
    """Raised when a fetched file fails a digest or PGP signature check."""

    def __init__(
        self,
        path: Path,
        kind: str,
        expected: str | None = None,
        actual: str | None = None,
    ):
        self.path = Path(path)
        self.kind = kind
        self.expected = expected
        self.actual = actual
        message = f"Invalid {kind} for '{self.path.name}'"
        if expected is not None:
            message += f": expected {expected}, got {actual}"
        super().__init__(message + ".")


class UnknownSignatureKind(BootkitError):
    """Raised for a signature tag other than md5, sha1, sha256 or pgp."""

    def __init__(self, kind: str):
        self.kind = kind
        super().__init__(f"Unknown signature kind: '{kind}'.")


class UnsupportedArchiveFormat(BootkitError):
    """Raised when a payload's extension has no extraction strategy."""

    def __init__(self, path: Path, suffix: str):
        self.path = Path(path)
        self.suffix = suffix
        shown = suffix or "(none)"
        super().__init__(
            f"Download package format {shown} not supported ('{self.path.name}')."
        )


class ExtractionFailed(BootkitError):
    """Raised when an external archive tool exits with a failure status."""

    def __init__(self, argv: list[str], returncode: int, stderr: str = ""):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(
            f"'{' '.join(self.argv)}' exited with status {returncode}{detail}"
        )


class PrivilegedCommandFailed(BootkitError):
    """Raised when an elevated filesystem operation does not succeed."""

    def __init__(self, operation: object, returncode: int, stderr: str = ""):
        self.operation = operation
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr}" if stderr else ""
        super().__init__(
            f"Privileged operation {operation} failed with status {returncode}{detail}"
        )


class ManifestError(BootkitError):
    """Raised when a manifest file cannot be read or has the wrong shape."""


class ConfigurationError(BootkitError):
    """Raised for issues related to configuration loading or validation."""
