"""Exceptions raised while acquiring the mdv binary."""

from __future__ import annotations


class DownloadError(Exception):
    """Exception raised when a network transfer fails."""

    def __init__(self, message: str, retryable: bool = True) -> None:
        """Initialize download error.

        Args:
            message: Error message.
            retryable: Whether the error is retryable.
        """
        super().__init__(message)
        self.retryable = retryable


class HttpStatusError(DownloadError):
    """Terminal response carried an unexpected HTTP status."""

    def __init__(self, status: int, url: str) -> None:
        super().__init__(f"http {status}")
        self.status = status
        self.url = url


class TooManyRedirectsError(DownloadError):
    """Redirect chain exceeded the hop limit."""

    def __init__(self, url: str) -> None:
        super().__init__("too many redirects")
        self.url = url


class DownloadTimeoutError(DownloadError):
    """Request did not complete within the configured timeout."""

    def __init__(self, timeout_ms: int) -> None:
        super().__init__(f"timeout {timeout_ms}ms")
        self.timeout_ms = timeout_ms


class InstallError(Exception):
    """Base class for install failures that are not transport errors."""


class IntegrityError(InstallError):
    """Downloaded content could not be verified. Never retried."""


class ChecksumMissingError(IntegrityError):
    """The manifest has no entry for the asset."""

    def __init__(self, asset: str) -> None:
        super().__init__(f"checksum missing for {asset}")
        self.asset = asset


class ChecksumMismatchError(IntegrityError):
    """The binary digest differs from the manifest entry."""

    def __init__(self, message: str, *, asset: str, expected: str, actual: str) -> None:
        super().__init__(message)
        self.asset = asset
        self.expected = expected
        self.actual = actual


class ReleaseUnresolvableError(InstallError):
    """Neither the tagged nor the latest release carries a usable bundle."""

    def __init__(self, version: str, asset: str) -> None:
        super().__init__(f"no release asset {asset} found for v{version} or latest")
        self.version = version
        self.asset = asset
