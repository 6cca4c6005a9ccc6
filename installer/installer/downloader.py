"""HTTP transport for release assets and release metadata.

All requests go through one redirect-following, timeout-bounded path:

    - Redirects (3xx with a Location header) are followed manually, up to
      ``MAX_REDIRECTS`` hops
    - The timeout applies to connecting and to each wait for data, not to
      the whole transfer
    - Transport failures are converted into ``DownloadError`` subclasses so the
      retry policy can classify them
"""

from __future__ import annotations

import contextlib
import json
from typing import TYPE_CHECKING, Any, Protocol
from urllib.parse import urljoin, urlsplit

import aiohttp
import structlog

from .errors import DownloadError, DownloadTimeoutError, HttpStatusError, TooManyRedirectsError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from .config import InstallerSettings

logger = structlog.get_logger(__name__)

MAX_REDIRECTS = 5
DEFAULT_CHUNK_SIZE = 65536  # 64 KB chunks
DEFAULT_USER_AGENT = "mdv-installer"

ACCEPT_BINARY = "application/octet-stream"
ACCEPT_TEXT = "text/plain"
ACCEPT_RELEASE_JSON = "application/vnd.github+json"


class HttpTransport(Protocol):
    """Network capability used by the installer."""

    async def download(self, url: str, output_path: Path) -> None: ...

    async def request_text(self, url: str) -> str: ...

    async def request_json(self, url: str, auth_token: str | None = None) -> Any: ...


class HttpDownloader:
    """aiohttp implementation of ``HttpTransport``.

    Example:
        >>> downloader = HttpDownloader(timeout_ms=15_000)
        >>> await downloader.download("https://example.com/mdv-linux-x64", Path("/tmp/mdv"))
    """

    def __init__(
        self,
        timeout_ms: int,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
        max_redirects: int = MAX_REDIRECTS,
    ) -> None:
        """Initialize the downloader.

        Args:
            timeout_ms: Idle timeout in milliseconds, applied to connecting
                and to each read.
            user_agent: User-Agent header sent with every request.
            max_redirects: Maximum number of redirect hops to follow.
        """
        self._timeout_ms = timeout_ms
        self._user_agent = user_agent
        self._max_redirects = max_redirects
        self._log = logger.bind(component="downloader")

    @classmethod
    def from_settings(cls, settings: InstallerSettings) -> HttpDownloader:
        """Create a downloader from installer settings."""
        return cls(
            timeout_ms=settings.tuning.timeout_ms,
            user_agent=f"{DEFAULT_USER_AGENT}/{settings.version}",
        )

    async def download(self, url: str, output_path: Path) -> None:
        """Stream ``url`` into ``output_path``.

        The partial file is removed if the transfer fails midway.

        Raises:
            HttpStatusError: Terminal response was not 200.
            TooManyRedirectsError: Redirect chain exceeded the hop limit.
            DownloadTimeoutError: Connecting or a read stalled past the timeout.
            DownloadError: Any other transport failure.
            OSError: The output file could not be written.
        """
        self._log.debug("download_started", url=url, path=str(output_path))
        async with self._open(url, self._headers(ACCEPT_BINARY)) as response:
            if response.status != 200:
                raise HttpStatusError(response.status, url)
            bytes_downloaded = 0
            try:
                with output_path.open("wb") as f:
                    async for chunk in response.content.iter_chunked(DEFAULT_CHUNK_SIZE):
                        f.write(chunk)
                        bytes_downloaded += len(chunk)
            except BaseException:
                output_path.unlink(missing_ok=True)
                raise
        self._log.debug("download_completed", url=url, bytes=bytes_downloaded)

    async def request_text(self, url: str) -> str:
        """Fetch ``url`` and return its body decoded as UTF-8."""
        async with self._open(url, self._headers(ACCEPT_TEXT)) as response:
            if response.status != 200:
                raise HttpStatusError(response.status, url)
            return await response.text(encoding="utf-8")

    async def request_json(self, url: str, auth_token: str | None = None) -> Any:
        """Fetch ``url`` and parse its body as JSON.

        Args:
            url: Release metadata URL.
            auth_token: Optional bearer credential.

        Returns:
            Parsed JSON document; an empty body yields an empty dict.

        Raises:
            HttpStatusError: Response status was 400 or above.
            DownloadError: Body was not valid JSON (not retryable).
        """
        headers = self._headers(ACCEPT_RELEASE_JSON)
        if auth_token:
            headers["Authorization"] = f"Bearer {auth_token}"
        async with self._open(url, headers) as response:
            if response.status >= 400:
                raise HttpStatusError(response.status, url)
            body = await response.text(encoding="utf-8")
        try:
            return json.loads(body or "{}")
        except json.JSONDecodeError as e:
            raise DownloadError(f"invalid json from {url}: {e}", retryable=False) from e

    def _headers(self, accept: str) -> dict[str, str]:
        return {"User-Agent": self._user_agent, "Accept": accept}

    @contextlib.asynccontextmanager
    async def _open(
        self, url: str, headers: dict[str, str]
    ) -> AsyncIterator[aiohttp.ClientResponse]:
        seconds = self._timeout_ms / 1000
        timeout = aiohttp.ClientTimeout(total=None, sock_connect=seconds, sock_read=seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                response = await self._follow_redirects(session, url, headers)
                try:
                    yield response
                finally:
                    response.release()
        except TimeoutError as e:
            raise DownloadTimeoutError(self._timeout_ms) from e
        except aiohttp.ClientError as e:
            raise DownloadError(f"network error: {e}") from e

    async def _follow_redirects(
        self,
        session: aiohttp.ClientSession,
        url: str,
        headers: dict[str, str],
    ) -> aiohttp.ClientResponse:
        redirects = 0
        current_url = url
        current_headers = dict(headers)
        while True:
            response = await session.get(
                current_url, headers=current_headers, allow_redirects=False
            )
            location = response.headers.get("Location")
            if not (300 <= response.status < 400 and location):
                return response

            response.release()
            redirects += 1
            if redirects > self._max_redirects:
                raise TooManyRedirectsError(url)

            next_url = urljoin(current_url, location)
            # credentials stay with the host they were issued for
            if urlsplit(next_url).netloc != urlsplit(current_url).netloc:
                current_headers.pop("Authorization", None)
            self._log.debug("redirect", status=response.status, location=next_url, hop=redirects)
            current_url = next_url
