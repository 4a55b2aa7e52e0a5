"""Shared HTTP client for feed documents, artifacts and size probes."""

import logging
from pathlib import Path
from urllib.parse import urlparse

import aiofiles
import httpx

from .config import DEFAULT_USER_AGENT
from .exceptions import DownloadError, FileOperationError, InvalidUrlError

logger = logging.getLogger(__name__)

ALLOWED_SCHEMES = frozenset({"http", "https"})
STREAM_CHUNK_SIZE = 64 * 1024


class HttpClient:
    """Thin wrapper around one ``httpx.AsyncClient``.

    Every request validates the URL scheme first, follows redirects and is
    bounded by the configured timeout. Failures surface as DownloadError so
    callers can translate them into their own error types.

    Attributes:
        _default_user_agent: User-Agent used when no override is set.
        _client: The underlying httpx client.
    """

    def __init__(self, timeout: float, user_agent: str | None = None):
        self._default_user_agent = user_agent or DEFAULT_USER_AGENT
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            headers={"User-Agent": self._default_user_agent},
        )
        logger.debug(
            "HttpClient initialized.",
            extra={"timeout": timeout, "user_agent": self.user_agent},
        )

    @property
    def user_agent(self) -> str:
        """The User-Agent sent with every request."""
        return self._client.headers["User-Agent"]

    def set_user_agent(self, user_agent: str | None) -> None:
        """Override the User-Agent; None restores the one given at construction."""
        self._client.headers["User-Agent"] = user_agent or self._default_user_agent

    @staticmethod
    def validate_url(url: str) -> None:
        """Reject anything that is not an absolute http(s) URL.

        Raises:
            InvalidUrlError: If the scheme is not http/https or the host is
                missing.
        """
        try:
            parsed = urlparse(url)
        except ValueError as e:
            raise InvalidUrlError("Malformed URL.", url=url) from e
        if parsed.scheme.lower() not in ALLOWED_SCHEMES:
            raise InvalidUrlError(
                f"Unsupported URL scheme '{parsed.scheme}'.", url=url
            )
        if not parsed.netloc:
            raise InvalidUrlError("URL has no host.", url=url)

    async def get_bytes(self, url: str) -> bytes:
        """GET a resource and return its body.

        Raises:
            InvalidUrlError: If the URL is not http(s).
            DownloadError: On transport errors or a non-2xx status.
        """
        self.validate_url(url)
        logger.debug("GET request.", extra={"url": url})
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as e:
            raise DownloadError("HTTP request failed.", url=url) from e
        if not response.is_success:
            raise DownloadError(
                f"Unexpected HTTP status {response.status_code}.",
                url=url,
                status_code=response.status_code,
            )
        return response.content

    async def stream_to_file(self, url: str, destination: Path) -> int:
        """Stream a resource into ``destination``, overwriting it.

        The caller owns ``destination`` and is responsible for removing it
        if this raises.

        Returns:
            Number of bytes written.

        Raises:
            InvalidUrlError: If the URL is not http(s).
            DownloadError: On transport errors or a non-2xx status.
            FileOperationError: If writing to disk fails.
        """
        self.validate_url(url)
        log_params = {"url": url, "destination": str(destination)}
        logger.debug("Streaming resource to file.", extra=log_params)
        written = 0
        try:
            async with self._client.stream("GET", url) as response:
                if not response.is_success:
                    raise DownloadError(
                        f"Unexpected HTTP status {response.status_code}.",
                        url=url,
                        status_code=response.status_code,
                    )
                async with aiofiles.open(destination, "wb") as file:
                    async for chunk in response.aiter_bytes(STREAM_CHUNK_SIZE):
                        await file.write(chunk)
                        written += len(chunk)
        except httpx.HTTPError as e:
            raise DownloadError("HTTP transfer failed.", url=url) from e
        except OSError as e:
            raise FileOperationError(
                "Failed to write downloaded data.", file_name=str(destination)
            ) from e
        logger.debug("Resource streamed.", extra={**log_params, "bytes": written})
        return written

    async def head_size(self, url: str) -> int:
        """Return the Content-Length reported by a HEAD request.

        Raises:
            InvalidUrlError: If the URL is not http(s).
            DownloadError: On transport errors, a status other than 200, or a
                missing or malformed Content-Length.
        """
        self.validate_url(url)
        try:
            response = await self._client.head(url)
        except httpx.HTTPError as e:
            raise DownloadError("HEAD request failed.", url=url) from e
        if response.status_code != httpx.codes.OK:
            raise DownloadError(
                f"Unexpected HTTP status {response.status_code}.",
                url=url,
                status_code=response.status_code,
            )
        content_length = response.headers.get("Content-Length")
        try:
            size = int(content_length) if content_length is not None else -1
        except ValueError:
            size = -1
        if size < 0:
            raise DownloadError("Response has no usable Content-Length.", url=url)
        return size

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()
        logger.debug("HttpClient closed.")
