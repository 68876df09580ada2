"""
HTTP fetcher for government and news sites.

One GET per call, no retries (see src.ingestion.retry). Failures are raised
as FetchError with a kind the retry policy can reason about.

Usage:
    async with Fetcher() as fetcher:
        response = await fetcher.fetch("https://www.ola.org/en/members/current")
        html = response.text
"""
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

import httpx

from src.config.constants import DEFAULT_HEADERS, RETRYABLE_STATUS_CODES
from src.config.settings import settings

logger = logging.getLogger(__name__)


class FetchErrorKind(str, Enum):
    """Why a fetch failed."""
    HTTP_STATUS = "http_status"
    TIMEOUT = "timeout"
    NETWORK = "network"


class FetchError(Exception):
    """Exception raised when a single GET fails."""

    def __init__(
        self,
        url: str,
        kind: FetchErrorKind,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        self.url = url
        self.kind = kind
        self.message = message
        self.status_code = status_code
        self.original_error = original_error
        super().__init__(f"{kind.value} fetching {url}: {message}")

    @property
    def is_transient(self) -> bool:
        """Whether trying again could plausibly succeed."""
        if self.kind != FetchErrorKind.HTTP_STATUS:
            return True
        if self.status_code is None:
            return True
        return self.status_code >= 500 or self.status_code in RETRYABLE_STATUS_CODES


@dataclass
class RawResponse:
    """Body and metadata of a successful fetch."""
    url: str
    status_code: int
    text: str
    headers: Dict[str, str] = field(default_factory=dict)
    elapsed: float = 0.0

    @property
    def content_type(self) -> str:
        return self.headers.get("content-type", "")


def build_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    """Default request headers with our descriptive user agent."""
    headers = {"User-Agent": settings.USER_AGENT, **DEFAULT_HEADERS}
    if extra:
        headers.update(extra)
    return headers


class Fetcher:
    """
    Thin async wrapper around httpx for scraping.

    Holds one AsyncClient for connection reuse. Use as an async context
    manager, or call close() when done.
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Per-request timeout in seconds (default from settings, 30s)
            headers: Extra headers merged over the defaults
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.logger = logging.getLogger(self.__class__.__name__)
        self.timeout = timeout if timeout is not None else settings.HTTP_TIMEOUT_SECONDS
        self.headers = build_headers(headers)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "Fetcher":
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers=self.headers,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    async def close(self):
        """Close the underlying HTTP client"""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None
    ) -> RawResponse:
        """
        GET a URL once.

        Args:
            url: Absolute URL
            headers: Per-request headers merged over the client's
            timeout: Per-request timeout override in seconds

        Returns:
            RawResponse for any 2xx status

        Raises:
            FetchError: kind HTTP_STATUS for non-2xx, TIMEOUT, or NETWORK
        """
        client = self._ensure_client()
        started = time.monotonic()

        try:
            response = await client.get(
                url,
                headers=headers,
                timeout=timeout if timeout is not None else self.timeout,
            )
        except httpx.TimeoutException as e:
            raise FetchError(url, FetchErrorKind.TIMEOUT, str(e) or "request timed out", original_error=e)
        except httpx.HTTPError as e:
            raise FetchError(url, FetchErrorKind.NETWORK, str(e) or e.__class__.__name__, original_error=e)

        elapsed = time.monotonic() - started

        if not response.is_success:
            raise FetchError(
                url,
                FetchErrorKind.HTTP_STATUS,
                f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        self.logger.debug(f"Fetched {url} ({response.status_code}, {len(response.content)} bytes, {elapsed:.2f}s)")

        return RawResponse(
            url=str(response.url),
            status_code=response.status_code,
            text=response.text,
            headers={key.lower(): value for key, value in response.headers.items()},
            elapsed=elapsed,
        )
