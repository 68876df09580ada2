"""
Tests for the HTTP fetcher and its error classification.
"""
import asyncio

import httpx
import pytest

from src.config.settings import settings
from src.ingestion.fetcher import Fetcher, FetchError, FetchErrorKind, build_headers


def _fetcher(handler) -> Fetcher:
    return Fetcher(transport=httpx.MockTransport(handler))


async def _fetch(fetcher: Fetcher, url: str):
    async with fetcher:
        return await fetcher.fetch(url)


class TestFetcher:
    """Single GET behaviour"""

    def test_success_returns_body_and_status(self):
        fetcher = _fetcher(lambda request: httpx.Response(200, text="<html>ok</html>"))

        response = asyncio.run(_fetch(fetcher, "https://www.ola.org/en/members"))

        assert response.status_code == 200
        assert response.text == "<html>ok</html>"
        assert response.url == "https://www.ola.org/en/members"

    def test_sends_descriptive_user_agent(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200, text="")

        asyncio.run(_fetch(_fetcher(handler), "https://www.parl.ca/"))

        assert seen["user-agent"] == settings.USER_AGENT
        assert "text/html" in seen["accept"]

    def test_extra_headers_override_defaults(self):
        headers = build_headers({"Accept": "application/rss+xml"})
        assert headers["Accept"] == "application/rss+xml"
        assert headers["User-Agent"] == settings.USER_AGENT

    def test_not_found_is_permanent_http_error(self):
        fetcher = _fetcher(lambda request: httpx.Response(404, text="missing"))

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(_fetch(fetcher, "https://www.ola.org/missing"))

        error = exc_info.value
        assert error.kind == FetchErrorKind.HTTP_STATUS
        assert error.status_code == 404
        assert error.url == "https://www.ola.org/missing"
        assert not error.is_transient

    def test_server_error_is_transient(self):
        fetcher = _fetcher(lambda request: httpx.Response(503, text="busy"))

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(_fetch(fetcher, "https://www.ola.org/"))

        assert exc_info.value.status_code == 503
        assert exc_info.value.is_transient

    def test_too_many_requests_is_transient(self):
        fetcher = _fetcher(lambda request: httpx.Response(429, text="slow down"))

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(_fetch(fetcher, "https://www.ola.org/"))

        assert exc_info.value.is_transient

    def test_timeout_is_classified(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(_fetch(_fetcher(handler), "https://www.ola.org/"))

        assert exc_info.value.kind == FetchErrorKind.TIMEOUT
        assert exc_info.value.is_transient

    def test_connection_failure_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(_fetch(_fetcher(handler), "https://www.ola.org/"))

        assert exc_info.value.kind == FetchErrorKind.NETWORK
        assert exc_info.value.is_transient

    def test_close_is_idempotent(self):
        fetcher = _fetcher(lambda request: httpx.Response(200, text=""))

        async def run():
            await fetcher.fetch("https://www.ola.org/")
            await fetcher.close()
            await fetcher.close()

        asyncio.run(run())
        assert fetcher._client is None
