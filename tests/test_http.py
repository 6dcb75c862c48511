"""Tests for HttpxJSONFetcher using httpx.MockTransport."""

import httpx
import pytest

from flowpatterns.core import FetchError, HttpxJSONFetcher


def make_fetcher(handler) -> HttpxJSONFetcher:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpxJSONFetcher(client=client)


class TestHttpxJSONFetcher:
    """Tests for JSON fetching and error mapping."""

    @pytest.mark.asyncio
    async def test_fetch_json_with_params(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"results": [{"name": "Paris"}]})

        fetcher = make_fetcher(handler)
        data = await fetcher.fetch("https://geo.test/search", params={"name": "Paris", "count": 1})
        assert data == {"results": [{"name": "Paris"}]}
        assert seen["url"].startswith("https://geo.test/search")
        assert seen["params"] == {"name": "Paris", "count": "1"}
        await fetcher._client.aclose()

    @pytest.mark.asyncio
    async def test_error_status(self):
        fetcher = make_fetcher(lambda request: httpx.Response(503, text="unavailable"))
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://geo.test/search")
        assert exc_info.value.url == "https://geo.test/search"
        assert exc_info.value.reason == "HTTP 503"
        await fetcher._client.aclose()

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = make_fetcher(handler)
        with pytest.raises(FetchError) as exc_info:
            await fetcher.fetch("https://geo.test/search")
        assert "connection refused" in exc_info.value.reason
        await fetcher._client.aclose()

    @pytest.mark.asyncio
    async def test_malformed_json(self):
        fetcher = make_fetcher(lambda request: httpx.Response(200, text="<html>"))
        with pytest.raises(FetchError, match="malformed JSON"):
            await fetcher.fetch("https://geo.test/search")
        await fetcher._client.aclose()

    @pytest.mark.asyncio
    async def test_context_manager_keeps_injected_client(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=[])))
        async with HttpxJSONFetcher(client=client) as fetcher:
            assert await fetcher.fetch("https://geo.test/search") == []
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_context_manager_closes_own_client(self):
        async with HttpxJSONFetcher(timeout=5.0) as fetcher:
            assert fetcher.timeout == 5.0
        assert fetcher._client.is_closed
