"""JSON-over-HTTP fetcher built on httpx."""

import logging
from typing import Any, Mapping, Optional

import httpx

from .abstractions import IJSONFetcher
from .types import FetchError

logger = logging.getLogger(__name__)


class HttpxJSONFetcher(IJSONFetcher):
    """
    Async JSON fetcher.

    Usage:
        async with HttpxJSONFetcher(timeout=10.0) as fetcher:
            data = await fetcher.fetch(url, params={"name": "Paris"})
    """

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def fetch(
        self,
        url: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """GET ``url`` and return the decoded JSON body."""
        logger.debug(f"GET {url} params={dict(params or {})}")
        try:
            response = await self._client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(url, f"malformed JSON: {e}") from e

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpxJSONFetcher":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
