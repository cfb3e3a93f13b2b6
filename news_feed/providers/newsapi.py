"""
NewsAPI Source - Top headlines and keyword search via newsapi.org v2.

Endpoints used:
- /top-headlines: fixed country and category
- /everything: keyword search sorted by relevancy, fixed language

Credential is sent in the X-Api-Key header. A missing key is not
checked here; the provider answers 401 and that surfaces as an
AuthenticationError.
"""

import json
import logging
import math
from typing import Any, Optional

import aiohttp

from ..base import BaseNewsSource
from ..exceptions import (
    AuthenticationError,
    FetchError,
    ParseError,
    RateLimitError,
)
from ..models import SourceMetadata


logger = logging.getLogger(__name__)


def to_page_size(count: float, max_page_size: int = 100) -> int:
    """
    Convert a requested count into NewsAPI's integer pageSize.

    Fractional quotas are floored so a theme never asks for more than
    its budget; the result is clamped to [1, max_page_size].
    """
    try:
        size = math.floor(count)
    except (TypeError, ValueError, OverflowError):
        size = 1
    return max(1, min(max_page_size, size))


class NewsApiSource(BaseNewsSource):
    """
    newsapi.org news source.

    Features:
    - Top headlines for one country/category
    - Full-text search per keyword, relevancy sorted
    """

    BASE_URL = "https://newsapi.org/v2"
    MAX_PAGE_SIZE = 100

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        base_url: Optional[str] = None,
        country: str = "jp",
        category: str = "general",
        language: str = "jp",
    ) -> None:
        super().__init__(api_key, timeout)
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.country = country
        self.category = category
        self.language = language
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def metadata(self) -> SourceMetadata:
        return SourceMetadata(
            name="newsapi",
            display_name="NewsAPI",
            version="2",
            base_url=self.base_url,
            documentation_url="https://newsapi.org/docs",
            requires_api_key=True,
            max_page_size=self.MAX_PAGE_SIZE,
            tags=["news", "headlines", "search"],
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            headers = {"X-Api-Key": self.api_key or ""}
            self._session = aiohttp.ClientSession(timeout=timeout, headers=headers)
        return self._session

    async def _request_headlines(self, count: float) -> list[dict[str, Any]]:
        params = {
            "country": self.country,
            "category": self.category,
            "pageSize": str(to_page_size(count, self.MAX_PAGE_SIZE)),
        }
        return await self._get_articles("top-headlines", params)

    async def _request_by_keyword(
        self,
        keyword: str,
        count: float,
    ) -> list[dict[str, Any]]:
        params = {
            "q": keyword,
            "language": self.language,
            "sortBy": "relevancy",
            "pageSize": str(to_page_size(count, self.MAX_PAGE_SIZE)),
        }
        return await self._get_articles("everything", params)

    async def _get_articles(
        self,
        endpoint: str,
        params: dict[str, str],
    ) -> list[dict[str, Any]]:
        """GET an endpoint and return its articles array."""
        session = await self._get_session()
        url = f"{self.base_url}/{endpoint}"
        logger.debug(f"NewsAPI request {endpoint} {params}")

        try:
            async with session.get(url, params=params) as response:
                if response.status == 401:
                    raise AuthenticationError(
                        "NewsAPI rejected the API key",
                        source_name=self.metadata.name,
                        status_code=response.status,
                        url=str(response.url),
                    )

                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise RateLimitError(
                        "NewsAPI rate limit exceeded",
                        source_name=self.metadata.name,
                        retry_after_seconds=int(retry_after) if retry_after and retry_after.isdigit() else None,
                        url=str(response.url),
                    )

                text = await response.text()

                if response.status != 200:
                    raise FetchError(
                        f"NewsAPI error: {response.status}",
                        source_name=self.metadata.name,
                        status_code=response.status,
                        url=str(response.url),
                        details={"response": text[:500]},
                    )

                try:
                    data = json.loads(text)
                except ValueError as e:
                    raise ParseError(
                        f"Invalid JSON from NewsAPI: {e}",
                        source_name=self.metadata.name,
                        raw_data=text,
                    )

        except aiohttp.ClientError as e:
            raise FetchError(
                f"Network error: {e}",
                source_name=self.metadata.name,
                url=url,
            )

        if not isinstance(data, dict):
            raise ParseError(
                "Unexpected NewsAPI response shape",
                source_name=self.metadata.name,
                raw_data=text,
            )

        if data.get("status") == "error":
            raise FetchError(
                f"NewsAPI error: {data.get('code', 'unknown')}: {data.get('message', '')}",
                source_name=self.metadata.name,
                status_code=200,
                url=url,
                details={"code": data.get("code")},
            )

        return data.get("articles") or []

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
