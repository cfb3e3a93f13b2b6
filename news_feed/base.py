"""
Base News Source - Abstract interface for all news provider adapters.

Sources return raw provider article records; normalization happens in
the aggregator. Unlike a best-effort feed, a source NEVER swallows a
failure: network and provider errors are raised to the caller so a
refresh cycle can be aborted as a whole.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from .exceptions import NewsFeedError
from .models import SourceMetadata


logger = logging.getLogger(__name__)


class BaseNewsSource(ABC):
    """
    Abstract base class for news sources.

    All subclasses must implement:
    - _request_headlines() - top headlines for the configured region
    - _request_by_keyword() - full-text search for one keyword
    - metadata - Source metadata property
    """

    DEFAULT_TIMEOUT = 30  # seconds

    def __init__(
        self,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout or self.DEFAULT_TIMEOUT

        self._last_success: Optional[datetime] = None
        self._last_error: Optional[str] = None

        # Statistics
        self._stats = {
            "total_requests": 0,
            "headline_requests": 0,
            "keyword_requests": 0,
            "errors": 0,
            "articles_fetched": 0,
        }

    @property
    @abstractmethod
    def metadata(self) -> SourceMetadata:
        """Return source metadata."""
        pass

    @abstractmethod
    async def _request_headlines(self, count: float) -> list[dict[str, Any]]:
        """Fetch raw top-headline records. Raise on failure."""
        pass

    @abstractmethod
    async def _request_by_keyword(
        self,
        keyword: str,
        count: float,
    ) -> list[dict[str, Any]]:
        """Fetch raw records matching keyword. Raise on failure."""
        pass

    # ─────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────

    async def fetch_headlines(self, count: float) -> list[dict[str, Any]]:
        """
        Fetch up to count top-headline records.

        Returns an empty list (never None) when the provider reports no
        results. Raises FetchError subclasses on failure.
        """
        self._stats["headline_requests"] += 1
        return await self._tracked(self._request_headlines(count))

    async def fetch_by_keyword(
        self,
        keyword: str,
        count: float,
    ) -> list[dict[str, Any]]:
        """
        Fetch up to count records matching keyword, by relevance.

        Returns an empty list when nothing matches. Raises FetchError
        subclasses on failure.
        """
        self._stats["keyword_requests"] += 1
        return await self._tracked(self._request_by_keyword(keyword, count))

    def get_stats(self) -> dict[str, Any]:
        """Get source statistics."""
        total = self._stats["total_requests"]
        error_rate = (
            self._stats["errors"] / total * 100
            if total > 0 else 0
        )

        return {
            **self._stats,
            "error_rate_pct": round(error_rate, 2),
            "last_success": self._last_success.isoformat() if self._last_success else None,
            "last_error": self._last_error,
            "source_name": self.metadata.name,
        }

    # ─────────────────────────────────────────────────────────────
    # Internal methods
    # ─────────────────────────────────────────────────────────────

    async def _tracked(self, request) -> list[dict[str, Any]]:
        self._stats["total_requests"] += 1
        try:
            records = await request
        except NewsFeedError as e:
            self._record_error(e)
            raise
        except Exception as e:
            self._record_error(e)
            logger.error(f"[{self.metadata.name}] Unexpected error: {e}")
            raise

        records = records or []
        self._stats["articles_fetched"] += len(records)
        self._last_success = datetime.utcnow()
        return records

    def _record_error(self, error: BaseException) -> None:
        self._stats["errors"] += 1
        self._last_error = str(error)

    async def close(self) -> None:
        """Cleanup resources. Override if needed."""
        pass
