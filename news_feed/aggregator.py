"""
News Aggregator - Builds one complete Snapshot per refresh cycle.

One cycle:
1. Fetch top headlines
2. Read the theme list, drop themes without keywords
3. Fetch every theme keyword concurrently, splitting the theme budget
   evenly across its keywords
4. Merge each theme's keyword results and sort by timestamp
5. Assemble the Snapshot

The headline fetch and all keyword fetches run concurrently and the
cycle waits for every one of them to settle. Fan-out is all-or-nothing:
if any fetch (or the theme read) fails, refresh() raises RefreshError
and no snapshot is produced.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional
from uuid import uuid4

from .base import BaseNewsSource
from .exceptions import FetchTimeoutError, RefreshError
from .models import Snapshot, Theme, ThemeArticles
from .normalizer import normalize_articles, sort_articles
from .themes import ThemeSource


logger = logging.getLogger(__name__)


def split_quota(budget: float, keyword_count: int) -> float:
    """Per-keyword request count for a theme with keyword_count keywords."""
    if keyword_count <= 0:
        raise ValueError("keyword_count must be positive")
    return budget / keyword_count


class NewsAggregator:
    """
    Orchestrates a refresh cycle across the news source and theme source.

    Usage:
        aggregator = NewsAggregator(NewsApiSource(api_key=...), FileThemeSource("themes.yaml"))
        snapshot = await aggregator.refresh()
    """

    HEADLINE_COUNT = 15
    THEME_ARTICLE_BUDGET = 6

    def __init__(
        self,
        source: BaseNewsSource,
        theme_source: ThemeSource,
        headline_count: Optional[int] = None,
        theme_article_budget: Optional[int] = None,
        max_concurrent_fetches: Optional[int] = None,
        fetch_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._source = source
        self._theme_source = theme_source
        self.headline_count = headline_count or self.HEADLINE_COUNT
        self.theme_article_budget = theme_article_budget or self.THEME_ARTICLE_BUDGET
        self.fetch_timeout_seconds = fetch_timeout_seconds
        self.max_concurrent_fetches = max_concurrent_fetches

        # None means no ceiling on in-flight fetches
        self._semaphore: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(max_concurrent_fetches)
            if max_concurrent_fetches else None
        )

        # Statistics
        self._stats = {
            "total_cycles": 0,
            "successful_cycles": 0,
            "failed_cycles": 0,
            "fetches_issued": 0,
        }
        self._last_duration_ms: Optional[float] = None

    # ─────────────────────────────────────────────────────────────
    # Public API
    # ─────────────────────────────────────────────────────────────

    async def refresh(self, cycle_id: Optional[str] = None) -> Snapshot:
        """
        Run one full refresh cycle.

        Returns:
            A complete Snapshot

        Raises:
            RefreshError: any fetch or the theme read failed
        """
        cycle_id = cycle_id or uuid4().hex[:12]
        self._stats["total_cycles"] += 1
        started_at = datetime.utcnow()

        logger.info(f"Starting refresh cycle {cycle_id}")

        try:
            snapshot = await self._build_snapshot(cycle_id)
        except RefreshError:
            self._stats["failed_cycles"] += 1
            raise

        self._stats["successful_cycles"] += 1
        self._last_duration_ms = (datetime.utcnow() - started_at).total_seconds() * 1000
        logger.info(
            f"Refresh cycle {cycle_id} completed in {self._last_duration_ms:.0f}ms. "
            f"Headlines: {len(snapshot.latest)}, "
            f"Themes: {len(snapshot.related)}, "
            f"Related articles: {sum(len(r.articles) for r in snapshot.related)}"
        )
        return snapshot

    def get_stats(self) -> dict[str, Any]:
        """Get aggregator statistics."""
        return {
            **self._stats,
            "last_cycle_duration_ms": self._last_duration_ms,
            "max_concurrent_fetches": self.max_concurrent_fetches,
            "fetch_timeout_seconds": self.fetch_timeout_seconds,
            "source_stats": self._source.get_stats(),
        }

    # ─────────────────────────────────────────────────────────────
    # Internal methods
    # ─────────────────────────────────────────────────────────────

    async def _build_snapshot(self, cycle_id: str) -> Snapshot:
        headline_task = asyncio.create_task(
            self._fetch(self._source.fetch_headlines, self.headline_count),
            name=f"{cycle_id}:headlines",
        )

        try:
            themes = await self._theme_source.get_all_themes()
        except Exception as e:
            headline_task.cancel()
            await asyncio.gather(headline_task, return_exceptions=True)
            raise RefreshError(
                f"Refresh cycle {cycle_id} failed reading themes: {e}",
                cycle_id=cycle_id,
                cause=e,
            ) from e

        news_themes = [theme for theme in themes if theme.has_keywords]
        skipped = len(themes) - len(news_themes)
        if skipped:
            logger.debug(f"Cycle {cycle_id}: skipping {skipped} themes without keywords")

        keyword_coros = []
        for theme in news_themes:
            quota = split_quota(self.theme_article_budget, len(theme.keywords))
            for keyword in theme.keywords:
                keyword_coros.append(
                    self._fetch(self._source.fetch_by_keyword, keyword, quota)
                )

        results = await asyncio.gather(
            headline_task,
            *keyword_coros,
            return_exceptions=True,
        )

        # First failure in submission order decides the reported cause
        for result in results:
            if isinstance(result, BaseException):
                raise RefreshError(
                    f"Refresh cycle {cycle_id} aborted: {result}",
                    cycle_id=cycle_id,
                    cause=result,
                ) from result

        headlines = sort_articles(normalize_articles(results[0]))
        related = self._merge_themes(news_themes, results[1:])

        return Snapshot(
            latest=tuple(headlines),
            related=tuple(related),
            cycle_id=cycle_id,
        )

    def _merge_themes(
        self,
        themes: list[Theme],
        keyword_results: list[list[dict[str, Any]]],
    ) -> list[ThemeArticles]:
        """Group flat keyword results back per theme, then normalize and sort."""
        related: list[ThemeArticles] = []
        offset = 0
        for theme in themes:
            records: list[dict[str, Any]] = []
            for result in keyword_results[offset:offset + len(theme.keywords)]:
                records.extend(result)
            offset += len(theme.keywords)

            related.append(ThemeArticles(
                theme_id=theme.theme_id,
                articles=tuple(sort_articles(normalize_articles(records))),
            ))
        return related

    async def _fetch(
        self,
        fetch: Callable[..., Awaitable[list[dict[str, Any]]]],
        *args: Any,
    ) -> list[dict[str, Any]]:
        """Run one fetch under the optional concurrency ceiling and timeout."""
        self._stats["fetches_issued"] += 1

        if self._semaphore is None:
            return await self._with_timeout(fetch(*args))

        async with self._semaphore:
            return await self._with_timeout(fetch(*args))

    async def _with_timeout(
        self,
        request: Awaitable[list[dict[str, Any]]],
    ) -> list[dict[str, Any]]:
        if self.fetch_timeout_seconds is None:
            return list(await request or [])

        try:
            result = await asyncio.wait_for(request, timeout=self.fetch_timeout_seconds)
        except asyncio.TimeoutError:
            raise FetchTimeoutError(
                f"Fetch timed out after {self.fetch_timeout_seconds}s",
                source_name=self._source.metadata.name,
                timeout_seconds=self.fetch_timeout_seconds,
            )
        return list(result or [])
