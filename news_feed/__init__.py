"""
News Feed - Periodically refreshed in-memory news snapshot.

This package provides:
- NewsAPI source for top headlines and keyword search
- Theme sources (static, YAML file)
- Aggregator that fans out per theme keyword and merges by timestamp
- Single-slot snapshot store with atomic publish
- Scheduler running a refresh at startup and every 8 hours
- FastAPI router serving the current snapshot

Usage:
    from news_feed import (
        FileThemeSource, NewsAggregator, NewsApiSource,
        RefreshScheduler, SnapshotStore,
    )

    store = SnapshotStore()
    aggregator = NewsAggregator(
        NewsApiSource(api_key="..."),
        FileThemeSource("themes.yaml"),
    )
    scheduler = RefreshScheduler(aggregator, store)
    await scheduler.start()

    snapshot = store.current()  # None until the first cycle completes
    if snapshot:
        print(len(snapshot.latest), snapshot.theme_ids)

Snapshot shape:
- latest: headline articles, ascending by publishedAt
- related: [{themeID, articles}] for every theme with keywords
"""

from .aggregator import NewsAggregator, split_quota
from .base import BaseNewsSource
from .config import NewsFeedConfig
from .exceptions import (
    AuthenticationError,
    ConfigurationError,
    FetchError,
    FetchTimeoutError,
    NewsFeedError,
    ParseError,
    RateLimitError,
    RefreshError,
    ThemeSourceError,
)
from .models import (
    Article,
    CycleRecord,
    Snapshot,
    SourceMetadata,
    Theme,
    ThemeArticles,
)
from .normalizer import normalize_article, parse_timestamp, sort_articles
from .providers import NewsApiSource
from .scheduler import RefreshScheduler
from .store import SnapshotStore
from .themes import FileThemeSource, StaticThemeSource, ThemeSource


__all__ = [
    # Base
    "BaseNewsSource",

    # Providers
    "NewsApiSource",

    # Themes
    "ThemeSource",
    "StaticThemeSource",
    "FileThemeSource",

    # Engine
    "NewsAggregator",
    "SnapshotStore",
    "RefreshScheduler",
    "split_quota",

    # Normalization
    "normalize_article",
    "parse_timestamp",
    "sort_articles",

    # Config
    "NewsFeedConfig",

    # Models
    "Article",
    "Theme",
    "ThemeArticles",
    "Snapshot",
    "SourceMetadata",
    "CycleRecord",

    # Exceptions
    "NewsFeedError",
    "FetchError",
    "RateLimitError",
    "AuthenticationError",
    "FetchTimeoutError",
    "ParseError",
    "ThemeSourceError",
    "RefreshError",
    "ConfigurationError",
]


# Version
__version__ = "1.0.0"
