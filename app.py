#!/usr/bin/env python3
"""
News Feed Service - Main Application Entry Point.

============================================================
SINGLE ENTRYPOINT
============================================================
Wires configuration, logging, the NewsAPI source, the theme file, the
aggregator, the snapshot store, the refresh scheduler and the HTTP app
into one runtime.

============================================================
USAGE
============================================================
Serve the API (refresh at startup, then every 8 hours):
    python app.py

Run one refresh cycle and print a summary:
    python app.py --single-cycle

Environment-based configuration:
    NEWSAPI_KEY=... NEWS_THEMES_FILE=themes.yaml python app.py

============================================================
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from news_feed.aggregator import NewsAggregator
from news_feed.api import create_app
from news_feed.config import NewsFeedConfig
from news_feed.exceptions import ConfigurationError, NewsFeedError, ThemeSourceError
from news_feed.providers import NewsApiSource
from news_feed.scheduler import RefreshScheduler
from news_feed.store import SnapshotStore
from news_feed.themes import FileThemeSource


logger = logging.getLogger(__name__)


# ============================================================
# LOGGING
# ============================================================

def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ============================================================
# WIRING
# ============================================================

def build_source(config: NewsFeedConfig) -> NewsApiSource:
    return NewsApiSource(
        api_key=config.api_key,
        timeout=config.http_timeout_seconds,
        base_url=config.base_url,
        country=config.headline_country,
        category=config.headline_category,
        language=config.keyword_language,
    )


def build_aggregator(
    config: NewsFeedConfig,
    source: NewsApiSource,
    themes: FileThemeSource,
) -> NewsAggregator:
    return NewsAggregator(
        source,
        themes,
        headline_count=config.headline_count,
        theme_article_budget=config.theme_article_budget,
        max_concurrent_fetches=config.max_concurrent_fetches,
        fetch_timeout_seconds=config.fetch_timeout_seconds,
    )


def preload_themes(themes: FileThemeSource) -> None:
    """Load the theme file once so theme lookups work before the first cycle."""
    try:
        loaded = themes.load()
        logger.info(f"Loaded {len(loaded)} themes from {themes.path}")
    except ThemeSourceError as e:
        logger.error(f"Theme file not loaded: {e}")


# ============================================================
# MODES
# ============================================================

async def run_single_cycle(config: NewsFeedConfig) -> int:
    """Run one refresh cycle and print a summary."""
    source = build_source(config)
    themes = FileThemeSource(config.themes_file)
    aggregator = build_aggregator(config, source, themes)

    try:
        snapshot = await aggregator.refresh()
    except NewsFeedError as e:
        logger.error(f"Refresh failed: {e}")
        return 1
    finally:
        await source.close()

    print(json.dumps({
        "cycle_id": snapshot.cycle_id,
        "headlines": len(snapshot.latest),
        "themes": {str(r.theme_id): len(r.articles) for r in snapshot.related},
    }, indent=2))
    return 0


def serve(config: NewsFeedConfig) -> int:
    """Run the HTTP app with the refresh scheduler."""
    import uvicorn

    source = build_source(config)
    themes = FileThemeSource(config.themes_file)
    preload_themes(themes)

    store = SnapshotStore()
    scheduler = RefreshScheduler(
        build_aggregator(config, source, themes),
        store,
        interval_seconds=config.refresh_interval_seconds,
        allow_overlap=config.allow_overlap,
    )
    app = create_app(store, themes, scheduler, source=source)

    uvicorn.run(app, host=config.host, port=config.port, log_level=config.log_level.lower())
    return 0


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="News feed snapshot service")
    parser.add_argument(
        "--single-cycle",
        action="store_true",
        help="Run one refresh cycle, print a summary and exit",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Validate configuration and exit",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = create_parser().parse_args(argv)
    try:
        config = NewsFeedConfig.from_env()
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    setup_logging(config.log_level)

    errors = config.validate()
    if errors:
        for error in errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    if args.check_config:
        print("Configuration OK")
        return 0

    if args.single_cycle:
        return asyncio.run(run_single_cycle(config))

    return serve(config)


if __name__ == "__main__":
    sys.exit(main())
