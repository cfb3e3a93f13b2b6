"""
News Feed - Configuration.

============================================================
CONFIGURABLE REFRESH ENGINE
============================================================

Configuration can be loaded from:
- Default values
- Environment variables (a .env file is honoured)

The provider credential is read from NEWSAPI_KEY. Its absence is not
an error here: fetches fail with an authentication error instead.

============================================================
"""

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError


logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_optional_int(name: str) -> Optional[int]:
    value = os.getenv(name, "").strip()
    return int(value) if value else None


def _env_optional_float(name: str) -> Optional[float]:
    value = os.getenv(name, "").strip()
    return float(value) if value else None


@dataclass
class NewsFeedConfig:
    """Configuration for the news refresh engine and its HTTP surface."""

    # Provider
    api_key: str = ""
    """NewsAPI credential."""

    base_url: str = "https://newsapi.org/v2"
    """NewsAPI base URL."""

    headline_country: str = "jp"
    """Country for top headlines."""

    headline_category: str = "general"
    """Category for top headlines."""

    keyword_language: str = "jp"
    """Language filter for keyword search."""

    http_timeout_seconds: float = 30.0
    """Total aiohttp timeout per provider request."""

    # Aggregation
    headline_count: int = 15
    """Headlines requested per cycle."""

    theme_article_budget: int = 6
    """Per-theme article target, split evenly across its keywords."""

    max_concurrent_fetches: Optional[int] = None
    """Ceiling on in-flight fetches within a cycle. None = unbounded."""

    fetch_timeout_seconds: Optional[float] = None
    """Per-fetch timeout applied by the aggregator. None = no timeout."""

    # Scheduling
    refresh_interval_seconds: float = 8 * 60 * 60
    """Interval between refresh cycles."""

    allow_overlap: bool = False
    """Allow a new cycle to start while the previous one is in flight."""

    # Themes
    themes_file: str = "themes.yaml"
    """YAML file holding the theme registry."""

    # Runtime
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "NewsFeedConfig":
        """
        Load configuration from environment variables.

        Raises:
            ConfigurationError: a numeric variable does not parse
        """
        load_dotenv()
        try:
            return cls._from_environ()
        except ValueError as e:
            raise ConfigurationError(f"Invalid environment configuration: {e}")

    @classmethod
    def _from_environ(cls) -> "NewsFeedConfig":
        return cls(
            api_key=os.getenv("NEWSAPI_KEY", ""),
            base_url=os.getenv("NEWSAPI_BASE_URL", "https://newsapi.org/v2"),
            headline_country=os.getenv("NEWS_HEADLINE_COUNTRY", "jp"),
            headline_category=os.getenv("NEWS_HEADLINE_CATEGORY", "general"),
            keyword_language=os.getenv("NEWS_KEYWORD_LANGUAGE", "jp"),
            http_timeout_seconds=float(os.getenv("NEWS_HTTP_TIMEOUT_SECONDS", "30")),
            headline_count=int(os.getenv("NEWS_HEADLINE_COUNT", "15")),
            theme_article_budget=int(os.getenv("NEWS_THEME_BUDGET", "6")),
            max_concurrent_fetches=_env_optional_int("NEWS_MAX_CONCURRENT_FETCHES"),
            fetch_timeout_seconds=_env_optional_float("NEWS_FETCH_TIMEOUT_SECONDS"),
            refresh_interval_seconds=float(os.getenv("NEWS_REFRESH_INTERVAL_SECONDS", str(8 * 60 * 60))),
            allow_overlap=_env_bool("NEWS_ALLOW_OVERLAP", "false"),
            themes_file=os.getenv("NEWS_THEMES_FILE", "themes.yaml"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
        )

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        errors = []

        if self.headline_count < 1:
            errors.append("headline_count must be at least 1")

        if self.theme_article_budget < 1:
            errors.append("theme_article_budget must be at least 1")

        if self.refresh_interval_seconds <= 0:
            errors.append("refresh_interval_seconds must be positive")

        if self.http_timeout_seconds <= 0:
            errors.append("http_timeout_seconds must be positive")

        if self.max_concurrent_fetches is not None and self.max_concurrent_fetches < 1:
            errors.append("max_concurrent_fetches must be at least 1 when set")

        if self.fetch_timeout_seconds is not None and self.fetch_timeout_seconds <= 0:
            errors.append("fetch_timeout_seconds must be positive when set")

        if not 0 < self.port < 65536:
            errors.append("port must be between 1 and 65535")

        if not self.api_key:
            logger.warning("NEWSAPI_KEY is not set; fetches will fail authentication")

        return errors
