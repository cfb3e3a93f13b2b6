"""
News Feed Data Models - Normalized article and snapshot structures.

Snapshots are built wholly within one refresh cycle and never mutated
afterwards, so every model that ends up inside one is frozen and holds
tuples rather than lists.
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional


@dataclass(frozen=True)
class Article:
    """
    Normalized news article.

    published_at is epoch milliseconds, or NaN when the provider gave
    no usable timestamp.
    """
    source: str = ""
    author: str = ""
    title: str = ""
    description: str = ""
    uri: str = ""
    uri_to_image: str = ""
    published_at: float = math.nan

    @property
    def has_timestamp(self) -> bool:
        return not math.isnan(self.published_at)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the wire shape served to clients."""
        return {
            "source": self.source,
            "author": self.author,
            "title": self.title,
            "description": self.description,
            "uri": self.uri,
            "uriToImage": self.uri_to_image,
            # JSON has no NaN
            "publishedAt": self.published_at if self.has_timestamp else None,
        }


@dataclass(frozen=True)
class Theme:
    """A topic definition supplied by the theme source."""
    theme_id: int
    keywords: tuple[str, ...] = ()

    @property
    def has_keywords(self) -> bool:
        return len(self.keywords) > 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Theme":
        """Create from a {themeID, keywords} mapping."""
        theme_id = data.get("themeID", data.get("theme_id"))
        if theme_id is None:
            raise ValueError("theme is missing themeID")
        keywords = data.get("keywords")
        if keywords is None:
            keywords = []
        if not isinstance(keywords, (list, tuple)):
            raise ValueError("keywords must be a list")
        for keyword in keywords:
            if not isinstance(keyword, str) or not keyword.strip():
                raise ValueError(f"invalid keyword {keyword!r}")
        return cls(
            theme_id=int(theme_id),
            keywords=tuple(k.strip() for k in keywords),
        )


@dataclass(frozen=True)
class ThemeArticles:
    """Articles related to one theme, ascending by published_at."""
    theme_id: int
    articles: tuple[Article, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "themeID": self.theme_id,
            "articles": [a.to_dict() for a in self.articles],
        }


@dataclass(frozen=True)
class Snapshot:
    """
    Complete result of one refresh cycle.

    latest: headline articles, ascending by published_at
    related: one entry per theme with at least one keyword, in theme
        source order
    """
    latest: tuple[Article, ...]
    related: tuple[ThemeArticles, ...]
    cycle_id: str = ""
    created_at: datetime = field(default_factory=datetime.utcnow)

    def articles_for(self, theme_id: int) -> tuple[Article, ...]:
        """Articles for a theme, empty if the theme is not in this snapshot."""
        for entry in self.related:
            if entry.theme_id == theme_id:
                return entry.articles
        return ()

    @property
    def theme_ids(self) -> list[int]:
        return [entry.theme_id for entry in self.related]

    def to_dict(self) -> dict[str, Any]:
        """Convert to the {latest, related} wire shape."""
        return {
            "latest": [a.to_dict() for a in self.latest],
            "related": [r.to_dict() for r in self.related],
        }


@dataclass
class SourceMetadata:
    """Metadata about a news source."""
    name: str
    display_name: str
    version: str
    base_url: str = ""
    documentation_url: str = ""
    requires_api_key: bool = True
    max_page_size: int = 100
    tags: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "display_name": self.display_name,
            "version": self.version,
            "base_url": self.base_url,
            "requires_api_key": self.requires_api_key,
            "max_page_size": self.max_page_size,
            "tags": self.tags,
        }


@dataclass
class CycleRecord:
    """Record of one scheduled refresh run."""
    cycle_id: str
    started_at: datetime
    finished_at: Optional[datetime] = None
    success: bool = False
    error: Optional[str] = None
    article_count: int = 0
    theme_count: int = 0

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle_id": self.cycle_id,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "duration_seconds": self.duration_seconds,
            "success": self.success,
            "error": self.error,
            "article_count": self.article_count,
            "theme_count": self.theme_count,
        }
