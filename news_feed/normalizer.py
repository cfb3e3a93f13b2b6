"""
Article Normalizer - Converts provider records into Article values.

Provider records have every field optional. Normalization is total: any
input, including None or a non-mapping, yields an Article with string
fields defaulted to "" and a NaN timestamp when none can be parsed.
"""

import math
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable, Optional

from .models import Article


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
ONE_MILLISECOND = timedelta(milliseconds=1)


def parse_timestamp(value: Any) -> float:
    """
    Parse an ISO-8601 timestamp into epoch milliseconds.

    Accepts a trailing "Z", explicit offsets and date-only strings.
    Timestamps without an offset are read as UTC. Returns NaN for
    anything that cannot be parsed.
    """
    if not isinstance(value, str) or not value.strip():
        return math.nan

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return math.nan

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    try:
        return float((parsed - EPOCH) // ONE_MILLISECOND)
    except (OverflowError, ValueError):
        return math.nan


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _source_name(value: Any) -> str:
    if isinstance(value, Mapping):
        return _text(value.get("name"))
    return ""


def normalize_article(raw: Optional[Mapping[str, Any]]) -> Article:
    """
    Convert one provider article record to an Article.

    Never raises.
    """
    if not isinstance(raw, Mapping):
        raw = {}

    return Article(
        source=_source_name(raw.get("source")),
        author=_text(raw.get("author")),
        title=_text(raw.get("title")),
        description=_text(raw.get("description")),
        uri=_text(raw.get("url")),
        uri_to_image=_text(raw.get("urlToImage")),
        published_at=parse_timestamp(raw.get("publishedAt")),
    )


def normalize_articles(records: Iterable[Optional[Mapping[str, Any]]]) -> list[Article]:
    """Normalize a sequence of provider records, preserving order."""
    return [normalize_article(record) for record in records]


def _sort_key(article: Article) -> tuple[bool, float]:
    # Undated articles go last; 0.0 keeps NaN out of the comparison.
    if article.has_timestamp:
        return (False, article.published_at)
    return (True, 0.0)


def sort_articles(articles: Iterable[Article]) -> list[Article]:
    """
    Sort ascending by published_at.

    The sort is stable, so equal timestamps keep their input order.
    Articles without a timestamp are placed after every dated article,
    also in input order.
    """
    return sorted(articles, key=_sort_key)
