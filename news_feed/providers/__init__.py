"""News source providers."""

from .newsapi import NewsApiSource

__all__ = [
    "NewsApiSource",
]
