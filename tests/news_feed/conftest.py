"""
Shared fixtures for news feed tests.
"""

import pytest

from news_feed.models import Theme
from news_feed.themes import StaticThemeSource

from .fakes import FakeNewsSource, record


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def example_themes():
    """Theme 1 has two keywords, theme 2 has none."""
    return StaticThemeSource([
        Theme(theme_id=1, keywords=("sakura", "spring")),
        Theme(theme_id=2, keywords=()),
    ])


@pytest.fixture
def example_source():
    """Two headlines and three records per keyword, distinct timestamps."""
    return FakeNewsSource(
        headlines=[record("headline-late", 50), record("headline-early", 10)],
        keyword_results={
            "sakura": [record("sakura-a", 30), record("sakura-b", 5), record("sakura-c", 60)],
            "spring": [record("spring-a", 20), record("spring-b", 45), record("spring-c", 1)],
        },
    )
