"""
Tests for the News Aggregator refresh cycle.

============================================================
TEST COVERAGE
============================================================
1. End-to-end snapshot assembly
2. Theme filtering and ordering
3. Quota split per keyword
4. Fan-out concurrency and the optional ceiling
5. All-or-nothing failure policy
6. Per-fetch timeout
============================================================
"""

import asyncio

import pytest

from news_feed.aggregator import NewsAggregator, split_quota
from news_feed.exceptions import (
    FetchError,
    FetchTimeoutError,
    RefreshError,
    ThemeSourceError,
)
from news_feed.models import Snapshot, Theme
from news_feed.themes import StaticThemeSource, ThemeSource

from .fakes import FakeNewsSource, epoch_ms, record


class FailingThemeSource(ThemeSource):
    async def get_all_themes(self):
        raise ThemeSourceError("registry down")

    def exists(self, theme_id):
        return False


# ============================================================
# END TO END
# ============================================================

class TestRefreshSnapshot:
    """Test snapshot assembly from headlines and theme keywords."""

    @pytest.mark.asyncio
    async def test_example_cycle(self, example_source, example_themes):
        aggregator = NewsAggregator(example_source, example_themes)

        snapshot = await aggregator.refresh()

        assert isinstance(snapshot, Snapshot)
        assert [a.title for a in snapshot.latest] == ["headline-early", "headline-late"]
        assert [a.published_at for a in snapshot.latest] == [epoch_ms(10), epoch_ms(50)]

        assert snapshot.theme_ids == [1]
        assert [a.title for a in snapshot.related[0].articles] == [
            "spring-c", "sakura-b", "spring-a", "sakura-a", "spring-b", "sakura-c",
        ]
        assert snapshot.articles_for(2) == ()

    @pytest.mark.asyncio
    async def test_headline_count_requested(self, example_source, example_themes):
        await NewsAggregator(example_source, example_themes).refresh()

        assert ("headlines", 15) in example_source.calls

    @pytest.mark.asyncio
    async def test_cycle_id_is_carried(self, example_source, example_themes):
        snapshot = await NewsAggregator(example_source, example_themes).refresh(cycle_id="abc")
        assert snapshot.cycle_id == "abc"

    @pytest.mark.asyncio
    async def test_empty_provider_results(self):
        source = FakeNewsSource()
        themes = StaticThemeSource([Theme(theme_id=5, keywords=("nothing",))])

        snapshot = await NewsAggregator(source, themes).refresh()

        assert snapshot.latest == ()
        assert snapshot.theme_ids == [5]
        assert snapshot.articles_for(5) == ()

    @pytest.mark.asyncio
    async def test_no_themes(self, example_source):
        snapshot = await NewsAggregator(example_source, StaticThemeSource()).refresh()

        assert len(snapshot.latest) == 2
        assert snapshot.related == ()

    @pytest.mark.asyncio
    async def test_keyword_ties_keep_keyword_order(self):
        source = FakeNewsSource(keyword_results={
            "first": [record("first-a", 10)],
            "second": [record("second-a", 10), record("second-b", 0)],
        })
        themes = StaticThemeSource([Theme(theme_id=1, keywords=("first", "second"))])

        snapshot = await NewsAggregator(source, themes).refresh()

        assert [a.title for a in snapshot.articles_for(1)] == [
            "second-b", "first-a", "second-a",
        ]

    @pytest.mark.asyncio
    async def test_undated_articles_last(self):
        source = FakeNewsSource(headlines=[record("undated"), record("dated", 3)])

        snapshot = await NewsAggregator(source, StaticThemeSource()).refresh()

        assert [a.title for a in snapshot.latest] == ["dated", "undated"]


# ============================================================
# THEME FILTERING
# ============================================================

class TestThemeFiltering:

    @pytest.mark.asyncio
    async def test_themes_without_keywords_excluded_in_order(self):
        source = FakeNewsSource(keyword_results={
            "a": [record("a", 1)],
            "c": [record("c", 1)],
            "e": [record("e", 1)],
        })
        themes = StaticThemeSource([
            Theme(theme_id=10, keywords=("a",)),
            Theme(theme_id=20, keywords=()),
            Theme(theme_id=30, keywords=("c",)),
            Theme(theme_id=40, keywords=()),
            Theme(theme_id=50, keywords=("e",)),
        ])

        snapshot = await NewsAggregator(source, themes).refresh()

        assert snapshot.theme_ids == [10, 30, 50]
        assert [kw for kw, _ in source.keyword_calls()] == ["a", "c", "e"]

    @pytest.mark.asyncio
    async def test_theme_list_read_every_cycle(self, example_source):
        themes = StaticThemeSource([Theme(theme_id=1, keywords=("sakura",))])
        aggregator = NewsAggregator(example_source, themes)

        first = await aggregator.refresh()
        themes.set_themes([Theme(theme_id=7, keywords=("spring",))])
        second = await aggregator.refresh()

        assert first.theme_ids == [1]
        assert second.theme_ids == [7]


# ============================================================
# QUOTA SPLIT
# ============================================================

class TestQuotaSplit:

    @pytest.mark.parametrize("keywords,expected", [
        (1, 6.0),
        (2, 3.0),
        (3, 2.0),
        (4, 1.5),
        (7, 6 / 7),
    ])
    def test_split_quota(self, keywords, expected):
        assert split_quota(6, keywords) == pytest.approx(expected)

    def test_split_quota_rejects_zero(self):
        with pytest.raises(ValueError):
            split_quota(6, 0)

    @pytest.mark.asyncio
    async def test_one_call_per_keyword_with_split_quota(self):
        source = FakeNewsSource()
        themes = StaticThemeSource([
            Theme(theme_id=1, keywords=("a", "b", "c")),
            Theme(theme_id=2, keywords=("d", "e", "f", "g")),
        ])

        await NewsAggregator(source, themes).refresh()

        calls = source.keyword_calls()
        assert [kw for kw, _ in calls] == ["a", "b", "c", "d", "e", "f", "g"]
        assert [count for kw, count in calls if kw in "abc"] == [2.0, 2.0, 2.0]
        assert [count for kw, count in calls if kw in "defg"] == [1.5, 1.5, 1.5, 1.5]

    @pytest.mark.asyncio
    async def test_custom_budget(self):
        source = FakeNewsSource()
        themes = StaticThemeSource([Theme(theme_id=1, keywords=("a", "b"))])

        await NewsAggregator(source, themes, theme_article_budget=10).refresh()

        assert [count for _, count in source.keyword_calls()] == [5.0, 5.0]


# ============================================================
# CONCURRENCY
# ============================================================

class TestFanOut:

    @pytest.mark.asyncio
    async def test_all_fetches_concurrent(self):
        source = FakeNewsSource(default_delay=0.02)
        themes = StaticThemeSource([
            Theme(theme_id=1, keywords=("a", "b")),
            Theme(theme_id=2, keywords=("c", "d", "e")),
        ])

        await NewsAggregator(source, themes).refresh()

        # 1 headline fetch + 5 keyword fetches in flight together
        assert source.max_in_flight == 6

    @pytest.mark.asyncio
    async def test_concurrency_ceiling(self):
        source = FakeNewsSource(default_delay=0.01)
        themes = StaticThemeSource([
            Theme(theme_id=1, keywords=("a", "b", "c", "d", "e", "f")),
        ])

        aggregator = NewsAggregator(source, themes, max_concurrent_fetches=2)
        await aggregator.refresh()

        assert source.max_in_flight <= 2
        assert len(source.calls) == 7
        assert aggregator.get_stats()["max_concurrent_fetches"] == 2


# ============================================================
# FAILURE POLICY
# ============================================================

class TestFailurePolicy:

    @pytest.mark.asyncio
    async def test_single_keyword_failure_aborts_cycle(self, example_source, example_themes):
        boom = FetchError("provider down", source_name="fake", status_code=500)
        example_source.failures["spring"] = boom
        aggregator = NewsAggregator(example_source, example_themes)

        with pytest.raises(RefreshError) as exc_info:
            await aggregator.refresh(cycle_id="c1")

        assert exc_info.value.cause is boom
        assert exc_info.value.cycle_id == "c1"
        stats = aggregator.get_stats()
        assert stats["failed_cycles"] == 1
        assert stats["successful_cycles"] == 0

    @pytest.mark.asyncio
    async def test_headline_failure_aborts_cycle(self, example_source, example_themes):
        example_source.failures["headlines"] = FetchError("nope")

        with pytest.raises(RefreshError):
            await NewsAggregator(example_source, example_themes).refresh()

    @pytest.mark.asyncio
    async def test_waits_for_all_fetches_before_failing(self, example_themes):
        source = FakeNewsSource(
            failures={"sakura": FetchError("fast failure")},
            delays={"spring": 0.05},
        )

        with pytest.raises(RefreshError):
            await NewsAggregator(source, example_themes).refresh()

        assert "spring" in source.completed
        assert source.in_flight == 0

    @pytest.mark.asyncio
    async def test_first_failure_in_submission_order_reported(self, example_themes):
        first = FetchError("sakura failed")
        second = FetchError("spring failed")
        source = FakeNewsSource(
            failures={"sakura": first, "spring": second},
            delays={"sakura": 0.03},
        )

        with pytest.raises(RefreshError) as exc_info:
            await NewsAggregator(source, example_themes).refresh()

        assert exc_info.value.cause is first

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, example_source, example_themes):
        example_source.failures["sakura"] = RuntimeError("bug")

        with pytest.raises(RefreshError) as exc_info:
            await NewsAggregator(example_source, example_themes).refresh()

        assert isinstance(exc_info.value.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_theme_source_failure(self, example_source):
        example_source.default_delay = 0.05

        with pytest.raises(RefreshError) as exc_info:
            await NewsAggregator(example_source, FailingThemeSource()).refresh()

        assert isinstance(exc_info.value.cause, ThemeSourceError)
        # the headline fetch started alongside the theme read is not left running
        await asyncio.sleep(0)
        assert example_source.in_flight == 0
        assert example_source.keyword_calls() == []

    @pytest.mark.asyncio
    async def test_recovers_on_next_cycle(self, example_source, example_themes):
        example_source.failures["sakura"] = FetchError("transient")
        aggregator = NewsAggregator(example_source, example_themes)

        with pytest.raises(RefreshError):
            await aggregator.refresh()

        del example_source.failures["sakura"]
        snapshot = await aggregator.refresh()

        assert snapshot.theme_ids == [1]
        assert aggregator.get_stats()["successful_cycles"] == 1


# ============================================================
# TIMEOUT
# ============================================================

class TestFetchTimeout:

    @pytest.mark.asyncio
    async def test_hung_fetch_times_out(self, example_themes):
        source = FakeNewsSource(delays={"spring": 5.0})
        aggregator = NewsAggregator(source, example_themes, fetch_timeout_seconds=0.05)

        with pytest.raises(RefreshError) as exc_info:
            await aggregator.refresh()

        cause = exc_info.value.cause
        assert isinstance(cause, FetchTimeoutError)
        assert cause.timeout_seconds == 0.05

    @pytest.mark.asyncio
    async def test_timeout_does_not_change_success_path(self, example_source, example_themes):
        with_timeout = await NewsAggregator(
            example_source, example_themes, fetch_timeout_seconds=5.0,
        ).refresh()
        without_timeout = await NewsAggregator(example_source, example_themes).refresh()

        assert with_timeout.to_dict() == without_timeout.to_dict()
