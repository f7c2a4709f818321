"""Tests for crawl-window validation and the end-to-end crawl orchestration."""

import asyncio
from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from pmnews.errors import InvalidRequestError
from pmnews.news.crawler import run_crawl, validate_date_range
from pmnews.tools.news_fetcher import FetchReport


def _fetcher(articles, render_enabled=False):
    fetcher = Mock()
    fetcher.render_enabled = render_enabled
    fetcher.fetch_all = AsyncMock(return_value=FetchReport(articles=articles))
    return fetcher


class TestValidateDateRange:

    def test_valid_window(self, settings):
        assert validate_date_range("2026-02-01", "2026-02-07", settings) == (date(2026, 2, 1), date(2026, 2, 7))

    def test_full_iso_timestamps_use_date_part(self, settings):
        start, end = validate_date_range("2026-02-01T15:00:00Z", "2026-02-07T00:00:00.000Z", settings)
        assert (start, end) == (date(2026, 2, 1), date(2026, 2, 7))

    @pytest.mark.parametrize("start,end", [(None, "2026-02-07"), ("2026-02-01", ""), (None, None)])
    def test_both_dates_required(self, settings, start, end):
        with pytest.raises(InvalidRequestError, match="required"):
            validate_date_range(start, end, settings)

    @pytest.mark.parametrize("start", ["02/01/2026", "2026-02-01garbage", "2026-02-01T25:00:00Z", "2026-13-01"])
    def test_unparseable_date(self, settings, start):
        with pytest.raises(InvalidRequestError, match="YYYY-MM-DD"):
            validate_date_range(start, "2026-02-07", settings)

    def test_start_after_end(self, settings):
        with pytest.raises(InvalidRequestError, match="before"):
            validate_date_range("2026-02-08", "2026-02-07", settings)

    def test_span_limit(self, settings):
        validate_date_range("2026-01-01", "2026-04-01", settings)  # 90 days
        with pytest.raises(InvalidRequestError, match="90 days"):
            validate_date_range("2026-01-01", "2026-04-02", settings)

    def test_minimum_start_date(self, settings, settings_factory):
        with pytest.raises(InvalidRequestError, match="2025-01-01"):
            validate_date_range("2024-12-31", "2025-01-05", settings)

        unrestricted = settings_factory(min_crawl_start_date="")
        assert validate_date_range("2024-12-31", "2025-01-05", unrestricted)[0] == date(2024, 12, 31)


class TestRunCrawl:

    def test_invalid_window_fetches_nothing(self, db, settings):
        fetcher = _fetcher([])
        with pytest.raises(InvalidRequestError):
            asyncio.run(run_crawl("2026-02-07", "2026-02-01", db=db, fetcher=fetcher, settings=settings))
        fetcher.fetch_all.assert_not_called()

    def test_stats_and_persistence(self, db, settings, candidate):
        articles = [
            candidate(url="https://a.example/news/match"),
            candidate(url="https://a.example/news/undated-match", published_at=None),
            candidate(url="https://a.example/news/other", headline="City council approves new park",
                      body_text="Residents welcome the plan."),
            candidate(url="https://a.example/news/too-old",
                      published_at=datetime(2025, 12, 1, tzinfo=timezone.utc)),
        ]

        result = asyncio.run(run_crawl(
            "2026-02-01", "2026-02-07", db=db, fetcher=_fetcher(articles), settings=settings,
        ))

        assert result.success
        assert result.stats.total == 4
        assert result.stats.within_date_range == 3
        assert result.stats.matching == 2
        assert result.stats.non_matching == result.stats.within_date_range - result.stats.matching
        assert result.inserted.matching == 2
        assert result.inserted.non_matching == 1
        assert result.inserted.errors == []

        assert {r.url for r in db.list_news_raw()} == {
            "https://a.example/news/match", "https://a.example/news/undated-match",
        }
        assert [r.source_url for r in db.list_news_to_process()] == ["https://a.example/news/other"]

    def test_response_shape_uses_camel_case(self, db, settings):
        result = asyncio.run(run_crawl("2026-02-01", "2026-02-07", db=db, fetcher=_fetcher([]), settings=settings))
        body = result.model_dump(by_alias=True)

        assert set(body["stats"]) == {"total", "withinDateRange", "matching", "nonMatching"}
        assert set(body["inserted"]) == {"matching", "nonMatching", "errors"}

    def test_message_reports_render_capability(self, db, settings):
        off = asyncio.run(run_crawl("2026-02-01", "2026-02-07", db=db, fetcher=_fetcher([]), settings=settings))
        on = asyncio.run(run_crawl(
            "2026-02-01", "2026-02-07", db=db, fetcher=_fetcher([], render_enabled=True), settings=settings,
        ))

        assert "unavailable" in off.message
        assert "primary" in on.message

    def test_store_failure_is_reported_not_raised(self, settings, candidate):
        db = Mock()
        db.upsert_news_raw.side_effect = RuntimeError("connection lost")

        result = asyncio.run(run_crawl(
            "2026-02-01", "2026-02-07", db=db, fetcher=_fetcher([candidate()]), settings=settings,
        ))

        assert result.success
        assert result.inserted.matching == 0
        assert result.inserted.errors == ["Failed to insert matching articles"]

    def test_short_headline_from_render_is_never_stored(self, db, settings_factory, firecrawl_factory, page):
        from pmnews.config import get_sources
        from pmnews.tools.news_fetcher import NewsFetcher

        settings = settings_factory(firecrawl_api_key="fc-key")
        pei = get_sources(["pei"])[0]
        short = f"{pei.url}/deals/2026/02/03/x"
        good = f"{pei.url}/deals/2026/02/03/fund-close"
        firecrawl = firecrawl_factory({
            pei.url: page(pei.url, links=[short, good]),
            short: page(short, markdown="# Deal\n\nA buyout firm closed a fund."),
            good: page(good, markdown="# Fund reaches final close at $2B\n\nA buyout firm closed a fund."),
        })
        fetcher = NewsFetcher(settings=settings, firecrawl=firecrawl)

        result = asyncio.run(run_crawl(
            "2026-02-01", "2026-02-07", db=db, fetcher=fetcher, settings=settings, source_ids=["pei"],
        ))

        assert result.stats.total == 1
        assert [r.url for r in db.list_news_raw()] == [good]
        assert db.list_news_to_process() == []
