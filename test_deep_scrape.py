"""Tests for on-demand deep scraping of stored articles."""

import asyncio
from unittest.mock import Mock, patch

import pytest

from pmnews.errors import InvalidRequestError, NotConfiguredError, PersistenceError, UpstreamError
from pmnews.news.scraper import deep_scrape
from pmnews.shared import concurrency


def _store(db, candidate, count):
    db.upsert_news_raw([candidate(url=f"https://a.example/news/{i}", body_text="snippet") for i in range(count)])
    return {r.url: r.id for r in db.list_news_raw()}


class TestValidation:

    def test_eleven_ids_rejected_before_any_fetch(self, settings, firecrawl_factory):
        firecrawl = firecrawl_factory()
        db = Mock()

        with pytest.raises(InvalidRequestError, match="Maximum 10"):
            asyncio.run(deep_scrape([f"id-{i}" for i in range(11)], db=db, firecrawl=firecrawl, settings=settings))

        assert firecrawl.calls == []
        db.get_articles_by_ids.assert_not_called()

    @pytest.mark.parametrize("ids", [None, [], "not-a-list", [""]])
    def test_bad_id_lists(self, settings, firecrawl_factory, ids):
        with pytest.raises(InvalidRequestError):
            asyncio.run(deep_scrape(ids, db=Mock(), firecrawl=firecrawl_factory(), settings=settings))

    def test_missing_render_key_is_not_configured(self, settings, firecrawl_factory):
        db = Mock()
        with pytest.raises(NotConfiguredError):
            asyncio.run(deep_scrape(["id-1"], db=db, firecrawl=firecrawl_factory(configured=False), settings=settings))
        db.get_articles_by_ids.assert_not_called()


class TestDeepScrape:

    def test_outcomes_per_id(self, db, settings, candidate, firecrawl_factory, page):
        ids = _store(db, candidate, 3)
        ok_url, failing_url, empty_url = sorted(ids)
        firecrawl = firecrawl_factory({
            ok_url: page(ok_url, markdown="# Title\n\n" + "Full **article** text. " * 400),
            failing_url: UpstreamError("HTTP 500"),
            empty_url: page(empty_url, markdown=""),
        })
        requested = [ids[ok_url], ids[failing_url], ids[empty_url], "unknown-id"]

        result = asyncio.run(deep_scrape(requested, db=db, firecrawl=firecrawl, settings=settings))

        by_id = {r.id: r for r in result.results}
        assert [r.id for r in result.results] == requested
        assert by_id[ids[ok_url]].success
        assert len(by_id[ids[ok_url]].body_text) == 5000
        assert "**" not in by_id[ids[ok_url]].body_text
        assert by_id[ids[failing_url]].error == "scrape failed"
        assert by_id[ids[empty_url]].error == "scrape failed"
        assert by_id["unknown-id"].error == "article not found"
        assert by_id["unknown-id"].body_text is None
        assert (result.stats.success, result.stats.failed) == (1, 3)
        assert result.message == "Deep scraped 1 articles successfully, 3 failed"

        stored = {r.id: r.body_text for r in db.list_news_raw()}
        assert len(stored[ids[ok_url]]) == 5000
        assert stored[ids[failing_url]] == "snippet"

    def test_waits_for_rendering(self, db, settings, candidate, firecrawl_factory, page):
        ids = _store(db, candidate, 1)
        url = next(iter(ids))
        firecrawl = firecrawl_factory({url: page(url, markdown="Body of the article")})

        asyncio.run(deep_scrape([ids[url]], db=db, firecrawl=firecrawl, settings=settings))

        assert firecrawl.calls == [(url, ("markdown",), 2000)]

    def test_reports_the_longer_stored_body(self, db, settings, candidate, firecrawl_factory, page):
        db.upsert_news_raw([candidate(body_text="x" * 400)])
        article = db.list_news_raw()[0]
        firecrawl = firecrawl_factory({article.url: page(article.url, markdown="short text")})

        result = asyncio.run(deep_scrape([article.id], db=db, firecrawl=firecrawl, settings=settings))

        assert result.results[0].success
        assert result.results[0].body_text == "x" * 400
        assert db.list_news_raw()[0].body_text == "x" * 400

    def test_store_failure_is_tagged(self, db, settings, candidate, firecrawl_factory, page):
        ids = _store(db, candidate, 1)
        url = next(iter(ids))
        firecrawl = firecrawl_factory({url: page(url, markdown="Body of the article")})

        with patch.object(db, "update_body_text", side_effect=PersistenceError("locked")):
            result = asyncio.run(deep_scrape([ids[url]], db=db, firecrawl=firecrawl, settings=settings))

        assert result.results[0].success is False
        assert result.results[0].error == "store update failed"

    def test_processes_in_batches_of_three(self, db, settings_factory, candidate, firecrawl_factory, page):
        settings = settings_factory(deep_scrape_batch_delay=0.5)
        ids = _store(db, candidate, 7)
        firecrawl = firecrawl_factory({url: page(url, markdown="Body text") for url in ids})

        with patch("pmnews.news.scraper.batched_map", wraps=concurrency.batched_map) as batched, \
                patch("pmnews.shared.concurrency.asyncio.sleep") as sleep:
            result = asyncio.run(deep_scrape(list(ids.values()), db=db, firecrawl=firecrawl, settings=settings))

        assert result.stats.success == 7
        assert batched.call_args.kwargs["batch_size"] == 3
        # 7 ids → 3 batches → 2 pauses
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.5)

    def test_shorter_text_keeps_stored_body_but_succeeds(self, db, settings, candidate, firecrawl_factory, page):
        db.upsert_news_raw([candidate(url="https://a.example/news/long", body_text="l" * 400)])
        article_id = db.list_news_raw()[0].id
        firecrawl = firecrawl_factory({"https://a.example/news/long": page("https://a.example/news/long", markdown="short")})

        result = asyncio.run(deep_scrape([article_id], db=db, firecrawl=firecrawl, settings=settings))

        assert result.results[0].success
        assert db.list_news_raw()[0].body_text == "l" * 400
