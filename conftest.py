"""Shared pytest fixtures: isolated settings, in-memory database, article factory."""

from datetime import datetime, timezone

import pytest

from pmnews.config import Settings
from pmnews.database import Database
from pmnews.schemas import CandidateArticle, ScrapedPage
from pmnews.errors import UpstreamError


def make_settings(**overrides) -> Settings:
    """Settings from field names, ignoring any local .env file."""
    values = {
        "database_url": "sqlite://",
        "firecrawl_api_key": "",
        "api_key": "",
        "crawl_article_delay": 0.0,
        "deep_scrape_batch_delay": 0.0,
        "summary_item_delay": 0.0,
        "min_crawl_start_date": "2025-01-01",
    }
    values.update(overrides)
    return Settings(_env_file=None, **{Settings.model_fields[k].alias: v for k, v in values.items()})


class FakeFirecrawl:
    """Stands in for FirecrawlTool: serves ScrapedPage objects from a dict."""

    def __init__(self, pages=None, configured=True):
        self.pages = pages or {}
        self.configured = configured
        self.calls = []

    async def scrape(self, url, formats=("markdown",), wait_for=None):
        self.calls.append((url, tuple(formats), wait_for))
        page = self.pages.get(url)
        if isinstance(page, Exception):
            raise page
        if page is None:
            raise UpstreamError(f"no page for {url}")
        return page


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def db():
    database = Database("sqlite://")
    database.create_tables()
    yield database
    database.engine.dispose()


@pytest.fixture
def candidate():
    """Factory for CandidateArticle with sensible in-scope defaults."""

    def _make(
        url="https://techcrunch.com/2026/02/03/acme-series-b",
        headline="Acme raises $40M Series B led by Sequoia",
        body_text="The venture capital round values the fintech startup at $400M.",
        published_at=datetime(2026, 2, 3, 12, 0, tzinfo=timezone.utc),
        source_name="TechCrunch",
    ):
        return CandidateArticle(
            url=url,
            source_name=source_name,
            published_at=published_at,
            headline=headline,
            body_text=body_text,
        )

    return _make


@pytest.fixture
def page():
    """Factory for ScrapedPage."""

    def _make(url, markdown="", links=None, metadata=None):
        return ScrapedPage(url=url, markdown=markdown, links=links or [], metadata=metadata or {})

    return _make


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def firecrawl_factory():
    return FakeFirecrawl
