"""
Multi-source news fetcher.

Each source is fetched with an ordered list of strategies; the first one that
yields at least one article wins:
  1. render  - Firecrawl the listing page, pick article links, render each article
  2. feed    - plain HTTP GET of the source's RSS feed, parsed with feedparser

A failing strategy is logged and treated as empty, so a source only comes back
empty when every strategy came back empty. Sources are fetched concurrently and
one source failing never affects the others.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable, List, Optional, Sequence, Tuple

import httpx

from pmnews.config import Settings, get_settings
from pmnews.news.links import filter_article_links
from pmnews.news.parsers import FeedParser, MarkdownParser
from pmnews.schemas import CandidateArticle, FetchMethod, NewsSource, SourceReport
from pmnews.shared.concurrency import batched_map, gather_settled
from pmnews.tools.firecrawl_tool import FirecrawlTool

logger = logging.getLogger(__name__)

Strategy = Tuple[str, Callable[[], Awaitable[List[CandidateArticle]]]]


async def resolve_first_non_empty(strategies: Iterable[Strategy]) -> Tuple[str, List[CandidateArticle]]:
    """Run strategies in order; return (name, result) of the first non-empty one."""
    for name, run in strategies:
        try:
            result = await run()
        except Exception as e:
            logger.warning(f"[{name}] strategy failed: {e}")
            continue
        if result:
            return name, result
        logger.debug(f"[{name}] strategy returned nothing")
    return FetchMethod.NONE.value, []


def dedupe_by_url(articles: Iterable[CandidateArticle]) -> List[CandidateArticle]:
    """Drop repeated URLs, keeping the first occurrence."""
    seen = set()
    unique = []
    for article in articles:
        if article.url in seen:
            continue
        seen.add(article.url)
        unique.append(article)
    return unique


@dataclass
class FetchReport:
    articles: List[CandidateArticle] = field(default_factory=list)
    sources: List[SourceReport] = field(default_factory=list)


class NewsFetcher:
    """Fetches candidate articles from the configured news sources."""

    _USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        firecrawl: Optional[FirecrawlTool] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.settings = settings or get_settings()
        self.firecrawl = firecrawl or FirecrawlTool.from_settings(self.settings)
        self._client = client
        self.feed_parser = FeedParser()
        self.markdown_parser = MarkdownParser()

    @property
    def render_enabled(self) -> bool:
        return self.firecrawl.configured

    @asynccontextmanager
    async def _session(self):
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.settings.http_timeout) as client:
                yield client

    def strategies_for(self, source: NewsSource) -> List[Strategy]:
        strategies: List[Strategy] = []
        if self.render_enabled:
            strategies.append((FetchMethod.RENDER.value, lambda: self._fetch_rendered(source)))
        if source.rss_url:
            strategies.append((FetchMethod.FEED.value, lambda: self._fetch_feed(source)))
        return strategies

    async def fetch_all(self, sources: Sequence[NewsSource]) -> FetchReport:
        """Fetch every source concurrently and merge the results (URL de-duplicated)."""
        results = await gather_settled(self.fetch_source(s) for s in sources)

        report = FetchReport()
        collected: List[CandidateArticle] = []
        for source, result in zip(sources, results):
            if isinstance(result, Exception):
                # fetch_source already catches; this is a last-resort guard
                logger.warning(f"[FAIL] {source.name}: {result}")
                report.sources.append(SourceReport(
                    source_id=source.id, source_name=source.name,
                    method=FetchMethod.NONE.value, error=str(result),
                ))
                continue
            source_report, articles = result
            report.sources.append(source_report)
            collected.extend(articles)

        report.articles = dedupe_by_url(collected)
        logger.info(
            f"[Crawl] Fetched {len(collected)} articles from {len(sources)} sources, "
            f"{len(report.articles)} unique"
        )
        return report

    async def fetch_source(self, source: NewsSource) -> Tuple[SourceReport, List[CandidateArticle]]:
        """Run the source's strategies in order; never raises."""
        try:
            method, articles = await resolve_first_non_empty(self.strategies_for(source))
        except Exception as e:
            logger.warning(f"[FAIL] {source.name}: {e}")
            return SourceReport(
                source_id=source.id, source_name=source.name,
                method=FetchMethod.NONE.value, error=str(e),
            ), []

        if articles:
            logger.info(f"[OK] {source.name}: {len(articles)} articles via {method}")
        else:
            logger.warning(f"[EMPTY] {source.name}: no articles from any strategy")
        return SourceReport(
            source_id=source.id, source_name=source.name,
            method=method, articles=len(articles),
        ), articles

    # ── strategies ───────────────────────────────────────────────────────────

    async def _fetch_rendered(self, source: NewsSource) -> List[CandidateArticle]:
        """Render the listing page, then render each discovered article link."""
        listing = await self.firecrawl.scrape(source.url, formats=("markdown", "links"))
        links = filter_article_links(listing.links, source, self.settings.crawl_max_links_per_source)
        logger.info(f"[Firecrawl] {source.name}: {len(links)} article links of {len(listing.links)}")
        if not links:
            return []

        async def _scrape_one(url: str) -> Optional[CandidateArticle]:
            page = await self.firecrawl.scrape(url, formats=("markdown",))
            return self.markdown_parser.parse(page, url, source)

        results = await batched_map(
            _scrape_one,
            links,
            batch_size=max(1, self.settings.crawl_article_concurrency),
            delay=self.settings.crawl_article_delay,
        )

        articles = []
        for url, result in zip(links, results):
            if isinstance(result, Exception):
                logger.debug(f"[Firecrawl] {url}: {result}")
            elif result is not None:
                articles.append(result)
        return articles

    async def _fetch_feed(self, source: NewsSource) -> List[CandidateArticle]:
        """Fetch and parse the source's RSS feed."""
        if not source.rss_url:
            return []

        headers = {"User-Agent": self._USER_AGENT}
        async with self._session() as client:
            response = await client.get(source.rss_url, follow_redirects=True, headers=headers)
            response.raise_for_status()

        articles = self.feed_parser.parse(response.text, source, self.settings.crawl_max_feed_items)
        logger.info(f"[RSS] {source.name}: {len(articles)} items")
        return articles
