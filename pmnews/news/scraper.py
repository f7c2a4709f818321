"""
On-demand deep scrape of stored articles.

The crawl stores at most a 500-character snippet per article. Deep scrape
re-renders selected articles (by id) through Firecrawl and replaces the
snippet with up to 5000 characters of cleaned body text.

Work is done in small batches with a pause in between to stay under the
render API's rate limits. Each id gets its own outcome; one failure never
aborts the others.
"""

import logging
from typing import List, Optional, Sequence

from pmnews.config import DEEP_BODY_MAX_CHARS, Settings, get_settings
from pmnews.errors import InvalidRequestError, NotConfiguredError
from pmnews.news.parsers import clean_markdown
from pmnews.schemas import DeepScrapeOutcome, DeepScrapeResult, DeepScrapeStats
from pmnews.shared.concurrency import batched_map

logger = logging.getLogger(__name__)

ARTICLE_NOT_FOUND = "article not found"
SCRAPE_FAILED = "scrape failed"
STORE_UPDATE_FAILED = "store update failed"


def validate_article_ids(article_ids, max_ids: int) -> List[str]:
    """Return the ids as a de-duplicated list, or raise InvalidRequestError."""
    if not article_ids or not isinstance(article_ids, (list, tuple)):
        raise InvalidRequestError("articleIds array is required")
    if len(article_ids) > max_ids:
        raise InvalidRequestError(f"Maximum {max_ids} articles can be deep scraped at once")

    ids: List[str] = []
    for article_id in article_ids:
        if not isinstance(article_id, str) or not article_id.strip():
            raise InvalidRequestError("articleIds must be non-empty strings")
        if article_id.strip() not in ids:
            ids.append(article_id.strip())
    return ids


async def deep_scrape(
    article_ids: Sequence[str],
    db=None,
    firecrawl=None,
    settings: Optional[Settings] = None,
) -> DeepScrapeResult:
    """
    Replace body_text of the given articles with full rendered text.

    Raises:
        InvalidRequestError: empty id list or more than deep_scrape_max_ids
        NotConfiguredError: no render API key
    """
    settings = settings or get_settings()
    ids = validate_article_ids(article_ids, settings.deep_scrape_max_ids)

    if firecrawl is None:
        from pmnews.tools.firecrawl_tool import FirecrawlTool
        firecrawl = FirecrawlTool.from_settings(settings)
    if not firecrawl.configured:
        raise NotConfiguredError("Firecrawl API key not configured")

    if db is None:
        from pmnews.database import get_database
        db = get_database()

    urls = db.get_articles_by_ids(ids)
    logger.info(f"[DeepScrape] Processing {len(ids)} articles ({len(urls)} found)")

    async def _scrape_one(article_id: str) -> DeepScrapeOutcome:
        url = urls.get(article_id)
        if not url:
            return DeepScrapeOutcome(id=article_id, success=False, error=ARTICLE_NOT_FOUND)

        try:
            page = await firecrawl.scrape(
                url, formats=("markdown",), wait_for=settings.firecrawl_wait_for_ms,
            )
            body_text = clean_markdown(page.markdown, DEEP_BODY_MAX_CHARS)
        except Exception as e:
            logger.warning(f"[DeepScrape] Failed to scrape {url}: {e}")
            return DeepScrapeOutcome(id=article_id, success=False, error=SCRAPE_FAILED)

        if not body_text:
            logger.warning(f"[DeepScrape] No content for {url}")
            return DeepScrapeOutcome(id=article_id, success=False, error=SCRAPE_FAILED)

        try:
            stored = db.update_body_text(article_id, body_text)
        except Exception as e:
            logger.error(f"[DeepScrape] Failed to update {article_id}: {e}")
            return DeepScrapeOutcome(id=article_id, success=False, error=STORE_UPDATE_FAILED)

        if stored is None:
            return DeepScrapeOutcome(id=article_id, success=False, error=ARTICLE_NOT_FOUND)
        return DeepScrapeOutcome(id=article_id, body_text=stored, success=True)

    raw = await batched_map(
        _scrape_one,
        ids,
        batch_size=settings.deep_scrape_batch_size,
        delay=settings.deep_scrape_batch_delay,
    )

    results: List[DeepScrapeOutcome] = []
    for article_id, outcome in zip(ids, raw):
        if isinstance(outcome, Exception):
            logger.error(f"[DeepScrape] Unexpected error for {article_id}: {outcome}")
            outcome = DeepScrapeOutcome(id=article_id, success=False, error=SCRAPE_FAILED)
        results.append(outcome)

    stats = DeepScrapeStats(
        success=sum(1 for r in results if r.success),
        failed=sum(1 for r in results if not r.success),
    )
    logger.info(f"[DeepScrape] Completed: {stats.success} success, {stats.failed} failed")

    message = f"Deep scraped {stats.success} articles successfully"
    if stats.failed:
        message += f", {stats.failed} failed"
    return DeepScrapeResult(success=True, message=message, results=results, stats=stats)
