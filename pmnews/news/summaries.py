"""
Summarization driver.

No AI provider ships with this package. Any async callable that takes a
PendingArticle and returns a SummaryPayload can be plugged in; this module
only handles selection of pending articles, per-article isolation and
writing results back.
"""

import asyncio
import importlib
import logging
from typing import Awaitable, Callable, List, NamedTuple, Optional, Sequence

from pmnews.config import Settings, get_settings
from pmnews.errors import InvalidRequestError
from pmnews.schemas import PendingArticle, SummaryOutcome, SummaryRunResult

logger = logging.getLogger(__name__)


class SummaryPayload(NamedTuple):
    summary: str
    keywords: List[str]


Summarizer = Callable[[PendingArticle], Awaitable[SummaryPayload]]


def load_summarizer(target: str) -> Summarizer:
    """Resolve a "package.module:callable" reference to the summarizer it names."""
    module_name, _, attr = (target or "").partition(":")
    if not module_name or not attr:
        raise InvalidRequestError("Summarizer must be given as module:callable")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise InvalidRequestError(f"Cannot import summarizer module {module_name}: {e}") from e

    summarizer = getattr(module, attr, None)
    if not callable(summarizer):
        raise InvalidRequestError(f"{target} is not a callable")
    return summarizer


async def run_summarization(
    summarizer: Summarizer,
    db=None,
    article_ids: Optional[Sequence[str]] = None,
    batch_size: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> SummaryRunResult:
    """Summarize the given ids (or the oldest pending articles) one at a time."""
    settings = settings or get_settings()
    if db is None:
        from pmnews.database import get_database
        db = get_database()

    articles = db.get_pending_articles(
        article_ids=article_ids,
        batch_size=batch_size or settings.summary_batch_size,
    )
    logger.info(f"[Summaries] {len(articles)} articles to process")

    result = SummaryRunResult()
    for i, article in enumerate(articles):
        try:
            payload = await summarizer(article)
        except Exception as e:
            logger.error(f"[Summaries] Processing failed for {article.id}: {e}")
            result.results.append(SummaryOutcome(id=article.id, success=False, error="Processing failed"))
            continue

        try:
            saved = db.save_summary(article.id, payload.summary, payload.keywords)
        except Exception as e:
            logger.error(f"[Summaries] Failed to save summary for {article.id}: {e}")
            saved = False

        if saved:
            result.results.append(SummaryOutcome(id=article.id, success=True))
        else:
            result.results.append(SummaryOutcome(id=article.id, success=False, error="Failed to save summary"))

        if i < len(articles) - 1 and settings.summary_item_delay > 0:
            await asyncio.sleep(settings.summary_item_delay)

    result.processed = sum(1 for r in result.results if r.success)
    result.failed = len(result.results) - result.processed
    logger.info(f"[Summaries] Processed {result.processed}/{len(articles)} articles")
    return result
