"""
Persistence router: split classified candidates into the two tables.

Each partition is written independently. A failed write is logged and
reported in InsertResult.errors with a zero count; the other partition is
still attempted.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List

from pmnews.news.classifier import classify
from pmnews.schemas import CandidateArticle, InsertResult

logger = logging.getLogger(__name__)


@dataclass
class RoutedArticles:
    matching: List[CandidateArticle] = field(default_factory=list)
    non_matching: List[CandidateArticle] = field(default_factory=list)


def route(candidates: Iterable[CandidateArticle]) -> RoutedArticles:
    """Partition candidates by relevance (English + keyword hit)."""
    routed = RoutedArticles()
    for article in candidates:
        if classify(article).in_scope:
            routed.matching.append(article)
        else:
            routed.non_matching.append(article)
    return routed


def persist(routed: RoutedArticles, db) -> InsertResult:
    """Upsert both partitions; per-partition failures end up in errors."""
    result = InsertResult()

    if routed.matching:
        try:
            result.matching = db.upsert_news_raw(routed.matching)
        except Exception as e:
            logger.error(f"[Crawl] Failed to store matching articles: {e}")
            result.errors.append("Failed to insert matching articles")

    if routed.non_matching:
        try:
            result.non_matching = db.upsert_news_to_process(routed.non_matching)
        except Exception as e:
            logger.error(f"[Crawl] Failed to store non-matching articles: {e}")
            result.errors.append("Failed to insert articles to process")

    logger.info(
        f"[Crawl] Stored {result.matching} matching, {result.non_matching} non-matching"
        + (f", {len(result.errors)} errors" if result.errors else "")
    )
    return result
