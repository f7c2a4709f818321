"""
Common enums shared across the ingestion layers.
"""

from enum import Enum


class ExtractionStatus(str, Enum):
    """Lifecycle of a matching article record.

    Pending: stored by the crawl, waiting for the summarizer.
    Extracted: summarizer has written ai_summary / ai_keywords.
    """
    PENDING = "Pending"
    EXTRACTED = "Extracted"


class FetchMethod(str, Enum):
    """Which strategy produced a source's articles."""
    RENDER = "render"
    FEED = "feed"
    NONE = "none"
