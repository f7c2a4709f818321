"""
Configuration management for the private-market news ingestion service.

Runtime settings come from environment variables (or a .env file). The source
registry, keyword vocabulary and link patterns are static tables loaded once at
import time and never mutated.
"""

import logging
from functools import lru_cache
from types import MappingProxyType

from pydantic_settings import BaseSettings
from pydantic import Field

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = Field(default="sqlite:///./pmnews.db", alias="DATABASE_URL")

    # Render/scrape capability (Firecrawl). Empty key = RSS-only crawling.
    firecrawl_api_key: str = Field(default="", alias="FIRECRAWL_API_KEY")
    firecrawl_base_url: str = Field(default="https://api.firecrawl.dev/v1", alias="FIRECRAWL_BASE_URL")
    # Milliseconds Firecrawl waits for client-side rendering on deep scrapes
    firecrawl_wait_for_ms: int = Field(default=2000, alias="FIRECRAWL_WAIT_FOR_MS")

    # HTTP
    http_timeout: float = Field(default=30.0, alias="HTTP_TIMEOUT")

    # ── Crawl ──
    crawl_max_links_per_source: int = Field(default=15, alias="CRAWL_MAX_LINKS_PER_SOURCE")
    crawl_max_feed_items: int = Field(default=20, alias="CRAWL_MAX_FEED_ITEMS")
    # Article pages scraped concurrently per source on the primary path
    crawl_article_concurrency: int = Field(default=5, alias="CRAWL_ARTICLE_CONCURRENCY")
    crawl_article_delay: float = Field(default=0.0, alias="CRAWL_ARTICLE_DELAY")
    max_crawl_span_days: int = Field(default=90, alias="MAX_CRAWL_SPAN_DAYS")
    # Earliest allowed crawl start (YYYY-MM-DD). Empty string disables the check.
    min_crawl_start_date: str = Field(default="2025-01-01", alias="MIN_CRAWL_START_DATE")

    # ── Deep scrape ──
    deep_scrape_max_ids: int = Field(default=10, alias="DEEP_SCRAPE_MAX_IDS")
    deep_scrape_batch_size: int = Field(default=3, alias="DEEP_SCRAPE_BATCH_SIZE")
    deep_scrape_batch_delay: float = Field(default=0.5, alias="DEEP_SCRAPE_BATCH_DELAY")

    # ── Summaries ──
    summary_batch_size: int = Field(default=5, alias="SUMMARY_BATCH_SIZE")
    summary_item_delay: float = Field(default=0.2, alias="SUMMARY_ITEM_DELAY")

    # API
    api_key: str = Field(default="", alias="API_KEY")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True

    @property
    def render_enabled(self) -> bool:
        return bool(self.firecrawl_api_key)

    def cors_origin_list(self) -> list:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# ══════════════════════════════════════════════════════════════════════════════
# SOURCE REGISTRY - scrape targets with RSS fallback
# ══════════════════════════════════════════════════════════════════════════════

# Substrings that mark a discovered link as an article on any source.
# "/20" catches year paths like /2026/02/01/story.
DEFAULT_ARTICLE_PATTERNS = ("/news/", "/article/", "/story/", "/post/", "/20")

# A link containing any of these is navigation, taxonomy or a binary asset.
EXCLUDED_LINK_PATTERNS = (
    "/tag/", "/tags/", "/topic/", "/topics/",
    "/category/", "/categories/",
    "/author/", "/authors/",
    "/page/", "?page=", "&page=",
    "#",
    "/search", "?s=", "?q=",
    "/login", "/signin", "/sign-in",
    "/register", "/signup", "/sign-up", "/subscribe",
    ".pdf", ".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp",
    ".zip", ".mp3", ".mp4",
)

NEWS_SOURCES = MappingProxyType({
    "techcrunch": {
        "id": "techcrunch",
        "name": "TechCrunch",
        "url": "https://techcrunch.com",
        "rss_url": "https://techcrunch.com/feed/",
        "article_patterns": ("/20",),
    },
    "crunchbase_news": {
        "id": "crunchbase_news",
        "name": "Crunchbase News",
        "url": "https://news.crunchbase.com",
        "rss_url": "https://news.crunchbase.com/feed/",
        "article_patterns": ("/venture/", "/ai/", "/startups/", "/public/", "/fintech-ecommerce/", "/ma/"),
    },
    "moneycontrol": {
        "id": "moneycontrol",
        "name": "Moneycontrol",
        "url": "https://www.moneycontrol.com/news/business",
        "rss_url": "https://www.moneycontrol.com/rss/business.xml",
        "article_patterns": ("/news/business/",),
    },
    "livemint": {
        "id": "livemint",
        "name": "LiveMint",
        "url": "https://www.livemint.com/companies",
        "rss_url": "https://www.livemint.com/rss/companies",
        "article_patterns": ("/companies/news/", "/companies/start-ups/", "/market/"),
    },
    "economic_times": {
        "id": "economic_times",
        "name": "ET",
        "url": "https://economictimes.indiatimes.com",
        "rss_url": "https://economictimes.indiatimes.com/rssfeedstopstories.cms",
        "article_patterns": ("/articleshow/",),
    },
    "pr_newswire": {
        "id": "pr_newswire",
        "name": "PR Newswire",
        "url": "https://www.prnewswire.com/news-releases/financial-services-latest-news",
        "rss_url": "https://www.prnewswire.com/rss/financial-services-latest-news/financial-services-latest-news-list.rss",
        "article_patterns": ("/news-releases/",),
    },
    "businesswire": {
        "id": "businesswire",
        "name": "BusinessWire",
        "url": "https://www.businesswire.com/portal/site/home",
        "rss_url": "https://feed.businesswire.com/rss/home/?rss=G1QFDERJXkJeEFpRWQ==",
        "article_patterns": ("/news/home/",),
    },
    "vccircle": {
        "id": "vccircle",
        "name": "VCCircle",
        "url": "https://www.vccircle.com",
        "rss_url": None,
        "article_patterns": ("/deals/", "/vc/", "/pe/", "/startups/"),
    },
    "dealstreetasia": {
        "id": "dealstreetasia",
        "name": "DealStreetAsia",
        "url": "https://www.dealstreetasia.com",
        "rss_url": None,
        "article_patterns": ("/stories/",),
    },
    "pei": {
        "id": "pei",
        "name": "PEI",
        "url": "https://www.privateequityinternational.com",
        "rss_url": None,
        "article_patterns": ("/analysis/", "/deals/", "/fundraising/"),
    },
})

DEFAULT_ACTIVE_SOURCES = tuple(NEWS_SOURCES.keys())


# ══════════════════════════════════════════════════════════════════════════════
# KEYWORD VOCABULARY - private-market relevance
# Matched as case-insensitive substrings, so keep terms specific.
# ══════════════════════════════════════════════════════════════════════════════

KEYWORDS = (
    # Deal types
    "private equity", "venture capital", "growth equity", "buyout", "leveraged buyout",
    "management buyout", "take-private", "take private", "carve-out", "carveout",
    "acquisition", "acquires", "acquired", "merger", "mergers and acquisitions", "m&a",
    "minority stake", "majority stake", "controlling stake", "strategic investment",
    "secondary transaction", "secondaries", "continuation fund", "recapitalization",
    "recapitalisation", "bolt-on", "add-on acquisition", "spin-off", "divestiture",
    "joint venture", "pre-ipo", "ipo-bound", "reverse merger",
    "structured credit", "private credit", "direct lending", "mezzanine",
    "venture debt", "convertible note", "blank-check company", "spac merger",
    # Funding rounds
    "seed round", "seed funding", "pre-seed", "angel investment", "angel round",
    "series a", "series b", "series c", "series d", "series e", "series f",
    "bridge round", "funding round", "investment round", "fundraise", "fundraising",
    "raises $", "raised $", "capital raised", "closes fund", "final close", "first close",
    "oversubscribed",
    # Market participants
    "vc fund", "pe fund", "vc firm", "pe firm", "vc-backed", "pe-backed",
    "investment firm", "asset manager", "fund manager", "limited partner",
    "general partner", "family office", "sovereign wealth fund", "pension fund",
    "financial sponsor", "strategic investor", "portfolio company", "sponsor-backed",
    "private markets", "private market", "alternative assets", "alternatives manager",
    "infrastructure fund", "real estate fund", "fund of funds", "angel investor",
    "accelerator", "incubator",
    # Valuation and fund jargon
    "valuation", "valued at", "post-money", "pre-money", "unicorn", "decacorn",
    "dry powder", "assets under management", "carried interest",
    "management fee", "exit multiple", "ebitda multiple", "term sheet",
    "due diligence", "deal value", "enterprise value", "deal flow", "dealflow",
    "portfolio exit", "write-down",
    # Sector focus
    "fintech startup", "healthtech", "edtech", "proptech", "insurtech", "agritech",
    "climate tech", "deep tech", "saas startup", "ai startup", "d2c brand",
    # Geography
    "southeast asia", "emerging markets", "india-focused", "asia-pacific fund",
    "gcc investors", "africa-focused",
)

# Fraction of ASCII characters above which text is treated as English
ENGLISH_ASCII_THRESHOLD = 0.8

# Headline length below which an extracted article is discarded as unreliable
MIN_HEADLINE_LENGTH = 10

# Snippet/body caps
LIST_BODY_MAX_CHARS = 500
DEEP_BODY_MAX_CHARS = 5000
HEADLINE_MAX_CHARS = 500


def get_sources(source_ids=None) -> list:
    """
    Build NewsSource descriptors for the given ids (all sources when None).

    Unknown ids are logged and skipped; registry order is kept.
    """
    from pmnews.schemas.news import NewsSource

    if source_ids is None:
        source_ids = DEFAULT_ACTIVE_SOURCES

    wanted = set(source_ids)
    for unknown in wanted - set(NEWS_SOURCES):
        logger.warning(f"Unknown news source id: {unknown}")

    return [NewsSource(**NEWS_SOURCES[sid]) for sid in NEWS_SOURCES if sid in wanted]
