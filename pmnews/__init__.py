"""Private-market news ingestion: crawl, classify, persist and deep-scrape."""

__version__ = "1.0.0"
