"""Tests for date parsing, markdown cleanup and the feed/markdown parsers."""

from datetime import datetime, timezone

from pmnews.news.classifier import classify
from pmnews.news.parsers import (
    FeedParser,
    MarkdownParser,
    clean_markdown,
    date_from_url,
    extract_headline,
    parse_date,
    site_names_for,
    strip_site_suffix,
)
from pmnews.schemas import NewsSource

SOURCE = NewsSource(
    id="techcrunch", name="TechCrunch", url="https://techcrunch.com",
    rss_url="https://techcrunch.com/feed/", article_patterns=("/20",),
)


class TestParseDate:

    def test_rfc822_feed_date(self):
        assert parse_date("Mon, 02 Feb 2026 10:00:00 GMT") == datetime(2026, 2, 2, 10, 0, tzinfo=timezone.utc)

    def test_iso_date_becomes_utc_midnight(self):
        assert parse_date("2026-02-03") == datetime(2026, 2, 3, tzinfo=timezone.utc)

    def test_offset_is_converted_to_utc(self):
        assert parse_date("2026-02-03T09:30:00+05:30") == datetime(2026, 2, 3, 4, 0, tzinfo=timezone.utc)

    def test_day_month_year_inside_text(self):
        assert parse_date("Published 5 March 2026 by staff") == datetime(2026, 3, 5, tzinfo=timezone.utc)

    def test_iso_date_inside_text(self):
        assert parse_date("Updated on: 2026-01-15 (edited)") == datetime(2026, 1, 15, tzinfo=timezone.utc)

    def test_unparseable_is_unknown_not_now(self):
        assert parse_date("not a date at all") is None
        assert parse_date("") is None
        assert parse_date(None) is None

    def test_date_from_url_path(self):
        assert date_from_url("https://techcrunch.com/2026/02/01/story/") == datetime(2026, 2, 1, tzinfo=timezone.utc)
        assert date_from_url("https://example.com/news/123") is None


class TestCleanMarkdown:

    MARKDOWN = (
        "# Acme raises $40M\n\n"
        "Acme, a **fintech** company, said on *Monday* it raised money from [Sequoia](https://sequoia.com).\n\n\n\n"
        "![logo](https://cdn.example.com/logo.png)\n"
        "- first point\n"
        "* second point\n"
        "   indented line   \n"
    )

    def test_strips_markdown_syntax(self):
        text = clean_markdown(self.MARKDOWN)
        assert "#" not in text
        assert "**" not in text
        assert "![" not in text
        assert "https://" not in text
        assert "fintech company" in text
        assert "Monday" in text
        assert "from Sequoia." in text

    def test_removes_list_markers_and_trims_lines(self):
        text = clean_markdown(self.MARKDOWN)
        assert "first point" in text
        assert "- first" not in text
        assert "indented line" in text
        assert not any(line != line.strip() for line in text.split("\n"))
        assert "\n\n\n" not in text

    def test_truncates(self):
        assert len(clean_markdown("word " * 2000)) == 5000
        assert len(clean_markdown("word " * 2000, max_chars=500)) == 500

    def test_empty(self):
        assert clean_markdown("") == ""
        assert clean_markdown(None) == ""


class TestHeadline:

    def test_site_suffix_is_removed(self):
        assert strip_site_suffix("Acme raises $50M Series B | TechCrunch", ["TechCrunch"]) == "Acme raises $50M Series B"
        assert strip_site_suffix(
            "Fund closes at $1B - Private Equity International", ["privateequityinternational.com"]
        ) == "Fund closes at $1B"

    def test_suffix_that_is_not_the_site_is_kept(self):
        title = "Fed holds rates steady - what it means for private equity"
        assert strip_site_suffix(title, ["TechCrunch", "techcrunch.com"]) == title

    def test_no_site_names_keeps_title(self):
        assert strip_site_suffix("Acme raises $50M Series B | TechCrunch") == "Acme raises $50M Series B | TechCrunch"

    def test_short_head_is_kept_whole(self):
        assert strip_site_suffix("Deals - Week", ["Week"]) == "Deals - Week"

    def test_metadata_title_wins_over_heading(self):
        md = "# Heading from page body\n\ntext"
        metadata = {"ogTitle": "Title from metadata | Site", "ogSiteName": "Site"}
        assert extract_headline(md, metadata) == "Title from metadata"

    def test_falls_back_to_first_heading(self):
        md = "Intro\n\n# Heading from page body\n\n## Sub heading"
        assert extract_headline(md, {}) == "Heading from page body"

    def test_site_names_include_source_and_host(self):
        assert site_names_for(SOURCE) == ["TechCrunch", "techcrunch.com", "techcrunch"]


class TestMarkdownParser:

    def test_hyphenated_headline_keeps_its_keywords(self, page):
        url = "https://techcrunch.com/2026/02/03/fed-rates"
        result = MarkdownParser().parse(
            page(url, markdown="Rates were unchanged on Tuesday.", metadata={
                "title": "Fed holds rates steady - what it means for private equity",
            }),
            url,
            SOURCE,
        )
        assert result.headline == "Fed holds rates steady - what it means for private equity"
        assert classify(result).in_scope

    def test_og_site_name_suffix_is_removed(self, page):
        url = "https://techcrunch.com/2026/02/03/acme"
        result = MarkdownParser().parse(
            page(url, markdown="Body", metadata={
                "title": "Acme raises $40M Series B - TC Daily",
                "og:site_name": "TC Daily",
            }),
            url,
            SOURCE,
        )
        assert result.headline == "Acme raises $40M Series B"

    def test_builds_candidate_from_metadata(self, page):
        url = "https://techcrunch.com/2026/02/03/acme"
        result = MarkdownParser().parse(
            page(url, markdown="Acme raised a **Series B** round.", metadata={
                "title": "Acme raises $40M Series B | TechCrunch",
                "publishedTime": "2026-02-03T10:00:00Z",
            }),
            url,
            SOURCE,
        )
        assert result.headline == "Acme raises $40M Series B"
        assert result.source_name == "TechCrunch"
        assert result.published_at == datetime(2026, 2, 3, 10, 0, tzinfo=timezone.utc)
        assert result.body_text == "Acme raised a Series B round."

    def test_date_falls_back_to_url(self, page):
        url = "https://techcrunch.com/2026/02/01/big-fund"
        result = MarkdownParser().parse(page(url, markdown="# Big fund reaches final close\n\nBody"), url, SOURCE)
        assert result.published_at == datetime(2026, 2, 1, tzinfo=timezone.utc)

    def test_date_falls_back_to_now(self, page):
        url = "https://techcrunch.com/news/big-fund"
        before = datetime.now(timezone.utc)
        result = MarkdownParser().parse(page(url, markdown="# Big fund reaches final close\n\nBody"), url, SOURCE)
        assert result.published_at >= before

    def test_short_headline_is_discarded(self, page):
        url = "https://techcrunch.com/2026/02/01/x"
        assert MarkdownParser().parse(page(url, markdown="# Hi\n\nBody"), url, SOURCE) is None

    def test_body_is_capped_at_snippet_length(self, page):
        url = "https://techcrunch.com/2026/02/01/x"
        result = MarkdownParser().parse(page(url, markdown="# Long article headline\n\n" + "x" * 2000), url, SOURCE)
        assert len(result.body_text) == 500


FEED = """<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0">
  <channel>
    <title>TechCrunch</title>
    <item>
      <title>Acme raises $40M Series B &amp; expands</title>
      <link>https://techcrunch.com/2026/02/03/acme/</link>
      <pubDate>Tue, 03 Feb 2026 10:00:00 GMT</pubDate>
      <description><![CDATA[<p>The <b>venture capital</b> round&nbsp;closed.</p>]]></description>
    </item>
    <item>
      <title>Short</title>
      <link>https://techcrunch.com/2026/02/03/short/</link>
    </item>
    <item>
      <title>Undated story about private credit funds</title>
      <link>https://techcrunch.com/2026/02/04/undated/</link>
    </item>
  </channel>
</rss>
"""


class TestFeedParser:

    def test_parses_items(self):
        articles = FeedParser().parse(FEED, SOURCE, limit=20)

        assert [a.url for a in articles] == [
            "https://techcrunch.com/2026/02/03/acme/",
            "https://techcrunch.com/2026/02/04/undated/",
        ]
        first = articles[0]
        assert first.headline == "Acme raises $40M Series B & expands"
        assert first.body_text == "The venture capital round closed."
        assert first.published_at == datetime(2026, 2, 3, 10, 0, tzinfo=timezone.utc)
        assert first.source_name == "TechCrunch"

    def test_missing_date_is_unknown(self):
        articles = FeedParser().parse(FEED, SOURCE, limit=20)
        assert articles[1].published_at is None

    def test_limit_applies_to_feed_items(self):
        articles = FeedParser().parse(FEED, SOURCE, limit=1)
        assert len(articles) == 1

    def test_garbage_yields_nothing(self):
        assert FeedParser().parse("this is not xml", SOURCE, limit=20) == []
