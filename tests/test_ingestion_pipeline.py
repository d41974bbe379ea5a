"""
Tests for ArticleIngestionPipeline

Tests cover:
- URL uniqueness and the result limit
- Source and item ordering
- HTML fallback discovery
- Per-source and per-link failure isolation
"""

import pytest
from unittest.mock import Mock, patch
import requests

from news_chat.ingestion.parser import HTMLParser
from news_chat.ingestion.pipeline import ArticleIngestionPipeline


# ============================================================================
# Helpers and Fixtures
# ============================================================================

def rss(*items):
    """Build an RSS document from (title, link) pairs."""
    body = "".join(
        f"<item><title>{title}</title><link>{link}</link>"
        f"<description>About {title}</description></item>"
        for title, link in items
    )
    return f'<?xml version="1.0"?><rss version="2.0"><channel><title>T</title>{body}</channel></rss>'


def page(title, description):
    return (
        f'<html><head><meta property="og:title" content="{title}">'
        f'<meta name="description" content="{description}"></head><body></body></html>'
    )


class FakeWeb:
    """Maps URLs to response bodies or exceptions for a mocked requests session."""

    def __init__(self, pages):
        self.pages = pages
        self.requested = []

    def get(self, url, headers=None, timeout=None):
        self.requested.append(url)
        body = self.pages.get(url)
        if body is None:
            raise requests.ConnectionError(f"unreachable: {url}")
        if isinstance(body, Exception):
            raise body
        response = Mock(text=body)
        response.raise_for_status.return_value = None
        return response


def make_pipeline(pages, **kwargs):
    web = FakeWeb(pages)
    session = Mock(spec=requests.Session)
    session.get.side_effect = web.get
    pipeline = ArticleIngestionPipeline(parser=HTMLParser(session=session), **kwargs)
    return pipeline, web


FEED_A = "https://a.example/rss"
FEED_B = "https://b.example/rss"


# ============================================================================
# Feed Ingestion Tests
# ============================================================================

class TestFeedIngestion:
    """Test ingestion from syndication feeds."""

    def test_articles_in_source_order(self):
        pipeline, _ = make_pipeline({
            FEED_A: rss(("A1", "https://a.example/1"), ("A2", "https://a.example/2")),
            FEED_B: rss(("B1", "https://b.example/1")),
        })

        articles = pipeline.ingest([FEED_A, FEED_B], limit=10)

        assert [a.title for a in articles] == ["A1", "A2", "B1"]
        assert articles[0].source == FEED_A
        assert articles[2].source == FEED_B

    def test_duplicate_urls_across_sources_are_dropped(self):
        pipeline, _ = make_pipeline({
            FEED_A: rss(("A1", "https://shared.example/story")),
            FEED_B: rss(("B1", "https://shared.example/story"), ("B2", "https://b.example/2")),
        })

        articles = pipeline.ingest([FEED_A, FEED_B], limit=10)

        urls = [a.url for a in articles]
        assert len(urls) == len(set(urls))
        assert [a.title for a in articles] == ["A1", "B2"]

    @pytest.mark.parametrize("limit", [1, 2, 3])
    def test_result_never_exceeds_limit(self, limit):
        pipeline, _ = make_pipeline({
            FEED_A: rss(*[(f"A{i}", f"https://a.example/{i}") for i in range(5)]),
        })

        articles = pipeline.ingest([FEED_A], limit=limit)

        assert len(articles) == limit

    def test_limit_stops_remaining_sources(self):
        """Test no further source is fetched once the limit is reached."""
        pipeline, web = make_pipeline({
            FEED_A: rss(("A1", "https://a.example/1"), ("A2", "https://a.example/2")),
            FEED_B: rss(("B1", "https://b.example/1")),
        })

        articles = pipeline.ingest([FEED_A, FEED_B], limit=2)

        assert len(articles) == 2
        assert web.requested == [FEED_A]

    def test_zero_limit(self):
        pipeline, web = make_pipeline({FEED_A: rss(("A1", "https://a.example/1"))})

        assert pipeline.ingest([FEED_A], limit=0) == []
        assert web.requested == []

    def test_default_sources(self):
        pipeline, web = make_pipeline({FEED_A: rss(("A1", "https://a.example/1"))}, sources=[FEED_A])

        assert len(pipeline.ingest(limit=1)) == 1
        assert web.requested == [FEED_A]


# ============================================================================
# Failure Isolation Tests
# ============================================================================

class TestFailureIsolation:
    """Test that one failing source or link never aborts the run."""

    def test_unreachable_source_is_skipped(self):
        pipeline, _ = make_pipeline({
            FEED_B: rss(("B1", "https://b.example/1")),
        })

        articles = pipeline.ingest([FEED_A, FEED_B], limit=10)

        assert [a.title for a in articles] == ["B1"]

    def test_feed_parse_error_is_logged_and_fallback_runs(self):
        pipeline, _ = make_pipeline({
            FEED_A: '<html><body><a href="https://a.example/story">s</a></body></html>',
            "https://a.example/story": page("Story", "Desc"),
        })

        with patch('news_chat.ingestion.pipeline.parse_feed', side_effect=RuntimeError("bad feed")):
            articles = pipeline.ingest([FEED_A], limit=10)

        assert [a.title for a in articles] == ["Story"]

    def test_fallback_error_does_not_abort_run(self):
        pipeline, _ = make_pipeline({
            FEED_A: "<html></html>",
            FEED_B: rss(("B1", "https://b.example/1")),
        })

        with patch.object(pipeline.parser, 'extract_links', side_effect=RuntimeError("boom")):
            articles = pipeline.ingest([FEED_A, FEED_B], limit=10)

        assert [a.title for a in articles] == ["B1"]

    def test_failing_link_is_skipped(self):
        pipeline, _ = make_pipeline({
            FEED_A: (
                '<html><body>'
                '<a href="https://a.example/broken">x</a>'
                '<a href="https://a.example/ok">y</a>'
                '</body></html>'
            ),
            "https://a.example/ok": page("OK", "Fine"),
        })

        articles = pipeline.ingest([FEED_A], limit=10)

        assert [a.url for a in articles] == ["https://a.example/ok"]


# ============================================================================
# HTML Fallback Tests
# ============================================================================

class TestHTMLFallback:
    """Test link discovery on non-feed sources."""

    HOME = "https://news.example.com/"

    def test_fallback_articles_from_page_metadata(self):
        pipeline, _ = make_pipeline({
            self.HOME: (
                '<html><body>'
                '<a href="/story-1">1</a>'
                '<a href="/story-2">2</a>'
                '<a href="/story-1">again</a>'
                '</body></html>'
            ),
            "https://news.example.com/story-1": page("First", "First desc"),
            "https://news.example.com/story-2": page("Second", "Second desc"),
        })

        articles = pipeline.ingest([self.HOME], limit=10)

        assert [(a.title, a.content) for a in articles] == [
            ("First", "First desc"),
            ("Second", "Second desc"),
        ]
        assert articles[0].source == "https://news.example.com/story-1"
        assert articles[0].id != articles[1].id
        assert articles[0].publish_date

    def test_fallback_links_capped(self):
        links = "".join(f'<a href="/s{i}">{i}</a>' for i in range(10))
        pages = {self.HOME: f"<html><body>{links}</body></html>"}
        for i in range(10):
            pages[f"https://news.example.com/s{i}"] = page(f"S{i}", "d")
        pipeline, web = make_pipeline(pages, max_fallback_links=3)

        articles = pipeline.ingest([self.HOME], limit=10)

        assert [a.title for a in articles] == ["S0", "S1", "S2"]
        assert len(web.requested) == 4

    def test_fallback_skips_urls_seen_in_feed(self):
        """Test links already collected from a feed are not fetched again."""
        feed = rss(("Feed item", "https://a.example/1")).replace(
            "</channel>", "</channel><a href='https://a.example/1'>dup</a>"
        )
        pipeline, web = make_pipeline({FEED_A: feed})

        articles = pipeline.ingest([FEED_A], limit=10)

        assert [a.title for a in articles] == ["Feed item"]
        assert "https://a.example/1" not in web.requested[1:]

    def test_fallback_respects_limit(self):
        pipeline, web = make_pipeline({
            self.HOME: '<html><body><a href="/a">a</a><a href="/b">b</a></body></html>',
            "https://news.example.com/a": page("A", "d"),
            "https://news.example.com/b": page("B", "d"),
        })

        articles = pipeline.ingest([self.HOME], limit=1)

        assert [a.title for a in articles] == ["A"]
        assert "https://news.example.com/b" not in web.requested

    def test_fetch_page_article_failure_returns_none(self):
        pipeline, _ = make_pipeline({})

        assert pipeline.fetch_page_article("https://missing.example/") is None


class TestFromConfig:
    """Test construction from configuration."""

    def test_from_config(self):
        config = Mock(
            sources=[FEED_A],
            fallback_max_links=5,
            snippet_length=100,
            request_timeout=3.0
        )

        pipeline = ArticleIngestionPipeline.from_config(config)

        assert pipeline.sources == [FEED_A]
        assert pipeline.max_fallback_links == 5
        assert pipeline.snippet_length == 100
        assert pipeline.parser.timeout == 3.0
