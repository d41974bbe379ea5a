"""
Article Ingestion Pipeline

Discovers news articles from feed sources, falling back to link discovery on
HTML pages, and normalizes them into deduplicated ``Article`` records.
"""

import logging
import uuid
from typing import Iterable, List, Optional, Set

from ..config import DEFAULT_SOURCES
from ..models import Article
from .feeds import parse_feed, utc_now_iso
from .parser import HTMLParser

logger = logging.getLogger(__name__)


class _LimitReached(Exception):
    """Internal signal: the run has collected ``limit`` articles."""
    pass


class ArticleIngestionPipeline:
    """
    Collects articles from an ordered list of sources.

    Per source:
    - Fetch once and parse as an RSS/Atom feed
    - If still under the limit, treat the same content as HTML, follow up to
      ``max_fallback_links`` links and build articles from page metadata
    - Failures are logged per source/link and never abort the run

    Articles are unique by URL within one run.
    """

    def __init__(
        self,
        parser: Optional[HTMLParser] = None,
        sources: Optional[Iterable[str]] = None,
        max_fallback_links: int = 20,
        snippet_length: int = 400,
        timeout: float = 15.0
    ):
        """
        Initialize the ingestion pipeline.

        Args:
            parser: HTMLParser used for fetching and HTML extraction
            sources: Default feed URLs (default: DEFAULT_SOURCES)
            max_fallback_links: Cap on candidate links per HTML fallback
            snippet_length: Characters of body text used when a page has no description
            timeout: Request timeout in seconds for the default parser
        """
        self.parser = parser or HTMLParser(timeout=timeout)
        self.sources = list(sources) if sources is not None else list(DEFAULT_SOURCES)
        self.max_fallback_links = max_fallback_links
        self.snippet_length = snippet_length

    @classmethod
    def from_config(cls, config) -> 'ArticleIngestionPipeline':
        """Build a pipeline from a ``Config`` instance."""
        return cls(
            sources=config.sources,
            max_fallback_links=config.fallback_max_links,
            snippet_length=config.snippet_length,
            timeout=config.request_timeout,
        )

    def ingest(
        self,
        sources: Optional[Iterable[str]] = None,
        limit: int = 50
    ) -> List[Article]:
        """
        Run one ingestion pass.

        Args:
            sources: Feed URLs in processing order (default: ``self.sources``)
            limit: Maximum number of articles to return

        Returns:
            Articles in source order, feed items before fallback items,
            with no two sharing a URL and at most ``limit`` entries
        """
        sources = list(sources) if sources is not None else self.sources
        articles: List[Article] = []
        seen_urls: Set[str] = set()

        if limit <= 0:
            return articles

        try:
            for source in sources:
                self._ingest_source(source, articles, seen_urls, limit)
        except _LimitReached:
            pass

        logger.info(f"Ingestion run collected {len(articles)} articles from {len(sources)} sources")
        return articles[:limit]

    def _add(
        self,
        article: Article,
        articles: List[Article],
        seen_urls: Set[str],
        limit: int
    ) -> None:
        if not article.url or article.url in seen_urls:
            return
        seen_urls.add(article.url)
        articles.append(article)
        if len(articles) >= limit:
            raise _LimitReached()

    def _ingest_source(
        self,
        source: str,
        articles: List[Article],
        seen_urls: Set[str],
        limit: int
    ) -> None:
        content = self.parser.fetch(source)
        if not content:
            return

        try:
            feed_articles = parse_feed(content, source)
        except Exception as e:
            logger.warning(f"Failed to parse feed from {source}: {e}")
            feed_articles = []

        for article in feed_articles:
            self._add(article, articles, seen_urls, limit)

        if len(articles) >= limit:
            return

        try:
            self._html_fallback(source, content, articles, seen_urls, limit)
        except _LimitReached:
            raise
        except Exception as e:
            logger.warning(f"Fallback crawling failed for {source}: {e}")

    def _html_fallback(
        self,
        source: str,
        content: str,
        articles: List[Article],
        seen_urls: Set[str],
        limit: int
    ) -> None:
        soup = self.parser.parse_html(content)
        links = self.parser.extract_links(soup, source, max_links=self.max_fallback_links)

        for link in links:
            if link in seen_urls:
                continue
            try:
                article = self.fetch_page_article(link)
            except Exception as e:
                logger.warning(f"Failed to extract {link}: {e}")
                continue
            if article is not None:
                self._add(article, articles, seen_urls, limit)

    def fetch_page_article(self, url: str) -> Optional[Article]:
        """
        Build an article from an HTML page's title and description metadata.

        Args:
            url: Page URL

        Returns:
            Article, or None if the page could not be fetched
        """
        html = self.parser.fetch(url)
        if not html:
            return None

        soup = self.parser.parse_html(html)
        return Article(
            id=str(uuid.uuid4()),
            title=self.parser.extract_title(soup).strip() or 'Untitled',
            content=self.parser.extract_description(soup, html, self.snippet_length),
            url=url,
            publish_date=utc_now_iso(),
            source=url,
        )
