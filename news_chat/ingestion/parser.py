"""
HTML Parser

Fetches pages and parses HTML with BeautifulSoup4 for link discovery and
title/snippet extraction on pages that are not syndication feeds.
"""

import logging
from typing import List, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup
from newspaper import fulltext

logger = logging.getLogger(__name__)


DEFAULT_USER_AGENT = 'Mozilla/5.0 (compatible; NewsChatBot/1.0)'
ACCEPT_HEADER = 'application/rss+xml, application/xml, text/xml, text/html, */*;q=0.1'

# Meta tags consulted in priority order
TITLE_META = (
    ('property', 'og:title'),
    ('name', 'twitter:title'),
)
DESCRIPTION_META = (
    ('property', 'og:description'),
    ('name', 'description'),
    ('name', 'twitter:description'),
)


class HTMLParser:
    """Fetches pages and extracts links and fallback metadata from HTML."""

    def __init__(
        self,
        user_agent: Optional[str] = None,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the HTML parser.

        Args:
            user_agent: Custom user agent string for requests
            timeout: Request timeout in seconds
            session: Optional requests session for connection pooling
        """
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.headers = {'User-Agent': self.user_agent, 'Accept': ACCEPT_HEADER}
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, url: str) -> Optional[str]:
        """
        Fetch a URL as text.

        Args:
            url: URL to fetch

        Returns:
            Response body, or None if the request failed
        """
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            return response.text
        except requests.RequestException as e:
            logger.warning(f"Fetch failed for {url}: {e}")
            return None

    def parse_html(self, html: str) -> BeautifulSoup:
        """Parse HTML content into a BeautifulSoup object."""
        return BeautifulSoup(html, 'html.parser')

    def extract_links(
        self,
        soup: BeautifulSoup,
        base_url: str,
        max_links: Optional[int] = None
    ) -> List[str]:
        """
        Extract absolute http(s) links from parsed HTML.

        Args:
            soup: BeautifulSoup object
            base_url: URL the document was fetched from, for relative links
            max_links: Cap on the number of unique links returned

        Returns:
            Unique absolute URLs in document order
        """
        links = []
        seen = set()
        for anchor in soup.find_all('a', href=True):
            href = anchor['href'].strip()
            if not href:
                continue
            try:
                absolute = urljoin(base_url, href)
            except ValueError:
                continue
            if urlparse(absolute).scheme not in ('http', 'https'):
                continue
            if absolute in seen:
                continue
            seen.add(absolute)
            links.append(absolute)
            if max_links is not None and len(links) >= max_links:
                break
        return links

    def _meta_content(self, soup: BeautifulSoup, candidates) -> str:
        for attr, value in candidates:
            tag = soup.find('meta', attrs={attr: value})
            if tag is None:
                continue
            content = (tag.get('content') or '').strip()
            if content:
                return content
        return ''

    def extract_title(self, soup: BeautifulSoup) -> str:
        """
        Extract a page title: og:title, twitter:title, <title>, then "Untitled".
        """
        title = self._meta_content(soup, TITLE_META)
        if not title:
            title_tag = soup.find('title')
            if title_tag:
                title = title_tag.get_text(strip=True)
        return title or 'Untitled'

    def extract_main_text(self, soup: BeautifulSoup, html: str) -> str:
        """
        Extract the main article text.

        Uses the <article> element when the page has one, otherwise the body
        text found by newspaper's content extractor.
        """
        article_tag = soup.find('article')
        if article_tag:
            text = article_tag.get_text(' ', strip=True)
            if text:
                return text

        try:
            return fulltext(html).strip()
        except Exception as e:
            logger.debug(f"Body text extraction failed: {e}")
            return ''

    def extract_description(
        self,
        soup: BeautifulSoup,
        html: str,
        snippet_length: int = 400
    ) -> str:
        """
        Extract a snippet: og:description, meta description,
        twitter:description, then the start of the main article text.
        """
        description = self._meta_content(soup, DESCRIPTION_META)
        if description:
            return description
        return self.extract_main_text(soup, html)[:snippet_length].strip()
