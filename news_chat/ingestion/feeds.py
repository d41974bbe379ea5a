"""Syndication feed (RSS/Atom) parsing."""

import io
import logging
import uuid
from datetime import datetime, timezone
from typing import List

import feedparser
from bs4 import BeautifulSoup

from ..models import Article

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _clean_text(text: str) -> str:
    """Reduce feed markup to plain text."""
    if not text:
        return ''
    if '<' not in text:
        return text.strip()
    return BeautifulSoup(text, 'html.parser').get_text(' ', strip=True)


def parse_feed(content: str, source_url: str) -> List[Article]:
    """
    Parse RSS/Atom content into articles, in feed order.

    An entry is kept only if it has a title and a description or a link.
    Non-feed content yields an empty list.
    """
    # Content is already decoded text; declare utf-8 so feedparser does not
    # re-decode it using the encoding named in the XML prolog.
    feed = feedparser.parse(
        io.BytesIO(content.encode('utf-8')),
        response_headers={'content-type': 'application/xml; charset=utf-8'},
    )
    if feed.bozo and not feed.entries:
        logger.debug(f"No feed entries in {source_url}: {feed.get('bozo_exception')}")
        return []

    articles = []
    for entry in feed.entries:
        title = (entry.get('title') or '').strip()
        description = entry.get('description') or entry.get('summary') or ''
        link = (entry.get('link') or '').strip()

        if not title or not (description or link):
            continue

        published = entry.get('published') or entry.get('updated')
        articles.append(Article(
            id=entry.get('id') or str(uuid.uuid4()),
            title=_clean_text(title),
            content=_clean_text(description),
            url=link,
            publish_date=published.strip() if published else utc_now_iso(),
            source=source_url,
        ))

    return articles
