"""
Feed Ingestion

Fetches and parses a single RSS feed, drops items without a link or whose
link is already stored, and hands the new articles to the repository as one
batch.
"""

import time
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional

import feedparser
import requests

from ..models import Article
from ..storage.article_repository import ArticleRepository

logger = logging.getLogger(__name__)


class FeedFetchError(Exception):
    """Raised when a feed cannot be downloaded."""
    pass


class FeedParseError(Exception):
    """Raised when a feed document is malformed."""
    pass


@dataclass
class FeedItem:
    """One parsed feed item with optional fields defaulted."""
    link: Optional[str]
    title: str = ""
    creator: str = ""
    pub_date: Optional[datetime] = None
    description: str = ""
    content_encoded: str = ""
    thumbnail: Optional[str] = None


@dataclass
class IngestReport:
    """Outcome of ingesting one feed."""
    feed_url: str
    items_seen: int = 0
    skipped_no_link: int = 0
    skipped_existing: int = 0
    submitted: int = 0
    stored: int = 0
    failed: int = 0
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


def _struct_to_datetime(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (TypeError, ValueError):
        return None


def _extract_link(entry) -> Optional[str]:
    """
    Return the item's own link element.

    feedparser copies a permalink guid into ``entry.link`` but never into
    ``entry.links``, so only the alternate links are trusted.
    """
    for link in entry.get('links') or []:
        href = (link.get('href') or '').strip()
        if href and link.get('rel', 'alternate') == 'alternate':
            return href
    return None


def _extract_description(entry) -> str:
    """Return the item description, or '' when feedparser filled it from the body."""
    # summary_detail is only set when a description/summary element was parsed
    if 'summary_detail' not in entry:
        return ''
    return entry.get('summary', '')


def _extract_creator(entry) -> str:
    """Prefer the parsed name so '<author>email (Name)</author>' yields 'Name'."""
    detail = entry.get('author_detail') or {}
    return detail.get('name') or entry.get('author', '')


def _extract_thumbnail(entry) -> Optional[str]:
    """Pick a thumbnail from media:thumbnail, media:content or image enclosures."""
    for thumbnail in entry.get('media_thumbnail') or []:
        if thumbnail.get('url'):
            return thumbnail['url']

    for media in entry.get('media_content') or []:
        medium = media.get('medium') or ''
        media_type = media.get('type') or ''
        if media.get('url') and (medium == 'image' or media_type.startswith('image/')):
            return media['url']

    for enclosure in entry.get('enclosures') or []:
        if enclosure.get('href') and (enclosure.get('type') or '').startswith('image/'):
            return enclosure['href']

    return None


def parse_feed(content: bytes) -> List[FeedItem]:
    """
    Parse an RSS document into feed items.

    Args:
        content: Raw feed bytes

    Returns:
        Parsed items in document order

    Raises:
        FeedParseError: If the document is malformed and yields no items
    """
    parsed = feedparser.parse(content)

    if parsed.bozo and not parsed.entries:
        raise FeedParseError(f"Malformed feed: {parsed.get('bozo_exception')}")

    items = []
    for entry in parsed.entries:
        content_encoded = ""
        if entry.get('content'):
            content_encoded = entry.content[0].get('value', '')

        items.append(FeedItem(
            link=_extract_link(entry),
            title=entry.get('title', ''),
            creator=_extract_creator(entry),
            pub_date=_struct_to_datetime(entry.get('published_parsed')),
            description=_extract_description(entry),
            content_encoded=content_encoded,
            thumbnail=_extract_thumbnail(entry),
        ))
    return items


class FeedIngestor:
    """Ingests RSS feeds into the article repository."""

    def __init__(
        self,
        repository: ArticleRepository,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
        max_retries: int = 3
    ):
        """
        Initialize the feed ingestor.

        Args:
            repository: Article repository used for dedup and storage
            session: HTTP session (default: new requests.Session)
            timeout: Request timeout in seconds
            max_retries: Maximum fetch attempts for timeouts and connection errors
        """
        self.repository = repository
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_retries = max_retries

    def fetch_feed(self, feed_url: str) -> bytes:
        """
        Download a feed with retry and exponential backoff.

        Raises:
            FeedFetchError: If the feed cannot be downloaded
        """
        last_error = None
        for attempt in range(self.max_retries):
            try:
                response = self.session.get(feed_url, timeout=self.timeout)
                response.raise_for_status()
                return response.content

            except (requests.exceptions.Timeout, requests.exceptions.ConnectionError) as e:
                last_error = e
                logger.warning(
                    f"Fetch attempt {attempt + 1}/{self.max_retries} failed for {feed_url}: {e}"
                )
                if attempt < self.max_retries - 1:
                    wait_time = 2 ** attempt  # Exponential backoff
                    time.sleep(wait_time)

            except requests.exceptions.RequestException as e:
                raise FeedFetchError(f"Error fetching RSS feed {feed_url}: {e}") from e

        raise FeedFetchError(
            f"Failed to fetch RSS feed {feed_url} after {self.max_retries} attempts: {last_error}"
        )

    def build_new_articles(self, items: List[FeedItem], report: IngestReport) -> List[Article]:
        """Turn unseen items into articles; first occurrence of a link wins."""
        new_articles = []
        batch_links = set()

        for item in items:
            if not item.link:
                logger.info(f"Skipping item without link: {item.title or '<untitled>'}")
                report.skipped_no_link += 1
                continue

            if item.link in batch_links or self.repository.find_by_link(item.link) is not None:
                logger.debug(f"Article already exists: {item.title}")
                report.skipped_existing += 1
                continue

            batch_links.add(item.link)
            new_articles.append(Article.from_feed_item(
                link=item.link,
                title=item.title,
                creator=item.creator,
                pub_date=item.pub_date,
                description=item.description,
                body_html=item.content_encoded,
                thumbnail=item.thumbnail,
            ))

        return new_articles

    def ingest(self, feed_url: str) -> IngestReport:
        """
        Fetch, parse, dedupe and store one feed.

        Raises:
            FeedFetchError: If the feed cannot be downloaded
            FeedParseError: If the feed is malformed
            ModelNotReady: If the embedder has not been initialized
        """
        items = parse_feed(self.fetch_feed(feed_url))
        report = IngestReport(feed_url=feed_url, items_seen=len(items))

        logger.info(f"Processing {len(items)} articles from RSS feed {feed_url}...")
        if not items:
            return report

        new_articles = self.build_new_articles(items, report)
        report.submitted = len(new_articles)

        if not new_articles:
            logger.info("No new articles to insert")
            return report

        logger.info(f"Batch inserting {len(new_articles)} new articles...")
        upsert = self.repository.upsert_many(new_articles)
        report.stored = upsert.stored
        report.failed = len(upsert.failed) + len(upsert.skipped)

        logger.info(
            f"Processed RSS feed {feed_url}: {report.stored} stored, "
            f"{report.skipped_existing} already known, {report.skipped_no_link} without link"
        )
        return report
