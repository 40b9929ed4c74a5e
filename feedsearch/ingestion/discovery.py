"""
Feed Discovery

Finds RSS/Atom feed URLs for an arbitrary homepage: first by probing
conventional feed paths against the site origin, then, if none answers, by
scanning the homepage HTML for feed links.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import List, Optional
from urllib.parse import urljoin, urlparse

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)


COMMON_FEED_PATHS = (
    '/feed',
    '/rss',
    '/feed.xml',
    '/rss.xml',
    '/feed/',
    '/rss/',
)

FEED_LINK_TYPES = (
    'application/rss+xml',
    'application/atom+xml',
)


class DiscoveryError(Exception):
    """Raised when a site cannot be examined for feeds."""
    pass


@dataclass(frozen=True)
class FeedCandidate:
    """A feed URL and how it was found ('probe' or 'html')."""
    url: str
    source: str


def site_origin(site_url: str) -> str:
    """
    Return the scheme://host[:port] origin of a URL.

    Raises:
        DiscoveryError: If the URL has no scheme or host
    """
    parsed = urlparse(site_url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        raise DiscoveryError(f"Invalid site URL: {site_url!r}")
    return f"{parsed.scheme}://{parsed.netloc}"


class FeedDiscoverer:
    """Discovers candidate feed URLs for websites."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        probe_timeout: int = 5,
        page_timeout: int = 10,
        max_workers: int = 6,
        feed_paths=COMMON_FEED_PATHS
    ):
        """
        Initialize the discoverer.

        Args:
            session: HTTP session (default: new requests.Session)
            probe_timeout: Timeout in seconds for HEAD probes
            page_timeout: Timeout in seconds for the homepage fetch
            max_workers: Number of parallel probes
            feed_paths: Conventional feed paths to probe
        """
        self.session = session or requests.Session()
        self.probe_timeout = probe_timeout
        self.page_timeout = page_timeout
        self.max_workers = max_workers
        self.feed_paths = tuple(feed_paths)

    def _probe(self, feed_url: str) -> bool:
        """Check whether a feed URL answers a HEAD request with a 2xx status."""
        try:
            response = self.session.head(
                feed_url,
                timeout=self.probe_timeout,
                allow_redirects=True
            )
        except requests.exceptions.RequestException as e:
            logger.debug(f"Probe failed for {feed_url}: {e}")
            return False
        return 200 <= response.status_code < 300

    def probe_common_paths(self, site_url: str) -> List[FeedCandidate]:
        """Probe the conventional feed paths in parallel; keeps probe-list order."""
        origin = site_origin(site_url)
        feed_urls = [f"{origin}{path}" for path in self.feed_paths]

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            hits = list(executor.map(self._probe, feed_urls))

        return [
            FeedCandidate(url=url, source='probe')
            for url, hit in zip(feed_urls, hits)
            if hit
        ]

    def scan_html(self, site_url: str) -> List[FeedCandidate]:
        """
        Fetch the homepage and collect feed references from it.

        Raises:
            DiscoveryError: If the homepage cannot be fetched
        """
        try:
            response = self.session.get(site_url, timeout=self.page_timeout)
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            raise DiscoveryError(f"Could not fetch {site_url}: {e}") from e

        soup = BeautifulSoup(response.text, 'html.parser')
        candidates = []

        for link in soup.find_all('link', href=True):
            link_type = (link.get('type') or '').strip().lower()
            if link_type in FEED_LINK_TYPES:
                candidates.append(FeedCandidate(url=urljoin(site_url, link['href']), source='html'))

        for anchor in soup.find_all('a', href=True):
            href = anchor['href']
            if 'rss' in href or 'feed' in href:
                candidates.append(FeedCandidate(url=urljoin(site_url, href), source='html'))

        return candidates

    def find_candidates(self, site_url: str) -> List[FeedCandidate]:
        """
        Find feed candidates with provenance, deduplicated by URL.

        Network and parse errors are logged; the site then yields no candidates.
        """
        try:
            candidates = self.probe_common_paths(site_url)

            if not candidates:
                try:
                    candidates = self.scan_html(site_url)
                except DiscoveryError as e:
                    logger.warning(f"Could not parse HTML for {site_url}: {e}")
                    candidates = []

        except DiscoveryError as e:
            logger.error(f"Error finding RSS feed for {site_url}: {e}")
            return []
        except Exception as e:
            logger.error(f"Unexpected error finding RSS feed for {site_url}: {e}")
            return []

        unique = {}
        for candidate in candidates:
            unique.setdefault(candidate.url, candidate)
        return list(unique.values())

    def discover(self, site_url: str) -> List[str]:
        """
        Discover feed URLs for a website.

        Args:
            site_url: Homepage URL

        Returns:
            Deduplicated list of feed URLs (empty if none found or on error)
        """
        feed_urls = [candidate.url for candidate in self.find_candidates(site_url)]
        logger.info(f"Found {len(feed_urls)} RSS feed(s) for {site_url}")
        return feed_urls


def discover(site_url: str, session: Optional[requests.Session] = None, **kwargs) -> List[str]:
    """Discover feed URLs for ``site_url`` with a one-off discoverer."""
    return FeedDiscoverer(session=session, **kwargs).discover(site_url)
