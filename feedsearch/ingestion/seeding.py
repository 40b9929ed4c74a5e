"""
Seeding Orchestrator

Bulk-ingests articles from a newline-delimited list of websites: discovers
each site's feeds, then ingests each feed. Failures are isolated per site and
per feed. Can seed automatically when the corpus is empty.
"""

import os
import time
import logging
import threading
from dataclasses import dataclass, field
from typing import List, Optional

from tqdm import tqdm

from .discovery import FeedDiscoverer
from .feed_ingestor import FeedIngestor, IngestReport
from ..storage.article_repository import ArticleRepository

logger = logging.getLogger(__name__)


class SeedingInProgress(Exception):
    """Raised when a seeding run is started while another one is running."""
    pass


@dataclass
class SiteReport:
    """Outcome of seeding one website."""
    site_url: str
    feeds: List[str] = field(default_factory=list)
    ingested: List[IngestReport] = field(default_factory=list)
    failed_feeds: List[str] = field(default_factory=list)

    @property
    def articles_stored(self) -> int:
        return sum(report.stored for report in self.ingested)


@dataclass
class SeedReport:
    """Outcome of a seeding run."""
    source: str
    sites: List[SiteReport] = field(default_factory=list)
    processing_time: float = 0.0

    @property
    def total_sites(self) -> int:
        return len(self.sites)

    @property
    def total_feeds(self) -> int:
        return sum(len(site.feeds) for site in self.sites)

    @property
    def failed_feeds(self) -> int:
        return sum(len(site.failed_feeds) for site in self.sites)

    @property
    def articles_stored(self) -> int:
        return sum(site.articles_stored for site in self.sites)


def read_site_list(file_path: str) -> List[str]:
    """
    Read site URLs from a file (one per line).

    Blank lines and lines starting with '#' are skipped.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    sites = []
    with open(file_path, 'r', encoding='utf-8-sig') as f:
        for line in f:
            line = line.strip()
            if line and not line.startswith('#'):
                sites.append(line)
    return sites


class SeedingOrchestrator:
    """Drives discovery and ingestion over a list of websites."""

    def __init__(
        self,
        discoverer: FeedDiscoverer,
        ingestor: FeedIngestor,
        repository: ArticleRepository,
        default_seed_file: str = "default_seed_websites.txt",
        show_progress: bool = False
    ):
        self.discoverer = discoverer
        self.ingestor = ingestor
        self.repository = repository
        self.default_seed_file = default_seed_file
        self.show_progress = show_progress
        self._run_lock = threading.Lock()

    def seed_site(self, site_url: str) -> SiteReport:
        """Discover and ingest every feed of one website."""
        logger.info(f"--- Processing website: {site_url} ---")
        report = SiteReport(site_url=site_url)

        report.feeds = self.discoverer.discover(site_url)
        if not report.feeds:
            logger.info(f"No RSS feeds found for {site_url}")
            return report

        for feed_url in report.feeds:
            try:
                report.ingested.append(self.ingestor.ingest(feed_url))
            except Exception as e:
                logger.error(f"Error processing RSS feed {feed_url}: {e}")
                report.failed_feeds.append(feed_url)

        return report

    def seed_sites(self, sites: List[str], source: str = "<list>") -> SeedReport:
        """
        Seed from an in-memory list of website URLs.

        Raises:
            SeedingInProgress: If another seeding run holds the lock
        """
        if not self._run_lock.acquire(blocking=False):
            raise SeedingInProgress("A seeding run is already in progress")

        try:
            start_time = time.time()
            report = SeedReport(source=source)
            logger.info(f"Processing {len(sites)} websites from {source}")

            iterator = tqdm(sites, desc="Seeding websites") if self.show_progress else sites
            for site_url in iterator:
                try:
                    report.sites.append(self.seed_site(site_url))
                except Exception as e:
                    logger.error(f"Error processing website {site_url}: {e}")
                    report.sites.append(SiteReport(site_url=site_url))

            report.processing_time = time.time() - start_time
            logger.info(
                f"Finished processing all websites: {report.articles_stored} articles stored "
                f"from {report.total_feeds} feeds ({report.failed_feeds} failed)"
            )
            return report
        finally:
            self._run_lock.release()

    def seed_from_file(self, file_path: str) -> SeedReport:
        """
        Seed from a file of website URLs.

        Raises:
            FileNotFoundError: If the file does not exist
            SeedingInProgress: If another seeding run holds the lock
        """
        sites = read_site_list(file_path)
        return self.seed_sites(sites, source=file_path)

    def auto_seed_if_empty(self) -> Optional[SeedReport]:
        """
        Seed from the default file when the corpus is empty.

        Returns:
            The seeding report, or None when seeding was skipped
        """
        if not self.repository.is_available:
            logger.warning("Vector store not available, skipping auto-seed")
            return None

        count = self.repository.count()
        if count > 0:
            logger.info(f"Collection contains {count} articles, skipping auto-seed")
            return None

        file_path = os.path.abspath(self.default_seed_file)
        if not os.path.exists(file_path):
            logger.warning(f"Default seed file not found: {file_path}")
            logger.warning("Skipping automatic seeding. Run the seed command if needed.")
            return None

        logger.info(f"Collection is empty, starting automatic seeding from: {file_path}")
        try:
            report = self.seed_from_file(file_path)
        except (OSError, SeedingInProgress) as e:
            logger.error(f"Error during automatic seeding: {e}")
            return None

        logger.info("Automatic seeding completed successfully")
        return report
