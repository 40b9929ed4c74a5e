"""
Main Pipeline System

Wires every component from one explicit Config:
- Embedder
- Vector store and backend
- Article repository
- Feed discovery and ingestion
- Seeding orchestration
- Query handling
"""

import time
import logging
from typing import List, Dict, Optional, Any

import requests

from .config import Config
from .embeddings.embedder import Embedder, ModelNotReady
from .storage.vector_store import VectorStore, VectorBackend
from .storage.chroma_backend import ChromaBackend
from .storage.faiss_backend import FaissBackend
from .storage.article_repository import ArticleRepository
from .ingestion.discovery import FeedDiscoverer
from .ingestion.feed_ingestor import FeedIngestor, IngestReport
from .ingestion.seeding import SeedingOrchestrator, SeedReport
from .query.handler import QueryHandler


def build_backend(config: Config) -> VectorBackend:
    """Create the vector backend selected by the configuration."""
    if config.vector_backend == 'faiss':
        return FaissBackend(index_dir=config.faiss_index_dir, dimension=config.embedding_dimension)
    return ChromaBackend(host=config.chroma_host, port=config.chroma_port)


def build_session(config: Config) -> requests.Session:
    """Create the HTTP session shared by discovery and ingestion."""
    session = requests.Session()
    session.headers.update({'User-Agent': config.user_agent})
    return session


class FeedSearchSystem:
    """
    Main system that integrates all components.

    Provides high-level methods for:
    - Startup (model load, collection, optional auto-seed)
    - Seeding from site lists and ingesting single feeds
    - Semantic search
    - System statistics
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        embedder: Optional[Embedder] = None,
        vector_store: Optional[VectorStore] = None,
        repository: Optional[ArticleRepository] = None,
        discoverer: Optional[FeedDiscoverer] = None,
        ingestor: Optional[FeedIngestor] = None,
        seeder: Optional[SeedingOrchestrator] = None,
        session: Optional[requests.Session] = None,
        show_progress: bool = False,
        log_level: int = logging.INFO
    ):
        """
        Initialize the system. Nothing is loaded or contacted until ``startup()``.

        Args:
            config: Configuration (default: Config() from environment)
            embedder: Embedder instance (or None for default)
            vector_store: VectorStore instance (or None for default)
            repository: ArticleRepository instance (or None for default)
            discoverer: FeedDiscoverer instance (or None for default)
            ingestor: FeedIngestor instance (or None for default)
            seeder: SeedingOrchestrator instance (or None for default)
            session: HTTP session shared by discovery and ingestion
            show_progress: Show a progress bar while seeding
            log_level: Logging level
        """
        self._setup_logging(log_level)

        self.config = config or Config()
        self.session = session or build_session(self.config)

        # Initialize components (dependency injection or defaults)
        self.embedder = embedder or Embedder(
            model_name=self.config.embedding_model,
            dimension=self.config.embedding_dimension,
            max_chars=self.config.embedding_max_chars,
            device=self.config.embedding_device,
            cache_size=self.config.embedding_cache_size
        )
        self.vector_store = vector_store or VectorStore(
            backend=build_backend(self.config),
            collection_name=self.config.collection_name,
            dimension=self.config.embedding_dimension
        )
        self.repository = repository or ArticleRepository(
            vector_store=self.vector_store,
            embedder=self.embedder,
            max_limit=self.config.search_limit_max
        )
        self.discoverer = discoverer or FeedDiscoverer(
            session=self.session,
            probe_timeout=self.config.probe_timeout,
            page_timeout=self.config.page_timeout,
            max_workers=self.config.probe_workers
        )
        self.ingestor = ingestor or FeedIngestor(
            repository=self.repository,
            session=self.session,
            timeout=self.config.feed_timeout,
            max_retries=self.config.feed_max_retries
        )
        self.seeder = seeder or SeedingOrchestrator(
            discoverer=self.discoverer,
            ingestor=self.ingestor,
            repository=self.repository,
            default_seed_file=self.config.default_seed_file,
            show_progress=show_progress
        )
        self.query_handler = QueryHandler(
            repository=self.repository,
            default_limit=self.config.search_limit_default
        )

        self.logger.info("FeedSearchSystem initialized")

    def _setup_logging(self, log_level: int):
        """Configure logging for the system."""
        self.logger = logging.getLogger(__name__)
        self.logger.setLevel(log_level)

        if not self.logger.handlers and not logging.getLogger().handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def startup(self, auto_seed: Optional[bool] = None) -> Dict[str, Any]:
        """
        Load the model, open the collection and optionally auto-seed.

        Neither a missing model nor an unreachable store aborts startup.

        Returns:
            Dictionary describing what came up
        """
        start_time = time.time()

        model_ready = True
        try:
            self.embedder.initialize()
        except ModelNotReady as e:
            self.logger.error(f"Embedding model unavailable: {e}")
            model_ready = False

        store = self.vector_store.ensure_collection()

        seed_report = None
        if auto_seed is None:
            auto_seed = self.config.auto_seed
        if auto_seed and model_ready:
            seed_report = self.seeder.auto_seed_if_empty()

        return {
            'model_ready': model_ready,
            'store_available': store.ok,
            'auto_seeded': seed_report is not None,
            'seed_report': seed_report,
            'startup_time': time.time() - start_time,
        }

    def seed(self, file_path: Optional[str] = None) -> SeedReport:
        """
        Seed from a file of website URLs.

        Raises:
            FileNotFoundError: If the file does not exist
        """
        return self.seeder.seed_from_file(file_path or self.config.default_seed_file)

    def discover(self, site_url: str) -> List[str]:
        """Discover feed URLs for a website."""
        return self.discoverer.discover(site_url)

    def ingest_feed(self, feed_url: str) -> IngestReport:
        """Ingest a single feed URL."""
        return self.ingestor.ingest(feed_url)

    def search(self, query: Optional[str] = None, limit: Optional[Any] = None) -> Dict[str, Any]:
        """Search the corpus; see QueryHandler.search."""
        return self.query_handler.search(query, limit)

    def get_stats(self) -> Dict[str, Any]:
        """
        Get system statistics.

        Returns:
            Dictionary with statistics
        """
        vector_stats = self.vector_store.get_stats()
        return {
            'total_articles': vector_stats['total_vectors'],
            'vector_store_stats': vector_stats,
            'embedding_model': self.embedder.model_name,
            'model_ready': self.embedder.is_ready,
            'cache_stats': self.embedder.get_cache_stats(),
        }
