"""
Article Repository

Maps articles to vector-store records: builds the embedding text, embeds it,
serializes the fixed-schema metadata and batch-upserts. Provides lookups by
link, unranked listing and similarity-ranked search.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..embeddings.embedder import Embedder, EmbeddingFailure, ModelNotReady
from ..models import Article, ArticleMetadata
from .vector_store import VectorStore, StoreRecord, StoreResult, StoreStatus

logger = logging.getLogger(__name__)


@dataclass
class UpsertReport:
    """Outcome of a batch upsert."""
    submitted: int = 0
    stored: int = 0
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    status: StoreStatus = StoreStatus.EMPTY

    @property
    def success(self) -> bool:
        return self.status in (StoreStatus.OK, StoreStatus.EMPTY) and not self.failed


class ArticleRepository:
    """Article persistence and retrieval on top of the vector store."""

    def __init__(self, vector_store: VectorStore, embedder: Embedder, max_limit: int = 100):
        """
        Initialize the repository.

        Args:
            vector_store: Store owning the article collection
            embedder: Initialized (or initializable) embedder
            max_limit: Largest page/result size accepted by search
        """
        self.vector_store = vector_store
        self.embedder = embedder
        self.max_limit = max_limit

    @property
    def is_available(self) -> bool:
        return self.vector_store.is_available

    def _to_record(self, article: Article) -> StoreRecord:
        document_text = article.embedding_text()
        embedding = self.embedder.embed(document_text)
        return StoreRecord(
            id=article.id,
            document=document_text,
            metadata=article.to_metadata().to_dict(),
            embedding=embedding.tolist(),
        )

    def _to_article(self, record: StoreRecord, distance: Optional[float] = None) -> Article:
        metadata = ArticleMetadata.from_dict(record.metadata)
        return Article.from_metadata(record.id, metadata, distance=distance)

    def upsert_many(self, articles: Sequence[Article]) -> UpsertReport:
        """
        Embed and store a batch of articles.

        Articles whose embedding fails are skipped. When the store is
        unavailable the call is a no-op.

        Raises:
            ModelNotReady: If the embedder has not been initialized
        """
        report = UpsertReport(submitted=len(articles))

        if not articles:
            logger.info("No articles to insert")
            return report

        if not self.vector_store.is_available:
            logger.warning(
                f"Vector store not available, skipping insertion of {len(articles)} articles"
            )
            report.status = StoreStatus.UNAVAILABLE
            return report

        logger.info(f"Generating embeddings for {len(articles)} articles...")

        records = []
        for article in articles:
            try:
                records.append(self._to_record(article))
            except EmbeddingFailure as e:
                logger.error(f"Skipping article {article.link}: embedding failed: {e}")
                report.skipped.append(article.id)

        if not records:
            return report

        result = self.vector_store.upsert_batch(records)
        report.status = result.status
        report.failed = list(result.failed_ids)
        report.stored = len(result.records)

        if result.ok:
            logger.info(f"Successfully inserted {report.stored} articles")
        else:
            logger.error(
                f"Inserted {report.stored} of {len(records)} articles "
                f"({result.status.value}): {result.error}"
            )
        return report

    def find_by_link(self, link: str) -> Optional[Article]:
        """Exact-match lookup by link."""
        result = self.vector_store.get_by_filter({'link': link}, limit=1)
        if not result.records:
            return None
        return self._to_article(result.records[0])

    def exists(self, link: str) -> bool:
        return self.find_by_link(link) is not None

    def _validate_limit(self, limit) -> int:
        if isinstance(limit, bool) or not isinstance(limit, int):
            raise ValueError(f"limit must be an integer, got {limit!r}")
        if limit < 1 or limit > self.max_limit:
            raise ValueError(f"limit must be between 1 and {self.max_limit}, got {limit}")
        return limit

    def list_articles(self, limit: int = 10, offset: int = 0) -> List[Article]:
        """Unranked listing in store order; every article carries distance 0."""
        limit = self._validate_limit(limit)
        if offset < 0:
            raise ValueError(f"offset must be non-negative, got {offset}")

        result = self.vector_store.get_page(limit=limit, offset=offset)
        articles = [self._to_article(record, distance=0.0) for record in result.records]
        logger.debug(f"Listed {len(articles)} articles")
        return articles

    def search(self, query_text: Optional[str], limit: int = 10) -> List[Article]:
        """
        Similarity-ranked search, closest match first.

        A blank query degrades to an unranked listing. A missing model or a
        failed query embedding yields an empty list.

        Raises:
            ValueError: If limit is not an integer in [1, max_limit]
        """
        limit = self._validate_limit(limit)

        if not query_text or not query_text.strip():
            return self.list_articles(limit)

        query_text = query_text.strip()
        logger.info(f'Searching for: "{query_text}" with limit: {limit}')

        try:
            query_vector = self.embedder.embed(query_text)
        except (ModelNotReady, EmbeddingFailure) as e:
            logger.warning(f"Cannot embed search query, returning no results: {e}")
            return []

        result: StoreResult = self.vector_store.query_nearest(query_vector.tolist(), limit)
        if result.degraded:
            logger.warning(f"Search degraded ({result.status.value}): {result.error}")
            return []

        articles = [
            self._to_article(record, distance=record.distance)
            for record in result.records
            if record.distance is not None
        ]
        # Stable sort; backends do not all guarantee ordering
        articles.sort(key=lambda article: article.distance)
        return articles

    def count(self) -> int:
        return self.vector_store.count()
