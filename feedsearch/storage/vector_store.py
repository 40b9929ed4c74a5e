"""
Vector Store

Owns a single named collection of (id, embedding, metadata, document) records
on top of a pluggable backend (Chroma server or local FAISS index).

Every operation returns a typed StoreResult instead of raising, so read paths
degrade to "no results" and write paths degrade to "skip, log, continue" when
the backend is down. Backend-specific result shapes are normalized into
StoreRecord lists before they leave this module.
"""

import enum
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Sequence

import numpy as np

logger = logging.getLogger(__name__)


class StoreUnavailable(Exception):
    """Raised by backends when the vector engine cannot be reached."""
    pass


class StoreStatus(enum.Enum):
    """Outcome of a vector store call."""
    OK = "ok"
    EMPTY = "empty"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


@dataclass
class StoreRecord:
    """Uniform record shape shared by every backend."""
    id: str
    document: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)
    embedding: Optional[List[float]] = None
    distance: Optional[float] = None


@dataclass
class StoreResult:
    """Typed result of a vector store call."""
    status: StoreStatus
    records: List[StoreRecord] = field(default_factory=list)
    error: Optional[str] = None
    failed_ids: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when the call reached the backend successfully."""
        return self.status in (StoreStatus.OK, StoreStatus.EMPTY)

    @property
    def degraded(self) -> bool:
        """True when the backend could not serve the call."""
        return not self.ok

    @classmethod
    def success(cls, records: Optional[List[StoreRecord]] = None) -> 'StoreResult':
        records = records or []
        status = StoreStatus.OK if records else StoreStatus.EMPTY
        return cls(status=status, records=records)

    @classmethod
    def unavailable(cls, message: str) -> 'StoreResult':
        return cls(status=StoreStatus.UNAVAILABLE, error=message)

    @classmethod
    def failure(cls, message: str, failed_ids: Optional[List[str]] = None) -> 'StoreResult':
        return cls(status=StoreStatus.ERROR, error=message, failed_ids=failed_ids or [])


class VectorBackend(ABC):
    """
    Backend adapter bound to one collection.

    Implementations raise StoreUnavailable when the engine cannot be reached
    and return plain StoreRecord lists otherwise.
    """

    name = "backend"

    @abstractmethod
    def open_collection(self, name: str) -> None:
        """Get or create the named collection."""

    @abstractmethod
    def upsert(self, records: Sequence[StoreRecord]) -> None:
        """Insert or replace records by id."""

    @abstractmethod
    def get(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[StoreRecord]:
        """Return records matching all equality filters, in store order."""

    @abstractmethod
    def query(self, embedding: List[float], k: int) -> List[StoreRecord]:
        """Return up to k nearest records with distances."""

    @abstractmethod
    def count(self) -> int:
        """Number of records in the collection."""


class VectorStore:
    """
    Facade over a backend that never raises on backend failure.

    Calls made before ``ensure_collection()`` succeeded return an
    UNAVAILABLE result.
    """

    def __init__(self, backend: VectorBackend, collection_name: str = "articles", dimension: int = 384):
        """
        Initialize the vector store.

        Args:
            backend: Backend adapter
            collection_name: Name of the collection owned by this store
            dimension: Expected embedding dimension
        """
        self.backend = backend
        self.collection_name = collection_name
        self.dimension = dimension
        self._ready = False

    @property
    def is_available(self) -> bool:
        """Whether the collection has been opened successfully."""
        return self._ready

    def ensure_collection(self) -> StoreResult:
        """Get or create the collection. Idempotent, never raises."""
        if self._ready:
            return StoreResult.success()

        try:
            self.backend.open_collection(self.collection_name)
        except StoreUnavailable as e:
            logger.warning(f"Vector store unavailable ({self.backend.name}): {e}")
            return StoreResult.unavailable(str(e))
        except Exception as e:
            logger.error(f"Error opening collection '{self.collection_name}': {e}")
            return StoreResult.unavailable(str(e))

        self._ready = True
        logger.info(f"Vector collection '{self.collection_name}' ready ({self.backend.name})")
        return StoreResult.success()

    def _unavailable(self, operation: str) -> StoreResult:
        logger.debug(f"Vector store not available, skipping {operation}")
        return StoreResult.unavailable("collection not initialized")

    def _validate_vector(self, vector: Sequence[float]) -> List[float]:
        array = np.asarray(vector, dtype=np.float32)
        if array.ndim != 1 or array.shape[0] != self.dimension:
            raise ValueError(
                f"Embedding dimension ({array.shape}) must match "
                f"store dimension ({self.dimension})"
            )
        return array.tolist()

    def upsert_batch(self, records: Sequence[StoreRecord]) -> StoreResult:
        """
        Insert or replace records by id.

        An empty batch is a no-op. When the batch call fails for a reason other
        than backend unavailability, records are retried one by one and the ids
        that still fail are reported in ``failed_ids``.
        """
        if not records:
            return StoreResult.success()
        if not self._ready:
            return self._unavailable("upsert")

        records = list(records)
        valid: List[StoreRecord] = []
        failed: List[str] = []
        for record in records:
            try:
                embedding = record.embedding if record.embedding is not None else []
                record.embedding = self._validate_vector(embedding)
                valid.append(record)
            except ValueError as e:
                logger.error(f"Rejecting record {record.id}: {e}")
                failed.append(record.id)

        if not valid:
            return StoreResult.failure("no valid records in batch", failed_ids=failed)

        try:
            self.backend.upsert(valid)
        except StoreUnavailable as e:
            logger.warning(f"Vector store unavailable during upsert: {e}")
            return StoreResult.unavailable(str(e))
        except Exception as e:
            logger.error(f"Batch upsert of {len(valid)} records failed, retrying individually: {e}")
            for record in valid:
                try:
                    self.backend.upsert([record])
                except StoreUnavailable as inner:
                    logger.warning(f"Vector store unavailable during upsert: {inner}")
                    return StoreResult.unavailable(str(inner))
                except Exception as inner:
                    logger.error(f"Upsert failed for record {record.id}: {inner}")
                    failed.append(record.id)

        stored = [record for record in valid if record.id not in failed]
        if failed:
            result = StoreResult.failure(
                f"{len(failed)} of {len(records)} records failed",
                failed_ids=failed
            )
            result.records = stored
            return result
        return StoreResult.success(stored)

    def get_by_filter(self, filters: Dict[str, Any], limit: Optional[int] = None) -> StoreResult:
        """Return records whose metadata equals every value in ``filters``."""
        if not self._ready:
            return self._unavailable("get")
        try:
            return StoreResult.success(self.backend.get(filters=filters, limit=limit))
        except StoreUnavailable as e:
            logger.warning(f"Vector store unavailable during get: {e}")
            return StoreResult.unavailable(str(e))
        except Exception as e:
            logger.error(f"Error getting records by filter {filters}: {e}")
            return StoreResult.failure(str(e))

    def get_page(self, limit: int, offset: int = 0) -> StoreResult:
        """Return an unfiltered page of records in store-native order."""
        if not self._ready:
            return self._unavailable("get_page")
        try:
            return StoreResult.success(self.backend.get(limit=limit, offset=offset))
        except StoreUnavailable as e:
            logger.warning(f"Vector store unavailable during listing: {e}")
            return StoreResult.unavailable(str(e))
        except Exception as e:
            logger.error(f"Error listing records: {e}")
            return StoreResult.failure(str(e))

    def query_nearest(self, vector: Sequence[float], k: int) -> StoreResult:
        """
        Return up to ``k`` nearest records, closest first.

        Raises:
            ValueError: If k is negative or the vector dimension is wrong
        """
        if k < 0:
            raise ValueError(f"k must be non-negative, got {k}")
        query_vector = self._validate_vector(vector)
        if k == 0:
            return StoreResult.success()
        if not self._ready:
            return self._unavailable("query")

        try:
            records = self.backend.query(query_vector, k)
        except StoreUnavailable as e:
            logger.warning(f"Vector store unavailable during query: {e}")
            return StoreResult.unavailable(str(e))
        except Exception as e:
            logger.error(f"Error querying nearest neighbours: {e}")
            return StoreResult.failure(str(e))

        records.sort(key=lambda record: record.distance if record.distance is not None else float('inf'))
        return StoreResult.success(records[:k])

    def count(self) -> int:
        """Number of records, 0 when the store is unavailable."""
        if not self._ready:
            return 0
        try:
            return self.backend.count()
        except Exception as e:
            logger.warning(f"Error counting records: {e}")
            return 0

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the vector store."""
        return {
            'backend': self.backend.name,
            'collection': self.collection_name,
            'available': self._ready,
            'dimension': self.dimension,
            'total_vectors': self.count(),
        }

    def __repr__(self) -> str:
        return (
            f"VectorStore(backend={self.backend.name}, "
            f"collection={self.collection_name!r}, "
            f"available={self._ready})"
        )
