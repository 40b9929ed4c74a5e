"""
FAISS Vector Backend

Local vector backend using a FAISS flat L2 index wrapped in an ID map, so
records can be replaced by id. Metadata and documents are kept in an ordered
mapping synchronized with the index and persisted next to it with an atomic
write.
"""

import os
import pickle
import hashlib
import logging
from typing import List, Dict, Any, Optional, Sequence

import faiss
import numpy as np

from .vector_store import VectorBackend, StoreRecord, StoreUnavailable

logger = logging.getLogger(__name__)


def _int_id(record_id: str) -> int:
    """Map a string record id to a stable positive int64 FAISS id."""
    return int(hashlib.sha1(record_id.encode('utf-8')).hexdigest()[:15], 16)


class FaissBackend(VectorBackend):
    """
    FAISS-backed collection persisted under ``index_dir/<collection>.index``.

    Distances are squared L2, the same metric the Chroma backend uses.
    """

    name = "faiss"

    def __init__(self, index_dir: str = "data/embeddings", dimension: int = 384):
        """
        Initialize the FAISS backend.

        Args:
            index_dir: Directory holding index and metadata files
            dimension: Dimension of embedding vectors
        """
        self.index_dir = index_dir
        self.dimension = dimension
        self.index_path: Optional[str] = None
        self.index = None
        # FAISS id -> {'id', 'document', 'metadata'}; insertion order is store order
        self.records: Dict[int, Dict[str, Any]] = {}

    def _initialize_index(self) -> None:
        """Initialize a new empty index."""
        self.index = faiss.IndexIDMap2(faiss.IndexFlatL2(self.dimension))
        self.records = {}

    def _require_index(self) -> None:
        if self.index is None:
            raise StoreUnavailable("FAISS collection not opened")

    def open_collection(self, name: str) -> None:
        try:
            os.makedirs(self.index_dir, exist_ok=True)
        except OSError as e:
            raise StoreUnavailable(f"Cannot create index directory {self.index_dir}: {e}") from e

        self.index_path = os.path.join(self.index_dir, f"{name}.index")
        self._initialize_index()

        if os.path.exists(self.index_path):
            self.load_index()

    def upsert(self, records: Sequence[StoreRecord]) -> None:
        self._require_index()
        if not records:
            return

        # Last occurrence wins for duplicate ids within one batch
        batch: Dict[int, StoreRecord] = {}
        for record in records:
            batch[_int_id(record.id)] = record

        ids = np.array(list(batch.keys()), dtype=np.int64)
        vectors = np.array([record.embedding for record in batch.values()], dtype=np.float32)

        if vectors.shape[1] != self.dimension:
            raise ValueError(
                f"Embedding dimension ({vectors.shape[1]}) must match "
                f"index dimension ({self.dimension})"
            )

        # Changes go to copies and replace the live state only once saved
        index = faiss.clone_index(self.index)
        records = dict(self.records)

        existing = np.array([i for i in ids if i in records], dtype=np.int64)
        if existing.size:
            index.remove_ids(existing)

        index.add_with_ids(vectors, ids)

        for int_id, record in batch.items():
            records[int_id] = {
                'id': record.id,
                'document': record.document,
                'metadata': dict(record.metadata),
            }

        # Verify synchronization
        assert index.ntotal == len(records), \
            "CRITICAL: Metadata out of sync with index"

        self.save_index(index, records)
        self.index = index
        self.records = records

    def _matches(self, metadata: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        if not filters:
            return True
        return all(metadata.get(key) == value for key, value in filters.items())

    def get(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[StoreRecord]:
        self._require_index()
        matches = [
            entry for entry in self.records.values()
            if self._matches(entry['metadata'], filters)
        ]
        end = None if limit is None else offset + limit
        return [
            StoreRecord(
                id=entry['id'],
                document=entry['document'],
                metadata=dict(entry['metadata'])
            )
            for entry in matches[offset:end]
        ]

    def query(self, embedding: List[float], k: int) -> List[StoreRecord]:
        self._require_index()
        if k <= 0 or self.index.ntotal == 0:
            return []

        query_vector = np.array([embedding], dtype=np.float32)
        actual_k = min(k, self.index.ntotal)
        distances, labels = self.index.search(query_vector, actual_k)

        results = []
        for dist, label in zip(distances[0], labels[0]):
            entry = self.records.get(int(label))
            if label < 0 or entry is None:
                continue
            results.append(StoreRecord(
                id=entry['id'],
                document=entry['document'],
                metadata=dict(entry['metadata']),
                distance=float(dist)
            ))
        return results

    def count(self) -> int:
        self._require_index()
        return self.index.ntotal

    def save_index(self, index, records: Dict[int, Dict[str, Any]], path: Optional[str] = None) -> None:
        """
        Save a FAISS index and its metadata to disk with atomic writes.

        Both files are written to temporaries first, so a failed save leaves
        the previous files in place.

        Args:
            index: FAISS index to save
            records: Metadata entries matching the index
            path: Path to save index (default: self.index_path)
        """
        save_path = path or self.index_path
        if save_path is None:
            raise StoreUnavailable("FAISS collection not opened")

        metadata_path = save_path + '.metadata'
        temp_index_path = save_path + '.tmp'
        temp_metadata_path = metadata_path + '.tmp'

        try:
            faiss.write_index(index, temp_index_path)
            with open(temp_metadata_path, 'wb') as f:
                pickle.dump(records, f, protocol=pickle.HIGHEST_PROTOCOL)

            # Atomic rename
            os.replace(temp_index_path, save_path)
            os.replace(temp_metadata_path, metadata_path)

        except Exception:
            for temp_path in (temp_index_path, temp_metadata_path):
                if os.path.exists(temp_path):
                    os.remove(temp_path)
            raise

    def load_index(self, path: Optional[str] = None) -> bool:
        """
        Load FAISS index and metadata from disk.

        A missing, corrupt or out-of-sync index leaves an empty collection.

        Returns:
            True if successful, False otherwise
        """
        load_path = path or self.index_path

        try:
            if not load_path or not os.path.exists(load_path):
                return False

            loaded_index = faiss.read_index(load_path)

            metadata_path = load_path + '.metadata'
            if os.path.exists(metadata_path):
                with open(metadata_path, 'rb') as f:
                    loaded_records = pickle.load(f)
            else:
                loaded_records = {}

            if loaded_index.ntotal != len(loaded_records):
                raise ValueError(
                    f"Index has {loaded_index.ntotal} vectors but "
                    f"metadata has {len(loaded_records)} entries"
                )
            if loaded_index.d != self.dimension:
                raise ValueError(
                    f"Index dimension {loaded_index.d} does not match {self.dimension}"
                )

            self.index = loaded_index
            self.records = loaded_records
            logger.info(f"Loaded FAISS index with {self.index.ntotal} vectors from {load_path}")
            return True

        except Exception as e:
            logger.warning(f"Failed to load FAISS index from {load_path}, starting empty: {e}")
            self._initialize_index()
            return False
