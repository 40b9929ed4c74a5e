"""
Chroma Vector Backend

Network-backed vector backend talking to a Chroma server over HTTP. Connection
failures are reported as StoreUnavailable; query results (list of lists) and
get results (flat lists) are both normalized into StoreRecord lists.
"""

import logging
from typing import List, Dict, Any, Optional, Sequence

import chromadb
import httpx
from chromadb.config import Settings

from .vector_store import VectorBackend, StoreRecord, StoreUnavailable

logger = logging.getLogger(__name__)

# Errors that mean the server could not be reached at all
CONNECTION_ERRORS = (httpx.TransportError, ConnectionError, TimeoutError)


def build_where(filters: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Translate plain equality filters into a Chroma ``where`` clause."""
    if not filters:
        return None
    clauses = [{key: {"$eq": value}} for key, value in filters.items()]
    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class ChromaBackend(VectorBackend):
    """Chroma collection accessed through ``chromadb.HttpClient``."""

    name = "chroma"

    def __init__(self, host: str = "localhost", port: int = 8000, client=None):
        """
        Initialize the Chroma backend without connecting.

        Args:
            host: Chroma server host
            port: Chroma server port
            client: Pre-built Chroma client (optional)
        """
        self.host = host
        self.port = port
        self.client = client
        self.collection = None

    def _connect(self):
        if self.client is None:
            self.client = chromadb.HttpClient(
                host=self.host,
                port=self.port,
                settings=Settings(anonymized_telemetry=False)
            )
        return self.client

    def _require_collection(self):
        if self.collection is None:
            raise StoreUnavailable("Chroma collection not opened")
        return self.collection

    def open_collection(self, name: str) -> None:
        try:
            client = self._connect()
            self.collection = client.get_or_create_collection(
                name=name,
                metadata={
                    "description": "RSS articles vector embeddings",
                    "hnsw:space": "l2",
                }
            )
        except CONNECTION_ERRORS as e:
            self.client = None
            raise StoreUnavailable(
                f"Unable to connect to Chroma at {self.host}:{self.port}: {e}"
            ) from e
        except ValueError as e:
            # chromadb reports an unreachable server as ValueError on client creation
            self.client = None
            raise StoreUnavailable(f"Chroma client error: {e}") from e

        logger.info(f"Using Chroma collection: {name}")

    def upsert(self, records: Sequence[StoreRecord]) -> None:
        collection = self._require_collection()
        if not records:
            return
        try:
            collection.upsert(
                ids=[record.id for record in records],
                embeddings=[record.embedding for record in records],
                metadatas=[record.metadata for record in records],
                documents=[record.document for record in records],
            )
        except CONNECTION_ERRORS as e:
            raise StoreUnavailable(str(e)) from e

    def get(
        self,
        filters: Optional[Dict[str, Any]] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[StoreRecord]:
        collection = self._require_collection()
        try:
            results = collection.get(
                where=build_where(filters),
                limit=limit,
                offset=offset or None,
                include=["metadatas", "documents"],
            )
        except CONNECTION_ERRORS as e:
            raise StoreUnavailable(str(e)) from e

        ids = results.get("ids") or []
        metadatas = results.get("metadatas") or [None] * len(ids)
        documents = results.get("documents") or [None] * len(ids)

        return [
            StoreRecord(id=record_id, document=document or "", metadata=dict(metadata or {}))
            for record_id, metadata, document in zip(ids, metadatas, documents)
        ]

    def query(self, embedding: List[float], k: int) -> List[StoreRecord]:
        collection = self._require_collection()
        if k <= 0:
            return []
        try:
            results = collection.query(
                query_embeddings=[embedding],
                n_results=k,
                include=["metadatas", "documents", "distances"],
            )
        except CONNECTION_ERRORS as e:
            raise StoreUnavailable(str(e)) from e

        ids = (results.get("ids") or [[]])[0]
        distances = (results.get("distances") or [[]])[0]
        metadatas = (results.get("metadatas") or [[None] * len(ids)])[0]
        documents = (results.get("documents") or [[None] * len(ids)])[0]

        records = []
        for record_id, distance, metadata, document in zip(ids, distances, metadatas, documents):
            if distance is None:
                continue
            records.append(StoreRecord(
                id=record_id,
                document=document or "",
                metadata=dict(metadata or {}),
                distance=float(distance),
            ))
        return records

    def count(self) -> int:
        collection = self._require_collection()
        try:
            return collection.count()
        except CONNECTION_ERRORS as e:
            raise StoreUnavailable(str(e)) from e
