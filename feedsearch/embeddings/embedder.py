"""
Sentence Embedder

Wraps a fixed-dimension sentence-transformers model and turns raw article
text into L2-normalized, mean-pooled vectors. Provides:
- Explicit, one-time model initialization
- HTML stripping and length capping before inference
- In-memory LRU caching keyed by the sanitized text
- Dimension verification on every produced vector
"""

import re
import hashlib
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, asdict
from typing import Dict, Optional

import numpy as np
from bs4 import BeautifulSoup
from sentence_transformers import SentenceTransformer

logger = logging.getLogger(__name__)


@dataclass
class CacheStats:
    """Statistics for cache performance tracking."""
    hits: int = 0
    misses: int = 0
    total_requests: int = 0
    cache_size: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate cache hit rate."""
        return self.hits / self.total_requests if self.total_requests > 0 else 0.0

    def to_dict(self) -> Dict:
        """Convert to dictionary."""
        return {
            **asdict(self),
            'hit_rate': self.hit_rate
        }


class ModelNotReady(Exception):
    """Raised when the embedder is used before the model has been loaded."""
    pass


class EmbeddingFailure(Exception):
    """Raised when inference fails or produces an unusable vector."""
    pass


def sanitize_text(text: Optional[str], max_chars: int) -> str:
    """
    Strip HTML tags, collapse whitespace, trim and cap the text length.

    Args:
        text: Raw text, possibly containing HTML
        max_chars: Maximum number of characters kept

    Returns:
        Cleaned text
    """
    if not text:
        return ""

    if '<' in text:
        text = BeautifulSoup(text, 'html.parser').get_text(separator=' ')

    text = re.sub(r'\s+', ' ', text).strip()
    return text[:max_chars]


class Embedder:
    """
    Sentence embedder backed by sentence-transformers.

    The default model (all-MiniLM-L6-v2) mean-pools token representations;
    vectors are L2-normalized so cosine similarity and Euclidean distance
    rank identically.
    """

    def __init__(
        self,
        model_name: str = "sentence-transformers/all-MiniLM-L6-v2",
        dimension: int = 384,
        max_chars: int = 512,
        device: str = "cpu",
        cache_size: int = 1024
    ):
        """
        Initialize the embedder without loading the model.

        Args:
            model_name: HuggingFace model name
            dimension: Expected embedding dimension
            max_chars: Maximum characters of sanitized text fed to the model
            device: Torch device for inference
            cache_size: Maximum number of cached embeddings (0 disables caching)
        """
        self.model_name = model_name
        self.dimension = dimension
        self.max_chars = max_chars
        self.device = device
        self.cache_size = cache_size

        self._model: Optional[SentenceTransformer] = None
        self._init_lock = threading.Lock()
        self._cache_lock = threading.Lock()
        self._memory_cache: "OrderedDict[str, np.ndarray]" = OrderedDict()
        self._cache_stats = CacheStats()

    @property
    def is_ready(self) -> bool:
        """Whether the model has been loaded."""
        return self._model is not None

    def initialize(self) -> None:
        """
        Load the model exactly once. Later calls are no-ops.

        Raises:
            ModelNotReady: If the model cannot be loaded
        """
        with self._init_lock:
            if self._model is not None:
                return

            logger.info(f"Loading embedding model: {self.model_name}")
            try:
                model = SentenceTransformer(self.model_name, device=self.device)
            except Exception as e:
                logger.error(f"Failed to load embedding model {self.model_name}: {e}")
                raise ModelNotReady(
                    f"Embedding model '{self.model_name}' could not be loaded: {e}"
                ) from e

            get_dimension = getattr(model, 'get_sentence_embedding_dimension', None)
            model_dimension = get_dimension() if get_dimension else None
            if model_dimension is not None and model_dimension != self.dimension:
                raise ModelNotReady(
                    f"Model '{self.model_name}' produces {model_dimension}-dimensional "
                    f"embeddings, expected {self.dimension}"
                )

            self._model = model
            logger.info(f"✓ Embedding model ready ({self.dimension} dimensions)")

    def _compute_hash(self, text: str) -> str:
        """Compute SHA-256 hash of text for caching."""
        return hashlib.sha256(text.encode('utf-8')).hexdigest()

    def _normalize(self, vector: np.ndarray) -> np.ndarray:
        """L2-normalize a vector, leaving zero vectors untouched."""
        norm = float(np.linalg.norm(vector))
        if norm == 0.0:
            return vector
        return vector / norm

    def _verify_dimensions(self, vector: np.ndarray) -> None:
        """
        Verify embedding dimensions match the expected value.

        Raises:
            EmbeddingFailure: If dimensions don't match
        """
        if vector.ndim != 1 or vector.shape[0] != self.dimension:
            raise EmbeddingFailure(
                f"Expected {self.dimension} dimensions, got {vector.shape}"
            )

    def _cache_get(self, key: str) -> Optional[np.ndarray]:
        with self._cache_lock:
            self._cache_stats.total_requests += 1
            vector = self._memory_cache.get(key)
            if vector is None:
                self._cache_stats.misses += 1
                return None
            self._memory_cache.move_to_end(key)
            self._cache_stats.hits += 1
            return vector

    def _cache_put(self, key: str, vector: np.ndarray) -> None:
        if self.cache_size <= 0:
            return
        with self._cache_lock:
            self._memory_cache[key] = vector
            self._memory_cache.move_to_end(key)
            while len(self._memory_cache) > self.cache_size:
                self._memory_cache.popitem(last=False)
            self._cache_stats.cache_size = len(self._memory_cache)

    def embed(self, text: str) -> np.ndarray:
        """
        Generate a normalized embedding for a single text.

        Args:
            text: Raw input text (HTML allowed)

        Returns:
            float32 vector of length ``dimension``

        Raises:
            ModelNotReady: If ``initialize()`` has not succeeded
            EmbeddingFailure: If inference fails
        """
        if self._model is None:
            raise ModelNotReady("Embedding model not initialized; call initialize() first")

        clean_text = sanitize_text(text, self.max_chars)
        text_hash = self._compute_hash(clean_text)

        cached = self._cache_get(text_hash)
        if cached is not None:
            logger.debug(f"Cache hit for text hash: {text_hash[:8]}...")
            return cached.copy()

        try:
            raw = self._model.encode(
                clean_text,
                convert_to_numpy=True,
                normalize_embeddings=True,
                show_progress_bar=False
            )
        except Exception as e:
            raise EmbeddingFailure(f"Inference failed: {e}") from e

        vector = self._normalize(np.asarray(raw, dtype=np.float32))
        self._verify_dimensions(vector)

        self._cache_put(text_hash, vector)
        logger.debug(
            f"Generated embedding for text (length: {len(clean_text)}), "
            f"embedding dim: {vector.shape[0]}"
        )
        return vector.copy()

    def get_cache_stats(self) -> Dict:
        """Get cache statistics."""
        with self._cache_lock:
            self._cache_stats.cache_size = len(self._memory_cache)
            return self._cache_stats.to_dict()

    def __repr__(self) -> str:
        return (
            f"Embedder(model={self.model_name!r}, "
            f"dimension={self.dimension}, "
            f"ready={self.is_ready})"
        )
