"""
Tests for the Sentence Embedder

Tests cover initialization, text sanitization, determinism, normalization,
caching and error conditions. The sentence-transformers model is replaced by
a deterministic fake.
"""

import numpy as np
import pytest
from unittest.mock import patch, MagicMock

from feedsearch.embeddings.embedder import (
    Embedder,
    ModelNotReady,
    EmbeddingFailure,
    CacheStats,
    sanitize_text,
)


class TestInitialization:
    """Test explicit model loading."""

    def test_embed_before_initialize_fails_closed(self, fake_model):
        embedder = Embedder()

        with pytest.raises(ModelNotReady):
            embedder.embed("hello world")

    def test_initialize_loads_model_once(self):
        with patch('feedsearch.embeddings.embedder.SentenceTransformer') as model_cls:
            model_cls.return_value.get_sentence_embedding_dimension.return_value = 384
            embedder = Embedder()

            embedder.initialize()
            embedder.initialize()

            assert model_cls.call_count == 1
            assert embedder.is_ready

    def test_load_failure_raises_model_not_ready(self):
        with patch('feedsearch.embeddings.embedder.SentenceTransformer',
                   side_effect=OSError("no such model")):
            embedder = Embedder()

            with pytest.raises(ModelNotReady):
                embedder.initialize()
            assert not embedder.is_ready

    def test_dimension_mismatch_on_load(self):
        with patch('feedsearch.embeddings.embedder.SentenceTransformer') as model_cls:
            model_cls.return_value.get_sentence_embedding_dimension.return_value = 768
            embedder = Embedder(dimension=384)

            with pytest.raises(ModelNotReady):
                embedder.initialize()


class TestSanitization:
    """Test input cleaning before inference."""

    def test_strips_html_and_collapses_whitespace(self):
        text = "<p>Hello   <b>world</b></p>\n\n<div>again</div>"
        assert sanitize_text(text, 512) == "Hello world again"

    def test_caps_length(self):
        assert len(sanitize_text("a" * 2000, 512)) == 512

    def test_empty_input(self):
        assert sanitize_text(None, 512) == ""
        assert sanitize_text("   ", 512) == ""

    def test_model_receives_sanitized_text(self, fake_model):
        embedder = Embedder(max_chars=20)
        embedder.initialize()
        embedder._model.encode = MagicMock(return_value=np.ones(384, dtype=np.float32))

        embedder.embed("<h1>Title</h1>   body text that is rather long")

        sent = embedder._model.encode.call_args[0][0]
        assert "<" not in sent
        assert len(sent) <= 20


class TestEmbedding:
    """Test produced vectors."""

    def test_vector_shape_and_norm(self, embedder):
        vector = embedder.embed("Celebrity couple announces engagement")

        assert vector.shape == (384,)
        assert vector.dtype == np.float32
        assert np.linalg.norm(vector) == pytest.approx(1.0, abs=1e-5)

    def test_deterministic(self, fake_model):
        embedder = Embedder(cache_size=0)
        embedder.initialize()

        first = embedder.embed("Same text twice")
        second = embedder.embed("Same text twice")

        assert embedder._model.calls == 2

        np.testing.assert_allclose(first, second, rtol=0, atol=1e-7)

    def test_html_variants_share_vector(self, embedder):
        plain = embedder.embed("Breaking news tonight")
        html = embedder.embed("<p>Breaking <em>news</em></p> tonight")

        np.testing.assert_allclose(plain, html)

    def test_inference_error_wrapped(self, embedder):
        embedder._model.encode = MagicMock(side_effect=RuntimeError("CUDA exploded"))

        with pytest.raises(EmbeddingFailure):
            embedder.embed("anything")

    def test_wrong_dimension_rejected(self, embedder):
        embedder._model.encode = MagicMock(return_value=np.ones(12, dtype=np.float32))

        with pytest.raises(EmbeddingFailure):
            embedder.embed("anything")


class TestCaching:
    """Test the in-memory embedding cache."""

    def test_cache_hit_skips_inference(self, embedder):
        embedder.embed("cached text")
        calls = embedder._model.calls
        embedder.embed("cached text")

        assert embedder._model.calls == calls
        stats = embedder.get_cache_stats()
        assert stats['hits'] == 1
        assert stats['misses'] == 1

    def test_cache_is_bounded(self, fake_model):
        embedder = Embedder(cache_size=2)
        embedder.initialize()

        for text in ("one", "two", "three"):
            embedder.embed(text)

        assert embedder.get_cache_stats()['cache_size'] == 2

    def test_returned_vector_is_a_copy(self, embedder):
        vector = embedder.embed("mutable")
        vector[:] = 0

        assert np.linalg.norm(embedder.embed("mutable")) == pytest.approx(1.0, abs=1e-5)

    def test_hit_rate(self):
        stats = CacheStats(hits=3, misses=1, total_requests=4)
        assert stats.hit_rate == 0.75
        assert CacheStats().hit_rate == 0.0
