"""
Shared fixtures: a deterministic stand-in for the sentence-transformers
model, a FAISS-backed store on a temporary directory, RSS document builders
and a scripted HTTP session.
"""

import re
import hashlib
from typing import Dict, List, Optional
from unittest.mock import Mock, patch

import numpy as np
import pytest
import requests

from feedsearch.embeddings.embedder import Embedder
from feedsearch.storage.vector_store import VectorStore
from feedsearch.storage.faiss_backend import FaissBackend
from feedsearch.storage.article_repository import ArticleRepository


DIMENSION = 384


class FakeSentenceTransformer:
    """Hashed bag-of-words encoder: texts sharing words land close together."""

    def __init__(self, model_name=None, device=None):
        self.model_name = model_name
        self.device = device
        self.calls = 0

    def get_sentence_embedding_dimension(self):
        return DIMENSION

    def encode(self, text, convert_to_numpy=True, normalize_embeddings=False, show_progress_bar=False):
        self.calls += 1
        vector = np.zeros(DIMENSION, dtype=np.float32)
        for word in re.findall(r'\w+', text.lower()):
            bucket = int(hashlib.md5(word.encode('utf-8')).hexdigest(), 16) % DIMENSION
            vector[bucket] += 1.0
        if not vector.any():
            vector[0] = 1.0
        if normalize_embeddings:
            vector /= np.linalg.norm(vector)
        return vector


@pytest.fixture
def fake_model():
    """Patch SentenceTransformer with the fake encoder."""
    with patch('feedsearch.embeddings.embedder.SentenceTransformer', FakeSentenceTransformer) as cls:
        yield cls


@pytest.fixture
def embedder(fake_model):
    """Initialized embedder backed by the fake model."""
    instance = Embedder(dimension=DIMENSION)
    instance.initialize()
    return instance


@pytest.fixture
def vector_store(tmp_path):
    """FAISS-backed vector store with an opened collection."""
    store = VectorStore(
        backend=FaissBackend(index_dir=str(tmp_path), dimension=DIMENSION),
        collection_name="articles",
        dimension=DIMENSION
    )
    assert store.ensure_collection().ok
    return store


@pytest.fixture
def repository(vector_store, embedder):
    return ArticleRepository(vector_store=vector_store, embedder=embedder)


def build_rss(items: List[Dict[str, Optional[str]]]) -> bytes:
    """Build an RSS 2.0 document; keys of each item become child elements."""
    tags = {
        'title': 'title',
        'guid': 'guid',
        'link': 'link',
        'creator': 'dc:creator',
        'author': 'author',
        'pubDate': 'pubDate',
        'description': 'description',
        'content': 'content:encoded',
    }
    parts = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<rss version="2.0" xmlns:dc="http://purl.org/dc/elements/1.1/" '
        'xmlns:content="http://purl.org/rss/1.0/modules/content/" '
        'xmlns:media="http://search.yahoo.com/mrss/">',
        '<channel><title>Test Feed</title><link>https://a.example/</link>'
        '<description>Test</description>',
    ]
    for item in items:
        parts.append('<item>')
        for key, tag in tags.items():
            value = item.get(key)
            if value is None:
                continue
            if key in ('description', 'content'):
                parts.append(f'<{tag}><![CDATA[{value}]]></{tag}>')
            else:
                parts.append(f'<{tag}>{value}</{tag}>')
        if item.get('thumbnail'):
            parts.append(f'<media:thumbnail url="{item["thumbnail"]}" />')
        parts.append('</item>')
    parts.append('</channel></rss>')
    return ''.join(parts).encode('utf-8')


@pytest.fixture
def rss():
    """RSS document builder."""
    return build_rss


def make_response(status_code: int = 200, text: str = "", content: Optional[bytes] = None) -> Mock:
    """Mock requests.Response with raise_for_status behaviour."""
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.content = content if content is not None else text.encode('utf-8')

    def raise_for_status():
        if status_code >= 400:
            raise requests.exceptions.HTTPError(f"{status_code} Error")

    response.raise_for_status = Mock(side_effect=raise_for_status)
    return response


class FakeSession:
    """Scripted HTTP session; unknown URLs answer 404."""

    def __init__(self, head: Optional[Dict] = None, get: Optional[Dict] = None):
        self.head_routes = head or {}
        self.get_routes = get or {}
        self.head_calls: List[str] = []
        self.get_calls: List[str] = []

    def _answer(self, routes, url):
        answer = routes.get(url)
        if answer is None:
            return make_response(404)
        if isinstance(answer, Exception):
            raise answer
        return answer

    def head(self, url, timeout=None, allow_redirects=False):
        assert timeout is not None, "HEAD requests must carry a timeout"
        self.head_calls.append(url)
        return self._answer(self.head_routes, url)

    def get(self, url, timeout=None):
        assert timeout is not None, "GET requests must carry a timeout"
        self.get_calls.append(url)
        return self._answer(self.get_routes, url)


@pytest.fixture
def response_factory():
    return make_response
