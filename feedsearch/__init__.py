"""
Feed Semantic Search

Discovers RSS feeds from arbitrary websites, ingests and deduplicates their
articles, stores sentence embeddings in a vector index, and serves semantic
search over the corpus.
"""

__version__ = "0.1.0"
