"""
Tests for the Configuration Module

Tests cover:
- Default values
- Loading from environment variables
- Validation
- Configuration updates with rollback
"""

import os
import pytest
from unittest.mock import patch

from feedsearch.config import Config, ConfigValidationError


class TestConfigurationDefaults:
    """Test default configuration values."""

    def test_default_embedding_settings(self):
        config = Config()

        assert config.embedding_model == "sentence-transformers/all-MiniLM-L6-v2"
        assert config.embedding_dimension == 384
        assert config.embedding_max_chars == 512

    def test_default_store_settings(self):
        config = Config()

        assert config.vector_backend == "chroma"
        assert config.chroma_url == "http://localhost:8000"
        assert config.collection_name == "articles"

    def test_default_timeouts(self):
        """Probes are short, page fetches longer."""
        config = Config()

        assert config.probe_timeout == 5
        assert config.page_timeout == 10
        assert config.probe_timeout < config.page_timeout


class TestConfigurationFromEnvironment:
    """Test configuration loading from environment variables."""

    def test_load_store_from_env(self):
        with patch.dict(os.environ, {
            'VECTOR_BACKEND': 'FAISS',
            'CHROMA_HOST': 'chroma.internal',
            'CHROMA_PORT': '9000',
            'COLLECTION_NAME': 'news'
        }):
            config = Config()

            assert config.vector_backend == "faiss"
            assert config.chroma_url == "http://chroma.internal:9000"
            assert config.collection_name == "news"

    def test_boolean_env_parsing(self):
        with patch.dict(os.environ, {'AUTO_SEED': 'off'}):
            assert Config().auto_seed is False

        with patch.dict(os.environ, {'AUTO_SEED': 'yes'}):
            assert Config().auto_seed is True

    def test_path_expansion(self):
        with patch.dict(os.environ, {'DEFAULT_SEED_FILE': '~/sites.txt'}):
            config = Config()
            assert config.default_seed_file == os.path.expanduser('~/sites.txt')

    def test_invalid_integer_raises(self):
        with patch.dict(os.environ, {'PROBE_TIMEOUT': 'soon'}):
            with pytest.raises(ConfigValidationError):
                Config()


class TestConfigurationValidation:
    """Test validation of configuration values."""

    def test_unknown_backend_rejected(self):
        with patch.dict(os.environ, {'VECTOR_BACKEND': 'pinecone'}):
            with pytest.raises(ConfigValidationError):
                Config()

    def test_zero_timeout_rejected(self):
        with patch.dict(os.environ, {'FEED_TIMEOUT': '0'}):
            with pytest.raises(ConfigValidationError):
                Config()

    def test_default_limit_cannot_exceed_max(self):
        with patch.dict(os.environ, {'SEARCH_LIMIT_DEFAULT': '50', 'SEARCH_LIMIT_MAX': '20'}):
            with pytest.raises(ConfigValidationError):
                Config()


class TestConfigurationUpdate:
    """Test runtime updates."""

    def test_update_valid_value(self):
        config = Config()
        config.update(probe_timeout=2)
        assert config.probe_timeout == 2

    def test_update_rolls_back_on_failure(self):
        config = Config()
        with pytest.raises(ConfigValidationError):
            config.update(probe_timeout=3, page_timeout=0)

        assert config.probe_timeout == 5
        assert config.page_timeout == 10

    def test_update_unknown_key(self):
        config = Config()
        with pytest.raises(ConfigValidationError):
            config.update(not_a_setting=1)

    def test_to_dict_contains_all_fields(self):
        data = Config().to_dict()
        assert data['collection_name'] == 'articles'
        assert 'user_agent' in data
