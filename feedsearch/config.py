"""
Configuration Module

Provides a single configuration object for the feed search system.
Loads settings from environment variables with sensible defaults and validation.
The object is constructed explicitly and passed to the components that need it.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Dict, Any
from urllib.parse import urlparse
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


SUPPORTED_BACKENDS = ('chroma', 'faiss')


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class Config:
    """
    Configuration for the feed search system.

    All configuration parameters are loaded from environment variables
    with sensible defaults. Validation is performed on initialization.
    """

    # Embedding Model
    embedding_model: str = field(default="sentence-transformers/all-MiniLM-L6-v2")
    embedding_dimension: int = field(default=384)
    embedding_max_chars: int = field(default=512)
    embedding_device: str = field(default="cpu")
    embedding_cache_size: int = field(default=1024)

    # Vector Store
    vector_backend: str = field(default="chroma")
    chroma_host: str = field(default="localhost")
    chroma_port: int = field(default=8000)
    collection_name: str = field(default="articles")
    faiss_index_dir: str = field(default="data/embeddings")

    # HTTP Settings
    probe_timeout: int = field(default=5)
    page_timeout: int = field(default=10)
    feed_timeout: int = field(default=30)
    feed_max_retries: int = field(default=3)
    probe_workers: int = field(default=6)
    user_agent: str = field(default="Mozilla/5.0 (compatible; FeedSearchBot/1.0)")

    # Seeding
    default_seed_file: str = field(default="default_seed_websites.txt")
    auto_seed: bool = field(default=True)

    # Search
    search_limit_default: int = field(default=10)
    search_limit_max: int = field(default=100)

    def __post_init__(self):
        """Load configuration from environment and validate."""
        self._load_from_environment()
        self._validate()

    def _load_from_environment(self):
        """Load configuration from environment variables."""
        # Embedding Model
        self.embedding_model = self._get_env_str('EMBEDDING_MODEL', self.embedding_model)
        self.embedding_dimension = self._get_env_int('EMBEDDING_DIMENSION', self.embedding_dimension)
        self.embedding_max_chars = self._get_env_int('EMBEDDING_MAX_CHARS', self.embedding_max_chars)
        self.embedding_device = self._get_env_str('EMBEDDING_DEVICE', self.embedding_device)
        self.embedding_cache_size = self._get_env_int('EMBEDDING_CACHE_SIZE', self.embedding_cache_size)

        # Vector Store
        self.vector_backend = self._get_env_str('VECTOR_BACKEND', self.vector_backend).lower()
        self.chroma_host = self._get_env_str('CHROMA_HOST', self.chroma_host)
        self.chroma_port = self._get_env_int('CHROMA_PORT', self.chroma_port)
        self.collection_name = self._get_env_str('COLLECTION_NAME', self.collection_name)
        self.faiss_index_dir = self._get_env_path('FAISS_INDEX_DIR', self.faiss_index_dir)

        # HTTP Settings
        self.probe_timeout = self._get_env_int('PROBE_TIMEOUT', self.probe_timeout)
        self.page_timeout = self._get_env_int('PAGE_TIMEOUT', self.page_timeout)
        self.feed_timeout = self._get_env_int('FEED_TIMEOUT', self.feed_timeout)
        self.feed_max_retries = self._get_env_int('FEED_MAX_RETRIES', self.feed_max_retries)
        self.probe_workers = self._get_env_int('PROBE_WORKERS', self.probe_workers)
        self.user_agent = self._get_env_str('USER_AGENT', self.user_agent)

        # Seeding
        self.default_seed_file = self._get_env_path('DEFAULT_SEED_FILE', self.default_seed_file)
        self.auto_seed = self._get_env_bool('AUTO_SEED', self.auto_seed)

        # Search
        self.search_limit_default = self._get_env_int('SEARCH_LIMIT_DEFAULT', self.search_limit_default)
        self.search_limit_max = self._get_env_int('SEARCH_LIMIT_MAX', self.search_limit_max)

    def _get_env_str(self, key: str, default: str) -> str:
        """Get string value from environment."""
        value = os.getenv(key, default)
        if isinstance(value, str):
            value = value.strip()
        return value

    def _get_env_int(self, key: str, default: int) -> int:
        """Get integer value from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            raise ConfigValidationError(
                f"Invalid integer value for {key}: '{value}'"
            )

    def _get_env_bool(self, key: str, default: bool) -> bool:
        """Get boolean value from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        value = value.lower().strip()
        if value in ('true', '1', 'yes', 'on'):
            return True
        elif value in ('false', '0', 'no', 'off'):
            return False
        else:
            return default

    def _get_env_path(self, key: str, default: str) -> str:
        """Get path value from environment with expansion."""
        value = os.getenv(key, default)
        if isinstance(value, str):
            value = value.strip()
            # Expand ~ to home directory
            value = os.path.expanduser(value)
        return value

    def _validate(self):
        """Validate configuration parameters."""
        # Validate non-empty strings
        for field_name in ('embedding_model', 'collection_name', 'user_agent'):
            if not getattr(self, field_name):
                raise ConfigValidationError(f"{field_name} cannot be empty")

        if self.vector_backend not in SUPPORTED_BACKENDS:
            raise ConfigValidationError(
                f"vector_backend must be one of {SUPPORTED_BACKENDS}, "
                f"got '{self.vector_backend}'"
            )

        # Validate positive integers
        positive_int_fields = [
            ('embedding_dimension', self.embedding_dimension),
            ('embedding_max_chars', self.embedding_max_chars),
            ('feed_max_retries', self.feed_max_retries),
            ('probe_workers', self.probe_workers),
            ('search_limit_default', self.search_limit_default),
            ('search_limit_max', self.search_limit_max),
        ]

        for field_name, value in positive_int_fields:
            if value <= 0:
                raise ConfigValidationError(
                    f"{field_name} must be positive, got {value}"
                )

        if self.embedding_cache_size < 0:
            raise ConfigValidationError(
                f"embedding_cache_size cannot be negative, got {self.embedding_cache_size}"
            )

        # Validate timeouts (at least 1 second)
        for field_name in ('probe_timeout', 'page_timeout', 'feed_timeout'):
            value = getattr(self, field_name)
            if value < 1:
                raise ConfigValidationError(
                    f"{field_name} must be at least 1, got {value}"
                )

        if not 0 < self.chroma_port < 65536:
            raise ConfigValidationError(
                f"chroma_port must be a valid TCP port, got {self.chroma_port}"
            )

        if self.search_limit_default > self.search_limit_max:
            raise ConfigValidationError(
                "search_limit_default must not exceed search_limit_max"
            )

        # Validate that the Chroma endpoint forms a usable URL
        parsed = urlparse(self.chroma_url)
        if not all([parsed.scheme, parsed.netloc]):
            raise ConfigValidationError(
                f"Invalid Chroma endpoint: {self.chroma_url}"
            )

    @property
    def chroma_url(self) -> str:
        """Base URL of the Chroma server."""
        return f"http://{self.chroma_host}:{self.chroma_port}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def __repr__(self) -> str:
        """String representation of configuration."""
        items = []
        for key, value in self.to_dict().items():
            items.append(f"{key}={value!r}")
        return f"Config({', '.join(items)})"

    def update(self, **kwargs):
        """
        Update configuration values with validation.

        Args:
            **kwargs: Configuration parameters to update

        Raises:
            ConfigValidationError: If validation fails
        """
        # Store original values for rollback
        original_values = {}

        try:
            for key, value in kwargs.items():
                if not hasattr(self, key):
                    raise ConfigValidationError(f"Unknown configuration parameter: {key}")
                original_values[key] = getattr(self, key)
                setattr(self, key, value)

            self._validate()

        except Exception:
            # Rollback on validation failure
            for key, value in original_values.items():
                setattr(self, key, value)
            raise
