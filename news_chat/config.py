"""
Centralized Configuration Module

Provides a single source of truth for all system configuration parameters.
Loads settings from environment variables with sensible defaults and validation.
"""

import os
from dataclasses import dataclass, field, asdict
from typing import Dict, Any, List, Optional
from urllib.parse import urlparse
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


DEFAULT_SOURCES = (
    'https://feeds.bbci.co.uk/news/rss.xml',
    'https://www.theguardian.com/world/rss',
    'https://rss.cnn.com/rss/edition.rss',
    'https://www.aljazeera.com/xml/rss/all.xml',
    'https://feeds.reuters.com/reuters/worldNews',
)

VECTOR_BACKENDS = ('faiss', 'milvus')
HISTORY_BACKENDS = ('memory', 'redis')

_SECRET_FIELDS = ('embedding_api_key',)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


@dataclass
class Config:
    """
    Centralized configuration for the news chat service.

    All configuration parameters are loaded from environment variables
    with sensible defaults. Validation is performed on initialization.
    """

    # Embedding Provider
    embedding_api_key: str = field(default="")
    embedding_url: str = field(default="https://api.jina.ai/v1/embeddings")
    embedding_model: str = field(default="jina-embeddings-v3")
    embedding_dim: int = field(default=1024)
    embedding_retries: int = field(default=3)
    embedding_batch_size: int = field(default=16)
    request_timeout_ms: int = field(default=15000)

    # Retrieval and Sessions
    top_k: int = field(default=5)
    session_ttl: int = field(default=3600)
    history_window: int = field(default=6)

    # Ingestion
    sources: List[str] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    ingest_limit: int = field(default=50)
    fallback_max_links: int = field(default=20)
    snippet_length: int = field(default=400)

    # Vector Index
    collection_name: str = field(default="news_articles")
    vector_backend: str = field(default="faiss")
    faiss_index_dir: str = field(default="data/index")
    milvus_uri: str = field(default="http://localhost:19530")

    # Session History
    history_backend: str = field(default="memory")
    redis_url: str = field(default="redis://localhost:6379/0")

    # Generation
    llm_model: str = field(default="llama3.1:latest")
    ollama_base_url: str = field(default="http://localhost:11434")
    llm_temperature: float = field(default=0.7)

    # API
    frontend_url: str = field(default="http://localhost:5173")
    api_host: str = field(default="0.0.0.0")
    api_port: int = field(default=5000)

    def __post_init__(self):
        """Load configuration from environment and validate."""
        self._load_from_environment()
        self._validate()

    def _load_from_environment(self):
        """Load configuration from environment variables."""
        # Embedding Provider
        self.embedding_api_key = self._get_env_str('JINA_API_KEY', self.embedding_api_key)
        self.embedding_url = self._get_env_str('EMBEDDING_URL', self.embedding_url)
        self.embedding_model = self._get_env_str('JINA_EMBEDDING_MODEL', self.embedding_model)
        self.embedding_dim = self._get_env_int('EMBEDDING_DIM', self.embedding_dim)
        self.embedding_retries = self._get_env_int('EMBEDDING_RETRIES', self.embedding_retries)
        self.embedding_batch_size = self._get_env_int('EMBEDDING_BATCH_SIZE', self.embedding_batch_size)
        self.request_timeout_ms = self._get_env_int('REQUEST_TIMEOUT_MS', self.request_timeout_ms)

        # Retrieval and Sessions
        self.top_k = self._get_env_int('TOP_K', self.top_k)
        self.session_ttl = self._get_env_int('SESSION_TTL', self.session_ttl)
        self.history_window = self._get_env_int('HISTORY_WINDOW', self.history_window)

        # Ingestion
        self.sources = self._get_env_list('NEWS_SOURCES', self.sources)
        self.ingest_limit = self._get_env_int('INGEST_LIMIT', self.ingest_limit)
        self.fallback_max_links = self._get_env_int('FALLBACK_MAX_LINKS', self.fallback_max_links)
        self.snippet_length = self._get_env_int('SNIPPET_LENGTH', self.snippet_length)

        # Vector Index
        self.collection_name = self._get_env_str('COLLECTION_NAME', self.collection_name)
        self.vector_backend = self._get_env_str('VECTOR_BACKEND', self.vector_backend).lower()
        self.faiss_index_dir = self._get_env_path('FAISS_INDEX_DIR', self.faiss_index_dir)
        self.milvus_uri = self._get_env_str('MILVUS_URI', self.milvus_uri)

        # Session History
        self.history_backend = self._get_env_str('HISTORY_BACKEND', self.history_backend).lower()
        self.redis_url = self._get_env_str('REDIS_URL', self.redis_url)

        # Generation
        self.llm_model = self._get_env_str('LLM_MODEL', self.llm_model)
        self.ollama_base_url = self._get_env_str('OLLAMA_BASE_URL', self.ollama_base_url)
        self.llm_temperature = self._get_env_float('LLM_TEMPERATURE', self.llm_temperature)

        # API
        self.frontend_url = self._get_env_str('FRONTEND_URL', self.frontend_url)
        self.api_host = self._get_env_str('API_HOST', self.api_host)
        self.api_port = self._get_env_int('PORT', self.api_port)

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

    def _get_env_float(self, key: str, default: float) -> float:
        """Get float value from environment."""
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return float(value)
        except ValueError:
            raise ConfigValidationError(
                f"Invalid float value for {key}: '{value}'"
            )

    def _get_env_list(self, key: str, default: List[str]) -> List[str]:
        """Get comma-separated list value from environment."""
        value = os.getenv(key)
        if value is None:
            return list(default)
        return [item.strip() for item in value.split(',') if item.strip()]

    def _get_env_path(self, key: str, default: str) -> str:
        """Get path value from environment with expansion."""
        value = os.getenv(key, default)
        if isinstance(value, str):
            value = value.strip()
            # Expand ~ to home directory
            value = os.path.expanduser(value)
        return value

    @staticmethod
    def _is_url(value: str) -> bool:
        parsed = urlparse(value)
        return bool(parsed.scheme and parsed.netloc)

    def _validate(self):
        """Validate configuration parameters."""
        # Validate non-empty strings
        if not self.embedding_model:
            raise ConfigValidationError("embedding_model cannot be empty")
        if not self.collection_name:
            raise ConfigValidationError("collection_name cannot be empty")

        # Validate positive integers
        positive_int_fields = [
            ('embedding_dim', self.embedding_dim),
            ('embedding_batch_size', self.embedding_batch_size),
            ('request_timeout_ms', self.request_timeout_ms),
            ('top_k', self.top_k),
            ('session_ttl', self.session_ttl),
            ('history_window', self.history_window),
            ('ingest_limit', self.ingest_limit),
            ('fallback_max_links', self.fallback_max_links),
            ('snippet_length', self.snippet_length),
            ('api_port', self.api_port),
        ]

        for field_name, value in positive_int_fields:
            if value <= 0:
                raise ConfigValidationError(
                    f"{field_name} must be positive, got {value}"
                )

        if self.embedding_retries < 0:
            raise ConfigValidationError(
                f"embedding_retries must be non-negative, got {self.embedding_retries}"
            )

        if not 0.0 <= self.llm_temperature <= 2.0:
            raise ConfigValidationError(
                f"llm_temperature must be between 0.0 and 2.0, got {self.llm_temperature}"
            )

        if self.vector_backend not in VECTOR_BACKENDS:
            raise ConfigValidationError(
                f"vector_backend must be one of {VECTOR_BACKENDS}, got '{self.vector_backend}'"
            )
        if self.history_backend not in HISTORY_BACKENDS:
            raise ConfigValidationError(
                f"history_backend must be one of {HISTORY_BACKENDS}, got '{self.history_backend}'"
            )

        # Validate URL format
        for field_name in ('embedding_url', 'ollama_base_url', 'milvus_uri', 'redis_url'):
            value = getattr(self, field_name)
            if not self._is_url(value):
                raise ConfigValidationError(
                    f"Invalid URL for {field_name}: {value}"
                )

        for source in self.sources:
            if not self._is_url(source):
                raise ConfigValidationError(f"Invalid source URL: {source}")

    @property
    def request_timeout(self) -> float:
        """Per-request timeout in seconds."""
        return self.request_timeout_ms / 1000.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return asdict(self)

    def __repr__(self) -> str:
        """String representation of configuration with secrets masked."""
        items = []
        for key, value in self.to_dict().items():
            if key in _SECRET_FIELDS and value:
                value = '***'
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
            # Update values
            for key, value in kwargs.items():
                if not hasattr(self, key):
                    raise ConfigValidationError(f"Unknown configuration parameter: {key}")
                original_values[key] = getattr(self, key)
                setattr(self, key, value)

            # Validate new configuration
            self._validate()

        except Exception:
            # Rollback on validation failure
            for key, value in original_values.items():
                setattr(self, key, value)
            raise

    def get_embedding_config(self) -> Dict[str, Any]:
        """Get embedding-related configuration."""
        return {
            'embedding_url': self.embedding_url,
            'embedding_model': self.embedding_model,
            'embedding_dim': self.embedding_dim,
            'embedding_retries': self.embedding_retries,
            'embedding_batch_size': self.embedding_batch_size,
            'request_timeout_ms': self.request_timeout_ms,
        }

    def get_storage_config(self) -> Dict[str, Any]:
        """Get storage-related configuration."""
        return {
            'collection_name': self.collection_name,
            'vector_backend': self.vector_backend,
            'faiss_index_dir': self.faiss_index_dir,
            'milvus_uri': self.milvus_uri,
            'history_backend': self.history_backend,
            'redis_url': self.redis_url,
        }


# Singleton instance
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance (singleton pattern).

    Returns:
        Config: Global configuration instance
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reset_config():
    """Reset the global configuration instance."""
    global _config_instance
    _config_instance = None
