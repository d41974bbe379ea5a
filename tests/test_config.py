"""
Tests for Configuration Module

Tests cover:
- Default values
- Configuration loading from environment variables
- Validation
- Configuration updates with rollback
- Singleton access
"""

import pytest
import os
from unittest.mock import patch

from news_chat.config import (
    Config,
    ConfigValidationError,
    DEFAULT_SOURCES,
    get_config,
    reset_config,
)


@pytest.fixture
def clean_env():
    """Run with an empty environment so defaults are observable."""
    with patch.dict(os.environ, {}, clear=True):
        yield


class TestConfigurationDefaults:
    """Test default configuration values."""

    def test_default_embedding_settings(self, clean_env):
        """Test default embedding provider configuration."""
        config = Config()

        assert config.embedding_url == "https://api.jina.ai/v1/embeddings"
        assert config.embedding_model == "jina-embeddings-v3"
        assert config.embedding_dim == 1024
        assert config.embedding_retries == 3
        assert config.embedding_batch_size == 16
        assert config.request_timeout_ms == 15000
        assert config.request_timeout == 15.0

    def test_default_retrieval_settings(self, clean_env):
        """Test default retrieval and session configuration."""
        config = Config()

        assert config.top_k == 5
        assert config.session_ttl == 3600
        assert config.history_window == 6

    def test_default_ingestion_settings(self, clean_env):
        """Test default ingestion configuration."""
        config = Config()

        assert config.sources == list(DEFAULT_SOURCES)
        assert len(set(config.sources)) == len(config.sources)
        assert config.ingest_limit == 50
        assert config.fallback_max_links == 20
        assert config.snippet_length == 400

    def test_default_backends(self, clean_env):
        """Test default storage backends."""
        config = Config()

        assert config.collection_name == "news_articles"
        assert config.vector_backend == "faiss"
        assert config.history_backend == "memory"

    def test_sources_are_independent_copies(self, clean_env):
        """Mutating one config's sources must not leak into another."""
        first = Config()
        first.sources.append("https://example.com/feed")

        assert Config().sources == list(DEFAULT_SOURCES)


class TestConfigurationFromEnvironment:
    """Test configuration loading from environment variables."""

    def test_load_embedding_from_env(self):
        """Test loading embedding settings from environment."""
        with patch.dict(os.environ, {
            'JINA_API_KEY': 'secret',
            'JINA_EMBEDDING_MODEL': 'custom-model',
            'EMBEDDING_DIM': '768',
            'REQUEST_TIMEOUT_MS': '2500'
        }, clear=True):
            config = Config()

            assert config.embedding_api_key == "secret"
            assert config.embedding_model == "custom-model"
            assert config.embedding_dim == 768
            assert config.request_timeout == 2.5

    def test_load_sources_from_env(self):
        """Test parsing a comma-separated source list."""
        with patch.dict(os.environ, {
            'NEWS_SOURCES': 'https://a.example/rss, https://b.example/rss ,'
        }, clear=True):
            config = Config()

            assert config.sources == ['https://a.example/rss', 'https://b.example/rss']

    def test_backend_names_are_case_insensitive(self):
        """Test backend names from environment are lower-cased."""
        with patch.dict(os.environ, {
            'VECTOR_BACKEND': 'Milvus',
            'HISTORY_BACKEND': 'REDIS'
        }, clear=True):
            config = Config()

            assert config.vector_backend == "milvus"
            assert config.history_backend == "redis"

    def test_invalid_integer_in_env(self):
        """Test that a non-numeric integer setting is rejected."""
        with patch.dict(os.environ, {'TOP_K': 'five'}, clear=True):
            with pytest.raises(ConfigValidationError, match="TOP_K"):
                Config()

    def test_invalid_float_in_env(self):
        """Test that a non-numeric float setting is rejected."""
        with patch.dict(os.environ, {'LLM_TEMPERATURE': 'warm'}, clear=True):
            with pytest.raises(ConfigValidationError, match="LLM_TEMPERATURE"):
                Config()


class TestConfigurationValidation:
    """Test configuration validation."""

    @pytest.mark.parametrize("env_key", [
        'EMBEDDING_DIM', 'TOP_K', 'SESSION_TTL', 'HISTORY_WINDOW', 'INGEST_LIMIT'
    ])
    def test_non_positive_integers_rejected(self, env_key):
        """Test that zero is rejected for positive integer settings."""
        with patch.dict(os.environ, {env_key: '0'}, clear=True):
            with pytest.raises(ConfigValidationError, match="must be positive"):
                Config()

    def test_zero_retries_allowed(self):
        """Zero retries means a single attempt."""
        with patch.dict(os.environ, {'EMBEDDING_RETRIES': '0'}, clear=True):
            assert Config().embedding_retries == 0

    def test_negative_retries_rejected(self):
        with patch.dict(os.environ, {'EMBEDDING_RETRIES': '-1'}, clear=True):
            with pytest.raises(ConfigValidationError):
                Config()

    def test_temperature_range(self):
        """Test temperature must be within [0, 2]."""
        with patch.dict(os.environ, {'LLM_TEMPERATURE': '2.5'}, clear=True):
            with pytest.raises(ConfigValidationError, match="llm_temperature"):
                Config()

    def test_unknown_backend_rejected(self):
        with patch.dict(os.environ, {'VECTOR_BACKEND': 'qdrant'}, clear=True):
            with pytest.raises(ConfigValidationError, match="vector_backend"):
                Config()

    def test_invalid_source_url_rejected(self):
        with patch.dict(os.environ, {'NEWS_SOURCES': 'not-a-url'}, clear=True):
            with pytest.raises(ConfigValidationError, match="Invalid source URL"):
                Config()

    def test_invalid_service_url_rejected(self):
        with patch.dict(os.environ, {'OLLAMA_BASE_URL': 'localhost'}, clear=True):
            with pytest.raises(ConfigValidationError, match="ollama_base_url"):
                Config()


class TestConfigurationUpdate:
    """Test configuration updates."""

    def test_update_valid_values(self, clean_env):
        """Test updating configuration with valid values."""
        config = Config()
        config.update(top_k=10, session_ttl=60)

        assert config.top_k == 10
        assert config.session_ttl == 60

    def test_update_rolls_back_on_invalid_value(self, clean_env):
        """Test that a failed update leaves the configuration unchanged."""
        config = Config()

        with pytest.raises(ConfigValidationError):
            config.update(top_k=10, session_ttl=-1)

        assert config.top_k == 5
        assert config.session_ttl == 3600

    def test_update_unknown_parameter(self, clean_env):
        config = Config()

        with pytest.raises(ConfigValidationError, match="Unknown configuration parameter"):
            config.update(not_a_field=1)


class TestConfigurationHelpers:
    """Test helper accessors and representation."""

    def test_repr_masks_api_key(self):
        """Test the API key never appears in the representation."""
        with patch.dict(os.environ, {'JINA_API_KEY': 'top-secret'}, clear=True):
            config = Config()

            assert 'top-secret' not in repr(config)
            assert "embedding_api_key='***'" in repr(config)

    def test_section_getters(self, clean_env):
        config = Config()

        assert config.get_embedding_config()['embedding_dim'] == 1024
        assert 'embedding_api_key' not in config.get_embedding_config()
        assert config.get_storage_config()['collection_name'] == "news_articles"

    def test_singleton(self, clean_env):
        """Test get_config returns one instance until reset."""
        reset_config()
        try:
            first = get_config()
            assert get_config() is first

            reset_config()
            assert get_config() is not first
        finally:
            reset_config()
