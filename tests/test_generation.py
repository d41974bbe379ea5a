"""
Tests for the Ollama generation provider with the chat model mocked.
"""

import pytest
from unittest.mock import Mock, patch

from news_chat.query.generation import OllamaGenerationProvider


@pytest.fixture
def chat_ollama():
    with patch('news_chat.query.generation.ChatOllama') as chat_cls:
        yield chat_cls


class TestOllamaGenerationProvider:
    """Test prompt completion."""

    def test_model_configuration(self, chat_ollama):
        OllamaGenerationProvider(
            model="llama3.1:latest",
            base_url="http://ollama:11434",
            temperature=0.2
        )

        chat_ollama.assert_called_once_with(
            model="llama3.1:latest",
            temperature=0.2,
            base_url="http://ollama:11434",
            num_predict=1000
        )

    def test_complete_returns_message_content(self, chat_ollama):
        chat_ollama.return_value.invoke.return_value = Mock(content="An answer")
        provider = OllamaGenerationProvider()

        assert provider.complete("prompt") == "An answer"
        chat_ollama.return_value.invoke.assert_called_once_with("prompt")

    def test_complete_plain_string_response(self, chat_ollama):
        chat_ollama.return_value.invoke.return_value = "raw text"
        provider = OllamaGenerationProvider()

        assert provider.complete("prompt") == "raw text"

    def test_errors_propagate(self, chat_ollama):
        chat_ollama.return_value.invoke.side_effect = ConnectionError("ollama down")
        provider = OllamaGenerationProvider()

        with pytest.raises(ConnectionError):
            provider.complete("prompt")

    def test_from_config(self, chat_ollama):
        config = Mock(llm_model="m", ollama_base_url="http://o:1", llm_temperature=0.5)

        provider = OllamaGenerationProvider.from_config(config)

        assert provider.model == "m"
        assert provider.temperature == 0.5
