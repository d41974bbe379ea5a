"""
Generation Providers

Prompt-in/text-out completion backends used by the conversation orchestrator.
"""

from abc import ABC, abstractmethod

from langchain_ollama import ChatOllama


class GenerationProvider(ABC):
    """Opaque, synchronous text completion."""

    @abstractmethod
    def complete(self, prompt: str) -> str:
        """Generate text for ``prompt``. Errors propagate unchanged."""


class OllamaGenerationProvider(GenerationProvider):
    """Completion through an Ollama chat model."""

    def __init__(
        self,
        model: str = "llama3.1:latest",
        base_url: str = "http://localhost:11434",
        temperature: float = 0.7,
        max_tokens: int = 1000
    ):
        """
        Initialize the provider.

        Args:
            model: Ollama model name for answer generation
            base_url: Base URL for the Ollama service
            temperature: LLM temperature (higher = more creative)
            max_tokens: Maximum tokens in a generated answer
        """
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

        self.llm = ChatOllama(
            model=model,
            temperature=temperature,
            base_url=base_url,
            num_predict=max_tokens
        )

    @classmethod
    def from_config(cls, config) -> 'OllamaGenerationProvider':
        return cls(
            model=config.llm_model,
            base_url=config.ollama_base_url,
            temperature=config.llm_temperature,
        )

    def complete(self, prompt: str) -> str:
        response = self.llm.invoke(prompt)

        # Extract content from response
        if hasattr(response, 'content'):
            return response.content
        return str(response)
