"""LLM provider adapters.

Concrete implementations of ILLMProvider (src/interfaces/llm_provider.py):
    - OpenAILLMProvider - gpt-4o-mini / o-series (also OpenAI-compatible APIs)
    - OllamaLLMProvider - local models via an Ollama server

The enrichment strategies reach these only through the EmbeddingContext
built for a run; main.py registers them with the model registry.
"""

from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OllamaLLMProvider", "OpenAILLMProvider"]
