"""Embedding provider implementations.

Two implementations of IEmbeddingProvider:
    - OpenAIEmbeddingProvider - text-embedding-3-* (dimension-adjustable) and
      models on OpenAI-compatible hosts.  Requires an API key.
    - OllamaEmbeddingProvider - nomic-embed-text and friends on a local
      Ollama server.  Free, but the server must be running.

Both apply the query/index input prefixes from ``prefixes.py``.
"""

from src.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OllamaEmbeddingProvider", "OpenAIEmbeddingProvider"]
