"""Embedding services: context resolution, vector batching and strategies."""

from src.services.embedding.context_resolver import (
    ContextOverrides,
    EmbeddingContextResolver,
    ResolverDefaults,
    first_non_empty,
)
from src.services.embedding.vector_batcher import VectorBatcher
from src.services.embedding.vectors import fit_dimension, l2_normalize, prepare_vector

__all__ = [
    "ContextOverrides",
    "EmbeddingContextResolver",
    "ResolverDefaults",
    "VectorBatcher",
    "first_non_empty",
    "fit_dimension",
    "l2_normalize",
    "prepare_vector",
]
