"""Embedding generation strategies and their registry."""

from src.services.embedding.strategies.base import BaseEmbeddingStrategy
from src.services.embedding.strategies.chapter import ChapterEmbeddingStrategy
from src.services.embedding.strategies.qa import QAEmbeddingStrategy, parse_qa_pairs
from src.services.embedding.strategies.query import QueryEmbeddingStrategy
from src.services.embedding.strategies.registry import StrategyRegistry
from src.services.embedding.strategies.summary import SummaryEmbeddingStrategy

__all__ = [
    "BaseEmbeddingStrategy",
    "ChapterEmbeddingStrategy",
    "QAEmbeddingStrategy",
    "QueryEmbeddingStrategy",
    "StrategyRegistry",
    "SummaryEmbeddingStrategy",
    "parse_qa_pairs",
]
