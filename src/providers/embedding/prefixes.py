"""Input prefixes that select a model's query vs. index representation.

Asymmetric retrieval models are trained with different instructions for
stored passages and for search queries.  Embedding both with the same
input puts queries in the wrong region of the space, so the providers
apply these prefixes according to
:class:`~src.models.embedding.EmbeddingOperation`.  Models not listed here
are symmetric and receive the text unchanged.
"""

from __future__ import annotations

from src.models.embedding import EmbeddingOperation

# (query prefix, index prefix), matched on a lower-cased model-name fragment.
_PREFIX_RULES: tuple[tuple[str, tuple[str, str]], ...] = (
    ("nomic-embed", ("search_query: ", "search_document: ")),
    ("e5-", ("query: ", "passage: ")),
    ("snowflake-arctic-embed", ("Represent this sentence for searching relevant passages: ", "")),
    ("mxbai-embed", ("Represent this sentence for searching relevant passages: ", "")),
    ("bge-", ("Represent this sentence for searching relevant passages: ", "")),
)


def task_prefix(model: str, operation: EmbeddingOperation) -> str:
    """Return the prefix *model* expects for *operation* ("" if none)."""
    lowered = model.lower()
    for fragment, (query_prefix, index_prefix) in _PREFIX_RULES:
        if fragment in lowered:
            return query_prefix if operation == EmbeddingOperation.QUERY else index_prefix
    return ""


def apply_task_prefix(texts: list[str], model: str, operation: EmbeddingOperation) -> list[str]:
    prefix = task_prefix(model, operation)
    if not prefix:
        return list(texts)
    return [prefix + text for text in texts]
