"""Content splitters, one per detected content type."""

from src.services.ingestion.splitters.base import ContentSplitter, Heading
from src.services.ingestion.splitters.generic import GenericSplitter
from src.services.ingestion.splitters.normative import NormativeSplitter
from src.services.ingestion.splitters.wiki import WikiSplitter

__all__ = [
    "ContentSplitter",
    "GenericSplitter",
    "Heading",
    "NormativeSplitter",
    "WikiSplitter",
]
