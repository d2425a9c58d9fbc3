"""Pipeline orchestration: the per-document processor, status tracker and orchestrator."""

from src.pipeline.document_processor import DocumentProcessor, PhaseOneOutcome
from src.pipeline.orchestrator import EmbeddingOrchestrator
from src.pipeline.status_tracker import ProcessingStatusTracker

__all__ = [
    "DocumentProcessor",
    "EmbeddingOrchestrator",
    "PhaseOneOutcome",
    "ProcessingStatusTracker",
]
