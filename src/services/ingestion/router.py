"""Content-type detection and splitter selection.

Detection looks at an optional hint first (a URL, file name or an
explicit content-type name), then at the text itself.  The detected type
is mapped to a splitter class through :data:`_SPLITTERS`; manuals and
contracts have no structural grammar of their own and use the generic
splitter.
"""

from __future__ import annotations

import re
from enum import Enum

import structlog

from src.config.ingestion import IngestionConfig
from src.models.document import Document
from src.services.ingestion.chunk_cutter import ChunkCutter
from src.services.ingestion.splitters.base import ContentSplitter
from src.services.ingestion.splitters.generic import GenericSplitter
from src.services.ingestion.splitters.normative import NormativeSplitter
from src.services.ingestion.splitters.wiki import WikiSplitter
from src.utils.token_estimator import TokenEstimator

logger = structlog.get_logger(logger_name=__name__)


class ContentType(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    GENERIC = "generic"
    WIKI = "wiki"
    NORMATIVE = "normative"
    MANUAL = "manual"
    CONTRACT = "contract"


_SPLITTERS: dict[ContentType, type[ContentSplitter]] = {
    ContentType.GENERIC: GenericSplitter,
    ContentType.WIKI: WikiSplitter,
    ContentType.NORMATIVE: NormativeSplitter,
    ContentType.MANUAL: GenericSplitter,
    ContentType.CONTRACT: GenericSplitter,
}

_NORMATIVE_HOSTS = ("planalto.gov.br", "in.gov.br", "legislacao")
_WIKI_HOSTS = ("wikipedia.org", "wikimedia.org", ".wiki")

_ARTICLE_RE = re.compile(r"\bart\.\s*\d")
_LAW_RE = re.compile(r"\blei\b")
_NORMATIVE_TERMS = ("decreto", "resolução", "portaria", "normativa")
_MANUAL_TERMS = ("manual", "instruções", "procedimento", "tutorial")
_CONTRACT_TERMS = ("contrato", "contratante", "cláusula")

# Metadata keys that may carry a source location.
_HINT_KEYS = ("content_type", "url", "source_url", "source", "file_name", "file_path")

_SAMPLE_CHARS = 10000
_CONTENT_TYPE_VALUES = frozenset(t.value for t in ContentType)


class DocumentRouter:
    """Detects a document's content type and builds the matching splitter."""

    def __init__(
        self,
        config: IngestionConfig,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self._config = config
        self._estimator = estimator or TokenEstimator(chars_per_token=config.chars_per_token)
        self._cutter = ChunkCutter(config.text_only_max_tokens, self._estimator)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def detect(self, document: Document, hint: str | None = None) -> ContentType:
        """Return the content type of *document*."""
        for candidate in (hint, *(document.metadata.get(k) for k in _HINT_KEYS)):
            if isinstance(candidate, str) and candidate.strip():
                detected = self._from_hint(candidate)
                if detected is not None:
                    return detected
        return self._from_text(document.body)

    def splitter_for(self, content_type: ContentType) -> ContentSplitter:
        return _SPLITTERS[content_type](self._config, self._estimator, self._cutter)

    def route(self, document: Document, hint: str | None = None) -> ContentSplitter:
        content_type = self.detect(document, hint)
        logger.info(
            "document_routed",
            document_id=document.id,
            content_type=content_type.value,
        )
        return self.splitter_for(content_type)

    # ------------------------------------------------------------------
    # Detection rules
    # ------------------------------------------------------------------

    @staticmethod
    def _from_hint(hint: str) -> ContentType | None:
        lowered = hint.strip().lower()
        if lowered in _CONTENT_TYPE_VALUES:
            return ContentType(lowered)
        if any(host in lowered for host in _NORMATIVE_HOSTS):
            return ContentType.NORMATIVE
        if any(host in lowered for host in _WIKI_HOSTS):
            return ContentType.WIKI
        return None

    @staticmethod
    def _from_text(body: str) -> ContentType:
        sample = body[:_SAMPLE_CHARS].lower()
        statute = bool(_ARTICLE_RE.search(sample) and _LAW_RE.search(sample))
        if statute or any(t in sample for t in _NORMATIVE_TERMS):
            return ContentType.NORMATIVE
        if (
            "categoria:" in sample
            or "{{" in sample
            or "[[" in sample
            or "]]" in sample
            or ("==" in sample and "===" in sample)
        ):
            return ContentType.WIKI
        if any(t in sample for t in _MANUAL_TERMS):
            return ContentType.MANUAL
        if any(t in sample for t in _CONTRACT_TERMS):
            return ContentType.CONTRACT
        return ContentType.GENERIC
