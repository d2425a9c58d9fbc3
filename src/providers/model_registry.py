"""Model registry / provider pool.

Catalogues the models served by every configured provider, keyed by
lower-cased name and alias, and hands out the provider that serves a
given model.  The catalogue is built once at construction and only read
afterwards, so concurrent document runs share it without locking.

Lookups are exact (case-insensitive, aliases included).  There is no
fuzzy or partial matching: a resolved model name that is not registered
is a configuration error, never silently replaced by a near match.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

import structlog

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.models.embedding import ModelCapability, ModelInfo
from src.utils.errors import ModelNotFoundError

logger = structlog.get_logger(logger_name=__name__)


@dataclass(frozen=True)
class RegisteredModel:
    """A model entry plus the provider that serves it."""

    info: ModelInfo
    embedding_provider: IEmbeddingProvider | None = None
    llm_provider: ILLMProvider | None = None


class ModelRegistry:
    """Read-mostly pool of embedding and completion providers.

    Parameters
    ----------
    embedding_providers:
        Providers whose :meth:`~IEmbeddingProvider.list_models` populate
        the embedding catalogue.  Earlier providers win name collisions.
    llm_providers:
        Providers whose :meth:`~ILLMProvider.list_models` populate the
        completion catalogue.
    """

    def __init__(
        self,
        embedding_providers: Iterable[IEmbeddingProvider] = (),
        llm_providers: Iterable[ILLMProvider] = (),
    ) -> None:
        self._embedding: dict[str, RegisteredModel] = {}
        self._completion: dict[str, RegisteredModel] = {}

        for provider in embedding_providers:
            for info in provider.list_models():
                self._add(self._embedding, RegisteredModel(info=info, embedding_provider=provider))
        for llm in llm_providers:
            for info in llm.list_models():
                self._add(self._completion, RegisteredModel(info=info, llm_provider=llm))

        logger.info(
            "model_registry_built",
            embedding_models=len({m.info.name for m in self._embedding.values()}),
            completion_models=len({m.info.name for m in self._completion.values()}),
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def find(self, name: str | None, capability: ModelCapability) -> RegisteredModel | None:
        """Return the entry for *name* serving *capability*, or ``None``."""
        if not name or not name.strip():
            return None
        table = self._table(capability)
        return table.get(name.strip().lower())

    def require(self, name: str | None, capability: ModelCapability) -> RegisteredModel:
        """Return the entry for *name* or raise :class:`ModelNotFoundError`."""
        entry = self.find(name, capability)
        if entry is None:
            raise ModelNotFoundError(
                message=f"{capability.value} model '{name}' is not registered",
                model_name=name,
            )
        return entry

    def embedding_provider_for(self, name: str) -> IEmbeddingProvider:
        return self.require(name, ModelCapability.EMBEDDING).embedding_provider  # type: ignore[return-value]

    def llm_provider_for(self, name: str) -> ILLMProvider:
        return self.require(name, ModelCapability.COMPLETION).llm_provider  # type: ignore[return-value]

    def model_names(self, capability: ModelCapability | None = None) -> list[str]:
        """Return the canonical model names, optionally for one capability."""
        tables = (
            [self._table(capability)]
            if capability is not None
            else [self._embedding, self._completion]
        )
        return sorted({entry.info.name for table in tables for entry in table.values()})

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _table(self, capability: ModelCapability) -> dict[str, RegisteredModel]:
        if capability == ModelCapability.EMBEDDING:
            return self._embedding
        return self._completion

    @staticmethod
    def _add(table: dict[str, RegisteredModel], entry: RegisteredModel) -> None:
        for key in (entry.info.name, *entry.info.aliases):
            normalized = key.strip().lower()
            if normalized in table:
                logger.debug(
                    "model_registration_shadowed",
                    model=key,
                    kept=table[normalized].info.provider_name,
                    skipped=entry.info.provider_name,
                )
                continue
            table[normalized] = entry
