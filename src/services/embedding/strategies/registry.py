"""Name → strategy lookup table used by the orchestrator."""

from __future__ import annotations

import structlog

from src.config.ingestion import IngestionConfig
from src.interfaces.embedding_strategy import IEmbeddingStrategy
from src.services.embedding.strategies.chapter import ChapterEmbeddingStrategy
from src.services.embedding.strategies.qa import QAEmbeddingStrategy
from src.services.embedding.strategies.query import QueryEmbeddingStrategy
from src.services.embedding.strategies.summary import SummaryEmbeddingStrategy
from src.services.embedding.vector_batcher import VectorBatcher
from src.services.ingestion.chunk_cutter import ChunkCutter
from src.utils.errors import ConfigurationError
from src.utils.token_estimator import TokenEstimator

logger = structlog.get_logger(logger_name=__name__)


class StrategyRegistry:
    """Holds strategies keyed by :meth:`IEmbeddingStrategy.get_strategy_name`."""

    def __init__(self, strategies: list[IEmbeddingStrategy] | None = None) -> None:
        self._strategies: dict[str, IEmbeddingStrategy] = {}
        for strategy in strategies or []:
            self.register(strategy)

    @classmethod
    def default(
        cls,
        config: IngestionConfig,
        estimator: TokenEstimator | None = None,
    ) -> StrategyRegistry:
        """Build the registry with the chapter, query, Q&A and summary strategies."""
        estimator = estimator or TokenEstimator(chars_per_token=config.chars_per_token)
        batcher = VectorBatcher(config, estimator)
        cutter = ChunkCutter(config.text_only_max_tokens, estimator)
        return cls(
            [
                ChapterEmbeddingStrategy(config, batcher, cutter, estimator),
                QueryEmbeddingStrategy(batcher),
                QAEmbeddingStrategy(config, batcher),
                SummaryEmbeddingStrategy(config, batcher, estimator),
            ]
        )

    def register(self, strategy: IEmbeddingStrategy) -> None:
        """Add *strategy*, replacing any registered under the same name."""
        name = strategy.get_strategy_name()
        if name in self._strategies:
            logger.info("strategy_replaced", strategy=name)
        self._strategies[name] = strategy

    def get(self, name: str) -> IEmbeddingStrategy:
        """Return the strategy registered as *name*.

        Raises
        ------
        ConfigurationError
            If no strategy is registered under that name.
        """
        try:
            return self._strategies[name]
        except KeyError:
            raise ConfigurationError(
                message=f"Unknown embedding strategy '{name}' (known: {', '.join(self.names())})"
            ) from None

    def names(self) -> list[str]:
        return sorted(self._strategies)

    def __contains__(self, name: object) -> bool:
        return name in self._strategies
