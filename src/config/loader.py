"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ──────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. config/config.yaml  - static defaults checked into the repo
#   2. .env file           - local developer overrides (not committed)
#   3. Environment vars    - set at deploy time
#
# load_config() reads the YAML file first, then deep-merges the
# environment-based values on top:
#   base      = {"ingestion": {"qa_pairs": 3}}
#   overrides = {"ingestion": {"max_retries": 5}}
#   result    = {"ingestion": {"qa_pairs": 3, "max_retries": 5}}
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml

from src.config.ingestion import IngestionConfig
from src.config.settings import Settings


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.  A missing file yields
              an empty base layer.
        settings: Settings instance to take env overrides from; a fresh
                  ``Settings()`` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "env": settings.app_env,
        },
        "models": {
            "default_embedding_model": settings.default_embedding_model,
            "default_embedding_dimension": settings.default_embedding_dimension,
            "default_completion_model": settings.default_completion_model,
            "default_context_length": settings.default_context_length,
            "available_providers": settings.get_available_providers(),
        },
        "ingestion": {
            "max_retries": settings.processing_max_retries,
            "retry_delay_seconds": settings.processing_retry_delay_seconds,
            "max_concurrent_documents": settings.processing_max_concurrent_documents,
            "normalize_vectors": settings.normalize_vectors,
        },
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


def load_ingestion_config(
    path: str = "config/config.yaml", settings: Settings | None = None
) -> IngestionConfig:
    """Build an :class:`IngestionConfig` from the ``ingestion:`` section."""
    config = load_config(path, settings=settings)
    section = config.get("ingestion") or {}
    known = set(IngestionConfig.model_fields)
    return IngestionConfig(**{k: v for k, v in section.items() if k in known})


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
