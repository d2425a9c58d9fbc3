"""Configuration module - exports Settings, IngestionConfig, the loaders and a singleton."""

from src.config.ingestion import IngestionConfig
from src.config.loader import load_config, load_ingestion_config
from src.config.settings import Settings

settings = Settings()

__all__ = ["IngestionConfig", "Settings", "load_config", "load_ingestion_config", "settings"]
