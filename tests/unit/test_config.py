"""Unit tests for IngestionConfig, Settings and the YAML config loader."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.config.ingestion import IngestionConfig
from src.config.loader import _deep_merge, load_config, load_ingestion_config
from src.config.settings import Settings


def _settings(**overrides: object) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestIngestionConfig:
    def test_defaults(self) -> None:
        config = IngestionConfig()
        assert config.full_text_max_tokens == 512
        assert config.text_only_max_tokens == 2000
        assert config.chapter_ideal_tokens == 4000
        assert config.summary_min_tokens == 500
        assert config.max_retries == 2
        assert config.retry_delay_seconds == 120.0
        assert config.normalize_vectors is False

    def test_strategy_thresholds_must_be_ordered(self) -> None:
        with pytest.raises(ValidationError, match="full_text_max_tokens"):
            IngestionConfig(full_text_max_tokens=2000, text_only_max_tokens=2000)

    def test_chapter_limits_must_be_ordered(self) -> None:
        with pytest.raises(ValidationError, match="min <= ideal <= max"):
            IngestionConfig(chapter_min_tokens=5000, chapter_ideal_tokens=4000)

    def test_frozen(self) -> None:
        config = IngestionConfig()
        with pytest.raises(ValidationError):
            config.max_retries = 5  # type: ignore[misc]

    def test_from_settings_with_overrides(self) -> None:
        settings = _settings(
            processing_max_retries=4,
            processing_retry_delay_seconds=1.5,
            normalize_vectors=True,
        )
        config = IngestionConfig.from_settings(settings, qa_pairs=7)

        assert config.max_retries == 4
        assert config.retry_delay_seconds == 1.5
        assert config.normalize_vectors is True
        assert config.qa_pairs == 7


class TestSettings:
    def test_available_providers(self) -> None:
        assert _settings(openai_api_key="sk-x").get_available_providers() == ["openai", "ollama"]
        assert _settings(openai_api_key="", ollama_base_url="").get_available_providers() == []


class TestDeepMerge:
    def test_nested_dicts_merge(self) -> None:
        base = {"ingestion": {"qa_pairs": 3, "max_retries": 2}, "app": {"name": "x"}}
        _deep_merge(base, {"ingestion": {"max_retries": 5}, "logging": {"level": "DEBUG"}})
        assert base == {
            "ingestion": {"qa_pairs": 3, "max_retries": 5},
            "app": {"name": "x"},
            "logging": {"level": "DEBUG"},
        }

    def test_non_dict_value_replaces(self) -> None:
        base = {"models": {"a": 1}}
        _deep_merge(base, {"models": "flat"})
        assert base == {"models": "flat"}


class TestLoader:
    def test_missing_file_uses_settings_only(self, tmp_path: Path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings=_settings(log_level="DEBUG"))
        assert config["logging"]["level"] == "DEBUG"
        assert config["models"]["default_embedding_model"] == "nomic-embed-text"

    def test_yaml_values_kept_and_env_keys_override(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "app:\n  name: docembed\ningestion:\n  qa_pairs: 5\n  max_retries: 9\n"
            "  unknown_key: ignored\n",
            encoding="utf-8",
        )
        settings = _settings(processing_max_retries=1)

        raw = load_config(str(path), settings=settings)
        assert raw["app"]["name"] == "docembed"
        assert raw["ingestion"]["max_retries"] == 1

        config = load_ingestion_config(str(path), settings=settings)
        assert config.qa_pairs == 5
        assert config.max_retries == 1

    def test_repository_config_file_loads(self) -> None:
        path = Path(__file__).resolve().parents[2] / "config" / "config.yaml"
        config = load_ingestion_config(str(path), settings=_settings())
        assert config.text_only_max_tokens == 2000
        assert config.chars_per_token == 3.8
