"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources, in priority order:
#
#   1. **Environment variables** - e.g. OPENAI_API_KEY=sk-abc123
#   2. **.env file** - key=value lines in the project root .env file
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.
#
# The ``default_*`` fields are the process-wide defaults: the last source
# consulted by the embedding context resolver after an explicit override
# and the library's own configuration.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """docembed application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Model providers ===
    # Empty key = "not configured"; the provider factories in main.py then
    # fall through to the local Ollama server.
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = ""  # Provider default when a call names no model
    openai_completion_model: str = ""
    ollama_base_url: str = "http://localhost:11434"

    # === Process-wide model defaults ===
    default_embedding_model: str = "nomic-embed-text"
    default_embedding_dimension: int = 768
    default_completion_model: str = "llama3.1"
    default_context_length: int = 2048

    # === Pipeline ===
    processing_max_retries: int = 2
    processing_retry_delay_seconds: float = 120.0
    processing_max_concurrent_documents: int = 4
    normalize_vectors: bool = False

    # === Persistence ===
    # Empty path = in-memory repository.
    document_db_path: str = ""

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_providers(self) -> list[str]:
        """Return the names of model providers that are configured."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        if self.ollama_base_url:
            providers.append("ollama")
        return providers
