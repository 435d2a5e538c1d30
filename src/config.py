from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings validated via Pydantic.

    Values are loaded from environment variables and/or a .env file.
    """

    # API Keys
    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""

    # Embeddings (any OpenAI-compatible endpoint, e.g. DeepInfra)
    embedding_base_url: str | None = None
    embedding_model: str = "BAAI/bge-m3"
    embedding_dimensions: int = 1024
    embedding_batch_size: int = 64
    embedding_max_chars: int = 8000

    # Oracles
    llm_model: str = "claude-sonnet-4-20250514"
    oracle_timeout_seconds: float = 60.0

    # Chunking
    chunk_size: int = 1000
    chunk_overlap: int = 200
    chapter_match_threshold: float = 0.7
    chapter_fuzzy_threshold: float = 0.4

    # Search
    search_min_similarity: float = 0.25
    search_max_results: int = 10

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Gracefully handles missing .env files (e.g. in CI/testing) by falling
    back to environment variables and defaults.
    """
    try:
        return Settings()
    except Exception:
        # If .env is missing or unreadable, build settings from env vars only.
        return Settings(_env_file=None)  # type: ignore[call-arg]


settings = get_settings()
