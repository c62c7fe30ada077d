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
    documents_table: str = "documents"
    match_function: str = "match_documents"
    conversation_table: str = "conversation_turns"

    # Models
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100
    llm_model: str = "claude-sonnet-4-20250514"
    llm_max_tokens: int = 1024

    # Ingestion
    chunk_size: int = 1000
    chunk_overlap: int = 200
    chunking_strategy: str = "batch"
    crawl_max_depth: int = 1000
    crawl_timeout_seconds: float = 10.0

    # Retrieval and answering
    retrieval_k: int = 4
    bot_subject: str = "Scrimba"
    support_email: str = "help@company.com"

    # Deadlines
    service_timeout_seconds: float = 30.0
    chat_deadline_seconds: float = 120.0
    ingest_deadline_seconds: float = 600.0

    # Conversation history
    conversation_backend: str = "memory"
    history_max_sessions: int = 1000
    history_ttl_seconds: float = 86400.0

    # App config
    api_host: str = "0.0.0.0"
    api_port: int = 3000
    log_level: str = "INFO"

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
