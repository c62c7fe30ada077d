"""FastAPI dependencies building the pipelines from settings."""

from __future__ import annotations

from functools import lru_cache

from src.config import settings
from src.conversation.store import (
    ConversationStore,
    InMemoryConversationStore,
    SupabaseConversationStore,
)
from src.ingestion.crawler import Crawler
from src.ingestion.embeddings import OpenAIEmbeddingService
from src.ingestion.pipeline import IngestionPipeline
from src.ingestion.storage import SupabaseVectorIndex, VectorIndex, get_supabase_client
from src.pipeline_config import ConversationBackend, PipelineConfig
from src.retrieval.generation import AnthropicLanguageModel
from src.retrieval.pipeline import ConversationalPipeline


@lru_cache(maxsize=1)
def get_pipeline_config() -> PipelineConfig:
    return PipelineConfig.from_settings(settings)


@lru_cache(maxsize=1)
def get_embedder() -> OpenAIEmbeddingService:
    return OpenAIEmbeddingService(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        batch_size=settings.embedding_batch_size,
    )


@lru_cache(maxsize=1)
def get_vector_index() -> VectorIndex:
    return SupabaseVectorIndex(
        get_supabase_client(),
        embedding_model=settings.embedding_model,
        table=settings.documents_table,
        match_function=settings.match_function,
    )


@lru_cache(maxsize=1)
def get_conversation_store() -> ConversationStore:
    backend = ConversationBackend(settings.conversation_backend)
    if backend is ConversationBackend.SUPABASE:
        return SupabaseConversationStore(
            get_supabase_client(),
            table=settings.conversation_table,
            ttl_seconds=settings.history_ttl_seconds,
        )
    return InMemoryConversationStore(
        max_sessions=settings.history_max_sessions,
        ttl_seconds=settings.history_ttl_seconds,
    )


@lru_cache(maxsize=1)
def get_chat_pipeline() -> ConversationalPipeline:
    return ConversationalPipeline(
        llm=AnthropicLanguageModel(
            api_key=settings.anthropic_api_key,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
        ),
        embedder=get_embedder(),
        index=get_vector_index(),
        store=get_conversation_store(),
        config=get_pipeline_config(),
        subject=settings.bot_subject,
        support_email=settings.support_email,
    )


@lru_cache(maxsize=1)
def get_ingestion_pipeline() -> IngestionPipeline:
    return IngestionPipeline(
        crawler=Crawler(timeout=settings.crawl_timeout_seconds),
        embedder=get_embedder(),
        index=get_vector_index(),
        config=get_pipeline_config(),
    )
