"""Pipeline configuration: strategy enums and PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from src.config import Settings


class ChunkingStrategy(str, Enum):
    """How crawled pages are fed to the chunker."""

    # Whole crawl serialized as one JSON blob, then chunked.
    BATCH = "batch"
    PER_DOCUMENT = "per_document"


class ConversationBackend(str, Enum):
    """Where conversation transcripts live."""

    MEMORY = "memory"
    SUPABASE = "supabase"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable knobs shared by the ingestion and chat pipelines.

    Defaults mirror the reference behaviour: 1000/200 character chunks over
    the whole serialized crawl, and top-4 retrieval.
    """

    chunking_strategy: ChunkingStrategy = ChunkingStrategy.BATCH
    chunk_size: int = 1000
    chunk_overlap: int = 200
    retrieval_k: int = 4
    crawl_max_depth: int = 1000
    service_timeout_seconds: float = 30.0
    chat_deadline_seconds: float = 120.0
    ingest_deadline_seconds: float = 600.0

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            chunking_strategy=ChunkingStrategy(settings.chunking_strategy),
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            retrieval_k=settings.retrieval_k,
            crawl_max_depth=settings.crawl_max_depth,
            service_timeout_seconds=settings.service_timeout_seconds,
            chat_deadline_seconds=settings.chat_deadline_seconds,
            ingest_deadline_seconds=settings.ingest_deadline_seconds,
        )
