"""End-to-end ingestion pipeline: crawl -> normalize -> chunk -> embed -> store."""

from __future__ import annotations

import logging

from src.deadline import Deadline
from src.ingestion.chunking import Chunker
from src.ingestion.crawler import Crawler
from src.ingestion.embeddings import EmbeddingService
from src.ingestion.models import IndexedRecord, IngestResult
from src.ingestion.normalizer import normalize_documents
from src.ingestion.storage import VectorIndex
from src.pipeline_config import ChunkingStrategy, PipelineConfig

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Load a site into the vector index.

    Args:
        crawler: Fetches pages reachable from the seed URL.
        embedder: Embedding service; must be the one used at query time.
        index: Destination vector index.
        config: Chunking, depth and deadline settings.
    """

    def __init__(
        self,
        crawler: Crawler,
        embedder: EmbeddingService,
        index: VectorIndex,
        config: PipelineConfig | None = None,
    ) -> None:
        self.crawler = crawler
        self.embedder = embedder
        self.index = index
        self.config = config or PipelineConfig()
        self.chunker = Chunker(self.config.chunk_size, self.config.chunk_overlap)

    def ingest(self, seed_url: str, max_depth: int | None = None) -> IngestResult:
        """Run the full pipeline for *seed_url*.

        Any stage failure propagates; nothing is reported as partial success.
        Re-ingesting the same URL adds duplicate records.

        Returns:
            An :class:`IngestResult` with the number of chunks stored.
        """
        deadline = Deadline(self.config.ingest_deadline_seconds)
        depth = self.config.crawl_max_depth if max_depth is None else max_depth

        # 1. Crawl
        raw_docs = self.crawler.crawl(seed_url, depth, deadline=deadline)

        # 2. Normalize
        docs = normalize_documents(raw_docs)

        # 3. Chunk
        if self.config.chunking_strategy is ChunkingStrategy.PER_DOCUMENT:
            chunks = self.chunker.chunk_per_document(docs)
        else:
            chunks = self.chunker.chunk_batch(docs, seed_url)

        if not chunks:
            logger.info("No text extracted from %s", seed_url)
            return IngestResult(seed_url=seed_url, page_count=len(raw_docs), chunk_count=0)

        # 4. Embed
        vectors = self.embedder.embed_batch(
            [c.text for c in chunks],
            timeout=self.config.service_timeout_seconds,
            deadline=deadline,
        )
        records = [
            IndexedRecord(chunk=chunk, vector=vector, embedding_model=self.embedder.model)
            for chunk, vector in zip(chunks, vectors, strict=True)
        ]

        # 5. Store
        deadline.check("upsert")
        self.index.upsert(records)

        logger.info(
            "Ingested %s: %d pages, %d chunks", seed_url, len(raw_docs), len(records)
        )
        return IngestResult(seed_url=seed_url, page_count=len(raw_docs), chunk_count=len(records))
