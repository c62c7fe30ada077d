"""Retrieval stage: embed the standalone question and gather context."""

from __future__ import annotations

import dataclasses
import logging

from src.ingestion.embeddings import EmbeddingService
from src.ingestion.models import DocumentChunk
from src.ingestion.storage import VectorIndex
from src.retrieval.context import ChatContext, PipelineState

logger = logging.getLogger(__name__)


def combine_documents(chunks: list[DocumentChunk]) -> str:
    """Join chunk texts with a blank line, keeping their order."""
    return "\n\n".join(c.text for c in chunks)


def retrieve_context(
    ctx: ChatContext,
    embedder: EmbeddingService,
    index: VectorIndex,
    k: int = 4,
    timeout: float | None = None,
) -> ChatContext:
    """Query the index with the standalone question and store the context blob.

    Results keep the index order (most similar first); overlapping chunks
    are not deduplicated.
    """
    if ctx.standalone_question is None:
        raise ValueError("retrieve_context requires a standalone question")

    call_timeout = ctx.deadline.timeout_for("retrieval", timeout)
    vector = embedder.embed(ctx.standalone_question, timeout=call_timeout)
    ctx.deadline.check("retrieval")
    results = index.query(vector, k=k)
    logger.debug("Retrieved %d chunks for %r", len(results), ctx.standalone_question)

    return dataclasses.replace(
        ctx,
        retrieved_context=combine_documents([chunk for chunk, _ in results]),
        state=PipelineState.CONTEXT_RETRIEVED,
    )
