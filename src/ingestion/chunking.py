"""Recursive character chunking over normalized crawl output."""

from __future__ import annotations

import json

from langchain_text_splitters import RecursiveCharacterTextSplitter

from src.ingestion.models import DocumentChunk, NormalizedDocument

DEFAULT_SEPARATORS = ["\n\n", "\n", " ", ""]


def serialize_batch(documents: list[NormalizedDocument]) -> str:
    """Serialize the whole crawl into one JSON string.

    The layout mirrors a list of LangChain documents
    (``[{"pageContent": ..., "metadata": {...}}]``).
    """
    return json.dumps(
        [{"pageContent": d.page_content, "metadata": d.metadata} for d in documents],
        ensure_ascii=False,
    )


class Chunker:
    """Split text into overlapping chunks no longer than ``chunk_size``.

    Splits on paragraphs first, then lines, words and finally characters.
    Output is deterministic for identical input and configuration.
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200) -> None:
        if chunk_overlap >= chunk_size:
            msg = f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
            raise ValueError(msg)
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            separators=DEFAULT_SEPARATORS,
            length_function=len,
        )

    def split_text(self, text: str) -> list[str]:
        return self._splitter.split_text(text)

    def chunk(self, text: str, source_url: str, start_index: int = 0) -> list[DocumentChunk]:
        """Chunk *text* and tag every piece with *source_url*.

        Args:
            text: Text to split.
            source_url: URL recorded on every chunk.
            start_index: ``sequence_index`` of the first chunk.

        Returns:
            Chunks in text order.
        """
        return [
            DocumentChunk(text=piece, source_url=source_url, sequence_index=start_index + i)
            for i, piece in enumerate(self.split_text(text))
        ]

    def chunk_batch(self, documents: list[NormalizedDocument], seed_url: str) -> list[DocumentChunk]:
        """Chunk the JSON serialization of the entire batch as one blob."""
        if not documents:
            return []
        return self.chunk(serialize_batch(documents), seed_url)

    def chunk_per_document(self, documents: list[NormalizedDocument]) -> list[DocumentChunk]:
        """Chunk each document on its own so chunks keep their page URL."""
        chunks: list[DocumentChunk] = []
        for doc in documents:
            chunks.extend(self.chunk(doc.page_content, doc.source_url, start_index=len(chunks)))
        return chunks
