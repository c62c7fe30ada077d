"""Data models for the ingestion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class RawDocument:
    """A fetched page before markup is stripped."""

    url: str
    html: str
    title: str | None = None


@dataclass(frozen=True)
class NormalizedDocument:
    """Plain-text page content plus its source metadata."""

    page_content: str
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def source_url(self) -> str:
        return str(self.metadata.get("source", ""))


@dataclass(frozen=True)
class DocumentChunk:
    """A bounded span of text ready for embedding and storage."""

    text: str
    source_url: str
    sequence_index: int


@dataclass(frozen=True)
class IndexedRecord:
    """A chunk paired with the vector produced by ``embedding_model``."""

    chunk: DocumentChunk
    vector: list[float]
    embedding_model: str


@dataclass(frozen=True)
class IngestResult:
    """Outcome of one ingestion run."""

    seed_url: str
    page_count: int
    chunk_count: int
