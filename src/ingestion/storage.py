"""Vector index backends: Supabase pgvector and an in-memory fallback."""

from __future__ import annotations

import math
import threading
from typing import Any, Protocol, cast

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client, create_client

from src.config import settings
from src.errors import IndexUnavailableError
from src.ingestion.models import DocumentChunk, IndexedRecord

ScoredChunk = tuple[DocumentChunk, float]


def get_supabase_client() -> Client:
    """Create and return a Supabase client from settings."""
    return create_client(settings.supabase_url, settings.supabase_key)


class VectorIndex(Protocol):
    """Stores indexed records and answers nearest-neighbour queries."""

    def upsert(self, records: list[IndexedRecord]) -> None: ...

    def query(self, vector: list[float], k: int = 4) -> list[ScoredChunk]: ...


class SupabaseVectorIndex:
    """Vector index backed by a Supabase ``documents`` table.

    Rows follow the LangChain Supabase layout (``content``, ``metadata``,
    ``embedding``) and are queried through a ``match_documents`` style RPC.
    Every row records the embedding model in its metadata and queries are
    filtered on it, so vectors from another model never get ranked together.
    """

    BATCH_SIZE = 50

    def __init__(
        self,
        client: Client,
        embedding_model: str,
        table: str = "documents",
        match_function: str = "match_documents",
    ) -> None:
        self._client = client
        self.embedding_model = embedding_model
        self.table = table
        self.match_function = match_function

    def upsert(self, records: list[IndexedRecord]) -> None:
        """Insert records (batched by 50). Re-ingesting creates duplicates."""
        rows: list[dict[str, Any]] = []
        for record in records:
            if record.embedding_model != self.embedding_model:
                msg = (
                    f"Record embedded with {record.embedding_model!r}, "
                    f"index expects {self.embedding_model!r}"
                )
                raise ValueError(msg)
            rows.append(
                {
                    "content": record.chunk.text,
                    "metadata": {
                        "source": record.chunk.source_url,
                        "sequence_index": record.chunk.sequence_index,
                        "embedding_model": record.embedding_model,
                    },
                    "embedding": record.vector,
                }
            )

        try:
            for i in range(0, len(rows), self.BATCH_SIZE):
                self._client.table(self.table).insert(rows[i : i + self.BATCH_SIZE]).execute()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            raise IndexUnavailableError(f"Vector store upsert failed: {exc}") from exc

    def query(self, vector: list[float], k: int = 4) -> list[ScoredChunk]:
        """Return the *k* most similar chunks, most similar first."""
        try:
            result = self._client.rpc(
                self.match_function,
                {
                    "query_embedding": vector,
                    "match_count": k,
                    "filter": {"embedding_model": self.embedding_model},
                },
            ).execute()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            raise IndexUnavailableError(f"Vector store query failed: {exc}") from exc

        rows = cast(list[dict[str, Any]], result.data or [])
        scored: list[ScoredChunk] = []
        for row in rows:
            metadata = row.get("metadata") or {}
            chunk = DocumentChunk(
                text=row["content"],
                source_url=metadata.get("source", ""),
                sequence_index=int(metadata.get("sequence_index", 0)),
            )
            scored.append((chunk, float(row.get("similarity", 0.0))))
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:k]


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b, strict=True))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    if norm == 0:
        return 0.0
    return dot / norm


class InMemoryVectorIndex:
    """Process-local index using brute-force cosine similarity.

    Rejects records whose embedding model or dimension differs from the
    first record stored.
    """

    def __init__(self, embedding_model: str | None = None) -> None:
        self.embedding_model = embedding_model
        self._records: list[IndexedRecord] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._records)

    def upsert(self, records: list[IndexedRecord]) -> None:
        """Store *records* all together; a rejected record stores none of them."""
        if not records:
            return
        with self._lock:
            model = self.embedding_model or records[0].embedding_model
            reference = self._records[0] if self._records else records[0]
            for record in records:
                if record.embedding_model != model:
                    msg = f"Record embedded with {record.embedding_model!r}, index holds {model!r}"
                    raise ValueError(msg)
                if len(record.vector) != len(reference.vector):
                    raise ValueError(
                        f"Vector dimension {len(record.vector)} does not match "
                        f"index dimension {len(reference.vector)}"
                    )
            self.embedding_model = model
            self._records.extend(records)

    def query(self, vector: list[float], k: int = 4) -> list[ScoredChunk]:
        with self._lock:
            records = list(self._records)
        scored = [(r.chunk, cosine_similarity(vector, r.vector)) for r in records]
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:k]
