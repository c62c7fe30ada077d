"""Per-user conversation transcripts with pluggable backing stores."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any, Protocol, cast

import httpx
from postgrest.exceptions import APIError as PostgrestAPIError
from supabase import Client

from src.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


class Speaker(StrEnum):
    """Who said a transcript line; values are the rendered prefixes."""

    HUMAN = "Human"
    ASSISTANT = "AI"


@dataclass(frozen=True)
class TranscriptEntry:
    speaker: Speaker
    text: str


def format_history(entries: list[TranscriptEntry]) -> str:
    """Render a transcript as ``Speaker: text`` lines."""
    return "\n".join(f"{e.speaker.value}: {e.text}" for e in entries)


class KeyedLocks:
    """Registry handing out one lock per key.

    Entries are reference-counted and removed once no thread holds or waits
    on them, so the registry only contains keys that are in use.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, tuple[threading.Lock, int]] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock, users = self._locks.get(key, (threading.Lock(), 0))
            self._locks[key] = (lock, users + 1)
        try:
            with lock:
                yield
        finally:
            with self._guard:
                lock, users = self._locks[key]
                if users == 1:
                    del self._locks[key]
                else:
                    self._locks[key] = (lock, users - 1)


class ConversationStore(Protocol):
    """Maps a user identity to an ordered, append-only transcript."""

    def get(self, user_id: str) -> list[TranscriptEntry]: ...

    def append(self, user_id: str, entry: TranscriptEntry) -> None: ...

    def append_turn(
        self, user_id: str, question: TranscriptEntry, answer: TranscriptEntry
    ) -> None:
        """Record a question and its answer together, or neither."""
        ...

    def lock(self, user_id: str) -> Any: ...


@dataclass
class _Session:
    entries: list[TranscriptEntry] = field(default_factory=list)
    last_access: float = 0.0


class InMemoryConversationStore:
    """Process-local transcripts with LRU and TTL eviction.

    Args:
        max_sessions: Sessions kept before the least recently used is dropped.
        ttl_seconds: Idle time after which a session is discarded.
            ``None`` disables expiry.
        clock: Time source, injectable for tests.
    """

    def __init__(
        self,
        max_sessions: int = 1000,
        ttl_seconds: float | None = 86400.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_sessions = max_sessions
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: OrderedDict[str, _Session] = OrderedDict()
        self._guard = threading.Lock()
        self._locks = KeyedLocks()

    def __len__(self) -> int:
        return len(self._sessions)

    def lock(self, user_id: str) -> Any:
        return self._locks.hold(user_id)

    def _expired(self, session: _Session, now: float) -> bool:
        return self.ttl_seconds is not None and now - session.last_access > self.ttl_seconds

    def _evict(self, now: float) -> None:
        for user_id in [u for u, s in self._sessions.items() if self._expired(s, now)]:
            del self._sessions[user_id]
        while len(self._sessions) > self.max_sessions:
            user_id, _ = self._sessions.popitem(last=False)
            logger.debug("Evicted conversation for %s", user_id)

    def get(self, user_id: str) -> list[TranscriptEntry]:
        now = self._clock()
        with self._guard:
            session = self._sessions.get(user_id)
            if session is None:
                return []
            if self._expired(session, now):
                del self._sessions[user_id]
                return []
            session.last_access = now
            self._sessions.move_to_end(user_id)
            return list(session.entries)

    def append(self, user_id: str, entry: TranscriptEntry) -> None:
        self._extend(user_id, [entry])

    def append_turn(
        self, user_id: str, question: TranscriptEntry, answer: TranscriptEntry
    ) -> None:
        self._extend(user_id, [question, answer])

    def _extend(self, user_id: str, entries: list[TranscriptEntry]) -> None:
        now = self._clock()
        with self._guard:
            session = self._sessions.get(user_id)
            if session is None or self._expired(session, now):
                session = _Session()
                self._sessions[user_id] = session
            session.entries.extend(entries)
            session.last_access = now
            self._sessions.move_to_end(user_id)
            self._evict(now)


class SupabaseConversationStore:
    """Transcripts persisted in a Supabase table.

    Rows older than *ttl_seconds* are ignored on read. Locks are per process.
    """

    def __init__(
        self,
        client: Client,
        table: str = "conversation_turns",
        ttl_seconds: float | None = 86400.0,
    ) -> None:
        self._client = client
        self.table = table
        self.ttl_seconds = ttl_seconds
        self._locks = KeyedLocks()

    def lock(self, user_id: str) -> Any:
        return self._locks.hold(user_id)

    def get(self, user_id: str) -> list[TranscriptEntry]:
        query = self._client.table(self.table).select("speaker,text").eq("user_id", user_id)
        if self.ttl_seconds is not None:
            cutoff = datetime.now(UTC) - timedelta(seconds=self.ttl_seconds)
            query = query.gte("created_at", cutoff.isoformat())
        try:
            result = query.order("id").execute()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            raise UpstreamServiceError(f"Conversation lookup failed: {exc}") from exc
        rows = cast(list[dict[str, Any]], result.data or [])
        return [TranscriptEntry(speaker=Speaker(r["speaker"]), text=r["text"]) for r in rows]

    def _row(self, user_id: str, entry: TranscriptEntry) -> dict[str, str]:
        return {"user_id": user_id, "speaker": entry.speaker.value, "text": entry.text}

    def append(self, user_id: str, entry: TranscriptEntry) -> None:
        self._insert(self._row(user_id, entry))

    def append_turn(
        self, user_id: str, question: TranscriptEntry, answer: TranscriptEntry
    ) -> None:
        """Insert both rows in one request so a turn is never half-written."""
        self._insert([self._row(user_id, question), self._row(user_id, answer)])

    def _insert(self, rows: dict[str, str] | list[dict[str, str]]) -> None:
        try:
            self._client.table(self.table).insert(rows).execute()
        except (PostgrestAPIError, httpx.HTTPError) as exc:
            raise UpstreamServiceError(f"Conversation append failed: {exc}") from exc
