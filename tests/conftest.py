from __future__ import annotations

import pytest

from src.conversation.store import InMemoryConversationStore
from src.ingestion.storage import InMemoryVectorIndex
from fakes import FAKE_MODEL, FakeEmbedder


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def index() -> InMemoryVectorIndex:
    return InMemoryVectorIndex(embedding_model=FAKE_MODEL)


@pytest.fixture
def store() -> InMemoryConversationStore:
    return InMemoryConversationStore()
