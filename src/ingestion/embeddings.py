"""Embedding adapter around the OpenAI embeddings API."""

from __future__ import annotations

from typing import Protocol

import openai
from openai import OpenAI

from src.deadline import Deadline
from src.errors import DeadlineExceeded, EmbeddingServiceError


class EmbeddingService(Protocol):
    """Anything that turns text into fixed-dimension vectors."""

    model: str

    def embed(self, text: str, timeout: float | None = None) -> list[float]: ...

    def embed_batch(
        self,
        texts: list[str],
        timeout: float | None = None,
        deadline: Deadline | None = None,
    ) -> list[list[float]]: ...


class OpenAIEmbeddingService:
    """Embed text with an OpenAI embedding model.

    Each call is a fresh request; failures are not retried here.

    Args:
        api_key: OpenAI API key. Falls back to ``OPENAI_API_KEY`` when empty.
        model: Embedding model name.
        batch_size: Maximum number of inputs sent per request.
        client: Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "text-embedding-3-small",
        batch_size: int = 100,
        client: OpenAI | None = None,
    ) -> None:
        # max_retries=0: retry policy belongs to the caller.
        self._client = client or OpenAI(api_key=api_key or None, max_retries=0)
        self.model = model
        self.batch_size = batch_size

    def embed(self, text: str, timeout: float | None = None) -> list[float]:
        return self.embed_batch([text], timeout=timeout)[0]

    def embed_batch(
        self,
        texts: list[str],
        timeout: float | None = None,
        deadline: Deadline | None = None,
    ) -> list[list[float]]:
        """Embed *texts*, preserving input order.

        With a *deadline*, each request's timeout is the smaller of *timeout*
        and the time left when that request is sent.

        Raises:
            EmbeddingServiceError: Network, quota or provider failure.
            DeadlineExceeded: The provider did not answer in time, or the
                deadline ran out between batches.
            PipelineCancelled: The deadline was cancelled between batches.
        """
        vectors: list[list[float]] = []
        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]
            call_timeout = timeout
            if deadline is not None:
                call_timeout = deadline.timeout_for("embedding", timeout)
            try:
                response = self._client.embeddings.create(
                    input=batch, model=self.model, timeout=call_timeout
                )
            except openai.APITimeoutError as exc:
                raise DeadlineExceeded("embedding") from exc
            except openai.OpenAIError as exc:
                raise EmbeddingServiceError(f"Embedding request failed: {exc}") from exc
            vectors.extend(item.embedding for item in sorted(response.data, key=lambda d: d.index))
        return vectors
