"""Error taxonomy shared by the ingestion and chat pipelines."""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for every failure a pipeline stage can raise."""


class UpstreamServiceError(PipelineError):
    """An embedding, language-model, or vector-store call failed."""


class EmbeddingServiceError(UpstreamServiceError):
    """The embedding provider rejected or failed the request."""


class LanguageModelError(UpstreamServiceError):
    """The language-model provider failed or returned an unusable response."""


class IndexUnavailableError(UpstreamServiceError):
    """The vector store backend could not serve an upsert or query."""


class CrawlError(PipelineError):
    """The seed URL of a crawl could not be fetched."""


class MalformedRequestError(PipelineError):
    """A request was missing a required field."""


class DeadlineExceeded(PipelineError):
    """A stage ran out of its time budget."""

    def __init__(self, stage: str) -> None:
        super().__init__(f"Deadline exceeded during {stage}")
        self.stage = stage


class PipelineCancelled(PipelineError):
    """The request was cancelled before this stage could start."""

    def __init__(self, stage: str) -> None:
        super().__init__(f"Cancelled before {stage}")
        self.stage = stage
