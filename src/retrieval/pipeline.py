"""Conversational RAG pipeline: rewrite -> retrieve -> synthesize."""

from __future__ import annotations

import dataclasses
import logging

from src.conversation.store import ConversationStore, Speaker, TranscriptEntry, format_history
from src.deadline import Deadline
from src.errors import PipelineError
from src.ingestion.embeddings import EmbeddingService
from src.ingestion.storage import VectorIndex
from src.pipeline_config import PipelineConfig
from src.retrieval.context import ChatContext, PipelineState
from src.retrieval.generation import LanguageModel, rewrite_question, synthesize_answer
from src.retrieval.search import retrieve_context

logger = logging.getLogger(__name__)


class ConversationalPipeline:
    """Answer a user's question with retrieval and their conversation history.

    The user's transcript lock is held for the whole turn, so turns from one
    identity are serialized. History is only appended once an answer exists;
    a failed turn leaves the transcript untouched.

    Args:
        llm: Language model used for both rewriting and answering.
        embedder: Embedding service matching the one used at ingestion.
        index: Vector index to retrieve from.
        store: Conversation store holding per-user transcripts.
        config: Retrieval depth and deadlines.
        subject: What the bot answers questions about.
        support_email: Escalation contact named in the fallback answer.
    """

    def __init__(
        self,
        llm: LanguageModel,
        embedder: EmbeddingService,
        index: VectorIndex,
        store: ConversationStore,
        config: PipelineConfig | None = None,
        subject: str = "Scrimba",
        support_email: str = "help@company.com",
    ) -> None:
        self.llm = llm
        self.embedder = embedder
        self.index = index
        self.store = store
        self.config = config or PipelineConfig()
        self.subject = subject
        self.support_email = support_email

    def run(self, ctx: ChatContext) -> ChatContext:
        """Run the three stages on an already-loaded context."""
        timeout = self.config.service_timeout_seconds
        ctx = rewrite_question(ctx, self.llm, timeout=timeout)
        logger.info("Standalone question: %r", ctx.standalone_question)
        ctx = retrieve_context(
            ctx, self.embedder, self.index, k=self.config.retrieval_k, timeout=timeout
        )
        return synthesize_answer(
            ctx,
            self.llm,
            subject=self.subject,
            support_email=self.support_email,
            timeout=timeout,
        )

    def turn(self, user_id: str, question: str, deadline: Deadline | None = None) -> ChatContext:
        """Run one chat turn for *user_id* and record it in the transcript.

        Returns the final context in state ``RESPONDED``.

        Raises:
            PipelineError: Any stage failure, including the history write.
                Nothing is appended to history.
        """
        deadline = deadline or Deadline(self.config.chat_deadline_seconds)
        ctx = ChatContext(question=question, deadline=deadline)

        with self.store.lock(user_id):
            try:
                history = self.store.get(user_id)
                ctx = dataclasses.replace(
                    ctx,
                    conv_history=format_history(history),
                    state=PipelineState.HISTORY_LOADED,
                )
                ctx = self.run(ctx)
                self.store.append_turn(
                    user_id,
                    TranscriptEntry(Speaker.HUMAN, question),
                    TranscriptEntry(Speaker.ASSISTANT, ctx.answer or ""),
                )
                ctx = dataclasses.replace(ctx, state=PipelineState.HISTORY_APPENDED)
            except PipelineError:
                reached = ctx.state
                ctx = dataclasses.replace(ctx, state=PipelineState.FAILED)
                logger.warning(
                    "Chat turn for %s %s after %s", user_id, ctx.state.value, reached.value
                )
                raise

        ctx = dataclasses.replace(ctx, state=PipelineState.RESPONDED)
        logger.info("Answered %s (%s)", user_id, ctx.state.value)
        return ctx

    def answer(self, user_id: str, question: str, deadline: Deadline | None = None) -> str:
        """Answer *question* for *user_id*; see :meth:`turn`."""
        return self.turn(user_id, question, deadline).answer or ""
