"""Invocation context carried through the chat pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from src.deadline import Deadline


class PipelineState(StrEnum):
    """Progress of one chat request."""

    RECEIVED = "received"
    HISTORY_LOADED = "history_loaded"
    QUESTION_REWRITTEN = "question_rewritten"
    CONTEXT_RETRIEVED = "context_retrieved"
    ANSWER_SYNTHESIZED = "answer_synthesized"
    HISTORY_APPENDED = "history_appended"
    RESPONDED = "responded"
    FAILED = "failed"


@dataclass(frozen=True)
class ChatContext:
    """State for a single chat request; never shared across requests."""

    question: str
    conv_history: str = ""
    standalone_question: str | None = None
    retrieved_context: str | None = None
    answer: str | None = None
    state: PipelineState = PipelineState.RECEIVED
    deadline: Deadline = field(default_factory=lambda: Deadline(None), compare=False)
