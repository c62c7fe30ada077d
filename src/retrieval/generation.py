"""Claude-backed language model plus the rewrite and answer stages."""

from __future__ import annotations

import dataclasses
from typing import Protocol

import anthropic
from anthropic import Anthropic
from anthropic.types import TextBlock

from src.errors import DeadlineExceeded, LanguageModelError
from src.retrieval.context import ChatContext, PipelineState
from src.retrieval.prompts import render_answer_prompt, render_standalone_prompt


class LanguageModel(Protocol):
    """Takes a rendered prompt and returns the model's text."""

    def complete(self, prompt: str, timeout: float | None = None) -> str: ...


class AnthropicLanguageModel:
    """Single-turn completions through the Anthropic messages API.

    Failures are not retried.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 1024,
        client: Anthropic | None = None,
    ) -> None:
        self._client = client or Anthropic(api_key=api_key or None, max_retries=0)
        self.model = model
        self.max_tokens = max_tokens

    def complete(self, prompt: str, timeout: float | None = None) -> str:
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
                timeout=timeout,
            )
        except anthropic.APITimeoutError as exc:
            raise DeadlineExceeded("language model") from exc
        except anthropic.AnthropicError as exc:
            raise LanguageModelError(f"Language model request failed: {exc}") from exc

        if not response.content:
            raise LanguageModelError("Language model returned no content")
        block = response.content[0]
        if not isinstance(block, TextBlock):
            raise LanguageModelError(f"Expected TextBlock from Claude, got {type(block).__name__}")
        return block.text.strip()


def rewrite_question(
    ctx: ChatContext,
    llm: LanguageModel,
    timeout: float | None = None,
) -> ChatContext:
    """Turn the question plus history into a standalone question.

    Runs even when the history is empty.
    """
    call_timeout = ctx.deadline.timeout_for("rewrite", timeout)
    prompt = render_standalone_prompt(ctx.conv_history, ctx.question)
    standalone = llm.complete(prompt, timeout=call_timeout)
    return dataclasses.replace(
        ctx,
        standalone_question=standalone or ctx.question,
        state=PipelineState.QUESTION_REWRITTEN,
    )


def synthesize_answer(
    ctx: ChatContext,
    llm: LanguageModel,
    subject: str,
    support_email: str,
    timeout: float | None = None,
) -> ChatContext:
    """Answer the original question from retrieved context and history."""
    if ctx.retrieved_context is None:
        raise ValueError("synthesize_answer requires retrieved context")
    call_timeout = ctx.deadline.timeout_for("synthesis", timeout)
    prompt = render_answer_prompt(
        context=ctx.retrieved_context,
        conv_history=ctx.conv_history,
        question=ctx.question,
        subject=subject,
        support_email=support_email,
    )
    answer = llm.complete(prompt, timeout=call_timeout)
    return dataclasses.replace(ctx, answer=answer, state=PipelineState.ANSWER_SYNTHESIZED)
