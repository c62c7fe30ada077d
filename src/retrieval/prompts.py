"""Prompt templates for question rewriting and answer synthesis."""

from __future__ import annotations

FALLBACK_ANSWER = "I'm sorry, I don't know the answer to that."

STANDALONE_QUESTION_TEMPLATE = (
    "Given a conversation history (if any) and a question, convert it to a standalone question.\n"
    "Conversation history: {conv_history}\n"
    "Question: {question} Standalone question:"
)

ANSWER_TEMPLATE = (
    "You are a helpful and enthusiastic support bot who can answer a given question about "
    "{subject} based on the context provided and the conversation history. Try to find the "
    "answer in the context. If the answer is not given in the context, find the answer in the "
    "conversation history if possible. If you really don't know the answer, say "
    '"' + FALLBACK_ANSWER + '" And direct the questioner to email {support_email}. '
    "Don't try to make up an answer. Always speak as if you were chatting to a friend.\n"
    "Context: {context}\n"
    "Conversation history: {conv_history}\n"
    "Question: {question}\n"
    "Answer: "
)


def render_standalone_prompt(conv_history: str, question: str) -> str:
    return STANDALONE_QUESTION_TEMPLATE.format(conv_history=conv_history, question=question)


def render_answer_prompt(
    context: str,
    conv_history: str,
    question: str,
    subject: str,
    support_email: str,
) -> str:
    return ANSWER_TEMPLATE.format(
        context=context,
        conv_history=conv_history,
        question=question,
        subject=subject,
        support_email=support_email,
    )
