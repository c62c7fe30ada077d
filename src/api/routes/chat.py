"""Chat endpoint: conversational question answering over indexed documents."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from src.api.deps import get_chat_pipeline
from src.api.models import ChatRequest, ChatResponse, ErrorResponse
from src.retrieval.pipeline import ConversationalPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


def client_identity(request: Request) -> str:
    """Key conversations by the caller's network address."""
    return request.client.host if request.client else "unknown"


@router.post(
    "/api/chat",
    response_model=ChatResponse,
    responses={500: {"model": ErrorResponse}},
)
async def chat(
    body: ChatRequest,
    request: Request,
    pipeline: Annotated[ConversationalPipeline, Depends(get_chat_pipeline)],
) -> ChatResponse | JSONResponse:
    """Answer a question, folding in the caller's conversation history."""
    user_id = client_identity(request)
    try:
        answer = await asyncio.to_thread(pipeline.answer, user_id, body.question)
    except Exception:
        logger.exception("Chat request from %s failed", user_id)
        return JSONResponse(status_code=500, content=ErrorResponse().model_dump())
    return ChatResponse(response=answer)
