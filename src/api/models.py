"""Pydantic request/response schemas for the support bot API."""

from __future__ import annotations

from pydantic import BaseModel


class ChatRequest(BaseModel):
    """Request body for the /api/chat endpoint."""

    question: str


class ChatResponse(BaseModel):
    """Response body for the /api/chat endpoint."""

    response: str


class LoadDocumentsRequest(BaseModel):
    """Request body for the /api/load-documents endpoint."""

    url: str


class LoadDocumentsResponse(BaseModel):
    """Response body for the /api/load-documents endpoint."""

    success: bool = True
    chunk_count: int = 0


class ErrorResponse(BaseModel):
    """Uniform body for every failed request."""

    error: str = "Internal Server Error"
