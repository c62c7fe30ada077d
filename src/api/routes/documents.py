"""Document loading endpoint: crawl a site and index it for retrieval."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from src.api.deps import get_ingestion_pipeline
from src.api.models import ErrorResponse, LoadDocumentsRequest, LoadDocumentsResponse
from src.ingestion.pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/api/load-documents",
    response_model=LoadDocumentsResponse,
    responses={500: {"model": ErrorResponse}},
)
async def load_documents(
    body: LoadDocumentsRequest,
    pipeline: Annotated[IngestionPipeline, Depends(get_ingestion_pipeline)],
) -> LoadDocumentsResponse | JSONResponse:
    """Crawl ``url``, then chunk, embed and store every page found.

    Either the whole load succeeds or a generic 500 is returned.
    """
    try:
        result = await asyncio.to_thread(pipeline.ingest, body.url)
    except Exception:
        logger.exception("Loading documents from %s failed", body.url)
        return JSONResponse(status_code=500, content=ErrorResponse().model_dump())
    return LoadDocumentsResponse(success=True, chunk_count=result.chunk_count)
