import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.models import ErrorResponse
from src.api.routes.chat import router as chat_router
from src.api.routes.documents import router as documents_router
from src.config import settings
from src.errors import MalformedRequestError

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Site Support Bot API",
    description="Conversational RAG over crawled website content",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_origin_regex=r"http://localhost:\d+",
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat_router)
app.include_router(documents_router)


@app.exception_handler(RequestValidationError)
async def malformed_request(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Missing or invalid fields get the same opaque 500 as any other failure."""
    error = MalformedRequestError(str(exc.errors()))
    logger.error("Malformed request to %s: %s", request.url.path, error)
    return JSONResponse(status_code=500, content=ErrorResponse().model_dump())


@app.exception_handler(Exception)
async def internal_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s", request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=ErrorResponse().model_dump())


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}
