"""
FastAPI application entry point for the Meeting Knowledge service.
Configures the application, middleware, routes, and error handlers.
"""

from typing import Any, AsyncGenerator, Dict, List, Optional
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from meeting_knowledge.config import get_settings
from meeting_knowledge.db.database import init_db
from meeting_knowledge.routers import analytics, ingest, search, transcripts
from meeting_knowledge.services.extraction_service import ExtractionFailure
from meeting_knowledge.services.ingestion_service import DuplicateTranscriptError, PersistenceError
from meeting_knowledge.services.search_service import InvalidQueryError
from meeting_knowledge.services.transcript_service import TranscriptNotFoundError
from meeting_knowledge.utils.logger import setup_logging, get_correlation_id, set_correlation_id

VERSION = "1.0.0"

# Initialize settings and logging
settings = get_settings()
logger = setup_logging(settings.log_level, json_output=settings.log_json)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup and shutdown events."""
    logger.info("Starting Meeting Knowledge API", version=VERSION)

    try:
        init_db()
        logger.info("Database initialization completed")
    except Exception as e:
        logger.error("Database initialization failed", error=str(e))
        raise

    yield

    logger.info("Shutting down Meeting Knowledge API")


app = FastAPI(
    title="Meeting Knowledge API",
    description="Knowledge extraction and semantic search over meeting transcripts",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next) -> Response:
    """Add correlation ID to all requests for tracing."""
    correlation_id = set_correlation_id(request.headers.get("X-Correlation-ID"))

    logger.info("Request started",
                method=request.method,
                url=str(request.url),
                client_ip=request.client.host if request.client else "unknown")

    response = await call_next(request)

    response.headers["X-Correlation-ID"] = correlation_id

    logger.info("Request completed",
                method=request.method,
                url=str(request.url),
                status_code=response.status_code)

    return response


def error_response(status_code: int, code: str, message: str, **extra: Any) -> JSONResponse:
    """Build the standard error envelope."""
    error: Dict[str, Any] = {
        "code": code,
        "message": message,
        "correlation_id": get_correlation_id(),
    }
    error.update(extra)
    return JSONResponse(status_code=status_code, content={"error": error})


def _field_path(location: tuple) -> str:
    parts = [str(part) for part in location if part not in ("body", "query", "path")]
    return ".".join(parts) or "request"


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with field-level detail."""
    details: List[Dict[str, Optional[str]]] = [
        {"field": _field_path(error.get("loc", ())), "message": error.get("msg")}
        for error in exc.errors()
    ]
    logger.warning("Request validation failed", url=str(request.url), errors=len(details))

    return error_response(400, "VALIDATION_ERROR", "Request validation failed", details=details)


@app.exception_handler(DuplicateTranscriptError)
async def duplicate_transcript_handler(request: Request, exc: DuplicateTranscriptError) -> JSONResponse:
    """Handle re-ingestion of an existing transcript id."""
    logger.warning("Duplicate transcript", transcript_id=exc.transcript_id, url=str(request.url))

    return error_response(409, "DUPLICATE_TRANSCRIPT", "Transcript with this ID already exists")


@app.exception_handler(InvalidQueryError)
async def invalid_query_handler(request: Request, exc: InvalidQueryError) -> JSONResponse:
    """Handle empty or malformed search queries."""
    logger.warning("Invalid search query", error=str(exc), url=str(request.url))

    return error_response(400, "INVALID_QUERY", str(exc))


@app.exception_handler(TranscriptNotFoundError)
async def transcript_not_found_handler(request: Request, exc: TranscriptNotFoundError) -> JSONResponse:
    """Handle transcript not found errors."""
    logger.warning("Transcript not found", error=str(exc), url=str(request.url))

    return error_response(404, "TRANSCRIPT_NOT_FOUND", "The requested transcript does not exist")


@app.exception_handler(ExtractionFailure)
async def extraction_failure_handler(request: Request, exc: ExtractionFailure) -> JSONResponse:
    """Handle inference failures during extraction or query embedding."""
    logger.error("Knowledge extraction failed",
                 stage=exc.stage,
                 malformed=exc.malformed,
                 error=str(exc.cause),
                 url=str(request.url))

    if exc.malformed:
        return error_response(502, "EXTRACTION_MALFORMED",
                              "The AI service returned an unexpected response", stage=exc.stage)
    return error_response(502, "EXTRACTION_FAILED",
                          "The AI service failed to process the transcript", stage=exc.stage)


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    """Handle aborted ingestion transactions."""
    logger.error("Persistence failure",
                 error=str(exc),
                 cause=str(exc.__cause__) if exc.__cause__ else None,
                 url=str(request.url))

    return error_response(500, "PERSISTENCE_ERROR", "Failed to store the transcript")


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other unhandled exceptions."""
    logger.error("Unhandled exception",
                 error=str(exc),
                 error_type=type(exc).__name__,
                 url=str(request.url))

    return error_response(500, "INTERNAL_ERROR", "An unexpected error occurred")


app.include_router(ingest.router)
app.include_router(search.router)
app.include_router(transcripts.router)
app.include_router(analytics.router)


@app.get("/health")
async def health_check() -> Dict[str, str]:
    """Health check endpoint for monitoring."""
    return {
        "status": "healthy",
        "service": "meeting-knowledge-api",
        "version": VERSION
    }


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint with API information."""
    return {
        "service": "Meeting Knowledge API",
        "version": VERSION,
        "description": "Knowledge extraction and semantic search over meeting transcripts",
        "docs": "/docs",
        "health": "/health"
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "meeting_knowledge.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level=settings.log_level.lower()
    )
