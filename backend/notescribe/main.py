"""
NoteScribe Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() builds every collaborator (engine,
       blob store, note store, transcriber, workflow), keeps them on
       `app.state`, registers middleware, exception handlers and routes.
Who:   `python -m notescribe`, or uvicorn directly (uvicorn notescribe.main:app).
When:  Once at server startup; the returned app handles all subsequent requests.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware:  [Request ID] → [Logging] → [GZip]          │
    │                                                          │
    │  Routes:                                                 │
    │    GET  /  /static/{file}  /images/{file}   (pages.py)   │
    │    POST /api/add-note  /api/update-note                  │
    │         /api/regenerate-note                (notes.py)   │
    │    GET  /api/notes                          (notes.py)   │
    │    GET  /health                             (health.py)  │
    │                                                          │
    │  Exception Handlers:                                     │
    │    Validation→400 │ NotFound→404 │ Storage/AI/DB→500     │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Initialize logging
    2. Report missing configuration (the server still starts)
    3. Create the storage directory
    4. Create the notes table and indexes if absent

    Shutdown:
    1. Dispose database engine (close all connections)
"""

import logging
import sys
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from notescribe import __version__
from notescribe.config import Settings, settings as default_settings
from notescribe.database import (
    create_engine,
    create_session_factory,
    dispose_engine,
    init_models,
)
from notescribe.exceptions import (
    DatabaseError,
    FileStorageError,
    NoteScribeError,
    NotFoundError,
    TranscriptionError,
    ValidationError,
)
from notescribe.middleware.logging import RequestLoggingMiddleware
from notescribe.middleware.request_id import RequestIDMiddleware, request_id_var
from notescribe.routes import health, notes, pages
from notescribe.services.blob_store import BlobStore
from notescribe.services.llm_base import TranscriptionService
from notescribe.services.note_service import NoteService
from notescribe.services.note_store import NoteStore
from notescribe.services.transcription_service import OpenAITranscriptionService

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-15T12:00:00 [INFO] notescribe.services.note_service: ...

    Called once during startup, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request noise from third-party libraries
    for name in ("uvicorn.access", "sqlalchemy.engine", "httpcore", "httpx", "openai"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup: logging, config report, storage dir, schema.
    Shutdown: dispose the engine.
    """
    app_settings: Settings = app.state.settings

    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("NoteScribe %s starting up...", __version__)

    try:
        app_settings.validate_required_for_production()
    except ValueError as e:
        # The server still serves the UI and stored notes; AI calls fail fast
        logger.error("%s", str(e))

    storage = Path(app_settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    await init_models(app.state.engine)

    logger.info("Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("NoteScribe shutting down...")
    await dispose_engine(app.state.engine)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str, details: Optional[dict], rid: str) -> dict:
    return {
        "success": False,
        "error": error,
        "message": message,
        "details": details or None,
        "request_id": rid,
    }


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP status codes and one JSON body shape.

    Handler hierarchy:
        ValidationError         → 400 Bad Request
        RequestValidationError  → 400 Bad Request (unparseable form)
        NotFoundError           → 404 Not Found
        FileStorageError        → 500
        TranscriptionError      → 500
        DatabaseError           → 500
        NoteScribeError (base)  → 500
        Exception (fallback)    → 500, no internals in the body

    Downstream failures keep their cause text in `details.cause`.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s", rid, exc.message)
        return JSONResponse(
            status_code=400,
            content=_error_body("validation_error", exc.message, exc.context, rid),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        """Form body FastAPI could not parse into the declared parameters."""
        rid = request_id_var.get("")
        logger.warning("[%s] Failed to parse form: %s", rid, exc.errors())
        return JSONResponse(
            status_code=400,
            content=_error_body(
                "validation_error",
                "Failed to parse form",
                {"errors": [err.get("msg", "") for err in exc.errors()]},
                rid,
            ),
        )

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        logger.info("[%s] Not found: %s", rid, exc.message)
        return JSONResponse(
            status_code=404,
            content=_error_body("not_found", exc.message, exc.context, rid),
        )

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        rid = request_id_var.get("")
        logger.error("[%s] File storage error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("storage_error", exc.message, exc.context, rid),
        )

    @app.exception_handler(TranscriptionError)
    async def handle_transcription_error(request: Request, exc: TranscriptionError):
        rid = request_id_var.get("")
        logger.error("[%s] Transcription error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("transcription_error", exc.message, exc.context, rid),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        rid = request_id_var.get("")
        logger.error("[%s] Database error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("database_error", exc.message, exc.context, rid),
        )

    @app.exception_handler(NoteScribeError)
    async def handle_app_error(request: Request, exc: NoteScribeError):
        rid = request_id_var.get("")
        logger.error("[%s] Application error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("internal_server_error", exc.message, exc.context, rid),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Stack trace goes to the log only, never to the response."""
        rid = request_id_var.get("")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "internal_server_error",
                "An unexpected error occurred. Please try again.",
                None,
                rid,
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    app_settings: Optional[Settings] = None,
    transcriber: Optional[TranscriptionService] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        app_settings: configuration; the process-wide `settings` by default
        transcriber:  transcription backend; an OpenAITranscriptionService
                      built from the settings by default

    Every collaborator lives on `app.state`, so two apps built in one
    process (e.g. by tests) share nothing.
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="NoteScribe API",
        description=(
            "Photograph handwritten or printed notes and get them back as "
            "Markdown, stored alongside the original image."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Shared Collaborators ──────────────────────────────────────────────
    engine = create_engine(app_settings.database_url)
    blob_store = BlobStore(
        storage_root=app_settings.storage_root,
        naming=app_settings.storage_naming,
        max_upload_size=app_settings.max_upload_size,
    )
    note_store = NoteStore()
    if transcriber is None:
        transcriber = OpenAITranscriptionService(
            api_key=app_settings.openai_api_key,
            base_url=app_settings.ai_base_url,
            model=app_settings.ai_model,
        )

    app.state.settings = app_settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.blob_store = blob_store
    app.state.note_store = note_store
    app.state.transcriber = transcriber
    app.state.note_service = NoteService(
        blob_store=blob_store,
        transcriber=transcriber,
        store=note_store,
    )
    app.state.started_at = time.time()

    # ── Register Middleware ───────────────────────────────────────────────
    # Executes in reverse order of addition: RequestID → Logging → GZip
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(pages.router)
    app.include_router(notes.router)
    app.include_router(health.router)

    return app


# uvicorn expects `notescribe.main:app` to be importable
app = create_app()
