"""
NoteScribe Backend — Pydantic Request/Response Schemas
=======================================================

What:  Pydantic models defining the API contract between the UI and backend.
How:   FastAPI serializes route return values through these models and uses
       them to generate the OpenAPI document.

Schemas are kept apart from the SQLAlchemy model so the wire names
(`dateCreated`) can differ from column names (`date_created`).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class NoteEnvelope(BaseModel):
    """
    What:  Success envelope returned by add-note, update-note and
           regenerate-note.

    Example:
        {"success": true, "id": 3, "image": "48213.png", "markdown": "# Title\\n- item"}

    Newlines inside `markdown` are escaped by JSON encoding, so the body is
    a single line and decodes back to the exact transcription.
    """
    success: bool = Field(default=True, description="Always true on success")
    id: int = Field(description="Note identifier")
    image: str = Field(description="Stored image filename")
    markdown: str = Field(description="Markdown transcription of the image")


class NoteItem(BaseModel):
    """Full note representation used by the listing endpoint."""
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: int
    date_created: datetime = Field(serialization_alias="dateCreated")
    image: str
    markdown: str


class NoteListResponse(BaseModel):
    """All notes, newest first. No pagination."""
    notes: List[NoteItem] = Field(description="Notes ordered by creation time, newest first")


# ══════════════════════════════════════════════════════════════════════════
# Error / Health Models
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    What:  Error body shared by every failing endpoint.

    Example:
        {
            "success": false,
            "error": "transcription_error",
            "message": "Failed to convert image to markdown",
            "details": {"cause": "no response choices returned"},
            "request_id": "a1b2c3d4"
        }
    """
    success: bool = Field(default=False)
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Diagnostic context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Service and dependency status returned by GET /health."""
    status: str = Field(description="healthy, degraded or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="connected or disconnected")
    transcription: str = Field(description="configured or not_configured")
    storage: str = Field(description="writable or unavailable")
    uptime_seconds: float = Field(description="Seconds since the application was created")
