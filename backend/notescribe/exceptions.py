"""
NoteScribe Backend — Custom Exception Hierarchy
=================================================

What:  Application-specific exceptions for the failure kinds of the note
       workflow.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with the matching status.
Who:   Raised by services; caught by the handlers in main.py.

Exception Hierarchy:
    NoteScribeError (base)
    ├── ValidationError      → 400 Bad Request (missing/invalid form input)
    ├── NotFoundError        → 404 Not Found (unknown note, missing image file)
    ├── FileStorageError     → 500 (blob write/read failed)
    ├── TranscriptionError   → 500 (AI call failed, not configured, no choices)
    └── DatabaseError        → 500 (note store failed)

Downstream errors keep the underlying cause in `context["cause"]`; it is
returned to the client as diagnostic text under `details`.
"""

from typing import Any, Dict, Optional


class NoteScribeError(Exception):
    """
    Base exception for all NoteScribe application errors.

    Attributes:
        message:  User-facing error description
        context:  Additional debug info, returned as `details`
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NoteScribeError):
    """
    Raised when client input fails validation.

    When:    Missing/invalid note id, missing image part, oversized upload.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(NoteScribeError):
    """
    Raised when a requested resource does not exist.

    When:    Unknown note id, or the note's image file is gone from the
             blob store.
    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"The requested {resource} was not found"
            if resource_id:
                message = f"No {resource} found with id {resource_id}"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class FileStorageError(NoteScribeError):
    """
    Raised when blob store operations fail.

    When:    Directory cannot be created, disk full, permission denied,
             image cannot be read back for transcription.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class TranscriptionError(NoteScribeError):
    """
    Raised when the image could not be turned into Markdown.

    When:    No API credential configured (raised before any network call),
             the chat-completion request failed, or the response had no
             choices. An empty choices list is an error, never an empty
             transcription.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "Failed to convert image to markdown",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(NoteScribeError):
    """
    Raised when note store operations fail unexpectedly.

    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
