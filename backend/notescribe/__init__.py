"""
NoteScribe Backend — Application Package Initializer
=====================================================

What: Turns photos of handwritten or printed notes into Markdown notes.
How:  An uploaded image is written to the blob store, transcribed by a
      multimodal chat-completion model, and saved as a row in `notes`.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (Workflow + Stores)    │  ← blob store, note store, AI client
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Shared handles (engine, blob store, transcription client) are built by
    `create_app()` and injected into routes through FastAPI dependencies.
"""

__version__ = "1.0.0"
