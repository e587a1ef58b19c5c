"""
FastAPI dependencies resolving the shared handles that create_app() placed
on `app.state`. Routes never import module-level singletons, so an app built
with fake collaborators is fully isolated.
"""

from fastapi import Request

from notescribe.config import Settings
from notescribe.services.blob_store import BlobStore
from notescribe.services.note_service import NoteService
from notescribe.services.note_store import NoteStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_note_store(request: Request) -> NoteStore:
    return request.app.state.note_store


def get_note_service(request: Request) -> NoteService:
    return request.app.state.note_service
