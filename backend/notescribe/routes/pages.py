"""
NoteScribe Backend — Page & Asset Routes
==========================================

What:  The single-page upload UI, its static assets, and stored images.
How:   `/` renders templates/index.html; `/static/{file}` and
       `/images/{file}` resolve one path segment inside their root and
       return the file, or 404.
Who:   Browsers.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse, HTMLResponse

from notescribe.config import Settings
from notescribe.dependencies import get_blob_store, get_settings
from notescribe.exceptions import NotFoundError, ValidationError
from notescribe.services.blob_store import BlobStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Pages"], include_in_schema=False)

STATIC_BASE_PLACEHOLDER = "__STATIC_BASE__"


def _render_index_html(templates_root: str, static_base: str = "/static") -> str:
    template = Path(templates_root) / "index.html"
    try:
        html = template.read_text(encoding="utf-8")
    except OSError:
        logger.error("Index template missing at %s", template)
        raise NotFoundError(resource="page", resource_id="index.html")
    return html.replace(STATIC_BASE_PLACEHOLDER, static_base)


def _resolve_inside(root: str, name: str) -> Path:
    """`root/name` if it is an existing file directly inside root, else 404."""
    root_path = Path(root).resolve()
    path = (root_path / name).resolve()
    if path.parent != root_path or not path.is_file():
        raise NotFoundError(resource="file", resource_id=name)
    return path


@router.get("/", response_class=HTMLResponse)
async def index(app_settings: Settings = Depends(get_settings)) -> HTMLResponse:
    return HTMLResponse(_render_index_html(app_settings.templates_root))


@router.get("/static/{file}")
async def serve_static(file: str, app_settings: Settings = Depends(get_settings)) -> FileResponse:
    logger.debug("got /static/%s request", file)
    return FileResponse(path=str(_resolve_inside(app_settings.static_root, file)))


@router.get("/images/{file}")
async def serve_image(file: str, blob_store: BlobStore = Depends(get_blob_store)) -> FileResponse:
    """
    Serve a stored note image.

    Stored names may be overwritten by a later upload (size naming), so
    responses are not marked cacheable.
    """
    try:
        path = blob_store.path_for(file)
    except ValidationError:
        raise NotFoundError(resource="image", resource_id=file, message="Image file not found")
    if not path.is_file():
        raise NotFoundError(resource="image", resource_id=file, message="Image file not found")
    return FileResponse(path=str(path), headers={"Cache-Control": "no-cache"})
