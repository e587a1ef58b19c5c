"""
NoteScribe Backend — Blob Store (uploaded image files)
=======================================================

What:  Writes uploaded image bytes under one directory and resolves stored
       filenames back to paths.
How:   The stored name is derived from the upload, never taken from it:
       only the original extension survives.
Who:   Called by NoteService while creating/updating notes and before
       regenerating one.

Naming Schemes (settings.storage_naming):
    size    →  "<declared byte size><original ext>"   e.g. 48213.png
               Two different images with the same size and extension get
               the same name; the later write replaces the earlier file.
    sha256  →  "<sha256 of the bytes><original ext>"
               Identical content shares a file, different content never does.

The store never deletes on its own. `cleanup()` exists for the workflow's
compensation step only.
"""

import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import aiofiles

from notescribe.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

NAMING_SCHEMES = ("size", "sha256")


@dataclass(frozen=True)
class StoredBlob:
    """Result of BlobStore.store()."""
    filename: str
    path: Path
    # False when an existing file with the same name was overwritten
    created: bool


def sniff_mime_type(content: bytes) -> str:
    """
    Detect the MIME type of `content` from its magic bytes.

    Uses libmagic through python-magic; the declared filename and extension
    play no part.
    """
    import magic

    return magic.from_buffer(content, mime=True)


async def read_blob(path: Path) -> bytes:
    """Read a stored image; any OS error becomes FileStorageError."""
    try:
        async with aiofiles.open(path, "rb") as f:
            return await f.read()
    except OSError as e:
        raise FileStorageError(
            message="Failed to read image file",
            context={"filename": path.name, "cause": str(e)},
        ) from e


class BlobStore:
    """
    File-system-backed store for note images.

    Layout:
        <storage_root>/
        ├── 48213.png
        ├── 1203377.jpg
        └── ...

    Flat on purpose: notes store only the filename, and regenerate resolves
    it with `path_for()`.
    """

    def __init__(
        self,
        storage_root: str,
        naming: str = "size",
        max_upload_size: int = 33_554_432,
    ):
        if naming not in NAMING_SCHEMES:
            raise ValueError(f"Unknown storage naming '{naming}'. Must be one of: {NAMING_SCHEMES}")
        self.storage_root = Path(storage_root).resolve()
        self.naming = naming
        self.max_upload_size = max_upload_size
        logger.info(
            "BlobStore initialized with storage_root=%s naming=%s",
            self.storage_root,
            self.naming,
        )

    # ── Validation ────────────────────────────────────────────────────────

    def validate_size(self, declared_size: Optional[int], actual_size: int) -> None:
        """
        Reject empty uploads and uploads above the form cap.

        Both the size the client declared and the bytes actually received are
        checked; either one over the cap is rejected.
        """
        max_mb = self.max_upload_size / (1024 * 1024)

        if actual_size == 0:
            raise ValidationError(
                message="Uploaded image is empty",
                field="image",
            )

        for size in (declared_size, actual_size):
            if size and size > self.max_upload_size:
                raise ValidationError(
                    message=f"Image exceeds the maximum upload size of {max_mb:.0f}MB",
                    field="image",
                    context={"max_size_mb": max_mb, "size": size},
                )

    # ── Naming ────────────────────────────────────────────────────────────

    def filename_for(self, content: bytes, original_filename: str, declared_size: Optional[int]) -> str:
        """
        Derive the stored filename for an upload.

        Only the suffix of the original name is kept (case preserved, empty
        if there is none), so client-supplied names cannot reach outside the
        storage root.
        """
        ext = Path(original_filename or "").suffix
        if self.naming == "sha256":
            return f"{hashlib.sha256(content).hexdigest()}{ext}"
        size = declared_size if declared_size is not None else len(content)
        return f"{size}{ext}"

    def path_for(self, filename: str) -> Path:
        """Resolve a stored filename to its absolute path inside the root."""
        path = (self.storage_root / filename).resolve()
        if path.parent != self.storage_root:
            raise ValidationError(
                message="Invalid image filename",
                field="image",
                context={"filename": filename},
            )
        return path

    def exists(self, filename: str) -> bool:
        try:
            return self.path_for(filename).is_file()
        except ValidationError:
            return False

    # ── I/O ───────────────────────────────────────────────────────────────

    async def store(
        self,
        content: bytes,
        original_filename: str,
        declared_size: Optional[int] = None,
    ) -> StoredBlob:
        """
        Write `content` under its derived name, creating the root if needed.

        Returns:
            StoredBlob with the filename to persist on the note.

        Raises:
            FileStorageError if the directory or file cannot be written.
        """
        filename = self.filename_for(content, original_filename, declared_size)
        path = self.storage_root / filename

        try:
            self.storage_root.mkdir(parents=True, exist_ok=True)
            created = not path.exists()
            async with aiofiles.open(path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store image at %s: %s", path, str(e))
            raise FileStorageError(
                message="Failed to save image",
                context={"filename": filename, "cause": str(e)},
            ) from e

        if not created:
            logger.warning("Image %s already existed and was overwritten", filename)
        logger.info("Image stored: %s (%d bytes)", filename, len(content))
        return StoredBlob(filename=filename, path=path, created=created)

    async def cleanup(self, filename: str) -> None:
        """
        Remove a stored file after a later workflow step failed.

        Best-effort: a missing file is fine and an OS error is only logged.
        """
        try:
            path = self.path_for(filename)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up image: %s", filename)
            else:
                logger.debug("Cleanup: image already gone: %s", filename)
        except (OSError, ValidationError) as e:
            logger.warning("Failed to clean up image %s: %s", filename, str(e))
