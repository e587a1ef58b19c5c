"""
NoteScribe Backend — Abstract Transcription Service Interface
==============================================================

What:  Abstract base class for image → Markdown transcription providers.
How:   Concrete implementations inherit from TranscriptionService and
       implement transcribe().
Who:   Called by NoteService for add, update and regenerate.
When:  After the image is in the blob store, before the note row is written.
"""

from abc import ABC, abstractmethod


# Sent verbatim with every image
TRANSCRIBE_PROMPT = (
    "Transcribe this image of notes into clean Markdown. "
    "Use headers, bullet points, and code blocks to match the visual structure."
)


class TranscriptionService(ABC):
    """
    Abstract interface for AI-powered Markdown transcription of note images.

    Contract:
        - transcribe() takes the path of a stored image and returns Markdown
        - exactly one provider request per call; no retries
        - provider failures are wrapped in TranscriptionError
    """

    @abstractmethod
    async def transcribe(self, image_path: str) -> str:
        """
        Transcribe a note image into Markdown.

        Args:
            image_path: Absolute path to the image file on disk.

        Returns:
            str: The text of the first response choice. May be empty; never None.

        Raises:
            TranscriptionError: not configured, request failed, or the
                provider returned no choices.
            FileStorageError: the image could not be read.
        """
        ...

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """True when a credential is available and calls can be attempted."""
        ...
