"""
NoteScribe Backend — Chat-Completion Transcription Service
===========================================================

What:  Concrete TranscriptionService talking the OpenAI chat-completions
       protocol (Gemini's OpenAI-compatible endpoint by default).
How:   Reads the image, sniffs its MIME type from the bytes, embeds it as a
       base64 data URL next to the fixed instruction, sends one request and
       returns the first choice's message text.
Who:   Built once by create_app(); shared by every request.

Request shape:
    {
        "model": "<settings.ai_model>",
        "messages": [{
            "role": "user",
            "content": [
                {"type": "text", "text": TRANSCRIBE_PROMPT},
                {"type": "image_url", "image_url": {"url": "data:image/png;base64,..."}}
            ]
        }]
    }

Failure modes, all surfaced as one error per request:
    no API key            → TranscriptionError before any file or network I/O
    unreadable image      → FileStorageError
    provider/network error→ TranscriptionError (cause attached)
    empty choices         → TranscriptionError ("no response choices returned")
"""

import base64
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Optional

from openai import AsyncOpenAI, OpenAIError

from notescribe.exceptions import TranscriptionError
from notescribe.services.blob_store import read_blob, sniff_mime_type
from notescribe.services.llm_base import TRANSCRIBE_PROMPT, TranscriptionService

logger = logging.getLogger(__name__)


def build_data_url(content: bytes, mime_type: str) -> str:
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


class OpenAITranscriptionService(TranscriptionService):
    """
    Multimodal chat-completion client for note transcription.

    Args:
        api_key:       provider credential; empty means "not configured"
        base_url:      OpenAI-compatible endpoint root
        model:         model name sent with every request
        client:        pre-built AsyncOpenAI-compatible client (tests pass fakes)
        mime_detector: bytes → MIME type (defaults to libmagic sniffing)
    """

    def __init__(
        self,
        api_key: str,
        base_url: Optional[str],
        model: str,
        client: Optional[Any] = None,
        mime_detector: Callable[[bytes], str] = sniff_mime_type,
    ):
        self.model = model
        self.mime_detector = mime_detector

        if client is None and api_key:
            client = AsyncOpenAI(api_key=api_key, base_url=base_url)
        self._client = client

        if self._client is None:
            logger.warning("OPENAI_API_KEY not set, AI features will not work")
        else:
            logger.info("Transcription service initialized with model=%s", model)

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def transcribe(self, image_path: str) -> str:
        request_id = str(uuid.uuid4())[:8]

        if self._client is None:
            raise TranscriptionError(
                message="Failed to convert image to markdown",
                context={"cause": "OPENAI_API_KEY environment variable not set"},
            )

        content = await read_blob(Path(image_path))

        mime_type = self.mime_detector(content)
        data_url = build_data_url(content, mime_type)

        logger.info(
            "[%s] Transcribing %s (%s, %d bytes) with %s",
            request_id,
            Path(image_path).name,
            mime_type,
            len(content),
            self.model,
        )
        start_time = time.perf_counter()

        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": TRANSCRIBE_PROMPT},
                            {"type": "image_url", "image_url": {"url": data_url}},
                        ],
                    }
                ],
            )
        except OpenAIError as e:
            logger.error("[%s] AI request failed: %s", request_id, str(e))
            raise TranscriptionError(
                message="Failed to convert image to markdown",
                context={"cause": f"ai request failed: {e}", "error_type": type(e).__name__},
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000

        if not response.choices:
            logger.error("[%s] AI response had no choices after %.0fms", request_id, duration_ms)
            raise TranscriptionError(
                message="Failed to convert image to markdown",
                context={"cause": "no response choices returned"},
            )

        markdown = response.choices[0].message.content or ""
        logger.info(
            "[%s] Transcription completed in %.0fms, %d chars",
            request_id,
            duration_ms,
            len(markdown),
        )
        return markdown
