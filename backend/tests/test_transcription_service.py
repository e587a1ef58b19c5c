"""
NoteScribe Backend — Transcription Service Unit Tests
=======================================================

The AsyncOpenAI client is replaced by the `ai_client` fixture; no network.

What we test:
    ✅ Request shape: model, fixed instruction, inline base64 data URL
    ✅ First choice's content is returned unchanged
    ✅ Empty choices → TranscriptionError, never an empty string
    ✅ Provider errors → TranscriptionError with the cause attached
    ✅ No credential → fails before reading the file or calling out
"""

import base64
from unittest.mock import AsyncMock

import httpx
import pytest
from openai import APIConnectionError

from notescribe.exceptions import FileStorageError, TranscriptionError
from notescribe.services.llm_base import TRANSCRIBE_PROMPT
from notescribe.services.transcription_service import (
    OpenAITranscriptionService,
    build_data_url,
)

from conftest import STUB_MARKDOWN, make_completion


@pytest.fixture
def image_file(tmp_path, sample_png_bytes):
    path = tmp_path / "10.png"
    path.write_bytes(sample_png_bytes)
    return path


def test_build_data_url():
    assert build_data_url(b"hi", "image/png") == "data:image/png;base64,aGk="


class TestTranscribe:

    @pytest.mark.asyncio
    async def test_returns_first_choice(self, transcriber, image_file):
        assert await transcriber.transcribe(str(image_file)) == STUB_MARKDOWN

    @pytest.mark.asyncio
    async def test_request_shape(self, transcriber, ai_client, image_file, sample_png_bytes):
        await transcriber.transcribe(str(image_file))

        ai_client.chat.completions.create.assert_awaited_once()
        kwargs = ai_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"

        (message,) = kwargs["messages"]
        assert message["role"] == "user"
        text_part, image_part = message["content"]
        assert text_part == {"type": "text", "text": TRANSCRIBE_PROMPT}
        assert image_part["type"] == "image_url"

        expected = "data:image/png;base64," + base64.b64encode(sample_png_bytes).decode("ascii")
        assert image_part["image_url"]["url"] == expected

    @pytest.mark.asyncio
    async def test_mime_type_comes_from_detector(self, ai_client, image_file):
        """The .png filename plays no part; the detector decides."""
        service = OpenAITranscriptionService(
            api_key="k",
            base_url=None,
            model="m",
            client=ai_client,
            mime_detector=lambda content: "image/jpeg",
        )
        await service.transcribe(str(image_file))

        url = ai_client.chat.completions.create.await_args.kwargs["messages"][0]["content"][1]["image_url"]["url"]
        assert url.startswith("data:image/jpeg;base64,")

    @pytest.mark.asyncio
    async def test_only_first_of_several_choices(self, transcriber, ai_client, image_file):
        ai_client.chat.completions.create.return_value = make_completion("first", "second")
        assert await transcriber.transcribe(str(image_file)) == "first"

    @pytest.mark.asyncio
    async def test_none_content_is_empty_string(self, transcriber, ai_client, image_file):
        ai_client.chat.completions.create.return_value = make_completion(None)
        assert await transcriber.transcribe(str(image_file)) == ""

    @pytest.mark.asyncio
    async def test_empty_choices_is_an_error(self, transcriber, ai_client, image_file):
        ai_client.chat.completions.create.return_value = make_completion()

        with pytest.raises(TranscriptionError) as exc_info:
            await transcriber.transcribe(str(image_file))

        assert exc_info.value.context["cause"] == "no response choices returned"

    @pytest.mark.asyncio
    async def test_provider_error_wrapped(self, transcriber, ai_client, image_file):
        request = httpx.Request("POST", "http://ai.invalid/v1/chat/completions")
        ai_client.chat.completions.create.side_effect = APIConnectionError(request=request)

        with pytest.raises(TranscriptionError) as exc_info:
            await transcriber.transcribe(str(image_file))

        assert exc_info.value.context["cause"].startswith("ai request failed:")
        assert exc_info.value.context["error_type"] == "APIConnectionError"

    @pytest.mark.asyncio
    async def test_missing_image_file(self, transcriber, ai_client, tmp_path):
        with pytest.raises(FileStorageError):
            await transcriber.transcribe(str(tmp_path / "gone.png"))
        ai_client.chat.completions.create.assert_not_awaited()


class TestNotConfigured:

    def test_is_configured(self, transcriber):
        assert transcriber.is_configured is True

    @pytest.mark.asyncio
    async def test_no_key_fails_before_any_io(self, tmp_path):
        detector = AsyncMock()
        service = OpenAITranscriptionService(
            api_key="",
            base_url="http://ai.invalid/v1/",
            model="m",
            mime_detector=detector,
        )

        assert service.is_configured is False
        with pytest.raises(TranscriptionError) as exc_info:
            # The file does not exist: a read attempt would raise FileStorageError
            await service.transcribe(str(tmp_path / "missing.png"))

        assert "OPENAI_API_KEY" in exc_info.value.context["cause"]
        detector.assert_not_called()

    def test_key_builds_real_client(self):
        service = OpenAITranscriptionService(
            api_key="sk-test",
            base_url="http://ai.invalid/v1/",
            model="m",
        )
        assert service.is_configured is True
