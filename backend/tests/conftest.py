"""
NoteScribe Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all
       tests in this directory.

Fixture Hierarchy (all function-scoped):
    ├── engine / db_session: real SQLite file in tmp_path via aiosqlite
    ├── blob_store: BlobStore rooted in tmp_path
    ├── ai_client: fake AsyncOpenAI client (AsyncMock create())
    ├── transcriber: OpenAITranscriptionService over the fake client
    ├── app / test_client: full app, driven through httpx ASGITransport
    └── sample_png_bytes: a tiny PNG

ASGITransport does not run the lifespan, so the schema is created by the
`engine` fixture directly.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from notescribe.config import Settings
from notescribe.database import (
    create_engine,
    create_session_factory,
    dispose_engine,
    init_models,
)
from notescribe.services.blob_store import BlobStore
from notescribe.services.transcription_service import OpenAITranscriptionService

STUB_MARKDOWN = "# Shopping\n- milk\n- eggs"


def make_completion(*contents):
    """Chat-completion response with one choice per content string."""
    return SimpleNamespace(
        choices=[
            SimpleNamespace(message=SimpleNamespace(content=content))
            for content in contents
        ]
    )


# ══════════════════════════════════════════════════════════════════════════
# Storage
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def storage_root(tmp_path):
    root = tmp_path / "images"
    root.mkdir()
    return root


@pytest.fixture
def blob_store(storage_root):
    return BlobStore(storage_root=str(storage_root))


@pytest.fixture
def sample_png_bytes():
    """PNG signature plus an IHDR chunk header; enough for MIME sniffing."""
    return b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01"


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'notes.db'}"


@pytest_asyncio.fixture
async def engine(database_url):
    engine = create_engine(database_url)
    await init_models(engine)
    yield engine
    await dispose_engine(engine)


@pytest_asyncio.fixture
async def db_session(engine):
    session_factory = create_session_factory(engine)
    async with session_factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Transcription
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def ai_client():
    """
    Stand-in for AsyncOpenAI: only `chat.completions.create` is used.

    Tests change the outcome through `ai_client.chat.completions.create`
    (return_value / side_effect).
    """
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=make_completion(STUB_MARKDOWN))
    return client


@pytest.fixture
def transcriber(ai_client):
    return OpenAITranscriptionService(
        api_key="test-key-not-real",
        base_url="http://ai.invalid/v1/",
        model="test-model",
        client=ai_client,
        mime_detector=lambda content: "image/png",
    )


# ══════════════════════════════════════════════════════════════════════════
# Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def test_settings(database_url, storage_root):
    return Settings(
        database_url=database_url,
        openai_api_key="test-key-not-real",
        storage_root=str(storage_root),
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def app(test_settings, transcriber):
    from notescribe.main import create_app

    app = create_app(test_settings, transcriber=transcriber)
    await init_models(app.state.engine)
    yield app
    await dispose_engine(app.state.engine)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to the app in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
