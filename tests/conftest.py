"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - fresh_singletons: Resets process-wide registries between tests
    - store: Empty in-memory collection store
    - test_config: Fast streaming, small upload limit
    - async_client: HTTPX client for API testing with dependency overrides
    - test_data_dir: Path to sample PDF files
    - sample_pdf: Bytes of the two-page sample PDF
    - sources: Answer-level sources with ids "1" and "2"
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sse_starlette.sse import AppStatus

from docchat.api import app
from docchat.config import AppConfig, get_app_config
from docchat.models.schemas import Source
from docchat.providers import collections as collections_module
from docchat.providers import factory as factory_module
from docchat.providers.collections import CollectionStore, get_collection_store
from docchat.providers.factory import get_chat_api
from docchat.providers.mock import MockChatApi
from docchat.streaming import registry as registry_module
from docchat.streaming.registry import SessionRegistries


@pytest.fixture(autouse=True)
def fresh_singletons(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give every test its own session registries and stores."""
    monkeypatch.setattr(registry_module, "_session_registries", SessionRegistries())
    monkeypatch.setattr(collections_module, "_collection_store", None)
    monkeypatch.setattr(factory_module, "_chat_api", None)


@pytest.fixture(autouse=True)
def fresh_sse_exit_event(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop sse-starlette's shutdown event, which binds to the first event loop."""
    monkeypatch.setattr(AppStatus, "should_exit_event", None, raising=False)


@pytest.fixture
def store() -> CollectionStore:
    """Return an empty collection store."""
    return CollectionStore()


@pytest.fixture
def test_config() -> AppConfig:
    """Return configuration with near-instant ticks and a 1MB upload limit."""
    return AppConfig(
        api_base_url="http://qa.test",
        use_mock=True,
        stream_speed=0.001,
        max_upload_mb=1,
    )


@pytest.fixture
def test_data_dir() -> Path:
    """Return path to test data directory.

    Returns:
        Absolute path to tests/data/ directory.
    """
    return Path(__file__).parent / "data"


@pytest.fixture
def sample_pdf(test_data_dir: Path) -> bytes:
    """Return a two-page PDF: a termination clause, then an appendix."""
    return (test_data_dir / "sample.pdf").read_bytes()


@pytest.fixture
def sources() -> list[Source]:
    """Return two answer-level sources."""
    return [
        Source(id="1", file_name="a.pdf", file_url="/files/a", page_number=1, snippet="Alpha"),
        Source(id="2", file_name="b.pdf", file_url="/files/b", page_number=3, snippet="Beta"),
    ]


@pytest.fixture
async def async_client(
    store: CollectionStore,
    test_config: AppConfig,
) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    Yields:
        AsyncClient bound to the app, with the mock provider, the test
        store and the test configuration injected.
    """
    app.dependency_overrides[get_collection_store] = lambda: store
    app.dependency_overrides[get_app_config] = lambda: test_config
    app.dependency_overrides[get_chat_api] = lambda: MockChatApi(store=store)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
