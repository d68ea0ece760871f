"""Test fixtures for Bookworm."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from bookworm.core.config import Settings  # noqa: E402
from bookworm.core.errors import ServiceError  # noqa: E402
from bookworm.db.documents import DocumentStore  # noqa: E402
from bookworm.db.sqlite import SQLiteDatabase  # noqa: E402
from bookworm.enrichment.pipeline import EnrichmentPipeline  # noqa: E402
from bookworm.ml.schemas import SearchResult  # noqa: E402
from bookworm.utils.hashing import sha256_text  # noqa: E402

ALWAYS = 10**9


class FakeMLClient:
    """In-memory stand-in for the ML service with scripted failures."""

    def __init__(
        self,
        embedding: list[float] | None = None,
        embed_failures: int = 0,
        index_failures: int = 0,
    ) -> None:
        self.embedding = embedding if embedding is not None else [0.1, 0.2]
        self.embed_failures = embed_failures
        self.index_failures = index_failures
        self.embed_calls: list[str] = []
        self.index_calls: list[tuple[str, dict]] = []
        self.embed_gate: asyncio.Event | None = None
        self.search_results: list[SearchResult] = []
        self.closed = False

    async def embed(self, text: str) -> list[float]:
        self.embed_calls.append(text)
        if self.embed_gate is not None:
            await self.embed_gate.wait()
        if len(self.embed_calls) <= self.embed_failures:
            raise ServiceError(f"embed failure {len(self.embed_calls)}")
        return list(self.embedding)

    async def index_add(self, document_id: str, text: str, metadata: dict) -> bool:
        self.index_calls.append((document_id, dict(metadata)))
        if len(self.index_calls) <= self.index_failures:
            raise ServiceError(f"index failure {len(self.index_calls)}")
        return True

    async def search(self, query_text: str, k: int = 5, exclude_id: str | None = None) -> list[SearchResult]:
        return [hit for hit in self.search_results if hit.book_id != exclude_id][:k]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def reset_state(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset global singletons and environment between tests."""
    monkeypatch.setenv("BKW_DB_PATH", str(tmp_path / "bookworm.db"))
    monkeypatch.setenv("BKW_ML_RETRY_DELAY", "0")
    monkeypatch.setenv("BKW_ML_RETRY_MAX_DELAY", "0")
    monkeypatch.delenv("BKW_CONFIG", raising=False)

    from bookworm.api import dependencies as deps
    from bookworm.core.config import get_settings

    def _clear() -> None:
        get_settings.cache_clear()
        deps.get_app_settings.cache_clear()
        deps._DB = None
        deps._STORE = None
        deps._ML_CLIENT = None
        deps._PIPELINE = None
        deps._INGEST_SERVICE = None

    _clear()
    yield
    _clear()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        db_path=tmp_path / "store.db",
        ml_retry_delay=0.0,
        ml_retry_max_delay=0.0,
        auto_enqueue=False,
    )


@pytest.fixture
def database(settings: Settings) -> SQLiteDatabase:
    db = SQLiteDatabase(settings.db_path)
    db.ensure_schema()
    yield db
    db.close()


@pytest.fixture
def store(database: SQLiteDatabase) -> DocumentStore:
    return DocumentStore(database)


@pytest.fixture
def fake_ml() -> FakeMLClient:
    return FakeMLClient()


@pytest.fixture
def sleeps() -> list[float]:
    return []


@pytest.fixture
def pipeline(store: DocumentStore, fake_ml: FakeMLClient, settings: Settings, sleeps: list[float]) -> EnrichmentPipeline:
    async def record_sleep(delay: float) -> None:
        sleeps.append(delay)

    return EnrichmentPipeline(store=store, ml_client=fake_ml, settings=settings, sleep=record_sleep)


@pytest.fixture
def make_book(store: DocumentStore):
    counter = {"n": 0}

    def _make(text: str | None = None, **kwargs):
        counter["n"] += 1
        body = text if text is not None else f"Sample book number {counter['n']} about dragons"
        return store.create(
            title=kwargs.pop("title", f"Book {counter['n']}"),
            author=kwargs.pop("author", "Ann Author"),
            text=body,
            sha256=sha256_text(f"{counter['n']}:{body}"),
            **kwargs,
        )

    return _make


@pytest.fixture(scope="session")
def sample_text() -> str:
    return "The dragon slept. The dragon woke!\n\nA knight, a dragon, and the castle."
