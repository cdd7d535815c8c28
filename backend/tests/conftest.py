"""
Pytest configuration and shared fakes for the course AI tests.

External services (embeddings, vector index, chat completions) are replaced
with small in-memory fakes that record how they were called.
"""

import os
import tempfile
import textwrap
from types import SimpleNamespace

# Settings are read once and cached; point them at test values before any import
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="course_ai_uploads_"))
os.environ.setdefault("OPENAI_API_KEY", "test-key")

import fitz  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from course_ai.core.config import Settings  # noqa: E402
from course_ai.core.database import Base  # noqa: E402
from course_ai.core.errors import not_found_error  # noqa: E402
from course_ai.services.llm.streamer import CompletionStreamer  # noqa: E402
from course_ai.services.rag.embeddings import EmbeddingClient  # noqa: E402
from course_ai.services.rag.vector_store import SearchHit  # noqa: E402
import course_ai.models  # noqa: E402,F401  (registers tables on Base.metadata)


SAMPLE_TEXT = (
    "Lecture 1: Introduction to Databases. A database is an organized collection of data. "
    "Lecture 2: The Relational Model. Relations are sets of tuples with named attributes. "
    "Lecture 3: Normalization. Normal forms remove redundancy and update anomalies. "
)


# ============================================
# Fakes
# ============================================

class FakeEmbeddings:
    """LangChain-style embeddings; texts containing FAIL raise."""

    def __init__(self, fail_marker: str = "FAIL", empty: bool = False, fail_all: bool = False):
        self.fail_marker = fail_marker
        self.empty = empty
        self.fail_all = fail_all
        self.calls: list[str] = []

    async def aembed_query(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.empty:
            return []
        if self.fail_all or (self.fail_marker and self.fail_marker in text):
            raise RuntimeError("embedding service unavailable")
        return [float(len(text)), 1.0, 0.5]


class FakeVectorIndex:
    """In-memory stand-in for VectorIndex that records every call."""

    def __init__(self):
        self.collections: dict[str, list] = {}
        self.calls: list[tuple] = []
        self.fail_upsert = False
        self.fail_delete = False

    async def create_collection(self, name, dimensions):
        self.calls.append(("create_collection", name, dimensions))
        self.collections.setdefault(name, [])

    async def delete_collection(self, name):
        self.calls.append(("delete_collection", name))
        if self.fail_delete:
            raise RuntimeError("delete failed")
        self.collections.pop(name, None)

    async def count(self, name):
        return len(self.collections.get(name, []))

    async def upsert(self, name, points):
        self.calls.append(("upsert", name, len(points)))
        if self.fail_upsert:
            raise RuntimeError("upsert failed")
        self.collections[name].extend(points)

    async def search(self, name, vector, limit=10, where=None, min_score=None):
        self.calls.append(("search", name, limit, where))
        if name not in self.collections:
            raise not_found_error(f"Collection '{name}' not found")
        points = [p for p in self.collections[name] if _matches(p.payload, where)]
        return [SearchHit(score=1.0, payload=dict(p.payload)) for p in points[:limit]]

    async def scroll(self, name, limit=1000, where=None):
        self.calls.append(("scroll", name, limit, where))
        if name not in self.collections:
            raise not_found_error(f"Collection '{name}' not found")
        points = [p for p in self.collections[name] if _matches(p.payload, where)]
        return [dict(p.payload) for p in reversed(points[:limit])]

    def call_names(self) -> list[str]:
        return [call[0] for call in self.calls]


def _matches(payload: dict, where: dict | None) -> bool:
    return not where or all(payload.get(k) == v for k, v in where.items())


class FakeSubjectRepository:
    def __init__(self, embedded: set[str] | None = None):
        self.embedded = set(embedded or ())
        self.handouts: dict[str, str] = {}

    async def has_embeddings(self, code):
        return code in self.embedded

    async def mark_embeddings(self, code, course_id=None):
        self.embedded.add(code)

    async def set_handout_path(self, code, path):
        self.handouts[code] = path


class FakeStream:
    def __init__(self, tokens, error=None):
        self.tokens = tokens
        self.error = error

    def __aiter__(self):
        return self._events()

    async def _events(self):
        for token in self.tokens:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=token))])
        if self.error is not None:
            raise self.error


class FakeCompletions:
    def __init__(self, tokens=(), error=None, create_error=None):
        self.tokens = list(tokens)
        self.error = error
        self.create_error = create_error
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.create_error is not None:
            raise self.create_error
        return FakeStream(self.tokens, self.error)


def fake_openai_client(tokens=(), error=None, create_error=None):
    completions = FakeCompletions(tokens, error, create_error)
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


class RecordingSink:
    def __init__(self, close_after: int | None = None):
        self.tokens: list[str] = []
        self.close_after = close_after

    @property
    def closed(self) -> bool:
        return self.close_after is not None and len(self.tokens) >= self.close_after

    def write(self, token: str) -> None:
        self.tokens.append(token)

    @property
    def text(self) -> str:
        return "".join(self.tokens)


def make_pdf(pages: list[str]) -> bytes:
    """Build a PDF with one page per text, wrapped into short lines."""
    document = fitz.open()
    for text in pages:
        page = document.new_page()
        if text:
            page.insert_text((50, 60), "\n".join(textwrap.wrap(text, 70)), fontsize=10)
    data = document.tobytes()
    document.close()
    return data


# ============================================
# Fixtures
# ============================================

@pytest.fixture
def settings():
    return Settings(
        chunk_size=200,
        chunk_overlap=50,
        embedding_batch_size=3,
        min_text_length=100,
    )


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddings()


@pytest.fixture
def embedding_client(fake_embeddings):
    return EmbeddingClient(fake_embeddings, dimensions=3)


@pytest.fixture
def fake_index():
    return FakeVectorIndex()


@pytest.fixture
def subjects():
    return FakeSubjectRepository()


@pytest.fixture
def sample_pdf():
    return make_pdf([SAMPLE_TEXT * 3, SAMPLE_TEXT * 2])


@pytest.fixture
def streamer_factory():
    def _make(tokens=(), error=None, create_error=None):
        client = fake_openai_client(tokens, error, create_error)
        return CompletionStreamer(client, "test-model")
    return _make


@pytest_asyncio.fixture
async def db_session():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_maker = async_sessionmaker(engine, expire_on_commit=False)
    async with session_maker() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def session_maker_factory():
    """Factory for a fresh in-memory database shared by several sessions."""
    engines = []

    async def _make():
        engine = create_async_engine(
            "sqlite+aiosqlite://",
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
        engines.append(engine)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        return async_sessionmaker(engine, expire_on_commit=False)

    return _make
