"""Shared fixtures: an in-memory database, an in-memory blob store, and a scripted extraction provider."""

import json
from collections.abc import Iterator
from io import BytesIO

import pytest
from pypdf import PdfWriter
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from docimport.agents.base import ExtractionProvider, ProviderResult, SourceDocument
from docimport.agents.extraction_agent import ExtractionAgent
from docimport.agents.registry import ProviderRegistry
from docimport.agents.retry import RetryPolicy
from docimport.core.db import Category, KnowledgeEntry, init_db
from docimport.core.settings import Settings
from docimport.services.file_service import FileService
from docimport.services.imports import ImportService
from docimport.workers.job_runner import ImportJobRunner
from docimport.workers.task_queue import TaskQueue

MODEL = "gemini-3.0-flash"


class MemoryBlobStore:
    """Blob backend that keeps files in a dict."""

    def __init__(self) -> None:
        """Start with no files."""
        self.files: dict[str, bytes] = {}

    def upload_fileobj(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """Store bytes under a key."""
        _ = content_type
        self.files[key] = data

    def download_fileobj(self, key: str) -> bytes:
        """Return the bytes stored under a key."""
        return self.files[key]

    def delete_fileobj(self, key: str) -> None:
        """Remove a key."""
        self.files.pop(key, None)

    def presigned_url(self, key: str, expires_in: int) -> str:
        """Return a fake signed URL."""
        return f"https://blobs.test/{key}?expires={expires_in}"


class ScriptedProvider(ExtractionProvider):
    """Provider that replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: list | None = None) -> None:
        """Start with the given responses."""
        self.responses = list(responses or [])
        self.calls: list[SourceDocument] = []
        self.prompts: list[str] = []

    def generate(self, model: str, prompt: str, document: SourceDocument) -> ProviderResult:
        """Return or raise the next scripted response."""
        _ = model
        self.calls.append(document)
        self.prompts.append(prompt)
        if not self.responses:
            msg = "No scripted response left"
            raise AssertionError(msg)
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return response


class RecordingQueue(TaskQueue):
    """Task queue that holds submitted tasks until the test drains them."""

    def __init__(self) -> None:
        """Start with no pending tasks."""
        super().__init__(inline=True)
        self.tasks: list[tuple] = []

    def submit(self, fn, *args) -> None:  # noqa: ANN001, ANN002
        """Record the task instead of running it."""
        self.tasks.append((fn, args))

    def drain(self, reverse: bool = False) -> None:
        """Run every pending task, in submission order or reversed."""
        while self.tasks:
            tasks = list(reversed(self.tasks)) if reverse else list(self.tasks)
            self.tasks.clear()
            for fn, args in tasks:
                fn(*args)


def make_pdf(pages: int) -> bytes:
    """A PDF with the given number of blank pages."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=200, height=200)
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def transactions(count: int, prefix: str = "Compra", valor: float = -10.0) -> list[dict]:
    """Raw model-output transactions with distinct descriptions."""
    return [
        {"data": "05/03/2025", "descricao": f"{prefix} {i}", "valor": valor, "categoria_sugerida_id": 1}
        for i in range(count)
    ]


def provider_result(items: list[dict], tokens_input: int = 1000, tokens_output: int = 200) -> ProviderResult:
    """A provider response whose text is the JSON array of the given items."""
    return ProviderResult(text=json.dumps(items), tokens_input=tokens_input, tokens_output=tokens_output)


@pytest.fixture
def session_factory() -> Iterator[sessionmaker]:
    """Session factory over a fresh in-memory SQLite database with the tables created."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def seeded_session_factory(session_factory: sessionmaker) -> sessionmaker:
    """Database with a few categories and knowledge entries."""
    with session_factory() as session:
        session.add_all(
            [
                Category(id=1, nome="Alimentação", codigo="3.1", tipo="despesa", id_pai=None),
                Category(id=2, nome="Vendas", codigo="1.1", tipo="receita", id_pai=None),
                Category(id=69, nome="Fornecedores", codigo="3.2", tipo="despesa", id_pai=1),
                KnowledgeEntry(type="supplier", content="ACME LTDA"),
                KnowledgeEntry(type="instruction", content="Tarifas bancárias são despesas financeiras"),
            ]
        )
        session.commit()
    return session_factory


@pytest.fixture
def settings() -> Settings:
    """Settings with the default chunking thresholds."""
    return Settings(database_url="sqlite://")


@pytest.fixture
def blob_store() -> MemoryBlobStore:
    """In-memory blob backend."""
    return MemoryBlobStore()


@pytest.fixture
def file_service(blob_store: MemoryBlobStore) -> FileService:
    """File service over the in-memory blob backend."""
    return FileService(blob_store)


@pytest.fixture
def provider() -> ScriptedProvider:
    """Scripted provider with no responses; tests append what they need."""
    return ScriptedProvider()


@pytest.fixture
def sleeps() -> list[float]:
    """Backoff delays requested by the retry policy."""
    return []


@pytest.fixture
def agent(provider: ScriptedProvider, sleeps: list[float]) -> ExtractionAgent:
    """Extraction agent over the scripted provider, with a retry policy that does not wait."""
    registry = ProviderRegistry(default="gemini")
    registry.register("gemini", lambda: provider)
    return ExtractionAgent(registry, RetryPolicy(max_attempts=5, base_delay=2.0, sleep=sleeps.append))


@pytest.fixture
def queue() -> RecordingQueue:
    """Queue that holds worker runs until drained."""
    return RecordingQueue()


@pytest.fixture
def runner(
    seeded_session_factory: sessionmaker,
    file_service: FileService,
    agent: ExtractionAgent,
    queue: RecordingQueue,
    settings: Settings,
) -> ImportJobRunner:
    """Job runner wired to the in-memory collaborators."""
    return ImportJobRunner(seeded_session_factory, file_service, agent, queue, settings)


@pytest.fixture
def imports(seeded_session_factory: sessionmaker, file_service: FileService) -> ImportService:
    """Import job service over the in-memory collaborators."""
    return ImportService(seeded_session_factory, file_service)


@pytest.fixture
def api(
    seeded_session_factory: sessionmaker,
    file_service: FileService,
    agent: ExtractionAgent,
    queue: RecordingQueue,
) -> Iterator[RecordingQueue]:
    """Point the app's dependencies at the in-memory collaborators; yields the queue holding background runs."""
    from docimport.api import dependencies
    from docimport.main import app

    app.dependency_overrides[dependencies.get_session_factory_dep] = lambda: seeded_session_factory
    app.dependency_overrides[dependencies.get_file_service] = lambda: file_service
    app.dependency_overrides[dependencies.get_agent] = lambda: agent
    app.dependency_overrides[dependencies.get_task_queue] = lambda: queue
    yield queue
    app.dependency_overrides.clear()
