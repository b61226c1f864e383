"""FastAPI dependencies for DI (settings, DB sessions, blob store, job runner, services).

Long-lived collaborators (the task queue, the blob store, the provider registry) are built once per process; tests
replace any of them through ``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from docimport.agents.extraction_agent import ExtractionAgent
from docimport.agents.gemini_provider import GeminiProvider
from docimport.agents.groq_provider import GroqProvider
from docimport.agents.registry import ProviderRegistry
from docimport.agents.retry import RetryPolicy
from docimport.core.db import get_session_factory
from docimport.core.settings import Settings, get_settings
from docimport.services.file_service import FileService
from docimport.services.imports import ImportService
from docimport.services.knowledge import KnowledgeBaseService
from docimport.services.ledger import LedgerService
from docimport.services.reconciler import DuplicateReconciler
from docimport.services.s3_file_service import S3FileService
from docimport.workers.job_runner import ImportJobRunner
from docimport.workers.task_queue import TaskQueue


def get_session_factory_dep() -> sessionmaker:
    """Provide the process-wide session factory."""
    return get_session_factory()


@lru_cache
def get_file_service() -> FileService:
    """Provide the S3-backed file service."""
    settings = get_settings()
    return FileService(S3FileService(settings), settings.signed_url_ttl_seconds)


@lru_cache
def get_task_queue() -> TaskQueue:
    """Provide the background task queue."""
    return TaskQueue(max_workers=get_settings().worker_pool_size)


def build_registry(settings: Settings) -> ProviderRegistry:
    """Register the Gemini and Groq providers; clients are created on first use."""
    registry = ProviderRegistry(default="gemini")
    registry.register("gemini", lambda: GeminiProvider(settings.gemini_api_key))
    registry.register("groq", lambda: GroqProvider(settings))
    return registry


@lru_cache
def get_agent() -> ExtractionAgent:
    """Provide an ExtractionAgent instance for dependency injection."""
    settings = get_settings()
    return ExtractionAgent(
        build_registry(settings),
        RetryPolicy(max_attempts=settings.retry_max_attempts, base_delay=settings.retry_base_delay),
    )


def get_job_runner(
    session_factory: sessionmaker = Depends(get_session_factory_dep),
    file_service: FileService = Depends(get_file_service),
    agent: ExtractionAgent = Depends(get_agent),
    queue: TaskQueue = Depends(get_task_queue),
) -> ImportJobRunner:
    """Provide the job runner over the shared collaborators."""
    return ImportJobRunner(session_factory, file_service, agent, queue, get_settings())


def get_import_service(
    session_factory: sessionmaker = Depends(get_session_factory_dep),
    file_service: FileService = Depends(get_file_service),
) -> ImportService:
    """Provide the import job service."""
    return ImportService(session_factory, file_service)


def get_reconciler(session_factory: sessionmaker = Depends(get_session_factory_dep)) -> DuplicateReconciler:
    """Provide the duplicate reconciler."""
    return DuplicateReconciler(session_factory)


def get_ledger_service(
    session_factory: sessionmaker = Depends(get_session_factory_dep),
    reconciler: DuplicateReconciler = Depends(get_reconciler),
) -> LedgerService:
    """Provide the ledger commit service."""
    return LedgerService(session_factory, reconciler, get_settings().fallback_category_id)


def get_knowledge_service(session_factory: sessionmaker = Depends(get_session_factory_dep)) -> KnowledgeBaseService:
    """Provide the knowledge-base service."""
    return KnowledgeBaseService(session_factory)
