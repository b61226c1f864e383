"""Background job orchestration for document imports.

``ImportJobRunner`` wires the dispatcher and the worker to a task queue. ``enqueue`` is the trigger: it schedules a
run and returns at once; ``run`` routes a trigger payload to the dispatcher or the worker.
"""

from sqlalchemy.orm import sessionmaker

from docimport.agents.extraction_agent import ExtractionAgent
from docimport.core.models import TriggerRequest
from docimport.core.settings import Settings
from docimport.core.utils import get_logger
from docimport.services.file_service import FileService
from docimport.services.knowledge import KnowledgeContextLoader
from docimport.workers.chunks import ChunkStore
from docimport.workers.dispatcher import Dispatcher
from docimport.workers.progress import ProgressTracker
from docimport.workers.task_queue import TaskQueue
from docimport.workers.worker import Worker

logger = get_logger("doc-import.runner")


class ImportJobRunner:
    """ImportJobRunner executes dispatcher and worker runs on a task queue."""

    def __init__(
        self,
        session_factory: sessionmaker,
        file_service: FileService,
        agent: ExtractionAgent,
        queue: TaskQueue,
        settings: Settings,
    ) -> None:
        """Build the progress tracker, chunk store, worker, and dispatcher over shared collaborators."""
        self.queue = queue
        self.progress = ProgressTracker(session_factory)
        self.chunks = ChunkStore(session_factory)
        context_loader = KnowledgeContextLoader(
            session_factory, settings.category_limit, settings.supplier_category_id
        )
        self.worker = Worker(file_service, agent, context_loader, self.progress, self.chunks, settings)
        self.dispatcher = Dispatcher(file_service, self.progress, self.chunks, self.worker, self.enqueue, settings)

    def enqueue(self, request: TriggerRequest) -> None:
        """Schedule a run for a trigger payload and return immediately."""
        logger.info(
            f"Queued {'dispatch' if request.is_dispatch else 'worker'} run for job {request.record.id}"
            + (f" chunk {request.chunk_id}" if request.chunk_id is not None else "")
        )
        self.queue.submit(self.run, request)

    def run(self, request: TriggerRequest) -> None:
        """Route a trigger payload to the dispatcher or the worker."""
        if request.is_dispatch:
            self.dispatcher.dispatch(request)
        else:
            self.worker.process(request)
