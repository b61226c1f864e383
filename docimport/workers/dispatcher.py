"""Dispatcher: decides whether a document is processed whole or split into page-range chunks."""

from collections.abc import Callable

from docimport.core.exceptions import FileTooLargeError
from docimport.core.models import TriggerRequest
from docimport.core.settings import Settings
from docimport.core.utils import get_logger
from docimport.services.file_service import FileService
from docimport.services.pdf_splitter import count_pages, is_pdf
from docimport.workers.chunks import ChunkStore, plan_chunks
from docimport.workers.progress import ProgressTracker
from docimport.workers.worker import Worker

logger = get_logger("doc-import.dispatcher")


class Dispatcher:
    """Entry point of a new import job."""

    def __init__(
        self,
        file_service: FileService,
        progress: ProgressTracker,
        chunks: ChunkStore,
        worker: Worker,
        invoke_worker: Callable[[TriggerRequest], None],
        settings: Settings,
    ) -> None:
        """Initialize the dispatcher; ``invoke_worker`` schedules one worker run and returns immediately."""
        self.file_service = file_service
        self.progress = progress
        self.chunks = chunks
        self.worker = worker
        self.invoke_worker = invoke_worker
        self.settings = settings

    def large_page_count(self, data: bytes, mime_type: str | None) -> int | None:
        """Page count of a PDF that must be split, or None when the file is processed whole.

        Raises ``FileTooLargeError`` when the page count cannot be read and the file exceeds the size limit.
        """
        if not is_pdf(mime_type, data):
            return None
        try:
            page_count = count_pages(data)
        except Exception as exc:
            size_mb = len(data) / 1024 / 1024
            if len(data) > self.settings.large_file_bytes:
                msg = (
                    f"Arquivo grande ({size_mb:.2f}MB) e não foi possível contar páginas. "
                    f"Divida o arquivo em partes menores (max {self.settings.pages_per_chunk} pgs) ou remova proteção."
                )
                raise FileTooLargeError(msg) from exc
            logger.warning(f"Could not read PDF page count ({exc}); processing {size_mb:.2f}MB file whole")
            return None
        return page_count if page_count > self.settings.pages_per_chunk else None

    def dispatch(self, request: TriggerRequest) -> None:
        """Analyze the file and either process it inline or fan out one worker per chunk."""
        job_id = request.record.id
        model = request.model or self.settings.default_model
        try:
            if not self.progress.start(job_id, 5, "Iniciando análise do arquivo..."):
                logger.warning(f"[Dispatcher] Job {job_id} is missing, finished, or already running; ignoring trigger")
                return
            logger.info(f"[Dispatcher] Analyzing file: {request.record.file_path}")
            data = self.file_service.get_file(request.record.file_path)
            page_count = self.large_page_count(data, request.record.file_type)
            if page_count is None:
                self.worker.process(request.model_copy(update={"mode": "worker", "model": model}))
                return
            self.fan_out(request, page_count, model)
        except Exception as exc:
            logger.exception(f"[Dispatcher] Error processing job {job_id}")
            self.progress.fail(job_id, str(exc))

    def fan_out(self, request: TriggerRequest, page_count: int, model: str) -> None:
        """Create the chunk records of a large PDF and schedule one worker per chunk."""
        job_id = request.record.id
        self.progress.advance(job_id, 15, f"Arquivo grande ({page_count} pgs). Dividindo tarefas...")
        ranges = plan_chunks(page_count, self.settings.pages_per_chunk)
        chunk_ids = self.chunks.create_chunks(job_id, ranges)
        logger.info(f"[Dispatcher] Job {job_id}: {page_count} pages split into {len(ranges)} chunks")
        for chunk_id, (start, end) in zip(chunk_ids, ranges, strict=True):
            self.invoke_worker(
                TriggerRequest(
                    record=request.record,
                    mode="worker",
                    chunk_id=chunk_id,
                    page_start=start,
                    page_end=end,
                    total_chunks=len(ranges),
                    model=model,
                )
            )
        self.progress.advance(job_id, 20, f"Processando {len(ranges)} partes em paralelo...")
