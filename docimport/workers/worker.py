"""Worker: extracts one chunk (or a whole file) and aggregates the job when the last chunk settles."""

from docimport.agents.base import SourceDocument
from docimport.agents.extraction_agent import ExtractionAgent
from docimport.core.models import PDF_MIME_TYPE, ChunkState, ExtractionMetrics, TriggerRequest
from docimport.core.settings import Settings
from docimport.core.utils import get_logger
from docimport.services.file_service import FileService
from docimport.services.knowledge import KnowledgeContextLoader
from docimport.services.pdf_splitter import extract_pages, is_pdf, resolve_mime_type
from docimport.workers.chunks import ChunkStore
from docimport.workers.progress import ProgressTracker, chunk_progress

logger = get_logger("doc-import.worker")


class Worker:
    """Processes exactly one chunk, or the whole file when the job was not split."""

    def __init__(
        self,
        file_service: FileService,
        agent: ExtractionAgent,
        context_loader: KnowledgeContextLoader,
        progress: ProgressTracker,
        chunks: ChunkStore,
        settings: Settings,
    ) -> None:
        """Initialize the worker with its collaborators."""
        self.file_service = file_service
        self.agent = agent
        self.context_loader = context_loader
        self.progress = progress
        self.chunks = chunks
        self.settings = settings

    def process(self, request: TriggerRequest) -> None:
        """Run one extraction; failures are recorded on the chunk (chunked mode) or the job."""
        job_id = request.record.id
        chunked = request.chunk_id is not None
        model = request.model or self.settings.default_model
        scope = f"chunk {request.chunk_id} of {job_id}" if chunked else job_id
        logger.info(f"[Worker] Processing {scope} with {model}")
        try:
            if not self._begin(request, chunked):
                logger.warning(f"[Worker] {scope} is already running or finished; ignoring trigger")
                return
            document = self._load_document(request)
            if not chunked:
                self.progress.advance(job_id, 40, "Consultando categorias...")
            context = self.context_loader.load()
            if not chunked:
                self.progress.advance(job_id, 50, "Enviando para IA...")
            result = self.agent.extract(
                model, document, context, on_retry=lambda attempt, total: self._on_retry(job_id, attempt, total)
            )
            drafts = [draft.model_dump(mode="json", by_alias=True) for draft in result.drafts]
            if chunked:
                self._complete_chunk(request, drafts, result.metrics)
            else:
                self.progress.complete(job_id, drafts, result.metrics, f"Concluido! {len(drafts)} transações.")
        except Exception as exc:
            logger.exception(f"[Worker] Error processing {scope}")
            if chunked:
                self.chunks.mark_error(request.chunk_id, str(exc))
                self._finalize_if_settled(job_id, self._total_chunks(request), model)
            else:
                self.progress.fail(job_id, str(exc))

    def _begin(self, request: TriggerRequest, chunked: bool) -> bool:
        """Claim the chunk (pending -> processing) or move the job to processing; False when it is not runnable."""
        if chunked:
            return self.chunks.mark_processing(request.chunk_id)
        return self.progress.start(request.record.id, 25, "Lendo arquivo...")

    def _load_document(self, request: TriggerRequest) -> SourceDocument:
        """Download the file and cut the requested page range out of it."""
        data = self.file_service.get_file(request.record.file_path)
        mime_type = resolve_mime_type(request.record.file_type, data)
        if request.has_page_range and is_pdf(mime_type, data):
            data = extract_pages(data, request.page_start, request.page_end)
            mime_type = PDF_MIME_TYPE
        return SourceDocument(data=data, mime_type=mime_type, file_name=request.record.file_name)

    def _on_retry(self, job_id: str, attempt: int, max_attempts: int) -> None:
        self.progress.describe(job_id, f"Instabilidade na IA. Tentando novamente ({attempt}/{max_attempts})...")

    def _total_chunks(self, request: TriggerRequest) -> int:
        return request.total_chunks or self.chunks.total_for(request.record.id)

    def _complete_chunk(self, request: TriggerRequest, drafts: list[dict], metrics: ExtractionMetrics) -> None:
        job_id = request.record.id
        total = self._total_chunks(request)
        self.chunks.mark_completed(request.chunk_id, drafts, metrics)
        completed = self.chunks.status_counts(job_id)[ChunkState.COMPLETED.value]
        logger.info(
            f"[Worker] Chunk {request.chunk_id} of {job_id} done: {len(drafts)} transactions ({completed}/{total})"
        )
        self.progress.advance(job_id, chunk_progress(completed, total), f"Processando parte {completed} de {total}...")
        self._finalize_if_settled(job_id, total, metrics.model)

    def _finalize_if_settled(self, job_id: str, total: int, model: str) -> None:
        """Aggregate the job once every chunk completed, or fail it once every chunk settled with errors.

        Only the worker that wins the aggregation claim writes the final state.
        """
        counts = self.chunks.status_counts(job_id)
        completed = counts[ChunkState.COMPLETED.value]
        failed = counts[ChunkState.ERROR.value]
        if total <= 0 or completed + failed < total:
            return
        if not self.progress.claim_aggregation(job_id):
            logger.info(f"[Worker] Job {job_id} already finalized by another worker")
            return
        if failed:
            self.progress.fail(job_id, f"{failed} de {total} partes falharam", "Falha em parte do documento")
            return
        aggregate = self.chunks.aggregate(job_id)
        self.progress.complete(
            job_id,
            aggregate.drafts,
            aggregate.metrics(model),
            f"Concluido! {len(aggregate.drafts)} transações (via chunks).",
        )
