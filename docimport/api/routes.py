"""FastAPI endpoints for the document import API.

This module defines the routes for triggering extraction runs, uploading documents, polling job and chunk progress,
checking drafts for duplicates, committing them to the ledger, and managing the knowledge base that feeds the
extraction prompt.
"""

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from docimport.api.dependencies import (
    get_import_service,
    get_job_runner,
    get_knowledge_service,
    get_ledger_service,
    get_reconciler,
)
from docimport.core.exceptions import ConfirmationError, JobNotFoundError
from docimport.core.models import (
    ChunkProgress,
    CommitSummary,
    ConfirmRequest,
    JobStatus,
    KnowledgeEntryIn,
    KnowledgeEntryOut,
    ModelInfo,
    ReconcileRequest,
    ReconcileResponse,
    TriggerRequest,
)
from docimport.core.pricing import available_models
from docimport.core.settings import get_settings
from docimport.core.utils import get_logger
from docimport.services.imports import ImportService
from docimport.services.knowledge import KnowledgeBaseService
from docimport.services.ledger import LedgerService
from docimport.services.reconciler import DuplicateReconciler, group_repeated_descriptions
from docimport.workers.job_runner import ImportJobRunner

router = APIRouter()
logger = get_logger("doc-import.api")

HTTP_400_BAD_REQUEST = 400


def _not_found(exc: JobNotFoundError) -> HTTPException:
    return HTTPException(404, str(exc))


@router.post(
    "/process-document",
    summary="Trigger a dispatcher or worker run",
    description=(
        "Start processing an import job in the background and return immediately.\n\n"
        "**Body:** `{ record: {id, file_path, file_name, file_type}, mode?, chunkId?, pageStart?, pageEnd?, "
        "totalChunks?, model }`. An absent or `dispatcher` mode starts the initial dispatch; `worker` processes one "
        "declared chunk, or the whole file when no page range is given.\n\n"
        "**Response:**\n"
        "- 200 OK: `{ success: true, status: 'queued' }`.\n"
        "- 400 Bad Request: the payload has no `record.id`."
    ),
    responses={
        200: {
            "description": "Run queued.",
            "content": {
                "application/json": {
                    "example": {
                        "success": True,
                        "status": "queued",
                        "message": "Processamento iniciado em segundo plano.",
                    }
                }
            },
        },
        400: {
            "description": "Missing record.",
            "content": {"application/json": {"example": {"error": "Missing record"}}},
        },
    },
)
async def process_document(request: Request, runner: ImportJobRunner = Depends(get_job_runner)) -> JSONResponse:
    """Validate the trigger payload, queue the run, and acknowledge at once."""
    try:
        body = await request.json()
    except ValueError:
        return JSONResponse({"error": "Invalid JSON body"}, status_code=HTTP_400_BAD_REQUEST)
    record = body.get("record") if isinstance(body, dict) else None
    if not isinstance(record, dict) or not record.get("id"):
        return JSONResponse({"error": "Missing record"}, status_code=HTTP_400_BAD_REQUEST)
    try:
        trigger = TriggerRequest.model_validate(body)
    except ValidationError as exc:
        return JSONResponse({"error": str(exc)}, status_code=HTTP_400_BAD_REQUEST)
    runner.enqueue(trigger)
    return JSONResponse(
        {"success": True, "status": "queued", "message": "Processamento iniciado em segundo plano."}
    )


@router.post(
    "/imports",
    status_code=202,
    summary="Upload a financial document and start extraction",
    description=(
        "Upload a PDF or image of a receipt or statement. The file is stored, a job record is created with status "
        "`pending`, and the dispatcher is queued. Poll `/imports/{id}` for progress."
    ),
    response_description="Job accepted. Returns job_id.",
)
async def upload_document(
    file: UploadFile = File(...),
    user_id: str = Form(...),
    model: str | None = Form(None),
    imports: ImportService = Depends(get_import_service),
    runner: ImportJobRunner = Depends(get_job_runner),
) -> JSONResponse:
    """Store an uploaded document, create its job, and queue the dispatcher."""
    logger.info(f"Received upload request: filename={file.filename}, user={user_id}")
    if not file.filename:
        raise HTTPException(HTTP_400_BAD_REQUEST, "Missing file name")
    data = await file.read()
    if not data:
        raise HTTPException(HTTP_400_BAD_REQUEST, "Empty file")
    record = imports.create_import(user_id, file.filename, file.content_type, data)
    runner.enqueue(TriggerRequest(record=record, model=model or get_settings().default_model))
    return JSONResponse({"job_id": record.id}, status_code=202)


@router.get("/imports", response_model=list[JobStatus], summary="Recent imports of a user")
async def list_imports(user_id: str, imports: ImportService = Depends(get_import_service)) -> list[JobStatus]:
    """List the 20 most recent imports of a user."""
    return imports.list_history(user_id)


@router.get(
    "/imports/{job_id}",
    response_model=JobStatus,
    summary="Get import job status",
    responses={404: {"description": "Job not found."}},
)
async def get_import(job_id: str, imports: ImportService = Depends(get_import_service)) -> JobStatus:
    """Get the progress, status, drafts, and metrics of a job."""
    try:
        return imports.get_status(job_id)
    except JobNotFoundError as exc:
        raise _not_found(exc) from exc


@router.get("/imports/{job_id}/chunks", response_model=ChunkProgress, summary="Chunk progress of a split import")
async def get_import_chunks(
    job_id: str,
    imports: ImportService = Depends(get_import_service),
    runner: ImportJobRunner = Depends(get_job_runner),
) -> ChunkProgress:
    """Get the per-chunk state and the derived progress of a split job."""
    try:
        imports.get_record(job_id)
    except JobNotFoundError as exc:
        raise _not_found(exc) from exc
    return runner.chunks.progress(job_id)


@router.get("/imports/{job_id}/file-url", summary="Signed URL of the uploaded file")
async def get_import_file_url(job_id: str, imports: ImportService = Depends(get_import_service)) -> dict:
    """Get a time-limited URL to download the source document."""
    try:
        return {"url": imports.signed_url(job_id)}
    except JobNotFoundError as exc:
        raise _not_found(exc) from exc


@router.delete("/imports/{job_id}", status_code=204, summary="Delete an import")
async def delete_import(job_id: str, imports: ImportService = Depends(get_import_service)) -> None:
    """Delete a job record and its chunks."""
    try:
        imports.delete_import(job_id)
    except JobNotFoundError as exc:
        raise _not_found(exc) from exc


@router.post(
    "/imports/{job_id}/reconcile",
    response_model=ReconcileResponse,
    response_model_by_alias=True,
    summary="Flag drafts that already exist in the ledger",
)
async def reconcile_import(
    job_id: str,
    body: ReconcileRequest,
    imports: ImportService = Depends(get_import_service),
    reconciler: DuplicateReconciler = Depends(get_reconciler),
) -> ReconcileResponse:
    """Flag probable duplicates among the drafts (the job's stored drafts when none are sent)."""
    try:
        drafts = body.transactions if body.transactions is not None else imports.get_drafts(job_id)
    except JobNotFoundError as exc:
        raise _not_found(exc) from exc
    flagged = reconciler.flag_duplicates(drafts, body.account_id)
    return ReconcileResponse(
        transactions=flagged,
        duplicates=sum(1 for d in flagged if d.is_duplicate and not d.force_keep),
        groups=group_repeated_descriptions(flagged),
    )


@router.post(
    "/imports/{job_id}/confirm",
    response_model=CommitSummary,
    summary="Commit approved drafts to the ledger",
    responses={404: {"description": "Job not found."}, 409: {"description": "Job cannot be confirmed."}},
)
async def confirm_import(
    job_id: str, body: ConfirmRequest, ledger: LedgerService = Depends(get_ledger_service)
) -> CommitSummary:
    """Write the approved drafts to the ledger, skipping unforced duplicates, and confirm the job."""
    try:
        return ledger.confirm_import(job_id, body.transactions, body.account_id, body.user_id)
    except JobNotFoundError as exc:
        raise _not_found(exc) from exc
    except ConfirmationError as exc:
        raise HTTPException(409, str(exc)) from exc


@router.get("/knowledge", response_model=list[KnowledgeEntryOut], summary="List knowledge-base entries")
async def list_knowledge(
    type: str | None = None,  # noqa: A002
    knowledge: KnowledgeBaseService = Depends(get_knowledge_service),
) -> list[KnowledgeEntryOut]:
    """List supplier and instruction entries, optionally of one type."""
    return knowledge.list_entries(type)


@router.post("/knowledge", response_model=KnowledgeEntryOut, status_code=201, summary="Add a knowledge-base entry")
async def add_knowledge(
    entry: KnowledgeEntryIn, knowledge: KnowledgeBaseService = Depends(get_knowledge_service)
) -> KnowledgeEntryOut:
    """Add a supplier name or a standing instruction."""
    return knowledge.add_entry(entry)


@router.delete("/knowledge/{entry_id}", status_code=204, summary="Delete a knowledge-base entry")
async def delete_knowledge(entry_id: int, knowledge: KnowledgeBaseService = Depends(get_knowledge_service)) -> None:
    """Delete a knowledge-base entry."""
    if not knowledge.delete_entry(entry_id):
        raise HTTPException(404, "Knowledge entry not found")


@router.get("/models", response_model=list[ModelInfo], summary="Extraction models and prices")
async def list_models() -> list[ModelInfo]:
    """List the selectable models with their price per million tokens."""
    return available_models()


@router.get(
    "/health",
    summary="Health check",
    description="Simple health check endpoint. Returns status ok.",
    response_description="Status ok.",
    responses={200: {"description": "API is healthy.", "content": {"application/json": {"example": {"status": "ok"}}}}},
)
async def health() -> dict:
    """Health check endpoint."""
    return {"status": "ok"}
