"""Import job records: creation on upload, status reads, history, and deletion."""

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from docimport.core.db import ImportDocument
from docimport.core.exceptions import JobNotFoundError
from docimport.core.models import (
    ConfirmationState,
    JobState,
    JobStatus,
    RecordRef,
    TransactionDraft,
)
from docimport.core.utils import get_logger
from docimport.services.file_service import FileService, upload_key

logger = get_logger("doc-import.imports")

HISTORY_LIMIT = 20


def to_status(row: ImportDocument) -> JobStatus:
    """Read model of a job row."""
    return JobStatus(
        id=row.id,
        user_id=row.user_id,
        file_name=row.file_name,
        file_type=row.file_type,
        status=row.status,
        progress=row.progress,
        status_description=row.status_description,
        result_data=row.result_data,
        model_used=row.model_used,
        tokens_input=row.tokens_input or 0,
        tokens_output=row.tokens_output or 0,
        estimated_cost=row.estimated_cost or 0.0,
        low_confidence=bool(row.low_confidence),
        status_confirmacao=row.status_confirmacao,
        error_message=row.error_message,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


class ImportService:
    """Creates and reads import job records."""

    def __init__(self, session_factory: sessionmaker, file_service: FileService) -> None:
        """Initialize the service with a session factory and the blob store."""
        self.session_factory = session_factory
        self.file_service = file_service

    def create_import(self, user_id: str, file_name: str, file_type: str | None, data: bytes) -> RecordRef:
        """Upload a file to the blob store and create its pending job record."""
        key = upload_key(user_id, file_name)
        self.file_service.save_file(key, data, file_type)
        with self.session_factory() as session:
            row = ImportDocument(
                user_id=user_id,
                file_path=key,
                file_name=file_name,
                file_type=file_type,
                status=JobState.PENDING.value,
                progress=10,
                status_description="Arquivo enviado. Fila de processamento...",
                status_confirmacao=ConfirmationState.PENDING.value,
            )
            session.add(row)
            session.commit()
            logger.info(f"Created import {row.id} for {file_name} ({len(data)} bytes) at {key}")
            return RecordRef(id=row.id, file_path=row.file_path, file_name=row.file_name, file_type=row.file_type)

    def _get_row(self, session: Session, job_id: str) -> ImportDocument:
        row = session.get(ImportDocument, job_id)
        if row is None:
            msg = f"Import job {job_id} not found"
            raise JobNotFoundError(msg)
        return row

    def get_status(self, job_id: str) -> JobStatus:
        """Current state of a job."""
        with self.session_factory() as session:
            return to_status(self._get_row(session, job_id))

    def get_record(self, job_id: str) -> RecordRef:
        """Trigger-payload view of a job."""
        with self.session_factory() as session:
            row = self._get_row(session, job_id)
            return RecordRef(id=row.id, file_path=row.file_path, file_name=row.file_name, file_type=row.file_type)

    def get_drafts(self, job_id: str) -> list[TransactionDraft]:
        """Drafts stored on a job, empty until it completes."""
        status = self.get_status(job_id)
        return [TransactionDraft.model_validate(item) for item in status.result_data or []]

    def list_history(self, user_id: str, limit: int = HISTORY_LIMIT) -> list[JobStatus]:
        """Most recent jobs of a user, newest first."""
        with self.session_factory() as session:
            rows = session.scalars(
                select(ImportDocument)
                .where(ImportDocument.user_id == user_id)
                .order_by(ImportDocument.created_at.desc())
                .limit(limit)
            ).all()
            return [to_status(row) for row in rows]

    def signed_url(self, job_id: str) -> str:
        """Time-limited URL to download the source file of a job."""
        return self.file_service.signed_url(self.get_record(job_id).file_path)

    def delete_import(self, job_id: str) -> None:
        """Delete a job record, its chunks, and its source file."""
        with self.session_factory() as session:
            row = self._get_row(session, job_id)
            file_path = row.file_path
            session.delete(row)
            session.commit()
        self.file_service.delete_file(file_path)
        logger.info(f"Deleted import {job_id}")
