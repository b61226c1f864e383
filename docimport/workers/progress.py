"""Progress tracking for import jobs.

Every change to a job's progress, status text, or processing status goes through ``ProgressTracker``. Updates are
single-row conditional statements keyed by id: progress never decreases while a job is processing, terminal jobs
(``completed``/``error``) are never modified, and the ``processing -> aggregating`` claim succeeds for exactly one
caller.
"""

import math

from sqlalchemy import and_, or_, update
from sqlalchemy.orm import sessionmaker

from docimport.core.db import ImportDocument
from docimport.core.models import TERMINAL_JOB_STATES, ExtractionMetrics, JobState
from docimport.core.utils import get_logger, utcnow_iso

logger = get_logger("doc-import.progress")

CHUNKS_BASE_PROGRESS = 20
CHUNKS_PROGRESS_SPAN = 70
FAILURE_DESCRIPTION = "Erro no processamento background"


def chunk_progress(completed: int, total: int) -> int:
    """Job progress while chunks run: 20% after dispatch plus up to 70% for completed chunks."""
    if total <= 0:
        return CHUNKS_BASE_PROGRESS
    return CHUNKS_BASE_PROGRESS + math.floor(completed / total * CHUNKS_PROGRESS_SPAN + 0.5)


class ProgressTracker:
    """Single mutation point for the progress and status of import jobs."""

    def __init__(self, session_factory: sessionmaker) -> None:
        """Initialize the tracker with a session factory."""
        self.session_factory = session_factory

    def _update(self, job_id: str, conditions: tuple, **values: object) -> bool:
        with self.session_factory() as session:
            result = session.execute(
                update(ImportDocument)
                .where(ImportDocument.id == job_id, *conditions)
                .values(updated_at=utcnow_iso(), **values)
            )
            session.commit()
            return result.rowcount == 1

    def start(self, job_id: str, progress: int, description: str) -> bool:
        """Move a pending job to ``processing``, or raise the progress of a processing one.

        Returns False for terminal jobs and for processing jobs already past ``progress``.
        """
        started = self._update(
            job_id,
            (
                or_(
                    ImportDocument.status == JobState.PENDING.value,
                    and_(ImportDocument.status == JobState.PROCESSING.value, ImportDocument.progress <= progress),
                ),
            ),
            status=JobState.PROCESSING.value,
            progress=progress,
            status_description=description,
            error_message=None,
        )
        if started:
            logger.info(f"[Progress] {job_id}: {progress}% processing - {description}")
        return started

    def advance(self, job_id: str, progress: int, description: str) -> bool:
        """Raise the progress of a processing job; lower values are ignored."""
        updated = self._update(
            job_id,
            (ImportDocument.status == JobState.PROCESSING.value, ImportDocument.progress <= progress),
            progress=progress,
            status_description=description,
        )
        if updated:
            logger.info(f"[Progress] {job_id}: {progress}% - {description}")
        return updated

    def describe(self, job_id: str, description: str) -> bool:
        """Change the status text of a processing job without touching its progress."""
        logger.info(f"[Progress] {job_id}: {description}")
        return self._update(
            job_id,
            (ImportDocument.status == JobState.PROCESSING.value,),
            status_description=description,
        )

    def claim_aggregation(self, job_id: str) -> bool:
        """Atomically move a job from ``processing`` to ``aggregating``; True only for the caller that did."""
        claimed = self._update(
            job_id,
            (ImportDocument.status == JobState.PROCESSING.value,),
            status=JobState.AGGREGATING.value,
        )
        logger.info(f"[Progress] {job_id}: aggregation claim {'won' if claimed else 'lost'}")
        return claimed

    def complete(self, job_id: str, drafts: list[dict], metrics: ExtractionMetrics, description: str) -> bool:
        """Store the final drafts and metrics and mark the job ``completed`` at 100%."""
        logger.info(f"[Progress] {job_id}: 100% completed - {description}")
        return self._update(
            job_id,
            (ImportDocument.status.in_((JobState.PROCESSING.value, JobState.AGGREGATING.value)),),
            status=JobState.COMPLETED.value,
            progress=100,
            status_description=description,
            result_data=drafts,
            model_used=metrics.model,
            tokens_input=metrics.tokens_input,
            tokens_output=metrics.tokens_output,
            estimated_cost=metrics.estimated_cost,
            low_confidence=metrics.low_confidence,
            error_message=None,
        )

    def fail(self, job_id: str, message: str, description: str = FAILURE_DESCRIPTION) -> bool:
        """Mark a non-terminal job as ``error`` with progress 0 and the failure message."""
        logger.error(f"[Progress] {job_id}: error - {message}")
        return self._update(
            job_id,
            (ImportDocument.status.notin_(TERMINAL_JOB_STATES),),
            status=JobState.ERROR.value,
            progress=0,
            status_description=description,
            error_message=message,
        )
