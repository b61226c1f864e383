"""Chunk records of large documents and the aggregation of their results."""

from collections import Counter
from collections.abc import Iterable

from pydantic import BaseModel
from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker

from docimport.core.db import ImportChunk
from docimport.core.models import (
    TERMINAL_CHUNK_STATES,
    ChunkProgress,
    ChunkState,
    ChunkStatus,
    ExtractionMetrics,
)
from docimport.core.utils import get_logger, utcnow_iso
from docimport.workers.progress import chunk_progress

logger = get_logger("doc-import.chunks")


class ChunkAggregate(BaseModel):
    """Concatenated drafts and summed metrics of all chunks of a job."""

    drafts: list[dict]
    tokens_input: int
    tokens_output: int
    estimated_cost: float
    low_confidence: bool

    def metrics(self, model: str) -> ExtractionMetrics:
        """Metrics of the aggregate, attributed to a model."""
        return ExtractionMetrics(
            model=model,
            tokens_input=self.tokens_input,
            tokens_output=self.tokens_output,
            estimated_cost=self.estimated_cost,
            low_confidence=self.low_confidence,
        )


def plan_chunks(page_count: int, pages_per_chunk: int) -> list[tuple[int, int]]:
    """Page ranges ``[start, end)`` covering a document, ``pages_per_chunk`` pages at a time."""
    return [
        (start, min(start + pages_per_chunk, page_count)) for start in range(0, page_count, pages_per_chunk)
    ]


def build_aggregate(chunks: Iterable[ImportChunk]) -> ChunkAggregate:
    """Aggregate chunk results in ascending chunk-index order, whatever order they are given in."""
    ordered = sorted(chunks, key=lambda c: c.chunk_index)
    drafts: list[dict] = []
    for chunk in ordered:
        drafts.extend(chunk.result_data or [])
    return ChunkAggregate(
        drafts=drafts,
        tokens_input=sum(c.tokens_input or 0 for c in ordered),
        tokens_output=sum(c.tokens_output or 0 for c in ordered),
        estimated_cost=sum(c.estimated_cost or 0.0 for c in ordered),
        low_confidence=any(c.low_confidence for c in ordered),
    )


class ChunkStore:
    """Creates, updates, and reads the chunk records of import jobs."""

    def __init__(self, session_factory: sessionmaker) -> None:
        """Initialize the store with a session factory."""
        self.session_factory = session_factory

    def create_chunks(self, job_id: str, ranges: list[tuple[int, int]]) -> list[int]:
        """Insert one pending chunk per page range; returns the chunk ids in index order."""
        with self.session_factory() as session:
            rows = [
                ImportChunk(
                    documento_id=job_id,
                    chunk_index=index,
                    total_chunks=len(ranges),
                    page_start=start,
                    page_end=end,
                    status=ChunkState.PENDING.value,
                )
                for index, (start, end) in enumerate(ranges)
            ]
            session.add_all(rows)
            session.commit()
            return [row.id for row in rows]

    def _update(self, chunk_id: int, conditions: tuple, **values: object) -> bool:
        with self.session_factory() as session:
            result = session.execute(
                update(ImportChunk)
                .where(ImportChunk.id == chunk_id, *conditions)
                .values(updated_at=utcnow_iso(), **values)
            )
            session.commit()
            return result.rowcount == 1

    def mark_processing(self, chunk_id: int) -> bool:
        """Move a pending chunk to ``processing``."""
        return self._update(
            chunk_id, (ImportChunk.status == ChunkState.PENDING.value,), status=ChunkState.PROCESSING.value
        )

    def mark_completed(self, chunk_id: int, drafts: list[dict], metrics: ExtractionMetrics) -> bool:
        """Store a chunk's drafts and metrics and mark it ``completed``."""
        return self._update(
            chunk_id,
            (ImportChunk.status.notin_(TERMINAL_CHUNK_STATES),),
            status=ChunkState.COMPLETED.value,
            result_data=drafts,
            tokens_input=metrics.tokens_input,
            tokens_output=metrics.tokens_output,
            estimated_cost=metrics.estimated_cost,
            low_confidence=metrics.low_confidence,
        )

    def mark_error(self, chunk_id: int, message: str) -> bool:
        """Mark a non-terminal chunk as ``error`` with the failure message."""
        return self._update(
            chunk_id,
            (ImportChunk.status.notin_(TERMINAL_CHUNK_STATES),),
            status=ChunkState.ERROR.value,
            error_message=message,
        )

    def list_chunks(self, job_id: str) -> list[ImportChunk]:
        """All chunks of a job, in chunk-index order."""
        with self.session_factory() as session:
            return list(
                session.scalars(
                    select(ImportChunk).where(ImportChunk.documento_id == job_id).order_by(ImportChunk.chunk_index)
                ).all()
            )

    def status_counts(self, job_id: str) -> Counter:
        """Number of chunks of a job in each status."""
        return Counter(chunk.status for chunk in self.list_chunks(job_id))

    def total_for(self, job_id: str) -> int:
        """Declared chunk count of a job, 0 when it has no chunks."""
        chunks = self.list_chunks(job_id)
        return chunks[0].total_chunks if chunks else 0

    def aggregate(self, job_id: str) -> ChunkAggregate:
        """Aggregate the results of every chunk of a job."""
        return build_aggregate(self.list_chunks(job_id))

    def progress(self, job_id: str) -> ChunkProgress:
        """Progress read model of a job's chunks, as shown while they run."""
        chunks = self.list_chunks(job_id)
        counts = Counter(chunk.status for chunk in chunks)
        total = chunks[0].total_chunks if chunks else 0
        completed = counts[ChunkState.COMPLETED.value]
        return ChunkProgress(
            completed=completed,
            failed=counts[ChunkState.ERROR.value],
            total=total,
            progress=chunk_progress(completed, total),
            status_description=f"Processando parte {completed} de {total}...",
            chunks=[
                ChunkStatus(
                    id=c.id,
                    chunk_index=c.chunk_index,
                    total_chunks=c.total_chunks,
                    page_start=c.page_start,
                    page_end=c.page_end,
                    status=c.status,
                    transactions=len(c.result_data or []),
                    error_message=c.error_message,
                )
                for c in chunks
            ],
        )
