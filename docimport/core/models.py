"""Pydantic models for the document import service.

This module defines the transaction draft extracted by the language model, the trigger payload that starts a
dispatcher or worker run, and the request/response models used by the HTTP API.
"""

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

PDF_MIME_TYPE = "application/pdf"


class JobState(str, Enum):
    """Processing status of an import job."""

    PENDING = "pending"
    PROCESSING = "processing"
    AGGREGATING = "aggregating"
    COMPLETED = "completed"
    ERROR = "error"


class ChunkState(str, Enum):
    """Processing status of a page-range chunk."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


class ConfirmationState(str, Enum):
    """Whether the drafts of a job were committed to the ledger."""

    PENDING = "pendente"
    CONFIRMED = "confirmado"


TERMINAL_JOB_STATES = (JobState.COMPLETED.value, JobState.ERROR.value)
TERMINAL_CHUNK_STATES = (ChunkState.COMPLETED.value, ChunkState.ERROR.value)


class TransactionDraft(BaseModel):
    """A transaction extracted from a document and not yet committed to the ledger.

    The sign of ``valor`` is the direction of the flow: negative for expenses, positive for revenue. ``tipo`` is
    carried alongside it and is kept in agreement with the sign.
    """

    model_config = ConfigDict(populate_by_name=True)

    data: str
    descricao: str = ""
    valor: float = Field(allow_inf_nan=False)
    tipo: Literal["receita", "despesa"] | None = None
    categoria_sugerida_id: int | None = None
    categoria_nome: str | None = None
    is_duplicate: bool = Field(default=False, alias="isDuplicate")
    duplicate_id: int | None = Field(default=None, alias="duplicateId")
    force_keep: bool = Field(default=False, alias="forceKeep")

    @field_validator("data", mode="before")
    @classmethod
    def _normalize_date(cls, value: object) -> object:
        """Rewrite ISO dates (YYYY-MM-DD) into the DD/MM/YYYY format used by drafts."""
        if isinstance(value, str):
            value = value.strip()
            try:
                parsed = datetime.strptime(value[:10], "%Y-%m-%d")
            except ValueError:
                return value
            return parsed.strftime("%d/%m/%Y")
        return value

    @field_validator("descricao", mode="before")
    @classmethod
    def _none_description(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("tipo", mode="before")
    @classmethod
    def _lower_tipo(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @model_validator(mode="after")
    def _align_sign_with_type(self) -> "TransactionDraft":
        """Derive ``tipo`` from the sign when absent, otherwise make the sign agree with it."""
        if self.tipo is None:
            self.tipo = "despesa" if self.valor < 0 else "receita"
        elif self.tipo == "despesa" and self.valor > 0:
            self.valor = -self.valor
        elif self.tipo == "receita" and self.valor < 0:
            self.valor = abs(self.valor)
        return self


class RecordRef(BaseModel):
    """The job record fields a trigger payload carries."""

    id: str
    file_path: str = ""
    file_name: str = ""
    file_type: str | None = None


class TriggerRequest(BaseModel):
    """Payload that starts a dispatcher run or a single worker run."""

    model_config = ConfigDict(populate_by_name=True)

    record: RecordRef
    mode: Literal["dispatcher", "worker"] | None = None
    chunk_id: int | None = Field(default=None, alias="chunkId")
    page_start: int | None = Field(default=None, alias="pageStart")
    page_end: int | None = Field(default=None, alias="pageEnd")
    total_chunks: int | None = Field(default=None, alias="totalChunks")
    model: str | None = None

    @property
    def is_dispatch(self) -> bool:
        """Whether this payload asks for the initial dispatch."""
        return self.mode in (None, "dispatcher")

    @property
    def has_page_range(self) -> bool:
        """Whether this payload declares a page range."""
        return self.page_start is not None and self.page_end is not None


class ExtractionMetrics(BaseModel):
    """Token usage and estimated cost of one or more extraction calls."""

    model: str
    tokens_input: int = 0
    tokens_output: int = 0
    estimated_cost: float = 0.0
    low_confidence: bool = False


class JobStatus(BaseModel):
    """Read model of an import job, as polled by the UI."""

    id: str
    user_id: str | None = None
    file_name: str
    file_type: str | None = None
    status: str
    progress: int
    status_description: str | None = None
    result_data: list[dict] | None = None
    model_used: str | None = None
    tokens_input: int = 0
    tokens_output: int = 0
    estimated_cost: float = 0.0
    low_confidence: bool = False
    status_confirmacao: str
    error_message: str | None = None
    created_at: str
    updated_at: str


class ChunkStatus(BaseModel):
    """Read model of one chunk of an import job."""

    id: int
    chunk_index: int
    total_chunks: int
    page_start: int
    page_end: int
    status: str
    transactions: int = 0
    error_message: str | None = None


class ChunkProgress(BaseModel):
    """Aggregate progress of the chunks of an import job."""

    completed: int
    failed: int
    total: int
    progress: int
    status_description: str
    chunks: list[ChunkStatus]


class DescriptionGroup(BaseModel):
    """Drafts that share a normalized description."""

    description: str
    count: int
    indices: list[int]


class ReconcileRequest(BaseModel):
    """Drafts to check against the ledger of one account."""

    account_id: int | None = None
    transactions: list[TransactionDraft] | None = None


class ReconcileResponse(BaseModel):
    """Drafts with duplicate flags and repeated-description groups."""

    transactions: list[TransactionDraft]
    duplicates: int
    groups: list[DescriptionGroup]


class ConfirmRequest(BaseModel):
    """Approved drafts to commit to the ledger."""

    account_id: int
    user_id: int
    transactions: list[TransactionDraft]


class CommitSummary(BaseModel):
    """Outcome of committing drafts to the ledger."""

    imported: int
    skipped: int


class KnowledgeEntryIn(BaseModel):
    """A knowledge-base entry to create."""

    type: Literal["supplier", "instruction"]
    content: str = Field(min_length=1)


class KnowledgeEntryOut(KnowledgeEntryIn):
    """A stored knowledge-base entry."""

    id: int
    created_at: str


class ModelInfo(BaseModel):
    """A selectable extraction model and its price per million tokens."""

    id: str
    provider: str
    input_price: float
    output_price: float
