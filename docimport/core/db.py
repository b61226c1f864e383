"""DB models and session helpers for the document import service.

Table names follow the schema the import UI reads from, so records written here are visible to it unchanged.
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from docimport.core.models import ChunkState, ConfirmationState, JobState
from docimport.core.utils import utcnow_iso

Base = declarative_base()


class ImportDocument(Base):
    """An uploaded document and the state of its extraction (the job record)."""

    __tablename__ = "documentos_importacao"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String, index=True)
    file_path = Column(String, nullable=False)
    file_name = Column(String, nullable=False)
    file_type = Column(String)
    status = Column(String, nullable=False, default=JobState.PENDING.value)
    progress = Column(Integer, nullable=False, default=0)
    status_description = Column(Text)
    result_data = Column(JSON)
    model_used = Column(String)
    tokens_input = Column(Integer, nullable=False, default=0)
    tokens_output = Column(Integer, nullable=False, default=0)
    estimated_cost = Column(Float, nullable=False, default=0.0)
    low_confidence = Column(Boolean, nullable=False, default=False)
    status_confirmacao = Column(String, nullable=False, default=ConfirmationState.PENDING.value)
    error_message = Column(Text)
    created_at = Column(String, nullable=False, default=utcnow_iso)
    updated_at = Column(String, nullable=False, default=utcnow_iso)

    chunks = relationship(
        "ImportChunk",
        back_populates="document",
        cascade="all, delete-orphan",
        order_by="ImportChunk.chunk_index",
    )


class ImportChunk(Base):
    """A page range of a large document, extracted independently."""

    __tablename__ = "importacao_chunks"
    id = Column(Integer, primary_key=True, autoincrement=True)
    documento_id = Column(
        String, ForeignKey("documentos_importacao.id", ondelete="CASCADE"), nullable=False, index=True
    )
    chunk_index = Column(Integer, nullable=False)
    total_chunks = Column(Integer, nullable=False)
    page_start = Column(Integer, nullable=False)
    page_end = Column(Integer, nullable=False)
    status = Column(String, nullable=False, default=ChunkState.PENDING.value)
    result_data = Column(JSON)
    tokens_input = Column(Integer, nullable=False, default=0)
    tokens_output = Column(Integer, nullable=False, default=0)
    estimated_cost = Column(Float, nullable=False, default=0.0)
    low_confidence = Column(Boolean, nullable=False, default=False)
    error_message = Column(Text)
    created_at = Column(String, nullable=False, default=utcnow_iso)
    updated_at = Column(String, nullable=False, default=utcnow_iso)

    document = relationship("ImportDocument", back_populates="chunks")


class Category(Base):
    """An income-statement category that extracted transactions can be assigned to."""

    __tablename__ = "categorias_dre"
    id = Column(Integer, primary_key=True)
    nome = Column(String, nullable=False)
    codigo = Column(String)
    tipo = Column(String)
    id_pai = Column(Integer, nullable=True)


class KnowledgeEntry(Base):
    """Organization knowledge rendered into the extraction prompt (suppliers and standing instructions)."""

    __tablename__ = "ai_knowledge_base"
    id = Column(Integer, primary_key=True, autoincrement=True)
    type = Column(String, nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(String, nullable=False, default=utcnow_iso)


class LedgerEntry(Base):
    """A committed ledger entry."""

    __tablename__ = "lancamentos"
    id = Column(Integer, primary_key=True, autoincrement=True)
    id_conta = Column(Integer, index=True)
    id_responsavel = Column(Integer, index=True)
    id_usuario_aprovador = Column(Integer)
    id_categoria_dre = Column(Integer)
    data_competencia = Column(String(7))
    data_pagamento = Column(String(10), index=True)
    data_operacao = Column(String)
    status = Column(String, nullable=False, default="CONFIRMADO")
    descricao = Column(Text)
    valor = Column(Float, nullable=False)
    tipo_operacao = Column(String(1), nullable=False)
    modalidade = Column(JSON)
    created_at = Column(String, nullable=False, default=utcnow_iso)


def create_db_engine(url: str | None = None) -> Engine:
    """Create a SQLAlchemy engine using the given or configured database URL."""
    if url is None:
        from docimport.core.settings import get_settings

        url = get_settings().database_url
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    """Create every table the service uses, if missing."""
    Base.metadata.create_all(engine)


_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def get_engine() -> Engine:
    """Get or create the process-wide engine for the configured database."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Get or create the process-wide session factory bound to the configured database."""
    global _session_factory  # noqa: PLW0603
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_factory
