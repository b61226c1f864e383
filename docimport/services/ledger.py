"""Commit approved transaction drafts of a completed import into the ledger."""

from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker

from docimport.core.db import Category, ImportDocument, LedgerEntry
from docimport.core.exceptions import ConfirmationError, JobNotFoundError
from docimport.core.models import CommitSummary, ConfirmationState, JobState, TransactionDraft
from docimport.core.utils import get_logger, utcnow_iso
from docimport.services.reconciler import DuplicateReconciler, to_iso_date

logger = get_logger("doc-import.ledger")

IMPORT_METHOD = "importacao_ia"


def operation_type(draft: TransactionDraft) -> str:
    """Ledger operation type: ``E`` (entrada) for revenue, ``S`` (saída) for expenses."""
    if draft.tipo == "receita" or (draft.tipo is None and draft.valor >= 0):
        return "E"
    return "S"


def build_ledger_entry(
    draft: TransactionDraft, account_id: int, user_id: int, category_id: int, model: str | None
) -> LedgerEntry:
    """Ledger row for a draft: absolute amount, ISO payment date, and ``YYYY-MM`` competence."""
    iso_date = to_iso_date(draft.data)
    if iso_date is None:
        msg = f"Data inválida na transação '{draft.descricao}': {draft.data}"
        raise ConfirmationError(msg)
    return LedgerEntry(
        id_conta=account_id,
        id_responsavel=user_id,
        id_usuario_aprovador=user_id,
        id_categoria_dre=draft.categoria_sugerida_id or category_id,
        data_competencia=iso_date[:7],
        data_pagamento=iso_date,
        data_operacao=f"{iso_date}T12:00:00.000Z",
        status="CONFIRMADO",
        descricao=draft.descricao,
        valor=abs(draft.valor),
        tipo_operacao=operation_type(draft),
        modalidade={"metodo": IMPORT_METHOD, "model": model},
    )


class LedgerService:
    """Confirms import jobs by writing their approved drafts to the ledger."""

    def __init__(
        self, session_factory: sessionmaker, reconciler: DuplicateReconciler, fallback_category_id: int = 52
    ) -> None:
        """Initialize the service with a session factory and the duplicate reconciler."""
        self.session_factory = session_factory
        self.reconciler = reconciler
        self.fallback_category_id = fallback_category_id

    def default_category_id(self) -> int:
        """First category in display order, or the configured fallback when there are none."""
        with self.session_factory() as session:
            first = session.scalars(
                select(Category.id).order_by(Category.id_pai.asc().nulls_first(), Category.codigo, Category.id).limit(1)
            ).first()
        return first if first is not None else self.fallback_category_id

    def confirm_import(
        self, job_id: str, drafts: list[TransactionDraft], account_id: int, user_id: int
    ) -> CommitSummary:
        """Commit the approved drafts of a completed job and mark it ``confirmado``.

        Drafts matching an existing ledger entry are skipped unless force-kept. The job is confirmed even when every
        draft was skipped.
        """
        if not drafts:
            msg = "Nenhuma transação aprovada para salvar."
            raise ConfirmationError(msg)
        with self.session_factory() as session:
            job = session.get(ImportDocument, job_id)
            if job is None:
                msg = f"Import job {job_id} not found"
                raise JobNotFoundError(msg)
            if job.status != JobState.COMPLETED.value:
                msg = f"Import job {job_id} is '{job.status}'; only completed imports can be confirmed"
                raise ConfirmationError(msg)
            if job.status_confirmacao == ConfirmationState.CONFIRMED.value:
                msg = f"Import job {job_id} was already confirmed"
                raise ConfirmationError(msg)
            model = job.model_used

        to_import, skipped = self.reconciler.partition_for_commit(drafts, account_id)
        category_id = self.default_category_id()
        entries = [build_ledger_entry(d, account_id, user_id, category_id, model) for d in to_import]

        with self.session_factory() as session:
            result = session.execute(
                update(ImportDocument)
                .where(
                    ImportDocument.id == job_id,
                    ImportDocument.status == JobState.COMPLETED.value,
                    ImportDocument.status_confirmacao != ConfirmationState.CONFIRMED.value,
                )
                .values(status_confirmacao=ConfirmationState.CONFIRMED.value, updated_at=utcnow_iso())
            )
            if result.rowcount != 1:
                session.rollback()
                msg = f"Import job {job_id} was confirmed concurrently"
                raise ConfirmationError(msg)
            session.add_all(entries)
            session.commit()
        logger.info(f"Confirmed import {job_id}: {len(entries)} imported, {len(skipped)} duplicates skipped")
        return CommitSummary(imported=len(entries), skipped=len(skipped))
