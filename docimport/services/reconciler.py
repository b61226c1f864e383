"""Duplicate detection between extracted drafts and existing ledger entries.

Drafts and ledger entries are compared by a signature ``YYYY-MM-DD|<abs cents>|<normalized description>``, where
the description is trimmed, upper-cased, and has internal whitespace collapsed. Duplicates are only flagged here;
they are dropped at commit time unless the user force-kept them.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from docimport.core.db import LedgerEntry
from docimport.core.models import DescriptionGroup, TransactionDraft
from docimport.core.utils import get_logger

logger = get_logger("doc-import.reconciler")


def normalize_description(text: str | None) -> str:
    """Trim, upper-case, and collapse whitespace runs into one space."""
    return " ".join((text or "").split()).upper()


def to_iso_date(value: str | None) -> str | None:
    """Convert a ``DD/MM/YYYY`` date to ``YYYY-MM-DD``; None when it cannot be read."""
    if not value:
        return None
    try:
        return datetime.strptime(value.strip(), "%d/%m/%Y").date().isoformat()
    except ValueError:
        return None


def amount_cents(value: float) -> int:
    """Absolute amount in integer cents, rounding half up."""
    cents = (Decimal(str(value)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return abs(int(cents))


def signature(iso_date: str, valor: float, descricao: str | None) -> str:
    """Duplicate-detection signature of a transaction."""
    return f"{iso_date}|{amount_cents(valor)}|{normalize_description(descricao)}"


def draft_signature(draft: TransactionDraft) -> str | None:
    """Signature of a draft; None when its date cannot be read."""
    iso_date = to_iso_date(draft.data)
    if iso_date is None:
        return None
    return signature(iso_date, draft.valor, draft.descricao)


def build_signature_index(entries: Iterable[LedgerEntry]) -> dict[str, int]:
    """Map each ledger signature to the id of the first entry that has it."""
    index: dict[str, int] = {}
    for entry in entries:
        index.setdefault(signature(entry.data_pagamento, entry.valor, entry.descricao), entry.id)
    return index


def mark_duplicates(drafts: list[TransactionDraft], index: dict[str, int]) -> list[TransactionDraft]:
    """Return copies of the drafts with duplicate flags set from a signature index.

    Force-kept drafts bypass the check and are returned unchanged.
    """
    marked = []
    for draft in drafts:
        if draft.force_keep:
            marked.append(draft.model_copy())
            continue
        sig = draft_signature(draft)
        match = index.get(sig) if sig is not None else None
        marked.append(draft.model_copy(update={"is_duplicate": match is not None, "duplicate_id": match}))
    return marked


def group_repeated_descriptions(drafts: list[TransactionDraft]) -> list[DescriptionGroup]:
    """Groups of two or more drafts sharing a normalized description, in order of first appearance."""
    groups: dict[str, list[int]] = {}
    for index, draft in enumerate(drafts):
        description = normalize_description(draft.descricao)
        if description:
            groups.setdefault(description, []).append(index)
    return [
        DescriptionGroup(description=description, count=len(indices), indices=indices)
        for description, indices in groups.items()
        if len(indices) >= 2  # noqa: PLR2004
    ]


class DuplicateReconciler:
    """Flags drafts that already exist in the ledger of an account."""

    def __init__(self, session_factory: sessionmaker) -> None:
        """Initialize the reconciler with a session factory."""
        self.session_factory = session_factory

    def existing_index(self, drafts: list[TransactionDraft], account_id: int | None) -> dict[str, int]:
        """Signature index of the ledger entries within the drafts' date span."""
        dates = [d for d in (to_iso_date(draft.data) for draft in drafts) if d is not None]
        if not dates:
            return {}
        stmt = select(LedgerEntry).where(
            LedgerEntry.data_pagamento >= min(dates),
            LedgerEntry.data_pagamento <= max(dates),
        )
        if account_id is not None:
            stmt = stmt.where(LedgerEntry.id_conta == account_id)
        with self.session_factory() as session:
            entries = session.scalars(stmt).all()
            logger.info(
                f"Comparing {len(drafts)} drafts against {len(entries)} ledger entries ({min(dates)}..{max(dates)})"
            )
            return build_signature_index(entries)

    def flag_duplicates(self, drafts: list[TransactionDraft], account_id: int | None) -> list[TransactionDraft]:
        """Return the drafts with probable duplicates flagged."""
        if not drafts:
            return []
        return mark_duplicates(drafts, self.existing_index(drafts, account_id))

    def partition_for_commit(
        self, drafts: list[TransactionDraft], account_id: int | None
    ) -> tuple[list[TransactionDraft], list[TransactionDraft]]:
        """Split drafts into (to import, skipped duplicates), re-checking against the ledger."""
        index = self.existing_index(drafts, account_id)
        to_import: list[TransactionDraft] = []
        skipped: list[TransactionDraft] = []
        for draft in drafts:
            if draft.force_keep:
                to_import.append(draft)
                continue
            sig = draft_signature(draft)
            if sig is not None and sig in index:
                skipped.append(draft)
            else:
                to_import.append(draft)
        return to_import, skipped
