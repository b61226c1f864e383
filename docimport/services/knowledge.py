"""Category and organization-knowledge context for the extraction prompt, and knowledge-base management."""

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from docimport.agents.context import CategoryRef, ExtractionContext
from docimport.core.db import Category, KnowledgeEntry
from docimport.core.models import KnowledgeEntryIn, KnowledgeEntryOut

SUPPLIER = "supplier"
INSTRUCTION = "instruction"


class KnowledgeContextLoader:
    """Reads the prompt context fresh from the database on every call."""

    def __init__(
        self, session_factory: sessionmaker, category_limit: int = 100, supplier_category_id: int = 69
    ) -> None:
        """Initialize the loader with a session factory and the category cap."""
        self.session_factory = session_factory
        self.category_limit = category_limit
        self.supplier_category_id = supplier_category_id

    def load(self) -> ExtractionContext:
        """Fetch categories (capped) and supplier/instruction knowledge entries."""
        with self.session_factory() as session:
            categories = session.scalars(select(Category).order_by(Category.id).limit(self.category_limit)).all()
            entries = session.scalars(
                select(KnowledgeEntry)
                .where(KnowledgeEntry.type.in_((SUPPLIER, INSTRUCTION)))
                .order_by(KnowledgeEntry.id)
            ).all()
            return ExtractionContext(
                categories=[CategoryRef(id=c.id, nome=c.nome, codigo=c.codigo, tipo=c.tipo) for c in categories],
                suppliers=[e.content for e in entries if e.type == SUPPLIER],
                instructions=[e.content for e in entries if e.type == INSTRUCTION],
                supplier_category_id=self.supplier_category_id,
            )


class KnowledgeBaseService:
    """Create, list, and delete knowledge-base entries."""

    def __init__(self, session_factory: sessionmaker) -> None:
        """Initialize the service with a session factory."""
        self.session_factory = session_factory

    def list_entries(self, entry_type: str | None = None) -> list[KnowledgeEntryOut]:
        """List entries, newest first, optionally of one type."""
        stmt = select(KnowledgeEntry).order_by(KnowledgeEntry.id.desc())
        if entry_type:
            stmt = stmt.where(KnowledgeEntry.type == entry_type)
        with self.session_factory() as session:
            return [_to_out(e) for e in session.scalars(stmt).all()]

    def add_entry(self, entry: KnowledgeEntryIn) -> KnowledgeEntryOut:
        """Store a new entry with trimmed content."""
        with self.session_factory() as session:
            row = KnowledgeEntry(type=entry.type, content=entry.content.strip())
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_out(row)

    def delete_entry(self, entry_id: int) -> bool:
        """Delete an entry; returns False when it does not exist."""
        with self.session_factory() as session:
            row = session.get(KnowledgeEntry, entry_id)
            if row is None:
                return False
            session.delete(row)
            session.commit()
            return True


def _to_out(row: KnowledgeEntry) -> KnowledgeEntryOut:
    return KnowledgeEntryOut(id=row.id, type=row.type, content=row.content, created_at=row.created_at)
