"""Prompt context: the category taxonomy and organization knowledge rendered into the extraction prompt."""

from pydantic import BaseModel

from docimport.agents.prompts import (
    DEFAULT_CATEGORIES_CONTEXT,
    INSTRUCTIONS_SECTION_TEMPLATE,
    SUPPLIERS_SECTION_TEMPLATE,
)


class CategoryRef(BaseModel):
    """A category as listed in the prompt."""

    id: int
    nome: str
    codigo: str | None = None
    tipo: str | None = None


class ExtractionContext(BaseModel):
    """Everything the prompt needs besides its fixed instructions."""

    categories: list[CategoryRef] = []
    suppliers: list[str] = []
    instructions: list[str] = []
    supplier_category_id: int = 69

    def render_categories(self) -> str:
        """Category lines as ``<id> - <nome> (<tipo>)``."""
        if not self.categories:
            return DEFAULT_CATEGORIES_CONTEXT
        return "\n".join(f"{c.id} - {c.nome} ({c.tipo})" for c in self.categories)

    def render_suppliers(self) -> str:
        """Known-suppliers section, empty when there are none."""
        if not self.suppliers:
            return ""
        return SUPPLIERS_SECTION_TEMPLATE.format(
            category_id=self.supplier_category_id, suppliers=", ".join(self.suppliers)
        )

    def render_instructions(self) -> str:
        """Standing-instructions section, empty when there are none."""
        if not self.instructions:
            return ""
        return INSTRUCTIONS_SECTION_TEMPLATE.format(instructions="\n".join(f"- {i}" for i in self.instructions))
