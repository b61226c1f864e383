"""PDF page counting and page-range extraction."""

from io import BytesIO

from pypdf import PdfReader, PdfWriter

from docimport.core.models import PDF_MIME_TYPE


def is_pdf(mime_type: str | None, data: bytes) -> bool:
    """Whether a file is a PDF, by declared MIME type or by its magic bytes."""
    if mime_type:
        return mime_type.lower() == PDF_MIME_TYPE
    return data[:5] == b"%PDF-"


def resolve_mime_type(mime_type: str | None, data: bytes) -> str:
    """Declared MIME type, or a guess from the magic bytes when none was declared."""
    if mime_type:
        return mime_type
    return PDF_MIME_TYPE if data[:5] == b"%PDF-" else "application/octet-stream"


def count_pages(data: bytes) -> int:
    """Number of pages in a PDF."""
    reader = PdfReader(BytesIO(data))
    if reader.is_encrypted:
        reader.decrypt("")
    return len(reader.pages)


def extract_pages(data: bytes, page_start: int, page_end: int) -> bytes:
    """Copy pages ``[page_start, page_end)`` of a PDF into a new standalone PDF."""
    if page_start < 0 or page_end <= page_start:
        msg = f"Invalid page range [{page_start}, {page_end})"
        raise ValueError(msg)
    reader = PdfReader(BytesIO(data))
    if reader.is_encrypted:
        reader.decrypt("")
    page_end = min(page_end, len(reader.pages))
    if page_start >= page_end:
        msg = f"Page range [{page_start}, {page_end}) is outside a {len(reader.pages)}-page document"
        raise ValueError(msg)
    writer = PdfWriter()
    for index in range(page_start, page_end):
        writer.add_page(reader.pages[index])
    buffer = BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


def extract_text(data: bytes) -> str:
    """Text layer of a PDF, one block per page."""
    reader = PdfReader(BytesIO(data))
    return "\n\n".join(page.extract_text() or "" for page in reader.pages)
