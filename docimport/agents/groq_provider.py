"""Groq extraction provider for vision models.

Images are sent as base64 data URLs. Groq does not accept PDF attachments, so PDF pages are sent as the text
pypdf extracts from them.
"""

from groq import Groq

from docimport.agents.base import ExtractionProvider, ProviderResult, SourceDocument
from docimport.agents.prompts import PDF_TEXT_HEADER
from docimport.agents.retry import error_status_code
from docimport.core.exceptions import ExtractionProviderError
from docimport.core.models import PDF_MIME_TYPE
from docimport.core.settings import Settings
from docimport.core.utils import get_logger
from docimport.services.pdf_splitter import extract_text

logger = get_logger("doc-import.agent.groq")


class GroqProvider(ExtractionProvider):
    """Extraction provider backed by the Groq chat completions API."""

    def __init__(self, settings: Settings, client: Groq | None = None) -> None:
        """Initialize the provider with settings and an optional prebuilt client."""
        self.settings = settings
        self.client = client or Groq(api_key=settings.groq_api_key)

    def build_content(self, prompt: str, document: SourceDocument) -> list[dict]:
        """Build the user message content parts for a document."""
        if document.mime_type == PDF_MIME_TYPE:
            text = extract_text(document.data)
            return [{"type": "text", "text": f"{prompt}\n{PDF_TEXT_HEADER}\n{text}"}]
        return [
            {"type": "text", "text": prompt},
            {"type": "image_url", "image_url": {"url": f"data:{document.mime_type};base64,{document.b64}"}},
        ]

    def generate(self, model: str, prompt: str, document: SourceDocument) -> ProviderResult:
        """Submit the prompt and the document and return the response text and usage."""
        logger.info(f"Calling {model} with {len(document.data)} bytes ({document.mime_type})")
        try:
            completion = self.client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": self.build_content(prompt, document)}],
                temperature=self.settings.groq_temperature,
                max_completion_tokens=self.settings.groq_max_completion_tokens,
                stream=False,
            )
        except Exception as exc:
            msg = f"Groq API call failed: {exc}"
            logger.warning(msg)
            raise ExtractionProviderError(msg, status_code=error_status_code(exc)) from exc
        usage = completion.usage
        return ProviderResult(
            text=completion.choices[0].message.content or "",
            tokens_input=(usage.prompt_tokens or 0) if usage else 0,
            tokens_output=(usage.completion_tokens or 0) if usage else 0,
        )
