"""Gemini extraction provider: sends the prompt and the document bytes inline to the Gemini API."""

from google import genai
from google.genai import types

from docimport.agents.base import ExtractionProvider, ProviderResult, SourceDocument
from docimport.agents.retry import error_status_code
from docimport.core.exceptions import ExtractionProviderError
from docimport.core.utils import get_logger

logger = get_logger("doc-import.agent.gemini")


class GeminiProvider(ExtractionProvider):
    """Extraction provider backed by the google-genai SDK."""

    def __init__(self, api_key: str, client: genai.Client | None = None) -> None:
        """Initialize the provider with an API key or a prebuilt client."""
        self.client = client or genai.Client(api_key=api_key)

    def generate(self, model: str, prompt: str, document: SourceDocument) -> ProviderResult:
        """Submit the prompt plus the inline document and return the response text and usage."""
        logger.info(f"Calling {model} with {len(document.data)} bytes ({document.mime_type})")
        try:
            response = self.client.models.generate_content(
                model=model,
                contents=[
                    types.Content(
                        role="user",
                        parts=[
                            types.Part.from_text(text=prompt),
                            types.Part.from_bytes(data=document.data, mime_type=document.mime_type),
                        ],
                    )
                ],
            )
        except Exception as exc:
            msg = f"Gemini API call failed: {exc}"
            logger.warning(msg)
            raise ExtractionProviderError(msg, status_code=error_status_code(exc)) from exc
        usage = response.usage_metadata
        return ProviderResult(
            text=response.text or "",
            tokens_input=(usage.prompt_token_count or 0) if usage else 0,
            tokens_output=(usage.candidates_token_count or 0) if usage else 0,
        )
