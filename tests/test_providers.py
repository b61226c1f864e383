"""Tests for the Gemini and Groq providers against stubbed SDK clients."""

from types import SimpleNamespace

import groq
import httpx
import pytest
from google.genai import errors as genai_errors

from conftest import make_pdf
from docimport.agents.base import SourceDocument
from docimport.agents.gemini_provider import GeminiProvider
from docimport.agents.groq_provider import GroqProvider
from docimport.agents.retry import is_retryable
from docimport.core.exceptions import ExtractionProviderError
from docimport.core.settings import Settings

ANSWER = '[{"data": "05/03/2025", "descricao": "x", "valor": -1}]'


class _Recorder:
    def __init__(self, response: object) -> None:
        self.response = response
        self.kwargs: dict = {}

    def __call__(self, **kwargs: object) -> object:
        self.kwargs = kwargs
        return self.response


def test_gemini_sends_prompt_and_document_inline() -> None:
    """The Gemini provider sends the prompt text and the document bytes in one user turn."""
    recorder = _Recorder(
        SimpleNamespace(text=ANSWER, usage_metadata=SimpleNamespace(prompt_token_count=120, candidates_token_count=30))
    )
    client = SimpleNamespace(models=SimpleNamespace(generate_content=recorder))
    document = SourceDocument(data=make_pdf(1), mime_type="application/pdf")

    result = GeminiProvider("unused", client=client).generate("gemini-3.0-flash", "PROMPT", document)

    if (result.text, result.tokens_input, result.tokens_output) != (ANSWER, 120, 30):
        msg = f"Unexpected result: {result}"
        raise AssertionError(msg)
    parts = recorder.kwargs["contents"][0].parts
    if parts[0].text != "PROMPT" or parts[1].inline_data.mime_type != "application/pdf":
        msg = f"Unexpected parts: {parts}"
        raise AssertionError(msg)


def test_gemini_tolerates_missing_usage() -> None:
    """Responses without usage metadata count zero tokens."""
    recorder = _Recorder(SimpleNamespace(text=None, usage_metadata=None))
    client = SimpleNamespace(models=SimpleNamespace(generate_content=recorder))
    document = SourceDocument(data=b"\xff\xd8", mime_type="image/jpeg")

    result = GeminiProvider("unused", client=client).generate("gemini-3.0-flash", "PROMPT", document)

    if (result.text, result.tokens_input, result.tokens_output) != ("", 0, 0):
        msg = f"Unexpected result: {result}"
        raise AssertionError(msg)


def test_groq_sends_images_as_data_urls() -> None:
    """Images go to Groq as base64 data URLs next to the prompt."""
    completion = SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=ANSWER))],
        usage=SimpleNamespace(prompt_tokens=50, completion_tokens=10),
    )
    recorder = _Recorder(completion)
    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=recorder)))
    document = SourceDocument(data=b"\x89PNG", mime_type="image/png")

    provider = GroqProvider(Settings(), client=client)
    result = provider.generate("meta-llama/llama-4-scout-17b-16e-instruct", "P", document)

    if (result.tokens_input, result.tokens_output) != (50, 10):
        msg = f"Unexpected usage: {result}"
        raise AssertionError(msg)
    content = recorder.kwargs["messages"][0]["content"]
    if content[1]["image_url"]["url"] != f"data:image/png;base64,{document.b64}":
        msg = f"Unexpected content: {content}"
        raise AssertionError(msg)
    if recorder.kwargs["stream"] is not False:
        msg = "Expected a non-streaming request"
        raise AssertionError(msg)


def test_groq_sends_pdfs_as_text() -> None:
    """PDF pages go to Groq as extracted text appended to the prompt."""
    provider = GroqProvider(Settings(), client=SimpleNamespace())
    content = provider.build_content("PROMPT", SourceDocument(data=make_pdf(2), mime_type="application/pdf"))
    if len(content) != 1 or content[0]["type"] != "text" or not content[0]["text"].startswith("PROMPT"):
        msg = f"Unexpected content: {content}"
        raise AssertionError(msg)


class _Failing:
    def __init__(self, exc: Exception) -> None:
        self.exc = exc

    def __call__(self, **kwargs: object) -> object:
        _ = kwargs
        raise self.exc


def test_gemini_rate_limit_becomes_retryable_provider_error() -> None:
    """A 429 from the Gemini SDK is raised as a retryable provider error carrying the status."""
    exc = genai_errors.ClientError(
        429, {"error": {"code": 429, "message": "Resource exhausted", "status": "RESOURCE_EXHAUSTED"}}
    )
    client = SimpleNamespace(models=SimpleNamespace(generate_content=_Failing(exc)))
    provider = GeminiProvider("unused", client=client)

    with pytest.raises(ExtractionProviderError) as info:
        provider.generate("gemini-3.0-flash", "PROMPT", SourceDocument(data=b"\xff\xd8", mime_type="image/jpeg"))

    error = info.value
    if error.status_code != 429 or not is_retryable(error) or error.__cause__ is not exc:  # noqa: PLR2004
        msg = f"Unexpected error: {error!r} (status {error.status_code})"
        raise AssertionError(msg)


@pytest.mark.parametrize(("status", "retryable"), [(429, True), (400, False)])
def test_groq_errors_become_provider_errors(status: int, retryable: bool) -> None:
    """Groq status errors are raised as provider errors; only rate limits are retryable."""
    request = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")
    exc = groq.APIStatusError("request failed", response=httpx.Response(status, request=request), body=None)
    client = SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=_Failing(exc))))
    provider = GroqProvider(Settings(), client=client)
    document = SourceDocument(data=b"\x89PNG", mime_type="image/png")

    with pytest.raises(ExtractionProviderError) as info:
        provider.generate("meta-llama/llama-4-scout-17b-16e-instruct", "P", document)

    if info.value.status_code != status or is_retryable(info.value) != retryable:
        msg = f"Unexpected error for {status}: {info.value!r}"
        raise AssertionError(msg)
