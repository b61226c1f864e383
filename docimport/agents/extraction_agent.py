"""ExtractionAgent: turns a financial document into transaction drafts using a language model.

The agent renders the prompt (fixed instructions plus category and organization knowledge), submits it with the
document through the retry policy, and parses the response into ``TransactionDraft`` objects. Parsing is lenient:
a response that cannot be read as a JSON array yields no drafts and a low-confidence flag instead of an error.
"""

import json
import re
from collections.abc import Callable

from pydantic import BaseModel, ValidationError

from docimport.agents.base import SourceDocument
from docimport.agents.context import ExtractionContext
from docimport.agents.prompts import EXTRACTION_PROMPT_TEMPLATE
from docimport.agents.registry import ProviderRegistry
from docimport.agents.retry import RetryPolicy
from docimport.core.models import ExtractionMetrics, TransactionDraft
from docimport.core.pricing import estimate_cost
from docimport.core.utils import get_logger

logger = get_logger("doc-import.agent")

MAX_RESPONSE_LOG_LEN = 300

_FENCE_OPEN = re.compile(r"```json\s*", re.IGNORECASE)
_FENCE = re.compile(r"```\s*")
_ARRAY = re.compile(r"\[[\s\S]*\]")


class ParsedResponse(BaseModel):
    """Drafts read from a model response and whether the response was readable at all."""

    drafts: list[TransactionDraft]
    parsed: bool


class ExtractionResult(BaseModel):
    """Drafts extracted from one document, with the usage metrics of the call."""

    drafts: list[TransactionDraft]
    metrics: ExtractionMetrics


def build_prompt(context: ExtractionContext) -> str:
    """Render the extraction prompt for a context."""
    return EXTRACTION_PROMPT_TEMPLATE.format(
        categories=context.render_categories(),
        suppliers=context.render_suppliers(),
        instructions=context.render_instructions(),
    )


def _load_json(text: str) -> object:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        match = _ARRAY.search(text)
        if match is None:
            raise
        return json.loads(match.group(0))


def parse_response(raw: str) -> ParsedResponse:
    """Parse a model response into drafts.

    Markdown fences are stripped; when the whole text is not JSON, the first ``[`` to the last ``]`` is tried.
    An object wrapping a ``transactions`` array is unwrapped. Items that fail validation are skipped.
    """
    text = _FENCE.sub("", _FENCE_OPEN.sub("", raw or "")).strip()
    try:
        data = _load_json(text)
    except json.JSONDecodeError as exc:
        preview = text if len(text) <= MAX_RESPONSE_LOG_LEN else text[: MAX_RESPONSE_LOG_LEN - 3] + "..."
        logger.error(f"Could not parse model response as JSON ({exc}): {preview}")
        return ParsedResponse(drafts=[], parsed=False)
    if isinstance(data, dict) and isinstance(data.get("transactions"), list):
        data = data["transactions"]
    if not isinstance(data, list):
        logger.error(f"Model response is JSON but not an array: {type(data).__name__}")
        return ParsedResponse(drafts=[], parsed=False)
    drafts = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            logger.warning(f"Skipping non-object item {index}: {item!r}")
            continue
        try:
            drafts.append(TransactionDraft.model_validate(item))
        except ValidationError as exc:
            logger.warning(f"Skipping invalid item {index}: {exc.error_count()} error(s) in {item}")
    return ParsedResponse(drafts=drafts, parsed=True)


class ExtractionAgent:
    """Agent responsible for prompting the model and reading transaction drafts from its answer."""

    def __init__(self, registry: ProviderRegistry, retry_policy: RetryPolicy) -> None:
        """Initialize the agent with a provider registry and a retry policy."""
        self.registry = registry
        self.retry_policy = retry_policy

    def extract(
        self,
        model: str,
        document: SourceDocument,
        context: ExtractionContext,
        on_retry: Callable[[int, int], None] | None = None,
    ) -> ExtractionResult:
        """Extract transaction drafts from a document with the given model."""
        provider = self.registry.for_model(model)
        prompt = build_prompt(context)
        logger.info(
            f"Extracting {document.file_name or 'document'} with {model}: "
            f"{len(context.categories)} categories, {len(context.suppliers)} suppliers, "
            f"{len(context.instructions)} instructions"
        )
        response = self.retry_policy.call(lambda: provider.generate(model, prompt, document), on_retry=on_retry)
        parsed = parse_response(response.text)
        if not parsed.parsed:
            logger.warning(f"Low-confidence extraction with {model}: response could not be parsed")
        metrics = ExtractionMetrics(
            model=model,
            tokens_input=response.tokens_input,
            tokens_output=response.tokens_output,
            estimated_cost=estimate_cost(model, response.tokens_input, response.tokens_output),
            low_confidence=not parsed.parsed,
        )
        logger.info(
            f"Extracted {len(parsed.drafts)} transactions "
            f"(tokens in={metrics.tokens_input}, out={metrics.tokens_output}, cost=${metrics.estimated_cost:.6f})"
        )
        return ExtractionResult(drafts=parsed.drafts, metrics=metrics)
