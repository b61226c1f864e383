"""Agents package: extraction providers, provider registry, retry policy, and the extraction agent."""

from .base import ExtractionProvider, ProviderResult, SourceDocument  # noqa: F401
from .extraction_agent import ExtractionAgent  # noqa: F401
from .registry import ProviderRegistry  # noqa: F401
from .retry import RetryPolicy  # noqa: F401
