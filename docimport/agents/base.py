"""Base provider abstraction for document extraction.

This module defines the abstract base class every language-model provider implements: it receives the prompt
and the document bytes and returns the raw response text with its token usage.
"""

import base64
from abc import ABC, abstractmethod

from pydantic import BaseModel


class SourceDocument(BaseModel):
    """The bytes sent for extraction: a whole file or a page range cut from it."""

    data: bytes
    mime_type: str
    file_name: str = ""

    @property
    def b64(self) -> str:
        """Base64 encoding of the document bytes."""
        return base64.b64encode(self.data).decode("ascii")


class ProviderResult(BaseModel):
    """Raw text returned by a provider, with its token counts."""

    text: str
    tokens_input: int = 0
    tokens_output: int = 0


class ExtractionProvider(ABC):
    """Abstract base class for all extraction providers."""

    @abstractmethod
    def generate(self, model: str, prompt: str, document: SourceDocument) -> ProviderResult:
        """Submit the prompt and the document to the model and return its response."""
