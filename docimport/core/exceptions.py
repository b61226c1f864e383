"""Domain exceptions raised by the import pipeline and the ledger commit path."""


class DocumentImportError(Exception):
    """Base class for failures while importing a financial document."""


class FileTooLargeError(DocumentImportError):
    """The file is too large to process whole and its page count cannot be read."""


class ExtractionProviderError(DocumentImportError):
    """The language-model provider rejected or failed a request."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Store the provider message and the HTTP status, when known."""
        super().__init__(message)
        self.status_code = status_code


class JobNotFoundError(DocumentImportError):
    """No import job exists with the requested id."""


class ConfirmationError(DocumentImportError):
    """The drafts of an import job cannot be committed in its current state."""
