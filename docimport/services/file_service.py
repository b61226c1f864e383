"""Blob-store facade used by the pipeline and the API."""

from typing import Protocol

from docimport.core.exceptions import DocumentImportError
from docimport.core.utils import utcnow_millis


class BlobBackend(Protocol):
    """Operations a blob-store backend provides."""

    def upload_fileobj(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """Store bytes under a key."""

    def download_fileobj(self, key: str) -> bytes:
        """Return the bytes stored under a key."""

    def delete_fileobj(self, key: str) -> None:
        """Remove a key."""

    def presigned_url(self, key: str, expires_in: int) -> str:
        """Return a time-limited download URL for a key."""


class FileService:
    """Service for file operations over a blob-store backend (S3 in production)."""

    def __init__(self, backend: BlobBackend, signed_url_ttl: int = 3600) -> None:
        """Initialize FileService with a backend and the lifetime of signed URLs in seconds."""
        self.backend = backend
        self.signed_url_ttl = signed_url_ttl

    def save_file(self, key: str, data: bytes, content_type: str | None = None) -> None:
        """Save a file under the given key."""
        self.backend.upload_fileobj(key, data, content_type)

    def get_file(self, key: str) -> bytes:
        """Retrieve a file by key."""
        try:
            return self.backend.download_fileobj(key)
        except Exception as exc:
            msg = f"Erro ao baixar arquivo: {exc}"
            raise DocumentImportError(msg) from exc

    def delete_file(self, key: str) -> None:
        """Delete a file by key."""
        self.backend.delete_fileobj(key)

    def signed_url(self, key: str) -> str:
        """Time-limited download URL for a file."""
        return self.backend.presigned_url(key, self.signed_url_ttl)


def upload_key(user_id: str, file_name: str) -> str:
    """Blob key for a new upload: ``<user_id>/<epoch_ms>_<file_name>``."""
    safe_name = file_name.replace("/", "_")
    return f"{user_id}/{utcnow_millis()}_{safe_name}"
