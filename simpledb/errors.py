from __future__ import annotations

from pathlib import Path


class SimpleDBError(Exception):
    """Base error for the project."""


class DocumentValidationError(SimpleDBError):
    """Raised when input documents fail basic validation."""


class InvalidNameError(SimpleDBError):
    """Raised when a collection name cannot be used as a directory name."""


class StorageError(SimpleDBError):
    """Raised for persistence-level issues."""


class CorruptDocumentError(StorageError):
    """Raised when a document file cannot be decompressed or parsed."""

    def __init__(self, path: str | Path, reason: str) -> None:
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"corrupt document file {self.path}: {reason}")


class CollectionClosedError(SimpleDBError):
    """Raised when an operation is attempted on a closed collection."""
