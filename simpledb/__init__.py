"""
Embedded, file-backed document store.
"""

from .collection import Collection
from .engine import SimpleDB
from .errors import (
    CollectionClosedError,
    CorruptDocumentError,
    DocumentValidationError,
    InvalidNameError,
    SimpleDBError,
    StorageError,
)

__all__ = [
    "Collection",
    "CollectionClosedError",
    "CorruptDocumentError",
    "DocumentValidationError",
    "InvalidNameError",
    "SimpleDB",
    "SimpleDBError",
    "StorageError",
]
