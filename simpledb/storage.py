"""
One-file-per-document storage.

Each document body is written to `<dir>/<id>.db` as gzip-compressed,
pretty-printed JSON. The id is never part of the body; it is recovered
from the file name on load.

Only one process may have a directory open at a time: nothing on disk
guards against concurrent writers.
"""

from __future__ import annotations

import gzip
import json
import os
import zlib
from collections.abc import Iterator, Mapping
from pathlib import Path

from .document import ID_FIELD
from .errors import CorruptDocumentError, DocumentValidationError, StorageError

FILE_SUFFIX = ".db"
DEFAULT_COMPRESSLEVEL = 9


def _to_json(body: Mapping[str, object]) -> str:
    stripped = {k: v for k, v in body.items() if k != ID_FIELD}
    try:
        return json.dumps(stripped, indent=2, ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise DocumentValidationError(f"document is not JSON-serializable: {exc}") from exc


def encode_body(body: Mapping[str, object], compresslevel: int = DEFAULT_COMPRESSLEVEL) -> bytes:
    """
    Serialize a body (any `id` field is dropped) to compressed JSON bytes.
    """
    return gzip.compress(_to_json(body).encode("utf-8"), compresslevel=compresslevel, mtime=0)


def decode_body(data: bytes, path: str | Path = "<memory>") -> dict[str, object]:
    try:
        text = gzip.decompress(data).decode("utf-8")
    except (OSError, EOFError, zlib.error) as exc:
        raise CorruptDocumentError(path, f"decompression failed: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise CorruptDocumentError(path, f"invalid utf-8: {exc}") from exc

    try:
        body = json.loads(text)
    except json.JSONDecodeError as exc:
        raise CorruptDocumentError(path, f"invalid json: {exc}") from exc

    if not isinstance(body, dict):
        raise CorruptDocumentError(path, "document body is not a JSON object")
    return body


class DocumentFileStorage:
    def __init__(
        self,
        directory: Path,
        sync_every_write: bool = False,
        compresslevel: int = DEFAULT_COMPRESSLEVEL,
    ) -> None:
        self.directory = Path(directory)
        if self.directory.exists() and not self.directory.is_dir():
            raise StorageError(f"collection path is not a directory: {self.directory}")
        self.directory.mkdir(parents=True, exist_ok=True)
        self.sync_every_write = sync_every_write
        self.compresslevel = compresslevel

    def path_for(self, doc_id: str) -> Path:
        return self.directory / f"{doc_id}{FILE_SUFFIX}"

    def write(self, doc_id: str, body: Mapping[str, object]) -> dict[str, object]:
        """
        Overwrite the document's file and return the body exactly as it
        will read back. Not atomic: a crash mid-write can leave this one
        file truncated.
        """
        text = _to_json(body)
        payload = gzip.compress(text.encode("utf-8"), compresslevel=self.compresslevel, mtime=0)
        with self.path_for(doc_id).open("wb") as fh:
            fh.write(payload)
            fh.flush()
            if self.sync_every_write:
                os.fsync(fh.fileno())
        return json.loads(text)

    def delete(self, doc_id: str) -> bool:
        """
        Remove the document's file. Returns False if it was already gone.
        """
        try:
            self.path_for(doc_id).unlink()
        except FileNotFoundError:
            return False
        return True

    def read_all(self) -> Iterator[tuple[str, dict[str, object]]]:
        """
        Iterate over every document file in ascending id order, yielding
        (id, body). A corrupt file raises `CorruptDocumentError`.
        """
        entries = sorted(
            (p.name[: -len(FILE_SUFFIX)], p)
            for p in self.directory.iterdir()
            if p.suffix == FILE_SUFFIX and p.is_file()
        )
        for doc_id, path in entries:
            yield doc_id, decode_body(path.read_bytes(), path)
