"""
A named, directory-backed set of documents mirrored by an in-memory cache.

Writes go to disk first and to the cache second; reads only look at the
cache. Every public operation and every reconciliation pass holds the
collection lock, so they never overlap. A directory must not be opened by
more than one process at a time.
"""

from __future__ import annotations

import copy
import logging
import threading
from collections.abc import Mapping
from pathlib import Path

from .document import ID_FIELD, assign_id, join_id, normalize_document, split_id
from .errors import CollectionClosedError, InvalidNameError
from .query import is_subset_duplicate, matches
from .reconcile import DEFAULT_RECONCILE_INTERVAL, MaintenanceTask, find_duplicate_ids
from .storage import DEFAULT_COMPRESSLEVEL, DocumentFileStorage

logger = logging.getLogger(__name__)

Document = dict[str, object]


def validate_collection_name(name: object) -> str:
    if not isinstance(name, str) or not name or name in (".", ".."):
        raise InvalidNameError(f"invalid collection name: {name!r}")
    if "/" in name or "\\" in name or "\x00" in name:
        raise InvalidNameError(f"collection name must not contain path separators: {name!r}")
    return name


class Collection:
    """
    Lightweight document collection with one compressed file per document.
    """

    def __init__(
        self,
        db_path: str | Path,
        name: str,
        *,
        reconcile_interval: float | None = DEFAULT_RECONCILE_INTERVAL,
        sync_every_write: bool = False,
        compresslevel: int = DEFAULT_COMPRESSLEVEL,
    ) -> None:
        self.name = validate_collection_name(name)
        self.path = Path(db_path) / self.name
        self.storage = DocumentFileStorage(
            self.path, sync_every_write=sync_every_write, compresslevel=compresslevel
        )
        self._cache: dict[str, Document] = {}
        self._lock = threading.RLock()
        self._closed = False
        self._load_existing()

        self._task: MaintenanceTask | None = None
        if reconcile_interval:
            self._task = MaintenanceTask(
                self._periodic_reconcile,
                reconcile_interval,
                name=f"simpledb-reconcile-{self.name}",
            )
            self._task.start()

    # --- public API -------------------------------------------------------

    def insert(self, doc: Mapping[str, object]) -> Mapping[str, object]:
        """
        Persist a new document and return it with its id.

        If the input is a field-subset of an existing body, nothing is
        stored: a reconciliation pass runs and the input is returned as is.
        """
        with self._lock:
            self._check_open()
            normalized = normalize_document(doc)
            if is_subset_duplicate(normalized, self._cache.values()):
                logger.debug("insert into %s flagged as duplicate", self.name)
                self._reconcile()
                return doc

            stored = self._save(assign_id(normalized))
            return copy.deepcopy(stored)

    def find(self, query: Mapping[str, object] | None = None) -> list[Document]:
        """
        Return all documents matching a flat equality query, in cache order.
        """
        with self._lock:
            self._check_open()
            return [copy.deepcopy(doc) for doc in self._cache.values() if matches(doc, query)]

    def find_one(self, query: Mapping[str, object] | None = None) -> Document | None:
        with self._lock:
            self._check_open()
            for doc in self._cache.values():
                if matches(doc, query):
                    return copy.deepcopy(doc)
            return None

    def update(self, query: Mapping[str, object] | None, patch: Mapping[str, object]) -> bool:
        """
        Shallow-merge `patch` into every matching document. The id is kept
        even if `patch` names one. Returns True if anything matched.
        """
        with self._lock:
            self._check_open()
            changes = normalize_document(patch)
            changes.pop(ID_FIELD, None)
            targets = [doc for doc in self._cache.values() if matches(doc, query)]
            for doc in targets:
                merged = {**doc, **changes}
                merged[ID_FIELD] = doc[ID_FIELD]
                self._save(merged)
            return bool(targets)

    def remove(self, query: Mapping[str, object] | None = None) -> bool:
        """
        Delete every matching document. Returns True if anything matched.
        """
        with self._lock:
            self._check_open()
            targets = [doc for doc in self._cache.values() if matches(doc, query)]
            for doc in targets:
                self._delete(doc[ID_FIELD])
            return bool(targets)

    def reconcile(self) -> int:
        """
        Delete content-duplicate documents, keeping the lowest id of each
        distinct body. Returns how many were removed.
        """
        with self._lock:
            self._check_open()
            return self._reconcile()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        # Outside the lock: the task may be waiting on it.
        if self._task is not None:
            self._task.stop()
        logger.debug("closed collection %s", self.name)

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __enter__(self) -> "Collection":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Collection(path={str(self.path)!r}, closed={self._closed})"

    # --- internal helpers -------------------------------------------------

    def _check_open(self) -> None:
        if self._closed:
            raise CollectionClosedError(f"collection {self.name!r} is closed")

    def _save(self, doc: Mapping[str, object]) -> Document:
        """
        Write the document and cache the body as it reads back from disk,
        so the cache never shares objects with callers.
        """
        doc_id, body = split_id(doc)
        stored = join_id(doc_id, self.storage.write(doc_id, body))
        self._cache[doc_id] = stored
        return stored

    def _delete(self, doc_id: str) -> None:
        self.storage.delete(doc_id)
        self._cache.pop(doc_id, None)

    def _reconcile(self) -> int:
        duplicates = find_duplicate_ids(self._cache)
        for doc_id in duplicates:
            self._delete(doc_id)
        if duplicates:
            logger.info("removed %d duplicate documents from %s", len(duplicates), self.name)
        return len(duplicates)

    def _periodic_reconcile(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._reconcile()

    def _load_existing(self) -> None:
        """
        Read every document file and build the cache; any corrupt file
        aborts the load.
        """
        loaded = {doc_id: join_id(doc_id, body) for doc_id, body in self.storage.read_all()}
        self._cache = loaded
        logger.debug("loaded %d documents from %s", len(loaded), self.path)
