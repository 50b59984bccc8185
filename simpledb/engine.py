"""
Root database handle: owns the storage directory and hands out collections.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from .collection import Collection, validate_collection_name
from .errors import StorageError
from .reconcile import DEFAULT_RECONCILE_INTERVAL
from .storage import DEFAULT_COMPRESSLEVEL

logger = logging.getLogger(__name__)


class SimpleDB:
    """
    Embedded document store rooted at a directory, one subdirectory per
    collection.

    Repeated `collection(name)` calls return the same open instance, so a
    name has one cache and one maintenance task per handle. Do not open the
    same root from several processes.
    """

    def __init__(
        self,
        path: str | Path = "data",
        *,
        reconcile_interval: float | None = DEFAULT_RECONCILE_INTERVAL,
        sync_every_write: bool = False,
        compresslevel: int = DEFAULT_COMPRESSLEVEL,
    ) -> None:
        self.path = Path(path)
        if self.path.exists() and not self.path.is_dir():
            raise StorageError(f"database path is not a directory: {self.path}")
        self.path.mkdir(parents=True, exist_ok=True)
        self.reconcile_interval = reconcile_interval
        self.sync_every_write = sync_every_write
        self.compresslevel = compresslevel
        self._collections: dict[str, Collection] = {}
        self._lock = threading.Lock()

    def collection(self, name: str) -> Collection:
        """
        Open (or reuse) the collection called `name`. A collection closed
        directly is reopened from disk on the next call.
        """
        name = validate_collection_name(name)
        with self._lock:
            existing = self._collections.get(name)
            if existing is not None and not existing.closed:
                return existing

            opened = Collection(
                self.path,
                name,
                reconcile_interval=self.reconcile_interval,
                sync_every_write=self.sync_every_write,
                compresslevel=self.compresslevel,
            )
            self._collections[name] = opened
            logger.debug("opened collection %s (%d documents)", name, len(opened))
            return opened

    def __getitem__(self, name: str) -> Collection:
        return self.collection(name)

    def close(self) -> None:
        """Close every collection opened through this handle."""
        with self._lock:
            collections = list(self._collections.values())
            self._collections.clear()
        for coll in collections:
            coll.close()

    def __enter__(self) -> "SimpleDB":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
