"""
Duplicate reconciliation and the periodic task that drives it.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Hashable, Mapping

from .query import body_key

logger = logging.getLogger(__name__)

DEFAULT_RECONCILE_INTERVAL = 30.0


def find_duplicate_ids(docs: Mapping[str, Mapping[str, object]]) -> list[str]:
    """
    Return the ids of documents whose body repeats an earlier one.

    Documents are visited in ascending id order; the first holder of a
    body survives and every later holder is reported.
    """
    seen: set[Hashable] = set()
    duplicates: list[str] = []
    for doc_id in sorted(docs):
        key = body_key(docs[doc_id])
        if key in seen:
            duplicates.append(doc_id)
        else:
            seen.add(key)
    return duplicates


class MaintenanceTask:
    """
    Calls `action` every `interval` seconds on a daemon thread until stopped.

    A failing run is logged and the schedule continues.
    """

    def __init__(self, action: Callable[[], object], interval: float, name: str) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.action = action
        self.interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> None:
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.action()
            except Exception:
                logger.exception("periodic task %s failed", self._thread.name)
