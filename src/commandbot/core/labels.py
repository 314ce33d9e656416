# src/commandbot/core/labels.py

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)

Fetch = Callable[[str], str]


class LabelCache:
    """
    Read-mostly id -> label cache.

    The fetch function runs outside the lock, so two threads resolving the
    same unknown id may both fetch; the first stored label wins and both
    callers get it. A failed fetch is not cached.
    """

    def __init__(self, fetch: Fetch, *, name: str = "label") -> None:
        self._fetch = fetch
        self._name = name
        self._labels: dict[str, str] = {}
        self._lock = threading.Lock()

    def resolve(self, key: str) -> str:
        with self._lock:
            label = self._labels.get(key)
        if label is not None:
            return label

        fetched = self._fetch(key)
        with self._lock:
            label = self._labels.setdefault(key, fetched)
        logger.debug("Resolved %s %s -> %s", self._name, key, label)
        return label

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._labels.get(key)

    def __len__(self) -> int:
        with self._lock:
            return len(self._labels)
