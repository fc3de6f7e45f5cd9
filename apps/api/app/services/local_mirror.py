import copy
import json
import logging
import os
from collections.abc import Callable
from pathlib import Path
from threading import Lock
from typing import Any

from app.observability import log_event, metrics_store

USERS_KEY = "users"
ORDERS_KEY = "orders"

Snapshot = list[dict[str, Any]]


class LocalMirror:
    """Whole-collection JSON snapshots keyed by a fixed name.

    Backed by a JSON file when ``path`` is given, otherwise by process memory.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path else None
        self._memory: dict[str, Snapshot] = {}
        self._lock = Lock()

    @property
    def path(self) -> Path | None:
        return self._path

    def read(self, key: str) -> Snapshot:
        with self._lock:
            return copy.deepcopy(self._load().get(key, []))

    def write(self, key: str, items: Snapshot) -> None:
        with self._lock:
            data = self._load()
            data[key] = copy.deepcopy(items)
            self._save(data)

    def update(self, key: str, fn: Callable[[Snapshot], Snapshot]) -> Snapshot:
        """Apply ``fn`` to the ``key`` snapshot and store the result under one lock."""
        with self._lock:
            data = self._load()
            updated = fn(copy.deepcopy(data.get(key, [])))
            data[key] = copy.deepcopy(updated)
            self._save(data)
            return copy.deepcopy(updated)

    def clear(self) -> None:
        with self._lock:
            self._save({})

    def check(self) -> None:
        """Raise ``OSError`` when the backing file cannot be read or written."""
        if self._path is None:
            return
        with self._lock:
            self._save(self._load())

    def _load(self) -> dict[str, Snapshot]:
        if self._path is None:
            return self._memory
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            metrics_store.increment("local_mirror_corrupt_total")
            log_event(f"local_mirror_corrupt:{self._path}", level=logging.WARNING)
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _save(self, data: dict[str, Snapshot]) -> None:
        if self._path is None:
            self._memory = data
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, separators=(",", ":")), encoding="utf-8")
        os.replace(tmp_path, self._path)
