import json
import logging
import os
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from . import config

_logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when a collection cannot be read or written."""


def _snapshot(records: Any) -> List[Dict[str, Any]]:
    # Both backends hand out JSON-shaped copies so reads are identical.
    try:
        return json.loads(json.dumps(records))
    except (TypeError, ValueError) as exc:
        raise StorageError("Records are not JSON serializable") from exc


class EntityStore:
    """Whole-collection key/value storage.

    Callers read a full collection, mutate it in memory and write it back.
    `transaction()` serializes such sequences inside one process only.
    """

    collections = config.COLLECTIONS

    def __init__(self) -> None:
        self._lock = threading.RLock()

    def _check(self, collection: str) -> None:
        if collection not in self.collections:
            raise StorageError(f"Unknown collection: {collection}")

    @contextmanager
    def transaction(self) -> Iterator["EntityStore"]:
        with self._lock:
            yield self

    def get(self, collection: str) -> List[Dict[str, Any]]:
        self._check(collection)
        with self._lock:
            return self._read(collection)

    def put(self, collection: str, records: List[Dict[str, Any]]) -> None:
        self._check(collection)
        payload = _snapshot(list(records))
        with self._lock:
            self._write(collection, payload)

    def _read(self, collection: str) -> List[Dict[str, Any]]:
        raise NotImplementedError

    def _write(self, collection: str, records: List[Dict[str, Any]]) -> None:
        raise NotImplementedError


class MemoryStore(EntityStore):
    """Ephemeral backend kept in a process-local dict."""

    def __init__(self) -> None:
        super().__init__()
        self._data: Dict[str, List[Dict[str, Any]]] = {}

    def _read(self, collection: str) -> List[Dict[str, Any]]:
        return _snapshot(self._data.get(collection, []))

    def _write(self, collection: str, records: List[Dict[str, Any]]) -> None:
        self._data[collection] = records


class FileStore(EntityStore):
    """Snapshot backend writing one JSON file per collection."""

    def __init__(self, data_dir: Path) -> None:
        super().__init__()
        self.data_dir = Path(data_dir)

    def path_for(self, collection: str) -> Path:
        return self.data_dir / f"{collection}.json"

    def _ensure_files(self) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            for collection in self.collections:
                path = self.path_for(collection)
                if path.exists():
                    continue
                path.write_text(json.dumps([], indent=2), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Unable to prepare data directory {self.data_dir}") from exc

    def _read(self, collection: str) -> List[Dict[str, Any]]:
        self._ensure_files()
        path = self.path_for(collection)
        try:
            with path.open("r", encoding="utf-8") as handle:
                records = json.load(handle)
        except json.JSONDecodeError:
            _logger.warning("Corrupt collection file %s, reading as empty", path)
            return []
        except OSError as exc:
            raise StorageError(f"Unable to read {path}") from exc
        if not isinstance(records, list) or not all(isinstance(item, dict) for item in records):
            _logger.warning("Collection file %s does not hold a list of records, reading as empty", path)
            return []
        return records

    def _write(self, collection: str, records: List[Dict[str, Any]]) -> None:
        self._ensure_files()
        path = self.path_for(collection)
        staging = path.with_suffix(".json.tmp")
        try:
            with staging.open("w", encoding="utf-8") as handle:
                json.dump(records, handle, indent=2)
            os.replace(staging, path)
        except OSError as exc:
            raise StorageError(f"Unable to write {path}") from exc


def create_store(backend: str, data_dir: Optional[Path] = None) -> EntityStore:
    normalized = backend.strip().lower()
    if normalized == "memory":
        return MemoryStore()
    if normalized == "file":
        return FileStore(data_dir or config.DATA_DIR)
    raise StorageError(f"Unsupported storage backend: {backend}")


_store: Optional[EntityStore] = None
_store_lock = threading.Lock()


def get_store() -> EntityStore:
    global _store
    if _store is not None:
        return _store
    with _store_lock:
        if _store is None:
            _store = create_store(config.STORAGE_BACKEND, config.DATA_DIR)
            _logger.info("Using %s storage backend", config.STORAGE_BACKEND)
        return _store


def configure_store(store: Optional[EntityStore]) -> None:
    """Replace the process-wide store; `None` resets to the configured backend."""

    global _store
    with _store_lock:
        _store = store
