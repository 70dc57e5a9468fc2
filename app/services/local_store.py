"""
In-process data store that mimics the parts of Firestore the app uses.
Used when no Firebase credentials are found, and by the test suite.

Supports nested collections, batched writes, the Increment transform and
snapshot listeners. Optionally persists to a JSON file across restarts.
"""

import copy
import json
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from app.utils.logger import get_logger

logger = get_logger(__name__)

_DATETIME_KEY = "__datetime__"


def _json_serial(obj):
    """JSON serializer for objects not serializable by default."""
    if isinstance(obj, datetime):
        return {_DATETIME_KEY: obj.isoformat()}
    raise TypeError(f"Type {type(obj)} not serializable")


def _json_revive(obj: dict):
    if _DATETIME_KEY in obj and len(obj) == 1:
        return datetime.fromisoformat(obj[_DATETIME_KEY])
    return obj


def _new_id() -> str:
    return uuid.uuid4().hex[:20]


class Increment:
    """Counterpart of ``google.cloud.firestore.Increment`` for LocalStore."""

    def __init__(self, value: int):
        self.value = value


class LocalStore:
    """Dict-backed data store that mimics Firestore operations."""

    def __init__(self, data_file: Optional[Path] = None):
        # collection path -> {doc_id: data}
        self.collections: Dict[str, Dict[str, dict]] = {}
        self._lock = threading.RLock()
        self._listeners: List["LocalWatch"] = []
        self._data_file = Path(data_file) if data_file else None

        if self._data_file:
            self._data_file.parent.mkdir(parents=True, exist_ok=True)
            self._load_data()

    def _load_data(self):
        if not self._data_file.exists():
            return
        with open(self._data_file) as f:
            self.collections = json.load(f, object_hook=_json_revive)
        logger.info(
            "LocalStore loaded %d collections from %s",
            len(self.collections),
            self._data_file,
        )

    def _persist(self):
        """Write the whole store to disk as JSON."""
        if not self._data_file:
            return
        try:
            with open(self._data_file, "w") as f:
                json.dump(self.collections, f, indent=2, default=_json_serial)
        except OSError as e:
            logger.error(f"LocalStore persist failed: {e}")

    def collection(self, path: str) -> "CollectionRef":
        return CollectionRef(self, path)

    def batch(self) -> "WriteBatch":
        return WriteBatch(self)

    # ── write path ────────────────────────────────────────────────

    def _apply(self, operations: List[Tuple[str, "DocumentRef", Optional[dict], bool]]):
        """Apply (op, ref, data, merge) tuples atomically, then notify listeners."""
        with self._lock:
            staged = copy.deepcopy(self.collections)
            for op, ref, data, merge in operations:
                docs = staged.setdefault(ref.parent_path, {})
                if op == "set":
                    if merge and ref.id in docs:
                        docs[ref.id] = _merge(docs[ref.id], data)
                    else:
                        docs[ref.id] = _merge({}, data)
                elif op == "update":
                    if ref.id not in docs:
                        raise KeyError(f"No document to update: {ref.path}")
                    docs[ref.id] = _merge(docs[ref.id], data)
                elif op == "delete":
                    docs.pop(ref.id, None)
            self.collections = staged
            self._persist()
            touched = {ref.path for _, ref, _, _ in operations}
            listeners = list(self._listeners)

        for watch in listeners:
            if watch.matches(touched):
                watch.fire()

    def _read(self, parent_path: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            data = self.collections.get(parent_path, {}).get(doc_id)
            return copy.deepcopy(data) if data is not None else None

    def _read_all(self, parent_path: str) -> List[Tuple[str, dict]]:
        with self._lock:
            return [
                (doc_id, copy.deepcopy(data))
                for doc_id, data in self.collections.get(parent_path, {}).items()
            ]

    def _add_listener(self, watch: "LocalWatch") -> "LocalWatch":
        with self._lock:
            self._listeners.append(watch)
        watch.fire()
        return watch

    def _remove_listener(self, watch: "LocalWatch"):
        with self._lock:
            if watch in self._listeners:
                self._listeners.remove(watch)


def _merge(existing: dict, data: dict) -> dict:
    merged = dict(existing)
    for key, value in data.items():
        if isinstance(value, Increment):
            merged[key] = (merged.get(key) or 0) + value.value
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class CollectionRef:
    """Mimics Firestore collection reference and query."""

    def __init__(self, store: LocalStore, path: str):
        self._store = store
        self._path = path
        self._filters: List[Tuple[str, str, Any]] = []
        self._order_by: Optional[Tuple[str, str]] = None
        self._limit_val: Optional[int] = None

    @property
    def path(self) -> str:
        return self._path

    def document(self, doc_id: Optional[str] = None) -> "DocumentRef":
        return DocumentRef(self._store, self._path, doc_id or _new_id())

    def _copy(self) -> "CollectionRef":
        new_ref = CollectionRef(self._store, self._path)
        new_ref._filters = list(self._filters)
        new_ref._order_by = self._order_by
        new_ref._limit_val = self._limit_val
        return new_ref

    def where(self, field: str, op: str, value) -> "CollectionRef":
        new_ref = self._copy()
        new_ref._filters.append((field, op, value))
        return new_ref

    def order_by(self, field: str, direction: str = "ASCENDING") -> "CollectionRef":
        new_ref = self._copy()
        new_ref._order_by = (field, direction)
        return new_ref

    def limit(self, count: int) -> "CollectionRef":
        new_ref = self._copy()
        new_ref._limit_val = count
        return new_ref

    def get(self) -> List["DocumentSnapshot"]:
        results = self._store._read_all(self._path)

        for field, op, value in self._filters:
            filtered = []
            for doc_id, doc in results:
                doc_val = doc.get(field)
                if doc_val is None:
                    continue
                if op == "==" and doc_val == value:
                    filtered.append((doc_id, doc))
                elif op == "!=" and doc_val != value:
                    filtered.append((doc_id, doc))
                elif op == ">=" and doc_val >= value:
                    filtered.append((doc_id, doc))
                elif op == "<=" and doc_val <= value:
                    filtered.append((doc_id, doc))
                elif op == ">" and doc_val > value:
                    filtered.append((doc_id, doc))
                elif op == "<" and doc_val < value:
                    filtered.append((doc_id, doc))
                elif op == "in" and doc_val in value:
                    filtered.append((doc_id, doc))
            results = filtered

        if self._order_by:
            field, direction = self._order_by
            results.sort(
                key=lambda item: item[1].get(field),
                reverse=direction == "DESCENDING",
            )

        if self._limit_val:
            results = results[: self._limit_val]

        return [
            DocumentSnapshot(DocumentRef(self._store, self._path, doc_id), doc)
            for doc_id, doc in results
        ]

    def stream(self):
        return iter(self.get())

    def on_snapshot(self, callback: Callable) -> "LocalWatch":
        """Call ``callback(snapshots, changes, read_time)`` now and after each change."""
        return self._store._add_listener(LocalWatch(self._store, self, callback))


class DocumentRef:
    """Mimics Firestore document reference."""

    def __init__(self, store: LocalStore, parent_path: str, doc_id: str):
        self._store = store
        self.parent_path = parent_path
        self._id = doc_id

    @property
    def id(self) -> str:
        return self._id

    @property
    def path(self) -> str:
        return f"{self.parent_path}/{self._id}"

    def collection(self, name: str) -> CollectionRef:
        return CollectionRef(self._store, f"{self.path}/{name}")

    def get(self) -> "DocumentSnapshot":
        return DocumentSnapshot(self, self._store._read(self.parent_path, self._id))

    def set(self, data: dict, merge: bool = False):
        self._store._apply([("set", self, data, merge)])

    def update(self, data: dict):
        self._store._apply([("update", self, data, False)])

    def delete(self):
        self._store._apply([("delete", self, None, False)])

    def on_snapshot(self, callback: Callable) -> "LocalWatch":
        """Call ``callback([snapshot], changes, read_time)`` now and after each change."""
        return self._store._add_listener(LocalWatch(self._store, self, callback))


class DocumentSnapshot:
    """Mimics Firestore document snapshot."""

    def __init__(self, reference: DocumentRef, data: Optional[dict]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[dict]:
        return copy.deepcopy(self._data) if self._data is not None else None

    def get(self, field: str, default=None):
        if self._data is None:
            return default
        return self._data.get(field, default)


class WriteBatch:
    """Mimics Firestore WriteBatch: all writes land together on commit."""

    def __init__(self, store: LocalStore):
        self._store = store
        self._operations: List[Tuple[str, DocumentRef, Optional[dict], bool]] = []

    def set(self, ref: DocumentRef, data: dict, merge: bool = False):
        self._operations.append(("set", ref, data, merge))

    def update(self, ref: DocumentRef, data: dict):
        self._operations.append(("update", ref, data, False))

    def delete(self, ref: DocumentRef):
        self._operations.append(("delete", ref, None, False))

    def commit(self):
        operations, self._operations = self._operations, []
        if operations:
            self._store._apply(operations)


class LocalWatch:
    """Listener registration returned by ``on_snapshot``."""

    def __init__(self, store: LocalStore, target, callback: Callable):
        self._store = store
        self._target = target
        self._callback = callback

    def matches(self, touched_paths: set) -> bool:
        if isinstance(self._target, DocumentRef):
            return self._target.path in touched_paths
        prefix = f"{self._target.path}/"
        return any(
            path.startswith(prefix) and "/" not in path[len(prefix):]
            for path in touched_paths
        )

    def fire(self):
        if isinstance(self._target, DocumentRef):
            snapshots = [self._target.get()]
        else:
            snapshots = self._target.get()
        self._callback(snapshots, [], datetime.now(timezone.utc))

    def unsubscribe(self):
        self._store._remove_listener(self)


# ── Singleton ────────────────────────────────────────────────────

_local_store: Optional[LocalStore] = None


def get_local_store(data_dir: Optional[str] = None) -> LocalStore:
    """Get or create the singleton LocalStore instance."""
    global _local_store
    if _local_store is None:
        data_file = Path(data_dir) / "store.json" if data_dir else None
        _local_store = LocalStore(data_file)
    return _local_store
