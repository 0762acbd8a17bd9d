"""JSON-file document store with real-time listeners.

Each collection path (e.g. ``artifacts/<app>/public/data/exams``) maps onto one
JSON file holding a list of documents, each carrying its ``id``. Writes are
atomic (temp file + move) and every commit pushes a fresh snapshot to the
subscribers of that path, in commit order, from the writer's thread.

One store instance is shared by all sessions of a process; its lock is what
makes ``add_unique`` a real check-and-insert.
"""
import copy
import inspect
import json
import logging
import os
import shutil
import tempfile
import threading
import weakref
from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence

from domain.errors import StoreError
from domain.models import now_iso
from utils.ids import new_document_id
from utils.paths import collection_file

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
SnapshotCallback = Callable[[List[Document]], None]
ErrorCallback = Callable[[StoreError], None]


class _ServerTimestamp:
    def __repr__(self):
        return 'SERVER_TIMESTAMP'


# Replaced by the commit time when a document is written.
SERVER_TIMESTAMP = _ServerTimestamp()


class Where(NamedTuple):
    field: str
    op: str
    value: Any

    def matches(self, doc: Document) -> bool:
        actual = doc.get(self.field)
        if self.op == '==':
            return actual == self.value
        if self.op == '!=':
            return actual != self.value
        if self.op == 'in':
            return actual in self.value
        raise ValueError(f"Unsupported query operator: {self.op!r}")


def _filter(docs: Iterable[Document], where: Sequence[Where]) -> List[Document]:
    return [d for d in docs if all(w.matches(d) for w in where)]


def _callback_ref(fn: Callable) -> Callable[[], Optional[Callable]]:
    # Bound methods are held weakly so an owner dropped without close() unregisters itself.
    if inspect.ismethod(fn):
        return weakref.WeakMethod(fn)
    return lambda: fn


class _Listener:
    __slots__ = ('_on_snapshot', '_on_error', 'where')

    def __init__(self, on_snapshot: SnapshotCallback, where: Sequence[Where], on_error: Optional[ErrorCallback]):
        self._on_snapshot = _callback_ref(on_snapshot)
        self._on_error = _callback_ref(on_error) if on_error is not None else None
        self.where = where

    @property
    def on_snapshot(self) -> Optional[SnapshotCallback]:
        return self._on_snapshot()

    @property
    def on_error(self) -> Optional[ErrorCallback]:
        return self._on_error() if self._on_error is not None else None

    @property
    def alive(self) -> bool:
        return self._on_snapshot() is not None


class DocumentStore:
    def __init__(self, data_dir: str):
        self.data_dir = os.path.normpath(data_dir)
        self._lock = threading.RLock()
        self._listeners: Dict[str, List[_Listener]] = defaultdict(list)

    # --- file access ---

    def _read(self, path: str) -> List[Document]:
        file_path = collection_file(self.data_dir, path)
        if not os.path.exists(file_path):
            return []
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreError(f"Failed to read {path}: {e}") from e
        if not isinstance(data, list):
            raise StoreError(f"Malformed collection file for {path}")
        return data

    def _atomic_write(self, path: str, docs: List[Document]):
        file_path = collection_file(self.data_dir, path)
        try:
            os.makedirs(os.path.dirname(file_path), exist_ok=True)
            tmp_fd, tmp_path = tempfile.mkstemp(
                prefix='tmp_', suffix='.json', dir=os.path.dirname(file_path))
            with os.fdopen(tmp_fd, 'w', encoding='utf-8') as f:
                json.dump(docs, f, ensure_ascii=False, indent=2)
            shutil.move(tmp_path, file_path)
        except OSError as e:
            raise StoreError(f"Failed to write {path}: {e}") from e

    def _commit(self, path: str, docs: List[Document]):
        self._atomic_write(path, docs)
        self._notify(path, docs)

    @staticmethod
    def _resolve_timestamps(data: Document) -> Document:
        now = None
        resolved = {}
        for k, v in data.items():
            if v is SERVER_TIMESTAMP:
                now = now or now_iso()
                v = now
            resolved[k] = v
        return resolved

    # --- reads ---

    def get(self, path: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            doc = next((d for d in self._read(path) if d.get('id') == doc_id), None)
            return copy.deepcopy(doc)

    def query(self, path: str, where: Sequence[Where] = ()) -> List[Document]:
        with self._lock:
            return copy.deepcopy(_filter(self._read(path), where))

    # --- writes ---

    def set(self, path: str, doc_id: str, data: Document) -> Document:
        """Create or overwrite the document ``doc_id``."""
        with self._lock:
            docs = self._read(path)
            doc = {**self._resolve_timestamps(data), 'id': doc_id}
            idx = next((i for i, d in enumerate(docs) if d.get('id') == doc_id), None)
            if idx is None:
                docs.append(doc)
            else:
                docs[idx] = doc
            self._commit(path, docs)
            logger.info("set %s/%s", path, doc_id)
            return copy.deepcopy(doc)

    def add(self, path: str, data: Document) -> str:
        with self._lock:
            docs = self._read(path)
            doc_id = new_document_id()
            docs.append({**self._resolve_timestamps(data), 'id': doc_id})
            self._commit(path, docs)
            logger.info("add %s/%s", path, doc_id)
            return doc_id

    def add_unique(self, path: str, data: Document, unique_on: Sequence[str]) -> Optional[str]:
        """Insert unless a document already has the same values for ``unique_on``.

        Returns the new id, or None when a matching document exists. The check
        and the insert happen under one lock acquisition.
        """
        with self._lock:
            docs = self._read(path)
            key = [Where(f, '==', data.get(f)) for f in unique_on]
            if _filter(docs, key):
                logger.warning("add_unique rejected on %s for %s", path,
                               {f: data.get(f) for f in unique_on})
                return None
            doc_id = new_document_id()
            docs.append({**self._resolve_timestamps(data), 'id': doc_id})
            self._commit(path, docs)
            logger.info("add %s/%s", path, doc_id)
            return doc_id

    def update(self, path: str, doc_id: str, changes: Document) -> Document:
        with self._lock:
            docs = self._read(path)
            idx = next((i for i, d in enumerate(docs) if d.get('id') == doc_id), None)
            if idx is None:
                raise StoreError(f"No document to update: {path}/{doc_id}")
            docs[idx] = {**docs[idx], **self._resolve_timestamps(changes), 'id': doc_id}
            self._commit(path, docs)
            logger.info("update %s/%s fields=%s", path, doc_id, sorted(changes))
            return copy.deepcopy(docs[idx])

    def delete(self, path: str, doc_id: str) -> bool:
        with self._lock:
            docs = self._read(path)
            remaining = [d for d in docs if d.get('id') != doc_id]
            if len(remaining) == len(docs):
                return False
            self._commit(path, remaining)
            logger.info("delete %s/%s", path, doc_id)
            return True

    # --- listeners ---

    def subscribe(self, path: str, on_snapshot: SnapshotCallback,
                  where: Sequence[Where] = (),
                  on_error: Optional[ErrorCallback] = None) -> Callable[[], None]:
        """Register a listener and deliver the current snapshot immediately.

        Returns an unsubscribe callable; calling it more than once is harmless.
        Bound-method callbacks are referenced weakly: once their owner is garbage
        collected the listener is dropped on the next notification.
        """
        listener = _Listener(on_snapshot, tuple(where), on_error)
        with self._lock:
            self._listeners[path].append(listener)
            try:
                docs = self._read(path)
            except StoreError as e:
                self._deliver_error(listener, e)
            else:
                self._deliver(listener, docs)

        def unsubscribe():
            with self._lock:
                listeners = self._listeners[path]
                if listener in listeners:
                    listeners.remove(listener)
        return unsubscribe

    def listener_count(self, path: str) -> int:
        with self._lock:
            return len(self._live_listeners(path))

    def _live_listeners(self, path: str) -> List[_Listener]:
        """Listeners of ``path`` whose callbacks still exist; dead ones are dropped."""
        listeners = self._listeners.get(path, [])
        alive = [listener for listener in listeners if listener.alive]
        if len(alive) != len(listeners):
            logger.info("Pruned %d abandoned listener(s) on %s", len(listeners) - len(alive), path)
            self._listeners[path] = alive
        return list(alive)

    def _notify(self, path: str, docs: List[Document]):
        for listener in self._live_listeners(path):
            self._deliver(listener, docs)

    @staticmethod
    def _deliver(listener: _Listener, docs: List[Document]):
        on_snapshot = listener.on_snapshot
        if on_snapshot is None:
            return
        try:
            on_snapshot(copy.deepcopy(_filter(docs, listener.where)))
        except Exception:
            logger.exception("Snapshot listener failed")

    @staticmethod
    def _deliver_error(listener: _Listener, error: StoreError):
        on_error = listener.on_error
        if on_error is None:
            logger.error("Subscription error with no handler: %s", error)
            return
        try:
            on_error(error)
        except Exception:
            logger.exception("Snapshot error handler failed")
