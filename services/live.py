"""Client-side cache of a store subscription.

A `LiveQuery` opens one subscription and keeps the latest snapshot in memory,
converted to domain objects. Controllers read from it instead of the store,
so everything they show is whatever the last push notification delivered.
"""
import logging
import threading
from typing import Callable, Generic, Iterator, List, Optional, Sequence, TypeVar

from domain.errors import StoreError
from services.persistence import Document, DocumentStore, Where

logger = logging.getLogger(__name__)

T = TypeVar('T')


class LiveQuery(Generic[T]):
    def __init__(self, store: DocumentStore, path: str, convert: Callable[[Document], T],
                 where: Sequence[Where] = ()):
        self.path = path
        self._convert = convert
        self._lock = threading.Lock()
        self._items: List[T] = []
        self._error: Optional[StoreError] = None
        self._loaded = False
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._unsubscribe = store.subscribe(path, self._on_snapshot, where=where,
                                            on_error=self._on_error)

    def _on_snapshot(self, docs: List[Document]):
        items = []
        for d in docs:
            try:
                items.append(self._convert(d))
            except (KeyError, TypeError, ValueError):
                logger.warning("Skipping malformed document %s in %s", d.get('id'), self.path)
        with self._lock:
            self._items = items
            self._error = None
            self._loaded = True

    def _on_error(self, error: StoreError):
        logger.error("Live query on %s failed: %s", self.path, error)
        with self._lock:
            self._error = error

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def error(self) -> Optional[StoreError]:
        return self._error

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    def snapshot(self) -> List[T]:
        with self._lock:
            return list(self._items)

    def find(self, predicate: Callable[[T], bool]) -> Optional[T]:
        return next((item for item in self.snapshot() if predicate(item)), None)

    def __iter__(self) -> Iterator[T]:
        return iter(self.snapshot())

    def __len__(self):
        return len(self.snapshot())

    def close(self):
        unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is not None:
            unsubscribe()


class SubscriptionOwner:
    """Base for controllers that own live queries; `close()` releases them all."""

    def __init__(self):
        self._queries: List[LiveQuery] = []

    def _watch(self, query: LiveQuery) -> LiveQuery:
        self._queries.append(query)
        return query

    @property
    def closed(self) -> bool:
        return all(q.closed for q in self._queries)

    def close(self):
        for q in self._queries:
            q.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
