"""
Live views over store subscriptions.

A view renders the full result set of one query. It seeds itself from the
session cache so a remount does not start from an empty loading state,
replaces its state on every snapshot and mirrors each snapshot into the
cache. Locally hidden entities are kept as optimistic overlays on top of
the server state and never written into the cache.
"""
import logging
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

from business.sync.cache import CacheKey, QueryCache
from business.sync.optimistic import HIDDEN, OptimisticValue
from database.documents.store import Document, DocumentStore, Query, Subscription

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

Listener = Callable[[List[Any]], None]


def _entity_id(entity: Any) -> str:
    return entity.id


class LiveView(Generic[T]):
    def __init__(
        self,
        store: DocumentStore,
        cache: QueryCache,
        cache_key: CacheKey,
        query: Query,
        project: Callable[[List[Document]], List[T]],
        key_of: Callable[[T], str] = _entity_id,
        entity_keys: Optional[Callable[[T], Iterable[Tuple[CacheKey, Any]]]] = None,
    ):
        self._store = store
        self._cache = cache
        self.cache_key = cache_key
        self.query = query
        self._project = project
        self._key_of = key_of
        self._entity_keys = entity_keys
        self._overlays: Dict[str, OptimisticValue] = {}
        self._listeners: List[Listener] = []
        self._subscription: Optional[Subscription] = None
        self.error: Optional[Exception] = None

        cached = cache.get(cache_key)
        self._server: List[T] = list(cached) if cached is not None else []
        self.loading = cached is None

    # Lifecycle

    def start(self) -> "LiveView[T]":
        if self._subscription is None:
            self._subscription = self._store.subscribe(self.query, self._on_snapshot)
        return self

    def stop(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

    def __enter__(self) -> "LiveView[T]":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()

    @property
    def active(self) -> bool:
        return self._subscription is not None

    # State

    @property
    def server_items(self) -> List[T]:
        return list(self._server)

    @property
    def items(self) -> List[T]:
        """Server state with locally hidden entities removed."""
        return [item for item in self._server if not self._is_hidden(self._key_of(item))]

    @property
    def pending_ids(self) -> List[str]:
        return list(self._overlays)

    def _is_hidden(self, entity_id: str) -> bool:
        overlay = self._overlays.get(entity_id)
        return overlay is not None and overlay.hidden

    def on_change(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def _emit(self) -> None:
        items = self.items
        for listener in list(self._listeners):
            try:
                listener(items)
            except Exception as e:
                logger.error(f"Live view listener for {self.cache_key} failed: {e}")

    def _on_snapshot(self, docs: List[Document]) -> None:
        try:
            items = self._project(docs)
        except Exception as e:
            self.error = e
            logger.error(f"Error projecting snapshot for {self.cache_key}: {e}")
            return

        self.error = None
        self._server = items
        self.loading = False
        self._cache.set(self.cache_key, list(items))
        if self._entity_keys is not None:
            for item in items:
                for key, value in self._entity_keys(item):
                    self._cache.set(key, value)

        present = {self._key_of(item): item for item in items}
        for entity_id, overlay in list(self._overlays.items()):
            overlay.receive(present.get(entity_id))
            if overlay.reconciled:
                del self._overlays[entity_id]
        self._emit()

    # Optimistic overlays

    def hide(self, entity_id: str) -> OptimisticValue:
        """Hide an entity locally until the next authoritative snapshot."""
        current = next((i for i in self._server if self._key_of(i) == entity_id), None)
        overlay = OptimisticValue(current)
        overlay.apply(HIDDEN)
        self._overlays[entity_id] = overlay
        self._emit()
        return overlay

    def confirm(self, entity_id: str) -> None:
        overlay = self._overlays.get(entity_id)
        if overlay is None:
            return
        overlay.confirm()
        if overlay.reconciled:
            del self._overlays[entity_id]
            self._emit()

    def revert(self, entity_id: str) -> None:
        overlay = self._overlays.pop(entity_id, None)
        if overlay is None:
            return
        overlay.revert()
        self._emit()

    def run_optimistic(self, entity_id: str, mutation: Callable[[], R]) -> R:
        """
        Hide ``entity_id`` while ``mutation`` runs.

        A failing mutation reinstates the entity and re-raises. A successful
        one leaves the overlay to be reconciled by the next snapshot.
        """
        self.hide(entity_id)
        try:
            result = mutation()
        except Exception as e:
            logger.warning(f"Optimistic update on {entity_id} reverted: {e}")
            self.revert(entity_id)
            raise
        self.confirm(entity_id)
        return result


class EmptyView(Generic[T]):
    """A view that never subscribes and always renders nothing."""

    loading = False
    error = None
    active = False

    def __init__(self, cache_key: CacheKey):
        self.cache_key = cache_key

    def start(self) -> "EmptyView[T]":
        return self

    def stop(self) -> None:
        pass

    def __enter__(self) -> "EmptyView[T]":
        return self

    def __exit__(self, *exc) -> None:
        pass

    @property
    def items(self) -> List[T]:
        return []

    @property
    def server_items(self) -> List[T]:
        return []

    @property
    def pending_ids(self) -> List[str]:
        return []

    def on_change(self, listener: Listener) -> Callable[[], None]:
        return lambda: None
