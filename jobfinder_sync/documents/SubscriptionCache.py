"""
Shared live subscriptions keyed by logical query.

Consumers that ask for the same key share one listener. Each consumer
gets its own release handle; the listener is torn down when the last
consumer releases or when the key is cleared.
"""

import itertools
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from jobfinder_sync.apis.Db import Unsubscribe
from jobfinder_sync.documents.DocumentStore import DocumentStore, CollectionLike
from jobfinder_sync.models.firestore_types import resolve_collection
from jobfinder_sync.models.query_types import QueryConstraints
from jobfinder_sync.util.logger import get_logger

logger = get_logger(__name__)

DataCallback = Callable[[Any], None]
ErrorCallback = Callable[[Exception], None]
SubscribeFn = Callable[[DataCallback, ErrorCallback], Unsubscribe]


@dataclass
class _Consumer:
    on_data: DataCallback
    on_error: Optional[ErrorCallback] = None


@dataclass
class CacheEntry:
    key: str
    data: Any = None
    has_data: bool = False
    updated_at: Optional[datetime] = None
    teardown: Optional[Unsubscribe] = None
    consumers: Dict[int, _Consumer] = field(default_factory=dict)


class SubscriptionCache:
    """Reference-counted map of cache key to live subscription."""

    def __init__(self, store: DocumentStore):
        self.store = store
        self._entries: Dict[str, CacheEntry] = {}
        self._tokens = itertools.count()

    def acquire(
        self,
        key: str,
        subscribe_fn: SubscribeFn,
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Unsubscribe:
        """
        Attach a consumer to ``key``, opening the listener on first use.

        A consumer joining a live entry receives the last-known data right
        away. Returns a release function that is safe to call repeatedly.
        """
        token = next(self._tokens)
        consumer = _Consumer(on_data, on_error)
        entry = self._entries.get(key)

        if entry is not None:
            entry.consumers[token] = consumer
            logger.debug(f"Reusing subscription {key} ({len(entry.consumers)} consumers)")
            if entry.has_data:
                on_data(entry.data)
        else:
            entry = CacheEntry(key=key)
            entry.consumers[token] = consumer
            self._entries[key] = entry
            self._open(entry, subscribe_fn)

        released = False

        def release() -> None:
            nonlocal released
            if released:
                return
            released = True
            if self._entries.get(key) is not entry:
                return
            entry.consumers.pop(token, None)
            if not entry.consumers:
                self._close(key)

        return release

    def _open(self, entry: CacheEntry, subscribe_fn: SubscribeFn) -> None:
        def handle_data(data: Any) -> None:
            if self._entries.get(entry.key) is not entry:
                return
            entry.data = data
            entry.has_data = True
            entry.updated_at = datetime.now(timezone.utc)
            for consumer in list(entry.consumers.values()):
                try:
                    consumer.on_data(data)
                except Exception:
                    logger.exception(f"Consumer of {entry.key} failed handling data")

        def handle_error(error: Exception) -> None:
            if self._entries.get(entry.key) is not entry:
                return
            for consumer in list(entry.consumers.values()):
                if not consumer.on_error:
                    continue
                try:
                    consumer.on_error(error)
                except Exception:
                    logger.exception(f"Consumer of {entry.key} failed handling an error")

        try:
            teardown = subscribe_fn(handle_data, handle_error)
        except Exception:
            # Leave the key free so the next acquire opens a fresh listener
            if self._entries.get(entry.key) is entry:
                del self._entries[entry.key]
            raise
        if self._entries.get(entry.key) is entry:
            entry.teardown = teardown
            logger.debug(f"Opened subscription {entry.key}")
        else:
            # Released or cleared during the initial delivery
            teardown()

    def _close(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        entry.consumers.clear()
        if entry.teardown:
            entry.teardown()
            entry.teardown = None
        logger.debug(f"Closed subscription {key}")

    def subscribe_to_collection(
        self,
        collection: CollectionLike,
        constraints: Optional[QueryConstraints],
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
        key: Optional[str] = None,
    ) -> Unsubscribe:
        spec = resolve_collection(collection)
        constraints = constraints or QueryConstraints()
        cache_key = key or constraints.cache_key(spec.name)
        return self.acquire(
            cache_key,
            lambda data_cb, error_cb: self.store.subscribe(spec, constraints, data_cb, error_cb),
            on_data,
            on_error,
        )

    def subscribe_to_document(
        self,
        collection: CollectionLike,
        doc_id: str,
        on_data: DataCallback,
        on_error: Optional[ErrorCallback] = None,
        key: Optional[str] = None,
    ) -> Unsubscribe:
        spec = resolve_collection(collection)
        cache_key = key or f"{spec.name}-{doc_id}"
        return self.acquire(
            cache_key,
            lambda data_cb, error_cb: self.store.subscribe_document(spec, doc_id, data_cb, error_cb),
            on_data,
            on_error,
        )

    def get_cached_data(self, key: str) -> Any:
        entry = self._entries.get(key)
        return entry.data if entry else None

    def last_updated(self, key: str) -> Optional[datetime]:
        entry = self._entries.get(key)
        return entry.updated_at if entry else None

    def clear(self, key: Optional[str] = None) -> None:
        """Tear down one entry, or every entry when no key is given."""
        keys = [key] if key is not None else list(self._entries)
        for cache_key in keys:
            self._close(cache_key)

    def active_keys(self) -> List[str]:
        return list(self._entries)

    def consumer_count(self, key: str) -> int:
        entry = self._entries.get(key)
        return len(entry.consumers) if entry else 0
