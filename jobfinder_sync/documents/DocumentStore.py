"""Generic typed document store over a ``Db`` connection."""

import asyncio
from typing import Any, Awaitable, Callable, Dict, Generic, List, Mapping, Optional, Sequence, TypeVar, Union

from pydantic import BaseModel

from jobfinder_sync.apis.Db import Db, BatchOperation, StoredDocument, Unsubscribe
from jobfinder_sync.config.loader import AppConfig, get_degrade_on_permission_denied, get_log_level
from jobfinder_sync.exceptions import (
    AuthorizationError,
    ProjectError,
    StoreError,
    ValidationError,
    error_code,
    PERMISSION_DENIED,
)
from jobfinder_sync.models.firestore_types import CollectionSpec, resolve_collection
from jobfinder_sync.models.query_types import QueryConstraints
from jobfinder_sync.models.util_types import ListenerState
from jobfinder_sync.util.logger import get_logger, set_log_level
from jobfinder_sync.util.normalize import normalize_document
from jobfinder_sync.util.retry import RetryPolicy, retry_operation

logger = get_logger(__name__)

T = TypeVar("T")
CollectionLike = Union[str, CollectionSpec]


class Subscription(Generic[T]):
    """Handle for one live listener.

    Calling the handle (or ``unsubscribe``) tears the listener down; repeated
    calls are no-ops. Error callbacks fire at most once per error episode and
    a later successful snapshot puts the listener back to ``ACTIVE``.
    """

    def __init__(
        self,
        description: str,
        on_data: Callable[[T], None],
        on_error: Optional[Callable[[Exception], None]],
        empty: Callable[[], T],
        degrade_on_permission_denied: bool = True,
    ):
        self.description = description
        self.state = ListenerState.ACTIVE
        self._on_data = on_data
        self._on_error = on_error
        self._empty = empty
        self._degrade = degrade_on_permission_denied
        self._teardown: Optional[Unsubscribe] = None
        self._error_reported = False

    @property
    def active(self) -> bool:
        return self.state is not ListenerState.TERMINATED

    def attach(self, teardown: Unsubscribe) -> None:
        self._teardown = teardown
        # A consumer may have unsubscribed from inside the first delivery
        if self.state is ListenerState.TERMINATED:
            self._teardown = None
            teardown()

    def deliver(self, data: T) -> None:
        if self.state is ListenerState.TERMINATED:
            return
        self.state = ListenerState.ACTIVE
        self._error_reported = False
        self._on_data(data)

    def fail(self, error: Exception) -> None:
        if self.state is ListenerState.TERMINATED or self._error_reported:
            return
        self._error_reported = True

        if self._degrade and error_code(error) == PERMISSION_DENIED:
            self.state = ListenerState.DEGRADED
            logger.warning(f"Permission denied for {self.description}; delivering empty data")
            self._on_data(self._empty())
            return

        self.state = ListenerState.ERRORED
        logger.error(f"Subscription error for {self.description}: {error}")
        if self._on_error:
            self._on_error(error)

    def unsubscribe(self) -> None:
        if self.state is ListenerState.TERMINATED:
            return
        self.state = ListenerState.TERMINATED
        teardown, self._teardown = self._teardown, None
        if teardown:
            teardown()

    def __call__(self) -> None:
        self.unsubscribe()


class DocumentStore:
    """Typed CRUD and subscriptions over registered collections.

    Every call resolves its collection through the registry first, so an
    unknown name fails before any backend round-trip. Reads and idempotent
    writes go through the retry utility; ``create`` does not, since a
    retried add could write twice.
    """

    def __init__(
        self,
        db: Db,
        retry_policy: Optional[RetryPolicy] = None,
        degrade_on_permission_denied: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.db = db
        self.retry_policy = retry_policy or RetryPolicy()
        self.degrade_on_permission_denied = degrade_on_permission_denied
        self._sleep = sleep

    @classmethod
    def from_config(cls, db: Db, config: AppConfig) -> "DocumentStore":
        """Build a store from loaded settings; also applies the configured log level."""
        set_log_level(get_log_level(config))
        return cls(
            db,
            retry_policy=RetryPolicy.from_config(config),
            degrade_on_permission_denied=get_degrade_on_permission_denied(config),
        )

    async def _call(self, operation: str, collection: str, fn: Callable[[], Awaitable[T]], retry: bool = True) -> T:
        try:
            if not retry:
                return await fn()
            return await retry_operation(
                fn,
                max_attempts=self.retry_policy.max_attempts,
                base_delay=self.retry_policy.base_delay_seconds,
                sleep=self._sleep,
                description=f"{operation} ({collection})",
            )
        except ProjectError:
            raise
        except Exception as e:
            raise StoreError(operation, collection, e) from e

    def _parse(self, spec: CollectionSpec, stored: StoredDocument):
        return spec.parse(stored.id, normalize_document(stored.data))

    async def get(self, collection: CollectionLike, doc_id: str):
        """Fetch one record; an absent record is ``None``, not an error."""
        spec = resolve_collection(collection)
        stored = await self._call("fetch document", spec.name, lambda: self.db.get(spec.name, doc_id))
        if stored is None:
            return None
        return self._parse(spec, stored)

    async def list(self, collection: CollectionLike, constraints: Optional[QueryConstraints] = None) -> List[Any]:
        spec = resolve_collection(collection)
        constraints = constraints or QueryConstraints()
        stored = await self._call("list documents", spec.name, lambda: self.db.query(spec.name, constraints))
        return [self._parse(spec, doc) for doc in stored]

    async def get_owned(self, collection: CollectionLike, doc_id: str, user_id: str):
        """
        Fetch a record and verify the acting identity owns it.

        Returns:
            The record, or None when it does not exist

        Raises:
            AuthorizationError: If the record belongs to someone else
        """
        spec = resolve_collection(collection)
        if not spec.owned:
            raise ValidationError(f"Collection '{spec.name}' has no owner field")
        record = await self.get(spec, doc_id)
        if record is None:
            return None
        if spec.owner_of(record) != user_id:
            raise AuthorizationError(resource=doc_id, collection=spec.name)
        return record

    async def create(self, collection: CollectionLike, data: Mapping[str, Any]) -> str:
        """Create a record with a store-assigned id; audit fields default to now."""
        spec = resolve_collection(collection)
        now = self.db.timestamp_now()
        payload = _to_payload(data)
        payload.setdefault(spec.created_field, now)
        payload.setdefault(spec.updated_field, now)
        doc_id = await self._call("create document", spec.name, lambda: self.db.add(spec.name, payload), retry=False)
        logger.debug(f"Created {spec.name}/{doc_id}")
        return doc_id

    async def upsert(self, collection: CollectionLike, doc_id: str, data: Mapping[str, Any], merge: bool = False) -> None:
        spec = resolve_collection(collection)
        now = self.db.timestamp_now()
        payload = _to_payload(data)
        if not merge:
            payload.setdefault(spec.created_field, now)
        payload[spec.updated_field] = now
        await self._call("upsert document", spec.name, lambda: self.db.set(spec.name, doc_id, payload, merge=merge))

    async def update(self, collection: CollectionLike, doc_id: str, partial: Mapping[str, Any]) -> None:
        """Partial update; the backing store rejects it when the record is missing."""
        spec = resolve_collection(collection)
        payload = _to_payload(partial)
        payload[spec.updated_field] = self.db.timestamp_now()
        await self._call("update document", spec.name, lambda: self.db.update(spec.name, doc_id, payload))

    async def remove(self, collection: CollectionLike, doc_id: str) -> None:
        spec = resolve_collection(collection)
        await self._call("delete document", spec.name, lambda: self.db.delete(spec.name, doc_id))

    async def commit_batch(self, operations: Sequence[BatchOperation]) -> None:
        """Submit one atomic group, stamping the update audit field on writes."""
        if not operations:
            return
        self.db.check_batch_size(operations)
        now = self.db.timestamp_now()
        stamped = []
        for op in operations:
            spec = resolve_collection(op.collection)
            if op.kind == "delete":
                stamped.append(op)
                continue
            data = dict(op.data or {})
            data[spec.updated_field] = now
            stamped.append(BatchOperation(op.kind, spec.name, op.doc_id, data, op.merge))
        collections = ", ".join(sorted({op.collection for op in stamped}))
        await self._call("commit batch", collections, lambda: self.db.commit_batch(stamped))

    def subscribe(
        self,
        collection: CollectionLike,
        constraints: Optional[QueryConstraints],
        on_data: Callable[[List[Any]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Subscription:
        """
        Open a live query.

        ``on_data`` receives the full normalized result set on every change.
        Permission-denied degrades to an empty list; other errors reach
        ``on_error`` once per episode.
        """
        spec = resolve_collection(collection)
        constraints = constraints or QueryConstraints()
        subscription: Subscription[List[Any]] = Subscription(
            f"{spec.name} query", on_data, on_error, list, self.degrade_on_permission_denied
        )

        def handle_snapshot(docs: List[StoredDocument]):
            try:
                records = [self._parse(spec, doc) for doc in docs]
            except Exception as e:
                subscription.fail(e)
                return
            subscription.deliver(records)

        try:
            subscription.attach(self.db.listen(spec.name, constraints, handle_snapshot, subscription.fail))
        except Exception as e:
            subscription.fail(e)
        return subscription

    def subscribe_document(
        self,
        collection: CollectionLike,
        doc_id: str,
        on_data: Callable[[Optional[Any]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Subscription:
        """Open a live single-record listener; absence is delivered as ``None``."""
        spec = resolve_collection(collection)
        subscription: Subscription[Optional[Any]] = Subscription(
            f"{spec.name}/{doc_id}", on_data, on_error, lambda: None, self.degrade_on_permission_denied
        )

        def handle_snapshot(doc: Optional[StoredDocument]):
            try:
                record = self._parse(spec, doc) if doc is not None else None
            except Exception as e:
                subscription.fail(e)
                return
            subscription.deliver(record)

        try:
            subscription.attach(self.db.listen_document(spec.name, doc_id, handle_snapshot, subscription.fail))
        except Exception as e:
            subscription.fail(e)
        return subscription


def _to_payload(data: Union[BaseModel, Mapping[str, Any]]) -> Dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_none=True, exclude={"id"})
    payload = dict(data)
    payload.pop("id", None)
    return payload
