"""
Firestore implementation of the backing store connection.

Request/response calls go through ``google.cloud.firestore.AsyncClient``.
Change feeds use the synchronous client's ``on_snapshot`` watch, whose
callbacks run on an SDK thread; they are handed to the owning event loop
with ``call_soon_threadsafe`` so consumers only ever run on the loop thread
and snapshots for one query keep their arrival order.

Usage:
    db = create_db()
    store = DocumentStore(db)
    ...
    db.dispose()
"""

import asyncio
import os
from typing import Any, Callable, Dict, List, Optional, Sequence

from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.oauth2 import service_account

from jobfinder_sync.apis.Db import Db, StoredDocument, BatchOperation, Unsubscribe
from jobfinder_sync.config.env_loader import get_firestore_settings
from jobfinder_sync.models.query_types import QueryConstraints
from jobfinder_sync.util.logger import get_logger

logger = get_logger(__name__)

# Firestore's Python client spells array operators with underscores
OPERATORS = {
    "==": "==",
    "!=": "!=",
    "<": "<",
    "<=": "<=",
    ">": ">",
    ">=": ">=",
    "in": "in",
    "not-in": "not-in",
    "array-contains": "array_contains",
    "array-contains-any": "array_contains_any",
}


def build_query(collection_ref, constraints: QueryConstraints):
    """Apply constraints to a (sync or async) collection reference."""
    query = collection_ref
    for clause in constraints.where:
        query = query.where(filter=FieldFilter(clause.field, OPERATORS[clause.operator], clause.value))
    for order in constraints.order_by:
        direction = firestore.Query.DESCENDING if order.direction == "desc" else firestore.Query.ASCENDING
        query = query.order_by(order.field, direction=direction)
    if constraints.start_at is not None:
        query = query.start_at(constraints.start_at)
    if constraints.start_after is not None:
        query = query.start_after(constraints.start_after)
    if constraints.limit is not None:
        query = query.limit(constraints.limit)
    return query


def _to_stored(snapshot) -> Optional[StoredDocument]:
    if snapshot is None or not snapshot.exists:
        return None
    return StoredDocument(id=snapshot.id, data=snapshot.to_dict() or {})


class FirestoreDb(Db):
    """Firestore-backed ``Db``."""

    def __init__(
        self,
        project_id: Optional[str] = None,
        credentials=None,
        database: Optional[str] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        watch_check_interval: Optional[float] = 5.0,
    ):
        self.project_id = project_id
        self.credentials = credentials
        self.database = database
        self._loop = loop
        self.watch_check_interval = watch_check_interval
        self.client = None
        self.watch_client = None
        self._watches: Dict[int, Unsubscribe] = {}

    def _client_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {"project": self.project_id, "credentials": self.credentials}
        if self.database:
            kwargs["database"] = self.database
        return kwargs

    def init(self) -> "FirestoreDb":
        if self.client is None:
            self.client = firestore.AsyncClient(**self._client_kwargs())
            self.watch_client = firestore.Client(**self._client_kwargs())
            logger.info(f"Firestore initialized for project {self.project_id or '(default)'}")
        return self

    def dispose(self) -> None:
        for unsubscribe in list(self._watches.values()):
            unsubscribe()
        self._watches.clear()
        self.client = None
        self.watch_client = None
        logger.info("Firestore connection disposed")

    def _require_client(self):
        if self.client is None:
            raise RuntimeError("FirestoreDb used before init()")
        return self.client

    def _doc_ref(self, collection: str, doc_id: str):
        return self._require_client().collection(collection).document(doc_id)

    async def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        snapshot = await self._doc_ref(collection, doc_id).get()
        return _to_stored(snapshot)

    async def query(self, collection: str, constraints: QueryConstraints) -> List[StoredDocument]:
        query = build_query(self._require_client().collection(collection), constraints)
        snapshots = await query.get()
        return [StoredDocument(id=snap.id, data=snap.to_dict() or {}) for snap in snapshots]

    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        _, doc_ref = await self._require_client().collection(collection).add(data)
        return doc_ref.id

    async def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        await self._doc_ref(collection, doc_id).set(data, merge=merge)

    async def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        await self._doc_ref(collection, doc_id).update(data)

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._doc_ref(collection, doc_id).delete()

    async def commit_batch(self, operations: Sequence[BatchOperation]) -> None:
        self.check_batch_size(operations)
        batch = self._require_client().batch()
        for op in operations:
            ref = self._doc_ref(op.collection, op.doc_id)
            if op.kind == "delete":
                batch.delete(ref)
            elif op.kind == "update":
                batch.update(ref, op.data or {})
            else:
                batch.set(ref, op.data or {}, merge=op.merge)
        await batch.commit()

    def _watch(self, target, description: str, convert, on_snapshot: Callable, on_error: Callable) -> Unsubscribe:
        """
        Open an ``on_snapshot`` watch on ``target``.

        The SDK's watch has no error callback: when its stream dies for good
        it just stops being active. While the watch is open, ``is_active`` is
        polled every ``watch_check_interval`` seconds and a stopped stream is
        reported once through ``on_error`` as ``ServiceUnavailable``.
        """
        if self.watch_client is None:
            raise RuntimeError("FirestoreDb used before init()")
        loop = self._loop or asyncio.get_running_loop()
        closed = False
        check_handle: Optional[asyncio.TimerHandle] = None

        def deliver(payload):
            if not closed:
                on_snapshot(payload)

        def fail(error: Exception):
            if not closed:
                on_error(error)

        def callback(docs, changes, read_time):
            # Runs on the watch thread
            try:
                payload = convert(docs)
            except Exception as e:
                loop.call_soon_threadsafe(fail, e)
                return
            loop.call_soon_threadsafe(deliver, payload)

        watch = target.on_snapshot(callback)
        key = id(watch)

        def check_alive():
            nonlocal check_handle
            check_handle = None
            if closed:
                return
            if not watch.is_active:
                logger.warning(f"Listener on {description} stopped")
                fail(google_exceptions.ServiceUnavailable(f"Listener on {description} stopped"))
                return
            check_handle = loop.call_later(self.watch_check_interval, check_alive)

        def unsubscribe():
            nonlocal closed
            if closed:
                return
            closed = True
            if check_handle is not None:
                check_handle.cancel()
            self._watches.pop(key, None)
            watch.unsubscribe()

        self._watches[key] = unsubscribe
        if self.watch_check_interval:
            check_handle = loop.call_later(self.watch_check_interval, check_alive)
        return unsubscribe

    def listen(
        self,
        collection: str,
        constraints: QueryConstraints,
        on_snapshot: Callable[[List[StoredDocument]], None],
        on_error: Callable[[Exception], None],
    ) -> Unsubscribe:
        query = build_query(self.watch_client.collection(collection), constraints) if self.watch_client else None

        def convert(docs):
            return [StoredDocument(id=snap.id, data=snap.to_dict() or {}) for snap in docs]

        return self._watch(query, collection, convert, on_snapshot, on_error)

    def listen_document(
        self,
        collection: str,
        doc_id: str,
        on_snapshot: Callable[[Optional[StoredDocument]], None],
        on_error: Callable[[Exception], None],
    ) -> Unsubscribe:
        doc_ref = self.watch_client.collection(collection).document(doc_id) if self.watch_client else None

        def convert(docs):
            return _to_stored(docs[0]) if docs else None

        return self._watch(doc_ref, f"{collection}/{doc_id}", convert, on_snapshot, on_error)


def create_db(loop: Optional[asyncio.AbstractEventLoop] = None) -> FirestoreDb:
    """
    Build and initialize a FirestoreDb from environment configuration.

    Environment Variables:
        - GCP_PROJECT_ID: Google Cloud Project ID (optional with the emulator)
        - GOOGLE_APPLICATION_CREDENTIALS: Path to service account JSON (optional)
        - FIRESTORE_EMULATOR_HOST: Emulator address (optional)

    Raises:
        RuntimeError: If the settings are missing or the credentials are invalid
    """
    try:
        settings = get_firestore_settings()
        credentials = None
        if settings["credentials_path"] and not settings["emulator_host"]:
            credentials = service_account.Credentials.from_service_account_file(
                settings["credentials_path"]
            )
        return FirestoreDb(
            project_id=settings["project_id"],
            credentials=credentials,
            database=os.getenv("FIRESTORE_DATABASE") or None,
            loop=loop,
        ).init()
    except Exception as e:
        raise RuntimeError(
            f"Failed to initialize Firestore client: {str(e)}\n"
            f"Ensure GCP_PROJECT_ID is set and credentials are valid."
        ) from e
