"""Abstract connection to the backing document store."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Literal, Optional, Sequence

from jobfinder_sync.exceptions import LimitExceededError
from jobfinder_sync.models.query_types import QueryConstraints

Unsubscribe = Callable[[], None]


@dataclass
class StoredDocument:
    """Raw document as returned by the store, before normalization."""
    id: str
    data: Dict[str, Any]


@dataclass
class BatchOperation:
    """One write inside an atomic batch group."""
    kind: Literal["set", "update", "delete"]
    collection: str
    doc_id: str
    data: Optional[Dict[str, Any]] = None
    merge: bool = False


class Db(ABC):
    """Database operations base class.

    Instances are constructed and disposed explicitly by the caller; nothing
    here is a module-level singleton. Subclasses implement the request /
    response calls as coroutines and the change feeds as callback
    registrations returning an unsubscribe function.
    """

    max_batch_size: int = 500

    def init(self) -> "Db":
        """Open underlying clients. Returns self so calls can be chained."""
        return self

    def dispose(self) -> None:
        """Close clients and stop every live listener."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[StoredDocument]:
        ...

    @abstractmethod
    async def query(self, collection: str, constraints: QueryConstraints) -> List[StoredDocument]:
        ...

    @abstractmethod
    async def add(self, collection: str, data: Dict[str, Any]) -> str:
        """Create a document with a store-assigned id and return the id."""

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False) -> None:
        ...

    @abstractmethod
    async def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Partial update; fails when the document does not exist."""

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        ...

    @abstractmethod
    async def commit_batch(self, operations: Sequence[BatchOperation]) -> None:
        """Apply all operations atomically."""

    @abstractmethod
    def listen(
        self,
        collection: str,
        constraints: QueryConstraints,
        on_snapshot: Callable[[List[StoredDocument]], None],
        on_error: Callable[[Exception], None],
    ) -> Unsubscribe:
        ...

    @abstractmethod
    def listen_document(
        self,
        collection: str,
        doc_id: str,
        on_snapshot: Callable[[Optional[StoredDocument]], None],
        on_error: Callable[[Exception], None],
    ) -> Unsubscribe:
        ...

    def check_batch_size(self, operations: Sequence[BatchOperation]) -> None:
        """
        Raises:
            LimitExceededError: If the group exceeds the per-batch ceiling
        """
        if len(operations) > self.max_batch_size:
            raise LimitExceededError("batch operations", len(operations), self.max_batch_size)

    # Timestamp functions
    @staticmethod
    def timestamp_now() -> datetime:
        return datetime.now(timezone.utc)
