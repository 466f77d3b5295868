"""Batched delete and reorder for owned records."""

from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple, Union

from jobfinder_sync.apis.Db import BatchOperation
from jobfinder_sync.documents.DocumentStore import DocumentStore, CollectionLike
from jobfinder_sync.exceptions import (
    BatchAuthorizationError,
    BatchCommitError,
    BatchReadError,
    ValidationError,
)
from jobfinder_sync.models.firestore_types import resolve_collection
from jobfinder_sync.models.util_types import BatchResult, ReorderItem
from jobfinder_sync.util.logger import get_logger

logger = get_logger(__name__)


class BatchMutationEngine:
    """Chunk per-record mutations into atomic groups with per-record ownership checks.

    Each candidate is fetched first. Missing records are skipped and
    reported. A record owned by someone else stops the whole run: the
    group being filled is dropped and BatchAuthorizationError carries the
    result so far; a failed read raises BatchReadError the same
    way. Full groups are committed as soon as they fill, so a
    halt or commit failure leaves earlier groups committed.
    """

    def __init__(self, store: DocumentStore, collection: CollectionLike, batch_size: Optional[int] = None):
        self.store = store
        self.spec = resolve_collection(collection)
        if not self.spec.owned:
            raise ValidationError(f"Collection '{self.spec.name}' has no owner field")

        ceiling = store.db.max_batch_size
        self.batch_size = batch_size or ceiling
        if not 1 <= self.batch_size <= ceiling:
            raise ValidationError(f"batch_size must be between 1 and {ceiling}", field="batch_size")

    async def batch_delete(self, ids: Iterable[str], owner_id: str) -> BatchResult:
        """Delete every listed record owned by ``owner_id``."""
        def operations() -> Iterator[Tuple[str, BatchOperation]]:
            for doc_id in ids:
                yield doc_id, BatchOperation("delete", self.spec.name, doc_id)

        return await self._run("delete", operations(), owner_id)

    async def batch_reorder(
        self,
        items: Iterable[Union[ReorderItem, Mapping[str, Any]]],
        owner_id: str,
        audit: Optional[Dict[str, Any]] = None,
    ) -> BatchResult:
        """Write new ``order`` values; ``audit`` fields are added to every update."""
        def operations() -> Iterator[Tuple[str, BatchOperation]]:
            for raw in items:
                item = raw if isinstance(raw, ReorderItem) else ReorderItem.model_validate(raw)
                data = {"order": item.order, **(audit or {})}
                yield item.id, BatchOperation("update", self.spec.name, item.id, data)

        return await self._run("reorder", operations(), owner_id)

    async def _run(self, action: str, operations: Iterable[Tuple[str, BatchOperation]], owner_id: str) -> BatchResult:
        result = BatchResult()
        group: List[BatchOperation] = []
        seen = set()

        for doc_id, op in operations:
            if doc_id in seen:
                continue
            seen.add(doc_id)

            try:
                record = await self.store.get(self.spec, doc_id)
            except Exception as e:
                result.halted_at = doc_id
                logger.error(f"Batch {action} in {self.spec.name} stopped reading {doc_id}: {e}")
                raise BatchReadError(self.spec.name, doc_id, result, e) from e
            if record is None:
                result.skipped_not_found.append(doc_id)
                continue

            if self.spec.owner_of(record) != owner_id:
                result.halted_at = doc_id
                logger.warning(
                    f"Batch {action} in {self.spec.name} halted at {doc_id}: not owned by {owner_id} "
                    f"({result.committed} committed)"
                )
                raise BatchAuthorizationError(doc_id, self.spec.name, result)

            group.append(op)
            if len(group) >= self.batch_size:
                await self._commit(action, group, result)
                group = []

        if group:
            await self._commit(action, group, result)

        logger.info(
            f"Batch {action} in {self.spec.name}: {result.committed} committed in "
            f"{result.batches_committed} batches, {len(result.skipped_not_found)} not found"
        )
        return result

    async def _commit(self, action: str, group: List[BatchOperation], result: BatchResult) -> None:
        group_index = result.batches_committed
        try:
            await self.store.commit_batch(group)
        except Exception as e:
            logger.error(f"Batch {action} group {group_index} failed in {self.spec.name}: {e}")
            raise BatchCommitError(self.spec.name, group_index, result, e) from e

        result.committed += len(group)
        result.committed_ids.extend(op.doc_id for op in group)
        result.batches_committed += 1
        logger.info(f"Committed {action} batch {group_index} ({len(group)} operations) in {self.spec.name}")
