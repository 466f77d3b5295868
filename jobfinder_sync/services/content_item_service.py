"""Content item service: owned, ordered, hierarchical resume content."""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from jobfinder_sync.apis.Db import Unsubscribe
from jobfinder_sync.documents.DocumentStore import DocumentStore
from jobfinder_sync.documents.SubscriptionCache import SubscriptionCache
from jobfinder_sync.exceptions import NotFoundError, ValidationError
from jobfinder_sync.models.filter_types import ContentItemFilters
from jobfinder_sync.models.firestore_types import CONTENT_ITEMS, ContentItemDoc
from jobfinder_sync.models.query_types import QueryConstraints
from jobfinder_sync.models.util_types import BatchResult, ContentItemStats, ReorderItem
from jobfinder_sync.services.batch_mutations import BatchMutationEngine
from jobfinder_sync.services.hierarchy import (
    ContentItemNode,
    build_hierarchy,
    calculate_stats,
    collect_descendant_ids,
)
from jobfinder_sync.util.identity import IdentityProvider
from jobfinder_sync.util.logger import get_logger

logger = get_logger(__name__)


def matches_search(item: ContentItemDoc, search: Optional[str]) -> bool:
    """Case-insensitive substring match over the whole serialized record."""
    if not search:
        return True
    return search.lower() in item.model_dump_json().lower()


class ContentItemService:
    """Service for the current user's content items."""

    def __init__(
        self,
        store: DocumentStore,
        identity: IdentityProvider,
        cache: Optional[SubscriptionCache] = None,
        batch_size: Optional[int] = None,
    ):
        self.store = store
        self.identity = identity
        self.cache = cache or SubscriptionCache(store)
        self.batches = BatchMutationEngine(store, CONTENT_ITEMS, batch_size=batch_size)

    def _build_constraints(self, user_id: str, filters: ContentItemFilters) -> QueryConstraints:
        constraints = QueryConstraints()
        constraints.add_where("userId", "==", user_id)
        constraints.add_order_by("order", "asc")

        if filters.type:
            constraints.add_where("type", "in", list(filters.type))
        if filters.filters_parent:
            constraints.add_where("parentId", "==", filters.parent_id)
        if filters.visibility:
            constraints.add_where("visibility", "in", list(filters.visibility))
        if filters.tags:
            constraints.add_where("tags", "array-contains-any", list(filters.tags))
        if filters.limit:
            constraints.limit = filters.limit
        return constraints

    async def get_items(self, filters: Optional[ContentItemFilters] = None) -> List[ContentItemDoc]:
        filters = filters or ContentItemFilters()
        user_id = self.identity.require_user_id()
        items = await self.store.list(CONTENT_ITEMS, self._build_constraints(user_id, filters))
        return [item for item in items if matches_search(item, filters.search)]

    async def get_hierarchy(self, filters: Optional[ContentItemFilters] = None) -> List[ContentItemNode]:
        return build_hierarchy(await self.get_items(filters))

    async def get_stats(self, filters: Optional[ContentItemFilters] = None) -> ContentItemStats:
        return calculate_stats(await self.get_hierarchy(filters))

    async def get_item(self, item_id: str) -> Optional[ContentItemDoc]:
        """Ownership-verified read; None when the item does not exist."""
        return await self.store.get_owned(CONTENT_ITEMS, item_id, self.identity.require_user_id())

    async def _require_owned(self, item_id: str) -> ContentItemDoc:
        item = await self.get_item(item_id)
        if item is None:
            raise NotFoundError("Content item", item_id)
        return item

    async def create_item(self, data: Mapping[str, Any]) -> ContentItemDoc:
        """
        Create a content item owned by the current user.

        Raises:
            AuthenticationError: If nobody is signed in
            ValidationError: If the data is not a valid content item
        """
        user_id = self.identity.require_user_id()
        audit_name = self.identity.audit_name()
        payload: Dict[str, Any] = {
            **data,
            "userId": user_id,
            "createdBy": audit_name,
            "updatedBy": audit_name,
        }
        try:
            ContentItemDoc.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid content item: {e}") from e

        item_id = await self.store.create(CONTENT_ITEMS, payload)
        logger.info(f"Created content item {item_id}")
        return await self.store.get(CONTENT_ITEMS, item_id)

    async def update_item(self, item_id: str, data: Mapping[str, Any]) -> ContentItemDoc:
        await self._require_owned(item_id)
        payload = {key: value for key, value in data.items() if key not in ("id", "userId")}
        payload["updatedBy"] = self.identity.audit_name()
        await self.store.update(CONTENT_ITEMS, item_id, payload)
        return await self.store.get(CONTENT_ITEMS, item_id)

    async def delete_item(self, item_id: str, delete_children: bool = False) -> int:
        """
        Delete an item, and with ``delete_children`` every item below it.

        Returns:
            Number of records deleted
        """
        await self._require_owned(item_id)
        if not delete_children:
            await self.store.remove(CONTENT_ITEMS, item_id)
            return 1

        all_items = await self.get_items()
        ids = [item_id] + collect_descendant_ids(all_items, item_id)
        result = await self.batches.batch_delete(ids, self.identity.require_user_id())
        return result.committed

    async def delete_items(self, item_ids: Sequence[str]) -> BatchResult:
        return await self.batches.batch_delete(item_ids, self.identity.require_user_id())

    async def reorder_items(self, items: Sequence[Union[ReorderItem, Mapping[str, Any]]]) -> BatchResult:
        user_id = self.identity.require_user_id()
        return await self.batches.batch_reorder(
            items, user_id, audit={"updatedBy": self.identity.audit_name()}
        )

    def subscribe_to_items(
        self,
        filters: Optional[ContentItemFilters],
        on_data: Callable[[List[ContentItemDoc]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Unsubscribe:
        """Live view of the user's items, shared with other consumers of the same query."""
        filters = filters or ContentItemFilters()
        constraints = self._build_constraints(self.identity.require_user_id(), filters)

        def deliver(items: List[ContentItemDoc]) -> None:
            on_data([item for item in items if matches_search(item, filters.search)])

        return self.cache.subscribe_to_collection(CONTENT_ITEMS, constraints, deliver, on_error)
