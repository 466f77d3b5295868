"""Job queue service: submissions tracked by the processing worker."""

from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from jobfinder_sync.apis.Db import Unsubscribe
from jobfinder_sync.documents.DocumentStore import DocumentStore
from jobfinder_sync.documents.SubscriptionCache import SubscriptionCache
from jobfinder_sync.exceptions import NotFoundError, ValidationError
from jobfinder_sync.models.filter_types import QueueItemFilters
from jobfinder_sync.models.firestore_types import JOB_QUEUE, QueueItemDoc
from jobfinder_sync.models.query_types import QueryConstraints
from jobfinder_sync.models.util_types import QueueItemType, QueueSource, QueueStats, QueueStatus
from jobfinder_sync.util.identity import IdentityProvider
from jobfinder_sync.util.logger import get_logger

logger = get_logger(__name__)

FINISHED_STATUSES = (QueueStatus.SUCCESS.value, QueueStatus.FAILED.value)
DEFAULT_MAX_RETRIES = 3


def matches_search(item: QueueItemDoc, search: Optional[str]) -> bool:
    if not search:
        return True
    text = " ".join(
        value for value in (item.company_name, item.url, item.result_message, item.error_details) if value
    )
    return search.lower() in text.lower()


class JobQueueService:
    """Service for the current user's job-queue items."""

    def __init__(self, store: DocumentStore, identity: IdentityProvider, cache: Optional[SubscriptionCache] = None):
        self.store = store
        self.identity = identity
        self.cache = cache or SubscriptionCache(store)

    def _build_constraints(self, user_id: str, filters: QueueItemFilters) -> QueryConstraints:
        constraints = QueryConstraints()
        constraints.add_where("submitted_by", "==", user_id)

        if filters.type:
            constraints.add_where("type", "in", list(filters.type))
        if filters.status:
            constraints.add_where("status", "in", list(filters.status))
        if filters.company_name:
            constraints.add_where("company_name", "==", filters.company_name)
        if filters.source:
            constraints.add_where("source", "in", list(filters.source))

        # Newest first
        constraints.add_order_by("created_at", "desc")
        if filters.limit:
            constraints.limit = filters.limit
        return constraints

    async def get_items(self, filters: Optional[QueueItemFilters] = None) -> List[QueueItemDoc]:
        filters = filters or QueueItemFilters()
        user_id = self.identity.require_user_id()
        items = await self.store.list(JOB_QUEUE, self._build_constraints(user_id, filters))
        return [item for item in items if matches_search(item, filters.search)]

    async def get_item(self, item_id: str) -> Optional[QueueItemDoc]:
        return await self.store.get_owned(JOB_QUEUE, item_id, self.identity.require_user_id())

    async def _require_owned(self, item_id: str) -> QueueItemDoc:
        item = await self.get_item(item_id)
        if item is None:
            raise NotFoundError("Queue item", item_id)
        return item

    async def create_item(self, data: Mapping[str, Any]) -> QueueItemDoc:
        """Queue a new item as ``pending`` for the current user."""
        payload: Dict[str, Any] = {
            **data,
            "status": QueueStatus.PENDING.value,
            "submitted_by": self.identity.require_user_id(),
            "retry_count": data.get("retry_count", 0),
            "max_retries": data.get("max_retries", DEFAULT_MAX_RETRIES),
        }
        try:
            QueueItemDoc.model_validate(payload)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid queue item: {e}") from e

        item_id = await self.store.create(JOB_QUEUE, payload)
        logger.info(f"Queued {payload.get('type')} item {item_id}")
        return await self.store.get(JOB_QUEUE, item_id)

    async def update_item(self, item_id: str, data: Mapping[str, Any]) -> QueueItemDoc:
        """
        Raises:
            NotFoundError: If the item does not exist
            AuthorizationError: If the item belongs to someone else
            ValidationError: If the item already finished
        """
        existing = await self._require_owned(item_id)
        if existing.status in FINISHED_STATUSES:
            raise ValidationError("Cannot update completed or failed queue items", field="status")

        payload = {key: value for key, value in data.items() if key not in ("id", "submitted_by")}
        await self.store.update(JOB_QUEUE, item_id, payload)
        return await self.store.get(JOB_QUEUE, item_id)

    async def delete_item(self, item_id: str) -> None:
        existing = await self._require_owned(item_id)
        if existing.status != QueueStatus.PENDING.value:
            raise ValidationError("Can only delete pending queue items", field="status")
        await self.store.remove(JOB_QUEUE, item_id)

    async def get_stats(self, filters: Optional[QueueItemFilters] = None) -> QueueStats:
        items = await self.get_items(filters)
        stats = QueueStats(total=len(items))
        for item in items:
            if item.status in QueueStats.model_fields:
                setattr(stats, item.status, getattr(stats, item.status) + 1)
        return stats

    async def get_pending_items(self) -> List[QueueItemDoc]:
        return await self.get_items(QueueItemFilters(status=[QueueStatus.PENDING]))

    async def get_processing_items(self) -> List[QueueItemDoc]:
        return await self.get_items(QueueItemFilters(status=[QueueStatus.PROCESSING]))

    async def get_failed_items(self) -> List[QueueItemDoc]:
        return await self.get_items(QueueItemFilters(status=[QueueStatus.FAILED]))

    async def get_recent_items(self, count: int = 20) -> List[QueueItemDoc]:
        return await self.get_items(QueueItemFilters(limit=count))

    async def submit_job(self, url: str, company_name: str, company_id: Optional[str] = None) -> QueueItemDoc:
        return await self.create_item({
            "type": QueueItemType.JOB.value,
            "url": url,
            "company_name": company_name,
            "company_id": company_id,
            "source": QueueSource.USER_SUBMISSION.value,
        })

    async def submit_scrape(self, scrape_config: Optional[Dict[str, Any]] = None) -> QueueItemDoc:
        # Scrape requests have no specific URL
        return await self.create_item({
            "type": QueueItemType.SCRAPE.value,
            "url": "",
            "company_name": "Automated Scrape",
            "company_id": None,
            "source": QueueSource.USER_REQUEST.value,
            "scrape_config": scrape_config,
        })

    async def submit_company(self, company_name: str, website_url: str) -> QueueItemDoc:
        return await self.create_item({
            "type": QueueItemType.COMPANY.value,
            "url": website_url,
            "company_name": company_name,
            "company_id": None,
            "source": QueueSource.MANUAL_SUBMISSION.value,
        })

    def subscribe_to_items(
        self,
        filters: Optional[QueueItemFilters],
        on_data: Callable[[List[QueueItemDoc]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> Unsubscribe:
        filters = filters or QueueItemFilters()
        constraints = self._build_constraints(self.identity.require_user_id(), filters)

        def deliver(items: List[QueueItemDoc]) -> None:
            on_data([item for item in items if matches_search(item, filters.search)])

        return self.cache.subscribe_to_collection(JOB_QUEUE, constraints, deliver, on_error)
