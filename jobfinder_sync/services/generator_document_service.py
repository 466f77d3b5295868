"""Generator documents service: resume and cover-letter generation history."""

from typing import Callable, Iterable, List, Optional

from jobfinder_sync.apis.Db import Unsubscribe
from jobfinder_sync.documents.DocumentStore import DocumentStore
from jobfinder_sync.documents.SubscriptionCache import SubscriptionCache
from jobfinder_sync.models.firestore_types import GENERATOR_DOCUMENTS, GeneratorDocumentDoc
from jobfinder_sync.models.query_types import QueryConstraints
from jobfinder_sync.models.util_types import DocumentHistoryItem, GenerateType, HistoryDocumentType
from jobfinder_sync.util.identity import IdentityProvider
from jobfinder_sync.util.logger import get_logger

logger = get_logger(__name__)

REQUEST_TYPE = "request"

HISTORY_TYPES = {
    GenerateType.COVER_LETTER.value: HistoryDocumentType.COVER_LETTER,
    GenerateType.BOTH.value: HistoryDocumentType.BOTH,
}


def to_history_items(documents: Iterable[GeneratorDocumentDoc]) -> List[DocumentHistoryItem]:
    """Requests only, in input order; responses are dropped."""
    items = []
    for document in documents:
        if document.type != REQUEST_TYPE:
            continue
        job = document.job or {}
        items.append(DocumentHistoryItem(
            id=document.id,
            type=HISTORY_TYPES.get(document.generateType, HistoryDocumentType.RESUME),
            jobTitle=job.get("role") or "",
            companyName=job.get("company") or "",
            createdAt=document.createdAt,
            status=document.status,
            jobMatchId=getattr(document, "jobMatchId", None),
        ))
    return items


class GeneratorDocumentService:
    """
    Service for generator requests and responses.

    The collection is shared: every signed-in editor sees every document,
    so reads are not scoped to the acting user.
    """

    def __init__(self, store: DocumentStore, identity: IdentityProvider, cache: Optional[SubscriptionCache] = None):
        self.store = store
        self.identity = identity
        self.cache = cache or SubscriptionCache(store)

    def _build_constraints(self, limit: Optional[int] = None) -> QueryConstraints:
        constraints = QueryConstraints().add_order_by("createdAt", "desc")
        if limit:
            constraints.limit = limit
        return constraints

    async def get_documents(self, limit: Optional[int] = None) -> List[GeneratorDocumentDoc]:
        """Requests and responses, newest first."""
        self.identity.require_user_id()
        return await self.store.list(GENERATOR_DOCUMENTS, self._build_constraints(limit))

    async def get_document(self, document_id: str) -> Optional[GeneratorDocumentDoc]:
        self.identity.require_user_id()
        return await self.store.get(GENERATOR_DOCUMENTS, document_id)

    async def get_history(self, limit: Optional[int] = None) -> List[DocumentHistoryItem]:
        return to_history_items(await self.get_documents(limit))

    async def delete_document(self, document_id: str) -> None:
        self.identity.require_user_id()
        await self.store.remove(GENERATOR_DOCUMENTS, document_id)
        logger.info(f"Deleted generator document {document_id}")

    def subscribe_to_documents(
        self,
        on_data: Callable[[List[GeneratorDocumentDoc]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        limit: Optional[int] = None,
    ) -> Unsubscribe:
        self.identity.require_user_id()
        return self.cache.subscribe_to_collection(GENERATOR_DOCUMENTS, self._build_constraints(limit), on_data, on_error)

    def subscribe_to_history(
        self,
        on_data: Callable[[List[DocumentHistoryItem]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
        limit: Optional[int] = None,
    ) -> Unsubscribe:
        """Live history, newest first; shares the listener with ``subscribe_to_documents``."""
        return self.subscribe_to_documents(
            lambda documents: on_data(to_history_items(documents)), on_error, limit
        )
