"""Type definitions for the sync layer."""

from .firestore_types import (
    BaseDoc,
    ContentItemDoc,
    QueueItemDoc,
    JobMatchDoc,
    GeneratorDocumentDoc,
    JobFinderConfigDoc,
    CollectionSpec,
    CONTENT_ITEMS,
    JOB_QUEUE,
    JOB_MATCHES,
    GENERATOR_DOCUMENTS,
    JOB_FINDER_CONFIG,
    COLLECTIONS,
    resolve_collection,
)
from .query_types import WhereClause, OrderByClause, QueryConstraints
from .filter_types import ContentItemFilters, QueueItemFilters, JobMatchFilters
from .util_types import (
    ContentItemType,
    ContentItemVisibility,
    QueueStatus,
    QueueItemType,
    QueueSource,
    ApplicationPriority,
    ListenerState,
    ReorderItem,
    BatchResult,
    ContentItemStats,
    QueueStats,
    JobMatchStats,
    GenerateType,
    HistoryDocumentType,
    DocumentHistoryItem,
)
from .config_types import StopList, QueueSettings, AISettings, PromptConfig, PromptValidation
