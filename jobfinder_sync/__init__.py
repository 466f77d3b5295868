"""Real-time Firestore sync and mutation layer for the job finder app."""

from jobfinder_sync.apis import Db, FirestoreDb, create_db
from jobfinder_sync.documents import DocumentStore, SubscriptionCache
from jobfinder_sync.services import (
    BatchMutationEngine,
    ContentItemService,
    JobQueueService,
    JobMatchService,
    JobFinderConfigService,
    GeneratorDocumentService,
    build_hierarchy,
    calculate_stats,
)
from jobfinder_sync.util import normalize_value, retry_operation

__version__ = "0.1.0"
