"""Firestore document type definitions and the collection registry."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field

from jobfinder_sync.exceptions import UnknownCollectionError


class BaseDoc(BaseModel):
    """Base document type for all Firestore documents.

    Unknown fields are kept so records survive a read/write round trip.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ContentItemDoc(BaseDoc):
    """Experience/resume content block owned by one user."""

    userId: str
    type: str
    parentId: Optional[str] = None
    order: int = 0
    visibility: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    createdBy: Optional[str] = None
    updatedBy: Optional[str] = None


class QueueItemDoc(BaseModel):
    """Job-queue entry; this collection uses snake_case audit fields."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    type: str
    status: str = "pending"
    url: str = ""
    company_name: str = ""
    company_id: Optional[str] = None
    source: Optional[str] = None
    submitted_by: Optional[str] = None
    retry_count: int = 0
    max_retries: int = 3
    result_message: Optional[str] = None
    error_details: Optional[str] = None
    scraped_data: Optional[Dict[str, Any]] = None
    scrape_config: Optional[Dict[str, Any]] = None
    source_discovery_config: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class JobMatchDoc(BaseDoc):
    """Scored job posting written by the matching worker."""

    submittedBy: Optional[str] = None
    jobTitle: str = ""
    companyName: str = ""
    location: Optional[str] = None
    jobDescription: Optional[str] = None
    url: Optional[str] = None
    matchScore: float = 0.0
    matchedSkills: List[str] = Field(default_factory=list)
    missingSkills: List[str] = Field(default_factory=list)
    applicationPriority: Optional[str] = None
    matchedAt: Optional[datetime] = None


class GeneratorDocumentDoc(BaseDoc):
    """Resume/cover-letter generation request or response record."""

    type: Optional[str] = None
    generateType: Optional[str] = None
    status: Optional[str] = None
    access: Optional[Dict[str, Any]] = None
    job: Optional[Dict[str, Any]] = None
    files: Optional[Dict[str, Any]] = None


class JobFinderConfigDoc(BaseDoc):
    """Shared worker configuration document (stop list, queue settings, AI settings)."""

    updatedBy: Optional[str] = None


DocT = TypeVar("DocT", bound=BaseModel)


@dataclass(frozen=True)
class CollectionSpec(Generic[DocT]):
    """Static description of one collection: schema, owner field, audit fields."""

    name: str
    model: Type[DocT]
    owner_field: Optional[str] = None
    created_field: str = "createdAt"
    updated_field: str = "updatedAt"

    @property
    def owned(self) -> bool:
        return self.owner_field is not None

    def parse(self, doc_id: str, data: Mapping[str, Any]) -> DocT:
        """Build the record model from normalized document data."""
        return self.model.model_validate({**data, "id": doc_id})

    def owner_of(self, record: Union[BaseModel, Mapping[str, Any]]) -> Optional[str]:
        if not self.owner_field:
            return None
        if isinstance(record, BaseModel):
            return getattr(record, self.owner_field, None)
        return record.get(self.owner_field)


CONTENT_ITEMS = CollectionSpec("content-items", ContentItemDoc, owner_field="userId")
JOB_QUEUE = CollectionSpec(
    "job-queue",
    QueueItemDoc,
    owner_field="submitted_by",
    created_field="created_at",
    updated_field="updated_at",
)
JOB_MATCHES = CollectionSpec("job-matches", JobMatchDoc, owner_field="submittedBy")
GENERATOR_DOCUMENTS = CollectionSpec("generator-documents", GeneratorDocumentDoc)
JOB_FINDER_CONFIG = CollectionSpec("job-finder-config", JobFinderConfigDoc)

COLLECTIONS: Dict[str, CollectionSpec] = {
    spec.name: spec
    for spec in (CONTENT_ITEMS, JOB_QUEUE, JOB_MATCHES, GENERATOR_DOCUMENTS, JOB_FINDER_CONFIG)
}


def resolve_collection(collection: Union[str, CollectionSpec]) -> CollectionSpec:
    """Look up a registered collection.

    Raises:
        UnknownCollectionError: If the name is not registered
    """
    if isinstance(collection, CollectionSpec):
        if COLLECTIONS.get(collection.name) is not collection:
            raise UnknownCollectionError(collection.name)
        return collection
    spec = COLLECTIONS.get(collection)
    if spec is None:
        raise UnknownCollectionError(str(collection))
    return spec
