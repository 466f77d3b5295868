"""Utility type definitions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, List
from pydantic import BaseModel, Field


class ContentItemType(str, Enum):
    """Content item kinds shown in the experience editor."""
    COMPANY = "company"
    PROJECT = "project"
    SKILL_GROUP = "skill-group"
    EDUCATION = "education"
    PROFILE_SECTION = "profile-section"
    TEXT_SECTION = "text-section"
    ACCOMPLISHMENT = "accomplishment"
    TIMELINE_EVENT = "timeline-event"


class ContentItemVisibility(str, Enum):
    PUBLISHED = "published"
    DRAFT = "draft"
    ARCHIVED = "archived"


class QueueStatus(str, Enum):
    """Processing status of a job-queue item."""
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"
    FILTERED = "filtered"


class QueueItemType(str, Enum):
    JOB = "job"
    COMPANY = "company"
    SCRAPE = "scrape"
    SOURCE_DISCOVERY = "source_discovery"


class QueueSource(str, Enum):
    USER_SUBMISSION = "user_submission"
    USER_REQUEST = "user_request"
    MANUAL_SUBMISSION = "manual_submission"
    AUTOMATED_SCAN = "automated_scan"
    SCRAPER = "scraper"
    WEBHOOK = "webhook"
    EMAIL = "email"


class ApplicationPriority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class ListenerState(str, Enum):
    """Lifecycle of a live subscription."""
    ACTIVE = "active"
    DEGRADED = "degraded"
    ERRORED = "errored"
    TERMINATED = "terminated"


class ReorderItem(BaseModel):
    """New sibling position for one content item."""
    id: str
    order: int


@dataclass
class BatchResult:
    """Outcome of a batched mutation.

    ``committed`` counts only records in groups whose commit succeeded.
    ``halted_at`` is the id whose ownership check stopped the run, if any.
    """
    committed: int = 0
    committed_ids: List[str] = field(default_factory=list)
    skipped_not_found: List[str] = field(default_factory=list)
    batches_committed: int = 0
    halted_at: Optional[str] = None

    @property
    def halted(self) -> bool:
        return self.halted_at is not None


class ContentItemStats(BaseModel):
    """Counts per content item type plus the grand total."""
    total: int = 0
    by_type: Dict[str, int] = Field(default_factory=dict)


class QueueStats(BaseModel):
    """Queue item counts per status."""
    pending: int = 0
    processing: int = 0
    success: int = 0
    failed: int = 0
    skipped: int = 0
    filtered: int = 0
    total: int = 0


class JobMatchStats(BaseModel):
    """Match summary for the current user."""
    total: int = 0
    highPriority: int = 0
    mediumPriority: int = 0
    lowPriority: int = 0
    averageScore: float = 0.0


class GenerateType(str, Enum):
    """What a generator request asked for."""
    RESUME = "resume"
    COVER_LETTER = "coverLetter"
    BOTH = "both"


class HistoryDocumentType(str, Enum):
    RESUME = "resume"
    COVER_LETTER = "cover_letter"
    BOTH = "both"


class DocumentHistoryItem(BaseModel):
    """One generation request as listed in the document history."""
    id: str
    type: HistoryDocumentType = HistoryDocumentType.RESUME
    jobTitle: str = ""
    companyName: str = ""
    createdAt: Optional[datetime] = None
    status: Optional[str] = None
    jobMatchId: Optional[str] = None
