"""Caller-facing filter types for the collection services."""

from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from .util_types import (
    ApplicationPriority,
    ContentItemType,
    ContentItemVisibility,
    QueueItemType,
    QueueSource,
    QueueStatus,
)


class ContentItemFilters(BaseModel):
    """Filters for content item queries.

    ``parent_id`` distinguishes "not given" from an explicit ``None``
    (which selects root items); check ``model_fields_set``.
    """
    model_config = ConfigDict(use_enum_values=True)

    type: List[ContentItemType] = Field(default_factory=list)
    parent_id: Optional[str] = None
    visibility: List[ContentItemVisibility] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    search: Optional[str] = None
    limit: Optional[int] = Field(default=None, gt=0)

    @property
    def filters_parent(self) -> bool:
        return "parent_id" in self.model_fields_set


class QueueItemFilters(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    type: List[QueueItemType] = Field(default_factory=list)
    status: List[QueueStatus] = Field(default_factory=list)
    source: List[QueueSource] = Field(default_factory=list)
    company_name: Optional[str] = None
    search: Optional[str] = None
    limit: Optional[int] = Field(default=None, gt=0)


class JobMatchFilters(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    min_score: Optional[float] = None
    max_score: Optional[float] = None
    company_name: Optional[str] = None
    application_priority: List[ApplicationPriority] = Field(default_factory=list)
    search: Optional[str] = None
    limit: Optional[int] = Field(default=None, gt=0)
