"""Structured query constraints translated by the backing store adapter."""

import json
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

WhereOperator = Literal[
    "==", "!=", "<", "<=", ">", ">=",
    "in", "not-in", "array-contains", "array-contains-any",
]

SortDirection = Literal["asc", "desc"]


class WhereClause(BaseModel):
    """Single field predicate."""
    field: str
    operator: WhereOperator
    value: Any = None


class OrderByClause(BaseModel):
    field: str
    direction: SortDirection = "asc"


class QueryConstraints(BaseModel):
    """Predicates, ordering and cursors for a collection query.

    ``start_at`` / ``start_after`` are maps of ordered field values, the
    form Firestore cursors accept.
    """
    where: List[WhereClause] = Field(default_factory=list)
    order_by: List[OrderByClause] = Field(default_factory=list)
    limit: Optional[int] = None
    start_after: Optional[Dict[str, Any]] = None
    start_at: Optional[Dict[str, Any]] = None

    @field_validator("limit")
    @classmethod
    def _positive_limit(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value <= 0:
            raise ValueError("limit must be a positive integer")
        return value

    def add_where(self, field: str, operator: WhereOperator, value: Any) -> "QueryConstraints":
        self.where.append(WhereClause(field=field, operator=operator, value=value))
        return self

    def add_order_by(self, field: str, direction: SortDirection = "asc") -> "QueryConstraints":
        self.order_by.append(OrderByClause(field=field, direction=direction))
        return self

    def cache_key(self, collection: str) -> str:
        """Deterministic key identifying this query on ``collection``."""
        payload = json.dumps(self.model_dump(mode="json"), sort_keys=True, separators=(",", ":"))
        return f"{collection}-{payload}"
