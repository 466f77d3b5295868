"""Exceptions package initialization."""

from .CustomError import (
    ProjectError,
    ValidationError,
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    LimitExceededError,
    UnknownCollectionError,
    HierarchyCycleError,
    StoreError,
    BatchAuthorizationError,
    BatchCommitError,
    BatchReadError,
    error_code,
    PERMISSION_DENIED,
    NOT_FOUND,
    UNAUTHENTICATED,
    UNKNOWN,
)

__all__ = [
    "ProjectError",
    "ValidationError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "LimitExceededError",
    "UnknownCollectionError",
    "HierarchyCycleError",
    "StoreError",
    "BatchAuthorizationError",
    "BatchCommitError",
    "BatchReadError",
    "error_code",
    "PERMISSION_DENIED",
    "NOT_FOUND",
    "UNAUTHENTICATED",
    "UNKNOWN",
]
