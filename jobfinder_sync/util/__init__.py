"""Utility functions package."""

from .logger import get_logger, set_log_level
from .normalize import normalize_value, normalize_document, timestamp_to_datetime
from .retry import RetryPolicy, retry_operation, with_retry, is_retriable
from .identity import IdentityProvider, StaticIdentity, FirebaseTokenIdentity

__all__ = [
    "get_logger",
    "set_log_level",
    "normalize_value",
    "normalize_document",
    "timestamp_to_datetime",
    "RetryPolicy",
    "retry_operation",
    "with_retry",
    "is_retriable",
    "IdentityProvider",
    "StaticIdentity",
    "FirebaseTokenIdentity",
]
