"""Conversion of Firestore wire values into native Python values."""

from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from google.api_core.datetime_helpers import DatetimeWithNanoseconds
from google.protobuf.timestamp_pb2 import Timestamp


def is_store_timestamp(value: Any) -> bool:
    """True for the timestamp types Firestore hands back on reads."""
    return isinstance(value, (DatetimeWithNanoseconds, Timestamp))


def timestamp_to_datetime(value: Any) -> datetime:
    """Convert a single timestamp-like value to a timezone-aware datetime.

    Accepts Firestore timestamps, native datetimes (returned as-is) and
    ISO-8601 strings.

    Raises:
        ValueError: If the value cannot be interpreted as a point in time
    """
    if isinstance(value, DatetimeWithNanoseconds):
        return datetime(
            value.year, value.month, value.day,
            value.hour, value.minute, value.second, value.microsecond,
            tzinfo=value.tzinfo or timezone.utc,
        )
    if isinstance(value, Timestamp):
        return value.ToDatetime(tzinfo=timezone.utc)
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    raise ValueError(f"Cannot convert {type(value).__name__} to datetime")


def normalize_value(value: Any) -> Any:
    """Return a copy of ``value`` with every store timestamp turned into a datetime.

    Recurses through dicts, lists and tuples. Scalars, None and native
    datetimes pass through. The input is never mutated and normalizing an
    already-normalized value yields an equal value.
    """
    if is_store_timestamp(value):
        return timestamp_to_datetime(value)
    if isinstance(value, Mapping):
        return {key: normalize_value(item) for key, item in value.items()}
    if isinstance(value, list):
        return [normalize_value(item) for item in value]
    if isinstance(value, tuple):
        return tuple(normalize_value(item) for item in value)
    return value


def normalize_document(data: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Normalize a document payload; a missing payload becomes an empty dict."""
    if not data:
        return {}
    return normalize_value(data)
