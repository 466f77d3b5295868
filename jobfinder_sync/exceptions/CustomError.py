"""Custom exception classes for the sync layer."""

from typing import Optional, Dict, Any, TYPE_CHECKING

from google.api_core import exceptions as google_exceptions
from firebase_admin.exceptions import FirebaseError

if TYPE_CHECKING:
    from jobfinder_sync.models.util_types import BatchResult


class ProjectError(Exception):
    """Base exception class for sync-layer errors."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize ProjectError.

        Args:
            message: Error message
            code: Optional error code
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.code = code or "PROJECT_ERROR"
        self.details = details or {}


class ValidationError(ProjectError):
    """Raised when caller-supplied data is rejected."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        if field:
            details = details or {}
            details["field"] = field

        super().__init__(message, code="VALIDATION_ERROR", details=details)


class AuthenticationError(ProjectError):
    """Raised when an operation needs an identity and none is available."""

    def __init__(self, message: str = "User not authenticated"):
        super().__init__(message, code="UNAUTHENTICATED")


class AuthorizationError(ProjectError):
    """Raised when the acting identity does not own a record.

    Never retried; halts in-flight batch operations.
    """

    def __init__(
        self,
        message: str = "Permission denied: not owner of this item",
        resource: Optional[str] = None,
        collection: Optional[str] = None,
    ):
        details = {}
        if resource:
            details["resource"] = resource
        if collection:
            details["collection"] = collection
        super().__init__(message, code="PERMISSION_DENIED", details=details)
        self.resource = resource


class NotFoundError(ProjectError):
    """Raised when a resource is not found."""

    def __init__(self, resource_type: str, resource_id: str):
        """Initialize NotFoundError.

        Args:
            resource_type: Type of resource not found
            resource_id: ID of resource not found
        """
        message = f"{resource_type} with ID '{resource_id}' not found"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, code="NOT_FOUND", details=details)


class LimitExceededError(ProjectError):
    """Raised when a limit is exceeded."""

    def __init__(self, limit_type: str, current: int, maximum: int):
        """Initialize LimitExceededError.

        Args:
            limit_type: Type of limit exceeded
            current: Current value
            maximum: Maximum allowed value
        """
        message = f"{limit_type} limit exceeded: {current}/{maximum}"
        details = {
            "limit_type": limit_type,
            "current": current,
            "maximum": maximum
        }
        super().__init__(message, code="LIMIT_EXCEEDED", details=details)


class UnknownCollectionError(ProjectError):
    """Raised when a collection name is not in the registry."""

    def __init__(self, collection: str):
        super().__init__(
            f"Unknown collection '{collection}'",
            code="UNKNOWN_COLLECTION",
            details={"collection": collection},
        )
        self.collection = collection


class HierarchyCycleError(ProjectError):
    """Raised when parentId references form a loop."""

    def __init__(self, cycle: list):
        path = " -> ".join(cycle)
        super().__init__(
            f"Content hierarchy contains a parent cycle: {path}",
            code="HIERARCHY_CYCLE",
            details={"cycle": list(cycle)},
        )
        self.cycle = list(cycle)


class StoreError(ProjectError):
    """Raised when a backing store call fails for a non-classified reason."""

    def __init__(self, operation: str, collection: Optional[str] = None, original: Optional[BaseException] = None):
        message = f"Failed to {operation}"
        if collection:
            message += f" in {collection}"
        if original is not None:
            message += f": {original}"
        super().__init__(
            message,
            code=error_code(original).upper().replace("-", "_") if original else "STORE_ERROR",
            details={"operation": operation, "collection": collection},
        )
        self.operation = operation
        self.collection = collection


class BatchAuthorizationError(AuthorizationError):
    """Ownership mismatch that stopped a batch operation part-way.

    ``result`` reports what committed before the halt and which id halted it.
    """

    def __init__(self, resource: str, collection: str, result: "BatchResult"):
        super().__init__(
            f"Permission denied: not owner of item {resource}",
            resource=resource,
            collection=collection,
        )
        self.result = result


class BatchCommitError(ProjectError):
    """A batch group failed to commit; earlier groups stay committed."""

    def __init__(self, collection: str, group_index: int, result: "BatchResult", original: BaseException):
        super().__init__(
            f"Batch group {group_index} failed to commit in {collection}: {original}",
            code="BATCH_COMMIT_FAILED",
            details={"collection": collection, "group_index": group_index},
        )
        self.group_index = group_index
        self.result = result


class BatchReadError(ProjectError):
    """The ownership read for one record failed; earlier groups stay committed."""

    def __init__(self, collection: str, resource: str, result: "BatchResult", original: BaseException):
        super().__init__(
            f"Batch stopped in {collection}: could not read {resource}: {original}",
            code="BATCH_READ_FAILED",
            details={"collection": collection, "resource": resource},
        )
        self.resource = resource
        self.result = result


PERMISSION_DENIED = "permission-denied"
NOT_FOUND = "not-found"
UNAUTHENTICATED = "unauthenticated"
UNKNOWN = "unknown"


def error_code(error: Optional[BaseException]) -> str:
    """Map an exception onto a store error code.

    Understands this package's errors, google.api_core exceptions and
    firebase_admin errors; anything else is "unknown".
    """
    if error is None:
        return UNKNOWN
    if isinstance(error, AuthorizationError):
        return PERMISSION_DENIED
    if isinstance(error, AuthenticationError):
        return UNAUTHENTICATED
    if isinstance(error, NotFoundError):
        return NOT_FOUND
    if isinstance(error, (google_exceptions.PermissionDenied, google_exceptions.Forbidden)):
        return PERMISSION_DENIED
    if isinstance(error, google_exceptions.NotFound):
        return NOT_FOUND
    if isinstance(error, google_exceptions.Unauthenticated):
        return UNAUTHENTICATED
    if isinstance(error, ProjectError):
        return error.code.lower().replace("_", "-")
    if isinstance(error, FirebaseError):
        return str(error.code).lower().replace("_", "-")

    code = getattr(error, "code", None)
    if isinstance(code, str) and code:
        return code.lower().replace("_", "-")
    return UNKNOWN
