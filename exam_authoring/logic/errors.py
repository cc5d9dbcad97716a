"""Error taxonomy for authoring operations.

Each error carries the problem+json `code` and HTTP `status` it maps to, so
route handlers raise domain errors and the handlers in `http/problem.py`
render them without hardcoding strings or numbers.
"""

from __future__ import annotations

from typing import Any


class ExamAuthoringError(Exception):
    """Base class for errors surfaced to API callers."""

    status: int = 500
    code: str = "INTERNAL_ERROR"
    title: str = "Internal Server Error"

    def __init__(self, detail: str = "", *, errors: list[dict[str, Any]] | None = None) -> None:
        self.detail = detail or self.title
        self.errors = errors or []
        super().__init__(self.detail)


class AuthenticationError(ExamAuthoringError):
    """No valid caller identity; raised before any storage access."""

    status = 401
    code = "AUTH_REQUIRED"
    title = "Unauthorized"


class OwnershipError(ExamAuthoringError):
    """Test missing or not owned by the caller; both look the same to clients."""

    status = 404
    code = "TEST_NOT_FOUND"
    title = "Not Found"

    def __init__(self, test_id: str) -> None:
        self.test_id = test_id
        super().__init__("Test not found or access denied")


class ValidationError(ExamAuthoringError):
    """Payload does not have the required shape."""

    status = 400
    code = "PAYLOAD_INVALID"
    title = "Bad Request"


class ConflictError(ExamAuthoringError):
    """If-Match version token does not match the stored test version."""

    status = 412
    code = "VERSION_MISMATCH"
    title = "Precondition Failed"

    def __init__(self, expected: str, current: str) -> None:
        self.expected = expected
        self.current = current
        super().__init__("Test was modified by another writer")


class StorageError(ExamAuthoringError):
    """Storage failure during load, apply or reload; the transaction was rolled back."""

    status = 500
    code = "STORAGE_FAILURE"
    title = "Internal Server Error"

    def __init__(self, operation: str) -> None:
        self.operation = operation
        # Detail stays opaque; the cause is chained and logged server-side.
        super().__init__("Internal server error")


__all__ = [
    "ExamAuthoringError",
    "AuthenticationError",
    "OwnershipError",
    "ValidationError",
    "ConflictError",
    "StorageError",
]
