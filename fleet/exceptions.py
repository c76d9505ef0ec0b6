"""
Exceptions raised by fleet use cases and repositories.

Every exception carries a human-readable ``reason`` which the API layer
returns verbatim as ``{"Error": reason}``.
"""

from typing import Optional


class FleetError(Exception):
    """Base class for all fleet failures surfaced to callers."""

    default_reason = "The request could not be completed."

    def __init__(self, reason: Optional[str] = None) -> None:
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class UnauthenticatedError(FleetError):
    default_reason = "You must be authenticated to perform this action."


class RecordNotFoundError(FleetError):
    """Raised when a referenced record does not resolve."""

    def __init__(
        self, kind: str, record_id: str, reason: Optional[str] = None
    ) -> None:
        self.kind = kind
        self.record_id = record_id
        super().__init__(reason or f"No {kind} with this {kind}_id exists")


class ConflictError(FleetError):
    """The requested transition violates a relationship invariant."""


class DuplicateBoatNameError(ConflictError):
    default_reason = "There is already a boat with this name."


class RecordInUseError(ConflictError):
    """Raised when deleting a record that takes part in an assignment."""


class NotOwnerError(FleetError):
    """Raised when the caller does not own the record it tries to change."""


class RequestShapeError(FleetError):
    """Malformed or incomplete request attributes."""


class ConcurrentModificationError(Exception):
    """Raised by repositories when a compare-and-swap write loses.

    The stored record's version no longer matches the version the caller
    read, or an insert found an existing record under the same key.
    """

    def __init__(
        self, kind: str, record_id: str, expected: int, actual: Optional[int]
    ) -> None:
        self.kind = kind
        self.record_id = record_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{kind} {record_id} was modified concurrently "
            f"(expected version {expected}, found {actual})"
        )


class NotAcceptableError(FleetError):
    default_reason = "The client must accept application/json responses."


class MethodNotAllowedError(FleetError):
    """Raised for collection-wide updates, which are not supported."""
