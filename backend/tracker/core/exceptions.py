from __future__ import annotations


class TrackerError(Exception):
    """Base class for every error raised by the tracker domain."""


class NotFoundError(TrackerError):
    """
    Referenced submission / journal does not exist.

    Callers surface this as-is; it is never retried.
    """

    def __init__(self, entity: str, entity_id: str) -> None:
        self.entity = entity
        self.entity_id = str(entity_id)
        super().__init__(f"{entity} not found: {self.entity_id}")


class InvalidStatusError(TrackerError, ValueError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid status: {value!r}")


class RepositoryError(TrackerError):
    """Wraps Supabase / PostgREST failures and malformed rows read back from the database."""


class InvalidTransitionError(TrackerError):
    def __init__(self, from_status: str, to_status: str, allowed: set[str]) -> None:
        self.from_status = from_status
        self.to_status = to_status
        self.allowed = allowed
        super().__init__(f"Invalid transition: {from_status} -> {to_status}. Allowed: {sorted(allowed)}")
