"""Domain error hierarchy.

Every error raised by the engine derives from ``TrackerError`` so callers can
map the whole family onto their transport in one place. Failures of the
underlying store (connection loss and the like) are not wrapped and surface as
the driver's own exceptions.
"""

from __future__ import annotations

from typing import Any


class TrackerError(Exception):
    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(message)


class NotFoundError(TrackerError):
    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(f"{entity} {entity_id} not found", entity=entity, entity_id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(TrackerError):
    pass


class InvalidStatusError(ValidationError):
    def __init__(self, value: Any) -> None:
        super().__init__(f"Unknown task status: {value!r}", value=value)


class InvalidPriorityError(ValidationError):
    def __init__(self, value: Any) -> None:
        super().__init__(f"Unknown task priority: {value!r}", value=value)


class PermissionDeniedError(TrackerError):
    pass


class CycleError(TrackerError):
    def __init__(self, child_id: str, parent_id: str) -> None:
        super().__init__(
            f"Task {child_id} cannot be placed under {parent_id}: the hierarchy would contain a cycle",
            child_id=child_id,
            parent_id=parent_id,
        )


class AlreadyTrackingError(TrackerError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Time tracking is already active for task {task_id}", task_id=task_id)


class NotTrackingError(TrackerError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Time tracking is not active for task {task_id}", task_id=task_id)


class ConcurrentModificationError(TrackerError):
    """The row changed between read and conditional write; the caller may retry."""

    def __init__(self, entity: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity} {entity_id} was modified concurrently",
            entity=entity,
            entity_id=entity_id,
        )
