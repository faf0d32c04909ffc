from __future__ import annotations

from enum import StrEnum

from .errors import InvalidPriorityError, InvalidStatusError

# Values are the persisted wire identifiers and must not change.


class TaskStatus(StrEnum):
    BACKLOG = "BACKLOG"
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    REVIEW = "REVIEW"
    DONE = "DONE"
    ARCHIVED = "ARCHIVED"


class TaskPriority(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class NotificationType(StrEnum):
    TASK_ASSIGNED = "TASK_ASSIGNED"
    TASK_UPDATED = "TASK_UPDATED"
    COMMENT_ADDED = "COMMENT_ADDED"
    DUE_DATE_REMINDER = "DUE_DATE_REMINDER"
    MENTION = "MENTION"
    SYSTEM = "SYSTEM"


OPEN_STATUSES = frozenset(
    status for status in TaskStatus if status not in (TaskStatus.DONE, TaskStatus.ARCHIVED)
)


def parse_status(value: TaskStatus | str) -> TaskStatus:
    if isinstance(value, TaskStatus):
        return value
    try:
        return TaskStatus(str(value).strip().upper())
    except ValueError:
        raise InvalidStatusError(value) from None


def parse_priority(value: TaskPriority | str) -> TaskPriority:
    if isinstance(value, TaskPriority):
        return value
    try:
        return TaskPriority(str(value).strip().upper())
    except ValueError:
        raise InvalidPriorityError(value) from None
