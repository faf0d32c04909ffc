from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Iterable, Mapping

from trackit.domain.entities import TaskCounts, TaskEntity
from trackit.domain.enums import TaskPriority, TaskStatus, parse_priority, parse_status
from trackit.domain.errors import NotFoundError, ValidationError
from trackit.domain.filters import TaskFilters
from trackit.infra.models import utcnow
from trackit.infra.repository import TaskRepository

from .notifications import NotificationEmitter, task_assigned

logger = logging.getLogger(__name__)

CREATE_FIELDS = frozenset({
    "title",
    "description",
    "status",
    "priority",
    "tags",
    "due_date",
    "estimated_hours",
    "actual_hours",
    "assignee_id",
    "parent_id",
})

# Status, priority, assignee and parent have dedicated operations with their
# own side effects; tracking fields belong to the time tracker.
EDITABLE_FIELDS = frozenset({
    "title",
    "description",
    "tags",
    "due_date",
    "estimated_hours",
    "actual_hours",
    "archived",
})


def normalize_tags(tags: Iterable[str] | str | None) -> tuple[str, ...]:
    if tags is None:
        return ()
    if isinstance(tags, str):
        tags = tags.split(",")
    seen: list[str] = []
    for tag in tags:
        cleaned = str(tag).strip()
        if cleaned and cleaned not in seen:
            seen.append(cleaned)
    return tuple(seen)


def parse_task_number(query: str) -> int | None:
    candidate = query.strip()
    if candidate.isascii() and candidate.isdigit():
        return int(candidate)
    return None


class TaskService:
    def __init__(
        self,
        repo: TaskRepository,
        emitter: NotificationEmitter,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repo = repo
        self._emitter = emitter
        self._clock = clock

    def get_task(self, task_id: str) -> TaskEntity:
        task = self._repo.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def get_counts(self, task_id: str) -> TaskCounts:
        self.get_task(task_id)
        return self._repo.get_counts(task_id)

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        return self._repo.query(filters)

    def create_task(self, data: Mapping[str, Any], creator_id: str) -> TaskEntity:
        unknown = set(data) - CREATE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")
        if not creator_id:
            raise ValidationError("A task needs a creator")
        if "title" not in data:
            raise ValidationError("Task title must not be empty")

        normalized = self._normalize_data(data)
        status = parse_status(data.get("status", TaskStatus.TODO))
        priority = parse_priority(data.get("priority", TaskPriority.MEDIUM))
        parent_id = data.get("parent_id")
        if parent_id is not None and self._repo.get_task(parent_id) is None:
            raise NotFoundError("Task", parent_id)

        now = self._clock()
        normalized.update(
            status=status.value,
            priority=priority.value,
            archived=status is TaskStatus.ARCHIVED,
            creator_id=creator_id,
            assignee_id=data.get("assignee_id"),
            parent_id=parent_id,
            created_at=now,
            updated_at=now,
        )
        task = self._repo.create_task(normalized)
        logger.info("Created task #%s (%s) by %s", task.task_number, task.id, creator_id)

        if task.assignee_id and task.assignee_id != creator_id:
            self._emitter.emit(task_assigned(task, task.assignee_id))
        return task

    def update_task(self, task_id: str, data: Mapping[str, Any], actor_id: str) -> TaskEntity:
        unknown = set(data) - EDITABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be edited directly: {', '.join(sorted(unknown))}")
        task = self.get_task(task_id)
        if not data:
            return task

        normalized = self._normalize_data(data)
        if "archived" in data:
            if not isinstance(data["archived"], bool):
                raise ValidationError("archived must be a boolean")
            normalized["archived"] = data["archived"]
        normalized["updated_at"] = self._clock()

        updated = self._repo.update_task(task_id, normalized)
        logger.info("Task %s edited by %s: %s", task_id, actor_id, ", ".join(sorted(data)))
        return updated

    def delete_task(self, task_id: str, actor_id: str | None = None) -> None:
        if not self._repo.delete_task(task_id):
            raise NotFoundError("Task", task_id)
        logger.info("Deleted task %s by %s", task_id, actor_id)

    def set_assignee(self, task_id: str, assignee_id: str | None, actor_id: str) -> TaskEntity:
        task = self.get_task(task_id)
        updated = self._repo.update_task(
            task_id, {"assignee_id": assignee_id, "updated_at": self._clock()}
        )
        logger.info(
            "Task %s assignee %s -> %s by %s", task_id, task.assignee_id, assignee_id, actor_id
        )
        if assignee_id and assignee_id != actor_id and assignee_id != task.assignee_id:
            self._emitter.emit(task_assigned(updated, assignee_id))
        return updated

    def list_by_status(self, status: TaskStatus | str, requester_id: str) -> list[TaskEntity]:
        parsed = parse_status(status)
        # BACKLOG is shared with everyone; every other column only shows the
        # requester's own tasks (created or assigned).
        if parsed is TaskStatus.BACKLOG:
            return self._repo.query(TaskFilters(status=parsed))
        return self._repo.query(TaskFilters(status=parsed, requester_id=requester_id))

    def search(self, query: str) -> list[TaskEntity]:
        return self._repo.search(query, parse_task_number(query))

    def get_stats(self) -> dict[str, int]:
        return self._repo.get_stats(self._clock())

    def _normalize_data(self, data: Mapping[str, Any]) -> dict:
        normalized: dict[str, Any] = {}
        if "title" in data:
            title = str(data["title"] or "").strip()
            if not title:
                raise ValidationError("Task title must not be empty")
            normalized["title"] = title
        if "description" in data:
            normalized["description"] = data["description"]
        if "tags" in data:
            normalized["tags"] = normalize_tags(data["tags"])
        if "due_date" in data:
            normalized["due_date"] = data["due_date"]
        for key in ("estimated_hours", "actual_hours"):
            if key in data:
                normalized[key] = self._hours(key, data[key])
        return normalized

    @staticmethod
    def _hours(key: str, value: Any) -> float | None:
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValidationError(f"{key} must be a number")
        if value < 0:
            raise ValidationError(f"{key} must not be negative")
        return float(value)
