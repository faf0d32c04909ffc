from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable

from trackit.domain.entities import TaskEntity
from trackit.domain.enums import TaskPriority, TaskStatus, parse_priority, parse_status
from trackit.domain.errors import NotFoundError
from trackit.infra.models import utcnow
from trackit.infra.repository import TaskRepository

from .notifications import NotificationEmitter, task_updated, watchers

logger = logging.getLogger(__name__)


class WorkflowService:
    """Status and priority changes.

    Any status may follow any other; only the enum value is validated.
    """

    def __init__(
        self,
        repo: TaskRepository,
        emitter: NotificationEmitter,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repo = repo
        self._emitter = emitter
        self._clock = clock

    def set_status(self, task_id: str, new_status: TaskStatus | str, actor_id: str) -> TaskEntity:
        status = parse_status(new_status)
        task = self._load(task_id)

        patch: dict = {"status": status.value, "updated_at": self._clock()}
        if status is TaskStatus.ARCHIVED:
            patch["archived"] = True
        # Leaving ARCHIVED does not clear the archived flag. Callers must unset
        # it explicitly; do not "fix" this here.
        updated = self._repo.update_task(task_id, patch)
        logger.info(
            "Task %s status %s -> %s by %s", task_id, task.status.value, status.value, actor_id
        )
        self._notify(updated, actor_id, f"status changed from {task.status.value} to {status.value}")
        return updated

    def set_priority(
        self, task_id: str, new_priority: TaskPriority | str, actor_id: str
    ) -> TaskEntity:
        priority = parse_priority(new_priority)
        task = self._load(task_id)

        updated = self._repo.update_task(
            task_id, {"priority": priority.value, "updated_at": self._clock()}
        )
        logger.info(
            "Task %s priority %s -> %s by %s",
            task_id,
            task.priority.value,
            priority.value,
            actor_id,
        )
        self._notify(
            updated, actor_id, f"priority changed from {task.priority.value} to {priority.value}"
        )
        return updated

    def _load(self, task_id: str) -> TaskEntity:
        task = self._repo.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def _notify(self, task: TaskEntity, actor_id: str, change: str) -> None:
        self._emitter.emit_all(
            task_updated(task, user_id, actor_id, change) for user_id in watchers(task, actor_id)
        )
