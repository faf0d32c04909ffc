from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterator

from trackit.domain.entities import TaskEntity
from trackit.domain.errors import CycleError, NotFoundError
from trackit.domain.filters import TaskFilters
from trackit.infra.models import utcnow
from trackit.infra.repository import TaskRepository

logger = logging.getLogger(__name__)


class HierarchyManager:
    """Parent/subtask links.

    Tasks reference their parent by id only. The cycle check and the write are
    tied together by the store's hierarchy version: the version is read before
    walking the parent chain and the write only lands if nobody restructured
    the hierarchy in between.
    """

    def __init__(self, repo: TaskRepository, clock: Callable[[], datetime] = utcnow) -> None:
        self._repo = repo
        self._clock = clock

    def attach_subtask(self, child_id: str, parent_id: str, actor_id: str | None = None) -> TaskEntity:
        if child_id == parent_id:
            raise CycleError(child_id, parent_id)
        child = self._load(child_id)
        self._load(parent_id)

        version = self._repo.hierarchy_version()
        if child_id in self._walk_up(parent_id):
            logger.info("Rejected attaching %s under %s: cycle", child_id, parent_id)
            raise CycleError(child_id, parent_id)
        if child.parent_id == parent_id:
            return child

        updated = self._repo.set_parent(child_id, parent_id, version, updated_at=self._clock())
        logger.info("Task %s attached under %s by %s", child_id, parent_id, actor_id)
        return updated

    def detach_subtask(self, child_id: str, actor_id: str | None = None) -> TaskEntity:
        child = self._load(child_id)
        if child.parent_id is None:
            return child
        version = self._repo.hierarchy_version()
        updated = self._repo.set_parent(child_id, None, version, updated_at=self._clock())
        logger.info("Task %s detached from %s by %s", child_id, child.parent_id, actor_id)
        return updated

    def ancestors(self, task_id: str) -> list[str]:
        """Ids from the direct parent up to the root."""
        task = self._load(task_id)
        if task.parent_id is None:
            return []
        return list(self._walk_up(task.parent_id))

    def subtasks(self, parent_id: str) -> list[TaskEntity]:
        self._load(parent_id)
        return self._repo.query(TaskFilters(parent_id=parent_id))

    def _walk_up(self, start_id: str) -> Iterator[str]:
        # A well-formed chain is never longer than the number of tasks.
        limit = self._repo.count_tasks()
        current: str | None = start_id
        steps = 0
        while current is not None:
            yield current
            steps += 1
            if steps > limit:
                logger.error("Parent chain from %s exceeds %s tasks", start_id, limit)
                raise CycleError(start_id, current)
            current = self._repo.get_parent_id(current)

    def _load(self, task_id: str) -> TaskEntity:
        task = self._repo.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task
