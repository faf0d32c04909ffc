"""Start/stop time tracking.

A task is either idle or tracking. Both transitions are written as conditional
updates against the state that was read, so two callers racing on the same task
cannot both win.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from trackit.domain.entities import TaskEntity
from trackit.domain.errors import (
    AlreadyTrackingError,
    ConcurrentModificationError,
    NotFoundError,
    NotTrackingError,
)
from trackit.infra.models import utcnow
from trackit.infra.repository import TaskRepository

logger = logging.getLogger(__name__)

ONE_SECOND = timedelta(seconds=1)


def elapsed_seconds(start: datetime, end: datetime) -> int:
    """Whole seconds between ``start`` and ``end``, truncated, never negative."""
    return max(0, (end - start) // ONE_SECOND)


def tracked_seconds(task: TaskEntity, now: datetime | None = None) -> int:
    """Accumulated time plus the currently open interval, if any."""
    total = task.tracking_time_seconds
    if task.time_tracking_active and task.tracking_start_time is not None:
        total += elapsed_seconds(task.tracking_start_time, now or utcnow())
    return total


class TimeTracker:
    def __init__(self, repo: TaskRepository, clock: Callable[[], datetime] = utcnow) -> None:
        self._repo = repo
        self._clock = clock

    def start_tracking(self, task_id: str, actor_id: str | None = None) -> TaskEntity:
        task = self._load(task_id)
        if task.time_tracking_active:
            raise AlreadyTrackingError(task_id)

        now = self._clock()
        try:
            updated = self._repo.update_task(
                task_id,
                {"time_tracking_active": True, "tracking_start_time": now, "updated_at": now},
                expected={"time_tracking_active": False},
            )
        except ConcurrentModificationError:
            if self._load(task_id).time_tracking_active:
                raise AlreadyTrackingError(task_id) from None
            raise
        logger.info("Started tracking task %s for %s", task_id, actor_id)
        return updated

    def stop_tracking(self, task_id: str, actor_id: str | None = None) -> TaskEntity:
        task = self._load(task_id)
        if not task.time_tracking_active or task.tracking_start_time is None:
            if task.time_tracking_active:
                logger.warning("Task %s is flagged as tracking without a start time", task_id)
            raise NotTrackingError(task_id)

        now = self._clock()
        elapsed = elapsed_seconds(task.tracking_start_time, now)
        if now < task.tracking_start_time:
            logger.warning(
                "Task %s tracking start %s is after now %s; counting 0s",
                task_id,
                task.tracking_start_time,
                now,
            )
        try:
            updated = self._repo.update_task(
                task_id,
                {
                    "time_tracking_active": False,
                    "tracking_start_time": None,
                    "tracking_time_seconds": task.tracking_time_seconds + elapsed,
                    "updated_at": now,
                },
                expected={
                    "time_tracking_active": True,
                    "tracking_start_time": task.tracking_start_time,
                    "tracking_time_seconds": task.tracking_time_seconds,
                },
            )
        except ConcurrentModificationError:
            if not self._load(task_id).time_tracking_active:
                raise NotTrackingError(task_id) from None
            raise
        logger.info("Stopped tracking task %s for %s after %ss", task_id, actor_id, elapsed)
        return updated

    def _load(self, task_id: str) -> TaskEntity:
        task = self._repo.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task
