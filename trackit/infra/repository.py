from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from trackit.domain.entities import TaskCounts, TaskEntity
from trackit.domain.enums import OPEN_STATUSES, TaskPriority, TaskStatus
from trackit.domain.errors import ConcurrentModificationError, NotFoundError
from trackit.domain.filters import TaskFilters

from .db import SessionLocal
from .models import (
    HIERARCHY_COUNTER,
    TASK_NUMBER_COUNTER,
    AttachmentModel,
    CommentModel,
    CounterModel,
    TaskModel,
    TaskTagModel,
    utcnow,
)

logger = logging.getLogger(__name__)

OPEN_STATUS_VALUES = [status.value for status in OPEN_STATUSES]


def _to_entity(model: TaskModel) -> TaskEntity:
    return TaskEntity(
        id=model.id,
        task_number=model.task_number,
        title=model.title,
        description=model.description,
        status=TaskStatus(model.status),
        priority=TaskPriority(model.priority),
        tags=tuple(row.tag for row in model.tag_rows),
        archived=model.archived,
        created_at=model.created_at,
        updated_at=model.updated_at,
        due_date=model.due_date,
        estimated_hours=model.estimated_hours,
        actual_hours=model.actual_hours,
        creator_id=model.creator_id,
        assignee_id=model.assignee_id,
        parent_id=model.parent_id,
        time_tracking_active=model.time_tracking_active,
        tracking_start_time=model.tracking_start_time,
        tracking_time_seconds=model.tracking_time_seconds,
        saved_as_template=model.saved_as_template,
        version=model.version,
    )


def _tag_rows(task_id: str | None, tags: Iterable[str]) -> list[TaskTagModel]:
    return [
        TaskTagModel(task_id=task_id, position=position, tag=tag)
        for position, tag in enumerate(tags)
    ]


def _apply_filters(stmt, filters: TaskFilters) -> object:
    if filters.status is not None:
        stmt = stmt.where(TaskModel.status == filters.status.value)

    if filters.requester_id is not None:
        stmt = stmt.where(
            or_(
                TaskModel.creator_id == filters.requester_id,
                TaskModel.assignee_id == filters.requester_id,
            )
        )

    if filters.parent_id is not None:
        stmt = stmt.where(TaskModel.parent_id == filters.parent_id)

    if filters.due_before is not None:
        stmt = stmt.where(
            TaskModel.due_date.is_not(None),
            TaskModel.due_date <= filters.due_before,
        )

    if not filters.include_archived:
        stmt = stmt.where(TaskModel.archived.is_(False))

    return stmt


def _bump_counter(session: Session, name: str, expected: int | None = None) -> int | None:
    """Atomically increment a counter row and return its new value.

    With ``expected`` the increment only happens while the counter still holds
    that value; ``None`` is returned when it does not.
    """
    stmt = update(CounterModel).where(CounterModel.name == name)
    if expected is not None:
        stmt = stmt.where(CounterModel.value == expected)
    result = session.execute(
        stmt.values(value=CounterModel.value + 1).execution_options(synchronize_session=False)
    )
    if result.rowcount:
        return session.scalar(select(CounterModel.value).where(CounterModel.name == name))

    exists = session.scalar(select(func.count()).select_from(CounterModel).where(CounterModel.name == name))
    if exists or (expected is not None and expected != 0):
        return None
    session.add(CounterModel(name=name, value=1))
    session.flush()
    return 1


def ensure_counters(session_factory=SessionLocal) -> None:
    with session_factory() as session:
        for name in (TASK_NUMBER_COUNTER, HIERARCHY_COUNTER):
            if session.get(CounterModel, name) is None:
                session.add(CounterModel(name=name, value=0))
        session.commit()


class TaskRepository:
    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            return _to_entity(task) if task else None

    def query(self, filters: TaskFilters) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = select(TaskModel)
            stmt = _apply_filters(stmt, filters)
            stmt = stmt.order_by(TaskModel.updated_at.desc(), TaskModel.task_number.desc())
            return [_to_entity(task) for task in session.scalars(stmt)]

    def search(self, text: str, task_number: int | None = None) -> list[TaskEntity]:
        conditions = [
            TaskModel.title.icontains(text, autoescape=True),
            TaskModel.description.icontains(text, autoescape=True),
            TaskModel.id.in_(select(TaskTagModel.task_id).where(TaskTagModel.tag == text)),
        ]
        if task_number is not None:
            conditions.append(TaskModel.task_number == task_number)

        with self._session_factory() as session:
            stmt = select(TaskModel).where(or_(*conditions)).order_by(TaskModel.task_number.asc())
            return [_to_entity(task) for task in session.scalars(stmt)]

    def create_task(self, data: Mapping[str, Any]) -> TaskEntity:
        values = dict(data)
        tags = values.pop("tags", ())
        with self._session_factory() as session:
            values["task_number"] = _bump_counter(session, TASK_NUMBER_COUNTER)
            task = TaskModel(**values)
            task.tag_rows = _tag_rows(None, tags)
            session.add(task)
            session.commit()
            session.refresh(task)
            logger.debug("Inserted task id=%s number=%s", task.id, task.task_number)
            return _to_entity(task)

    def update_task(
        self,
        task_id: str,
        patch: Mapping[str, Any],
        expected: Mapping[str, Any] | None = None,
    ) -> TaskEntity:
        """Apply ``patch`` in a single conditional UPDATE.

        ``expected`` maps column names to the values the row must still hold for
        the write to happen.
        """
        values = dict(patch)
        tags = values.pop("tags", None)
        values.setdefault("updated_at", utcnow())
        values["version"] = TaskModel.version + 1

        conditions = [TaskModel.id == task_id]
        for key, value in (expected or {}).items():
            column = getattr(TaskModel, key)
            conditions.append(column.is_(None) if value is None else column == value)

        with self._session_factory() as session:
            result = session.execute(
                update(TaskModel)
                .where(*conditions)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                session.rollback()
                if session.get(TaskModel, task_id) is None:
                    raise NotFoundError("Task", task_id)
                raise ConcurrentModificationError("Task", task_id)

            if tags is not None:
                session.execute(delete(TaskTagModel).where(TaskTagModel.task_id == task_id))
                session.add_all(_tag_rows(task_id, tags))
            session.commit()
            return _to_entity(session.get(TaskModel, task_id))

    def delete_task(self, task_id: str) -> bool:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            if not task:
                return False
            session.delete(task)
            session.commit()
            return True

    def count_tasks(self) -> int:
        with self._session_factory() as session:
            return session.scalar(select(func.count()).select_from(TaskModel)) or 0

    def get_counts(self, task_id: str) -> TaskCounts:
        with self._session_factory() as session:
            subtasks = session.scalar(
                select(func.count()).select_from(TaskModel).where(TaskModel.parent_id == task_id)
            )
            comments = session.scalar(
                select(func.count()).select_from(CommentModel).where(CommentModel.task_id == task_id)
            )
            attachments = session.scalar(
                select(func.count())
                .select_from(AttachmentModel)
                .where(AttachmentModel.task_id == task_id)
            )
            return TaskCounts(
                subtasks=subtasks or 0,
                comments=comments or 0,
                attachments=attachments or 0,
            )

    def get_parent_id(self, task_id: str) -> str | None:
        with self._session_factory() as session:
            return session.scalar(select(TaskModel.parent_id).where(TaskModel.id == task_id))

    def hierarchy_version(self) -> int:
        with self._session_factory() as session:
            value = session.scalar(
                select(CounterModel.value).where(CounterModel.name == HIERARCHY_COUNTER)
            )
            return value or 0

    def set_parent(
        self,
        child_id: str,
        parent_id: str | None,
        expected_version: int,
        updated_at: datetime | None = None,
    ) -> TaskEntity:
        """Re-parent ``child_id`` if no hierarchy change happened since ``expected_version``."""
        with self._session_factory() as session:
            if _bump_counter(session, HIERARCHY_COUNTER, expected=expected_version) is None:
                session.rollback()
                raise ConcurrentModificationError("Task hierarchy", child_id)

            result = session.execute(
                update(TaskModel)
                .where(TaskModel.id == child_id)
                .values(
                    parent_id=parent_id,
                    updated_at=updated_at or utcnow(),
                    version=TaskModel.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                session.rollback()
                raise NotFoundError("Task", child_id)
            session.commit()
            return _to_entity(session.get(TaskModel, child_id))

    def list_due(self, before: datetime) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = (
                select(TaskModel)
                .where(
                    TaskModel.due_date.is_not(None),
                    TaskModel.due_date <= before,
                    TaskModel.status.in_(OPEN_STATUS_VALUES),
                    TaskModel.archived.is_(False),
                )
                .order_by(TaskModel.due_date.asc())
            )
            return [_to_entity(task) for task in session.scalars(stmt)]

    def get_stats(self, now: datetime | None = None) -> dict[str, int]:
        now = now or utcnow()
        with self._session_factory() as session:
            total = session.scalar(select(func.count()).select_from(TaskModel)) or 0
            by_status = dict(
                session.execute(
                    select(TaskModel.status, func.count()).group_by(TaskModel.status)
                ).all()
            )
            overdue = session.scalar(
                select(func.count())
                .select_from(TaskModel)
                .where(
                    TaskModel.due_date.is_not(None),
                    TaskModel.due_date < now,
                    TaskModel.status.in_(OPEN_STATUS_VALUES),
                )
            ) or 0
            tracking = session.scalar(
                select(func.count())
                .select_from(TaskModel)
                .where(TaskModel.time_tracking_active.is_(True))
            ) or 0
            tracked_seconds = session.scalar(
                select(func.coalesce(func.sum(TaskModel.tracking_time_seconds), 0))
            ) or 0
            stats = {
                "total": total,
                "overdue": overdue,
                "tracking": tracking,
                "tracked_seconds": int(tracked_seconds),
            }
            for status in TaskStatus:
                stats[status.value.lower()] = by_status.get(status.value, 0)
            return stats
