"""Notification side effects of task changes.

The emitter is fire-and-forget: a failing sink is logged and ignored so that
the task mutation that triggered it stands.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Iterable, Protocol

from trackit.domain.entities import CommentEntity, NotificationEntity, TaskEntity
from trackit.domain.enums import NotificationType
from trackit.domain.errors import NotFoundError, PermissionDeniedError
from trackit.domain.events import NotificationEvent
from trackit.infra.models import utcnow
from trackit.infra.notifications import NotificationRepository
from trackit.infra.repository import TaskRepository

logger = logging.getLogger(__name__)

RESOURCE_TASK = "task"
RESOURCE_COMMENT = "comment"


class NotificationSink(Protocol):
    def create_notification(self, event: NotificationEvent) -> object: ...


class NotificationEmitter:
    def __init__(self, sink: NotificationSink) -> None:
        self._sink = sink

    def emit(self, event: NotificationEvent) -> None:
        try:
            self._sink.create_notification(event)
        except Exception:  # noqa: BLE001
            logger.exception(
                "Dropped %s notification for user %s (resource %s/%s)",
                event.type.value,
                event.user_id,
                event.resource_type,
                event.resource_id,
            )

    def emit_all(self, events: Iterable[NotificationEvent]) -> None:
        for event in events:
            self.emit(event)


def watchers(task: TaskEntity, actor_id: str | None) -> list[str]:
    """Assignee first, then creator, skipping the actor and duplicates."""
    recipients: list[str] = []
    for user_id in (task.assignee_id, task.creator_id):
        if user_id and user_id != actor_id and user_id not in recipients:
            recipients.append(user_id)
    return recipients


def task_assigned(task: TaskEntity, assignee_id: str) -> NotificationEvent:
    return NotificationEvent(
        type=NotificationType.TASK_ASSIGNED,
        user_id=assignee_id,
        title="New Task Assigned",
        message=f'You have been assigned to "{task.title}"',
        resource_type=RESOURCE_TASK,
        resource_id=task.id,
    )


def task_updated(task: TaskEntity, user_id: str, actor_id: str, change: str) -> NotificationEvent:
    return NotificationEvent(
        type=NotificationType.TASK_UPDATED,
        user_id=user_id,
        title="Task Updated",
        message=f'{actor_id} updated "{task.title}": {change}',
        resource_type=RESOURCE_TASK,
        resource_id=task.id,
    )


def comment_added(task: TaskEntity, comment: CommentEntity, user_id: str) -> NotificationEvent:
    return NotificationEvent(
        type=NotificationType.COMMENT_ADDED,
        user_id=user_id,
        title="New Comment",
        message=f'{comment.author_id} commented on "{task.title}"',
        resource_type=RESOURCE_COMMENT,
        resource_id=comment.id,
    )


def mentioned(task: TaskEntity, comment: CommentEntity, user_id: str) -> NotificationEvent:
    return NotificationEvent(
        type=NotificationType.MENTION,
        user_id=user_id,
        title="Mentioned in Comment",
        message=f'{comment.author_id} mentioned you in a comment on "{task.title}"',
        resource_type=RESOURCE_COMMENT,
        resource_id=comment.id,
    )


def due_date_reminder(task: TaskEntity, user_id: str, days_remaining: int) -> NotificationEvent:
    if days_remaining < 0:
        overdue = -days_remaining
        when = f"is overdue by {overdue} day{'s' if overdue != 1 else ''}"
    elif days_remaining == 0:
        when = "is due today"
    else:
        when = f"is due in {days_remaining} day{'s' if days_remaining != 1 else ''}"
    return NotificationEvent(
        type=NotificationType.DUE_DATE_REMINDER,
        user_id=user_id,
        title="Task Due Soon",
        message=f'Task "{task.title}" {when}',
        resource_type=RESOURCE_TASK,
        resource_id=task.id,
    )


class NotificationService:
    """Per-user inbox; read state is the only thing a user may change."""

    def __init__(self, repo: NotificationRepository) -> None:
        self._repo = repo

    def list_for_user(self, user_id: str, unread_only: bool = False) -> list[NotificationEntity]:
        return self._repo.list_for_user(user_id, unread_only=unread_only)

    def mark_read(self, notification_id: str, user_id: str) -> NotificationEntity:
        return self._set_read(notification_id, user_id, True)

    def mark_unread(self, notification_id: str, user_id: str) -> NotificationEntity:
        return self._set_read(notification_id, user_id, False)

    def mark_all_read(self, user_id: str) -> int:
        return self._repo.mark_all_read(user_id)

    def unread_count(self, user_id: str) -> int:
        return self._repo.unread_count(user_id)

    def _set_read(self, notification_id: str, user_id: str, read: bool) -> NotificationEntity:
        notification = self._repo.get_notification(notification_id)
        if notification is None:
            raise NotFoundError("Notification", notification_id)
        if notification.user_id != user_id:
            raise PermissionDeniedError(
                f"Notification {notification_id} does not belong to user {user_id}"
            )
        updated = self._repo.set_read(notification_id, read)
        if updated is None:
            raise NotFoundError("Notification", notification_id)
        return updated


class ReminderService:
    def __init__(
        self,
        repo: TaskRepository,
        emitter: NotificationEmitter,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._repo = repo
        self._emitter = emitter
        self._clock = clock

    def send_due_date_reminders(self, horizon_days: int = 1) -> int:
        """Remind the assignee (or the creator) of every open task due within the horizon."""
        now = self._clock()
        sent = 0
        for task in self._repo.list_due(now + timedelta(days=horizon_days)):
            recipient = task.assignee_id or task.creator_id
            days_remaining = (task.due_date.date() - now.date()).days
            self._emitter.emit(due_date_reminder(task, recipient, days_remaining))
            sent += 1
        logger.info("Queued %s due-date reminders (horizon %s days)", sent, horizon_days)
        return sent
