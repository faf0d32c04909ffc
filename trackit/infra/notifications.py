from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select, update

from trackit.domain.entities import NotificationEntity
from trackit.domain.enums import NotificationType
from trackit.domain.events import NotificationEvent

from .db import SessionLocal
from .models import NotificationModel


def _to_entity(model: NotificationModel) -> NotificationEntity:
    return NotificationEntity(
        id=model.id,
        user_id=model.user_id,
        type=NotificationType(model.type),
        title=model.title,
        message=model.message,
        read=model.read,
        created_at=model.created_at,
        resource_type=model.resource_type,
        resource_id=model.resource_id,
    )


class NotificationRepository:
    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    def create_notification(self, event: NotificationEvent) -> NotificationEntity:
        with self._session_factory() as session:
            notification = NotificationModel(
                type=event.type.value,
                title=event.title,
                message=event.message,
                user_id=event.user_id,
                resource_type=event.resource_type,
                resource_id=event.resource_id,
                read=False,
            )
            session.add(notification)
            session.commit()
            session.refresh(notification)
            return _to_entity(notification)

    def get_notification(self, notification_id: str) -> Optional[NotificationEntity]:
        with self._session_factory() as session:
            notification = session.get(NotificationModel, notification_id)
            return _to_entity(notification) if notification else None

    def list_for_user(self, user_id: str, unread_only: bool = False) -> list[NotificationEntity]:
        with self._session_factory() as session:
            stmt = select(NotificationModel).where(NotificationModel.user_id == user_id)
            if unread_only:
                stmt = stmt.where(NotificationModel.read.is_(False))
            stmt = stmt.order_by(NotificationModel.created_at.desc())
            return [_to_entity(item) for item in session.scalars(stmt)]

    def set_read(self, notification_id: str, read: bool) -> Optional[NotificationEntity]:
        with self._session_factory() as session:
            notification = session.get(NotificationModel, notification_id)
            if not notification:
                return None
            notification.read = read
            session.commit()
            session.refresh(notification)
            return _to_entity(notification)

    def mark_all_read(self, user_id: str) -> int:
        with self._session_factory() as session:
            result = session.execute(
                update(NotificationModel)
                .where(NotificationModel.user_id == user_id, NotificationModel.read.is_(False))
                .values(read=True)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return result.rowcount

    def unread_count(self, user_id: str) -> int:
        with self._session_factory() as session:
            return session.scalar(
                select(func.count())
                .select_from(NotificationModel)
                .where(NotificationModel.user_id == user_id, NotificationModel.read.is_(False))
            ) or 0
