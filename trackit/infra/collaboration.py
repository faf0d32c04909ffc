from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import select

from trackit.domain.entities import AttachmentEntity, CommentEntity

from .db import SessionLocal
from .models import AttachmentModel, CommentModel, utcnow


def _comment_entity(model: CommentModel) -> CommentEntity:
    return CommentEntity(
        id=model.id,
        task_id=model.task_id,
        author_id=model.author_id,
        text=model.text,
        parent_id=model.parent_id,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _attachment_entity(model: AttachmentModel) -> AttachmentEntity:
    return AttachmentEntity(
        id=model.id,
        task_id=model.task_id,
        file_name=model.file_name,
        file_size=model.file_size,
        file_type=model.file_type,
        file_path=model.file_path,
        uploaded_at=model.uploaded_at,
        thumbnail_url=model.thumbnail_url,
    )


class CommentRepository:
    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    def list_comments(self, task_id: str) -> list[CommentEntity]:
        with self._session_factory() as session:
            stmt = (
                select(CommentModel)
                .where(CommentModel.task_id == task_id)
                .order_by(CommentModel.created_at.asc())
            )
            return [_comment_entity(comment) for comment in session.scalars(stmt)]

    def get_comment(self, comment_id: str) -> Optional[CommentEntity]:
        with self._session_factory() as session:
            comment = session.get(CommentModel, comment_id)
            return _comment_entity(comment) if comment else None

    def create_comment(self, data: Mapping[str, Any]) -> CommentEntity:
        with self._session_factory() as session:
            comment = CommentModel(**data)
            session.add(comment)
            session.commit()
            session.refresh(comment)
            return _comment_entity(comment)

    def update_text(self, comment_id: str, text: str) -> Optional[CommentEntity]:
        with self._session_factory() as session:
            comment = session.get(CommentModel, comment_id)
            if not comment:
                return None
            comment.text = text
            comment.updated_at = utcnow()
            session.commit()
            session.refresh(comment)
            return _comment_entity(comment)

    def delete_comment(self, comment_id: str) -> bool:
        with self._session_factory() as session:
            comment = session.get(CommentModel, comment_id)
            if not comment:
                return False
            session.delete(comment)
            session.commit()
            return True


class AttachmentRepository:
    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    def list_attachments(self, task_id: str) -> list[AttachmentEntity]:
        with self._session_factory() as session:
            stmt = (
                select(AttachmentModel)
                .where(AttachmentModel.task_id == task_id)
                .order_by(AttachmentModel.uploaded_at.desc())
            )
            return [_attachment_entity(item) for item in session.scalars(stmt)]

    def get_attachment(self, attachment_id: str) -> Optional[AttachmentEntity]:
        with self._session_factory() as session:
            attachment = session.get(AttachmentModel, attachment_id)
            return _attachment_entity(attachment) if attachment else None

    def create_attachment(self, data: Mapping[str, Any]) -> AttachmentEntity:
        with self._session_factory() as session:
            attachment = AttachmentModel(**data)
            session.add(attachment)
            session.commit()
            session.refresh(attachment)
            return _attachment_entity(attachment)

    def delete_attachment(self, attachment_id: str) -> bool:
        with self._session_factory() as session:
            attachment = session.get(AttachmentModel, attachment_id)
            if not attachment:
                return False
            session.delete(attachment)
            session.commit()
            return True
