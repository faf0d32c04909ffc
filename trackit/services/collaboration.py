from __future__ import annotations

import logging
import re

from trackit.domain.entities import AttachmentEntity, CommentEntity, TaskEntity
from trackit.domain.errors import NotFoundError, PermissionDeniedError, ValidationError
from trackit.infra.collaboration import AttachmentRepository, CommentRepository
from trackit.infra.repository import TaskRepository

from .notifications import NotificationEmitter, comment_added, mentioned, watchers

logger = logging.getLogger(__name__)

# Mentions carry the user id: "@3f2b...".
MENTION_PATTERN = re.compile(r"@([\w-]+)")


def extract_mentions(text: str) -> list[str]:
    found: list[str] = []
    for user_id in MENTION_PATTERN.findall(text):
        if user_id not in found:
            found.append(user_id)
    return found


def thumbnail_url(file_path: str, file_type: str) -> str | None:
    if not file_type.startswith("image/"):
        return None
    return f"{file_path}.thumb"


class CommentService:
    def __init__(
        self,
        tasks: TaskRepository,
        comments: CommentRepository,
        emitter: NotificationEmitter,
    ) -> None:
        self._tasks = tasks
        self._comments = comments
        self._emitter = emitter

    def list_comments(self, task_id: str) -> list[CommentEntity]:
        self._load_task(task_id)
        return self._comments.list_comments(task_id)

    def add_comment(
        self,
        task_id: str,
        author_id: str,
        text: str,
        parent_id: str | None = None,
    ) -> CommentEntity:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment text must not be empty")
        task = self._load_task(task_id)
        if parent_id is not None:
            parent = self._comments.get_comment(parent_id)
            if parent is None:
                raise NotFoundError("Comment", parent_id)
            if parent.task_id != task_id:
                raise ValidationError(f"Comment {parent_id} belongs to another task")

        comment = self._comments.create_comment(
            {"task_id": task_id, "author_id": author_id, "text": text, "parent_id": parent_id}
        )
        logger.info("Comment %s added to task %s by %s", comment.id, task_id, author_id)
        self._notify(task, comment)
        return comment

    def edit_comment(self, comment_id: str, author_id: str, text: str) -> CommentEntity:
        comment = self._load_comment(comment_id)
        if comment.author_id != author_id:
            raise PermissionDeniedError("Only the author can edit a comment")
        text = (text or "").strip()
        if not text:
            raise ValidationError("Comment text must not be empty")
        updated = self._comments.update_text(comment_id, text)
        if updated is None:
            raise NotFoundError("Comment", comment_id)
        return updated

    def delete_comment(self, comment_id: str) -> None:
        if not self._comments.delete_comment(comment_id):
            raise NotFoundError("Comment", comment_id)
        logger.info("Deleted comment %s", comment_id)

    def _notify(self, task: TaskEntity, comment: CommentEntity) -> None:
        recipients = watchers(task, comment.author_id)
        self._emitter.emit_all(comment_added(task, comment, user_id) for user_id in recipients)
        self._emitter.emit_all(
            mentioned(task, comment, user_id)
            for user_id in extract_mentions(comment.text)
            if user_id != comment.author_id
        )

    def _load_task(self, task_id: str) -> TaskEntity:
        task = self._tasks.get_task(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def _load_comment(self, comment_id: str) -> CommentEntity:
        comment = self._comments.get_comment(comment_id)
        if comment is None:
            raise NotFoundError("Comment", comment_id)
        return comment


class AttachmentService:
    """Attachment metadata only; the file bytes live elsewhere."""

    def __init__(self, tasks: TaskRepository, attachments: AttachmentRepository) -> None:
        self._tasks = tasks
        self._attachments = attachments

    def list_attachments(self, task_id: str) -> list[AttachmentEntity]:
        if self._tasks.get_task(task_id) is None:
            raise NotFoundError("Task", task_id)
        return self._attachments.list_attachments(task_id)

    def get_attachment(self, attachment_id: str) -> AttachmentEntity:
        attachment = self._attachments.get_attachment(attachment_id)
        if attachment is None:
            raise NotFoundError("Attachment", attachment_id)
        return attachment

    def add_attachment(
        self,
        task_id: str,
        file_name: str,
        file_size: int,
        file_type: str,
        file_path: str,
    ) -> AttachmentEntity:
        if self._tasks.get_task(task_id) is None:
            raise NotFoundError("Task", task_id)
        if not file_name:
            raise ValidationError("Attachment needs a file name")
        if file_size < 0:
            raise ValidationError("Attachment size must not be negative")
        attachment = self._attachments.create_attachment({
            "task_id": task_id,
            "file_name": file_name,
            "file_size": file_size,
            "file_type": file_type,
            "file_path": file_path,
            "thumbnail_url": thumbnail_url(file_path, file_type),
        })
        logger.info("Attachment %s (%s) added to task %s", attachment.id, file_name, task_id)
        return attachment

    def delete_attachment(self, attachment_id: str) -> None:
        if not self._attachments.delete_attachment(attachment_id):
            raise NotFoundError("Attachment", attachment_id)
        logger.info("Deleted attachment %s", attachment_id)
