from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base

TASK_NUMBER_COUNTER = "task_number"
HIERARCHY_COUNTER = "hierarchy"


def utcnow() -> datetime:
    # Naive UTC throughout; SQLite drops tzinfo on the way back.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class CounterModel(Base):
    __tablename__ = "task_counters"

    name = Column(String(50), primary_key=True)
    value = Column(Integer, nullable=False, default=0)


class TaskModel(Base):
    __tablename__ = "tasks"
    __table_args__ = (
        CheckConstraint("tracking_time_seconds >= 0", name="ck_tasks_tracking_seconds"),
        CheckConstraint(
            "time_tracking_active = (tracking_start_time IS NOT NULL)",
            name="ck_tasks_tracking_consistent",
        ),
        CheckConstraint("parent_id IS NULL OR parent_id <> id", name="ck_tasks_not_own_parent"),
    )

    id = Column(String(36), primary_key=True, default=new_id)
    task_number = Column(Integer, nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="TODO", index=True)
    priority = Column(String(20), nullable=False, default="MEDIUM")
    archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    due_date = Column(DateTime, nullable=True, index=True)
    estimated_hours = Column(Float, nullable=True)
    actual_hours = Column(Float, nullable=True)
    creator_id = Column(String(36), nullable=False, index=True)
    assignee_id = Column(String(36), nullable=True, index=True)
    parent_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True, index=True)
    time_tracking_active = Column(Boolean, nullable=False, default=False)
    tracking_start_time = Column(DateTime, nullable=True)
    tracking_time_seconds = Column(Integer, nullable=False, default=0)
    saved_as_template = Column(Boolean, nullable=False, default=False)
    version = Column(Integer, nullable=False, default=1)

    tag_rows = relationship(
        "TaskTagModel",
        order_by="TaskTagModel.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    subtasks = relationship("TaskModel", cascade="all, delete")
    comments = relationship("CommentModel", cascade="all, delete")
    attachments = relationship("AttachmentModel", cascade="all, delete")


class TaskTagModel(Base):
    __tablename__ = "task_tags"
    __table_args__ = (UniqueConstraint("task_id", "tag", name="uq_task_tags_task_tag"),)

    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), primary_key=True)
    position = Column(Integer, primary_key=True)
    tag = Column(String(100), nullable=False, index=True)


class CommentModel(Base):
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=new_id)
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(String(36), nullable=False)
    parent_id = Column(String(36), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)

    replies = relationship("CommentModel", cascade="all, delete")


class AttachmentModel(Base):
    __tablename__ = "attachments"

    id = Column(String(36), primary_key=True, default=new_id)
    file_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    file_type = Column(String(100), nullable=False)
    file_path = Column(Text, nullable=False)
    thumbnail_url = Column(Text, nullable=True)
    uploaded_at = Column(DateTime, nullable=False, default=utcnow)
    task_id = Column(String(36), ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)


class NotificationModel(Base):
    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=new_id)
    type = Column(String(30), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    user_id = Column(String(36), nullable=False, index=True)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(String(36), nullable=True)


class TaskTemplateModel(Base):
    __tablename__ = "task_templates"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    priority = Column(String(20), nullable=False, default="MEDIUM")
    estimated_hours = Column(Float, nullable=True)
    tags = Column(JSON, nullable=False, default=list)
    is_public = Column(Boolean, nullable=False, default=True)
    category = Column(String(100), nullable=True, index=True)
    template_data = Column(JSON, nullable=False, default=dict)
    usage_count = Column(Integer, nullable=False, default=0)
