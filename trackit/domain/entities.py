from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from .enums import NotificationType, TaskPriority, TaskStatus


@dataclass(frozen=True)
class TaskEntity:
    id: str
    task_number: int
    title: str
    description: Optional[str]
    status: TaskStatus
    priority: TaskPriority
    tags: tuple[str, ...]
    archived: bool
    created_at: datetime
    updated_at: datetime
    due_date: Optional[datetime]
    estimated_hours: Optional[float]
    actual_hours: Optional[float]
    creator_id: str
    assignee_id: Optional[str]
    parent_id: Optional[str]
    time_tracking_active: bool
    tracking_start_time: Optional[datetime]
    tracking_time_seconds: int
    saved_as_template: bool
    version: int


@dataclass(frozen=True)
class TaskCounts:
    subtasks: int = 0
    comments: int = 0
    attachments: int = 0


@dataclass(frozen=True)
class CommentEntity:
    id: str
    task_id: str
    author_id: str
    text: str
    parent_id: Optional[str]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class AttachmentEntity:
    id: str
    task_id: str
    file_name: str
    file_size: int
    file_type: str
    file_path: str
    uploaded_at: datetime
    thumbnail_url: Optional[str] = None


@dataclass(frozen=True)
class NotificationEntity:
    id: str
    user_id: str
    type: NotificationType
    title: str
    message: str
    read: bool
    created_at: datetime
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None


@dataclass(frozen=True)
class TaskTemplateEntity:
    id: str
    name: str
    description: Optional[str]
    priority: TaskPriority
    estimated_hours: Optional[float]
    tags: tuple[str, ...]
    is_public: bool
    category: Optional[str]
    template_data: dict[str, Any] = field(default_factory=dict)
    usage_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
