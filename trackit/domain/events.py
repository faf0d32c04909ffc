from __future__ import annotations

from dataclasses import dataclass

from .enums import NotificationType


@dataclass(frozen=True)
class NotificationEvent:
    type: NotificationType
    user_id: str
    title: str
    message: str
    resource_type: str | None = None
    resource_id: str | None = None
