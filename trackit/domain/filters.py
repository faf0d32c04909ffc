from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .enums import TaskStatus


@dataclass(frozen=True)
class TaskFilters:
    status: Optional[TaskStatus] = None
    # When set, only tasks the requester created or is assigned to are returned.
    requester_id: str | None = None
    parent_id: str | None = None
    due_before: Optional[datetime] = None
    include_archived: bool = True
