from __future__ import annotations

import logging
from typing import Any, Mapping

from trackit.domain.entities import TaskEntity, TaskTemplateEntity
from trackit.domain.errors import NotFoundError, PermissionDeniedError, ValidationError
from trackit.domain.filters import TaskFilters
from trackit.infra.repository import TaskRepository
from trackit.infra.templates import TemplateRepository

from .task_service import TaskService

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "uncategorized"
OVERRIDABLE_FIELDS = frozenset({"title", "description", "status", "priority", "due_date", "assignee_id"})


class TemplateService:
    """Task templates are detached copies: nothing links a template back to its source."""

    def __init__(
        self,
        templates: TemplateRepository,
        tasks: TaskRepository,
        task_service: TaskService,
    ) -> None:
        self._templates = templates
        self._tasks = tasks
        self._task_service = task_service

    def get_template(self, template_id: str) -> TaskTemplateEntity:
        template = self._templates.get_template(template_id)
        if template is None:
            raise NotFoundError("Template", template_id)
        return template

    def list_templates(self, category: str | None = None) -> list[TaskTemplateEntity]:
        return self._templates.list_templates(category)

    def categories(self) -> list[str]:
        return sorted({t.category for t in self._templates.list_templates() if t.category})

    def search_templates(self, query: str) -> list[TaskTemplateEntity]:
        needle = query.lower()
        return [
            template
            for template in self._templates.list_templates()
            if needle in template.name.lower()
            or needle in (template.description or "").lower()
            or needle in (template.category or "").lower()
            or query in template.tags
        ]

    def save_as_template(
        self,
        task_id: str,
        name: str,
        actor_id: str,
        is_public: bool = True,
        category: str | None = None,
    ) -> TaskTemplateEntity:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Template name must not be empty")
        task = self._task_service.get_task(task_id)
        if task.creator_id != actor_id:
            raise PermissionDeniedError("Only the task creator can save it as a template")

        subtasks = self._tasks.query(TaskFilters(parent_id=task_id))
        template = self._templates.create_template({
            "name": name,
            "description": task.description,
            "priority": task.priority.value,
            "estimated_hours": task.estimated_hours,
            "tags": list(task.tags),
            "is_public": is_public,
            "category": category or (task.tags[0] if task.tags else DEFAULT_CATEGORY),
            "template_data": _snapshot(task, subtasks),
        })
        if not task.saved_as_template:
            self._tasks.update_task(task_id, {"saved_as_template": True})
        logger.info("Task %s saved as template %s by %s", task_id, template.id, actor_id)
        return template

    def create_from_template(
        self,
        template_id: str,
        actor_id: str,
        overrides: Mapping[str, Any] | None = None,
    ) -> TaskEntity:
        overrides = dict(overrides or {})
        unknown = set(overrides) - OVERRIDABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown template overrides: {', '.join(sorted(unknown))}")
        template = self.get_template(template_id)
        data = template.template_data

        task = self._task_service.create_task(
            {
                "title": overrides.get("title") or template.name,
                "description": overrides.get("description") or template.description,
                "status": overrides.get("status") or "TODO",
                "priority": overrides.get("priority") or template.priority,
                "tags": template.tags,
                "estimated_hours": template.estimated_hours,
                "due_date": overrides.get("due_date"),
                "assignee_id": overrides.get("assignee_id"),
            },
            creator_id=actor_id,
        )
        for subtask in data.get("subtasks", []):
            self._task_service.create_task(
                {
                    "title": subtask["title"],
                    "description": subtask.get("description"),
                    "priority": subtask.get("priority") or template.priority,
                    "parent_id": task.id,
                },
                creator_id=actor_id,
            )
        self._templates.increment_usage(template_id)
        logger.info("Task %s created from template %s by %s", task.id, template_id, actor_id)
        return task

    def delete_template(self, template_id: str) -> None:
        if not self._templates.delete_template(template_id):
            raise NotFoundError("Template", template_id)


def _snapshot(task: TaskEntity, subtasks: list[TaskEntity]) -> dict[str, Any]:
    return {
        "title": task.title,
        "description": task.description,
        "priority": task.priority.value,
        "tags": list(task.tags),
        "estimated_hours": task.estimated_hours,
        "subtasks": [
            {
                "title": subtask.title,
                "description": subtask.description,
                "priority": subtask.priority.value,
            }
            for subtask in sorted(subtasks, key=lambda item: item.task_number)
        ],
    }
