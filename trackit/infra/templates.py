from __future__ import annotations

from typing import Any, Mapping, Optional

from sqlalchemy import select, update

from trackit.domain.entities import TaskTemplateEntity
from trackit.domain.enums import TaskPriority

from .db import SessionLocal
from .models import TaskTemplateModel


def _to_entity(model: TaskTemplateModel) -> TaskTemplateEntity:
    return TaskTemplateEntity(
        id=model.id,
        name=model.name,
        description=model.description,
        priority=TaskPriority(model.priority),
        estimated_hours=model.estimated_hours,
        tags=tuple(model.tags or ()),
        is_public=model.is_public,
        category=model.category,
        template_data=dict(model.template_data or {}),
        usage_count=model.usage_count,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class TemplateRepository:
    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    def get_template(self, template_id: str) -> Optional[TaskTemplateEntity]:
        with self._session_factory() as session:
            template = session.get(TaskTemplateModel, template_id)
            return _to_entity(template) if template else None

    def list_templates(self, category: str | None = None) -> list[TaskTemplateEntity]:
        with self._session_factory() as session:
            stmt = select(TaskTemplateModel).where(TaskTemplateModel.is_public.is_(True))
            if category is not None:
                stmt = stmt.where(TaskTemplateModel.category == category)
            stmt = stmt.order_by(TaskTemplateModel.updated_at.desc())
            return [_to_entity(template) for template in session.scalars(stmt)]

    def create_template(self, data: Mapping[str, Any]) -> TaskTemplateEntity:
        with self._session_factory() as session:
            template = TaskTemplateModel(**data)
            session.add(template)
            session.commit()
            session.refresh(template)
            return _to_entity(template)

    def increment_usage(self, template_id: str) -> bool:
        with self._session_factory() as session:
            result = session.execute(
                update(TaskTemplateModel)
                .where(TaskTemplateModel.id == template_id)
                .values(usage_count=TaskTemplateModel.usage_count + 1)
                .execution_options(synchronize_session=False)
            )
            session.commit()
            return bool(result.rowcount)

    def delete_template(self, template_id: str) -> bool:
        with self._session_factory() as session:
            template = session.get(TaskTemplateModel, template_id)
            if not template:
                return False
            session.delete(template)
            session.commit()
            return True
