from __future__ import annotations

import os
from datetime import datetime, timedelta

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from trackit.domain.events import NotificationEvent
from trackit.infra import models  # noqa: F401
from trackit.infra.collaboration import AttachmentRepository, CommentRepository
from trackit.infra.db import Base
from trackit.infra.notifications import NotificationRepository
from trackit.infra.repository import TaskRepository, ensure_counters
from trackit.infra.templates import TemplateRepository
from trackit.services.collaboration import AttachmentService, CommentService
from trackit.services.hierarchy import HierarchyManager
from trackit.services.notifications import NotificationEmitter
from trackit.services.task_service import TaskService
from trackit.services.templates import TemplateService
from trackit.services.time_tracking import TimeTracker
from trackit.services.workflow import WorkflowService

CREATOR = "user-creator"
ASSIGNEE = "user-assignee"
OTHER = "user-other"


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 2, 9, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSink:
    def __init__(self) -> None:
        self.events: list[NotificationEvent] = []

    def create_notification(self, event: NotificationEvent) -> NotificationEvent:
        self.events.append(event)
        return event

    def recipients(self, event_type=None) -> list[str]:
        return [e.user_id for e in self.events if event_type is None or e.type == event_type]


class FailingSink:
    def create_notification(self, event: NotificationEvent) -> None:
        raise RuntimeError("notification store is down")


@pytest.fixture()
def session_factory():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    ensure_counters(factory)
    yield factory
    engine.dispose()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture()
def emitter(sink: RecordingSink) -> NotificationEmitter:
    return NotificationEmitter(sink)


@pytest.fixture()
def task_repo(session_factory) -> TaskRepository:
    return TaskRepository(session_factory)


@pytest.fixture()
def notification_repo(session_factory) -> NotificationRepository:
    return NotificationRepository(session_factory)


@pytest.fixture()
def task_service(task_repo, emitter, clock) -> TaskService:
    return TaskService(task_repo, emitter, clock)


@pytest.fixture()
def workflow(task_repo, emitter, clock) -> WorkflowService:
    return WorkflowService(task_repo, emitter, clock)


@pytest.fixture()
def hierarchy(task_repo, clock) -> HierarchyManager:
    return HierarchyManager(task_repo, clock)


@pytest.fixture()
def tracker(task_repo, clock) -> TimeTracker:
    return TimeTracker(task_repo, clock)


@pytest.fixture()
def comment_service(session_factory, task_repo, emitter) -> CommentService:
    return CommentService(task_repo, CommentRepository(session_factory), emitter)


@pytest.fixture()
def attachment_service(session_factory, task_repo) -> AttachmentService:
    return AttachmentService(task_repo, AttachmentRepository(session_factory))


@pytest.fixture()
def template_service(session_factory, task_repo, task_service) -> TemplateService:
    return TemplateService(TemplateRepository(session_factory), task_repo, task_service)


@pytest.fixture()
def make_task(task_service):
    def _make(title: str = "Write report", creator_id: str = CREATOR, **data):
        return task_service.create_task({"title": title, **data}, creator_id=creator_id)

    return _make
