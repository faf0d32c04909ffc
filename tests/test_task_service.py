from __future__ import annotations

from datetime import datetime

import pytest

from trackit.domain.enums import NotificationType, TaskPriority, TaskStatus
from trackit.domain.errors import InvalidStatusError, NotFoundError, ValidationError

from .conftest import ASSIGNEE, CREATOR, OTHER


def test_create_applies_defaults(make_task, clock) -> None:
    task = make_task("  Plan sprint  ", description="Q2 goals")

    assert task.title == "Plan sprint"
    assert task.status is TaskStatus.TODO
    assert task.priority is TaskPriority.MEDIUM
    assert task.archived is False
    assert task.creator_id == CREATOR
    assert task.assignee_id is None
    assert task.time_tracking_active is False
    assert task.tracking_start_time is None
    assert task.tracking_time_seconds == 0
    assert task.saved_as_template is False
    assert task.created_at == clock.now


def test_task_numbers_are_dense_and_never_reused(make_task, task_service) -> None:
    first = make_task("one")
    second = make_task("two")
    third = make_task("three")
    assert [first.task_number, second.task_number, third.task_number] == [1, 2, 3]

    task_service.delete_task(third.id, CREATOR)
    fourth = make_task("four")

    assert fourth.task_number == 4


def test_create_in_archived_status_sets_flag(make_task) -> None:
    assert make_task(status="archived").archived is True


@pytest.mark.parametrize(
    "data",
    [
        {"title": ""},
        {"title": "   "},
        {"title": "ok", "estimated_hours": -1},
        {"title": "ok", "actual_hours": "two"},
        {"title": "ok", "tracking_time_seconds": 100},
        {"description": "no title"},
    ],
)
def test_create_rejects_invalid_input(task_service, data) -> None:
    with pytest.raises(ValidationError):
        task_service.create_task(data, creator_id=CREATOR)


def test_create_rejects_unknown_status(task_service) -> None:
    with pytest.raises(InvalidStatusError):
        task_service.create_task({"title": "x", "status": "BLOCKED"}, creator_id=CREATOR)


def test_create_under_missing_parent_raises(task_service) -> None:
    with pytest.raises(NotFoundError):
        task_service.create_task({"title": "x", "parent_id": "missing"}, creator_id=CREATOR)


def test_create_with_assignee_notifies_them(make_task, sink) -> None:
    task = make_task(assignee_id=ASSIGNEE)

    assert sink.recipients(NotificationType.TASK_ASSIGNED) == [ASSIGNEE]
    assert sink.events[0].resource_type == "task"
    assert sink.events[0].resource_id == task.id


def test_update_normalizes_tags_and_fields(make_task, task_service, clock) -> None:
    task = make_task()
    clock.advance(minutes=3)
    due = datetime(2026, 4, 1, 17, 0)

    updated = task_service.update_task(
        task.id,
        {"tags": "backend, api,  ,backend", "due_date": due, "estimated_hours": 3},
        CREATOR,
    )

    assert updated.tags == ("backend", "api")
    assert updated.due_date == due
    assert updated.estimated_hours == 3.0
    assert updated.updated_at == clock.now


@pytest.mark.parametrize("field", ["status", "priority", "assignee_id", "parent_id", "creator_id"])
def test_update_rejects_fields_with_dedicated_operations(make_task, task_service, field) -> None:
    task = make_task()

    with pytest.raises(ValidationError):
        task_service.update_task(task.id, {field: "x"}, CREATOR)


def test_set_assignee_notifies_new_assignee_only(make_task, task_service, sink) -> None:
    task = make_task()

    task_service.set_assignee(task.id, ASSIGNEE, CREATOR)
    task_service.set_assignee(task.id, ASSIGNEE, CREATOR)
    task_service.set_assignee(task.id, OTHER, OTHER)
    unassigned = task_service.set_assignee(task.id, None, CREATOR)

    assert sink.recipients(NotificationType.TASK_ASSIGNED) == [ASSIGNEE]
    assert unassigned.assignee_id is None


def test_get_missing_task_raises(task_service) -> None:
    with pytest.raises(NotFoundError):
        task_service.get_task("missing")
    with pytest.raises(NotFoundError):
        task_service.delete_task("missing")


def test_delete_cascades_to_subtasks_comments_and_attachments(
    make_task, task_service, hierarchy, comment_service, attachment_service, task_repo
) -> None:
    parent = make_task("Parent")
    child = make_task("Child", parent_id=parent.id)
    grandchild = make_task("Grandchild")
    hierarchy.attach_subtask(grandchild.id, child.id)
    comment = comment_service.add_comment(parent.id, OTHER, "first")
    comment_service.add_comment(parent.id, CREATOR, "reply", parent_id=comment.id)
    attachment = attachment_service.add_attachment(parent.id, "plan.pdf", 1200, "application/pdf", "/f/plan.pdf")
    unrelated = make_task("Unrelated")

    task_service.delete_task(parent.id, CREATOR)

    assert task_repo.get_task(child.id) is None
    assert task_repo.get_task(grandchild.id) is None
    assert task_repo.get_task(unrelated.id) is not None
    with pytest.raises(NotFoundError):
        attachment_service.get_attachment(attachment.id)
    with pytest.raises(NotFoundError):
        comment_service.delete_comment(comment.id)


def test_stats_count_statuses_and_tracking(make_task, task_service, workflow, tracker, clock) -> None:
    make_task("a")
    b = make_task("b", due_date=datetime(2026, 3, 1))
    c = make_task("c")
    workflow.set_status(c.id, TaskStatus.DONE, CREATOR)
    tracker.start_tracking(b.id)
    clock.advance(seconds=30)
    tracker.stop_tracking(b.id)
    tracker.start_tracking(b.id)

    stats = task_service.get_stats()

    assert stats["total"] == 3
    assert stats["todo"] == 2
    assert stats["done"] == 1
    assert stats["overdue"] == 1
    assert stats["tracking"] == 1
    assert stats["tracked_seconds"] == 30
