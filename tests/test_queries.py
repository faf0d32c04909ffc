from __future__ import annotations

import pytest
from sqlalchemy import update

from trackit.domain.enums import TaskStatus
from trackit.domain.errors import InvalidStatusError
from trackit.infra.models import TASK_NUMBER_COUNTER, CounterModel

from .conftest import ASSIGNEE, CREATOR, OTHER


def _ids(tasks) -> set[str]:
    return {task.id for task in tasks}


def test_backlog_is_visible_to_everyone(make_task, task_service) -> None:
    mine = make_task("mine", status="BACKLOG")
    theirs = make_task("theirs", creator_id=OTHER, status="BACKLOG")
    make_task("todo", creator_id=OTHER)

    assert _ids(task_service.list_by_status("backlog", CREATOR)) == {mine.id, theirs.id}


def test_other_statuses_only_show_creator_or_assignee(make_task, task_service) -> None:
    created = make_task("created")
    assigned = make_task("assigned", creator_id=OTHER, assignee_id=CREATOR)
    make_task("someone else's", creator_id=OTHER, assignee_id=ASSIGNEE)
    make_task("backlog", status=TaskStatus.BACKLOG)

    assert _ids(task_service.list_by_status(TaskStatus.TODO, CREATOR)) == {created.id, assigned.id}
    assert task_service.list_by_status(TaskStatus.DONE, CREATOR) == []


def test_list_by_status_rejects_unknown_status(task_service) -> None:
    with pytest.raises(InvalidStatusError):
        task_service.list_by_status("blocked", CREATOR)


def test_search_matches_title_and_description_case_insensitively(make_task, task_service) -> None:
    by_title = make_task("Fix LOGIN issues")
    by_description = make_task("Auth", description="users cannot login after reset")
    make_task("Unrelated")

    assert _ids(task_service.search("login")) == {by_title.id, by_description.id}


def test_search_matches_tags_exactly(make_task, task_service) -> None:
    tagged = make_task("Tagged", tags=["backend", "api"])
    make_task("Other", tags=["backend-v2"])

    assert _ids(task_service.search("backend")) == {tagged.id}
    assert task_service.search("back") == []


def test_search_treats_wildcards_literally(make_task, task_service) -> None:
    literal = make_task("Reach 100% coverage")
    make_task("Reach 1000 users")

    assert _ids(task_service.search("100%")) == {literal.id}


def test_numeric_search_includes_task_number(make_task, task_service, session_factory) -> None:
    with session_factory() as session:
        session.execute(
            update(CounterModel).where(CounterModel.name == TASK_NUMBER_COUNTER).values(value=41)
        )
        session.commit()
    numbered = make_task("Ship release")
    mentions = make_task("Answer 42 questions")
    both = make_task("Ticket", description="follow-up of 42")
    assert numbered.task_number == 42

    results = task_service.search("42")

    assert _ids(results) == {numbered.id, mentions.id, both.id}
    assert len(results) == len(_ids(results))


def test_number_and_text_match_on_same_task_is_returned_once(make_task, task_service) -> None:
    task = make_task("Item 1")

    assert [t.id for t in task_service.search("1")] == [task.id]


def test_counts_are_aggregated(make_task, task_service, hierarchy, comment_service, attachment_service) -> None:
    parent = make_task("Parent")
    for name in ("a", "b"):
        hierarchy.attach_subtask(make_task(name).id, parent.id)
    comment_service.add_comment(parent.id, CREATOR, "looks good")
    attachment_service.add_attachment(parent.id, "a.png", 10, "image/png", "/files/a.png")

    counts = task_service.get_counts(parent.id)

    assert (counts.subtasks, counts.comments, counts.attachments) == (2, 1, 1)
