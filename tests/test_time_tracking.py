from __future__ import annotations

from dataclasses import replace
from datetime import datetime

import pytest

from trackit.domain.errors import AlreadyTrackingError, NotFoundError, NotTrackingError
from trackit.services.time_tracking import elapsed_seconds, tracked_seconds

from .conftest import CREATOR


def test_start_then_stop_accumulates_elapsed_seconds(make_task, tracker, task_repo, clock) -> None:
    task = make_task()
    assert task.tracking_time_seconds == 0

    started = tracker.start_tracking(task.id, CREATOR)
    assert started.time_tracking_active is True
    assert started.tracking_start_time == clock.now

    clock.advance(seconds=125)
    stopped = tracker.stop_tracking(task.id, CREATOR)

    assert stopped.tracking_time_seconds == 125
    assert stopped.time_tracking_active is False
    assert stopped.tracking_start_time is None
    assert task_repo.get_task(task.id) == stopped


def test_elapsed_time_is_truncated_not_rounded(make_task, tracker, clock) -> None:
    task = make_task()
    tracker.start_tracking(task.id)
    clock.advance(seconds=9, microseconds=999_999)

    assert tracker.stop_tracking(task.id).tracking_time_seconds == 9


def test_total_is_sum_of_intervals_and_never_decreases(make_task, tracker, clock) -> None:
    task = make_task()
    totals = []
    for seconds in (10, 20.5, 0, 3600):
        tracker.start_tracking(task.id)
        clock.advance(seconds=seconds)
        totals.append(tracker.stop_tracking(task.id).tracking_time_seconds)
        clock.advance(minutes=5)

    assert totals == [10, 30, 30, 3630]
    assert totals == sorted(totals)


def test_second_start_fails_and_keeps_start_time(make_task, tracker, task_repo, clock) -> None:
    task = make_task()
    first = tracker.start_tracking(task.id)
    clock.advance(seconds=30)

    with pytest.raises(AlreadyTrackingError):
        tracker.start_tracking(task.id)

    current = task_repo.get_task(task.id)
    assert current.tracking_start_time == first.tracking_start_time
    assert current.version == first.version


def test_stop_on_idle_task_fails_without_mutation(make_task, tracker, task_repo) -> None:
    task = make_task()

    with pytest.raises(NotTrackingError):
        tracker.stop_tracking(task.id)

    assert task_repo.get_task(task.id) == task


def test_stop_rejects_active_flag_without_start_time(make_task, tracker, task_repo, monkeypatch) -> None:
    task = make_task()
    corrupted = replace(task, time_tracking_active=True, tracking_start_time=None)
    monkeypatch.setattr(task_repo, "get_task", lambda task_id: corrupted)

    with pytest.raises(NotTrackingError):
        tracker.stop_tracking(task.id)


def test_clock_skew_counts_as_zero(make_task, tracker, clock) -> None:
    task = make_task()
    tracker.start_tracking(task.id)
    clock.advance(seconds=40)
    tracker.stop_tracking(task.id)

    tracker.start_tracking(task.id)
    clock.advance(seconds=-90)
    stopped = tracker.stop_tracking(task.id)

    assert stopped.tracking_time_seconds == 40
    assert stopped.time_tracking_active is False


def test_racing_start_loses_with_already_tracking(make_task, tracker, task_repo, monkeypatch) -> None:
    task = make_task()
    stale = task_repo.get_task(task.id)
    winner = tracker.start_tracking(task.id)

    # The loser read the row before the winner wrote it.
    real_get = task_repo.get_task
    reads = iter([stale])
    monkeypatch.setattr(task_repo, "get_task", lambda task_id: next(reads, None) or real_get(task_id))

    with pytest.raises(AlreadyTrackingError):
        tracker.start_tracking(task.id)

    current = real_get(task.id)
    assert current.time_tracking_active is True
    assert current.tracking_start_time == winner.tracking_start_time
    assert current.version == winner.version


def test_racing_stop_does_not_double_count(make_task, tracker, task_repo, clock, monkeypatch) -> None:
    task = make_task()
    tracker.start_tracking(task.id)
    clock.advance(seconds=60)
    stale = task_repo.get_task(task.id)
    tracker.stop_tracking(task.id)

    real_get = task_repo.get_task
    reads = iter([stale])
    monkeypatch.setattr(task_repo, "get_task", lambda task_id: next(reads, None) or real_get(task_id))

    with pytest.raises(NotTrackingError):
        tracker.stop_tracking(task.id)
    assert real_get(task.id).tracking_time_seconds == 60


def test_missing_task_raises_not_found(tracker) -> None:
    with pytest.raises(NotFoundError):
        tracker.start_tracking("missing")
    with pytest.raises(NotFoundError):
        tracker.stop_tracking("missing")


def test_tracked_seconds_includes_open_interval(make_task, tracker, clock) -> None:
    task = make_task()
    tracker.start_tracking(task.id)
    clock.advance(seconds=50)
    stopped = tracker.stop_tracking(task.id)
    running = tracker.start_tracking(task.id)
    clock.advance(seconds=15)

    assert tracked_seconds(stopped, clock.now) == 50
    assert tracked_seconds(running, clock.now) == 65


def test_elapsed_seconds_clamps_negative() -> None:
    start = datetime(2026, 1, 1, 12, 0, 0)
    assert elapsed_seconds(start, datetime(2026, 1, 1, 11, 59, 0)) == 0
    assert elapsed_seconds(start, datetime(2026, 1, 1, 12, 2, 5, 500_000)) == 125
