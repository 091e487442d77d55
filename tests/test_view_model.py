from datetime import timedelta

import pytest

from tasklist.schemas.task import TaskRead, TaskSectionRead
from tasklist.view_model import ReconciliationLog, TaskViewModel, compute_progress, group_tasks


@pytest.mark.parametrize(
    "completed,total,percent",
    [(0, 0, 0), (0, 9, 0), (1, 3, 33), (2, 3, 67), (1, 8, 13), (9, 9, 100)],
)
def test_progress_percent(completed: int, total: int, percent: int) -> None:
    assert compute_progress(completed, total).percent == percent


def test_empty_scope_is_not_all_completed() -> None:
    progress = compute_progress(0, 0)
    assert progress.percent == 0
    assert not progress.all_completed


def test_full_scope_is_all_completed() -> None:
    progress = compute_progress(9, 9)
    assert progress.percent == 100
    assert progress.all_completed


def test_defaults_are_three_sections_nine_tasks() -> None:
    view = TaskViewModel()
    view.load_defaults()

    assert [s.id for s in view.sections] == ["phase1", "phase2", "phase3"]
    assert [len(s.tasks) for s in view.sections] == [3, 2, 4]
    assert view.progress().total == 9


def test_toggle_flips_and_updates_progress() -> None:
    view = TaskViewModel()
    view.load_defaults()

    task = view.toggle("phase2", "task4")
    assert task.completed
    assert view.progress().completed == 1
    assert view.section_progress("phase2").percent == 50

    view.toggle("phase2", "task4")
    assert view.progress().completed == 0


def test_toggle_unknown_ids() -> None:
    view = TaskViewModel()
    view.load_defaults()

    assert view.toggle("phase9", "task1") is None
    # task1 lives in phase1
    assert view.toggle("phase2", "task1") is None


def test_group_tasks_filters_and_orders() -> None:
    sections = [
        TaskSectionRead(id="b", title="B", order_index=2),
        TaskSectionRead(id="a", title="A", order_index=1),
    ]
    tasks = [
        TaskRead(id="t3", section_id="b", title="3", order_index=1),
        TaskRead(id="t2", section_id="a", title="2", order_index=2),
        TaskRead(id="t1", section_id="a", title="1", order_index=1),
        TaskRead(id="orphan", section_id="zzz", title="x", order_index=1),
    ]

    grouped = group_tasks(sections, tasks)

    assert [s.id for s in grouped] == ["a", "b"]
    assert [t.id for t in grouped[0].tasks] == ["t1", "t2"]
    assert [t.id for t in grouped[1].tasks] == ["t3"]


def test_reconciliation_ignores_superseded_attempts() -> None:
    log = ReconciliationLog()
    log.record("task1", True)
    log.record("task1", False)

    # The write for the first toggle finishes late.
    log.mark_attempt("task1", True, "boom")

    (entry,) = log.entries()
    assert entry.desired is False
    assert not entry.attempted
    assert log.failed() == []


def test_reconciliation_keeps_failures_across_reload() -> None:
    log = ReconciliationLog()
    log.record("task1", True)
    log.mark_attempt("task1", True, "boom")
    log.record("task2", True)

    log.discard_unattempted()

    assert [e.task_id for e in log.entries()] == ["task1"]
    assert log.failed()[0].last_error == "boom"


def test_reconciliation_timestamps_are_utc() -> None:
    log = ReconciliationLog()
    entry = log.record("task1", True)
    log.mark_attempt("task1", True, "boom")

    assert entry.updated_at.tzinfo is not None
    assert log.failed()[0].updated_at.utcoffset() == timedelta(0)
