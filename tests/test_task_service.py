from __future__ import annotations

import json
from datetime import date, datetime

import pytest

from taskloop.domain.entities import TaskEntity
from taskloop.domain.enums import ConflictResolution, IntervalUnit, OverdueBehavior, Weekday
from taskloop.domain.errors import NotFoundError, SchedulingError, TaskValidationError
from taskloop.services.import_merge import ImportNeedsResolution, ImportSucceeded
from taskloop.services.task_service import TaskService

TODAY = date(2025, 1, 6)  # Monday


def _task(task_id: str, **fields) -> TaskEntity:
    defaults = {"name": task_id.title(), "category": "Kitchen", "next_due": TODAY}
    defaults.update(fields)
    return TaskEntity(id=task_id, **defaults)


def _kitchen(make_repo):
    return make_repo([
        _task("clean-kitchen"),
        _task("load", parent_task_ids=("clean-kitchen",), child_order=1, triggers_task_ids=("unload", "sink")),
        _task("unload", parent_task_ids=("clean-kitchen",), child_order=2,
              interval_unit=IntervalUnit.ADHOC, interval_qty=0, next_due=None),
        _task("sink", parent_task_ids=("clean-kitchen",), child_order=3,
              interval_unit=IntervalUnit.ADHOC, interval_qty=0, next_due=None),
    ])


def test_recurring_task_is_rescheduled_on_completion(make_repo) -> None:
    repo = make_repo([_task("daily", next_due=date(2026, 1, 1))])
    service = TaskService(repo)

    completion = service.complete_task("daily", date(2026, 1, 1))

    assert completion.task.next_due == date(2026, 1, 2)
    assert repo.get_task("daily").next_due == date(2026, 1, 2)
    assert repo.get_task("daily").completion_streak == 1


def test_completion_activates_triggered_tasks_in_one_batch(make_repo) -> None:
    repo = _kitchen(make_repo)
    service = TaskService(repo)

    completion = service.complete_task("load", TODAY)

    assert [t.id for t in completion.activated] == ["unload", "sink"]
    assert repo.get_task("unload").next_due == TODAY
    assert repo.get_task("sink").next_due == TODAY
    assert repo.batches == 1
    # Triggered children are still open, so the parent stays due.
    assert completion.auto_completed == []
    assert repo.get_task("clean-kitchen").last_completed is None


def test_due_list_nests_triggered_children_under_parent(make_repo) -> None:
    repo = _kitchen(make_repo)
    service = TaskService(repo)

    before = service.list_due(TODAY)
    service.complete_task("load", TODAY)
    after = service.list_due(TODAY)

    assert [c.id for c in before[0].children] == ["load"]
    assert len(after) == 1
    assert [c.id for c in after[0].children] == ["load", "unload", "sink"]


def test_parent_auto_completes_when_last_child_finishes(make_repo) -> None:
    repo = _kitchen(make_repo)
    service = TaskService(repo)

    service.complete_task("load", TODAY)
    service.complete_task("unload", TODAY)
    completion = service.complete_task("sink", TODAY)

    assert [t.id for t in completion.auto_completed] == ["clean-kitchen"]
    parent = repo.get_task("clean-kitchen")
    assert parent.last_completed == TODAY
    assert parent.next_due == date(2025, 1, 7)


def test_manual_parent_is_not_auto_completed(make_repo) -> None:
    repo = make_repo([
        _task("parent", requires_manual_completion=True),
        _task("child", parent_task_ids=("parent",)),
    ])

    completion = TaskService(repo).complete_task("child", TODAY)

    assert completion.auto_completed == []
    assert repo.get_task("parent").last_completed is None


def test_ephemeral_task_is_deleted_on_completion(make_repo) -> None:
    repo = make_repo([_task("once", delete_after_completion=True)])

    completion = TaskService(repo).complete_task("once", TODAY)

    assert completion.deleted is True
    assert repo.get_task("once") is None


def test_scheduling_error_leaves_store_untouched(make_repo) -> None:
    repo = make_repo([
        _task("trigger", triggers_task_ids=("broken",)),
        _task("broken", interval_unit=IntervalUnit.ADHOC, excluded_days_of_week=tuple(Weekday)),
    ])

    with pytest.raises(SchedulingError):
        TaskService(repo).complete_task("trigger", TODAY)

    assert repo.get_task("trigger").last_completed is None
    assert repo.batches == 0


def test_completing_missing_task_raises(make_repo) -> None:
    with pytest.raises(NotFoundError):
        TaskService(make_repo()).complete_task("missing", TODAY)


def test_process_overdue_applies_policies(make_repo) -> None:
    repo = make_repo([
        _task("postpone", next_due=date(2025, 1, 1), completion_streak=4),
        _task("skip", next_due=date(2025, 1, 1), interval_qty=7,
              overdue_behavior=OverdueBehavior.SKIP_TO_NEXT, completion_streak=2),
        _task("fine", next_due=TODAY, completion_streak=5),
    ])

    updated = TaskService(repo).process_overdue(TODAY)

    assert {t.id for t in updated} == {"postpone", "skip"}
    assert repo.get_task("postpone").next_due == date(2025, 1, 1)
    assert repo.get_task("postpone").completion_streak == 0
    assert repo.get_task("skip").next_due == date(2025, 1, 8)
    assert repo.get_task("fine").completion_streak == 5


def test_save_new_task_schedules_today_and_mirrors_triggers(make_repo) -> None:
    repo = make_repo([_task("gym")])
    service = TaskService(repo)

    saved = service.save_task(
        TaskEntity(name="Stretch", category="Health", triggered_by_task_ids=("gym",)),
        today=TODAY,
    )

    assert saved.id is not None
    assert saved.next_due == TODAY
    assert repo.get_task("gym").triggers_task_ids == (saved.id,)


def test_save_adhoc_task_stays_unscheduled(make_repo) -> None:
    saved = TaskService(make_repo()).save_task(
        TaskEntity(name="Descale", category="Kitchen", interval_unit=IntervalUnit.ADHOC, interval_qty=0),
        today=TODAY,
    )

    assert saved.next_due is None


def test_save_updates_child_list_and_removes_stale_edges(make_repo) -> None:
    repo = make_repo([
        _task("parent", triggers_task_ids=("old",)),
        _task("old", parent_task_ids=("parent",), triggered_by_task_ids=("parent",)),
        _task("new"),
    ])
    service = TaskService(repo)

    service.save_task(_task("parent", triggers_task_ids=("new",)), child_ids=["new"])

    assert repo.get_task("old").parent_task_ids is None
    assert repo.get_task("old").triggered_by_task_ids is None
    assert repo.get_task("new").parent_task_ids == ("parent",)
    assert repo.get_task("new").triggered_by_task_ids == ("parent",)


@pytest.mark.parametrize(
    "task, child_ids",
    [
        (_task("a", name=""), None),
        (_task("a", name="x" * 101), None),
        (_task("a", category=""), None),
        (_task("a", interval_qty=0), None),
        (_task("a", parent_task_ids=("a",)), None),
        (_task("a", triggers_task_ids=("a",)), None),
        (_task("a"), ["a"]),
        (_task("a", parent_task_ids=("b",)), ["b"]),
    ],
)
def test_save_rejects_invalid_tasks(make_repo, task, child_ids) -> None:
    with pytest.raises(TaskValidationError):
        TaskService(make_repo()).save_task(task, child_ids=child_ids)


def test_save_rejects_parent_cycles(make_repo) -> None:
    repo = make_repo([
        _task("root"),
        _task("middle", parent_task_ids=("root",)),
    ])

    with pytest.raises(TaskValidationError):
        TaskService(repo).save_task(_task("root", parent_task_ids=("middle",)))


def test_delete_does_not_cascade_references(make_repo) -> None:
    repo = make_repo([_task("parent"), _task("child", parent_task_ids=("parent",))])
    service = TaskService(repo)

    service.delete_task("parent")

    assert repo.get_task("child").parent_task_ids == ("parent",)
    items = service.list_due(TODAY)
    assert [item.task.id for item in items] == ["child"]
    with pytest.raises(NotFoundError):
        service.delete_task("parent")


def test_archived_tasks_leave_the_due_list(make_repo) -> None:
    repo = make_repo([_task("a"), _task("b")])
    service = TaskService(repo)

    service.archive_task("a")
    assert [item.task.id for item in service.list_due(TODAY)] == ["b"]

    service.restore_task("a")
    assert len(service.list_due(TODAY)) == 2


def test_export_and_import_through_files(make_repo, tmp_path) -> None:
    source = TaskService(make_repo([_task("a"), _task("b", parent_task_ids=("a",))]))
    target_repo = make_repo([_task("a", name="Local a")])
    target = TaskService(target_repo)
    path = tmp_path / "backup.json"

    assert source.export_to_path(path, now=datetime(2025, 1, 6, 8, 0)) == 2
    assert json.loads(path.read_text(encoding="utf-8"))["exportDate"] == "2025-01-06T08:00:00"

    result = target.import_from_path(path)
    assert isinstance(result, ImportNeedsResolution)

    done = target.finish_import(result.pending, {"a": ConflictResolution.REPLACE})
    assert done == ImportSucceeded(tasks_imported=1, tasks_skipped=0, tasks_replaced=1)
    assert target_repo.get_task("a").name == "A"


def test_completing_twice_on_the_same_day_changes_nothing(make_repo) -> None:
    repo = make_repo([
        _task("a", next_due=date(2025, 1, 5), overdue_behavior=OverdueBehavior.SKIP_TO_NEXT,
              triggers_task_ids=("b",)),
        _task("b", interval_unit=IntervalUnit.ADHOC, interval_qty=0, next_due=None),
    ])
    service = TaskService(repo)

    first = service.complete_task("a", date(2025, 1, 5))
    second = service.complete_task("a", date(2025, 1, 5))

    assert first.task.next_due == date(2025, 1, 6)
    assert second.task == first.task
    assert second.activated == []
    assert repo.get_task("a").next_due == date(2025, 1, 6)
    assert repo.get_task("a").completion_streak == 1
    assert repo.batches == 1
