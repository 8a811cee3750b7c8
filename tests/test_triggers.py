from __future__ import annotations

from datetime import date

import pytest

from taskloop.domain.entities import TaskEntity
from taskloop.domain.enums import IntervalUnit, Weekday
from taskloop.domain.errors import SchedulingError
from taskloop.services.triggers import resolve_triggers

TODAY = date(2025, 1, 4)  # Saturday


def _adhoc(task_id: str, **fields) -> TaskEntity:
    return TaskEntity(
        id=task_id,
        name=task_id.title(),
        category="Kitchen",
        interval_unit=IntervalUnit.ADHOC,
        interval_qty=0,
        **fields,
    )


def test_completed_task_activates_its_targets_today() -> None:
    load = _adhoc("load", triggers_task_ids=("unload", "sink"))
    unload = _adhoc("unload", triggered_by_task_ids=("load",))
    sink = _adhoc("sink", next_due=date(2025, 2, 1))

    activations = resolve_triggers(load, [load, unload, sink], TODAY)

    assert [(a.task_id, a.next_due) for a in activations] == [
        ("unload", TODAY),
        ("sink", TODAY),
    ]


def test_dangling_targets_are_skipped() -> None:
    load = _adhoc("load", triggers_task_ids=("deleted", "unload"))
    unload = _adhoc("unload")

    activations = resolve_triggers(load, [load, unload], TODAY)

    assert [a.task_id for a in activations] == ["unload"]


def test_activation_is_one_hop_only() -> None:
    a = _adhoc("a", triggers_task_ids=("b",))
    b = _adhoc("b", triggers_task_ids=("c",))
    c = _adhoc("c")

    activations = resolve_triggers(a, [a, b, c], TODAY)

    assert [a.task_id for a in activations] == ["b"]


def test_target_filters_move_activation_date() -> None:
    load = _adhoc("load", triggers_task_ids=("unload",))
    unload = _adhoc("unload", excluded_days_of_week=(Weekday.SATURDAY, Weekday.SUNDAY))

    activations = resolve_triggers(load, {"load": load, "unload": unload}, TODAY)

    assert activations[0].next_due == date(2025, 1, 6)


def test_duplicate_and_self_targets_are_ignored() -> None:
    load = _adhoc("load", triggers_task_ids=("load", "unload", "unload"))
    unload = _adhoc("unload")

    activations = resolve_triggers(load, [load, unload], TODAY)

    assert [a.task_id for a in activations] == ["unload"]


def test_target_without_valid_date_raises() -> None:
    load = _adhoc("load", triggers_task_ids=("unload",))
    unload = _adhoc("unload", excluded_days_of_week=tuple(Weekday))

    with pytest.raises(SchedulingError):
        resolve_triggers(load, [load, unload], TODAY)
