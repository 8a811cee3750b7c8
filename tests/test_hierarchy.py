from __future__ import annotations

import random
from datetime import date

import pytest

from taskloop.domain.entities import TaskEntity
from taskloop.services.hierarchy import group, group_by_category


def _task(task_id: str, parents: tuple[str, ...] | None = None, order: int | None = None, category: str = "Home") -> TaskEntity:
    return TaskEntity(
        id=task_id,
        name=task_id,
        category=category,
        next_due=date(2025, 1, 1),
        parent_task_ids=parents,
        child_order=order,
    )


def _ids(tasks) -> list[str]:
    return [task.id for task in tasks]


def test_children_are_nested_and_sorted_by_child_order() -> None:
    parent = _task("parent")
    child_a = _task("childA", ("parent",), 2)
    child_b = _task("childB", ("parent",), 1)

    items = group([parent, child_a, child_b])

    assert len(items) == 1
    assert items[0].task.id == "parent"
    assert items[0].is_parent is True
    assert _ids(items[0].children) == ["childB", "childA"]


def test_missing_child_order_sorts_as_zero_and_ties_keep_input_order() -> None:
    parent = _task("parent")
    first = _task("first", ("parent",), 0)
    unordered = _task("unordered", ("parent",))
    last = _task("last", ("parent",), 0)

    items = group([parent, first, unordered, last])

    assert _ids(items[0].children) == ["first", "unordered", "last"]


def test_orphan_surfaces_top_level() -> None:
    orphan = _task("child", ("deleted-parent",), 1)
    standalone = _task("standalone")

    items = group([orphan, standalone])

    assert [item.task.id for item in items] == ["child", "standalone"]
    assert all(item.children == [] and item.is_parent is False for item in items)


def test_child_goes_under_first_resolving_parent_only() -> None:
    first = _task("first")
    second = _task("second")
    child = _task("child", ("deleted", "second", "first"))

    items = group([first, second, child])

    by_id = {item.task.id: item for item in items}
    assert _ids(by_id["second"].children) == ["child"]
    assert by_id["first"].children == []


def test_grandchildren_are_listed_under_top_level_ancestor() -> None:
    root = _task("root")
    middle = _task("middle", ("root",), 1)
    leaf = _task("leaf", ("middle",), 0)

    items = group([root, middle, leaf])

    assert len(items) == 1
    assert _ids(items[0].children) == ["leaf", "middle"]


def test_parent_cycle_is_broken_deterministically() -> None:
    a = _task("a", ("b",))
    b = _task("b", ("a",))

    items = group([a, b])

    assert [item.task.id for item in items] == ["a"]
    assert _ids(items[0].children) == ["b"]


def test_self_parent_reference_is_ignored() -> None:
    items = group([_task("loop", ("loop",))])

    assert [item.task.id for item in items] == ["loop"]


def test_grouping_by_category_sorts_categories() -> None:
    items = group([_task("b", category="Work"), _task("a", category="Home")])

    grouped = group_by_category(items)

    assert list(grouped) == ["Home", "Work"]
    assert grouped["Work"][0].task.id == "b"


@pytest.mark.parametrize("seed", range(30))
def test_every_task_appears_exactly_once(seed: int) -> None:
    rng = random.Random(seed)
    ids = [f"t{i}" for i in range(rng.randint(1, 15))]
    pool = ids + ["ghost-1", "ghost-2"]
    tasks = [
        _task(
            task_id,
            tuple(rng.sample(pool, rng.randint(1, 3))) if rng.random() < 0.6 else None,
            rng.choice([None, 0, 1, 2, 3]),
        )
        for task_id in ids
    ]

    first = group(tasks)
    flattened = [item.task.id for item in first] + [c.id for item in first for c in item.children]

    assert sorted(flattened) == sorted(ids)
    assert group(tasks) == first
