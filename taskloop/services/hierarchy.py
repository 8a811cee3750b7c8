"""
Hierarchy grouper.

Turns a flat list of tasks into a one-level display forest. A task's home
is the first parent id, in list order, that is present in the input. Tasks
without a home are top-level; every other task is listed under the
top-level ancestor reached by following home links. Parent ids pointing
outside the input are ignored, so orphans surface as top-level items.
A parent cycle is broken at the member that comes first in the input.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from taskloop.domain.entities import TaskEntity, TaskItem

logger = logging.getLogger(__name__)


def group(tasks: Iterable[TaskEntity]) -> list[TaskItem]:
    tasks = list(tasks)
    position: dict[str, int] = {}
    for index, task in enumerate(tasks):
        if task.id is not None:
            position.setdefault(task.id, index)

    home = {task_id: _home_of(tasks[index], position) for task_id, index in position.items()}
    _break_cycles(home, position)

    roots: dict[str, str] = {}
    for task_id in position:
        roots[task_id] = _root_of(task_id, home, roots)

    children: dict[str, list[TaskEntity]] = {}
    for task in tasks:
        root = roots.get(task.id)
        if root is not None and root != task.id:
            children.setdefault(root, []).append(task)

    items: list[TaskItem] = []
    for task in tasks:
        if task.id is not None and roots[task.id] != task.id:
            continue
        nested = sorted(children.get(task.id, []), key=lambda child: child.child_order or 0)
        items.append(TaskItem(task=task, children=nested, is_parent=bool(nested)))
    return items


def group_by_category(items: Iterable[TaskItem]) -> dict[str, list[TaskItem]]:
    grouped: dict[str, list[TaskItem]] = {}
    for item in items:
        grouped.setdefault(item.task.category, []).append(item)
    return {category: grouped[category] for category in sorted(grouped)}


def _home_of(task: TaskEntity, position: dict[str, int]) -> str | None:
    for parent_id in task.parent_task_ids or ():
        if parent_id != task.id and parent_id in position:
            return parent_id
    if task.parent_task_ids:
        logger.debug("Task %s has no parent in view; shown top-level", task.id)
    return None


def _break_cycles(home: dict[str, str | None], position: dict[str, int]) -> None:
    settled: set[str] = set()
    for start in position:
        path: list[str] = []
        on_path: set[str] = set()
        node = start
        while node is not None and node not in settled:
            if node in on_path:
                cycle = path[path.index(node):]
                head = min(cycle, key=position.__getitem__)
                logger.info("Parent cycle %s broken at task %s", cycle, head)
                home[head] = None
                break
            path.append(node)
            on_path.add(node)
            node = home[node]
        settled.update(path)


def _root_of(task_id: str, home: dict[str, str | None], roots: dict[str, str]) -> str:
    path: list[str] = []
    node = task_id
    while node not in roots and home[node] is not None:
        path.append(node)
        node = home[node]
    root = roots.get(node, node)
    for visited in path:
        roots[visited] = root
    return root
