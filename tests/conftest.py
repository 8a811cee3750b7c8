from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace
from datetime import date
from itertools import count

import pytest

from taskloop.domain.entities import TaskEntity
from taskloop.domain.errors import NotFoundError
from taskloop.domain.filters import TaskFilters


class FakeRepo:
    """
    In-memory TaskStore.

    Keeps insertion order so grouping and snapshots are deterministic, and
    makes apply_changes all-or-nothing like the SQLAlchemy repository.
    """

    def __init__(self, tasks: Iterable[TaskEntity] = ()) -> None:
        self.tasks: dict[str, TaskEntity] = {}
        self._ids = count(1)
        self.batches = 0
        for task in tasks:
            self.create_task(task)

    def get_task(self, task_id: str) -> TaskEntity | None:
        return self.tasks.get(task_id)

    def list_all(self) -> list[TaskEntity]:
        return list(self.tasks.values())

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        return [t for t in self.tasks.values() if filters.include_inactive or t.active]

    def list_due_on_or_before(self, day: date) -> list[TaskEntity]:
        return [
            t for t in self.tasks.values()
            if t.active and ((t.next_due is not None and t.next_due <= day) or t.last_completed == day)
        ]

    def create_task(self, task: TaskEntity) -> TaskEntity:
        if task.id is None:
            task = replace(task, id=f"generated-{next(self._ids)}")
        self.tasks[task.id] = task
        return task

    def update_task(self, task: TaskEntity) -> TaskEntity | None:
        if task.id not in self.tasks:
            return None
        self.tasks[task.id] = task
        return task

    def delete_task(self, task_id: str) -> bool:
        return self.tasks.pop(task_id, None) is not None

    def apply_changes(self, *, created=(), updated=(), deleted=()) -> None:
        created, updated, deleted = list(created), list(updated), list(deleted)
        for task in updated:
            if task.id not in self.tasks:
                raise NotFoundError(task.id)
        self.batches += 1
        for task in created:
            self.create_task(task)
        for task in updated:
            self.tasks[task.id] = task
        for task_id in deleted:
            self.tasks.pop(task_id, None)


@pytest.fixture()
def make_repo():
    return FakeRepo
