"""
Store port used by the services.

The services depend on this Protocol rather than on the SQLAlchemy
repository, so tests can hand in an in-memory fake.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Protocol

from .entities import TaskEntity
from .filters import TaskFilters


class TaskStore(Protocol):
    def get_task(self, task_id: str) -> TaskEntity | None: ...

    def list_all(self) -> list[TaskEntity]: ...

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]: ...

    def list_due_on_or_before(self, day: date) -> list[TaskEntity]: ...

    def create_task(self, task: TaskEntity) -> TaskEntity: ...

    def update_task(self, task: TaskEntity) -> TaskEntity | None: ...

    def delete_task(self, task_id: str) -> bool: ...

    def apply_changes(
        self,
        *,
        created: Iterable[TaskEntity] = (),
        updated: Iterable[TaskEntity] = (),
        deleted: Iterable[str] = (),
    ) -> None:
        """Write one batch in a single transaction: all of it or none of it."""
        ...
