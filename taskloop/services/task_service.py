from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from pathlib import Path

from taskloop.config import SETTINGS
from taskloop.domain.entities import TaskEntity, TaskItem
from taskloop.domain.enums import ConflictResolution, IntervalUnit
from taskloop.domain.errors import (
    ConfigurationError,
    NotFoundError,
    SchedulingError,
    TaskValidationError,
)
from taskloop.domain.filters import TaskFilters
from taskloop.domain.ports import TaskStore
from taskloop.infra.repository import new_task_id

from .export import export_tasks
from .hierarchy import group, group_by_category
from .import_merge import ImportMergeEngine, ImportResult, ImportSucceeded, PendingImport
from .recurrence import advance, interval_unit_of, next_allowed_date, roll_over
from .triggers import index_tasks, resolve_triggers

logger = logging.getLogger(__name__)


@dataclass
class Completion:
    task: TaskEntity
    deleted: bool = False
    activated: list[TaskEntity] = field(default_factory=list)
    auto_completed: list[TaskEntity] = field(default_factory=list)


class _ChangeSet:
    def __init__(self, snapshot: dict[str, TaskEntity]) -> None:
        self._snapshot = snapshot
        self.updated: dict[str, TaskEntity] = {}
        self.deleted: list[str] = []

    def put(self, task: TaskEntity) -> None:
        if task.id not in self.deleted:
            self.updated[task.id] = task

    def delete(self, task_id: str) -> None:
        self.updated.pop(task_id, None)
        if task_id not in self.deleted:
            self.deleted.append(task_id)

    def view(self) -> dict[str, TaskEntity]:
        merged = {**self._snapshot, **self.updated}
        for task_id in self.deleted:
            merged.pop(task_id, None)
        return merged


class TaskService:
    def __init__(self, repo: TaskStore) -> None:
        self._repo = repo
        self._importer = ImportMergeEngine(repo)

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        return self._repo.list_tasks(filters)

    def get_task(self, task_id: str) -> TaskEntity | None:
        return self._repo.get_task(task_id)

    def list_due(self, today: date | None = None) -> list[TaskItem]:
        return group(self._repo.list_due_on_or_before(today or date.today()))

    def list_due_by_category(self, today: date | None = None) -> dict[str, list[TaskItem]]:
        return group_by_category(self.list_due(today))

    def complete_task(self, task_id: str, completion_date: date | None = None) -> Completion:
        completion_date = completion_date or date.today()
        snapshot = index_tasks(self._repo.list_all())
        task = snapshot.get(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} does not exist")
        if task.last_completed == completion_date:
            logger.info("Task %s already completed on %s", task_id, completion_date)
            return Completion(task=task)

        changes = _ChangeSet(snapshot)
        completion = self._complete_into(changes, task, completion_date)
        for parent_completion in self._auto_complete_parents(changes, task, completion_date):
            completion.auto_completed.append(parent_completion.task)
            completion.activated.extend(parent_completion.activated)

        self._repo.apply_changes(updated=changes.updated.values(), deleted=changes.deleted)
        logger.info(
            "Completed task %s on %s (%s activated, %s parents auto-completed)",
            task_id, completion_date, len(completion.activated), len(completion.auto_completed),
        )
        return completion

    def process_overdue(self, today: date | None = None) -> list[TaskEntity]:
        today = today or date.today()
        updated = []
        for task in self._repo.list_due_on_or_before(today - timedelta(days=1)):
            try:
                rolled = roll_over(task, today)
            except (ConfigurationError, SchedulingError) as exc:
                logger.warning("Skipping overdue processing for task %s: %s", task.id, exc)
                continue
            if rolled is not None:
                updated.append(rolled)
        self._repo.apply_changes(updated=updated)
        logger.info("Processed overdue tasks for %s: %s updated", today, len(updated))
        return updated

    def save_task(
        self,
        task: TaskEntity,
        child_ids: list[str] | None = None,
        today: date | None = None,
    ) -> TaskEntity:
        self._validate(task)
        snapshot = index_tasks(self._repo.list_all())
        is_new = task.id is None or task.id not in snapshot
        if task.id is None:
            task = replace(task, id=new_task_id())
        if is_new and task.next_due is None and interval_unit_of(task) is not IntervalUnit.ADHOC:
            task = replace(task, next_due=next_allowed_date(task, today or date.today()))

        self._check_relations(task, snapshot, child_ids)
        linked = _sync_relations(task, snapshot, child_ids)
        if is_new:
            self._repo.apply_changes(created=[task], updated=linked)
        else:
            self._repo.apply_changes(updated=[task, *linked])
        logger.info("Saved task %s (%s related tasks updated)", task.id, len(linked))
        return task

    def archive_task(self, task_id: str) -> TaskEntity:
        return self._set_active(task_id, False)

    def restore_task(self, task_id: str) -> TaskEntity:
        return self._set_active(task_id, True)

    def delete_task(self, task_id: str) -> None:
        if not self._repo.delete_task(task_id):
            raise NotFoundError(f"Task {task_id} does not exist")

    def export_json(self, now: datetime | None = None) -> str:
        return export_tasks(self._repo.list_all(), now or datetime.now())

    def export_to_path(self, path: Path, now: datetime | None = None) -> int:
        tasks = self._repo.list_all()
        path.write_text(export_tasks(tasks, now or datetime.now()), encoding="utf-8")
        logger.info("Exported %s tasks to %s", len(tasks), path)
        return len(tasks)

    def start_import(self, payload: str | bytes) -> ImportResult:
        return self._importer.start(payload)

    def import_from_path(self, path: Path) -> ImportResult:
        return self.start_import(path.read_text(encoding="utf-8"))

    def finish_import(
        self,
        pending: PendingImport,
        resolutions: dict[str, ConflictResolution],
    ) -> ImportSucceeded:
        return self._importer.apply(pending, resolutions)

    def _complete_into(
        self,
        changes: _ChangeSet,
        task: TaskEntity,
        completion_date: date,
    ) -> Completion:
        advancement = advance(task, completion_date)
        if advancement.delete:
            changes.delete(task.id)
        else:
            changes.put(advancement.task)

        activated = []
        for activation in resolve_triggers(task, changes.view(), completion_date):
            changes.put(activation.task)
            activated.append(activation.task)
        return Completion(task=advancement.task, deleted=advancement.delete, activated=activated)

    def _auto_complete_parents(
        self,
        changes: _ChangeSet,
        child: TaskEntity,
        completion_date: date,
    ) -> list[Completion]:
        completed = []
        for parent_id in dict.fromkeys(child.parent_task_ids or ()):
            view = changes.view()
            parent = view.get(parent_id)
            if parent is None or parent.requires_manual_completion:
                continue
            if parent.last_completed == completion_date:
                continue
            if parent.next_due is None or parent.next_due > completion_date:
                continue
            if any(_still_due(sibling, completion_date) for sibling in _children_of(parent_id, view)):
                continue
            completed.append(self._complete_into(changes, parent, completion_date))
        return completed

    def _set_active(self, task_id: str, active: bool) -> TaskEntity:
        task = self._repo.get_task(task_id)
        if task is None:
            raise NotFoundError(f"Task {task_id} does not exist")
        updated = self._repo.update_task(replace(task, active=active))
        if updated is None:
            raise NotFoundError(f"Task {task_id} does not exist")
        return updated

    def _validate(self, task: TaskEntity) -> None:
        if not task.name.strip():
            raise TaskValidationError("Task name is required")
        if len(task.name) > SETTINGS.max_task_name_length:
            raise TaskValidationError(
                f"Task name must be {SETTINGS.max_task_name_length} characters or less"
            )
        if not task.category.strip():
            raise TaskValidationError("Category is required")
        if interval_unit_of(task) is not IntervalUnit.ADHOC and task.interval_qty < 1:
            raise TaskValidationError("Interval quantity must be at least 1")

    def _check_relations(
        self,
        task: TaskEntity,
        snapshot: dict[str, TaskEntity],
        child_ids: list[str] | None,
    ) -> None:
        parents = set(task.parent_task_ids or ())
        if task.id in parents:
            raise TaskValidationError("Task cannot be its own parent")
        if task.id in (task.triggers_task_ids or ()) or task.id in (task.triggered_by_task_ids or ()):
            raise TaskValidationError("Task cannot trigger itself")
        if child_ids:
            if task.id in child_ids:
                raise TaskValidationError("Task cannot be its own child")
            if parents.intersection(child_ids):
                raise TaskValidationError("A task cannot be both a parent and child")

        ancestors = _ancestors(task, {**snapshot, task.id: task})
        if task.id in ancestors:
            raise TaskValidationError("Parent relationship would create a cycle")
        if child_ids and ancestors.intersection(child_ids):
            raise TaskValidationError("Child relationship would create a cycle")


def _children_of(parent_id: str, view: dict[str, TaskEntity]) -> list[TaskEntity]:
    return [
        task for task in view.values()
        if task.active and parent_id in (task.parent_task_ids or ())
    ]


def _still_due(task: TaskEntity, day: date) -> bool:
    return task.last_completed != day and task.next_due is not None and task.next_due <= day


def _ancestors(task: TaskEntity, index: dict[str, TaskEntity]) -> set[str]:
    seen: set[str] = set()
    stack = list(task.parent_task_ids or ())
    while stack:
        current = stack.pop()
        if current in seen:
            continue
        seen.add(current)
        parent = index.get(current)
        if parent is not None:
            stack.extend(parent.parent_task_ids or ())
    return seen


def _with_id(ids: tuple[str, ...] | None, task_id: str) -> tuple[str, ...] | None:
    if ids and task_id in ids:
        return ids
    return (*(ids or ()), task_id)


def _without_id(ids: tuple[str, ...] | None, task_id: str) -> tuple[str, ...] | None:
    if not ids or task_id not in ids:
        return ids
    remaining = tuple(ref for ref in ids if ref != task_id)
    return remaining or None


def _sync_relations(
    task: TaskEntity,
    snapshot: dict[str, TaskEntity],
    child_ids: list[str] | None,
) -> list[TaskEntity]:
    """Mirror trigger edges on the other end and apply the child list."""
    triggers = set(task.triggers_task_ids or ())
    triggered_by = set(task.triggered_by_task_ids or ())
    children = set(child_ids) if child_ids is not None else None

    linked = []
    for other in snapshot.values():
        if other.id == task.id:
            continue
        updated = other
        if other.id in triggers:
            updated = replace(updated, triggered_by_task_ids=_with_id(updated.triggered_by_task_ids, task.id))
        else:
            updated = replace(updated, triggered_by_task_ids=_without_id(updated.triggered_by_task_ids, task.id))
        if other.id in triggered_by:
            updated = replace(updated, triggers_task_ids=_with_id(updated.triggers_task_ids, task.id))
        else:
            updated = replace(updated, triggers_task_ids=_without_id(updated.triggers_task_ids, task.id))
        if children is not None:
            if other.id in children:
                updated = replace(updated, parent_task_ids=_with_id(updated.parent_task_ids, task.id))
            else:
                updated = replace(updated, parent_task_ids=_without_id(updated.parent_task_ids, task.id))
        if updated != other:
            linked.append(updated)
    return linked
