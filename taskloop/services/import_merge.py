"""
Import merge engine.

Parse -> validate -> detect conflicts -> (wait for resolutions) -> apply.

Nothing is written before ``apply``; a caller holding an
``ImportNeedsResolution`` can drop it at any time. ``apply`` writes the
whole batch through a single ``TaskStore.apply_changes`` call.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace

from taskloop.domain.entities import TaskEntity
from taskloop.domain.enums import ConflictResolution, ConflictType
from taskloop.domain.errors import ImportFailure, ReferentialError, ResolutionError, VersionError
from taskloop.domain.ports import TaskStore

from .interchange import SCHEMA_VERSION, ExportEnvelope, parse_envelope, parse_tasks

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportConflict:
    type: ConflictType
    task_id: str
    existing_task: TaskEntity
    imported_task: TaskEntity

    @property
    def task_name(self) -> str:
        return self.imported_task.name


@dataclass(frozen=True)
class PendingImport:
    tasks: tuple[TaskEntity, ...]
    conflicts: tuple[ImportConflict, ...]

    @property
    def conflict_ids(self) -> frozenset[str]:
        return frozenset(conflict.task_id for conflict in self.conflicts)


@dataclass(frozen=True)
class ImportSucceeded:
    tasks_imported: int
    tasks_skipped: int
    tasks_replaced: int


@dataclass(frozen=True)
class ImportNeedsResolution:
    pending: PendingImport

    @property
    def conflicts(self) -> tuple[ImportConflict, ...]:
        return self.pending.conflicts


@dataclass(frozen=True)
class ImportFailed:
    error: ImportFailure

    @property
    def message(self) -> str:
        return str(self.error)


ImportResult = ImportSucceeded | ImportNeedsResolution | ImportFailed


class ImportMergeEngine:
    def __init__(self, store: TaskStore, id_factory: Callable[[], str] | None = None) -> None:
        self._store = store
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))

    def start(self, payload: str | bytes) -> ImportResult:
        """Parse, validate and probe for conflicts.

        A batch without conflicts is applied right away. Otherwise the
        pending batch is returned and waits for ``apply``.
        """
        try:
            tasks = self.validate(parse_envelope(payload))
        except ImportFailure as exc:
            logger.info("Import rejected (%s): %s", type(exc).__name__, exc)
            return ImportFailed(error=exc)

        conflicts = self.detect_conflicts(tasks)
        pending = PendingImport(tasks=tuple(tasks), conflicts=tuple(conflicts))
        if not conflicts:
            return self.apply(
                pending,
                {task.id: ConflictResolution.KEEP_BOTH for task in tasks},
            )

        logger.info("Import of %s tasks has %s conflicts", len(tasks), len(conflicts))
        return ImportNeedsResolution(pending=pending)

    def validate(self, envelope: ExportEnvelope) -> list[TaskEntity]:
        if envelope.version != SCHEMA_VERSION:
            raise VersionError([f"Unsupported version: {envelope.version}"])

        tasks = parse_tasks(envelope.tasks)
        errors: list[str] = []
        ids: set[str] = set()
        for task in tasks:
            if task.id in ids:
                errors.append(f"Duplicate task ID {task.id}")
            ids.add(task.id)

        for task in tasks:
            missing_parents = [ref for ref in task.parent_task_ids or () if ref not in ids]
            if missing_parents:
                errors.append(
                    f"Task '{task.name}' references non-existent parent IDs: {missing_parents}"
                )
            missing_triggers = [ref for ref in task.triggered_by_task_ids or () if ref not in ids]
            if missing_triggers:
                errors.append(
                    f"Task '{task.name}' references non-existent trigger IDs: {missing_triggers}"
                )

        if errors:
            raise ReferentialError(errors)
        return tasks

    def detect_conflicts(self, tasks: list[TaskEntity]) -> list[ImportConflict]:
        conflicts = []
        for imported in tasks:
            existing = self._store.get_task(imported.id)
            if existing is not None:
                conflicts.append(
                    ImportConflict(
                        type=ConflictType.DUPLICATE_ID,
                        task_id=imported.id,
                        existing_task=existing,
                        imported_task=imported,
                    )
                )
        return conflicts

    def apply(
        self,
        pending: PendingImport,
        resolutions: Mapping[str, ConflictResolution | str] | None = None,
    ) -> ImportSucceeded:
        resolutions = resolutions or {}
        conflict_ids = pending.conflict_ids
        chosen = {
            task_id: _resolution(task_id, resolutions.get(task_id, ConflictResolution.SKIP))
            for task_id in conflict_ids
        }
        id_map = {
            task_id: self._new_id()
            for task_id, resolution in chosen.items()
            if resolution is ConflictResolution.KEEP_BOTH
        }

        created: list[TaskEntity] = []
        updated: list[TaskEntity] = []
        imported = skipped = replaced = 0
        for task in pending.tasks:
            task = _remap(task, id_map)
            resolution = chosen.get(task.id)
            if resolution is None:
                created.append(task)
                imported += 1
            elif resolution is ConflictResolution.SKIP:
                skipped += 1
            elif resolution is ConflictResolution.REPLACE:
                updated.append(task)
                replaced += 1
            else:
                created.append(replace(task, id=id_map[task.id]))
                imported += 1

        self._store.apply_changes(created=created, updated=updated)
        logger.info(
            "Import applied: %s imported, %s skipped, %s replaced",
            imported, skipped, replaced,
        )
        return ImportSucceeded(
            tasks_imported=imported,
            tasks_skipped=skipped,
            tasks_replaced=replaced,
        )


def _resolution(task_id: str, value: ConflictResolution | str) -> ConflictResolution:
    try:
        return ConflictResolution(value)
    except ValueError as exc:
        raise ResolutionError(f"Unknown resolution {value!r} for task {task_id}") from exc


def _remap(task: TaskEntity, id_map: Mapping[str, str]) -> TaskEntity:
    if not id_map:
        return task

    def remap_ids(ids: tuple[str, ...] | None) -> tuple[str, ...] | None:
        if ids is None:
            return None
        return tuple(id_map.get(ref, ref) for ref in ids)

    return replace(
        task,
        parent_task_ids=remap_ids(task.parent_task_ids),
        triggered_by_task_ids=remap_ids(task.triggered_by_task_ids),
        triggers_task_ids=remap_ids(task.triggers_task_ids),
    )
