"""Interchange schema shared by import and export."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from taskloop.domain.entities import TaskEntity
from taskloop.domain.enums import Difficulty, IntervalUnit, OverdueBehavior, Weekday
from taskloop.domain.errors import FormatError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "1.0"


class TaskPayload(BaseModel):
    """One task as it appears in an export file."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    category: str = ""
    tags: str = ""
    description: str = ""
    active: bool = True

    interval_unit: IntervalUnit = IntervalUnit.DAY
    interval_qty: int = Field(default=1, ge=0)
    specific_days_of_week: list[Weekday] | None = None
    excluded_dates: list[date] | None = None
    excluded_days_of_week: list[Weekday] | None = None
    overdue_behavior: OverdueBehavior = OverdueBehavior.POSTPONE
    delete_after_completion: bool = False
    next_due: date | None = None
    last_completed: date | None = None

    time_estimate: int | None = None
    difficulty: Difficulty | None = None

    parent_task_ids: list[str] | None = None
    requires_manual_completion: bool = False
    child_order: int | None = None
    triggered_by_task_ids: list[str] | None = None
    triggers_task_ids: list[str] | None = None

    requires_inventory: bool = False
    completion_streak: int = Field(default=0, ge=0)

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> Any:
        # Identifiers may arrive as integers from older exports.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("parent_task_ids", "triggered_by_task_ids", "triggers_task_ids", mode="before")
    @classmethod
    def _ids_as_text(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item) if isinstance(item, int) and not isinstance(item, bool) else item for item in value]
        return value

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("task name must not be empty")
        return value

    @classmethod
    def from_entity(cls, task: TaskEntity) -> TaskPayload:
        return cls(**_entity_fields(task))

    @classmethod
    def from_stored(cls, task: TaskEntity) -> TaskPayload:
        """Build a payload from a stored task, keeping unrecognised values as stored."""
        try:
            return cls.from_entity(task)
        except ValidationError as exc:
            logger.warning("Task %s exported with stored values as-is: %s", task.id, _describe(exc))
            return cls.model_construct(**_entity_fields(task))

    def to_entity(self) -> TaskEntity:
        return TaskEntity(
            id=self.id,
            name=self.name,
            category=self.category,
            tags=self.tags,
            description=self.description,
            active=self.active,
            interval_unit=self.interval_unit,
            interval_qty=self.interval_qty,
            specific_days_of_week=_as_tuple(self.specific_days_of_week),
            excluded_dates=_as_tuple(self.excluded_dates),
            excluded_days_of_week=_as_tuple(self.excluded_days_of_week),
            overdue_behavior=self.overdue_behavior,
            delete_after_completion=self.delete_after_completion,
            next_due=self.next_due,
            last_completed=self.last_completed,
            time_estimate=self.time_estimate,
            difficulty=self.difficulty,
            parent_task_ids=_as_tuple(self.parent_task_ids),
            requires_manual_completion=self.requires_manual_completion,
            child_order=self.child_order,
            triggered_by_task_ids=_as_tuple(self.triggered_by_task_ids),
            triggers_task_ids=_as_tuple(self.triggers_task_ids),
            requires_inventory=self.requires_inventory,
            completion_streak=self.completion_streak,
        )


class ExportEnvelope(BaseModel):
    """Top-level export document. Tasks stay raw until the version is checked."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    version: str
    export_date: str
    tasks: list[dict[str, Any]]

    @field_validator("version", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> Any:
        # A numeric version is still a version; the mismatch is reported later.
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


_TASK_LIST = TypeAdapter(list[TaskPayload])


def parse_envelope(payload: str | bytes) -> ExportEnvelope:
    try:
        return ExportEnvelope.model_validate_json(payload)
    except ValidationError as exc:
        raise FormatError(_describe(exc)) from exc


def parse_tasks(raw_tasks: list[dict[str, Any]]) -> list[TaskEntity]:
    try:
        payloads = _TASK_LIST.validate_python(raw_tasks)
    except ValidationError as exc:
        raise FormatError(_describe(exc)) from exc
    return [payload.to_entity() for payload in payloads]


def _describe(exc: ValidationError) -> list[str]:
    return [
        f"{'.'.join(str(part) for part in error['loc']) or 'payload'}: {error['msg']}"
        for error in exc.errors()
    ]


def _as_list(values) -> list | None:
    return None if values is None else list(values)


def _as_tuple(values) -> tuple | None:
    return None if values is None else tuple(values)


def _entity_fields(task: TaskEntity) -> dict[str, Any]:
    return {
        "id": task.id,
        "name": task.name,
        "category": task.category,
        "tags": task.tags,
        "description": task.description,
        "active": task.active,
        "interval_unit": task.interval_unit,
        "interval_qty": task.interval_qty,
        "specific_days_of_week": _as_list(task.specific_days_of_week),
        "excluded_dates": _as_list(task.excluded_dates),
        "excluded_days_of_week": _as_list(task.excluded_days_of_week),
        "overdue_behavior": task.overdue_behavior,
        "delete_after_completion": task.delete_after_completion,
        "next_due": task.next_due,
        "last_completed": task.last_completed,
        "time_estimate": task.time_estimate,
        "difficulty": task.difficulty,
        "parent_task_ids": _as_list(task.parent_task_ids),
        "requires_manual_completion": task.requires_manual_completion,
        "child_order": task.child_order,
        "triggered_by_task_ids": _as_list(task.triggered_by_task_ids),
        "triggers_task_ids": _as_list(task.triggers_task_ids),
        "requires_inventory": task.requires_inventory,
        "completion_streak": task.completion_streak,
    }
