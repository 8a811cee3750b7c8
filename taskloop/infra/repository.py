from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from datetime import date
from enum import StrEnum
from typing import Optional

from sqlalchemy import or_, select

from taskloop.domain.entities import TaskEntity
from taskloop.domain.enums import Difficulty, IntervalUnit, OverdueBehavior, Weekday
from taskloop.domain.errors import NotFoundError
from taskloop.domain.filters import TaskFilters

from .db import SessionLocal
from .models import TaskModel

logger = logging.getLogger(__name__)


def new_task_id() -> str:
    return str(uuid.uuid4())


def _parse_enum(enum_cls: type[StrEnum], raw: str | None):
    if raw is None:
        return None
    try:
        return enum_cls(raw)
    except ValueError:
        logger.warning("Unknown %s value %r kept as-is", enum_cls.__name__, raw)
        return raw


def _parse_weekdays(raw: list | None) -> tuple | None:
    if raw is None:
        return None
    return tuple(_parse_enum(Weekday, value) for value in raw)


def _parse_dates(raw: list | None) -> tuple[date, ...] | None:
    if raw is None:
        return None
    return tuple(date.fromisoformat(value) for value in raw)


def _parse_ids(raw: list | None) -> tuple[str, ...] | None:
    if raw is None:
        return None
    return tuple(str(value) for value in raw)


def _dump_list(values: Iterable | None) -> list | None:
    if values is None:
        return None
    return [value.isoformat() if isinstance(value, date) else str(value) for value in values]


def _to_entity(model: TaskModel) -> TaskEntity:
    difficulty = _parse_enum(Difficulty, model.difficulty)
    return TaskEntity(
        id=model.id,
        name=model.name,
        category=model.category,
        tags=model.tags,
        description=model.description,
        active=model.active,
        interval_unit=_parse_enum(IntervalUnit, model.interval_unit),
        interval_qty=model.interval_qty,
        specific_days_of_week=_parse_weekdays(model.specific_days_of_week),
        excluded_dates=_parse_dates(model.excluded_dates),
        excluded_days_of_week=_parse_weekdays(model.excluded_days_of_week),
        overdue_behavior=_parse_enum(OverdueBehavior, model.overdue_behavior),
        delete_after_completion=model.delete_after_completion,
        next_due=model.next_due,
        last_completed=model.last_completed,
        time_estimate=model.time_estimate,
        difficulty=difficulty if isinstance(difficulty, Difficulty) else None,
        parent_task_ids=_parse_ids(model.parent_task_ids),
        requires_manual_completion=model.requires_manual_completion,
        child_order=model.child_order,
        triggered_by_task_ids=_parse_ids(model.triggered_by_task_ids),
        triggers_task_ids=_parse_ids(model.triggers_task_ids),
        requires_inventory=model.requires_inventory,
        completion_streak=model.completion_streak,
    )


def _to_columns(task: TaskEntity) -> dict:
    return {
        "name": task.name,
        "category": task.category,
        "tags": task.tags,
        "description": task.description,
        "active": task.active,
        "interval_unit": str(task.interval_unit),
        "interval_qty": task.interval_qty,
        "specific_days_of_week": _dump_list(task.specific_days_of_week),
        "excluded_dates": _dump_list(task.excluded_dates),
        "excluded_days_of_week": _dump_list(task.excluded_days_of_week),
        "overdue_behavior": str(task.overdue_behavior),
        "delete_after_completion": task.delete_after_completion,
        "next_due": task.next_due,
        "last_completed": task.last_completed,
        "time_estimate": task.time_estimate,
        "difficulty": task.difficulty.value if task.difficulty else None,
        "parent_task_ids": _dump_list(task.parent_task_ids),
        "requires_manual_completion": task.requires_manual_completion,
        "child_order": task.child_order,
        "triggered_by_task_ids": _dump_list(task.triggered_by_task_ids),
        "triggers_task_ids": _dump_list(task.triggers_task_ids),
        "requires_inventory": task.requires_inventory,
        "completion_streak": task.completion_streak,
    }


def _apply_filters(stmt, filters: TaskFilters) -> object:
    if not filters.include_inactive:
        stmt = stmt.where(TaskModel.active.is_(True))

    if filters.category:
        stmt = stmt.where(TaskModel.category == filters.category)

    if filters.search:
        pattern = f"%{filters.search}%"
        stmt = stmt.where(
            or_(
                TaskModel.name.ilike(pattern),
                TaskModel.category.ilike(pattern),
                TaskModel.tags.ilike(pattern),
            )
        )

    return stmt


def _ordered(stmt) -> object:
    return stmt.order_by(
        TaskModel.next_due.is_(None),
        TaskModel.next_due.asc(),
        TaskModel.category.asc(),
        TaskModel.name.asc(),
    )


class TaskRepository:
    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory

    def list_tasks(self, filters: TaskFilters) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = _apply_filters(select(TaskModel), filters)
            return [_to_entity(task) for task in session.scalars(_ordered(stmt))]

    def list_all(self) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = select(TaskModel).order_by(TaskModel.created_at.asc(), TaskModel.id.asc())
            return [_to_entity(task) for task in session.scalars(stmt)]

    def list_due_on_or_before(self, day: date) -> list[TaskEntity]:
        with self._session_factory() as session:
            stmt = select(TaskModel).where(
                TaskModel.active.is_(True),
                or_(TaskModel.next_due <= day, TaskModel.last_completed == day),
            )
            return [_to_entity(task) for task in session.scalars(_ordered(stmt))]

    def get_task(self, task_id: str) -> Optional[TaskEntity]:
        with self._session_factory() as session:
            task = session.get(TaskModel, task_id)
            return _to_entity(task) if task else None

    def create_task(self, task: TaskEntity) -> TaskEntity:
        with self._session_factory() as session:
            model = self._add(session, task)
            session.commit()
            session.refresh(model)
            return _to_entity(model)

    def update_task(self, task: TaskEntity) -> Optional[TaskEntity]:
        with self._session_factory() as session:
            model = session.get(TaskModel, task.id)
            if not model:
                return None
            self._assign(model, task)
            session.commit()
            session.refresh(model)
            return _to_entity(model)

    def delete_task(self, task_id: str) -> bool:
        with self._session_factory() as session:
            model = session.get(TaskModel, task_id)
            if not model:
                return False
            session.delete(model)
            session.commit()
            return True

    def apply_changes(
        self,
        *,
        created: Iterable[TaskEntity] = (),
        updated: Iterable[TaskEntity] = (),
        deleted: Iterable[str] = (),
    ) -> None:
        with self._session_factory() as session:
            try:
                for task in created:
                    self._add(session, task)
                for task in updated:
                    model = session.get(TaskModel, task.id)
                    if not model:
                        raise NotFoundError(f"Task {task.id} does not exist")
                    self._assign(model, task)
                for task_id in deleted:
                    model = session.get(TaskModel, task_id)
                    if model:
                        session.delete(model)
                session.commit()
            except Exception:
                session.rollback()
                raise

    @staticmethod
    def _add(session, task: TaskEntity) -> TaskModel:
        model = TaskModel(id=task.id or new_task_id(), **_to_columns(task))
        session.add(model)
        return model

    @staticmethod
    def _assign(model: TaskModel, task: TaskEntity) -> None:
        for key, value in _to_columns(task).items():
            setattr(model, key, value)
