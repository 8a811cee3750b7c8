from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Optional

from .enums import Difficulty, IntervalUnit, OverdueBehavior, Weekday


@dataclass(frozen=True)
class TaskEntity:
    id: str | None = None
    name: str = ""
    category: str = ""
    tags: str = ""
    description: str = ""
    active: bool = True

    interval_unit: IntervalUnit | str = IntervalUnit.DAY
    interval_qty: int = 1
    specific_days_of_week: tuple[Weekday, ...] | None = None
    excluded_dates: tuple[date, ...] | None = None
    excluded_days_of_week: tuple[Weekday, ...] | None = None
    overdue_behavior: OverdueBehavior | str = OverdueBehavior.POSTPONE
    delete_after_completion: bool = False
    next_due: Optional[date] = None
    last_completed: Optional[date] = None

    time_estimate: int | None = None
    difficulty: Difficulty | None = None

    parent_task_ids: tuple[str, ...] | None = None
    requires_manual_completion: bool = False
    child_order: int | None = None
    triggered_by_task_ids: tuple[str, ...] | None = None
    triggers_task_ids: tuple[str, ...] | None = None

    requires_inventory: bool = False
    completion_streak: int = 0


@dataclass(frozen=True)
class TaskItem:
    task: TaskEntity
    children: list[TaskEntity]
    is_parent: bool
