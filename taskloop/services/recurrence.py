"""
Recurrence calculator.

Pure functions: given a task and a date, compute the task's next due date
and streak. Persistence is the caller's job.

Date search is bounded. A date passes the filters when its weekday is in
``specific_days_of_week`` (any weekday when unset), not in
``excluded_days_of_week`` and not in ``excluded_dates``. Every allowed
weekday comes back once a week and each excluded date can block at most
one candidate, so a search window of ``7 * (len(excluded_dates) + 1)``
days always contains a valid date when one exists.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta

from taskloop.domain.entities import TaskEntity
from taskloop.domain.enums import IntervalUnit, OverdueBehavior, Weekday
from taskloop.domain.errors import ConfigurationError, SchedulingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Advancement:
    """Result of completing a task: the updated task, or a request to delete it."""

    task: TaskEntity
    delete: bool = False


def advance(task: TaskEntity, completion_date: date) -> Advancement:
    unit = interval_unit_of(task)
    streak = _next_streak(task, completion_date)

    if task.delete_after_completion:
        completed = replace(task, last_completed=completion_date, completion_streak=streak)
        return Advancement(task=completed, delete=True)

    if unit is IntervalUnit.ADHOC:
        next_due = None
    else:
        qty = _interval_qty(task)
        behavior = _overdue_behavior(task)
        if behavior is OverdueBehavior.SKIP_TO_NEXT and task.next_due is not None:
            candidate = _first_after(task.next_due, unit, qty, completion_date)
        else:
            candidate = shift(completion_date, unit, qty)
        next_due = next_allowed_date(task, candidate)

    logger.debug(
        "Task %s completed on %s: next due %s, streak %s",
        task.id, completion_date, next_due, streak,
    )
    return Advancement(
        task=replace(
            task,
            next_due=next_due,
            last_completed=completion_date,
            completion_streak=streak,
        )
    )


def roll_over(task: TaskEntity, today: date) -> TaskEntity | None:
    """Apply overdue policy to a task missed before ``today``.

    Returns the updated task, or None when nothing changes.
    """
    if not task.active or task.next_due is None or task.next_due >= today:
        return None
    if task.last_completed == today - timedelta(days=1):
        return None

    updated = replace(task, completion_streak=0)
    unit = interval_unit_of(task)
    if unit is not IntervalUnit.ADHOC and _overdue_behavior(task) is OverdueBehavior.SKIP_TO_NEXT:
        yesterday = today - timedelta(days=1)
        candidate = _first_after(task.next_due, unit, _interval_qty(task), yesterday)
        updated = replace(updated, next_due=next_allowed_date(task, candidate))

    if updated == task:
        return None
    return updated


def next_allowed_date(task: TaskEntity, start: date) -> date:
    """Earliest date on or after ``start`` that passes the task's filters."""
    allowed = set(task.specific_days_of_week or Weekday)
    allowed -= set(task.excluded_days_of_week or ())
    if not allowed:
        logger.warning("Task %s excludes every weekday", task.id)
        raise SchedulingError(f"Task {task.id} has no schedulable weekday")

    excluded_dates = set(task.excluded_dates or ())
    candidate = start
    for _ in range(7 * (len(excluded_dates) + 1)):
        if Weekday.of(candidate) in allowed and candidate not in excluded_dates:
            return candidate
        candidate += timedelta(days=1)

    logger.warning("Task %s: no valid date found from %s", task.id, start)
    raise SchedulingError(f"Task {task.id} has no valid date on or after {start}")


def shift(base: date, unit: IntervalUnit, qty: int) -> date:
    if unit is IntervalUnit.DAY:
        return base + timedelta(days=qty)
    if unit is IntervalUnit.WEEK:
        return base + timedelta(weeks=qty)
    if unit is IntervalUnit.MONTH:
        return _add_months(base, qty)
    raise ConfigurationError(f"Cannot shift a date by {unit!r}")


def interval_unit_of(task: TaskEntity) -> IntervalUnit:
    try:
        return IntervalUnit(task.interval_unit)
    except ValueError:
        raise ConfigurationError(
            f"Task {task.id} has unknown interval unit {task.interval_unit!r}"
        ) from None


def _interval_qty(task: TaskEntity) -> int:
    if task.interval_qty < 1:
        raise ConfigurationError(
            f"Task {task.id} has interval quantity {task.interval_qty}; expected at least 1"
        )
    return task.interval_qty


def _overdue_behavior(task: TaskEntity) -> OverdueBehavior:
    try:
        return OverdueBehavior(task.overdue_behavior)
    except ValueError:
        raise ConfigurationError(
            f"Task {task.id} has unknown overdue behavior {task.overdue_behavior!r}"
        ) from None


def _next_streak(task: TaskEntity, completion_date: date) -> int:
    if task.next_due is None or completion_date <= task.next_due:
        return task.completion_streak + 1
    return 0


def _first_after(base: date, unit: IntervalUnit, qty: int, after: date) -> date:
    """First ``base + k * interval`` (k >= 1) strictly after ``after``."""
    if unit is IntervalUnit.MONTH:
        steps = 1
        candidate = _add_months(base, qty)
        while candidate <= after:
            steps += 1
            candidate = _add_months(base, qty * steps)
        return candidate

    step_days = qty * (7 if unit is IntervalUnit.WEEK else 1)
    gap = (after - base).days
    steps = max(1, gap // step_days + 1)
    return base + timedelta(days=step_days * steps)


def _add_months(base: date, months: int) -> date:
    year = base.year + (base.month - 1 + months) // 12
    month = (base.month - 1 + months) % 12 + 1
    day = min(base.day, _days_in_month(year, month))
    return date(year, month, day)


def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        next_month = date(year + 1, 1, 1)
    else:
        next_month = date(year, month + 1, 1)
    return (next_month - timedelta(days=1)).day
