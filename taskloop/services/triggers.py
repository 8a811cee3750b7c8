from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from datetime import date

from taskloop.domain.entities import TaskEntity

from .recurrence import next_allowed_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Activation:
    task: TaskEntity

    @property
    def task_id(self) -> str:
        return self.task.id

    @property
    def next_due(self) -> date:
        return self.task.next_due


def index_tasks(tasks: Iterable[TaskEntity]) -> dict[str, TaskEntity]:
    return {task.id: task for task in tasks if task.id is not None}


def resolve_triggers(
    completed: TaskEntity,
    all_tasks: Iterable[TaskEntity] | Mapping[str, TaskEntity],
    completion_date: date,
) -> list[Activation]:
    """Schedule every task that ``completed`` triggers.

    One hop only: a task activated here fires its own triggers when it is
    completed, not now.
    """
    index = all_tasks if isinstance(all_tasks, Mapping) else index_tasks(all_tasks)
    activations: list[Activation] = []
    seen: set[str] = set()

    for target_id in completed.triggers_task_ids or ():
        if target_id in seen:
            continue
        seen.add(target_id)
        if target_id == completed.id:
            logger.debug("Task %s lists itself as a trigger target; ignored", target_id)
            continue
        target = index.get(target_id)
        if target is None:
            logger.info("Task %s triggers missing task %s; skipped", completed.id, target_id)
            continue
        due = next_allowed_date(target, completion_date)
        activations.append(Activation(task=replace(target, next_due=due)))
        logger.debug("Task %s activated %s for %s", completed.id, target_id, due)

    return activations
