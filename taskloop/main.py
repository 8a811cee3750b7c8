from __future__ import annotations

import logging
import sys
from datetime import date
from pathlib import Path

from taskloop.config import SETTINGS
from taskloop.domain.entities import TaskItem
from taskloop.infra.db import init_db
from taskloop.infra.logging import setup_logging
from taskloop.infra.repository import TaskRepository
from taskloop.services.task_service import TaskService

logger = logging.getLogger(__name__)


def _format_item(item: TaskItem, today: date) -> list[str]:
    lines = [_format_line(item.task.name, item.task.last_completed == today, item.task.completion_streak)]
    for child in item.children:
        lines.append("    " + _format_line(child.name, child.last_completed == today, child.completion_streak))
    return lines


def _format_line(name: str, done: bool, streak: int) -> str:
    mark = "x" if done else " "
    suffix = f"  (streak {streak})" if streak else ""
    return f"  [{mark}] {name}{suffix}"


def render_today(service: TaskService, today: date) -> str:
    grouped = service.list_due_by_category(today)
    if not grouped:
        return f"{today.isoformat()}: nothing due."

    lines = [f"Due on {today.isoformat()}:"]
    for category, items in grouped.items():
        lines.append(category or "Uncategorized")
        for item in items:
            lines.extend(_format_item(item, today))
    return "\n".join(lines)


def main() -> None:
    setup_logging()
    try:
        init_db()
    except Exception as exc:  # noqa: BLE001
        logger.error("Database unavailable: %s", exc)
        sys.exit(1)

    service = TaskService(TaskRepository())
    today = date.today()
    service.process_overdue(today)
    if SETTINGS.export_path:
        service.export_to_path(Path(SETTINGS.export_path))
    print(render_today(service, today))


if __name__ == "__main__":
    main()
