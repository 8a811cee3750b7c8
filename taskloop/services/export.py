from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from taskloop.domain.entities import TaskEntity

from .interchange import SCHEMA_VERSION, ExportEnvelope, TaskPayload


def export_tasks(tasks: Iterable[TaskEntity], exported_at: datetime) -> str:
    envelope = ExportEnvelope(
        version=SCHEMA_VERSION,
        export_date=exported_at.isoformat(timespec="seconds"),
        tasks=[
            TaskPayload.from_stored(task).model_dump(mode="json", by_alias=True, warnings=False)
            for task in tasks
        ],
    )
    return envelope.model_dump_json(by_alias=True, indent=2)
