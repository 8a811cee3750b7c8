from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TaskFilters:
    include_inactive: bool = False
    category: str | None = None
    search: str | None = None
