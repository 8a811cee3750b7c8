from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, Boolean, Column, Date, DateTime, Integer, String, Text

from .db import Base


def utcnow() -> datetime:
    return datetime.utcnow()


class TaskModel(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True)
    name = Column(String(200), nullable=False)
    category = Column(String(100), nullable=False, default="", index=True)
    tags = Column(Text, nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    active = Column(Boolean, nullable=False, default=True, index=True)

    interval_unit = Column(String(20), nullable=False, default="DAY")
    interval_qty = Column(Integer, nullable=False, default=1)
    specific_days_of_week = Column(JSON(none_as_null=True), nullable=True)
    excluded_dates = Column(JSON(none_as_null=True), nullable=True)
    excluded_days_of_week = Column(JSON(none_as_null=True), nullable=True)
    overdue_behavior = Column(String(20), nullable=False, default="POSTPONE")
    delete_after_completion = Column(Boolean, nullable=False, default=False)
    next_due = Column(Date, nullable=True, index=True)
    last_completed = Column(Date, nullable=True)

    time_estimate = Column(Integer, nullable=True)
    difficulty = Column(String(10), nullable=True)

    parent_task_ids = Column(JSON(none_as_null=True), nullable=True)
    requires_manual_completion = Column(Boolean, nullable=False, default=False)
    child_order = Column(Integer, nullable=True)
    triggered_by_task_ids = Column(JSON(none_as_null=True), nullable=True)
    triggers_task_ids = Column(JSON(none_as_null=True), nullable=True)

    requires_inventory = Column(Boolean, nullable=False, default=False)
    completion_streak = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
