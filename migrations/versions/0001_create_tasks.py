"""create tasks table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_create_tasks"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "tasks",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("category", sa.String(length=100), nullable=False, server_default=""),
        sa.Column("tags", sa.Text(), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("interval_unit", sa.String(length=20), nullable=False, server_default="DAY"),
        sa.Column("interval_qty", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("specific_days_of_week", sa.JSON(), nullable=True),
        sa.Column("excluded_dates", sa.JSON(), nullable=True),
        sa.Column("excluded_days_of_week", sa.JSON(), nullable=True),
        sa.Column("overdue_behavior", sa.String(length=20), nullable=False, server_default="POSTPONE"),
        sa.Column("delete_after_completion", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("next_due", sa.Date(), nullable=True),
        sa.Column("last_completed", sa.Date(), nullable=True),
        sa.Column("time_estimate", sa.Integer(), nullable=True),
        sa.Column("difficulty", sa.String(length=10), nullable=True),
        sa.Column("parent_task_ids", sa.JSON(), nullable=True),
        sa.Column("requires_manual_completion", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("child_order", sa.Integer(), nullable=True),
        sa.Column("triggered_by_task_ids", sa.JSON(), nullable=True),
        sa.Column("triggers_task_ids", sa.JSON(), nullable=True),
        sa.Column("requires_inventory", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("completion_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_tasks_category", "tasks", ["category"], unique=False)
    op.create_index("ix_tasks_active", "tasks", ["active"], unique=False)
    op.create_index("ix_tasks_next_due", "tasks", ["next_due"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_tasks_next_due", table_name="tasks")
    op.drop_index("ix_tasks_active", table_name="tasks")
    op.drop_index("ix_tasks_category", table_name="tasks")
    op.drop_table("tasks")
