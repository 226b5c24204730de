"""add_recurrence_fields

Version: 3
Create Date: 2025-03-15 11:45:00.000000

Adds recurrence tracking to tasks so recurring tasks can spawn instances
linked back to their parent.
"""
from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    """
    Add recurrence columns to tasks.

    SQLite cannot add a NOT NULL column without a default, so
    is_recurring_instance carries a server default of false.
    """
    op.add_column("tasks", sa.Column("recurrence_rule", sa.Text()))
    op.add_column("tasks", sa.Column("recurrence_end_date", sa.DateTime()))
    op.add_column("tasks", sa.Column("parent_task_id", sa.Integer()))
    op.add_column(
        "tasks",
        sa.Column(
            "is_recurring_instance",
            sa.Boolean(),
            nullable=False,
            server_default="0",
        ),
    )
