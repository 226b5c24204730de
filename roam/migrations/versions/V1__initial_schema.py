"""initial_schema

Version: 1
Create Date: 2025-01-10 09:00:00.000000

Creates the core Roam tables: regions, operations, calendar sources and
events, wiki templates, wikis, tasks, journal templates and entries,
together with their lookup indexes.
"""
from alembic import op
import sqlalchemy as sa


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    """Create all tables of the first release."""
    op.create_table(
        "regions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("color", sa.String(7), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "operations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("purpose", sa.Text()),
        sa.Column("due_date", sa.Date()),
        sa.Column("status", sa.String(20)),
        sa.Column("outcome", sa.Text()),
        sa.Column("priority", sa.String(10)),
        *_timestamps(),
        sa.Column("region", sa.String(50)),
    )

    op.create_table(
        "calendar_sources",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("color", sa.String(7), nullable=False),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("is_visible", sa.Boolean(), nullable=False),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "wiki_templates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("icon", sa.String(10)),
        sa.Column("is_default", sa.Boolean(), nullable=False),
        *_timestamps(),
    )

    # SQLite cannot add foreign keys after the fact, so cross references
    # between events, tasks and wikis are declared inline.
    op.create_table(
        "calendar_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "calendar_source_id",
            sa.Integer(),
            sa.ForeignKey("calendar_sources.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("operation_id", sa.Integer(), sa.ForeignKey("operations.id", ondelete="SET NULL")),
        sa.Column("task_id", sa.Integer(), sa.ForeignKey("tasks.id", ondelete="SET NULL")),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("location", sa.String(255)),
        sa.Column("start_date_time", sa.DateTime(), nullable=False),
        sa.Column("end_date_time", sa.DateTime(), nullable=False),
        sa.Column("is_all_day", sa.Boolean(), nullable=False),
        sa.Column("color", sa.String(7)),
        sa.Column("recurrence_rule", sa.Text()),
        sa.Column("recurrence_end_date", sa.DateTime()),
        sa.Column(
            "parent_event_id",
            sa.Integer(),
            sa.ForeignKey("calendar_events.id", ondelete="CASCADE"),
        ),
        sa.Column("is_recurring_instance", sa.Boolean(), nullable=False),
        sa.Column("original_start_date_time", sa.DateTime()),
        *_timestamps(),
        sa.Column("region", sa.String(50)),
        sa.Column("wiki_id", sa.Integer(), sa.ForeignKey("wikis.id", ondelete="SET NULL")),
    )

    op.create_table(
        "wikis",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("operation_id", sa.Integer(), sa.ForeignKey("operations.id", ondelete="SET NULL")),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text()),
        *_timestamps(),
        sa.Column("is_favorite", sa.Boolean(), server_default="0"),
        sa.Column(
            "template_id",
            sa.Integer(),
            sa.ForeignKey("wiki_templates.id", ondelete="SET NULL"),
        ),
        sa.Column("word_count", sa.Integer(), server_default="0"),
        sa.Column("linked_wiki_ids", sa.Text()),
        sa.Column("region", sa.String(50)),
        sa.Column("task_id", sa.Integer()),
        sa.Column("calendar_event_id", sa.Integer()),
        sa.Column("banner_url", sa.String(512)),
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "operation_id",
            sa.Integer(),
            sa.ForeignKey("operations.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("due_date", sa.DateTime()),
        sa.Column("assignee", sa.String(100)),
        sa.Column("priority", sa.String(10), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.Column("region", sa.String(50)),
        sa.Column(
            "calendar_event_id",
            sa.Integer(),
            sa.ForeignKey("calendar_events.id", ondelete="SET NULL"),
        ),
        sa.Column("wiki_id", sa.Integer(), sa.ForeignKey("wikis.id", ondelete="SET NULL")),
    )

    op.create_table(
        "journal_templates",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("content", sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        "journal_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("content", sa.Text()),
        sa.Column("date", sa.Date(), nullable=False),
        *_timestamps(),
    )

    indexes = {
        "operations": ["status", "region", "due_date", "priority"],
        "tasks": ["operation_id", "status", "region", "due_date", "priority", "calendar_event_id", "wiki_id"],
        "wikis": ["operation_id", "region", "is_favorite", "template_id", "task_id", "calendar_event_id"],
        "calendar_events": [
            "calendar_source_id",
            "operation_id",
            "task_id",
            "wiki_id",
            "start_date_time",
            "end_date_time",
            "region",
            "parent_event_id",
        ],
        "calendar_sources": ["type", "is_visible"],
        "journal_entries": ["date"],
        "regions": ["name", "is_default"],
    }
    for table, columns in indexes.items():
        for column in columns:
            op.create_index(f"idx_{table}_{column}", table, [column])
