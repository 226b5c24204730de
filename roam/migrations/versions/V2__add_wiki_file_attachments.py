"""add_wiki_file_attachments

Version: 2
Create Date: 2025-02-03 18:20:00.000000

Adds the wiki_file_attachments table for files linked to wiki notes.
"""
from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    """Create wiki_file_attachments with lookup and sort indexes."""
    op.create_table(
        "wiki_file_attachments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "wiki_id",
            sa.Integer(),
            sa.ForeignKey("wikis.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(512), nullable=False),
        sa.Column("file_size", sa.BigInteger()),
        sa.Column("file_type", sa.String(100)),
        sa.Column("description", sa.String(500)),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_index(
        "idx_wiki_file_attachments_wiki_id",
        "wiki_file_attachments",
        ["wiki_id"],
    )
    op.create_index(
        "idx_wiki_file_attachments_created_at",
        "wiki_file_attachments",
        [sa.text("created_at DESC")],
    )
