"""Initial library schema.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import sqlalchemy as sa
from alembic import op

from papershelf.adapters.sqlalchemy.mappings import StringListType, StringMapType, UTCDateTime

if TYPE_CHECKING:
    from collections.abc import Sequence

revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "paper",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=1024), nullable=False),
        sa.Column("venue", sa.String(length=512), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("authors", StringListType(), nullable=False),
        sa.Column("identifiers", StringMapType(), nullable=False),
        sa.Column("main_path", sa.String(length=2048), nullable=True),
        sa.Column("supplementary_paths", StringListType(), nullable=False),
        sa.Column("flagged", sa.Boolean(), nullable=False),
        sa.Column("note", sa.Text(), nullable=False),
        sa.Column("file_hash", sa.String(length=64), nullable=True),
        sa.Column("added_at", UTCDateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_paper")),
    )
    op.create_index("ix_paper_added_at", "paper", ["added_at"])
    op.create_index("ix_paper_venue", "paper", ["venue"])

    op.create_table(
        "categorizer",
        sa.Column("id", sa.String(length=320), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=300), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_categorizer")),
        sa.UniqueConstraint("kind", "name", name=op.f("uq_categorizer_kind")),
    )

    op.create_table(
        "paper_categorizer",
        sa.Column("paper_id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(length=16), nullable=False),
        sa.Column("name", sa.String(length=300), nullable=False),
        sa.ForeignKeyConstraint(
            ["paper_id"],
            ["paper.id"],
            name=op.f("fk_paper_categorizer_paper_id_paper"),
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("paper_id", "kind", "name", name=op.f("pk_paper_categorizer")),
    )
    op.create_index("ix_paper_categorizer_kind_name", "paper_categorizer", ["kind", "name"])

    op.create_table(
        "schedule_state",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("last_run_at", UTCDateTime(), nullable=True),
        sa.Column("interval_days", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_schedule_state")),
    )


def downgrade() -> None:
    op.drop_table("schedule_state")
    op.drop_index("ix_paper_categorizer_kind_name", table_name="paper_categorizer")
    op.drop_table("paper_categorizer")
    op.drop_table("categorizer")
    op.drop_index("ix_paper_venue", table_name="paper")
    op.drop_index("ix_paper_added_at", table_name="paper")
    op.drop_table("paper")
