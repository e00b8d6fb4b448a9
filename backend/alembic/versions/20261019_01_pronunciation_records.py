"""Pronunciation practice counters keyed by username and syllable."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261019_01_pronunciation_records"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "pronunciation_records",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("username", sa.String(length=128), nullable=False),
        sa.Column("syllable", sa.String(length=64), nullable=False),
        sa.Column("correct_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("incorrect_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("username", "syllable", name="uq_pronunciation_user_syllable"),
        sa.CheckConstraint("correct_count >= 0", name="ck_pronunciation_correct_nonnegative"),
        sa.CheckConstraint("incorrect_count >= 0", name="ck_pronunciation_incorrect_nonnegative"),
    )
    op.create_index("ix_pronunciation_records_username", "pronunciation_records", ["username"])


def downgrade() -> None:
    op.drop_index("ix_pronunciation_records_username", table_name="pronunciation_records")
    op.drop_table("pronunciation_records")
