"""create rewrite_jobs table

Revision ID: 20261012_0001
Revises:
Create Date: 2026-10-12 09:30:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "20261012_0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "rewrite_jobs",
        sa.Column("id", sa.String(length=64), primary_key=True, nullable=False),
        sa.Column("input_text", sa.Text(), nullable=False),
        sa.Column("style_text", sa.Text(), nullable=True),
        sa.Column("content_mix_text", sa.Text(), nullable=True),
        sa.Column("custom_instructions", sa.Text(), nullable=True),
        sa.Column("selected_presets", sa.JSON(), nullable=True),
        sa.Column("provider", sa.String(length=32), nullable=False),
        sa.Column("chunks", sa.JSON(), nullable=True),
        sa.Column("selected_chunk_ids", sa.JSON(), nullable=True),
        sa.Column("mixing_mode", sa.String(length=32), nullable=True),
        sa.Column("output_text", sa.Text(), nullable=True),
        sa.Column("input_ai_score", sa.Float(), nullable=True),
        sa.Column("output_ai_score", sa.Float(), nullable=True),
        sa.Column(
            "status",
            sa.String(length=32),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_rewrite_jobs_created_at", "rewrite_jobs", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_rewrite_jobs_created_at", table_name="rewrite_jobs")
    op.drop_table("rewrite_jobs")
