"""add task templates table"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0004_add_task_templates"
down_revision = "0003_add_notifications"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "task_templates",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("priority", sa.String(length=20), nullable=False, server_default="MEDIUM"),
        sa.Column("estimated_hours", sa.Float(), nullable=True),
        sa.Column("tags", sa.JSON(), nullable=False),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("template_data", sa.JSON(), nullable=False),
        sa.Column("usage_count", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_task_templates_category", "task_templates", ["category"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_task_templates_category", table_name="task_templates")
    op.drop_table("task_templates")
