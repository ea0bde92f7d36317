"""users: per-user preferences and last-turn context

Revision ID: 001_users
Revises: None
Create Date: 2026-10-19
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import UUID

# revision identifiers, used by Alembic.
revision: str = "001_users"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("line_user_id", sa.Text(), nullable=False, unique=True),
        sa.Column("level_type", sa.Text(), nullable=False, server_default="eiken"),
        sa.Column("level_value", sa.Text(), nullable=False, server_default="2"),
        sa.Column("english_style", sa.Text(), nullable=False, server_default="neutral"),
        sa.Column("usage_default", sa.Text(), nullable=False, server_default="chat_friend"),
        sa.Column("tone_default", sa.Text(), nullable=False, server_default="polite"),
        sa.Column("last_source_ja", sa.Text(), nullable=True),
        sa.Column("last_output_en", sa.Text(), nullable=True),
        sa.Column("last_source_en", sa.Text(), nullable=True),
        sa.Column("last_output_ja", sa.Text(), nullable=True),
        sa.Column("last_mode", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()")),
    )


def downgrade() -> None:
    op.drop_table("users")
