# ruff: noqa: I001
"""User settings and headless API key tables.

Revision ID: 0002_fk_settings_api_keys
Revises: 0001_fk_months
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op


# revision identifiers, used by Alembic.
revision: str = "0002_fk_settings_api_keys"
down_revision: str | None = "0001_fk_months"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "fk_user_settings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False, unique=True),
        sa.Column("vat_id", sa.String(), nullable=True),
        sa.Column("manual_transactions", sa.Text(), nullable=False),
        sa.Column("updated_at", sa.Float(), nullable=False),
    )

    op.create_table(
        "fk_api_keys",
        sa.Column("id", sa.String(length=32), primary_key=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("label", sa.String(length=80), nullable=False),
        sa.Column("key_hash", sa.String(length=64), nullable=False, unique=True),
        sa.Column("key_prefix", sa.String(length=32), nullable=False),
        sa.Column("scopes", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.Float(), nullable=False),
        sa.Column("last_used_at", sa.Float(), nullable=True),
        sa.Column("revoked_at", sa.Float(), nullable=True),
    )
    op.create_index("ix_fk_api_keys_user_id", "fk_api_keys", ["user_id"])


def downgrade() -> None:
    op.drop_index("ix_fk_api_keys_user_id", table_name="fk_api_keys")
    op.drop_table("fk_api_keys")
    op.drop_table("fk_user_settings")
