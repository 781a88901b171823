"""submission sync schema

Revision ID: 5c2e9a1f3b7d
Revises:
Create Date: 2026-10-18 09:12:44.318205

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c2e9a1f3b7d"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

_ID = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    """Create the submission and membership tables."""
    op.create_table(
        "community_subs",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column("community_name", sa.Text(), nullable=False),
        sa.Column("platform", sa.String(length=32), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("short_description", sa.Text(), nullable=False),
        sa.Column("long_description", sa.Text(), nullable=True),
        sa.Column("join_link", sa.Text(), nullable=True),
        sa.Column("join_type", sa.String(length=8), nullable=False, server_default="free"),
        sa.Column("price_inr", sa.Integer(), nullable=True),
        sa.Column("owner_id", sa.Text(), nullable=True),
        sa.Column("founder_name", sa.Text(), nullable=False, server_default="Anonymous"),
        sa.Column("founder_bio", sa.Text(), nullable=True),
        sa.Column("show_founder_info", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("logo_url", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("review_notes", sa.Text(), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
    )
    op.create_index("ix_community_subs_status", "community_subs", ["status"])

    op.create_table(
        "community_memberships",
        sa.Column("id", _ID, primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("community_id", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        sa.Column("order_id", sa.Text(), nullable=True),
        sa.Column("payment_id", sa.Text(), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=True),
        sa.Column("currency", sa.String(length=8), nullable=True),
        sa.Column("activated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.func.now()),
        sa.UniqueConstraint("user_id", "community_id"),
        sa.UniqueConstraint("order_id"),
    )
    op.create_index(
        "ix_community_memberships_user_id", "community_memberships", ["user_id"]
    )
    op.create_index(
        "ix_community_memberships_community_id", "community_memberships", ["community_id"]
    )


def downgrade() -> None:
    """Drop the submission and membership tables."""
    op.drop_index("ix_community_memberships_community_id", table_name="community_memberships")
    op.drop_index("ix_community_memberships_user_id", table_name="community_memberships")
    op.drop_table("community_memberships")
    op.drop_index("ix_community_subs_status", table_name="community_subs")
    op.drop_table("community_subs")
