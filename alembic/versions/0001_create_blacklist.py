"""create blacklist

Revision ID: 0001_create_blacklist
Revises: 
Create Date: 2026-10-17 00:00:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import mysql

# revision identifiers, used by Alembic.
revision = "0001_create_blacklist"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "blacklist",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("tenant_id", sa.Integer(), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("reason", sa.Text().with_variant(mysql.MEDIUMTEXT(), "mysql", "mariadb"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", "email", name="uq_blacklist_tenant_email"),
    )
    op.create_index(op.f("ix_blacklist_tenant_id"), "blacklist", ["tenant_id"], unique=False)


def downgrade():
    op.drop_index(op.f("ix_blacklist_tenant_id"), table_name="blacklist")
    op.drop_table("blacklist")
