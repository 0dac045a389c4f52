"""add expense_kind to categories and transactions

Revision ID: 202509010900
Revises: 202501101200
Create Date: 2025-09-01 09:00:00.000000

Existing rows keep NULL; expenses dated before EXPENSES_KIND_REQUIRED_FROM
are read as variable regardless of this column.
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "202509010900"
down_revision = "202501101200"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("categories") as batch_op:
        batch_op.add_column(
            sa.Column("expense_kind", sa.Enum("fixed", "variable", name="expensekind"))
        )
    with op.batch_alter_table("transactions") as batch_op:
        batch_op.add_column(
            sa.Column("expense_kind", sa.Enum("fixed", "variable", name="expensekind"))
        )


def downgrade() -> None:
    with op.batch_alter_table("transactions") as batch_op:
        batch_op.drop_column("expense_kind")
    with op.batch_alter_table("categories") as batch_op:
        batch_op.drop_column("expense_kind")
