"""initial schema

Revision ID: 202501101200
Revises:
Create Date: 2025-01-10 12:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


revision = "202501101200"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "budgets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_budgets_owner_id", "budgets", ["owner_id"])

    op.create_table(
        "categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), nullable=False, default=1),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "name", name="uq_category_user_name"),
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "budget_id", sa.Integer(), sa.ForeignKey("budgets.id"), nullable=False
        ),
        sa.Column("user_id", sa.Integer(), nullable=False, default=1),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("categories.id")),
        sa.Column(
            "type", sa.Enum("income", "expense", name="transactiontype"), nullable=False
        ),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_positive"),
    )
    op.create_index(
        "ix_transactions_budget_user_date",
        "transactions",
        ["budget_id", "user_id", "date"],
    )
    op.create_index(
        "ix_transactions_user_type_date", "transactions", ["user_id", "type", "date"]
    )

    op.create_table(
        "monthly_limits",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "budget_id", sa.Integer(), sa.ForeignKey("budgets.id"), nullable=False
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint(
            "budget_id", "year", "month", name="uq_monthly_limit_budget_month"
        ),
        sa.CheckConstraint(
            "amount_cents >= 0", name="ck_monthly_limit_amount_positive"
        ),
        sa.CheckConstraint("month BETWEEN 1 AND 12", name="ck_monthly_limit_month"),
    )


def downgrade():
    op.drop_table("monthly_limits")
    op.drop_index("ix_transactions_user_type_date", table_name="transactions")
    op.drop_index("ix_transactions_budget_user_date", table_name="transactions")
    op.drop_table("transactions")
    op.drop_table("categories")
    op.drop_index("ix_budgets_owner_id", table_name="budgets")
    op.drop_table("budgets")
