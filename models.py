from datetime import date, datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    Enum as SAEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from database import Base


class TransactionType(str, Enum):
    income = "income"
    expense = "expense"


class ExpenseKind(str, Enum):
    fixed = "fixed"
    variable = "variable"


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class Budget(Base, TimestampMixin):
    __tablename__ = "budgets"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    owner_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="budget"
    )
    monthly_limits: Mapped[list["MonthlyLimit"]] = relationship(
        "MonthlyLimit", back_populates="budget"
    )


class Category(Base, TimestampMixin):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    # UI affinity only; aggregation trusts the transaction's own expense_kind.
    expense_kind: Mapped[Optional[ExpenseKind]] = mapped_column(SAEnum(ExpenseKind))

    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction", back_populates="category"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_category_user_name"),
    )


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    budget_id: Mapped[int] = mapped_column(ForeignKey("budgets.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    category_id: Mapped[Optional[int]] = mapped_column(ForeignKey("categories.id"))
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType), nullable=False
    )
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text)
    expense_kind: Mapped[Optional[ExpenseKind]] = mapped_column(SAEnum(ExpenseKind))

    budget: Mapped["Budget"] = relationship("Budget", back_populates="transactions")
    category: Mapped[Optional["Category"]] = relationship(
        "Category", back_populates="transactions"
    )

    __table_args__ = (
        Index("ix_transactions_budget_user_date", "budget_id", "user_id", "date"),
        Index("ix_transactions_user_type_date", "user_id", "type", "date"),
        CheckConstraint("amount_cents >= 0", name="ck_transactions_amount_positive"),
    )


class MonthlyLimit(Base, TimestampMixin):
    __tablename__ = "monthly_limits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    budget_id: Mapped[int] = mapped_column(ForeignKey("budgets.id"), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    budget: Mapped["Budget"] = relationship("Budget", back_populates="monthly_limits")

    __table_args__ = (
        UniqueConstraint(
            "budget_id", "year", "month", name="uq_monthly_limit_budget_month"
        ),
        CheckConstraint("amount_cents >= 0", name="ck_monthly_limit_amount_positive"),
        CheckConstraint("month BETWEEN 1 AND 12", name="ck_monthly_limit_month"),
    )
