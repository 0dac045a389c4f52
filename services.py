from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Iterator, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

import analytics
from analytics import (
    CategoryBreakdown,
    DaySpending,
    LimitStatus,
    MonthlyPoint,
    PeriodSummary,
    TransactionRecord,
    WeekSpending,
)
from config import Settings, get_settings
from models import (
    Budget,
    Category,
    ExpenseKind,
    MonthlyLimit,
    Transaction,
    TransactionType,
)
from periods import Period, local_today, month_period, month_start
from schemas import CategoryIn, MonthlyLimitIn, TransactionIn

logger = logging.getLogger(__name__)

DEFAULT_BUDGET_NAME = "My Budget"
DEFAULT_FIXED_CATEGORIES = ("Rent", "Utilities", "Insurance", "Subscriptions")
DEFAULT_VARIABLE_CATEGORIES = (
    "Food & Dining",
    "Transportation",
    "Shopping",
    "Entertainment",
    "Healthcare",
    "Travel",
)
DEFAULT_INCOME_CATEGORIES = ("Salary",)


class DataUnavailable(RuntimeError):
    """The store could not be read. Not retried here."""


def get_current_user_id() -> int:
    return 1


@contextmanager
def _reading(what: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception(f"Could not load {what}")
        raise DataUnavailable(f"Could not load {what}") from exc


class BudgetService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def budget_id_for_user(self) -> Optional[int]:
        stmt = (
            select(Budget.id)
            .where(Budget.owner_id == self.user_id)
            .order_by(Budget.id.asc())
            .limit(1)
        )
        with _reading("budget"):
            return self.session.scalar(stmt)

    def setup_default_budget(self) -> tuple[Budget, bool]:
        """Create the user's budget and seed categories; idempotent."""
        budget_id = self.budget_id_for_user()
        if budget_id is not None:
            return self.session.get(Budget, budget_id), False

        budget = Budget(name=DEFAULT_BUDGET_NAME, owner_id=self.user_id)
        self.session.add(budget)
        self.session.flush()

        categories = CategoryService(self.session, self.user_id)
        existing = {c.name.lower() for c in categories.list_all()}
        seeds: list[tuple[str, Optional[ExpenseKind]]] = [
            *((name, ExpenseKind.fixed) for name in DEFAULT_FIXED_CATEGORIES),
            *((name, ExpenseKind.variable) for name in DEFAULT_VARIABLE_CATEGORIES),
            *((name, None) for name in DEFAULT_INCOME_CATEGORIES),
        ]
        for name, kind in seeds:
            if name.lower() in existing:
                continue
            self.session.add(
                Category(user_id=self.user_id, name=name, expense_kind=kind)
            )

        self.session.commit()
        self.session.refresh(budget)
        logger.info(f"budget_setup: user_id={self.user_id} budget_id={budget.id}")
        return budget, True

    def get_monthly_limit(self, year: int, month: int) -> Optional[int]:
        budget_id = self.budget_id_for_user()
        if budget_id is None:
            return None
        stmt = select(MonthlyLimit.amount_cents).where(
            MonthlyLimit.budget_id == budget_id,
            MonthlyLimit.year == year,
            MonthlyLimit.month == month,
        )
        with _reading("monthly limit"):
            return self.session.scalar(stmt)

    def set_monthly_limit(self, data: MonthlyLimitIn) -> MonthlyLimit:
        budget_id = self.budget_id_for_user()
        if budget_id is None:
            raise ValueError("No budget found for user")

        stmt = select(MonthlyLimit).where(
            MonthlyLimit.budget_id == budget_id,
            MonthlyLimit.year == data.year,
            MonthlyLimit.month == data.month,
        )
        with _reading("monthly limit"):
            existing = self.session.scalar(stmt)
        if existing:
            existing.amount_cents = data.amount_cents
            self.session.commit()
            self.session.refresh(existing)
            limit = existing
        else:
            limit = MonthlyLimit(
                budget_id=budget_id,
                year=data.year,
                month=data.month,
                amount_cents=data.amount_cents,
            )
            self.session.add(limit)
            self.session.commit()
            self.session.refresh(limit)
        logger.info(
            f"monthly_limit_set: budget_id={budget_id} "
            f"month={data.year:04d}-{data.month:02d} amount_cents={data.amount_cents}"
        )
        return limit


class CategoryService:
    def __init__(self, session: Session, user_id: Optional[int] = None) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()

    def list_all(self) -> list[Category]:
        stmt = (
            select(Category)
            .where(Category.user_id == self.user_id)
            .order_by(Category.name)
        )
        with _reading("categories"):
            return self.session.scalars(stmt).all()

    def create(self, data: CategoryIn) -> Category:
        name = data.name.strip()
        if not name:
            raise ValueError("Category name is required")
        duplicate = self.session.scalar(
            select(Category).where(
                Category.user_id == self.user_id, Category.name == name
            )
        )
        if duplicate:
            raise ValueError("Category already exists")
        category = Category(
            user_id=self.user_id, name=name, expense_kind=data.expense_kind
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        return category


class TransactionService:
    def __init__(
        self,
        session: Session,
        user_id: Optional[int] = None,
        *,
        settings: Optional[Settings] = None,
    ) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.settings = settings or get_settings()

    def _checked_kind(self, data: TransactionIn) -> Optional[ExpenseKind]:
        category = self.session.get(Category, data.category_id)
        if not category or category.user_id != self.user_id:
            raise ValueError("Category not found")

        expense_kind = (
            data.expense_kind if data.type == TransactionType.expense else None
        )
        cutover = self.settings.expense_kind_required_from
        if (
            data.type == TransactionType.expense
            and data.date >= cutover
            and expense_kind is None
        ):
            logger.warning(
                f"expense without expense_kind on {data.date.isoformat()} "
                f"(required from {cutover.isoformat()}); it will count as variable"
            )
        return expense_kind

    def create(self, data: TransactionIn) -> Transaction:
        budget_id = BudgetService(self.session, self.user_id).budget_id_for_user()
        if budget_id is None:
            raise ValueError("No budget found for user")
        expense_kind = self._checked_kind(data)

        txn = Transaction(
            budget_id=budget_id,
            user_id=self.user_id,
            category_id=data.category_id,
            type=data.type,
            amount_cents=data.amount_cents,
            date=data.date,
            description=data.description or None,
            expense_kind=expense_kind,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        logger.info(
            f"transaction_created: id={txn.id} type={txn.type.value} "
            f"date={txn.date.isoformat()}"
        )
        return txn

    def get(self, transaction_id: int) -> Transaction:
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(
                Transaction.user_id == self.user_id, Transaction.id == transaction_id
            )
        )
        txn = self.session.scalar(stmt)
        if not txn:
            raise ValueError("Transaction not found")
        return txn

    def update(self, transaction_id: int, data: TransactionIn) -> Transaction:
        txn = self.get(transaction_id)
        expense_kind = self._checked_kind(data)

        txn.type = data.type
        txn.amount_cents = data.amount_cents
        txn.date = data.date
        txn.category_id = data.category_id
        txn.description = data.description or None
        txn.expense_kind = expense_kind
        self.session.commit()
        self.session.refresh(txn)
        logger.info(
            f"transaction_updated: id={txn.id} type={txn.type.value} "
            f"date={txn.date.isoformat()}"
        )
        return txn

    def recent(self, limit: int = 10) -> list[Transaction]:
        budget_id = BudgetService(self.session, self.user_id).budget_id_for_user()
        if budget_id is None:
            return []
        stmt = (
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(
                Transaction.budget_id == budget_id,
                Transaction.user_id == self.user_id,
            )
            .order_by(Transaction.date.desc(), Transaction.id.desc())
            .limit(limit)
        )
        with _reading("transactions"):
            return self.session.scalars(stmt).all()

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()
        logger.info(f"transaction_deleted: id={transaction_id}")

    def snapshot(self, period: Optional[Period] = None) -> list[TransactionRecord]:
        """Immutable rows for one aggregation, oldest first."""
        budget_id = BudgetService(self.session, self.user_id).budget_id_for_user()
        if budget_id is None:
            return []
        stmt = (
            select(
                Transaction.id,
                Transaction.type,
                Transaction.amount_cents,
                Transaction.date,
                Transaction.category_id,
                Transaction.expense_kind,
                Category.name.label("category_name"),
            )
            .outerjoin(Category, Category.id == Transaction.category_id)
            .where(
                Transaction.budget_id == budget_id,
                Transaction.user_id == self.user_id,
            )
            .order_by(Transaction.date.asc(), Transaction.id.asc())
        )
        if period is not None:
            stmt = stmt.where(Transaction.date.between(period.start, period.end))
        with _reading("transactions"):
            rows = self.session.execute(stmt).all()
        return [
            TransactionRecord(
                id=row.id,
                type=row.type,
                amount_cents=int(row.amount_cents),
                date=row.date,
                category_id=row.category_id,
                expense_kind=row.expense_kind,
                category_name=row.category_name,
            )
            for row in rows
        ]


class AnalyticsService:
    """Dashboard views for one user, each computed from a fresh snapshot."""

    def __init__(
        self,
        session: Session,
        user_id: Optional[int] = None,
        *,
        today: Optional[date] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.session = session
        self.user_id = user_id or get_current_user_id()
        self.settings = settings or get_settings()
        self.cutover = self.settings.expense_kind_required_from
        self._today = today
        self.transactions = TransactionService(
            session, self.user_id, settings=self.settings
        )
        self.budgets = BudgetService(session, self.user_id)

    def today(self) -> date:
        return self._today or local_today(self.settings.timezone)

    def summary(self, period: Optional[Period] = None) -> PeriodSummary:
        period = period or month_period(self.today())
        records = self.transactions.snapshot(period)
        return analytics.period_summary(records, self.cutover, period)

    def lifetime_summary(self) -> PeriodSummary:
        return analytics.period_summary(self.transactions.snapshot(), self.cutover)

    def category_breakdown(self, period: Optional[Period] = None) -> CategoryBreakdown:
        period = period or month_period(self.today())
        records = self.transactions.snapshot(period)
        return analytics.category_breakdown(records, self.cutover, period)

    def income_expense_history(
        self, months_back: int = analytics.DEFAULT_MONTHS_BACK
    ) -> list[MonthlyPoint]:
        today = self.today()
        window = analytics.history_window(today, months_back)
        records = self.transactions.snapshot(window)
        return analytics.monthly_history(records, self.cutover, today, months_back)

    def spending_by_day(self) -> list[DaySpending]:
        today = self.today()
        records = self.transactions.snapshot(analytics.last_days_window(today))
        return analytics.spending_by_day(records, self.cutover, today)

    def weekly_spending(self) -> list[WeekSpending]:
        today = self.today()
        windows = analytics.week_windows(today)
        span = Period("weeks", windows[0].start, windows[-1].end)
        records = self.transactions.snapshot(span)
        return analytics.weekly_spending(records, self.cutover, today)

    def _month_to_date_spent(self, today: date) -> int:
        period = Period("month_to_date", month_start(today), today)
        return self.summary(period).total_variable_expenses_cents

    def monthly_limit(self) -> LimitStatus:
        today = self.today()
        limit = self.budgets.get_monthly_limit(today.year, today.month)
        spent = self._month_to_date_spent(today)
        return analytics.limit_status(
            limit, spent, year=today.year, month=today.month
        )

    def set_monthly_limit(self, amount_cents: int) -> LimitStatus:
        today = self.today()
        self.budgets.set_monthly_limit(
            MonthlyLimitIn(
                year=today.year, month=today.month, amount_cents=amount_cents
            )
        )
        return self.monthly_limit()
