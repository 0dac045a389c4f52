"""Dashboard aggregations over a fetched transaction snapshot.

Every function here is a pure fold: it takes the rows handed to it, the
expense-kind cutover date and (where a window is anchored to it) "today", and
returns plain dataclasses. Nothing is cached and nothing is mutated, so the
same snapshot always produces the same output.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, Optional

from models import ExpenseKind, TransactionType
from periods import Period, add_months, month_key, month_start, week_start

TOP_CATEGORIES = 5
OTHER_LABEL = "Other"
UNKNOWN_CATEGORY = "Unknown"
DEFAULT_MONTHS_BACK = 6
LAST_DAYS = 7
WEEKS_SHOWN = 4

CATEGORY_PALETTE = (
    "#3b82f6",
    "#10b981",
    "#f59e0b",
    "#ef4444",
    "#8b5cf6",
    "#6b7280",
)
OTHER_COLOR = CATEGORY_PALETTE[TOP_CATEGORIES]

DAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True)
class TransactionRecord:
    id: int
    type: TransactionType
    amount_cents: int
    date: date
    category_id: Optional[int] = None
    expense_kind: Optional[str] = None
    category_name: Optional[str] = None


@dataclass(frozen=True)
class PeriodSummary:
    total_income_cents: int
    total_fixed_expenses_cents: int
    total_variable_expenses_cents: int
    total_expenses_cents: int
    net_balance_cents: int


@dataclass(frozen=True)
class CategorySlice:
    name: str
    amount_cents: int
    percentage: float
    color: str


@dataclass(frozen=True)
class CategoryBreakdown:
    categories: list[CategorySlice]
    total_amount_cents: int
    top_categories_count: int


@dataclass(frozen=True)
class MonthlyPoint:
    month: str
    income_cents: int
    expense_cents: int


@dataclass(frozen=True)
class DaySpending:
    day_of_week: str
    total_spent_cents: int
    day_index: int
    date: date


@dataclass(frozen=True)
class WeekSpending:
    label: str
    short_label: str
    total_cents: int
    week_start: date
    week_end: date


@dataclass(frozen=True)
class LimitStatus:
    year: int
    month: int
    limit_cents: Optional[int]
    spent_cents: int
    remaining_cents: Optional[int]
    percent_used: float
    is_over_limit: bool

    @property
    def has_limit(self) -> bool:
        return self.limit_cents is not None


def classify_expense(
    txn_date: date, expense_kind: Optional[str], cutover: date
) -> ExpenseKind:
    if txn_date < cutover:
        return ExpenseKind.variable
    if expense_kind == ExpenseKind.fixed:
        return ExpenseKind.fixed
    # An untagged expense on or after the cutover counts as variable.
    return ExpenseKind.variable


def is_variable_expense(txn: TransactionRecord, cutover: date) -> bool:
    return (
        txn.type == TransactionType.expense
        and classify_expense(txn.date, txn.expense_kind, cutover)
        == ExpenseKind.variable
    )


def is_fixed_expense(txn: TransactionRecord, cutover: date) -> bool:
    return (
        txn.type == TransactionType.expense
        and classify_expense(txn.date, txn.expense_kind, cutover) == ExpenseKind.fixed
    )


def _within(
    transactions: Iterable[TransactionRecord], period: Optional[Period]
) -> Iterable[TransactionRecord]:
    if period is None:
        return transactions
    return (txn for txn in transactions if period.contains(txn.date))


def _percent(part: int, total: int) -> float:
    return (part / total * 100) if total else 0.0


def period_summary(
    transactions: Iterable[TransactionRecord],
    cutover: date,
    period: Optional[Period] = None,
) -> PeriodSummary:
    income = 0
    fixed = 0
    variable = 0
    for txn in _within(transactions, period):
        if txn.type == TransactionType.income:
            income += txn.amount_cents
        elif txn.type == TransactionType.expense:
            if is_fixed_expense(txn, cutover):
                fixed += txn.amount_cents
            else:
                variable += txn.amount_cents
    expenses = fixed + variable
    return PeriodSummary(
        total_income_cents=income,
        total_fixed_expenses_cents=fixed,
        total_variable_expenses_cents=variable,
        total_expenses_cents=expenses,
        net_balance_cents=income - expenses,
    )


def category_breakdown(
    transactions: Iterable[TransactionRecord],
    cutover: date,
    period: Optional[Period] = None,
) -> CategoryBreakdown:
    """Variable spend per category: the top five, then one "Other" rollup.

    Groups keep first-seen order so equal totals rank deterministically.
    """
    totals: dict[str, int] = {}
    for txn in _within(transactions, period):
        if not is_variable_expense(txn, cutover):
            continue
        name = txn.category_name or UNKNOWN_CATEGORY
        totals[name] = totals.get(name, 0) + txn.amount_cents

    if not totals:
        return CategoryBreakdown(
            categories=[], total_amount_cents=0, top_categories_count=0
        )

    total = sum(totals.values())
    ranked = sorted(totals.items(), key=lambda item: -item[1])
    top = ranked[:TOP_CATEGORIES]
    rest = ranked[TOP_CATEGORIES:]

    slices = [
        CategorySlice(
            name=name,
            amount_cents=amount,
            percentage=_percent(amount, total),
            color=CATEGORY_PALETTE[index],
        )
        for index, (name, amount) in enumerate(top)
    ]
    if rest:
        other = sum(amount for _, amount in rest)
        slices.append(
            CategorySlice(
                name=OTHER_LABEL,
                amount_cents=other,
                percentage=_percent(other, total),
                color=OTHER_COLOR,
            )
        )
    return CategoryBreakdown(
        categories=slices,
        total_amount_cents=total,
        top_categories_count=len(top),
    )


def history_window(today: date, months_back: int = DEFAULT_MONTHS_BACK) -> Period:
    if months_back < 1:
        raise ValueError("months_back must be at least 1")
    start = add_months(month_start(today), -(months_back - 1))
    return Period("history", start, today)


def monthly_history(
    transactions: Iterable[TransactionRecord],
    cutover: date,
    today: date,
    months_back: int = DEFAULT_MONTHS_BACK,
) -> list[MonthlyPoint]:
    """Income and variable spend per calendar month, oldest first.

    Every month of the window is emitted, empty ones as zeros.
    """
    window = history_window(today, months_back)
    income: dict[str, int] = {}
    expense: dict[str, int] = {}
    for txn in _within(transactions, window):
        key = month_key(txn.date)
        if txn.type == TransactionType.income:
            income[key] = income.get(key, 0) + txn.amount_cents
        elif is_variable_expense(txn, cutover):
            expense[key] = expense.get(key, 0) + txn.amount_cents

    out: list[MonthlyPoint] = []
    for offset in range(months_back):
        key = month_key(add_months(window.start, offset))
        out.append(
            MonthlyPoint(
                month=key,
                income_cents=income.get(key, 0),
                expense_cents=expense.get(key, 0),
            )
        )
    return out


def last_days_window(today: date, days: int = LAST_DAYS) -> Period:
    return Period("last_days", today - timedelta(days=days - 1), today)


def spending_by_day(
    transactions: Iterable[TransactionRecord],
    cutover: date,
    today: date,
) -> list[DaySpending]:
    window = last_days_window(today)
    by_date: dict[date, int] = {}
    for txn in _within(transactions, window):
        if is_variable_expense(txn, cutover):
            by_date[txn.date] = by_date.get(txn.date, 0) + txn.amount_cents

    out: list[DaySpending] = []
    for index in range(LAST_DAYS):
        day = window.start + timedelta(days=index)
        out.append(
            DaySpending(
                day_of_week=DAY_NAMES[day.weekday()],
                total_spent_cents=by_date.get(day, 0),
                day_index=index,
                date=day,
            )
        )
    return out


def week_windows(today: date, count: int = WEEKS_SHOWN) -> list[Period]:
    """Sunday-to-Saturday weeks ending with the one containing ``today``."""
    windows: list[Period] = []
    current = today
    for _ in range(count):
        start = week_start(current)
        windows.append(Period("week", start, start + timedelta(days=6)))
        current -= timedelta(days=7)
    windows.reverse()
    return windows


def weekly_spending(
    transactions: Iterable[TransactionRecord],
    cutover: date,
    today: date,
) -> list[WeekSpending]:
    by_week: dict[date, int] = {}
    for txn in transactions:
        if is_variable_expense(txn, cutover):
            key = week_start(txn.date)
            by_week[key] = by_week.get(key, 0) + txn.amount_cents

    out: list[WeekSpending] = []
    for window in week_windows(today):
        out.append(
            WeekSpending(
                label=f"{window.start:%d/%m/%Y} - {window.end:%d/%m/%Y}",
                short_label=f"{window.start:%d/%m} - {window.end:%d/%m}",
                total_cents=by_week.get(window.start, 0),
                week_start=window.start,
                week_end=window.end,
            )
        )
    return out


def limit_status(
    limit_cents: Optional[int], spent_cents: int, *, year: int, month: int
) -> LimitStatus:
    # A zero limit is the same as no limit.
    if not limit_cents:
        return LimitStatus(
            year=year,
            month=month,
            limit_cents=None,
            spent_cents=spent_cents,
            remaining_cents=None,
            percent_used=0.0,
            is_over_limit=False,
        )
    return LimitStatus(
        year=year,
        month=month,
        limit_cents=limit_cents,
        spent_cents=spent_cents,
        remaining_cents=limit_cents - spent_cents,
        percent_used=min(100.0, _percent(spent_cents, limit_cents)),
        is_over_limit=spent_cents > limit_cents,
    )
