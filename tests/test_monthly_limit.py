from datetime import date

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session

from analytics import limit_status
from config import Settings
from database import Base
from models import Category, MonthlyLimit, TransactionType
from schemas import MonthlyLimitIn, TransactionIn
from services import (
    AnalyticsService,
    BudgetService,
    DataUnavailable,
    TransactionService,
)

SETTINGS = Settings(
    database_url="sqlite:///:memory:",
    timezone="UTC",
    csrf_secret="test",
    expense_kind_required_from=date(2024, 6, 1),
    log_level="INFO",
)


def category_id(session: Session, name: str) -> int:
    return session.scalar(select(Category.id).where(Category.name == name))


def test_limit_status_over_limit() -> None:
    status = limit_status(1000, 1200, year=2024, month=7)

    assert status.remaining_cents == -200
    assert status.percent_used == 100
    assert status.is_over_limit is True


def test_limit_status_under_limit() -> None:
    status = limit_status(1000, 250, year=2024, month=7)

    assert status.remaining_cents == 750
    assert status.percent_used == 25
    assert status.is_over_limit is False


def test_limit_status_without_limit_is_not_applicable() -> None:
    status = limit_status(None, 300, year=2024, month=7)

    assert status.has_limit is False
    assert status.remaining_cents is None
    assert status.percent_used == 0
    assert status.is_over_limit is False


def test_zero_limit_does_not_divide_by_zero() -> None:
    idle = limit_status(0, 0, year=2024, month=7)
    spending = limit_status(0, 10, year=2024, month=7)

    for status in (idle, spending):
        assert status.has_limit is False
        assert status.limit_cents is None
        assert status.remaining_cents is None
        assert status.percent_used == 0
        assert status.is_over_limit is False
    assert spending.spent_cents == 10


def test_setting_a_limit_replaces_previous_value() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        budgets = BudgetService(session)
        budgets.setup_default_budget()

        budgets.set_monthly_limit(MonthlyLimitIn(year=2024, month=7, amount_cents=1000))
        budgets.set_monthly_limit(MonthlyLimitIn(year=2024, month=7, amount_cents=2500))
        budgets.set_monthly_limit(MonthlyLimitIn(year=2024, month=8, amount_cents=400))

        assert budgets.get_monthly_limit(2024, 7) == 2500
        assert budgets.get_monthly_limit(2024, 8) == 400
        assert budgets.get_monthly_limit(2024, 9) is None
        rows = session.scalars(select(MonthlyLimit)).all()
        assert len(rows) == 2


def test_spent_counts_month_to_date_variable_expenses() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        BudgetService(session).setup_default_budget()
        food = category_id(session, "Food & Dining")
        rent = category_id(session, "Rent")
        txns = TransactionService(session, settings=SETTINGS)
        for day, amount, cat, kind in [
            (date(2024, 7, 2), 700, food, "variable"),
            (date(2024, 7, 3), 500, food, None),
            (date(2024, 7, 1), 90_000, rent, "fixed"),
            (date(2024, 6, 30), 4_000, food, "variable"),
            (date(2024, 7, 25), 8_000, food, "variable"),
        ]:
            txns.create(
                TransactionIn(
                    type=TransactionType.expense,
                    amount_cents=amount,
                    date=day,
                    category_id=cat,
                    expense_kind=kind,
                )
            )

        service = AnalyticsService(session, today=date(2024, 7, 15), settings=SETTINGS)
        assert service.monthly_limit().has_limit is False
        assert service.monthly_limit().spent_cents == 1200

        status = service.set_monthly_limit(1000)
        assert status.limit_cents == 1000
        assert status.spent_cents == 1200
        assert status.remaining_cents == -200
        assert status.percent_used == 100
        assert status.is_over_limit is True

        status = service.set_monthly_limit(3000)
        assert status.limit_cents == 3000
        assert status.percent_used == 40
        assert status.is_over_limit is False


def test_limit_without_budget() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    with Session(engine) as session:
        service = AnalyticsService(session, today=date(2024, 7, 15), settings=SETTINGS)
        status = service.monthly_limit()

        assert status.has_limit is False
        assert status.spent_cents == 0
        with pytest.raises(ValueError, match="No budget"):
            service.set_monthly_limit(1000)


def test_limit_write_reports_unreadable_store() -> None:
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    MonthlyLimit.__table__.drop(engine)

    with Session(engine) as session:
        budgets = BudgetService(session)
        budgets.setup_default_budget()

        with pytest.raises(DataUnavailable):
            budgets.set_monthly_limit(
                MonthlyLimitIn(year=2024, month=7, amount_cents=1000)
            )
