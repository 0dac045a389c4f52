import datetime as dt
from decimal import Decimal, InvalidOperation
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import ExpenseKind, TransactionType

MAX_AMOUNT_CENTS = 99_999_999_999


class CategoryIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    expense_kind: Optional[ExpenseKind] = None


class TransactionIn(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: TransactionType
    amount_cents: int = Field(..., gt=0, le=MAX_AMOUNT_CENTS)
    date: dt.date
    category_id: int
    description: Optional[str] = Field(default=None, max_length=200)
    expense_kind: Optional[ExpenseKind] = None


class MonthlyLimitIn(BaseModel):
    year: int = Field(..., ge=1970, le=3000)
    month: int = Field(..., ge=1, le=12)
    amount_cents: int = Field(..., ge=0, le=MAX_AMOUNT_CENTS)


def parse_amount(value: str) -> int:
    """Parse a user-typed amount ("12,50", "12.50", "1.234,50") into cents."""
    clean = value.strip().replace("€", "").replace("$", "").replace(" ", "")
    clean = clean.replace(",", ".")
    if clean.count(".") > 1:
        parts = clean.split(".")
        clean = "".join(parts[:-1]) + "." + parts[-1]
    try:
        amount = Decimal(clean)
        if not amount.is_finite():
            raise ValueError("Invalid amount")
        cents = int((amount * 100).quantize(Decimal("1")))
    except InvalidOperation as exc:
        raise ValueError("Invalid amount") from exc
    if cents < 0:
        raise ValueError("Amount must be positive")
    return cents
