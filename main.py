import logging
from dataclasses import asdict
from datetime import date
from typing import Optional

from fastapi import Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

import analytics
from config import get_settings
from csrf import generate_csrf_token, validate_csrf_token
from database import get_db
from models import ExpenseKind, Transaction, TransactionType
from periods import Period, local_today, resolve_period
from schemas import CategoryIn, TransactionIn, parse_amount
from services import (
    AnalyticsService,
    BudgetService,
    CategoryService,
    DataUnavailable,
    TransactionService,
    get_current_user_id,
)

settings = get_settings()
logging.basicConfig(level=settings.log_level)

app = FastAPI(title="Budget Tracker")


@app.exception_handler(DataUnavailable)
def data_unavailable_handler(request: Request, exc: DataUnavailable):
    return JSONResponse(status_code=503, content={"detail": "Could not load data"})


def get_today() -> Optional[date]:
    """Overridable clock; ``None`` means the configured zone's current date."""
    return None


def get_analytics(
    db: Session = Depends(get_db), today: Optional[date] = Depends(get_today)
) -> AnalyticsService:
    return AnalyticsService(db, today=today)


def period_from_request(request: Request, today: Optional[date]) -> Period:
    params = request.query_params
    try:
        return resolve_period(
            params.get("period"),
            params.get("start"),
            params.get("end"),
            month=params.get("month"),
            today=today or local_today(settings.timezone),
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def require_csrf(csrf_token: str) -> None:
    if not validate_csrf_token(csrf_token, get_current_user_id()):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")


def transaction_payload(txn: Transaction) -> dict[str, object]:
    category = txn.category.name if txn.category else analytics.UNKNOWN_CATEGORY
    return {
        "id": txn.id,
        "date": txn.date.isoformat(),
        "type": txn.type.value,
        "amount_cents": txn.amount_cents,
        "category": category,
        "expense_kind": txn.expense_kind.value if txn.expense_kind else None,
        "description": txn.description,
    }


@app.get("/api/csrf-token")
def api_csrf_token():
    return {"csrf_token": generate_csrf_token(get_current_user_id())}


@app.get("/api/summary")
def api_summary(
    request: Request,
    today: Optional[date] = Depends(get_today),
    service: AnalyticsService = Depends(get_analytics),
):
    period = period_from_request(request, today)
    summary = service.summary(period)
    return {
        "period": asdict(period),
        **asdict(summary),
    }


@app.get("/api/summary/lifetime")
def api_lifetime_summary(service: AnalyticsService = Depends(get_analytics)):
    return asdict(service.lifetime_summary())


@app.get("/api/category-breakdown")
def api_category_breakdown(
    request: Request,
    today: Optional[date] = Depends(get_today),
    service: AnalyticsService = Depends(get_analytics),
):
    period = period_from_request(request, today)
    return asdict(service.category_breakdown(period))


@app.get("/api/history")
def api_history(
    months_back: int = analytics.DEFAULT_MONTHS_BACK,
    service: AnalyticsService = Depends(get_analytics),
):
    try:
        points = service.income_expense_history(months_back)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"data": [asdict(p) for p in points], "months_back": months_back}


@app.get("/api/spending/days")
def api_spending_by_day(service: AnalyticsService = Depends(get_analytics)):
    days = service.spending_by_day()
    return {
        "data": [asdict(d) for d in days],
        "total_spent_cents": sum(d.total_spent_cents for d in days),
    }


@app.get("/api/spending/weeks")
def api_weekly_spending(service: AnalyticsService = Depends(get_analytics)):
    weeks = service.weekly_spending()
    return {
        "data": [asdict(w) for w in weeks],
        "total_spent_cents": sum(w.total_cents for w in weeks),
    }


@app.get("/api/monthly-limit")
def api_monthly_limit(service: AnalyticsService = Depends(get_analytics)):
    status = service.monthly_limit()
    return {**asdict(status), "has_limit": status.has_limit}


@app.post("/api/monthly-limit")
def api_set_monthly_limit(
    amount: str = Form(...),
    csrf_token: str = Form(...),
    service: AnalyticsService = Depends(get_analytics),
):
    require_csrf(csrf_token)
    try:
        status = service.set_monthly_limit(parse_amount(amount))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {**asdict(status), "has_limit": status.has_limit}


@app.post("/api/budget/setup")
def api_budget_setup(csrf_token: str = Form(...), db: Session = Depends(get_db)):
    require_csrf(csrf_token)
    budget, created = BudgetService(db).setup_default_budget()
    message = (
        "Budget setup completed successfully"
        if created
        else "User already has a budget"
    )
    return {"budget_id": budget.id, "message": message}


@app.get("/api/categories")
def api_categories(db: Session = Depends(get_db)):
    return [
        {
            "id": c.id,
            "name": c.name,
            "expense_kind": c.expense_kind.value if c.expense_kind else None,
        }
        for c in CategoryService(db).list_all()
    ]


@app.post("/api/categories")
def api_create_category(
    name: str = Form(...),
    expense_kind: Optional[str] = Form(None),
    csrf_token: str = Form(...),
    db: Session = Depends(get_db),
):
    require_csrf(csrf_token)
    try:
        payload = CategoryIn(
            name=name,
            expense_kind=ExpenseKind(expense_kind) if expense_kind else None,
        )
        category = CategoryService(db).create(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"id": category.id, "name": category.name}


@app.get("/api/transactions")
def api_transactions(limit: int = 10, db: Session = Depends(get_db)):
    limit = min(max(limit, 1), 100)
    return {
        "items": [
            transaction_payload(t) for t in TransactionService(db).recent(limit)
        ]
    }


@app.post("/api/transactions")
def api_create_transaction(
    txn_type: str = Form(..., alias="type"),
    amount: str = Form(...),
    txn_date: str = Form(..., alias="date"),
    category_id: int = Form(...),
    description: Optional[str] = Form(None),
    expense_kind: Optional[str] = Form(None),
    csrf_token: str = Form(...),
    db: Session = Depends(get_db),
):
    require_csrf(csrf_token)
    try:
        payload = TransactionIn(
            type=TransactionType(txn_type),
            amount_cents=parse_amount(amount),
            date=txn_date,
            category_id=category_id,
            description=description or None,
            expense_kind=ExpenseKind(expense_kind) if expense_kind else None,
        )
        txn = TransactionService(db).create(payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return transaction_payload(txn)


@app.post("/api/transactions/{transaction_id}")
def api_update_transaction(
    transaction_id: int,
    txn_type: str = Form(..., alias="type"),
    amount: str = Form(...),
    txn_date: str = Form(..., alias="date"),
    category_id: int = Form(...),
    description: Optional[str] = Form(None),
    expense_kind: Optional[str] = Form(None),
    csrf_token: str = Form(...),
    db: Session = Depends(get_db),
):
    require_csrf(csrf_token)
    service = TransactionService(db)
    try:
        service.get(transaction_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    try:
        payload = TransactionIn(
            type=TransactionType(txn_type),
            amount_cents=parse_amount(amount),
            date=txn_date,
            category_id=category_id,
            description=description or None,
            expense_kind=ExpenseKind(expense_kind) if expense_kind else None,
        )
        txn = service.update(transaction_id, payload)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return transaction_payload(txn)


@app.post("/api/transactions/{transaction_id}/delete")
def api_delete_transaction(
    transaction_id: int,
    csrf_token: str = Form(...),
    db: Session = Depends(get_db),
):
    require_csrf(csrf_token)
    try:
        TransactionService(db).delete(transaction_id)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return {"deleted": transaction_id}
