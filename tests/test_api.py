from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from database import Base, get_db
from main import app, get_today

# After the default EXPENSES_KIND_REQUIRED_FROM, a Wednesday.
TODAY = date(2025, 10, 15)


def make_sessionmaker(create_tables: bool = True):
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    if create_tables:
        Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def client_for(SessionLocal) -> TestClient:
    def override_get_db():
        db = SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_today] = lambda: TODAY
    return TestClient(app)


@pytest.fixture
def client():
    with client_for(make_sessionmaker()) as c:
        yield c
    app.dependency_overrides.clear()


def csrf(client: TestClient) -> str:
    return client.get("/api/csrf-token").json()["csrf_token"]


def category_ids(client: TestClient) -> dict[str, int]:
    return {c["name"]: c["id"] for c in client.get("/api/categories").json()}


def post_txn(client: TestClient, token: str, **fields):
    return client.post("/api/transactions", data={"csrf_token": token, **fields})


def test_dashboard_flow(client: TestClient) -> None:
    token = csrf(client)

    setup = client.post("/api/budget/setup", data={"csrf_token": token})
    assert setup.status_code == 200
    assert setup.json()["message"] == "Budget setup completed successfully"
    again = client.post("/api/budget/setup", data={"csrf_token": token})
    assert again.json()["message"] == "User already has a budget"

    ids = category_ids(client)
    food = post_txn(
        client,
        token,
        type="expense",
        amount="12,50",
        date="2025-10-14",
        category_id=str(ids["Food & Dining"]),
        expense_kind="variable",
        description="Lunch",
    )
    assert food.status_code == 200
    assert food.json()["amount_cents"] == 1250
    assert food.json()["category"] == "Food & Dining"
    rent = post_txn(
        client,
        token,
        type="expense",
        amount="800",
        date="2025-10-01",
        category_id=str(ids["Rent"]),
        expense_kind="fixed",
    )
    assert rent.status_code == 200

    summary = client.get("/api/summary", params={"period": "this_month"}).json()
    assert summary["total_fixed_expenses_cents"] == 80_000
    assert summary["total_variable_expenses_cents"] == 1250
    assert summary["net_balance_cents"] == -81_250
    assert summary["period"]["start"] == "2025-10-01"

    breakdown = client.get("/api/category-breakdown").json()
    assert breakdown["total_amount_cents"] == 1250
    assert breakdown["top_categories_count"] == 1
    assert breakdown["categories"][0]["name"] == "Food & Dining"
    assert breakdown["categories"][0]["percentage"] == 100

    days = client.get("/api/spending/days").json()
    assert len(days["data"]) == 7
    assert days["data"][-1]["date"] == "2025-10-15"
    assert days["total_spent_cents"] == 1250

    weeks = client.get("/api/spending/weeks").json()
    assert len(weeks["data"]) == 4
    assert weeks["data"][-1]["week_start"] == "2025-10-12"
    assert weeks["total_spent_cents"] == 1250

    history = client.get("/api/history", params={"months_back": 3}).json()
    assert [p["month"] for p in history["data"]] == ["2025-08", "2025-09", "2025-10"]
    assert history["data"][-1]["expense_cents"] == 1250

    limit = client.get("/api/monthly-limit").json()
    assert limit["has_limit"] is False
    assert limit["remaining_cents"] is None

    limit = client.post(
        "/api/monthly-limit", data={"csrf_token": token, "amount": "10"}
    ).json()
    assert limit["limit_cents"] == 1000
    assert limit["remaining_cents"] == -250
    assert limit["percent_used"] == 100
    assert limit["is_over_limit"] is True

    recent = client.get("/api/transactions").json()["items"]
    assert [t["date"] for t in recent] == ["2025-10-14", "2025-10-01"]

    deleted = client.post(
        f"/api/transactions/{recent[0]['id']}/delete", data={"csrf_token": token}
    )
    assert deleted.status_code == 200
    assert client.get("/api/summary").json()["total_variable_expenses_cents"] == 0


def test_writes_require_valid_csrf(client: TestClient) -> None:
    response = client.post("/api/budget/setup", data={"csrf_token": "forged"})

    assert response.status_code == 400
    assert response.json()["detail"] == "Invalid CSRF token"


def test_bad_input_is_rejected(client: TestClient) -> None:
    token = csrf(client)

    assert client.get("/api/summary", params={"period": "decade"}).status_code == 400
    assert client.get("/api/history", params={"months_back": 0}).status_code == 400
    no_budget = client.post(
        "/api/monthly-limit", data={"csrf_token": token, "amount": "50"}
    )
    assert no_budget.status_code == 400

    client.post("/api/budget/setup", data={"csrf_token": token})
    ids = category_ids(client)
    zero = post_txn(
        client,
        token,
        type="expense",
        amount="0",
        date="2025-10-14",
        category_id=str(ids["Travel"]),
    )
    assert zero.status_code == 400
    missing = client.post("/api/transactions/999/delete", data={"csrf_token": token})
    assert missing.status_code == 404

    for amount in ("Infinity", "NaN", "1e30", "1e20", "abc"):
        limit = client.post(
            "/api/monthly-limit", data={"csrf_token": token, "amount": amount}
        )
        assert limit.status_code == 400, amount
        txn = post_txn(
            client,
            token,
            type="expense",
            amount=amount,
            date="2025-10-14",
            category_id=str(ids["Travel"]),
        )
        assert txn.status_code == 400, amount
    largest = client.post(
        "/api/monthly-limit",
        data={"csrf_token": token, "amount": "999999999,99"},
    )
    assert largest.status_code == 200
    assert largest.json()["limit_cents"] == 99_999_999_999


def test_empty_state_without_budget(client: TestClient) -> None:
    summary = client.get("/api/summary/lifetime").json()
    assert summary["total_income_cents"] == 0
    assert summary["net_balance_cents"] == 0

    breakdown = client.get("/api/category-breakdown").json()
    assert breakdown == {
        "categories": [],
        "total_amount_cents": 0,
        "top_categories_count": 0,
    }
    assert len(client.get("/api/spending/days").json()["data"]) == 7


def test_store_failure_is_reported_as_unavailable() -> None:
    with client_for(make_sessionmaker(create_tables=False)) as c:
        response = c.get("/api/summary")
    app.dependency_overrides.clear()

    assert response.status_code == 503
    assert response.json()["detail"] == "Could not load data"


def test_edit_transaction(client: TestClient) -> None:
    token = csrf(client)
    client.post("/api/budget/setup", data={"csrf_token": token})
    ids = category_ids(client)
    created = post_txn(
        client,
        token,
        type="expense",
        amount="60",
        date="2025-10-10",
        category_id=str(ids["Utilities"]),
        expense_kind="variable",
    ).json()
    fields = {
        "csrf_token": token,
        "type": "expense",
        "amount": "65",
        "date": "2025-10-10",
        "category_id": str(ids["Utilities"]),
        "expense_kind": "fixed",
    }

    edited = client.post(f"/api/transactions/{created['id']}", data=fields)

    assert edited.status_code == 200
    assert edited.json()["amount_cents"] == 6500
    assert edited.json()["expense_kind"] == "fixed"
    summary = client.get("/api/summary").json()
    assert summary["total_fixed_expenses_cents"] == 6500
    assert summary["total_variable_expenses_cents"] == 0
    assert client.get("/api/category-breakdown").json()["categories"] == []

    missing = client.post("/api/transactions/999", data=fields)
    assert missing.status_code == 404
    forged = client.post(
        f"/api/transactions/{created['id']}", data={**fields, "csrf_token": "x"}
    )
    assert forged.status_code == 400
    bad_amount = client.post(
        f"/api/transactions/{created['id']}", data={**fields, "amount": "Infinity"}
    )
    assert bad_amount.status_code == 400
