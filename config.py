import os
from datetime import date
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        csrf_secret: str,
        expense_kind_required_from: date,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.csrf_secret = csrf_secret
        # Expenses dated before this day are all treated as variable.
        self.expense_kind_required_from = expense_kind_required_from
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("EXPENSES_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "budget.db"
    database_url = os.getenv("EXPENSES_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("EXPENSES_TIMEZONE", "Europe/Berlin")
    csrf_secret = os.getenv(
        "EXPENSES_CSRF_SECRET",
        "5f0c1e9a27d84b3e8c61a0f4d2b97e13a8c45d60f1e2b3a49c7d8e0f1a2b3c4d",
    )
    cutover_raw = os.getenv("EXPENSES_KIND_REQUIRED_FROM", "2025-09-01")
    try:
        cutover = date.fromisoformat(cutover_raw.strip())
    except ValueError as exc:
        raise ValueError(
            f"EXPENSES_KIND_REQUIRED_FROM must be YYYY-MM-DD, got {cutover_raw!r}"
        ) from exc
    log_level = os.getenv("EXPENSES_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        csrf_secret=csrf_secret,
        expense_kind_required_from=cutover,
        log_level=log_level,
    )
