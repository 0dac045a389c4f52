from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


def local_today(timezone: str) -> date:
    """Calendar date of "now" in the configured zone."""
    return datetime.now(ZoneInfo(timezone)).date()


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    first = month_start(d)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return next_month - date.resolution


def add_months(d: date, count: int) -> date:
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, 1)


def week_start(d: date) -> date:
    """Sunday on or before ``d``."""
    # date.weekday() is Monday=0 .. Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def month_key(d: date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def parse_month_key(value: str) -> date:
    try:
        year_raw, month_raw = value.strip().split("-")
        return date(int(year_raw), int(month_raw), 1)
    except ValueError as exc:
        raise ValueError("Month must be formatted as YYYY-MM") from exc


def month_period(d: date) -> Period:
    return Period("month", month_start(d), month_end(d))


def resolve_period(
    period: Optional[str],
    start: Optional[str],
    end: Optional[str],
    *,
    month: Optional[str] = None,
    today: Optional[date] = None,
) -> Period:
    today = today or date.today()
    if period == "all":
        return Period("all", date(1970, 1, 1), today)
    if period == "last_month":
        first_this = today.replace(day=1)
        last_month_end = first_this - date.resolution
        last_month_start = last_month_end.replace(day=1)
        return Period("last_month", last_month_start, last_month_end)
    if period == "month":
        if not month:
            raise ValueError("Month period requires a month (YYYY-MM)")
        return month_period(parse_month_key(month))
    if period == "custom":
        if not start or not end:
            raise ValueError("Custom period requires start and end dates")
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
        if start_date > end_date:
            raise ValueError("Start date must be before end date")
        return Period("custom", start_date, end_date)
    if period and period != "this_month":
        raise ValueError(f"Unknown period: {period}")

    return Period("this_month", month_start(today), month_end(today))
