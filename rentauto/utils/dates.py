from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current UTC time as a naive datetime, the form business dates are stored in"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def calculate_age(birth_date: date, on: Optional[date] = None) -> int:
    on = on or utc_now().date()
    return on.year - birth_date.year - ((on.month, on.day) < (birth_date.month, birth_date.day))


def period_key(value, group_by: str) -> str:
    """Bucket a date into the label used by grouped reports"""
    if isinstance(value, datetime):
        value = value.date()
    if group_by == "day":
        return value.strftime("%Y-%m-%d")
    if group_by == "week":
        iso_year, iso_week, _ = value.isocalendar()
        return f"{iso_year}-{iso_week:02d}"
    if group_by == "year":
        return value.strftime("%Y")
    return value.strftime("%Y-%m")
