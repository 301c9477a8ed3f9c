from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

from ..core.exceptions import ValidationError

SUNDAY = 6


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError(f"날짜 형식이 올바르지 않습니다 (YYYY-MM-DD): {value!r}")


def parse_optional_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return parse_iso_date(value)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def sundays_in_year(year: int) -> list[date]:
    first = date(year, 1, 1)
    current = first + timedelta(days=(SUNDAY - first.weekday()) % 7)
    out: list[date] = []
    while current.year == year:
        out.append(current)
        current += timedelta(days=7)
    return out


def is_allowed_attendance_date(value: date, *, year: int) -> bool:
    """Attendance can only be taken on the Sundays of the configured year."""
    return value.year == year and value.weekday() == SUNDAY


def iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value else None
