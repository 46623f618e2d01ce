"""
Date helpers shared by the sales history and reports endpoints.
"""
import calendar
import os
from datetime import date, datetime, timedelta
from typing import Optional, Tuple

import pytz
from fastapi import HTTPException, status

# Timezone the shop works in; day boundaries are computed in this zone
STORE_TZ = pytz.timezone(os.environ.get("STORE_TIMEZONE", "UTC"))

PREDEFINED_RANGES = ("7days", "30days", "thisMonth", "lastMonth", "thisYear", "all", "custom")


def now_local() -> datetime:
    """Current time in the store timezone."""
    return datetime.now(STORE_TZ)


def start_of_day(day: date) -> datetime:
    """Midnight of a calendar day in the store timezone, with that day's own UTC offset."""
    return STORE_TZ.localize(datetime(day.year, day.month, day.day))


def end_of_day(day: date) -> datetime:
    return STORE_TZ.localize(datetime(day.year, day.month, day.day, 23, 59, 59))


def parse_flexible_date(date_str: Optional[str], is_end_date: bool = False) -> Optional[datetime]:
    """
    Parse flexible date formats and return them in the store timezone:
    - "2025" -> January 1, 2025 00:00:00 (start) or December 31, 2025 23:59:59 (end)
    - "2025-07" -> July 1, 2025 00:00:00 (start) or July 31, 2025 23:59:59 (end)
    - "2025-07-16" -> July 16, 2025 00:00:00 (start) or July 16, 2025 23:59:59 (end)

    Args:
        date_str: The date string to parse
        is_end_date: If True, returns end of period; if False, returns start of period

    Returns:
        timezone-aware datetime, or None for an empty string

    Raises:
        HTTPException: 400 for anything that is not one of the formats above
    """
    if not date_str:
        return None

    date_str = date_str.strip()

    # Year only (e.g., "2025")
    if len(date_str) == 4 and date_str.isdigit():
        year = int(date_str)
        if is_end_date:
            naive_dt = datetime(year, 12, 31, 23, 59, 59)
        else:
            naive_dt = datetime(year, 1, 1, 0, 0, 0)
        return STORE_TZ.localize(naive_dt)

    # Year-Month (e.g., "2025-07")
    elif len(date_str) == 7 and date_str.count('-') == 1:
        try:
            year, month = map(int, date_str.split('-'))
            if is_end_date:
                last_day = calendar.monthrange(year, month)[1]
                naive_dt = datetime(year, month, last_day, 23, 59, 59)
            else:
                naive_dt = datetime(year, month, 1, 0, 0, 0)
            return STORE_TZ.localize(naive_dt)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid date format: {date_str}. Expected format: YYYY-MM"
            )

    # Full date (e.g., "2025-07-16")
    elif len(date_str) == 10 and date_str.count('-') == 2:
        try:
            parsed_date = datetime.strptime(date_str, "%Y-%m-%d")
            if is_end_date:
                naive_dt = parsed_date.replace(hour=23, minute=59, second=59)
            else:
                naive_dt = parsed_date.replace(hour=0, minute=0, second=0)
            return STORE_TZ.localize(naive_dt)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid date format: {date_str}. Expected format: YYYY-MM-DD"
            )

    else:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid date format: {date_str}. Supported formats: YYYY, YYYY-MM, YYYY-MM-DD"
        )


def resolve_date_range(
    range_name: str,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    today: Optional[datetime] = None
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Turn a named range from the sales history filter into concrete bounds.

    Args:
        range_name: One of PREDEFINED_RANGES
        start_date: Lower bound for "custom" (flexible format)
        end_date: Upper bound for "custom" (flexible format)
        today: Reference time, defaults to now in the store timezone

    Returns:
        (start, end) tuple; ("all") yields (None, None)
    """
    today = today or now_local()
    current = today.date()

    if range_name == "7days":
        return start_of_day(current - timedelta(days=7)), today
    if range_name == "30days":
        return start_of_day(current - timedelta(days=30)), today
    if range_name == "thisMonth":
        return start_of_day(current.replace(day=1)), today
    if range_name == "lastMonth":
        last_of_previous = current.replace(day=1) - timedelta(days=1)
        return start_of_day(last_of_previous.replace(day=1)), end_of_day(last_of_previous)
    if range_name == "thisYear":
        return start_of_day(date(current.year, 1, 1)), today
    if range_name == "all":
        return None, None
    if range_name == "custom":
        return parse_flexible_date(start_date), parse_flexible_date(end_date, is_end_date=True)

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=f"Invalid range: {range_name}. Supported ranges: {', '.join(PREDEFINED_RANGES)}"
    )


def to_local(value: datetime) -> datetime:
    """
    Express a stored timestamp in the store timezone; naive values are taken as UTC.
    """
    if value.tzinfo is None:
        value = pytz.utc.localize(value)
    return value.astimezone(STORE_TZ)
