"""
Date utilities for room status reconciliation.

Handles the hotel-local business date, timestamp formatting and the
parsing of dates coming from the database or request input.
"""
import re
from datetime import date, datetime
import zoneinfo

import config

# Define Timezone
TIMEZONE = zoneinfo.ZoneInfo(config.HOTEL_TIMEZONE)


def get_current_time():
    """Get current time in hotel timezone."""
    return datetime.now(TIMEZONE)


def get_today(current_dt=None):
    """
    Get the hotel's business date.

    The server may run in UTC while the hotel is several hours ahead or
    behind, so the calendar date is always taken in the hotel timezone.

    Args:
        current_dt (datetime, optional): Time to check. Defaults to now.

    Returns:
        date: The hotel-local date.
    """
    if current_dt is None:
        current_dt = get_current_time()
    elif current_dt.tzinfo is not None:
        current_dt = current_dt.astimezone(TIMEZONE)

    return current_dt.date()


def local_timestamp() -> str:
    return get_current_time().isoformat(sep=" ", timespec="seconds")


def parse_date_input(value) -> date | None:
    """
    Parse a YYYY-MM-DD value (or a full ISO timestamp) into a date.

    Returns None for empty or malformed input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        if "T" in value or " " in value:
            # Replace space with T for Python 3.10 compatibility (fromisoformat is stricter)
            return datetime.fromisoformat(value.strip().replace(" ", "T", 1)).date()
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def room_sort_key(room_number: str) -> tuple[int, str]:
    value = (room_number or "").strip()
    match = re.search(r"\d+", value)
    number = int(match.group(0)) if match else 999999
    return (number, value.lower())
