"""
Date parsing for statement text.

Bank statements are read as US dates: MM/DD/YYYY, MM/DD/YY (years
below 100 are in the 2000s) and bare MM/DD (current year).
"""
import calendar
import re
from datetime import date
from typing import Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

DATE_PATTERN = r"\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}"
SHORT_DATE_PATTERN = r"\d{1,2}[/\-]\d{1,2}(?:[/\-]\d{2,4})?"

_NON_DATE_CHARS = re.compile(r"[^\d/\-]")
_SEPARATORS = re.compile(r"[/\-]")


def normalize_date(value: str, today: Optional[date] = None) -> date:
    """
    Parse a statement date.

    Args:
        value: Date as printed.
        today: Reference date for year-less values and the fallback.

    Returns:
        Parsed date. Strings that are neither two nor three parts fall
        back to today.

    Raises:
        ValueError: If the parts do not form a calendar date.
    """
    today = today or date.today()
    cleaned = _NON_DATE_CHARS.sub("", value or "")
    parts = [part for part in _SEPARATORS.split(cleaned) if part]

    if len(parts) == 2:
        month, day = int(parts[0]), int(parts[1])
        return date(today.year, month, day)

    if len(parts) == 3:
        month, day, year = int(parts[0]), int(parts[1]), int(parts[2])
        if year < 100:
            year += 2000
        return date(year, month, day)

    logger.debug("date_fallback_to_today", value=value)
    return today


def current_month_period(today: Optional[date] = None) -> Tuple[date, date]:
    """First and last day of the current calendar month."""
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return date(today.year, today.month, 1), date(today.year, today.month, last_day)
