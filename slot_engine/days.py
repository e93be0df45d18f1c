import logging
from datetime import date, datetime
from typing import Any, Iterable, Optional

from slot_engine.hours import WEEKDAYS
from slot_engine.models import OpeningHourRow, parse_opening_hours

logger = logging.getLogger(__name__)


def parse_date(value: date | str) -> date:
    """Parses an ISO ``YYYY-MM-DD`` date. Raises ValueError on malformed input."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value)


def weekday_name(value: date | str) -> str:
    """Returns the uppercase weekday name (MONDAY..SUNDAY) of a date."""
    return WEEKDAYS[parse_date(value).isoweekday() - 1]


def select_row_for_date(rows: Optional[Iterable[Any]], date_iso: date | str) -> Optional[OpeningHourRow]:
    """Finds the opening-hours row for the weekday of date_iso.

    Rows may be OpeningHourRow instances or raw backend mappings. The first
    matching row wins; None when nothing matches.
    """
    target = weekday_name(date_iso)
    if not rows:
        return None

    for row in parse_opening_hours(list(rows)):
        if row.day == target:
            return row

    logger.debug(f"No opening-hours row for {target} ({date_iso})")
    return None
