import logging
from datetime import date
from typing import Any, Iterable, List, Optional, Tuple

from slot_engine import config
from slot_engine.days import parse_date, select_row_for_date
from slot_engine.hours import normalize_hour
from slot_engine.models import DaySchedule, OpeningHourRow, ScheduleKind, TimeBlock

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60


def to_minutes(hm: str) -> int:
    """Converts a canonical ``HH:mm`` string into minutes since midnight."""
    hours, minutes = hm.split(":")
    return int(hours) * 60 + int(minutes)


def format_minutes(total: int) -> str:
    total %= MINUTES_PER_DAY
    return f"{total // 60:02d}:{total % 60:02d}"


def add_minutes(hm: str, delta: int) -> str:
    """Adds delta minutes to an ``HH:mm`` string, wrapping around midnight."""
    return format_minutes(to_minutes(hm) + delta)


def generate_slots(open_hm: Optional[str], close_hm: Optional[str], step_minutes: int = config.STEP_MINUTES) -> List[str]:
    """Generates every start time t with open_hm <= t < close_hm, step_minutes apart.

    Ranges never cross midnight: close_hm <= open_hm yields an empty list,
    as does an unreadable boundary.
    """
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes}")

    start = normalize_hour(open_hm)
    end = normalize_hour(close_hm)
    if start is None or end is None:
        return []

    return [format_minutes(t) for t in range(to_minutes(start), to_minutes(end), step_minutes)]


def is_restaurant_like(business_type: Optional[str]) -> bool:
    return bool(business_type) and business_type.upper() in config.RESTAURANT_BUSINESS_TYPES


def assemble_blocks(row: Optional[OpeningHourRow], business_type: Optional[str] = None) -> Tuple[ScheduleKind, List[TimeBlock]]:
    """Turns one day's opening hours into the blocks slots are generated from.

    In order: a morning open with an evening close and nothing in between is
    one continuous block; otherwise each complete morning/evening pair is its
    own block; otherwise any lone open/close pair is used; otherwise
    restaurant-like establishments get the default block and the rest are
    closed.
    """
    mo = mc = eo = ec = None
    if row is not None:
        mo, mc, eo, ec = row.morning_open, row.morning_close, row.evening_open, row.evening_close

    if mo and ec and not mc and not eo:
        return ScheduleKind.CONTINUOUS, [TimeBlock(start=mo, end=ec)]

    blocks = []
    if mo and mc:
        blocks.append(TimeBlock(start=mo, end=mc, label=config.MORNING_LABEL))
    if eo and ec:
        blocks.append(TimeBlock(start=eo, end=ec, label=config.AFTERNOON_LABEL))
    if len(blocks) == 2:
        return ScheduleKind.SPLIT, blocks
    if blocks:
        return ScheduleKind.SINGLE, [TimeBlock(start=blocks[0].start, end=blocks[0].end)]

    start = mo or eo
    end = ec or mc
    if start and end:
        return ScheduleKind.FALLBACK, [TimeBlock(start=start, end=end)]

    if is_restaurant_like(business_type):
        logger.debug(f"No usable hours, using default {config.DEFAULT_OPEN}-{config.DEFAULT_CLOSE}")
        return ScheduleKind.DEFAULT, [TimeBlock(start=config.DEFAULT_OPEN, end=config.DEFAULT_CLOSE)]

    return ScheduleKind.CLOSED, []


def generate_block_slots(blocks: Iterable[TimeBlock], step_minutes: int = config.STEP_MINUTES) -> List[str]:
    """Concatenates the slots of every block, de-duplicated and sorted."""
    raw: List[str] = []
    for block in blocks:
        raw.extend(generate_slots(block.start, block.end, step_minutes))
    return sorted(set(raw))


def build_day_schedule(
    rows: Optional[Iterable[Any]],
    date_iso: date | str,
    business_type: Optional[str] = None,
    step_minutes: int = config.STEP_MINUTES,
) -> DaySchedule:
    """Selects the row for date_iso and generates its candidate slots."""
    day = parse_date(date_iso)
    row = select_row_for_date(rows, day)
    kind, blocks = assemble_blocks(row, business_type)
    candidates = generate_block_slots(blocks, step_minutes)

    logger.debug(f"{day.isoformat()}: {kind.value} schedule, {len(candidates)} candidate slots")
    return DaySchedule(date=day.isoformat(), kind=kind, blocks=blocks, candidates=candidates)
