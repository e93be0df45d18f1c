import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import ValidationError

from slot_engine import config
from slot_engine.days import parse_date
from slot_engine.generator import build_day_schedule, is_restaurant_like
from slot_engine.hours import normalize_hour
from slot_engine.models import (
    AvailabilityQueryResult,
    BookingDraft,
    ContinuityPolicy,
    DayAvailability,
    DaySchedule,
    ScheduleKind,
    Segment,
    SegmentMode,
    SlotChoice,
    SlotSource,
    parse_legacy_table,
)

logger = logging.getLogger(__name__)


class ClockError(ValueError):
    """Raised when the injected current date/time cannot be read."""


def parse_now(now: datetime | str) -> datetime:
    """Reads the caller-supplied current date/time. Fails loudly on bad input."""
    if isinstance(now, datetime):
        return now
    if isinstance(now, str):
        try:
            return datetime.fromisoformat(now)
        except ValueError as e:
            raise ClockError(f"Cannot parse current date/time {now!r}") from e
    raise ClockError(f"Current date/time must be a datetime or an ISO string, got {type(now).__name__}")


def legacy_free_slots(legacy_table: Optional[Dict[str, Any]], date_iso: str) -> List[str]:
    """Returns the times of date_iso that nobody has reserved in the legacy table."""
    if not legacy_table:
        return []
    records = parse_legacy_table(legacy_table).get(date_iso, [])
    return sorted({r.time for r in records if r.time and r.reserved_by is None})


def active_server_result(
    server_result: AvailabilityQueryResult | Dict | None, draft: BookingDraft
) -> Optional[AvailabilityQueryResult]:
    """Returns the server result if it is usable for the draft's program and date.

    Empty results count as a failed query. A result computed for another date
    or program is stale and ignored.
    """
    if server_result is None:
        return None
    if not isinstance(server_result, AvailabilityQueryResult):
        try:
            server_result = AvailabilityQueryResult.model_validate(server_result)
        except ValidationError as e:
            logger.warning(f"Ignoring unreadable availability result: {e}")
            return None

    if not server_result.slots:
        return None
    if server_result.date and server_result.date != draft.date:
        logger.debug(f"Ignoring stale availability for {server_result.date}, draft is on {draft.date}")
        return None
    if server_result.prestation_id and draft.program_id and server_result.prestation_id != draft.program_id:
        logger.debug(
            f"Ignoring stale availability for program {server_result.prestation_id}, "
            f"draft is on program {draft.program_id}"
        )
        return None
    return server_result


def filter_past(slots: Iterable[str], date_iso: str, now: datetime) -> List[str]:
    """Drops slots at or before now when date_iso is today."""
    if now.date().isoformat() != date_iso:
        return list(slots)
    cutoff = now.strftime("%H:%M")
    return [t for t in slots if t > cutoff]


def should_reinsert(policy: ContinuityPolicy, source: SlotSource, business_type: Optional[str]) -> bool:
    if policy == ContinuityPolicy.NEVER:
        return False
    if policy == ContinuityPolicy.ALWAYS:
        return True
    return not (source == SlotSource.SERVER and not is_restaurant_like(business_type))


def partition(
    slots: List[str],
    schedule: Optional[DaySchedule],
    source: SlotSource,
    mode: SegmentMode = SegmentMode.OPENING_HOURS,
) -> List[Segment]:
    """Groups the final slots for display.

    OPENING_HOURS splits a split-shift day into its morning block and the
    rest, keeping both segments even when one is empty. TIME_OF_DAY splits
    on EVENING_START_HOUR into Midi and Soir and leaves out empty segments.
    """
    if mode == SegmentMode.TIME_OF_DAY:
        midi = [t for t in slots if int(t[:2]) < config.EVENING_START_HOUR]
        soir = [t for t in slots if int(t[:2]) >= config.EVENING_START_HOUR]
        segments = [Segment(label=config.MIDI_LABEL, slots=midi), Segment(label=config.SOIR_LABEL, slots=soir)]
        return [s for s in segments if s.slots]

    if source == SlotSource.OPENING_HOURS and schedule is not None and schedule.kind == ScheduleKind.SPLIT:
        morning_block, evening_block = schedule.blocks
        morning = [t for t in slots if morning_block.start <= t < morning_block.end]
        rest = [t for t in slots if not (morning_block.start <= t < morning_block.end)]
        return [
            Segment(label=morning_block.label, slots=morning),
            Segment(label=evening_block.label, slots=rest),
        ]

    return [Segment(label=None, slots=slots)] if slots else []


def finalize(
    schedule: Optional[DaySchedule],
    draft: BookingDraft,
    now: datetime | str,
    legacy_table: Optional[Dict[str, Any]] = None,
    server_result: AvailabilityQueryResult | Dict | None = None,
    mode: SegmentMode = SegmentMode.OPENING_HOURS,
    policy: ContinuityPolicy = ContinuityPolicy.UNLESS_AUTHORITATIVE,
    business_type: Optional[str] = None,
) -> DayAvailability:
    """Turns candidate slots into the final, segmented slot list for the draft's date.

    Source precedence: a matching server result, then the hour-derived
    candidates, then the free entries of the legacy table. The draft's
    selected time is put back according to policy, past times are dropped
    for today, and the result is de-duplicated and sorted.
    """
    current = parse_now(now)
    date_iso = draft.date

    server = active_server_result(server_result, draft)
    if server is not None:
        source = SlotSource.SERVER
        base = list(server.slots)
    elif schedule is not None and schedule.candidates:
        source = SlotSource.OPENING_HOURS
        base = list(schedule.candidates)
    else:
        base = legacy_free_slots(legacy_table, date_iso)
        source = SlotSource.LEGACY if base else SlotSource.NONE

    selected = normalize_hour(draft.selected_time)
    if selected and selected not in base and should_reinsert(policy, source, business_type):
        logger.debug(f"Keeping selected time {selected} for {date_iso}")
        base.append(selected)

    slots = sorted(set(filter_past(base, date_iso, current)))

    server_slots = set(server.slots) if server is not None else set()
    choices = [SlotChoice(time=t, selectable=source != SlotSource.SERVER or t in server_slots) for t in slots]

    logger.debug(f"{date_iso}: {len(slots)} slots from {source.value}")
    return DayAvailability(
        date=date_iso,
        source=source,
        slots=slots,
        segments=partition(slots, schedule, source, mode),
        choices=choices,
    )


def _as_draft(draft: BookingDraft | date | str) -> BookingDraft:
    if isinstance(draft, BookingDraft):
        return draft
    return BookingDraft(date=parse_date(draft).isoformat())


def plan_day(
    opening_hours: Optional[Iterable[Any]],
    draft: BookingDraft | date | str,
    now: datetime | str,
    business_type: Optional[str] = None,
    legacy_table: Optional[Dict[str, Any]] = None,
    server_result: AvailabilityQueryResult | Dict | None = None,
    step_minutes: int = config.STEP_MINUTES,
    mode: SegmentMode = SegmentMode.OPENING_HOURS,
    policy: ContinuityPolicy = ContinuityPolicy.UNLESS_AUTHORITATIVE,
) -> DayAvailability:
    """Runs every stage for one date: row selection, generation, filtering and segmentation."""
    draft = _as_draft(draft)
    schedule = build_day_schedule(opening_hours, draft.date, business_type, step_minutes)
    return finalize(
        schedule,
        draft,
        now,
        legacy_table=legacy_table,
        server_result=server_result,
        mode=mode,
        policy=policy,
        business_type=business_type,
    )


def has_availability(
    opening_hours: Optional[Iterable[Any]],
    date_iso: date | str,
    now: datetime | str,
    business_type: Optional[str] = None,
    legacy_table: Optional[Dict[str, Any]] = None,
    server_result: AvailabilityQueryResult | Dict | None = None,
    step_minutes: int = config.STEP_MINUTES,
) -> bool:
    """True when at least one slot can be offered on date_iso."""
    day = plan_day(
        opening_hours,
        date_iso,
        now,
        business_type=business_type,
        legacy_table=legacy_table,
        server_result=server_result,
        step_minutes=step_minutes,
    )
    return bool(day.slots)


def unavailable_dates(
    dates: Iterable[date | str],
    opening_hours: Optional[Iterable[Any]],
    now: datetime | str,
    business_type: Optional[str] = None,
    legacy_table: Optional[Dict[str, Any]] = None,
    server_results: Optional[Dict[str, AvailabilityQueryResult]] = None,
    step_minutes: int = config.STEP_MINUTES,
) -> List[str]:
    """Lists the dates without any bookable slot, e.g. to disable them in a calendar."""
    rows = list(opening_hours or [])
    server_results = server_results or {}
    disabled = []
    for day in dates:
        date_iso = parse_date(day).isoformat()
        if not has_availability(
            rows,
            date_iso,
            now,
            business_type=business_type,
            legacy_table=legacy_table,
            server_result=server_results.get(date_iso),
            step_minutes=step_minutes,
        ):
            disabled.append(date_iso)
    return disabled


def is_selectable(availability: DayAvailability, time_hm: Any) -> bool:
    """Checks a user's selection against the computed choices before submission."""
    selected = normalize_hour(time_hm)
    if selected is None:
        return False
    return any(c.time == selected and c.selectable for c in availability.choices)
