import logging
import sys
from datetime import datetime, timedelta
from typing import List, Optional

from slot_engine import client, config, persist
from slot_engine.availability import plan_day
from slot_engine.models import (
    BookingDraft,
    ContinuityPolicy,
    DayAvailability,
    Establishment,
    LegacySlotTable,
    SegmentMode,
)

logger = logging.getLogger(__name__)


def get_target_dates(start_date_arg: str | None, days_arg: int) -> List[str]:
    """Determines the list of consecutive ISO dates to compute."""
    if start_date_arg:
        try:
            start_date = datetime.strptime(start_date_arg, "%Y-%m-%d")
        except ValueError:
            logger.error("Error: Start date must be in YYYY-MM-DD format.")
            sys.exit(1)
    else:
        start_date = datetime.now()

    target_dates = [(start_date + timedelta(days=i)).strftime("%Y-%m-%d") for i in range(days_arg)]

    if not target_dates:
        logger.error("No target dates found. Exiting.")
        sys.exit(1)

    return target_dates


def load_establishment(establishment_id: int | None, establishment_file: str | None) -> Establishment:
    """Reads the establishment from a JSON file, or from the API when only an id is given."""
    establishment = None
    if establishment_file:
        establishment = persist.load_establishment(establishment_file)
        if establishment is not None and establishment.id is None:
            establishment.id = establishment_id
    elif establishment_id is not None:
        establishment = client.fetch_establishment(establishment_id)

    if establishment is None:
        logger.error("No establishment could be loaded. Exiting.")
        sys.exit(1)

    return establishment


def print_availability_report(day: DayAvailability):
    """Prints the formatted availability report to stdout."""
    print(f"\n--- Availability Report for {day.date} ({day.source.value}) ---")

    blocked = {c.time for c in day.choices if not c.selectable}
    for segment in day.segments:
        times = [f"{t} (unavailable)" if t in blocked else t for t in segment.slots]
        label = segment.label or "All day"
        print(f"{label}: {', '.join(times) if times else '-'}")

    if day.slots:
        print(f"Summary: Found {len(day.slots)} available time slots for {day.date}!")
    else:
        print(f"Summary: No slots available for {day.date}.")


def collect_availability(
    establishment: Establishment,
    target_dates: List[str],
    now: datetime,
    legacy_table: Optional[LegacySlotTable] = None,
    program_id: str | None = None,
    selected_time: str | None = None,
    selected_date: str | None = None,
    mode: SegmentMode = SegmentMode.OPENING_HOURS,
    policy: ContinuityPolicy = ContinuityPolicy.UNLESS_AUTHORITATIVE,
) -> List[DayAvailability]:
    """Computes the availability of every target date.

    selected_time belongs to a single booking: it only applies to
    selected_date, which defaults to the first target date.
    """
    if selected_time and not selected_date and target_dates:
        selected_date = target_dates[0]

    results = []
    for date_str in target_dates:
        server_result = None
        if program_id and establishment.id is not None:
            server_result = client.fetch_prestation_availability(establishment.id, program_id, date_str)

        draft_time = (selected_time or "") if date_str == selected_date else ""
        draft = BookingDraft(date=date_str, selected_time=draft_time, program_id=program_id)
        day = plan_day(
            establishment.opening_hours,
            draft,
            now,
            business_type=establishment.business_type,
            legacy_table=legacy_table,
            server_result=server_result,
            step_minutes=config.STEP_MINUTES,
            mode=mode,
            policy=policy,
        )
        results.append(day)
    return results


def run(
    establishment_id: int | None = None,
    establishment_file: str | None = None,
    legacy_file: str | None = None,
    start_date: str | None = None,
    days: int = 7,
    program_id: str | None = None,
    selected_time: str | None = None,
    selected_date: str | None = None,
    mode: SegmentMode = SegmentMode.OPENING_HOURS,
    policy: ContinuityPolicy = ContinuityPolicy.UNLESS_AUTHORITATIVE,
):
    """Core orchestration logic. Loads the establishment, computes the slots of each
    target date, prints a report per day and saves them all."""
    establishment = load_establishment(establishment_id, establishment_file)
    legacy_table = persist.load_legacy_table(legacy_file) if legacy_file else None

    target_dates = get_target_dates(start_date, days)
    logger.info(f"Computing availability of '{establishment.name}' for {len(target_dates)} days: {', '.join(target_dates)}")

    results = collect_availability(
        establishment,
        target_dates,
        datetime.now(),
        legacy_table=legacy_table,
        program_id=program_id,
        selected_time=selected_time,
        selected_date=selected_date,
        mode=mode,
        policy=policy,
    )
    for day in results:
        print_availability_report(day)

    persist.save_report(results)

    bookable_days = sum(1 for day in results if day.slots)
    print(f"\n{bookable_days} of {len(results)} days have available slots.")
