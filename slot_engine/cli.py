import argparse
import logging
import sys

from slot_engine import run
from slot_engine.models import ContinuityPolicy, SegmentMode

# --- Logging Setup ---

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool):
    """Configures logging to stderr with local time."""
    import time

    level = logging.DEBUG if verbose else logging.INFO
    handler = logging.StreamHandler(sys.stderr)
    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s]: %(name)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    formatter.converter = time.localtime
    handler.setFormatter(formatter)

    logging.basicConfig(
        level=level,
        handlers=[handler],
    )


def parse_arguments(argv=None):
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(description="Compute bookable reservation slots for an establishment.")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--establishment-id", type=int, help="Fetch the establishment from the API.")
    source.add_argument("--establishment-file", type=str, help="Read the establishment from a JSON file.")
    parser.add_argument("--legacy-file", type=str, help="JSON file with the legacy per-date slot table.")
    parser.add_argument("--start-date", type=str, help="Start date in YYYY-MM-DD format. Defaults to today.")
    parser.add_argument("--days", type=int, default=7, help="Number of days to compute. Defaults to 7.")
    parser.add_argument("--program-id", type=str, help="Prestation to query server-side availability for.")
    parser.add_argument("--selected-time", type=str, help="Previously booked time (HH:MM) to keep in the list.")
    parser.add_argument(
        "--selected-date", type=str, help="Date (YYYY-MM-DD) of the selected time. Defaults to the start date."
    )
    parser.add_argument(
        "--segments",
        choices=[m.value for m in SegmentMode],
        default=SegmentMode.OPENING_HOURS.value,
        help="Group slots by opening-hours block or by Midi/Soir.",
    )
    parser.add_argument(
        "--continuity",
        choices=[p.value for p in ContinuityPolicy],
        default=ContinuityPolicy.UNLESS_AUTHORITATIVE.value,
        help="When to keep the selected time if it is no longer computed.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    return parser.parse_args(argv)


def main():
    args = parse_arguments()
    setup_logging(args.verbose)
    run.run(
        establishment_id=args.establishment_id,
        establishment_file=args.establishment_file,
        legacy_file=args.legacy_file,
        start_date=args.start_date,
        days=args.days,
        program_id=args.program_id,
        selected_time=args.selected_time,
        selected_date=args.selected_date,
        mode=SegmentMode(args.segments),
        policy=ContinuityPolicy(args.continuity),
    )
