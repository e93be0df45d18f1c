import pytest

from slot_engine import generator
from slot_engine.models import OpeningHourRow, ScheduleKind

MONDAY = "2025-06-09"


def test_generate_slots_half_open_range():
    slots = generator.generate_slots("09:00", "10:00", 15)
    assert slots == ["09:00", "09:15", "09:30", "09:45"]


def test_generate_slots_is_repeatable():
    assert generator.generate_slots("11:10", "14:00", 20) == generator.generate_slots("11:10", "14:00", 20)


def test_generate_slots_step_property():
    slots = generator.generate_slots("08:05", "19:40", 25)
    for a, b in zip(slots, slots[1:]):
        assert b == generator.add_minutes(a, 25)


def test_generate_slots_never_crosses_midnight():
    assert generator.generate_slots("22:00", "02:00", 15) == []
    assert generator.generate_slots("12:00", "12:00", 15) == []

    slots = generator.generate_slots("23:00", "23:59", 15)
    assert slots == ["23:00", "23:15", "23:30", "23:45"]
    for slot in slots:
        hours, minutes = slot.split(":")
        assert 0 <= int(hours) <= 23
        assert 0 <= int(minutes) <= 59


def test_generate_slots_unreadable_boundary():
    assert generator.generate_slots(None, "12:00", 15) == []
    assert generator.generate_slots("09:00", "garbage", 15) == []


def test_generate_slots_rejects_non_positive_step():
    with pytest.raises(ValueError):
        generator.generate_slots("09:00", "10:00", 0)


def test_add_minutes_wraps_for_display():
    assert generator.add_minutes("23:45", 30) == "00:15"
    assert generator.add_minutes("09:50", 15) == "10:05"


def test_assemble_blocks_continuous():
    row = OpeningHourRow(day="MONDAY", morning_open="09:00", evening_close="23:00")
    kind, blocks = generator.assemble_blocks(row)
    assert kind == ScheduleKind.CONTINUOUS
    assert [(b.start, b.end) for b in blocks] == [("09:00", "23:00")]


def test_assemble_blocks_split_day():
    row = OpeningHourRow(
        day="MONDAY", morning_open="09:00", morning_close="12:00", evening_open="14:00", evening_close="18:00"
    )
    kind, blocks = generator.assemble_blocks(row)
    assert kind == ScheduleKind.SPLIT
    assert [(b.start, b.end, b.label) for b in blocks] == [
        ("09:00", "12:00", "Morning"),
        ("14:00", "18:00", "Afternoon"),
    ]


def test_assemble_blocks_single_pair():
    row = OpeningHourRow(day="MONDAY", evening_open="19:00", evening_close="22:00")
    kind, blocks = generator.assemble_blocks(row)
    assert kind == ScheduleKind.SINGLE
    assert [(b.start, b.end) for b in blocks] == [("19:00", "22:00")]


def test_assemble_blocks_mismatched_pair_fallback():
    row = OpeningHourRow(day="MONDAY", evening_open="10:00", morning_close="16:00")
    kind, blocks = generator.assemble_blocks(row)
    assert kind == ScheduleKind.FALLBACK
    assert [(b.start, b.end) for b in blocks] == [("10:00", "16:00")]


def test_assemble_blocks_default_for_restaurants():
    kind, blocks = generator.assemble_blocks(None, "RESTAURANT")
    assert kind == ScheduleKind.DEFAULT
    assert [(b.start, b.end) for b in blocks] == [("09:00", "23:00")]

    incomplete = OpeningHourRow(day="MONDAY", morning_open="09:00")
    kind, _ = generator.assemble_blocks(incomplete, "restaurant")
    assert kind == ScheduleKind.DEFAULT


def test_assemble_blocks_closed_for_other_types():
    kind, blocks = generator.assemble_blocks(None, "SPA")
    assert kind == ScheduleKind.CLOSED
    assert blocks == []


def test_build_day_schedule_split_day():
    rows = [
        {
            "day": "MONDAY",
            "morningOpen": "09:00",
            "morningClose": "12:00",
            "eveningOpen": "14:00",
            "eveningClose": "18:00",
        }
    ]
    schedule = generator.build_day_schedule(rows, MONDAY, "SPA", 15)
    assert schedule.kind == ScheduleKind.SPLIT
    assert len(schedule.candidates) == 28
    assert schedule.candidates[0] == "09:00"
    assert schedule.candidates[11] == "11:45"
    assert schedule.candidates[12] == "14:00"
    assert schedule.candidates[-1] == "17:45"


def test_build_day_schedule_french_backend_keys():
    rows = [{"day": {"name": "monday"}, "HeureOuvertureMatin": "10:00:00", "HeureFermetureMatin": {"hour": 11, "minute": 0}}]
    schedule = generator.build_day_schedule(rows, MONDAY, None, 30)
    assert schedule.candidates == ["10:00", "10:30"]


def test_build_day_schedule_dedupes_overlapping_blocks():
    rows = [
        {
            "day": "MONDAY",
            "morningOpen": "09:00",
            "morningClose": "10:00",
            "eveningOpen": "09:30",
            "eveningClose": "10:30",
        }
    ]
    schedule = generator.build_day_schedule(rows, MONDAY, None, 15)
    assert schedule.candidates == ["09:00", "09:15", "09:30", "09:45", "10:00", "10:15"]
