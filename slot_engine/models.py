import logging
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator, model_validator

from slot_engine.hours import canonical_day, normalize_hour

logger = logging.getLogger(__name__)


HOUR_ALIASES: Dict[str, Tuple[str, ...]] = {
    "morning_open": ("morning_open", "morningOpen", "HeureOuvertureMatin", "heureOuvertureMatin"),
    "morning_close": ("morning_close", "morningClose", "HeureFermetureMatin", "heureFermetureMatin"),
    "evening_open": ("evening_open", "eveningOpen", "HeureOuvertureMidi", "heureOuvertureMidi"),
    "evening_close": ("evening_close", "eveningClose", "HeureFermetureMidi", "heureFermetureMidi"),
}


def _hour_field(name: str):
    return Field(default=None, validation_alias=AliasChoices(*HOUR_ALIASES[name]))


def _as_optional_str(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


class OpeningHourRow(BaseModel):
    day: str = ""
    morning_open: str | None = _hour_field("morning_open")
    morning_close: str | None = _hour_field("morning_close")
    evening_open: str | None = _hour_field("evening_open")
    evening_close: str | None = _hour_field("evening_close")

    @model_validator(mode="before")
    @classmethod
    def _first_non_null_alias(cls, data: Any) -> Any:
        # A null under one spelling must not hide a value under another.
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        for name, aliases in HOUR_ALIASES.items():
            value = next((data[key] for key in aliases if data.get(key) is not None), None)
            if value is not None:
                data[name] = value
        return data

    @field_validator("day", mode="before")
    @classmethod
    def _canonical_day(cls, value: Any) -> str:
        return canonical_day(value)

    @field_validator("morning_open", "morning_close", "evening_open", "evening_close", mode="before")
    @classmethod
    def _normalize_hour(cls, value: Any) -> str | None:
        return normalize_hour(value)


class SlotRecord(BaseModel):
    time: str | None = None
    reserved_by: str | None = Field(default=None, validation_alias=AliasChoices("reserved_by", "reservedBy"))

    @field_validator("time", mode="before")
    @classmethod
    def _normalize_time(cls, value: Any) -> str | None:
        return normalize_hour(value)

    @field_validator("reserved_by", mode="before")
    @classmethod
    def _reserved_by_as_str(cls, value: Any) -> str | None:
        return _as_optional_str(value)


LegacySlotTable = Dict[str, List[SlotRecord]]


class AvailabilityQueryResult(BaseModel):
    slots: List[str] = Field(default_factory=list)
    prestation_id: str | None = Field(default=None, validation_alias=AliasChoices("prestation_id", "prestationId"))
    etablissement_id: int | None = Field(
        default=None, validation_alias=AliasChoices("etablissement_id", "etablissementId")
    )
    date: str | None = None  # ISO format YYYY-MM-DD
    duration_minutes: int | None = Field(
        default=None, validation_alias=AliasChoices("duration_minutes", "durationMinutes")
    )
    step_minutes: int | None = Field(default=None, validation_alias=AliasChoices("step_minutes", "stepMinutes"))
    buffer_before: int | None = Field(default=None, validation_alias=AliasChoices("buffer_before", "bufferBefore"))
    buffer_after: int | None = Field(default=None, validation_alias=AliasChoices("buffer_after", "bufferAfter"))

    @field_validator("slots", mode="before")
    @classmethod
    def _normalize_slots(cls, value: Any) -> List[str]:
        if not isinstance(value, (list, tuple)):
            return []
        normalized = [normalize_hour(s) for s in value]
        return [s for s in normalized if s]

    @field_validator("prestation_id", mode="before")
    @classmethod
    def _prestation_id_as_str(cls, value: Any) -> str | None:
        return _as_optional_str(value)


class BookingDraft(BaseModel):
    date: str = Field(validation_alias=AliasChoices("date", "dateISO"))  # ISO format YYYY-MM-DD
    selected_time: str = Field(default="", validation_alias=AliasChoices("selected_time", "selectedTime"))
    program_id: str | None = Field(default=None, validation_alias=AliasChoices("program_id", "programId"))
    party_size: int | None = Field(default=None, ge=1, le=20, validation_alias=AliasChoices("party_size", "partySize"))

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        return date.fromisoformat(value).isoformat()

    @field_validator("selected_time", mode="before")
    @classmethod
    def _normalize_selected_time(cls, value: Any) -> str:
        return normalize_hour(value) or ""

    @field_validator("program_id", mode="before")
    @classmethod
    def _program_id_as_str(cls, value: Any) -> str | None:
        return _as_optional_str(value)


class Establishment(BaseModel):
    id: int | None = None
    name: str = Field(default="", validation_alias=AliasChoices("name", "nom"))
    business_type: str = Field(default="", validation_alias=AliasChoices("business_type", "businessType"))
    opening_hours: List[OpeningHourRow] = Field(
        default_factory=list, validation_alias=AliasChoices("opening_hours", "openingHours")
    )

    @field_validator("name", mode="before")
    @classmethod
    def _name_or_empty(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("business_type", mode="before")
    @classmethod
    def _upper_business_type(cls, value: Any) -> str:
        return str(value).strip().upper() if value else ""

    @field_validator("opening_hours", mode="before")
    @classmethod
    def _tolerant_rows(cls, value: Any) -> List[OpeningHourRow]:
        return parse_opening_hours(value)


# --- Engine types ---


class ScheduleKind(str, Enum):
    SPLIT = "split"
    CONTINUOUS = "continuous"
    SINGLE = "single"
    FALLBACK = "fallback"
    DEFAULT = "default"
    CLOSED = "closed"


class SlotSource(str, Enum):
    SERVER = "server"
    OPENING_HOURS = "opening_hours"
    LEGACY = "legacy"
    NONE = "none"


class SegmentMode(str, Enum):
    OPENING_HOURS = "hours"
    TIME_OF_DAY = "time-of-day"


class ContinuityPolicy(str, Enum):
    UNLESS_AUTHORITATIVE = "unless-authoritative"
    ALWAYS = "always"
    NEVER = "never"


class TimeBlock(BaseModel):
    start: str
    end: str
    label: str | None = None


class DaySchedule(BaseModel):
    date: str
    kind: ScheduleKind
    blocks: List[TimeBlock]
    candidates: List[str]


class SlotChoice(BaseModel):
    time: str
    selectable: bool = True


class Segment(BaseModel):
    label: str | None = None
    slots: List[str]


class DayAvailability(BaseModel):
    date: str
    source: SlotSource
    slots: List[str]
    segments: List[Segment]
    choices: List[SlotChoice]


# --- Input adapters ---


def parse_opening_hours(raw_rows: Any) -> List[OpeningHourRow]:
    """Validates raw opening-hour rows, skipping the ones that cannot be read."""
    if not raw_rows:
        return []
    if not isinstance(raw_rows, (list, tuple)):
        logger.warning(f"Opening hours should be a list, got {type(raw_rows).__name__}. Ignoring.")
        return []

    rows = []
    for raw in raw_rows:
        if isinstance(raw, OpeningHourRow):
            rows.append(raw)
            continue
        try:
            rows.append(OpeningHourRow.model_validate(raw))
        except ValidationError as e:
            logger.warning(f"Skipping unreadable opening-hours row {raw!r}: {e}")
    return rows


def parse_legacy_table(raw_table: Any) -> LegacySlotTable:
    """Validates a ``{date: [{time, reservedBy}]}`` table, skipping unreadable entries."""
    if not isinstance(raw_table, dict):
        return {}

    table: LegacySlotTable = {}
    for date_str, entries in raw_table.items():
        if not isinstance(entries, (list, tuple)):
            logger.warning(f"Legacy slots for {date_str} should be a list. Ignoring.")
            continue
        records = []
        for entry in entries:
            if isinstance(entry, SlotRecord):
                records.append(entry)
                continue
            try:
                records.append(SlotRecord.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable legacy slot {entry!r} for {date_str}: {e}")
        table[str(date_str)] = records
    return table
