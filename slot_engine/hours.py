import logging
import math
from datetime import time
from typing import Any, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

WEEKDAYS: Tuple[str, ...] = ("MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY")

HOUR_KEYS = ("hour", "H", "h")
MINUTE_KEYS = ("minute", "M", "m")


def _as_int(value: Any) -> Optional[int]:
    """Returns value as an int if it is an integral, finite number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return int(value)
    return None


def _parse_int(text: str) -> Optional[int]:
    try:
        return int(text)
    except ValueError:
        return None


def _format(hour: Optional[int], minute: Optional[int]) -> Optional[str]:
    if hour is None or minute is None:
        return None
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        return None
    return f"{hour:02d}:{minute:02d}"


def _first_present(value: Mapping, keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if value.get(key) is not None:
            return value[key]
    return None


def normalize_hour(value: Any) -> Optional[str]:
    """Converts an opening-hour value into a canonical ``HH:mm`` string.

    Accepts ``"9:5"``, ``"09:05:00"``, ``{"hour": 9, "minute": 5}`` (or the
    ``H``/``h`` and ``M``/``m`` keys) and ``datetime.time``. Anything else,
    including out-of-range values, returns None. Never raises.
    """
    if value is None:
        return None

    if isinstance(value, str):
        parts = value[:5].split(":")
        if len(parts) < 2:
            return None
        return _format(_parse_int(parts[0]), _parse_int(parts[1]))

    if isinstance(value, time):
        return _format(value.hour, value.minute)

    if isinstance(value, Mapping):
        hour = _as_int(_first_present(value, HOUR_KEYS))
        minute = _as_int(_first_present(value, MINUTE_KEYS))
        return _format(hour, minute)

    logger.debug(f"Unsupported hour value {value!r}, treating as absent")
    return None


def canonical_day(value: Any) -> str:
    """Uppercases a weekday given as a string, a ``{name}`` mapping or an object with ``name``."""
    if not value:
        return ""
    if isinstance(value, str):
        return value.strip().upper()
    if isinstance(value, Mapping):
        name = value.get("name", value)
        return str(name).strip().upper()
    name = getattr(value, "name", None)
    if isinstance(name, str):
        return name.strip().upper()
    return str(value).strip().upper()
