import logging
import os
from typing import Dict, FrozenSet

logger = logging.getLogger(__name__)

# --- File Paths ---
DATA_DIR = "public/data"
REPORT_FILE = os.path.join(DATA_DIR, "report.json")

# --- URLs & API ---
API_BASE_URL = os.environ.get("RESERVATION_API_BASE_URL", "http://localhost:8080/api/reza").rstrip("/")
API_TOKEN = os.environ.get("RESERVATION_API_TOKEN")
HTTP_TIMEOUT = 15

COMMON_HEADERS: Dict[str, str] = {
    "User-Agent": os.environ.get("RESERVATION_USER_AGENT", "slot-engine/0.1"),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": os.environ.get("RESERVATION_ACCEPT_LANGUAGE", "fr-FR,fr;q=0.9,en;q=0.8"),
}

# --- Slot engine ---
STEP_MINUTES = int(os.environ.get("SLOT_STEP_MINUTES", "15"))

# Restaurant-like establishments fall back to these hours when a day has none.
DEFAULT_OPEN = "09:00"
DEFAULT_CLOSE = "23:00"
RESTAURANT_BUSINESS_TYPES: FrozenSet[str] = frozenset({"RESTAURANT"})

# Midi / Soir boundary for time-of-day segments.
EVENING_START_HOUR = 18

MORNING_LABEL = "Morning"
AFTERNOON_LABEL = "Afternoon"
MIDI_LABEL = "Midi"
SOIR_LABEL = "Soir"

if not API_TOKEN:
    logger.debug("RESERVATION_API_TOKEN not set. API requests will be anonymous.")
