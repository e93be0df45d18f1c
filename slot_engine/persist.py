import json
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import ValidationError

from slot_engine import config
from slot_engine.models import Establishment, LegacySlotTable, parse_legacy_table

logger = logging.getLogger(__name__)


def ensure_data_dir():
    """Ensures the data directory exists."""
    if not os.path.exists(config.DATA_DIR):
        os.makedirs(config.DATA_DIR)


def _load_json(path: str) -> Optional[Dict]:
    if not os.path.exists(path):
        logger.warning(f"File not found: {path}")
        return None
    try:
        with open(path, "r") as f:
            data: Dict = json.load(f)
            return data
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to load {path}: {e}")
        return None


def load_establishment(path: str) -> Optional[Establishment]:
    """Loads an establishment payload (as returned by the API) from a JSON file."""
    data = _load_json(path)
    if data is None:
        return None
    try:
        establishment = Establishment.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Establishment file {path} has unexpected format: {e}")
        return None
    logger.info(f"Loaded establishment '{establishment.name}' with {len(establishment.opening_hours)} opening-hours rows")
    return establishment


def load_legacy_table(path: str) -> LegacySlotTable:
    """Loads a legacy ``{date: [{time, reservedBy}]}`` table from a JSON file."""
    data = _load_json(path)
    if not isinstance(data, dict):
        return {}
    table = parse_legacy_table(data)
    logger.info(f"Loaded legacy slots for {len(table)} dates from {path}")
    return table


def save_report(results: List):
    """Saves the availability report to a JSON file."""
    ensure_data_dir()
    try:
        serialized_results = [r.model_dump(mode="json") if hasattr(r, "model_dump") else r for r in results]
        data = {"last_updated": datetime.now(timezone.utc).isoformat(), "days": serialized_results}
        with open(config.REPORT_FILE, "w") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Saved report to {config.REPORT_FILE}")
    except IOError as e:
        logger.error(f"Failed to save report: {e}")
