import logging
from typing import Dict, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError

from slot_engine import config
from slot_engine.models import AvailabilityQueryResult, Establishment

logger = logging.getLogger(__name__)


def build_headers() -> Dict[str, str]:
    """Returns the request headers, with a bearer token when one is configured."""
    headers = dict(config.COMMON_HEADERS)
    if config.API_TOKEN:
        headers["Authorization"] = f"Bearer {config.API_TOKEN}"
    return headers


def build_availability_url(prestation_id: int | str) -> str:
    url = f"{config.API_BASE_URL}/availability/prestations/{quote(str(prestation_id), safe='')}/slots"
    logger.debug(f"Built URL: {url}")
    return url


def build_establishment_url(etablissement_id: int) -> str:
    url = f"{config.API_BASE_URL}/etablissements/find/by/id/{etablissement_id}"
    logger.debug(f"Built URL: {url}")
    return url


def _get_json(url: str, params: Optional[Dict] = None) -> Optional[Dict]:
    try:
        response = requests.get(url, params=params, headers=build_headers(), timeout=config.HTTP_TIMEOUT)
        logger.debug(f"Response status: {response.status_code}")
        response.raise_for_status()
        data: Dict = response.json()
        return data
    except requests.exceptions.RequestException as e:
        logger.error(f"Error fetching {url}: {e}")
        return None
    except ValueError as e:
        logger.error(f"Invalid JSON from {url}: {e}")
        return None


def fetch_prestation_availability(
    etablissement_id: int,
    prestation_id: int | str,
    date_iso: str,
    step_minutes: int = config.STEP_MINUTES,
    buffer_before: int = 0,
    buffer_after: int = 0,
) -> Optional[AvailabilityQueryResult]:
    """Fetches the server-computed free start times for a prestation on a date.

    Returns None on any failure, so callers fall back to hour-derived slots.
    """
    params = {
        "etablissementId": etablissement_id,
        "date": date_iso,
        "step": step_minutes,
        "bufferBefore": buffer_before,
        "bufferAfter": buffer_after,
    }
    logger.info(f"Fetching availability for prestation {prestation_id} on {date_iso}")
    data = _get_json(build_availability_url(prestation_id), params=params)
    if data is None:
        return None

    if "slots" not in data:
        logger.error("Unexpected JSON format. 'slots' key missing.")
        logger.debug(f"Response data: {data}")
        return None

    try:
        result = AvailabilityQueryResult.model_validate(data)
    except ValidationError as e:
        logger.error(f"Unreadable availability response: {e}")
        return None

    # Older backends omit the context fields; tag the result with the request.
    if result.date is None:
        result.date = date_iso
    if result.prestation_id is None:
        result.prestation_id = str(prestation_id)
    return result


def fetch_establishment(etablissement_id: int) -> Optional[Establishment]:
    """Fetches an establishment with its opening hours."""
    logger.info(f"Fetching establishment {etablissement_id}")
    data = _get_json(build_establishment_url(etablissement_id))
    if data is None:
        return None

    try:
        return Establishment.model_validate(data)
    except ValidationError as e:
        logger.error(f"Unreadable establishment response: {e}")
        return None
