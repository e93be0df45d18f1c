from unittest.mock import MagicMock, patch

import pytest
import requests

from slot_engine import client


@pytest.fixture
def mock_response():
    mock = MagicMock()
    mock.status_code = 200
    mock.raise_for_status.return_value = None
    mock.json.return_value = {"slots": []}
    return mock


def test_build_availability_url():
    url = client.build_availability_url(12)
    assert url.startswith(client.config.API_BASE_URL)
    assert url.endswith("/availability/prestations/12/slots")


def test_build_establishment_url():
    assert client.build_establishment_url(4).endswith("/etablissements/find/by/id/4")


@patch("slot_engine.client.config")
def test_build_headers_with_token(mock_config):
    mock_config.COMMON_HEADERS = {"Accept": "application/json"}
    mock_config.API_TOKEN = "secret"

    headers = client.build_headers()

    assert headers["Authorization"] == "Bearer secret"
    assert "Authorization" not in mock_config.COMMON_HEADERS


@patch("slot_engine.client.config")
def test_build_headers_without_token(mock_config):
    mock_config.COMMON_HEADERS = {"Accept": "application/json"}
    mock_config.API_TOKEN = None

    assert "Authorization" not in client.build_headers()


@patch("slot_engine.client.requests.get")
def test_fetch_prestation_availability_success(mock_get, mock_response):
    mock_response.json.return_value = {"prestationId": 12, "date": "2025-06-10", "slots": ["10:00", "10:15:00"]}
    mock_get.return_value = mock_response

    result = client.fetch_prestation_availability(3, 12, "2025-06-10")

    assert result.slots == ["10:00", "10:15"]
    assert result.prestation_id == "12"
    _, kwargs = mock_get.call_args
    assert kwargs["params"]["etablissementId"] == 3
    assert kwargs["params"]["date"] == "2025-06-10"
    assert kwargs["params"]["step"] == 15
    assert kwargs["timeout"] == client.config.HTTP_TIMEOUT


@patch("slot_engine.client.requests.get")
def test_fetch_prestation_availability_tags_bare_results(mock_get, mock_response):
    mock_response.json.return_value = {"slots": ["10:00"]}
    mock_get.return_value = mock_response

    result = client.fetch_prestation_availability(3, 12, "2025-06-10")

    assert result.date == "2025-06-10"
    assert result.prestation_id == "12"


@patch("slot_engine.client.requests.get")
def test_fetch_prestation_availability_failure(mock_get):
    mock_get.side_effect = requests.exceptions.ConnectionError("Network error")
    assert client.fetch_prestation_availability(3, 12, "2025-06-10") is None


@patch("slot_engine.client.requests.get")
def test_fetch_prestation_availability_http_error(mock_get, mock_response):
    mock_response.status_code = 500
    mock_response.raise_for_status.side_effect = requests.exceptions.HTTPError("500 Server Error")
    mock_get.return_value = mock_response

    assert client.fetch_prestation_availability(3, 12, "2025-06-10") is None


@patch("slot_engine.client.requests.get")
def test_fetch_prestation_availability_unexpected_format(mock_get, mock_response):
    mock_response.json.return_value = {"error": "nope"}
    mock_get.return_value = mock_response

    assert client.fetch_prestation_availability(3, 12, "2025-06-10") is None


@patch("slot_engine.client.requests.get")
def test_fetch_prestation_availability_invalid_json(mock_get, mock_response):
    mock_response.json.side_effect = ValueError("Expecting value")
    mock_get.return_value = mock_response

    assert client.fetch_prestation_availability(3, 12, "2025-06-10") is None


@patch("slot_engine.client.requests.get")
def test_fetch_establishment(mock_get, mock_response):
    mock_response.json.return_value = {
        "id": 4,
        "nom": "Spa Lumière",
        "businessType": "SPA",
        "openingHours": [{"day": "TUESDAY", "morningOpen": "10:00", "eveningClose": "19:00"}],
    }
    mock_get.return_value = mock_response

    establishment = client.fetch_establishment(4)

    assert establishment.id == 4
    assert establishment.business_type == "SPA"
    assert establishment.opening_hours[0].evening_close == "19:00"


@patch("slot_engine.client.requests.get")
def test_fetch_establishment_failure(mock_get):
    mock_get.side_effect = requests.exceptions.Timeout("timed out")
    assert client.fetch_establishment(4) is None
