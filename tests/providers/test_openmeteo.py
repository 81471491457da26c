"""Tests for the Open-Meteo providers."""

from __future__ import annotations

import logging
import threading
from datetime import date
from typing import Any
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import requests

from polyweather._types import HourlySeries
from polyweather.config import Config
from polyweather.exceptions import MalformedResponseError, ProviderError
from polyweather.providers.base import ProviderStatus, WeatherProvider
from polyweather.providers.openmeteo import (
    _INITIAL_BACKOFF,
    _MAX_BACKOFF,
    _RETRYABLE_STATUS_CODES,
    _SUCCESS_STATUS_CODES,
    OpenMeteoForecastProvider,
    OpenMeteoProvider,
)

START = date(2025, 8, 4)
END = date(2025, 8, 4)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def provider() -> OpenMeteoProvider:
    """Create an OpenMeteoProvider with a mocked HTTP session."""
    prov = OpenMeteoProvider(config=Config(max_retries=3))
    prov._session = MagicMock()
    return prov


def _response(status: int = 200, body: Any = None, json_error: bool = False) -> MagicMock:
    resp = MagicMock(spec=requests.Response)
    resp.status_code = status
    if json_error:
        resp.json.side_effect = ValueError("No JSON")
    else:
        resp.json.return_value = body
    return resp


def _payload(values: list[Any], field: str = "temperature_2m") -> dict[str, Any]:
    return {
        "latitude": 52.25,
        "longitude": 21.0,
        "elevation": 100.0,
        "hourly_units": {"time": "iso8601", field: "°C"},
        "hourly": {
            "time": [f"2025-08-04T{h:02d}:00" for h in range(len(values))],
            field: values,
        },
    }


def _fetch(provider: OpenMeteoProvider, field: str = "temperature_2m") -> HourlySeries:
    return provider.fetch_hourly(52.23, 21.01, field, START, END)


# ---------------------------------------------------------------------------
# Constants and init
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestOpenMeteoConstants:
    def test_retry_constants(self) -> None:
        assert _INITIAL_BACKOFF == 1.0
        assert _MAX_BACKOFF == 60.0
        assert _RETRYABLE_STATUS_CODES == {408, 429, 500, 502, 503, 504}
        assert _SUCCESS_STATUS_CODES == {200}


@pytest.mark.unit
class TestOpenMeteoInit:
    def test_is_weather_provider(self) -> None:
        assert isinstance(OpenMeteoProvider(Config()), WeatherProvider)

    def test_names_and_urls(self) -> None:
        cfg = Config()
        archive = OpenMeteoProvider(cfg)
        forecast = OpenMeteoForecastProvider(cfg)
        assert archive.name == "open-meteo"
        assert archive.url == cfg.archive_url
        assert forecast.name == "open-meteo-forecast"
        assert forecast.url == cfg.forecast_url

    def test_url_from_config(self) -> None:
        prov = OpenMeteoProvider(Config(archive_url="http://localhost:8080/v1/archive"))
        assert prov.url == "http://localhost:8080/v1/archive"

    def test_session_reused_within_a_thread(self) -> None:
        prov = OpenMeteoProvider(Config())
        assert isinstance(prov._session, requests.Session)
        assert prov._session is prov._session

    def test_each_thread_gets_its_own_session(self) -> None:
        prov = OpenMeteoProvider(Config())
        seen: list[requests.Session] = []
        worker = threading.Thread(target=lambda: seen.append(prov._session))
        worker.start()
        worker.join()
        assert len(seen) == 1
        assert seen[0] is not prov._session


# ---------------------------------------------------------------------------
# fetch_hourly
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestFetchHourly:
    def test_request_parameters(self, provider: OpenMeteoProvider) -> None:
        provider._session.request.return_value = _response(body=_payload([1.0]))
        _fetch(provider)

        method, url = provider._session.request.call_args.args
        kwargs = provider._session.request.call_args.kwargs
        assert method == "get"
        assert url == "https://archive-api.open-meteo.com/v1/archive"
        assert kwargs["params"] == {
            "latitude": 52.23,
            "longitude": 21.01,
            "start_date": "2025-08-04",
            "end_date": "2025-08-04",
            "hourly": "temperature_2m",
            "timezone": "GMT",
        }
        assert kwargs["timeout"] == 30.0

    def test_parses_series(self, provider: OpenMeteoProvider) -> None:
        provider._session.request.return_value = _response(
            body=_payload([12.5, None, 14.0])
        )
        series = _fetch(provider)

        assert series.field == "temperature_2m"
        assert len(series) == 3
        assert series.values[0] == 12.5
        assert np.isnan(series.values[1])
        assert series.times[2] == "2025-08-04T02:00"
        assert series.metadata["unit"] == "°C"
        assert series.metadata["grid_lat"] == 52.25
        assert series.metadata["provider"] == "open-meteo"

    def test_empty_array(self, provider: OpenMeteoProvider) -> None:
        provider._session.request.return_value = _response(body=_payload([]))
        assert len(_fetch(provider)) == 0

    def test_missing_field_is_malformed(self, provider: OpenMeteoProvider) -> None:
        body = _payload([1.0], field="precipitation")
        provider._session.request.return_value = _response(body=body)
        with pytest.raises(MalformedResponseError, match="temperature_2m"):
            _fetch(provider)

    def test_missing_hourly_is_malformed(self, provider: OpenMeteoProvider) -> None:
        provider._session.request.return_value = _response(body={"latitude": 1})
        with pytest.raises(MalformedResponseError):
            _fetch(provider)

    def test_non_list_field_is_malformed(self, provider: OpenMeteoProvider) -> None:
        body = {"hourly": {"temperature_2m": "n/a"}}
        provider._session.request.return_value = _response(body=body)
        with pytest.raises(MalformedResponseError):
            _fetch(provider)

    def test_non_numeric_values_are_malformed(self, provider: OpenMeteoProvider) -> None:
        provider._session.request.return_value = _response(body=_payload(["warm"]))
        with pytest.raises(MalformedResponseError, match="Non-numeric"):
            _fetch(provider)

    def test_non_object_body_is_malformed(self, provider: OpenMeteoProvider) -> None:
        provider._session.request.return_value = _response(body=[1, 2])
        with pytest.raises(MalformedResponseError, match="JSON object"):
            _fetch(provider)

    def test_invalid_json_is_malformed(self, provider: OpenMeteoProvider) -> None:
        provider._session.request.return_value = _response(json_error=True)
        with pytest.raises(MalformedResponseError, match="Invalid JSON"):
            _fetch(provider)

    def test_error_flag_is_fetch_failure(self, provider: OpenMeteoProvider) -> None:
        body = {"error": True, "reason": "Cannot initialize WeatherVariable"}
        provider._session.request.return_value = _response(body=body)
        with pytest.raises(ProviderError, match="Cannot initialize") as exc_info:
            _fetch(provider)
        assert not isinstance(exc_info.value, MalformedResponseError)


# ---------------------------------------------------------------------------
# Retry behavior
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestRetry:
    @patch("polyweather.providers.openmeteo.time.sleep")
    def test_retryable_then_success(
        self, mock_sleep: MagicMock, provider: OpenMeteoProvider
    ) -> None:
        provider._session.request.side_effect = [
            _response(503),
            _response(body=_payload([1.0])),
        ]
        assert len(_fetch(provider)) == 1
        assert provider._session.request.call_count == 2
        mock_sleep.assert_called_once()

    @patch("polyweather.providers.openmeteo.time.sleep")
    def test_retries_exhausted(
        self, mock_sleep: MagicMock, provider: OpenMeteoProvider
    ) -> None:
        provider._session.request.return_value = _response(503)
        with pytest.raises(ProviderError, match="HTTP 503 after 3 retries"):
            _fetch(provider)
        assert provider._session.request.call_count == 3
        assert mock_sleep.call_count == 2

    @patch("polyweather.providers.openmeteo.time.sleep")
    def test_non_retryable_status_fails_immediately(
        self, mock_sleep: MagicMock, provider: OpenMeteoProvider
    ) -> None:
        provider._session.request.return_value = _response(
            400, body={"error": True, "reason": "Parameter 'hourly' is invalid"}
        )
        with pytest.raises(ProviderError, match="HTTP 400: Parameter 'hourly'"):
            _fetch(provider)
        assert provider._session.request.call_count == 1
        mock_sleep.assert_not_called()

    @patch("polyweather.providers.openmeteo.time.sleep")
    def test_network_error_after_retries(
        self, mock_sleep: MagicMock, provider: OpenMeteoProvider
    ) -> None:
        provider._session.request.side_effect = requests.ConnectionError("refused")
        with pytest.raises(ProviderError, match="refused"):
            _fetch(provider)
        assert provider._session.request.call_count == 3

    @patch("polyweather.providers.openmeteo.time.sleep")
    def test_retry_logged(
        self,
        mock_sleep: MagicMock,
        provider: OpenMeteoProvider,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        provider._session.request.side_effect = [
            _response(429),
            _response(body=_payload([1.0])),
        ]
        with caplog.at_level(logging.WARNING, logger="polyweather.providers.openmeteo"):
            _fetch(provider)
        assert "HTTP 429, attempt 1/3" in caplog.text

    def test_backoff_bounds(self) -> None:
        for attempt in range(10):
            delay = OpenMeteoProvider._compute_backoff(attempt)
            base = min(_INITIAL_BACKOFF * 2**attempt, _MAX_BACKOFF)
            assert base <= delay <= base * 1.1


# ---------------------------------------------------------------------------
# check_status
# ---------------------------------------------------------------------------


@pytest.mark.unit
class TestCheckStatus:
    def test_available(self, provider: OpenMeteoProvider) -> None:
        provider._session.get.return_value = _response(200, body={})
        assert provider.check_status() == ProviderStatus(available=True)

    def test_http_error(self, provider: OpenMeteoProvider) -> None:
        provider._session.get.return_value = _response(502)
        status = provider.check_status()
        assert not status.available
        assert "502" in status.message

    def test_never_raises(self, provider: OpenMeteoProvider) -> None:
        provider._session.get.side_effect = requests.Timeout("slow")
        status = provider.check_status()
        assert not status.available
        assert "unreachable" in status.message

    def test_archive_request_names_a_day(self, provider: OpenMeteoProvider) -> None:
        provider._session.get.return_value = _response(200, body={})
        provider.check_status()
        url = provider._session.get.call_args.args[0]
        params = provider._session.get.call_args.kwargs["params"]
        assert url == provider.url
        assert params["hourly"] == "temperature_2m"
        assert params["start_date"] == params["end_date"]
        assert date.fromisoformat(params["start_date"]) < START

    def test_forecast_request_without_dates(self) -> None:
        prov = OpenMeteoForecastProvider(Config())
        prov._session = MagicMock()
        prov._session.get.return_value = _response(200, body={})
        assert prov.check_status().available
        params = prov._session.get.call_args.kwargs["params"]
        assert "start_date" not in params
        assert "end_date" not in params


@pytest.mark.integration
def test_live_archive_fetch() -> None:
    """Fetch one real day from the Open-Meteo archive."""
    series = OpenMeteoProvider(Config()).fetch_hourly(
        52.23, 21.01, "temperature_2m", START, END
    )
    assert len(series) == 24
