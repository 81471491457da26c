"""Open-Meteo hourly weather data access."""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import TYPE_CHECKING, Any

import numpy as np
import requests

from polyweather._types import HourlySeries
from polyweather.config import Config
from polyweather.exceptions import MalformedResponseError, ProviderError
from polyweather.providers.base import ProviderStatus, WeatherProvider

if TYPE_CHECKING:
    from datetime import date

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Request constants
# ---------------------------------------------------------------------------

_STATUS_TIMEOUT = 10  # shorter timeout for status checks
_STATUS_FIELD = "temperature_2m"
_STATUS_DAY = "2024-01-01"  # archive requests must name a date range
_TIMEZONE = "GMT"  # hourly arrays start at 00:00 UTC of start_date

# ---------------------------------------------------------------------------
# Retry constants
# ---------------------------------------------------------------------------

_INITIAL_BACKOFF = 1.0  # seconds
_MAX_BACKOFF = 60.0  # seconds
_RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504, 408})
_SUCCESS_STATUS_CODES = frozenset({200})


class OpenMeteoProvider(WeatherProvider):
    """Open-Meteo historical archive provider.

    Public API, no authentication. Hourly values come back as one array
    per requested field covering every hour of the requested days.

    Args:
        config: Frozen configuration snapshot.

    Example:
        >>> provider = OpenMeteoProvider(config=Config())
        >>> provider.name
        'open-meteo'
    """

    _name: str = "open-meteo"

    def __init__(self, config: Config) -> None:
        super().__init__(config)
        self._local = threading.local()

    @property
    def _session(self) -> requests.Session:
        """HTTP session of the calling thread.

        Each thread gets its own session; recolor batches fetch from the
        ``asyncio.to_thread`` pool.
        """
        session: requests.Session | None = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            self._local.session = session
        return session

    @_session.setter
    def _session(self, session: requests.Session) -> None:
        self._local.session = session

    @property
    def url(self) -> str:
        """Endpoint queried by this provider."""
        return self._config.archive_url

    def fetch_hourly(
        self,
        lat: float,
        lon: float,
        field: str,
        start_date: date,
        end_date: date,
    ) -> HourlySeries:
        """Fetch hourly values of *field* at ``(lat, lon)``.

        Args:
            lat: Latitude in WGS84 degrees.
            lon: Longitude in WGS84 degrees.
            field: Open-Meteo hourly variable (e.g. ``"temperature_2m"``).
            start_date: First day (inclusive).
            end_date: Last day (inclusive).

        Returns:
            ``HourlySeries`` with ``None`` entries stored as ``NaN``.

        Raises:
            ProviderError: On non-200 responses after retries, network
                failures, or an ``{"error": true}`` payload.
            MalformedResponseError: If ``hourly.<field>`` is missing or not
                a numeric list.
        """
        params: dict[str, Any] = {
            "latitude": lat,
            "longitude": lon,
            "start_date": start_date.isoformat(),
            "end_date": end_date.isoformat(),
            "hourly": field,
            "timezone": _TIMEZONE,
        }

        logger.info(
            "Fetching %s for (%.4f, %.4f) from %s to %s...",
            field,
            lat,
            lon,
            params["start_date"],
            params["end_date"],
        )
        resp = self._retry_request("get", self.url, params=params)

        try:
            payload = resp.json()
        except ValueError as exc:
            raise MalformedResponseError(
                what="Open-Meteo response could not be parsed",
                cause="Invalid JSON response",
                fix="Try again; if persistent, check Open-Meteo API status",
            ) from exc

        return self._parse_series(payload, field)

    def _parse_series(self, payload: Any, field: str) -> HourlySeries:
        """Validate the payload shape and build the series.

        Args:
            payload: Decoded JSON body.
            field: Requested hourly variable.

        Returns:
            Parsed hourly series.
        """
        if not isinstance(payload, dict):
            raise MalformedResponseError(
                what="Open-Meteo response has an unexpected shape",
                cause=f"Expected a JSON object, got {type(payload).__name__}",
                fix="Check the API endpoint configured in Config.archive_url",
            )

        if payload.get("error"):
            raise ProviderError(
                what="Open-Meteo returned an error",
                cause=str(payload.get("reason") or "API returned an error"),
                fix="Check the requested field and date range",
            )

        hourly = payload.get("hourly")
        raw_values = hourly.get(field) if isinstance(hourly, dict) else None
        if not isinstance(raw_values, list):
            raise MalformedResponseError(
                what="Open-Meteo response has an unexpected shape",
                cause=f"Missing hourly array for field {field!r}",
                fix=f"Check that {field!r} is a valid Open-Meteo hourly variable",
            )

        try:
            values = np.array(
                [np.nan if v is None else v for v in raw_values],
                dtype=np.float64,
            )
        except (TypeError, ValueError) as exc:
            raise MalformedResponseError(
                what="Open-Meteo response has an unexpected shape",
                cause=f"Non-numeric values in hourly array for {field!r}",
                fix="Try again; if persistent, check Open-Meteo API status",
            ) from exc

        times = hourly.get("time") or []
        units = payload.get("hourly_units") or {}
        logger.debug("Parsed %d hourly values for %s", values.size, field)

        return HourlySeries(
            field=field,
            values=values,
            times=[str(t) for t in times],
            metadata={
                "provider": self._name,
                "unit": units.get(field, ""),
                "grid_lat": payload.get("latitude"),
                "grid_lon": payload.get("longitude"),
                "elevation": payload.get("elevation"),
            },
        )

    def _retry_request(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> requests.Response:
        """Execute HTTP request with retry and exponential backoff.

        Args:
            method: HTTP method (``"get"``, ``"post"``, etc.).
            url: Target URL.
            **kwargs: Additional keyword arguments for ``requests.Session.request``.

        Returns:
            Successful HTTP response.

        Raises:
            ProviderError: On a non-retryable status or when all retries are
                exhausted.
        """
        kwargs.setdefault("timeout", self._config.request_timeout)
        max_retries = self._config.max_retries
        last_status: int = 0
        last_exc: requests.RequestException | None = None

        for attempt in range(max_retries):
            try:
                resp = self._session.request(method, url, **kwargs)

                if resp.status_code in _SUCCESS_STATUS_CODES:
                    return resp

                last_status = resp.status_code

                if resp.status_code not in _RETRYABLE_STATUS_CODES:
                    raise ProviderError(
                        what="Open-Meteo request failed",
                        cause=f"HTTP {resp.status_code}{_error_reason(resp)}",
                        fix="Check the request parameters and Open-Meteo status",
                    )

                if attempt < max_retries - 1:
                    backoff = self._compute_backoff(attempt)
                    logger.warning(
                        "Open-Meteo request failed (HTTP %d, attempt %d/%d), "
                        "retrying in %.1fs...",
                        resp.status_code,
                        attempt + 1,
                        max_retries,
                        backoff,
                    )
                    time.sleep(backoff)

            except ProviderError:
                raise
            except requests.RequestException as exc:
                last_exc = exc
                if attempt < max_retries - 1:
                    backoff = self._compute_backoff(attempt)
                    logger.warning(
                        "Open-Meteo request failed (%s, attempt %d/%d), "
                        "retrying in %.1fs...",
                        type(exc).__name__,
                        attempt + 1,
                        max_retries,
                        backoff,
                    )
                    time.sleep(backoff)

        if last_exc is not None:
            raise ProviderError(
                what="Open-Meteo request failed after retries",
                cause=str(last_exc),
                fix="Check internet connection and try again",
            ) from last_exc

        raise ProviderError(
            what="Open-Meteo request failed after retries",
            cause=f"HTTP {last_status} after {max_retries} retries",
            fix="Weather API is currently unavailable, try again later",
        )

    @staticmethod
    def _compute_backoff(attempt: int) -> float:
        """Compute exponential backoff with jitter.

        Args:
            attempt: Zero-based attempt index.

        Returns:
            Wait time in seconds (randomized).
        """
        base_delay: float = min(_INITIAL_BACKOFF * (2**attempt), _MAX_BACKOFF)
        jitter: float = random.uniform(0, base_delay * 0.1)  # noqa: S311
        return float(base_delay + jitter)

    def check_status(self) -> ProviderStatus:
        """Check Open-Meteo API operational status.

        Never raises.
        """
        try:
            resp = self._session.get(
                self.url, params=self._status_params(), timeout=_STATUS_TIMEOUT
            )
            if resp.status_code in _SUCCESS_STATUS_CODES:
                return ProviderStatus(available=True)
            return ProviderStatus(
                available=False,
                message=f"Open-Meteo returned HTTP {resp.status_code}",
            )
        except requests.RequestException as exc:
            return ProviderStatus(
                available=False,
                message=f"Open-Meteo API unreachable: {exc}",
            )

    def _status_params(self) -> dict[str, Any]:
        return {
            "latitude": 0,
            "longitude": 0,
            "hourly": _STATUS_FIELD,
            "start_date": _STATUS_DAY,
            "end_date": _STATUS_DAY,
        }


class OpenMeteoForecastProvider(OpenMeteoProvider):
    """Open-Meteo forecast endpoint, covering recent and upcoming days.

    Same request and payload format as the archive. Select it with
    ``get_provider("open-meteo-forecast", config)`` for selections past
    the archive's latest day.
    """

    _name: str = "open-meteo-forecast"

    @property
    def url(self) -> str:
        return self._config.forecast_url

    def _status_params(self) -> dict[str, Any]:
        # without dates the forecast endpoint answers with the coming days
        return {"latitude": 0, "longitude": 0, "hourly": _STATUS_FIELD}


def _error_reason(resp: requests.Response) -> str:
    """Return ``": <reason>"`` from an Open-Meteo error body, if any."""
    try:
        body = resp.json()
    except ValueError:
        return ""
    if isinstance(body, dict) and body.get("reason"):
        return f": {body['reason']}"
    return ""
