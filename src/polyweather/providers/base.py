"""Provider interface contract and shared types.

Defines the ``WeatherProvider`` abstract base class used by the
dashboard to fetch hourly observations for one point.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from polyweather.config import Config

if TYPE_CHECKING:
    from datetime import date

    from polyweather._types import HourlySeries


@dataclass
class ProviderStatus:
    """Operational status of a weather provider.

    Args:
        available: ``True`` if the provider is operational.
        message: Human-readable status message (empty when healthy).

    Example:
        >>> status = ProviderStatus(available=True)
        >>> status.message
        ''
    """

    available: bool = False
    message: str = ""


class WeatherProvider(ABC):
    """Abstract base class for hourly weather data providers.

    Subclasses set the ``_name`` class attribute to a unique provider
    identifier and implement ``fetch_hourly`` and ``check_status``.

    Args:
        config: Frozen configuration snapshot for this provider instance.
    """

    _name: str = ""

    def __init__(self, config: Config) -> None:
        self._config = config

    @property
    def name(self) -> str:
        """Provider identifier used in the registry."""
        return self._name

    @property
    def config(self) -> Config:
        return self._config

    @abstractmethod
    def fetch_hourly(
        self,
        lat: float,
        lon: float,
        field: str,
        start_date: date,
        end_date: date,
    ) -> HourlySeries:
        """Fetch hourly values of *field* for whole days.

        The returned series spans every hour from ``start_date`` 00:00 to
        ``end_date`` 23:00 UTC; missing observations are ``NaN``.

        Args:
            lat: Latitude in WGS84 degrees.
            lon: Longitude in WGS84 degrees.
            field: Provider field key (e.g. ``"temperature_2m"``).
            start_date: First day (inclusive).
            end_date: Last day (inclusive).

        Returns:
            The hourly series.

        Raises:
            ProviderError: On HTTP failure or an API-level error flag.
            MalformedResponseError: If the payload lacks the hourly array.
        """
        ...

    @abstractmethod
    def check_status(self) -> ProviderStatus:
        """Check provider operational status.

        Never raises; returns ``available=False`` with a message on failure.
        """
        ...
