"""Shared test fixtures for the polyweather test suite."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import date
from pathlib import Path
from typing import Any

import numpy as np
import pytest

from polyweather._types import HourlySeries
from polyweather.config import Config
from polyweather.drawing import GeoJSONMapLayer
from polyweather.providers.base import ProviderStatus, WeatherProvider


class FakeProvider(WeatherProvider):
    """In-memory provider recording calls.

    ``values`` is a list returned for every call, a ``{field: list}``
    mapping, or a callable ``(lat, lon, field) -> list`` that may raise.
    A ``threading.Event`` in ``gates[field]`` holds fetches of that field
    until it is set.
    """

    _name = "fake"

    def __init__(self, values: Any = None, config: Config | None = None) -> None:
        super().__init__(config or Config())
        self.values = values if values is not None else []
        self.calls: list[tuple[Any, ...]] = []
        self.gates: dict[str, threading.Event] = {}
        self._lock = threading.Lock()

    def fetch_hourly(
        self, lat: float, lon: float, field: str, start_date: date, end_date: date
    ) -> HourlySeries:
        with self._lock:
            self.calls.append((lat, lon, field, start_date, end_date))
        gate = self.gates.get(field)
        if gate is not None:
            gate.wait(timeout=5)

        if callable(self.values):
            raw = self.values(lat, lon, field)
        elif isinstance(self.values, dict):
            raw = self.values.get(field, [])
        else:
            raw = self.values
        return HourlySeries(
            field=field,
            values=np.array([np.nan if v is None else v for v in raw], dtype=np.float64),
        )

    def check_status(self) -> ProviderStatus:
        return ProviderStatus(available=True)


def day(value: float | None) -> list[float | None]:
    """24 identical hourly values."""
    return [value] * 24


def square(lon: float = 21.0, lat: float = 52.0, size: float = 0.1) -> dict[str, Any]:
    """Closed GeoJSON square polygon with its south-west corner at (lon, lat)."""
    return {
        "type": "Polygon",
        "coordinates": [
            [
                [lon, lat],
                [lon + size, lat],
                [lon + size, lat + size],
                [lon, lat + size],
                [lon, lat],
            ]
        ],
    }


@pytest.fixture
def test_config(tmp_path: Path) -> Config:
    """Return a fresh Config with state kept in a temporary directory."""
    return Config(state_dir=tmp_path)


@pytest.fixture
def make_provider(test_config: Config) -> Callable[..., FakeProvider]:
    """Factory for ``FakeProvider`` instances."""

    def _make(values: Any = None) -> FakeProvider:
        return FakeProvider(values, config=test_config)

    return _make


@pytest.fixture
def layer() -> GeoJSONMapLayer:
    return GeoJSONMapLayer()


@pytest.fixture
def make_square() -> Callable[..., dict[str, Any]]:
    return square


@pytest.fixture
def hours() -> Callable[[float | None], list[float | None]]:
    return day
