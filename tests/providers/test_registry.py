"""Tests for the provider registry get_provider() function."""

from __future__ import annotations

import pytest

from polyweather.config import Config
from polyweather.exceptions import ConfigurationError
from polyweather.providers import get_provider, get_registered_names
from polyweather.providers.base import WeatherProvider
from polyweather.providers.openmeteo import OpenMeteoForecastProvider, OpenMeteoProvider


@pytest.fixture(autouse=True)
def _reset_registry(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset provider registry before each test."""
    import polyweather.providers as _prov

    monkeypatch.setattr(_prov, "_REGISTRY_INITIALIZED", False)
    monkeypatch.setattr(_prov, "_PROVIDER_REGISTRY", {})


@pytest.mark.unit
class TestRegistryReturns:
    """Verify get_provider() returns correct provider instances."""

    def test_archive(self) -> None:
        assert type(get_provider("open-meteo", Config())) is OpenMeteoProvider

    def test_forecast(self) -> None:
        provider = get_provider("open-meteo-forecast", Config())
        assert isinstance(provider, OpenMeteoForecastProvider)

    def test_returns_weather_provider_instance(self) -> None:
        assert isinstance(get_provider("open-meteo", Config()), WeatherProvider)

    def test_case_insensitive(self) -> None:
        assert get_provider("Open-Meteo", Config()).name == "open-meteo"

    def test_config_passed_through(self) -> None:
        cfg = Config(request_timeout=5)
        assert get_provider("open-meteo", cfg).config is cfg

    def test_registered_names(self) -> None:
        assert get_registered_names() == ["open-meteo", "open-meteo-forecast"]


@pytest.mark.unit
class TestRegistryErrors:
    def test_unknown_provider(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown provider") as exc_info:
            get_provider("meteoblue", Config())
        assert "open-meteo" in exc_info.value.fix
