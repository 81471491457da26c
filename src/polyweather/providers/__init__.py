"""Provider registry for weather data access.

Provides ``get_provider()`` to instantiate configured provider
instances by name. Supports the Open-Meteo archive and forecast APIs.
"""

from __future__ import annotations

from polyweather.config import Config
from polyweather.exceptions import ConfigurationError
from polyweather.providers.base import WeatherProvider

_PROVIDER_REGISTRY: dict[str, type[WeatherProvider]] = {}
_REGISTRY_INITIALIZED = False


def _init_registry() -> None:
    """Populate the provider registry on first use (lazy import)."""
    global _REGISTRY_INITIALIZED  # noqa: PLW0603
    if _REGISTRY_INITIALIZED:
        return

    from polyweather.providers.openmeteo import (
        OpenMeteoForecastProvider,
        OpenMeteoProvider,
    )

    _PROVIDER_REGISTRY.update(
        {
            "open-meteo": OpenMeteoProvider,
            "open-meteo-forecast": OpenMeteoForecastProvider,
        }
    )
    _REGISTRY_INITIALIZED = True


def get_registered_names() -> list[str]:
    """Return sorted list of registered provider names."""
    _init_registry()
    return sorted(_PROVIDER_REGISTRY)


def get_provider(name: str, config: Config) -> WeatherProvider:
    """Return a configured provider instance by name.

    Provider names are case-insensitive.

    Args:
        name: Provider identifier (``"open-meteo"`` or
            ``"open-meteo-forecast"``).
        config: Frozen configuration snapshot.

    Returns:
        A configured ``WeatherProvider`` instance.

    Raises:
        ConfigurationError: If *name* does not match a registered provider.

    Example:
        >>> provider = get_provider("open-meteo", Config())
        >>> provider.name
        'open-meteo'
    """
    _init_registry()
    key = name.lower()
    if key not in _PROVIDER_REGISTRY:
        valid = ", ".join(sorted(_PROVIDER_REGISTRY))
        raise ConfigurationError(
            what=f"Unknown provider: {name!r}",
            cause=f"Valid providers are: {valid}",
            fix=f"Use one of: {valid}",
        )
    return _PROVIDER_REGISTRY[key](config=config)
