"""Top-level convenience functions for PolyWeather.

Evaluate a weather field at a point or over a drawn polygon without
setting up a ``Dashboard``. Point functions accept either ``(lat, lon)``
coordinates or a ``Location`` object.

Example:
    >>> import polyweather as pw
    >>> result = pw.evaluate(52.23, 21.01, source="temperature")
    >>> print(result.value, result.color)
    >>>
    >>> loc = pw.location(52.23, 21.01)
    >>> rain = pw.evaluate(loc, source="precipitation")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, overload

from polyweather._pipeline import evaluate_point
from polyweather.config import get_default_config
from polyweather.exceptions import ConfigurationError
from polyweather.location import Location, polygon_centroid
from polyweather.location import location as create_location
from polyweather.providers import get_provider
from polyweather.sources import DataSource, default_sources
from polyweather.timeline import Timeline, resolve

if TYPE_CHECKING:
    from polyweather._types import TimeRange
    from polyweather.config import Config
    from polyweather.results import Evaluation


def _resolve_location(loc_or_lat: Location | float, lon: float | None = None) -> Location:
    """Resolve input to a Location object.

    Raises:
        TypeError: If loc_or_lat is a float but lon is not provided.
    """
    if isinstance(loc_or_lat, Location):
        return loc_or_lat
    if lon is None:
        raise TypeError(
            "longitude is required when first argument is latitude. "
            "Use: evaluate(lat, lon) or evaluate(location)"
        )
    return create_location(loc_or_lat, lon)


def _resolve_source(source: DataSource | str) -> DataSource:
    """Look up a stock source by id or field key."""
    if isinstance(source, DataSource):
        return source
    for candidate in default_sources():
        if source in (candidate.id, candidate.field):
            return candidate
    known = ", ".join(s.id for s in default_sources())
    raise ConfigurationError(
        what=f"Unknown data source: {source!r}",
        cause=f"No stock data source has id or field {source!r}",
        fix=f"Use one of: {known}, or pass a DataSource",
    )


def _run(
    lat: float,
    lon: float,
    source: DataSource | str,
    time_range: TimeRange | None,
    provider: str,
    config: Config | None,
) -> Evaluation:
    cfg = config if config is not None else get_default_config()
    selection = time_range or Timeline.from_config(cfg).default_selection()
    return evaluate_point(
        get_provider(provider, cfg),
        lat,
        lon,
        _resolve_source(source),
        resolve(selection),
        cfg,
    )


@overload
def evaluate(
    loc_or_lat: Location,
    lon: None = None,
    *,
    source: DataSource | str = ...,
    time_range: TimeRange | None = None,
    provider: str = ...,
    config: Config | None = None,
) -> Evaluation: ...


@overload
def evaluate(
    loc_or_lat: float,
    lon: float,
    *,
    source: DataSource | str = ...,
    time_range: TimeRange | None = None,
    provider: str = ...,
    config: Config | None = None,
) -> Evaluation: ...


def evaluate(
    loc_or_lat: Location | float,
    lon: float | None = None,
    *,
    source: DataSource | str = "temperature",
    time_range: TimeRange | None = None,
    provider: str = "open-meteo",
    config: Config | None = None,
) -> Evaluation:
    """Fetch, reduce and classify one weather field at a point.

    Args:
        loc_or_lat: A Location object, or latitude in WGS84 degrees.
        lon: Longitude in WGS84 degrees (required if first arg is latitude).
        source: A ``DataSource``, or the id or field of a stock source.
        time_range: Selection to evaluate; the timeline's default
            selection when omitted.
        provider: Registered provider name.
        config: Optional configuration override.

    Returns:
        Evaluation with value, color and any condition that occurred.

    Raises:
        ConfigurationError: If the source or provider is unknown.

    Example:
        >>> import polyweather as pw
        >>> result = pw.evaluate(52.23, 21.01, source="wind")
        >>> if not result.ok:
        ...     print(result.message)
    """
    loc = _resolve_location(loc_or_lat, lon)
    return _run(loc.lat, loc.lon, source, time_range, provider, config)


def evaluate_polygon(
    geometry: Any,
    *,
    source: DataSource | str = "temperature",
    time_range: TimeRange | None = None,
    provider: str = "open-meteo",
    config: Config | None = None,
) -> Evaluation:
    """Evaluate a weather field at the centroid of a polygon.

    Args:
        geometry: GeoJSON Feature or Polygon, or a raw ``[[ [lon, lat], ... ]]``
            coordinate list.
        source: A ``DataSource``, or the id or field of a stock source.
        time_range: Selection to evaluate; the default selection when omitted.
        provider: Registered provider name.
        config: Optional configuration override.

    Raises:
        GeometryError: If the geometry has no usable outer ring.
        ConfigurationError: If the source or provider is unknown.
    """
    lat, lon = polygon_centroid(geometry)
    return _run(lat, lon, source, time_range, provider, config)
