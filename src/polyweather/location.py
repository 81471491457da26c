"""Query locations and polygon representative points.

Weather is fetched for one point per polygon: the vertex mean of the
polygon's outer ring. Coordinates follow GeoJSON order
(``[lon, lat]``) on input and are returned as ``(lat, lon)``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import numpy as np

from polyweather.exceptions import ConfigurationError, GeometryError

logger = logging.getLogger(__name__)

_MIN_LAT = -90.0
_MAX_LAT = 90.0
_MIN_LON = -180.0
_MAX_LON = 180.0


def location(lat: float, lon: float) -> Location:
    """Create a validated WGS84 location.

    Args:
        lat: Latitude in WGS84 (valid range: -90 to 90).
        lon: Longitude in WGS84 (valid range: -180 to 180).

    Returns:
        A ``Location`` ready for weather queries.

    Raises:
        ConfigurationError: If coordinates are outside WGS84 bounds.

    Example:
        >>> location(22.5744, 88.3629)
        Location(lat=22.5744, lon=88.3629)
    """
    if not (_MIN_LAT <= lat <= _MAX_LAT):
        raise ConfigurationError(
            what=f"Invalid latitude: {lat}",
            cause=f"Latitude must be between {_MIN_LAT} and {_MAX_LAT}",
            fix="Provide a valid WGS84 latitude value",
        )
    if not (_MIN_LON <= lon <= _MAX_LON):
        raise ConfigurationError(
            what=f"Invalid longitude: {lon}",
            cause=f"Longitude must be between {_MIN_LON} and {_MAX_LON}",
            fix="Provide a valid WGS84 longitude value",
        )
    return Location(lat=lat, lon=lon)


class Location:
    """A validated point used as the weather query location.

    Use the ``location()`` factory for coordinate validation.
    """

    __slots__ = ("_lat", "_lon")

    def __init__(self, lat: float, lon: float) -> None:
        self._lat = float(lat)
        self._lon = float(lon)

    @property
    def lat(self) -> float:
        """Latitude in WGS84 degrees."""
        return self._lat

    @property
    def lon(self) -> float:
        """Longitude in WGS84 degrees."""
        return self._lon

    def as_tuple(self) -> tuple[float, float]:
        """Return ``(lat, lon)``."""
        return (self._lat, self._lon)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Location):
            return NotImplemented
        return self._lat == other._lat and self._lon == other._lon

    def __hash__(self) -> int:
        return hash((self._lat, self._lon))

    def __repr__(self) -> str:
        return f"Location(lat={self._lat}, lon={self._lon})"


def _outer_ring(geometry: Any) -> Sequence[Sequence[float]]:
    """Extract the outer ring from a GeoJSON Feature, Polygon, or ring list."""
    if isinstance(geometry, Mapping):
        if geometry.get("type") == "Feature":
            geometry = geometry.get("geometry") or {}
        if geometry.get("type") != "Polygon":
            raise GeometryError(
                what="Cannot compute polygon centroid",
                cause=f"Unsupported geometry type: {geometry.get('type')!r}",
                fix="Pass a GeoJSON Polygon or a Feature wrapping one",
            )
        coordinates = geometry.get("coordinates") or []
    else:
        coordinates = geometry

    if not coordinates or not coordinates[0]:
        raise GeometryError(
            what="Cannot compute polygon centroid",
            cause="Polygon has no outer ring",
            fix="Draw at least three vertices before finishing the polygon",
        )
    return coordinates[0]


def polygon_centroid(geometry: Any) -> tuple[float, float]:
    """Return the representative ``(lat, lon)`` of a polygon.

    The point is the arithmetic mean of the outer ring's vertices. A
    closing vertex that repeats the first one is counted once.

    Args:
        geometry: GeoJSON Feature or Polygon mapping, or a raw
            ``[[ [lon, lat], ... ]]`` coordinate list.

    Returns:
        ``(lat, lon)`` of the vertex mean.

    Raises:
        GeometryError: If no outer ring can be found.

    Example:
        >>> polygon_centroid([[[0, 0], [2, 0], [2, 2], [0, 2], [0, 0]]])
        (1.0, 1.0)
    """
    try:
        ring = np.asarray(_outer_ring(geometry), dtype=np.float64)
    except (TypeError, ValueError) as exc:
        raise GeometryError(
            what="Cannot compute polygon centroid",
            cause=f"Outer ring is not numeric: {exc}",
            fix="Provide [lon, lat] positions for every vertex",
        ) from exc
    if ring.ndim != 2 or ring.shape[1] < 2:
        raise GeometryError(
            what="Cannot compute polygon centroid",
            cause=f"Outer ring has unexpected shape {ring.shape}",
            fix="Provide [lon, lat] positions for every vertex",
        )
    if len(ring) > 1 and np.array_equal(ring[0, :2], ring[-1, :2]):
        ring = ring[:-1]
    lon, lat = ring[:, :2].mean(axis=0)
    return (float(lat), float(lon))
