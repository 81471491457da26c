"""PolyWeather: classify drawn map polygons by weather conditions.

Example:
    >>> import polyweather as pw
    >>>
    >>> # Quick evaluation at a point
    >>> result = pw.evaluate(52.23, 21.01, source="temperature")
    >>> print(result.value, result.color)
    >>>
    >>> # Or drive a dashboard of drawn polygons
    >>> board = pw.Dashboard()
"""

from polyweather.__about__ import __version__
from polyweather._types import (
    Condition,
    Operator,
    Threshold,
    TimeMode,
    TimeRange,
)
from polyweather.analysis import classify, order_thresholds, reduce_series
from polyweather.api import evaluate, evaluate_polygon
from polyweather.config import Config, configure
from polyweather.dashboard import Dashboard
from polyweather.drawing import GeoJSONMapLayer, MapLayer
from polyweather.exceptions import (
    ConfigurationError,
    GeometryError,
    MalformedResponseError,
    PolyWeatherError,
    ProviderError,
    RegistryError,
)
from polyweather.location import Location, location, polygon_centroid
from polyweather.polygons import PolygonData, PolygonRegistry
from polyweather.results import BatchResult, Evaluation, Notification
from polyweather.sources import DataSource, DataSourceRegistry
from polyweather.timeline import Timeline, resolve

__all__ = [
    # Version
    "__version__",
    # Semantic API (top-level functions)
    "evaluate",
    "evaluate_polygon",
    # Dashboard
    "Dashboard",
    "DataSource",
    "DataSourceRegistry",
    "GeoJSONMapLayer",
    "MapLayer",
    "PolygonData",
    "PolygonRegistry",
    # Time selection
    "TimeMode",
    "TimeRange",
    "Timeline",
    "resolve",
    # Classification
    "Condition",
    "Operator",
    "Threshold",
    "classify",
    "order_thresholds",
    "reduce_series",
    # Location
    "Location",
    "location",
    "polygon_centroid",
    # Configuration
    "Config",
    "configure",
    # Results
    "BatchResult",
    "Evaluation",
    "Notification",
    # Exceptions
    "ConfigurationError",
    "GeometryError",
    "MalformedResponseError",
    "PolyWeatherError",
    "ProviderError",
    "RegistryError",
]
