"""Fetch, reduce and classify for a single query point.

Provider failures are recovered here: they become conditions on the
returned ``Evaluation`` and never escape as exceptions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from polyweather._types import Condition
from polyweather.analysis.series import reduce_series
from polyweather.analysis.thresholds import classify
from polyweather.exceptions import MalformedResponseError, ProviderError
from polyweather.results import Evaluation

if TYPE_CHECKING:
    from polyweather._types import QueryWindow
    from polyweather.config import Config
    from polyweather.providers.base import WeatherProvider
    from polyweather.sources import DataSource

logger = logging.getLogger(__name__)


def failed_evaluation(
    condition: Condition,
    config: Config,
    source: DataSource | None = None,
    window: QueryWindow | None = None,
    detail: str = "",
) -> Evaluation:
    """Build the ``None``/fallback evaluation for *condition*."""
    return Evaluation(
        value=None,
        color=config.fallback_color,
        condition=condition,
        source_id=source.id if source else "",
        field=source.field if source else "",
        window=window,
        detail=detail,
    )


def evaluate_point(
    provider: WeatherProvider,
    lat: float,
    lon: float,
    source: DataSource,
    window: QueryWindow,
    config: Config,
) -> Evaluation:
    """Fetch the source's field at ``(lat, lon)``, reduce it and classify it.

    Args:
        provider: Weather provider to query.
        lat: Latitude in WGS84 degrees.
        lon: Longitude in WGS84 degrees.
        source: Data source giving the field and the threshold rules.
        window: Resolved query window.
        config: Supplies the fallback color and equality tolerance.

    Returns:
        The evaluation; failures carry a condition, ``None`` and the
        fallback color.
    """
    try:
        series = provider.fetch_hourly(
            lat, lon, source.field, window.start_date, window.end_date
        )
    except MalformedResponseError as exc:
        logger.warning("Malformed weather response for %s: %s", source.field, exc.cause)
        return failed_evaluation(
            Condition.MALFORMED_RESPONSE, config, source, window, str(exc)
        )
    except ProviderError as exc:
        logger.warning("Weather fetch failed for %s: %s", source.field, exc.cause)
        return failed_evaluation(Condition.FETCH_FAILED, config, source, window, str(exc))

    reduction = reduce_series(series, window.extraction)
    if not reduction.ok:
        logger.info(
            "No usable %s value at (%.4f, %.4f): %s",
            source.field,
            lat,
            lon,
            reduction.condition.value,
        )

    color = classify(
        reduction.value,
        source.thresholds,
        fallback=config.fallback_color,
        tolerance=config.equality_tolerance,
    )
    return Evaluation(
        value=reduction.value,
        color=color,
        condition=reduction.condition,
        source_id=source.id,
        field=source.field,
        window=window,
    )


async def evaluate_point_async(
    provider: WeatherProvider,
    lat: float,
    lon: float,
    source: DataSource,
    window: QueryWindow,
    config: Config,
) -> Evaluation:
    """Run ``evaluate_point`` in a worker thread so the event loop stays free."""
    return await asyncio.to_thread(
        evaluate_point, provider, lat, lon, source, window, config
    )
