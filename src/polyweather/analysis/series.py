"""Hourly series reduction.

Pure computation module: no HTTP, no registries. Takes a raw hourly
series in, returns one scalar (or a condition) out.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import numpy as np
import numpy.typing as npt

from polyweather._types import (
    Condition,
    Extraction,
    HourlySeries,
    Mean,
    Reduction,
    SingleSample,
)

logger = logging.getLogger(__name__)


def _as_array(
    raw: HourlySeries | Sequence[float | None] | npt.NDArray[Any],
) -> npt.NDArray[np.float64]:
    """Convert *raw* to a float64 array with ``None`` mapped to ``NaN``."""
    if isinstance(raw, HourlySeries):
        return np.asarray(raw.values, dtype=np.float64)
    return np.array(
        [np.nan if v is None else v for v in raw],
        dtype=np.float64,
    )


def valid_mask(values: npt.NDArray[np.float64]) -> npt.NDArray[np.bool_]:
    """Return ``True`` where an entry is a real observation (not NaN)."""
    return ~np.isnan(values)


def reduce_series(
    raw: HourlySeries | Sequence[float | None] | npt.NDArray[Any],
    extraction: Extraction,
) -> Reduction:
    """Collapse an hourly series into a single representative value.

    Invalid entries (``None`` or ``NaN``) are excluded from both the
    numerator and the denominator of the mean. A ``SingleSample`` index
    past the end of the series is clamped to the last entry.

    Args:
        raw: Hourly values, as a sequence, array, or ``HourlySeries``.
        extraction: ``SingleSample(hour_index)`` or ``Mean()``.

    Returns:
        ``Reduction`` holding the value, or ``None`` plus ``EMPTY`` for a
        zero-length series and ``NO_VALID_DATA`` when nothing usable remains.

    Example:
        >>> reduce_series([None, None, 5.0, None], Mean()).value
        5.0
        >>> reduce_series([1, 2, 3, 4], SingleSample(10)).value
        4.0
    """
    values = _as_array(raw)

    if values.size == 0:
        logger.debug("Empty series, nothing to reduce")
        return Reduction(None, Condition.EMPTY)

    mask = valid_mask(values)

    if isinstance(extraction, SingleSample):
        index = min(max(extraction.hour_index, 0), values.size - 1)
        if index != extraction.hour_index:
            logger.debug(
                "Hour index %d clamped to %d (series length %d)",
                extraction.hour_index,
                index,
                values.size,
            )
        if not mask[index]:
            return Reduction(None, Condition.NO_VALID_DATA)
        return Reduction(float(values[index]))

    if isinstance(extraction, Mean):
        if not np.any(mask):
            return Reduction(None, Condition.NO_VALID_DATA)
        return Reduction(float(values[mask].mean()))

    msg = f"unsupported extraction rule: {extraction!r}"
    raise TypeError(msg)
