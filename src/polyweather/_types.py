"""Internal shared types for cross-boundary data contracts.

These types define the data shapes passed between the timeline,
provider, reducer, classifier and registries.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Union

import numpy as np
import numpy.typing as npt
from pydantic import BaseModel, ConfigDict, field_validator

ONE_HOUR = timedelta(hours=1)


def as_utc(instant: datetime) -> datetime:
    """Return *instant* as an aware UTC datetime (naive means UTC)."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


class TimeMode(str, Enum):
    """Timeline selection mode."""

    SINGLE = "single"
    RANGE = "range"


@dataclass(frozen=True)
class TimeRange:
    """A timeline selection: one instant or a start/end range.

    ``current_hour`` caches the slider position for the UI and never
    takes part in query resolution.

    Args:
        mode: ``SINGLE`` or ``RANGE``.
        start: Selection start (naive values are treated as UTC).
        end: Selection end; equals ``start`` in ``SINGLE`` mode.
        current_hour: Slider hour position.

    Raises:
        ValueError: If the mode invariant does not hold.

    Example:
        >>> tr = TimeRange.single(datetime(2025, 8, 4, 7))
        >>> tr.start == tr.end
        True
    """

    mode: TimeMode
    start: datetime
    end: datetime
    current_hour: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", TimeMode(self.mode))
        object.__setattr__(self, "start", as_utc(self.start))
        object.__setattr__(self, "end", as_utc(self.end))
        if self.mode is TimeMode.SINGLE and self.start != self.end:
            msg = "single selection requires start == end"
            raise ValueError(msg)
        if self.mode is TimeMode.RANGE and not self.start < self.end:
            msg = "range selection requires start < end"
            raise ValueError(msg)

    @classmethod
    def single(cls, instant: datetime, current_hour: int = 0) -> TimeRange:
        """Build a single-instant selection."""
        return cls(TimeMode.SINGLE, instant, instant, current_hour)

    @classmethod
    def between(
        cls, start: datetime, end: datetime, current_hour: int = 0
    ) -> TimeRange:
        """Build a range selection."""
        return cls(TimeMode.RANGE, start, end, current_hour)


class Operator(str, Enum):
    """Comparison operator of a threshold rule."""

    EQ = "="
    LT = "<"
    GT = ">"
    LE = "<="
    GE = ">="

    @property
    def descending(self) -> bool:
        """``True`` for exceedance operators evaluated from the top down."""
        return self in (Operator.GT, Operator.GE)


class Threshold(BaseModel):
    """A single ``{operator, value, color}`` classification rule.

    Example:
        >>> rule = Threshold(operator=">=", value=25, color="#EF4444")
        >>> rule.operator
        <Operator.GE: '>='>
    """

    model_config = ConfigDict(frozen=True, extra="forbid", allow_inf_nan=False)

    operator: Operator
    value: float
    color: str

    @field_validator("color")
    @classmethod
    def _validate_color(cls, v: str) -> str:
        if not v.strip():
            msg = "color must be a non-empty token"
            raise ValueError(msg)
        return v


@dataclass(frozen=True)
class SingleSample:
    """Extract the value at one hour of the fetched series."""

    hour_index: int


@dataclass(frozen=True)
class Mean:
    """Average every valid value of the fetched series."""


Extraction = Union[SingleSample, Mean]


@dataclass(frozen=True)
class QueryWindow:
    """Day-granular query bounds plus the extraction rule.

    Args:
        start_date: First UTC calendar day to query (inclusive).
        end_date: Last UTC calendar day to query (inclusive).
        extraction: How the hourly series collapses to one scalar.
    """

    start_date: date
    end_date: date
    extraction: Extraction


@dataclass
class HourlySeries:
    """Hourly values returned by a weather provider.

    Missing observations are stored as ``NaN``.

    Args:
        field: Provider field key (e.g. ``"temperature_2m"``).
        values: Float64 array, one entry per hour.
        times: ISO-8601 hour stamps matching ``values``.
        metadata: Provider-specific metadata (units, coordinates, ...).
    """

    field: str
    values: npt.NDArray[np.float64]
    times: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return int(self.values.size)


class Condition(str, Enum):
    """Recoverable conditions the core reports instead of raising."""

    FETCH_FAILED = "fetch_failed"
    MALFORMED_RESPONSE = "malformed_response"
    NO_VALID_DATA = "no_valid_data"
    EMPTY = "empty"
    INVALID_SELECTION = "invalid_selection"


@dataclass(frozen=True)
class Reduction:
    """Scalar produced by the series reducer.

    ``value`` is ``None`` whenever ``condition`` is set.
    """

    value: float | None
    condition: Condition | None = None

    @property
    def ok(self) -> bool:
        return self.condition is None
