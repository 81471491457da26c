"""Result objects for point evaluations and recolor batches."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

from polyweather._types import Condition

if TYPE_CHECKING:
    from polyweather._types import QueryWindow

_CONDITION_MESSAGES: dict[Condition, str] = {
    Condition.FETCH_FAILED: (
        "Weather API is currently unavailable. Please try again later."
    ),
    Condition.MALFORMED_RESPONSE: "Weather data error: invalid API response structure.",
    Condition.NO_VALID_DATA: "No weather data available for this location and time.",
    Condition.EMPTY: "No weather data returned for the selected period.",
    Condition.INVALID_SELECTION: "No active data source selected.",
}


def describe_condition(condition: Condition | None) -> str:
    """Return the user-facing text for *condition*.

    Example:
        >>> describe_condition(Condition.NO_VALID_DATA)
        'No weather data available for this location and time.'
    """
    if condition is None:
        return ""
    return _CONDITION_MESSAGES[condition]


class Level(str, Enum):
    """Severity of a user notification."""

    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A message for the UI's toast layer.

    Attributes:
        level: Severity.
        message: User-facing text.
        condition: Condition behind an error, if any.
        polygon_id: Polygon the message is about, if any.
    """

    level: Level
    message: str
    condition: Condition | None = None
    polygon_id: str | None = None


@dataclass(frozen=True)
class Evaluation:
    """Outcome of fetch, reduce and classify for one query point.

    Attributes:
        value: Reduced scalar, ``None`` whenever ``condition`` is set.
        color: Classification color (fallback when ``value`` is ``None``).
        condition: Recoverable condition that occurred, if any.
        source_id: Data source the value was computed for.
        field: Provider field key.
        window: Resolved query window.
        detail: Technical detail of the condition, for logs.
    """

    value: float | None
    color: str
    condition: Condition | None = None
    source_id: str = ""
    field: str = ""
    window: QueryWindow | None = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.condition is None

    @property
    def message(self) -> str:
        """User-facing text for the condition (empty when ``ok``)."""
        return describe_condition(self.condition)

    def __repr__(self) -> str:
        parts = [f"value={self.value}", f"color={self.color!r}"]
        if self.condition is not None:
            parts.append(f"condition={self.condition.value}")
        return f"Evaluation({', '.join(parts)})"


@dataclass
class BatchResult:
    """Outcome of one ``Dashboard.recolor_all`` batch.

    Attributes:
        generation: Batch generation tag.
        evaluations: Evaluations by polygon id (committed ones, or all of
            them when the batch was discarded).
        discarded: ``True`` when a newer batch superseded this one and
            nothing was committed.
        skipped: Polygons left unchanged (deleted mid-batch or without a
            usable geometry).
    """

    generation: int
    evaluations: dict[str, Evaluation] = field(default_factory=dict)
    discarded: bool = False
    skipped: list[str] = field(default_factory=list)

    @property
    def failures(self) -> dict[str, Evaluation]:
        """Evaluations that ended in a condition."""
        return {pid: ev for pid, ev in self.evaluations.items() if not ev.ok}

    def __repr__(self) -> str:
        state = "discarded" if self.discarded else "committed"
        return (
            f"BatchResult(generation={self.generation}, {state}, "
            f"polygons={len(self.evaluations)}, failures={len(self.failures)})"
        )
