"""Time selection: query window resolution and the hour-step timeline.

``resolve`` turns a ``TimeRange`` into the day-granular bounds the
archive provider expects plus the rule for collapsing the returned
hourly series. ``Timeline`` maps slider hour positions to instants
within the fixed look-back/look-ahead horizon around an anchor.

Example:
    >>> from datetime import datetime, timezone
    >>> window = resolve(TimeRange.single(datetime(2025, 8, 4, 7, tzinfo=timezone.utc)))
    >>> window.extraction
    SingleSample(hour_index=7)
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta, timezone
from typing import TYPE_CHECKING

from polyweather._types import (
    ONE_HOUR,
    Mean,
    QueryWindow,
    SingleSample,
    TimeMode,
    TimeRange,
    as_utc,
)

if TYPE_CHECKING:
    from polyweather.config import Config

logger = logging.getLogger(__name__)


def resolve(time_range: TimeRange) -> QueryWindow:
    """Resolve a selection into query days and an extraction rule.

    Bounds are the UTC calendar days of ``start`` and ``end``. A single
    selection samples the hour offset of ``start`` from midnight of the
    first queried day; a range averages the whole returned series. The
    hour index is not clamped here because the series length is only
    known after the fetch.

    Args:
        time_range: Timeline selection.

    Returns:
        The resolved ``QueryWindow``.
    """
    start_date = time_range.start.date()
    end_date = time_range.end.date()

    if time_range.mode is TimeMode.SINGLE:
        day_start = datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        hour_index = (time_range.start - day_start) // ONE_HOUR
        return QueryWindow(start_date, end_date, SingleSample(hour_index))

    return QueryWindow(start_date, end_date, Mean())


class Timeline:
    """Hour-position timeline spanning a fixed horizon around an anchor.

    The horizon starts at midnight ``days_before`` days before the anchor
    and has ``(days_before + days_after) * 24`` hour positions. Position
    ``0`` is the first hour; positions are clamped to
    ``[0, total_hours - 1]``.

    Args:
        anchor: Instant the horizon is centred on.
        days_before: Look-back in days.
        days_after: Look-ahead in days.

    Example:
        >>> tl = Timeline(datetime(2025, 8, 4, 7, tzinfo=timezone.utc))
        >>> tl.total_hours
        720
        >>> tl.instant_to_position(tl.anchor)
        367
    """

    def __init__(
        self,
        anchor: datetime,
        days_before: int = 15,
        days_after: int = 15,
    ) -> None:
        self._anchor = as_utc(anchor)
        self._start = (self._anchor - timedelta(days=days_before)).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        self._total_hours = (days_before + days_after) * 24

    @classmethod
    def from_config(cls, config: Config) -> Timeline:
        """Build the timeline described by *config*."""
        return cls(
            config.timeline_anchor,
            days_before=config.timeline_days_before,
            days_after=config.timeline_days_after,
        )

    @property
    def anchor(self) -> datetime:
        return self._anchor

    @property
    def start(self) -> datetime:
        """Instant of position ``0``."""
        return self._start

    @property
    def total_hours(self) -> int:
        return self._total_hours

    def clamp(self, position: int) -> int:
        """Clamp *position* into the timeline."""
        return max(0, min(self._total_hours - 1, position))

    def position_to_instant(self, position: int) -> datetime:
        """Return the instant at hour *position* (not clamped)."""
        return self._start + position * ONE_HOUR

    def instant_to_position(self, instant: datetime) -> int:
        """Return the whole hours elapsed from the timeline start to *instant*."""
        return (as_utc(instant) - self._start) // ONE_HOUR

    def default_selection(self) -> TimeRange:
        """Single selection at the anchor hour."""
        return self.select_single(self.instant_to_position(self._anchor))

    def select_single(self, position: int) -> TimeRange:
        """Single selection at the clamped *position*."""
        pos = self.clamp(position)
        return TimeRange.single(self.position_to_instant(pos), current_hour=pos)

    def move_range_start(self, time_range: TimeRange, position: int) -> TimeRange:
        """Drag the start handle, keeping it at least one hour before the end.

        In single mode the drag moves the single selection instead.
        """
        if time_range.mode is TimeMode.SINGLE:
            return self.select_single(position)
        end_pos = self.instant_to_position(time_range.end)
        valid = min(self.clamp(position), end_pos - 1)
        return TimeRange.between(
            self.position_to_instant(valid),
            time_range.end,
            time_range.current_hour,
        )

    def move_range_end(self, time_range: TimeRange, position: int) -> TimeRange:
        """Drag the end handle, keeping it at least one hour after the start.

        In single mode the drag moves the single selection instead.
        """
        if time_range.mode is TimeMode.SINGLE:
            return self.select_single(position)
        start_pos = self.instant_to_position(time_range.start)
        valid = max(self.clamp(position), start_pos + 1)
        return TimeRange.between(
            time_range.start,
            self.position_to_instant(valid),
            time_range.current_hour,
        )

    def switch_mode(self, time_range: TimeRange, mode: TimeMode) -> TimeRange:
        """Switch between single and range selection.

        Switching to range widens the instant to a one-hour range (backwards
        when the instant sits on the last position); switching to single
        collapses the range onto its start.
        """
        mode = TimeMode(mode)
        if mode is time_range.mode:
            return time_range

        if mode is TimeMode.SINGLE:
            pos = self.instant_to_position(time_range.start)
            return TimeRange.single(time_range.start, current_hour=pos)

        start = time_range.start
        if self.instant_to_position(start) >= self._total_hours - 1:
            return TimeRange.between(start - ONE_HOUR, start, time_range.current_hour)
        return TimeRange.between(start, start + ONE_HOUR, time_range.current_hour)

    @staticmethod
    def days_selected(time_range: TimeRange) -> float:
        """Length of the selection in days, rounded to one decimal."""
        hours = (time_range.end - time_range.start) / ONE_HOUR
        return round(hours / 24, 1)
