"""Dashboard orchestration: draw, recolor, delete and edit events.

The ``Dashboard`` wires the timeline selection, the data-source and
polygon registries, a weather provider and a map layer together. Every
event that changes what polygons should show (time selection, active
source, threshold rules) starts a recolor batch: all polygons are
re-evaluated concurrently and the batch is tagged with a generation
number. A batch only commits if no newer batch started while it was in
flight, so the last event always wins.

Example:
    >>> import asyncio
    >>> layer = GeoJSONMapLayer()
    >>> board = Dashboard(map_layer=layer)
    >>> fid = layer.draw(geojson_polygon)  # doctest: +SKIP
    >>> asyncio.run(board.handle_polygon_drawn(fid, layer.get(fid)))  # doctest: +SKIP
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from polyweather._pipeline import evaluate_point_async, failed_evaluation
from polyweather._types import Condition, TimeMode, TimeRange
from polyweather.config import get_default_config
from polyweather.drawing import GeoJSONMapLayer
from polyweather.exceptions import GeometryError
from polyweather.polygons import PolygonRegistry
from polyweather.providers import get_provider
from polyweather.results import BatchResult, Level, Notification, describe_condition
from polyweather.sources import DataSourceRegistry, RuleEdit
from polyweather.timeline import Timeline, resolve

if TYPE_CHECKING:
    import pandas as pd

    from polyweather._types import QueryWindow
    from polyweather.config import Config
    from polyweather.drawing import MapLayer
    from polyweather.polygons import PolygonData, SyncPlan
    from polyweather.providers.base import WeatherProvider
    from polyweather.results import Evaluation
    from polyweather.sources import DataSource

logger = logging.getLogger(__name__)

Notifier = Callable[[Notification], None]

_LOG_LEVELS = {
    Level.INFO: logging.INFO,
    Level.SUCCESS: logging.INFO,
    Level.ERROR: logging.WARNING,
}


def _log_notification(notification: Notification) -> None:
    logger.log(_LOG_LEVELS[notification.level], notification.message)


class Dashboard:
    """Event handlers of the polygon weather dashboard.

    Args:
        provider: Weather provider; the Open-Meteo archive by default.
        map_layer: Map layer owning the geometry; an in-memory
            ``GeoJSONMapLayer`` by default.
        sources: Data-source registry; the stock sources by default.
        config: Configuration; the global default when omitted.
        notifier: Receives user-facing notifications; they are logged
            when omitted.
    """

    def __init__(
        self,
        provider: WeatherProvider | None = None,
        map_layer: MapLayer | None = None,
        sources: DataSourceRegistry | None = None,
        *,
        config: Config | None = None,
        notifier: Notifier | None = None,
    ) -> None:
        self._config = config if config is not None else get_default_config()
        self._provider = provider or get_provider("open-meteo", self._config)
        self._map = map_layer if map_layer is not None else GeoJSONMapLayer()
        self.sources = (
            sources
            if sources is not None
            else DataSourceRegistry.with_defaults(self._config)
        )
        self.polygons = PolygonRegistry(self._map)
        self.timeline = Timeline.from_config(self._config)
        self._time_range = self.timeline.default_selection()
        self._notifier = notifier or _log_notification
        self._generation = 0
        self._pending: set[str] = set()

        self._map.on_delete(self.handle_polygons_deleted)

    @property
    def config(self) -> Config:
        return self._config

    @property
    def provider(self) -> WeatherProvider:
        return self._provider

    @property
    def map_layer(self) -> MapLayer:
        return self._map

    @property
    def time_range(self) -> TimeRange:
        return self._time_range

    @property
    def generation(self) -> int:
        """Tag of the most recently started recolor batch."""
        return self._generation

    @property
    def pending(self) -> frozenset[str]:
        """Drawn polygons whose first evaluation is still in flight."""
        return frozenset(self._pending)

    # ── Drawing ────────────────────────────────────────────────

    async def handle_polygon_drawn(
        self, polygon_id: str, geometry_ref: Any
    ) -> PolygonData | None:
        """Evaluate and register a polygon the map layer just created.

        Without an active source the geometry is removed from the map and
        nothing is registered. If a recolor-triggering event happens while
        the first fetch is in flight, the polygon is re-evaluated against
        the new state before it is registered.

        Args:
            polygon_id: The map layer's feature id.
            geometry_ref: Handle to the drawn geometry.

        Returns:
            The registered polygon, or ``None`` when nothing was registered.
        """
        self._pending.add(polygon_id)
        try:
            while True:
                generation = self._generation
                source = self.sources.active
                if source is None:
                    self._map.remove_geometry(polygon_id)
                    self._notify_condition(Condition.INVALID_SELECTION, polygon_id)
                    return None
                evaluation = await self._evaluate(
                    geometry_ref, source, resolve(self._time_range)
                )
                if generation == self._generation:
                    break
                logger.debug("State changed while %s was fetching; retrying", polygon_id)
        finally:
            self._pending.discard(polygon_id)

        if polygon_id not in self._map.live_ids():
            logger.debug("Polygon %s was removed before its data arrived", polygon_id)
            return None
        if evaluation.condition is Condition.INVALID_SELECTION:
            self._map.remove_geometry(polygon_id)
            self._notify(
                Level.ERROR,
                "The drawn shape is not a usable polygon.",
                evaluation.condition,
                polygon_id,
            )
            return None

        polygon = self.polygons.create(
            geometry_ref,
            source,
            evaluation.value,
            polygon_id=polygon_id,
            color=evaluation.color,
        )
        self._map.repaint(polygon_id, evaluation.color)
        if evaluation.ok:
            self._notify(Level.SUCCESS, f"{polygon.name} added", polygon_id=polygon_id)
        else:
            self._notify_condition(evaluation.condition, polygon_id)
        return polygon

    # ── Recoloring ─────────────────────────────────────────────

    async def recolor_all(self) -> BatchResult:
        """Re-evaluate every registered polygon against the current state.

        The batch commits only if it is still the newest one when all of
        its fetches have settled. Polygons deleted meanwhile are skipped,
        and so are polygons whose geometry cannot be evaluated (they keep
        their previous value and color).

        Returns:
            The batch outcome.
        """
        self._generation += 1
        generation = self._generation
        source = self.sources.active
        snapshot = list(self.polygons)

        if source is None:
            logger.debug("No active source; batch %d has nothing to do", generation)
            return BatchResult(generation, skipped=[p.id for p in snapshot])

        window = resolve(self._time_range)
        evaluations = await asyncio.gather(
            *(self._evaluate(p.geometry_ref, source, window) for p in snapshot)
        )
        results = {p.id: ev for p, ev in zip(snapshot, evaluations)}

        if generation != self._generation:
            logger.debug(
                "Discarding batch %d, superseded by %d", generation, self._generation
            )
            return BatchResult(generation, results, discarded=True)

        batch = BatchResult(generation)
        for polygon_id, evaluation in results.items():
            if (
                polygon_id not in self.polygons
                or evaluation.condition is Condition.INVALID_SELECTION
            ):
                batch.skipped.append(polygon_id)
                continue
            self.polygons.update(polygon_id, source, evaluation.value, evaluation.color)
            self._map.repaint(polygon_id, evaluation.color)
            batch.evaluations[polygon_id] = evaluation

        for condition in {ev.condition for ev in batch.failures.values()}:
            self._notify_condition(condition)
        logger.info("Batch %d recolored %d polygon(s)", generation, len(batch.evaluations))
        return batch

    async def set_time_range(self, time_range: TimeRange) -> BatchResult:
        """Replace the timeline selection and recolor."""
        self._time_range = time_range
        return await self.recolor_all()

    async def select_hour(self, position: int) -> BatchResult:
        """Single-select the hour at slider *position* and recolor."""
        return await self.set_time_range(self.timeline.select_single(position))

    async def move_range_start(self, position: int) -> BatchResult:
        return await self.set_time_range(
            self.timeline.move_range_start(self._time_range, position)
        )

    async def move_range_end(self, position: int) -> BatchResult:
        return await self.set_time_range(
            self.timeline.move_range_end(self._time_range, position)
        )

    async def switch_mode(self, mode: TimeMode | str) -> BatchResult:
        """Switch between single and range selection and recolor."""
        return await self.set_time_range(
            self.timeline.switch_mode(self._time_range, TimeMode(mode))
        )

    async def set_active_source(self, source_id: str) -> BatchResult | None:
        """Activate *source_id* and recolor; ``None`` for unknown ids."""
        if not self.sources.set_active(source_id):
            return None
        return await self.recolor_all()

    # ── Threshold rules ────────────────────────────────────────

    async def update_threshold(
        self, source_id: str, index: int, field_name: str, value: Any
    ) -> RuleEdit:
        """Edit one rule attribute; applied edits trigger a recolor."""
        outcome = self.sources.update_threshold(source_id, index, field_name, value)
        return await self._after_rule_edit(outcome)

    async def add_threshold(self, source_id: str) -> RuleEdit:
        """Append the default rule; triggers a recolor."""
        return await self._after_rule_edit(self.sources.add_threshold(source_id))

    async def remove_threshold(self, source_id: str, index: int) -> RuleEdit:
        """Remove a rule; the last rule of a source cannot be removed."""
        outcome = self.sources.remove_threshold(source_id, index)
        if outcome is RuleEdit.LAST_RULE:
            self._notify(Level.ERROR, "A data source needs at least one threshold rule.")
        return await self._after_rule_edit(outcome)

    async def _after_rule_edit(self, outcome: RuleEdit) -> RuleEdit:
        if outcome is RuleEdit.APPLIED:
            await self.recolor_all()
        return outcome

    # ── Deletion, renaming, selection ──────────────────────────

    def delete_polygon(self, polygon_id: str) -> bool:
        """Delete a polygon from the registry and its geometry from the map."""
        polygon = self.polygons.get(polygon_id)
        if polygon is None or not self.polygons.delete(polygon_id):
            return False
        self._notify(Level.INFO, f"{polygon.name} deleted", polygon_id=polygon_id)
        return True

    def handle_polygons_deleted(self, polygon_ids: Iterable[str]) -> list[str]:
        """Drop polygons whose geometry was deleted with the map's tools."""
        removed = self.polygons.remove_many(polygon_ids)
        if removed:
            noun = "polygon" if len(removed) == 1 else "polygons"
            self._notify(Level.INFO, f"{len(removed)} {noun} deleted")
        return removed

    def rename_polygon(self, polygon_id: str, new_name: str) -> bool:
        return self.polygons.rename(polygon_id, new_name)

    def select_polygon(self, polygon_id: str | None) -> bool:
        """Select a polygon for the detail panel; ``None`` clears the selection."""
        if polygon_id is None:
            self.polygons.clear_selection()
            return True
        return self.polygons.select(polygon_id)

    def reconcile(self) -> SyncPlan:
        """Bring the registry and the map layer back in line."""
        plan = self.polygons.reconcile(pending=self._pending)
        if not plan.in_sync:
            logger.info(
                "Reconciled: %d registry and %d map removal(s)",
                len(plan.to_remove_from_registry),
                len(plan.to_remove_from_layer),
            )
        return plan

    def summary(self) -> pd.DataFrame:
        """Polygon table with source names and units."""
        return self.polygons.to_dataframe(self.sources)

    # ── Internals ──────────────────────────────────────────────

    async def _evaluate(
        self, geometry_ref: Any, source: DataSource, window: QueryWindow
    ) -> Evaluation:
        try:
            lat, lon = self._map.get_centroid(geometry_ref)
        except GeometryError as exc:
            logger.warning("Cannot evaluate geometry: %s", exc.cause)
            return failed_evaluation(
                Condition.INVALID_SELECTION, self._config, source, window, str(exc)
            )
        return await evaluate_point_async(
            self._provider, lat, lon, source, window, self._config
        )

    def _notify(
        self,
        level: Level,
        message: str,
        condition: Condition | None = None,
        polygon_id: str | None = None,
    ) -> None:
        self._notifier(Notification(level, message, condition, polygon_id))

    def _notify_condition(
        self, condition: Condition | None, polygon_id: str | None = None
    ) -> None:
        self._notify(Level.ERROR, describe_condition(condition), condition, polygon_id)
