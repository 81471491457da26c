"""Registry of drawn polygons and their last classification.

The registry is the source of truth for which polygons exist; the map
layer is a view of it. Deletions can start on either side, and
``reconcile`` brings the two back in line using the pure ``diff``.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import pandas as pd

from polyweather.exceptions import RegistryError

if TYPE_CHECKING:
    from polyweather.drawing import MapLayer
    from polyweather.sources import DataSource, DataSourceRegistry

logger = logging.getLogger(__name__)


@dataclass
class PolygonData:
    """A drawn polygon bound to one data-source snapshot.

    Args:
        id: Stable id, shared with the map layer's feature.
        geometry_ref: Opaque handle to the map-owned geometry.
        data_source_id: Source the current value was fetched for.
        data: Single-entry mapping ``{field: value}``; ``None`` after a
            failed fetch.
        name: Display name.
        color: Last classification color.
    """

    id: str
    geometry_ref: Any
    data_source_id: str
    data: dict[str, float | None] = field(default_factory=dict)
    name: str = ""
    color: str = ""

    @property
    def value(self) -> float | None:
        """The single stored value, if any."""
        return next(iter(self.data.values()), None)


@dataclass(frozen=True)
class SyncPlan:
    """Removals needed to bring the registry and the map layer in line."""

    to_remove_from_registry: frozenset[str] = frozenset()
    to_remove_from_layer: frozenset[str] = frozenset()

    @property
    def in_sync(self) -> bool:
        return not (self.to_remove_from_registry or self.to_remove_from_layer)


def diff(
    registry_ids: Iterable[str],
    live_ids: Iterable[str],
    pending: Iterable[str] = (),
) -> SyncPlan:
    """Compare registry ids with the ids live on the map layer.

    Registry entries whose feature vanished from the layer are to be
    removed from the registry; features the registry no longer knows are
    to be removed from the layer, except *pending* ones (drawn, value fetch
    still in flight).

    Example:
        >>> plan = diff({"a", "b"}, {"b", "c", "d"}, pending={"d"})
        >>> sorted(plan.to_remove_from_registry), sorted(plan.to_remove_from_layer)
        (['a'], ['c'])
    """
    registry = set(registry_ids)
    live = set(live_ids)
    return SyncPlan(
        to_remove_from_registry=frozenset(registry - live),
        to_remove_from_layer=frozenset(live - registry - set(pending)),
    )


class PolygonRegistry:
    """In-memory collection of ``PolygonData`` in creation order.

    Args:
        map_layer: Layer asked to remove geometry on registry-side deletes.
    """

    def __init__(self, map_layer: MapLayer | None = None) -> None:
        self._polygons: dict[str, PolygonData] = {}
        self._map_layer = map_layer
        self._sequence = 0
        self._selected_id: str | None = None

    def __iter__(self) -> Iterator[PolygonData]:
        return iter(list(self._polygons.values()))

    def __len__(self) -> int:
        return len(self._polygons)

    def __contains__(self, polygon_id: object) -> bool:
        return polygon_id in self._polygons

    def get(self, polygon_id: str) -> PolygonData | None:
        return self._polygons.get(polygon_id)

    @property
    def ids(self) -> list[str]:
        return list(self._polygons)

    # ── Selection ───────────────────────────────────────────────

    @property
    def selected(self) -> PolygonData | None:
        if self._selected_id is None:
            return None
        return self._polygons.get(self._selected_id)

    def select(self, polygon_id: str) -> bool:
        if polygon_id not in self._polygons:
            return False
        self._selected_id = polygon_id
        return True

    def clear_selection(self) -> None:
        self._selected_id = None

    # ── Mutation ────────────────────────────────────────────────

    def create(
        self,
        geometry_ref: Any,
        source: DataSource,
        value: float | None,
        *,
        polygon_id: str | None = None,
        color: str = "",
    ) -> PolygonData:
        """Register a freshly drawn polygon.

        Args:
            geometry_ref: Opaque handle to the map-owned geometry.
            source: Active data source the value was fetched for.
            value: Fetched value, ``None`` after a failed fetch.
            polygon_id: The map layer's feature id; generated when omitted.
            color: Classification color.

        Returns:
            The new entry, named ``"Region <n>"`` from a counter that is
            never reused.

        Raises:
            RegistryError: If *polygon_id* is already registered.
        """
        pid = polygon_id or uuid.uuid4().hex
        if pid in self._polygons:
            raise RegistryError(
                what=f"Cannot register polygon {pid!r}",
                cause="A polygon with this id already exists",
                fix="Use the id the map layer assigned to the new feature",
            )

        self._sequence += 1
        polygon = PolygonData(
            id=pid,
            geometry_ref=geometry_ref,
            data_source_id=source.id,
            data={source.field: value},
            name=f"Region {self._sequence}",
            color=color,
        )
        self._polygons[pid] = polygon
        logger.debug("Registered %s as %s", pid, polygon.name)
        return polygon

    def update(
        self,
        polygon_id: str,
        source: DataSource,
        value: float | None,
        color: str,
    ) -> bool:
        """Replace a polygon's data in place (same id, same geometry)."""
        polygon = self._polygons.get(polygon_id)
        if polygon is None:
            return False
        polygon.data_source_id = source.id
        polygon.data = {source.field: value}
        polygon.color = color
        return True

    def rename(self, polygon_id: str, new_name: str) -> bool:
        """Rename a polygon; blank names and unknown ids are ignored."""
        polygon = self._polygons.get(polygon_id)
        name = new_name.strip()
        if polygon is None or not name:
            return False
        polygon.name = name
        return True

    def delete(self, polygon_id: str) -> bool:
        """Delete a polygon from the registry and its geometry from the map."""
        if self._polygons.pop(polygon_id, None) is None:
            return False
        if self._map_layer is not None:
            self._map_layer.remove_geometry(polygon_id)
        if self._selected_id == polygon_id:
            self._selected_id = None
        logger.debug("Deleted polygon %s", polygon_id)
        return True

    def remove_many(self, polygon_ids: Iterable[str]) -> list[str]:
        """Drop entries whose geometry the map layer already removed."""
        removed = [
            pid for pid in polygon_ids if self._polygons.pop(pid, None) is not None
        ]
        if self._selected_id in removed:
            self._selected_id = None
        if removed:
            logger.debug("Dropped %d polygon(s) removed on the map", len(removed))
        return removed

    def reconcile(
        self,
        live_ids: Iterable[str] | None = None,
        pending: Iterable[str] = (),
    ) -> SyncPlan:
        """Apply ``diff`` between this registry and the map layer.

        Args:
            live_ids: Ids on the map; read from the map layer when omitted.
            pending: Drawn ids whose registration is still in flight.

        Returns:
            The plan that was applied.
        """
        if live_ids is None:
            live_ids = self._map_layer.live_ids() if self._map_layer else set()
        plan = diff(self._polygons, live_ids, pending)
        self.remove_many(plan.to_remove_from_registry)
        if self._map_layer is not None:
            for pid in plan.to_remove_from_layer:
                self._map_layer.remove_geometry(pid)
        return plan

    # ── Export ──────────────────────────────────────────────────

    def to_dataframe(self, sources: DataSourceRegistry | None = None) -> pd.DataFrame:
        """Export the polygons to a pandas DataFrame.

        Args:
            sources: Registry used to resolve source names and units.

        Returns:
            One row per polygon with columns ``id``, ``name``,
            ``data_source_id``, ``source``, ``field``, ``unit``, ``value``
            and ``color``.
        """
        columns = [
            "id",
            "name",
            "data_source_id",
            "source",
            "field",
            "unit",
            "value",
            "color",
        ]
        rows: list[dict[str, Any]] = []
        for polygon in self._polygons.values():
            source = sources.get(polygon.data_source_id) if sources else None
            field_key = next(iter(polygon.data), "")
            rows.append(
                {
                    "id": polygon.id,
                    "name": polygon.name,
                    "data_source_id": polygon.data_source_id,
                    "source": source.name if source else "",
                    "field": field_key,
                    "unit": source.unit if source else "",
                    "value": polygon.value if polygon.value is not None else float("nan"),
                    "color": polygon.color,
                }
            )
        return pd.DataFrame(rows, columns=columns)
