"""Map/drawing layer contract and an in-memory GeoJSON implementation.

The map layer owns raw polygon geometry and paints it; the dashboard
only holds opaque geometry handles and asks the layer for centroids,
repaints and removals. ``GeoJSONMapLayer`` keeps GeoJSON features in
memory and stands in for an interactive map in scripts and tests.
"""

from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from polyweather.exceptions import GeometryError
from polyweather.location import polygon_centroid

logger = logging.getLogger(__name__)

DeleteListener = Callable[[list[str]], None]

_UNPAINTED_COLOR = "#3b82f6"
_STROKE_COLOR = "#374151"


class MapLayer(ABC):
    """Interface the dashboard uses to talk to the map."""

    @abstractmethod
    def get_centroid(self, geometry_ref: Any) -> tuple[float, float]:
        """Return the ``(lat, lon)`` query point of a geometry.

        Raises:
            GeometryError: If the geometry has no usable outer ring.
        """
        ...

    @abstractmethod
    def remove_geometry(self, polygon_id: str) -> None:
        """Remove a feature and everything drawn for it. Idempotent."""
        ...

    @abstractmethod
    def repaint(self, polygon_id: str, color: str) -> None:
        """Fill a feature with *color*; unknown ids are ignored."""
        ...

    @abstractmethod
    def live_ids(self) -> set[str]:
        """Ids of the features currently on the map."""
        ...

    @abstractmethod
    def on_delete(self, listener: DeleteListener) -> None:
        """Register *listener* for ids the user deletes on the map side."""
        ...


class GeoJSONMapLayer(MapLayer):
    """In-memory map layer holding GeoJSON polygon features.

    ``draw`` plays the role of the drawing tool finishing a polygon and
    ``delete`` the role of its trash tool: deletions are announced to the
    listeners registered with ``on_delete``.

    Example:
        >>> layer = GeoJSONMapLayer()
        >>> fid = layer.draw({"type": "Polygon", "coordinates": [[[0, 0], [2, 0], [2, 2]]]})
        >>> layer.live_ids() == {fid}
        True
    """

    def __init__(self) -> None:
        self._features: dict[str, dict[str, Any]] = {}
        self._colors: dict[str, str] = {}
        self._delete_listeners: list[DeleteListener] = []

    def draw(self, geometry: Mapping[str, Any], feature_id: str | None = None) -> str:
        """Add a polygon and return its feature id.

        Args:
            geometry: GeoJSON Polygon, or a Feature wrapping one.
            feature_id: Id to use; a fresh one is generated when omitted.

        Raises:
            GeometryError: If *geometry* is not a polygon.
        """
        if geometry.get("type") == "Feature":
            feature_id = feature_id or geometry.get("id")
            geometry = geometry.get("geometry") or {}
        if geometry.get("type") != "Polygon":
            raise GeometryError(
                what="Cannot draw feature",
                cause=f"Unsupported geometry type: {geometry.get('type')!r}",
                fix="Only polygons can be drawn",
            )

        fid = str(feature_id) if feature_id else uuid.uuid4().hex
        self._features[fid] = {
            "type": "Feature",
            "id": fid,
            "geometry": dict(geometry),
            "properties": {},
        }
        logger.debug("Drew feature %s", fid)
        return fid

    def get(self, polygon_id: str) -> dict[str, Any] | None:
        return self._features.get(polygon_id)

    def color_of(self, polygon_id: str) -> str | None:
        return self._colors.get(polygon_id)

    def on_delete(self, listener: DeleteListener) -> None:
        """Register a callback for trash-tool deletions."""
        self._delete_listeners.append(listener)

    def delete(self, polygon_ids: Iterable[str]) -> list[str]:
        """Delete features from the map side and notify listeners.

        Returns:
            Ids that were actually removed.
        """
        removed = [pid for pid in polygon_ids if pid in self._features]
        for pid in removed:
            self.remove_geometry(pid)
        if removed:
            for listener in self._delete_listeners:
                listener(removed)
        return removed

    # ── MapLayer contract ─────────────────────────────────────

    def get_centroid(self, geometry_ref: Any) -> tuple[float, float]:
        return polygon_centroid(geometry_ref)

    def remove_geometry(self, polygon_id: str) -> None:
        if self._features.pop(polygon_id, None) is not None:
            logger.debug("Removed feature %s", polygon_id)
        self._colors.pop(polygon_id, None)

    def repaint(self, polygon_id: str, color: str) -> None:
        if polygon_id in self._features:
            self._colors[polygon_id] = color

    def live_ids(self) -> set[str]:
        return set(self._features)

    # ── Export ───────────────────────────────────────────────

    def to_geojson(self) -> dict[str, Any]:
        """Return a FeatureCollection with each feature's fill color."""
        features = []
        for fid, feature in self._features.items():
            features.append(
                {
                    **feature,
                    "properties": {
                        **feature["properties"],
                        "fill": self._colors.get(fid, _UNPAINTED_COLOR),
                    },
                }
            )
        return {"type": "FeatureCollection", "features": features}

    def to_png(
        self,
        path: str | Path,
        labels: Mapping[str, str] | None = None,
        title: str = "",
    ) -> Path:
        """Render the painted polygons to a PNG image.

        Args:
            path: Output file path (will be created/overwritten).
            labels: Optional text drawn at each polygon's centroid, by id.
            title: Figure title.

        Returns:
            Path object pointing to the written file.
        """
        import matplotlib

        matplotlib.use("Agg")  # Non-interactive backend for file output
        import matplotlib.pyplot as plt
        from matplotlib.patches import Polygon as PolygonPatch

        path = Path(path)
        fig, ax = plt.subplots(figsize=(10, 8))
        if title:
            ax.set_title(title)

        if not self._features:
            ax.text(
                0.5,
                0.5,
                "No polygons drawn",
                ha="center",
                va="center",
                fontsize=14,
                transform=ax.transAxes,
            )
        for fid, feature in self._features.items():
            ring = feature["geometry"]["coordinates"][0]
            patch = PolygonPatch(
                [(pt[0], pt[1]) for pt in ring],
                closed=True,
                facecolor=self._colors.get(fid, _UNPAINTED_COLOR),
                edgecolor=_STROKE_COLOR,
                alpha=0.6,
                linewidth=2,
            )
            ax.add_patch(patch)
            if labels and fid in labels:
                lat, lon = polygon_centroid(feature)
                ax.annotate(labels[fid], (lon, lat), ha="center", va="center")

        ax.autoscale_view()
        ax.set_xlabel("Longitude")
        ax.set_ylabel("Latitude")
        ax.set_aspect("equal", adjustable="datalim")

        plt.tight_layout()
        plt.savefig(path, dpi=150, bbox_inches="tight")
        plt.close(fig)

        return path
