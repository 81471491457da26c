"""Tests for the in-memory GeoJSON map layer."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from polyweather.drawing import GeoJSONMapLayer, MapLayer
from polyweather.exceptions import GeometryError

SquareFactory = Callable[..., dict[str, Any]]


@pytest.mark.unit
class TestDraw:
    def test_draw_returns_live_id(self, layer: GeoJSONMapLayer, make_square: SquareFactory) -> None:
        fid = layer.draw(make_square())
        assert layer.live_ids() == {fid}
        assert layer.get(fid)["geometry"]["type"] == "Polygon"  # type: ignore[index]

    def test_draw_feature_keeps_its_id(self, layer: GeoJSONMapLayer, make_square: SquareFactory) -> None:
        fid = layer.draw({"type": "Feature", "id": "field-7", "geometry": make_square()})
        assert fid == "field-7"

    def test_draw_non_polygon_rejected(self, layer: GeoJSONMapLayer) -> None:
        with pytest.raises(GeometryError, match="Unsupported geometry type"):
            layer.draw({"type": "LineString", "coordinates": [[0, 0], [1, 1]]})

    def test_is_a_map_layer(self, layer: GeoJSONMapLayer) -> None:
        assert isinstance(layer, MapLayer)


@pytest.mark.unit
class TestLayerContract:
    def test_centroid(self, layer: GeoJSONMapLayer, make_square: SquareFactory) -> None:
        fid = layer.draw(make_square(lon=0, lat=0, size=2))
        assert layer.get_centroid(layer.get(fid)) == pytest.approx((1.0, 1.0))

    def test_repaint(self, layer: GeoJSONMapLayer, make_square: SquareFactory) -> None:
        fid = layer.draw(make_square())
        layer.repaint(fid, "#EF4444")
        assert layer.color_of(fid) == "#EF4444"

    def test_repaint_unknown_ignored(self, layer: GeoJSONMapLayer) -> None:
        layer.repaint("nope", "#EF4444")
        assert layer.color_of("nope") is None

    def test_remove_geometry_idempotent(self, layer: GeoJSONMapLayer, make_square: SquareFactory) -> None:
        fid = layer.draw(make_square())
        layer.remove_geometry(fid)
        layer.remove_geometry(fid)
        assert layer.live_ids() == set()


@pytest.mark.unit
class TestDeleteListeners:
    def test_delete_notifies_with_removed_ids(self, layer: GeoJSONMapLayer, make_square: SquareFactory) -> None:
        seen: list[list[str]] = []
        layer.on_delete(seen.append)
        a = layer.draw(make_square())
        b = layer.draw(make_square())

        assert layer.delete([a, "nope"]) == [a]
        assert seen == [[a]]
        assert layer.live_ids() == {b}

    def test_delete_nothing_does_not_notify(self, layer: GeoJSONMapLayer) -> None:
        seen: list[list[str]] = []
        layer.on_delete(seen.append)
        layer.delete(["nope"])
        assert seen == []


@pytest.mark.unit
class TestExport:
    def test_to_geojson_fill(self, layer: GeoJSONMapLayer, make_square: SquareFactory) -> None:
        fid = layer.draw(make_square())
        layer.repaint(fid, "#F97316")
        collection = layer.to_geojson()
        assert collection["type"] == "FeatureCollection"
        assert collection["features"][0]["properties"]["fill"] == "#F97316"

    def test_to_png(self, layer: GeoJSONMapLayer, make_square: SquareFactory, tmp_path: Path) -> None:
        fid = layer.draw(make_square())
        layer.repaint(fid, "#F97316")
        out = layer.to_png(tmp_path / "map.png", labels={fid: "Region 1"}, title="Test")
        assert out.exists()
        assert out.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"

    def test_to_png_empty(self, layer: GeoJSONMapLayer, tmp_path: Path) -> None:
        out = layer.to_png(tmp_path / "empty.png")
        assert out.stat().st_size > 0
