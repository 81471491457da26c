#!/usr/bin/env python3
"""Classify GeoJSON polygons by weather and write an HTML report.

Loads a FeatureCollection of polygons, evaluates the chosen data source
at each polygon's centroid for the selected time, and writes a
self-contained HTML report with a colored map and a summary table.

Usage:
    python run_dashboard.py regions.geojson --source temperature --at 2025-08-04T07:00

Example:
    python run_dashboard.py fields.geojson --source precipitation \
        --start 2025-07-28T00:00 --end 2025-08-04T00:00 -o rain.html --csv rain.csv
"""

from __future__ import annotations

import argparse
import asyncio
import base64
import json
import sys
import tempfile
from datetime import datetime
from pathlib import Path

try:
    import polyweather as pw
except ImportError:
    print("Error: polyweather not installed. Run: pip install polyweather")
    sys.exit(1)


def encode_image_base64(path: Path) -> str:
    """Read image file and return base64 encoded string."""
    with open(path, "rb") as f:
        return base64.b64encode(f.read()).decode("utf-8")


def load_polygons(path: Path) -> list[dict]:
    """Return the polygon features of a GeoJSON file."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if data.get("type") == "FeatureCollection":
        features = data.get("features", [])
    else:
        features = [data]
    polygons = []
    for feature in features:
        geometry = feature.get("geometry", feature)
        if geometry.get("type") == "Polygon":
            polygons.append(feature)
        else:
            print(f"  Skipping {geometry.get('type')} feature")
    return polygons


async def run_dashboard(
    features: list[dict],
    source_id: str,
    time_range: pw.TimeRange | None,
) -> pw.Dashboard:
    """Draw every feature on a fresh dashboard and wait for its colors."""
    layer = pw.GeoJSONMapLayer()
    board = pw.Dashboard(map_layer=layer, notifier=lambda n: print(f"  [{n.level.value}] {n.message}"))

    if board.sources.get(source_id) is None:
        known = ", ".join(s.id for s in board.sources)
        raise ValueError(f"unknown source {source_id!r} (choose from: {known})")
    board.sources.set_active(source_id)
    if time_range is not None:
        await board.set_time_range(time_range)

    drawn = [(layer.draw(feature), feature) for feature in features]
    await asyncio.gather(
        *(board.handle_polygon_drawn(fid, layer.get(fid)) for fid, _ in drawn)
    )
    return board


def generate_html_report(board: pw.Dashboard, output_path: Path, title: str) -> None:
    """Render the dashboard state to a self-contained HTML file."""
    source = board.sources.active
    table = board.summary()
    labels = {
        row.id: f"{row.name}\n{row.value:.1f} {row.unit}"
        for row in table.itertuples()
        if row.value == row.value
    }

    with tempfile.TemporaryDirectory() as temp_dir:
        map_png = Path(temp_dir) / "map.png"
        board.map_layer.to_png(map_png, labels=labels, title=title)
        map_b64 = encode_image_base64(map_png)

    rules = "".join(
        f'<li><span class="swatch" style="background:{t.color}"></span>'
        f"{t.operator.value} {t.value:g} {source.unit}</li>"
        for t in pw.order_thresholds(source.thresholds)
    )
    tr = board.time_range
    when = (
        tr.start.strftime("%Y-%m-%d %H:%M UTC")
        if tr.mode is pw.TimeMode.SINGLE
        else f"{tr.start:%Y-%m-%d %H:%M} to {tr.end:%Y-%m-%d %H:%M} UTC "
        f"({pw.Timeline.days_selected(tr)} days)"
    )

    html = f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{title}</title>
    <style>
        body {{ font-family: -apple-system, 'Segoe UI', Roboto, sans-serif;
               max-width: 1000px; margin: 0 auto; padding: 20px; color: #333; }}
        h1 {{ color: #1e3a8a; }}
        .chart {{ width: 100%; max-width: 800px; display: block; margin: 20px auto; }}
        .swatch {{ display: inline-block; width: 14px; height: 14px;
                  margin-right: 8px; border-radius: 3px; vertical-align: middle; }}
        ul.rules {{ list-style: none; padding: 0; }}
        table {{ border-collapse: collapse; width: 100%; }}
        th, td {{ border-bottom: 1px solid #eee; padding: 6px 10px; text-align: left; }}
        .footer {{ color: #666; font-size: 12px; margin-top: 30px; }}
    </style>
</head>
<body>
    <h1>{title}</h1>
    <p><strong>{source.name}</strong> ({source.field}) at {when}</p>
    <ul class="rules">{rules}
        <li><span class="swatch" style="background:{board.config.fallback_color}"></span>no data / no match</li>
    </ul>
    <img src="data:image/png;base64,{map_b64}" alt="Polygon map" class="chart">
    {table.drop(columns=["id"]).to_html(index=False, na_rep="n/a", float_format="{:.2f}".format)}
    <div class="footer">
        <p>Generated with PolyWeather v{pw.__version__}</p>
        <p>Report Time: {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}</p>
    </div>
</body>
</html>
"""
    output_path.write_text(html, encoding="utf-8")
    print(f"\n[OK] Report saved to: {output_path.absolute()}")


def parse_time_range(args: argparse.Namespace) -> pw.TimeRange | None:
    if args.start or args.end:
        if not (args.start and args.end):
            raise ValueError("--start and --end must be given together")
        return pw.TimeRange.between(
            datetime.fromisoformat(args.start), datetime.fromisoformat(args.end)
        )
    if args.at:
        return pw.TimeRange.single(datetime.fromisoformat(args.at))
    return None


def main() -> None:
    """Parse arguments and run the dashboard."""
    parser = argparse.ArgumentParser(
        description="Classify GeoJSON polygons by weather and write an HTML report.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python run_dashboard.py regions.geojson --at 2025-08-04T07:00
  python run_dashboard.py regions.geojson --source wind --start 2025-08-01T00:00 --end 2025-08-03T00:00
        """,
    )
    parser.add_argument("geojson", type=Path, help="GeoJSON file with polygon features")
    parser.add_argument(
        "--source",
        default="temperature",
        help="Data source id: temperature, humidity, precipitation, wind (default: temperature)",
    )
    parser.add_argument("--at", default=None, help="Single instant, ISO-8601 (UTC)")
    parser.add_argument("--start", default=None, help="Range start, ISO-8601 (UTC)")
    parser.add_argument("--end", default=None, help="Range end, ISO-8601 (UTC)")
    parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("report.html"),
        help="Output HTML file path (default: report.html)",
    )
    parser.add_argument("--csv", type=Path, default=None, help="Also write the table as CSV")
    parser.add_argument("--title", default="Polygon Weather Report", help="Report title")

    args = parser.parse_args()

    try:
        time_range = parse_time_range(args)
        features = load_polygons(args.geojson)
    except (OSError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    if not features:
        print(f"Error: no polygon features in {args.geojson}")
        sys.exit(1)

    print(f"Evaluating {len(features)} polygon(s) from {args.geojson}...")
    try:
        board = asyncio.run(run_dashboard(features, args.source, time_range))
        generate_html_report(board, args.output, args.title)
        if args.csv is not None:
            board.summary().to_csv(args.csv, index=False)
            print(f"[OK] Table saved to: {args.csv.absolute()}")
    except (pw.PolyWeatherError, ValueError, OSError) as e:
        print(f"\nError generating report: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
