"""CLI entry point for star chart generation.

Settings come from ``SKYDOME_*`` variables (a ``.env`` file is honoured), then
command-line flags override them. Example:
    uv run python -m skydome.starchart --lat 40.7128 --lon -74.006 \\
        --date 2024-06-01 --time 22:00 --tz auto
"""

import argparse
import dataclasses
import io
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

from skydome.astrotime import local_to_utc  # noqa: E402
from skydome.catalog import (  # noqa: E402
    load_constellation_lines,
    load_planets,
    load_star_catalog,
    parse_planets,
)
from skydome.compute import compute_sky_data  # noqa: E402
from skydome.config import Settings, SettingsError  # noqa: E402
from skydome.ephemeris import fetch_horizons_csv_sync, skyfield_planet_csv  # noqa: E402
from skydome.models import ObserverSnapshot, PlanetRecord, StarCatalog  # noqa: E402
from skydome.observer import ObserverInputError, build_snapshot  # noqa: E402
from skydome.renderers.chart_2d import export_chart_jpeg  # noqa: E402
from skydome.renderers.plotly_3d import render_dome_figure  # noqa: E402
from skydome.twinkle import LivePointCloud, TwinkleModulator  # noqa: E402

logger = logging.getLogger("skydome.starchart")

# Frame step used when pre-rolling the twinkle clock before an HTML export
_FRAME_DT = 1.0 / 30.0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="skydome-chart",
        description="Render the night sky over an observer as a JPEG star chart.",
    )
    parser.add_argument("--lat", required=True, help="Latitude, e.g. 40.7128 or '40 42.8 N'")
    parser.add_argument("--lon", required=True, help="Longitude, east-positive, e.g. -74.006")
    parser.add_argument("--date", required=True, help="Local date, yyyy-MM-dd")
    parser.add_argument("--time", required=True, help="Local time, HH:mm")
    parser.add_argument(
        "--tz",
        default=None,
        help="IANA timezone, or 'auto' to look it up from the coordinates "
        "(default: this machine's local zone)",
    )

    files = parser.add_argument_group("data files")
    files.add_argument("--stars", type=Path, help="Star catalog CSV (HYG v4 layout)")
    files.add_argument("--planets", type=Path, help="Planet ephemeris CSV")
    files.add_argument("--lines", type=Path, help="Constellation lines CSV (con,hd1,hd2)")
    files.add_argument("--out", type=Path, help="Output directory for the chart")

    ephem = parser.add_mutually_exclusive_group()
    ephem.add_argument(
        "--fetch-planets",
        action="store_true",
        help="Query JPL Horizons for planet positions instead of reading --planets",
    )
    ephem.add_argument(
        "--skyfield-planets",
        action="store_true",
        help="Compute planet positions offline from the configured JPL kernel",
    )

    chart = parser.add_argument_group("chart")
    chart.add_argument("--size", type=int, help="Chart width and height in pixels")
    chart.add_argument("--quality", type=int, help="JPEG quality, 1-100")
    chart.add_argument("--mag-limit", type=float, help="Faintest magnitude drawn")
    chart.add_argument("--no-labels", action="store_true", help="Skip star/planet labels")
    chart.add_argument("--no-lines", action="store_true", help="Skip constellation lines")
    chart.add_argument("--no-horizon", action="store_true", help="Skip the horizon ring")

    dome = parser.add_argument_group("3D dome")
    dome.add_argument("--dome-html", type=Path, help="Also write a Plotly dome page here")
    dome.add_argument(
        "--twinkle-seconds",
        type=float,
        default=0.0,
        help="Advance the twinkle clock this far before writing the dome page",
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Layer command-line flags over environment settings."""
    chart_changes = {}
    if args.size is not None:
        chart_changes["width"] = args.size
        chart_changes["height"] = args.size
    if args.quality is not None:
        chart_changes["jpeg_quality"] = args.quality
    if args.no_labels:
        chart_changes["enable_labels"] = False
    if args.no_lines:
        chart_changes["enable_constellation_lines"] = False
    if args.no_horizon:
        chart_changes["draw_horizon_circle"] = False

    changes = {"chart": dataclasses.replace(settings.chart, **chart_changes)}
    if args.stars is not None:
        changes["star_catalog"] = args.stars
    if args.planets is not None:
        changes["planet_catalog"] = args.planets
    if args.lines is not None:
        changes["constellation_lines"] = args.lines
    if args.out is not None:
        changes["output_dir"] = args.out
    if args.mag_limit is not None:
        changes["magnitude_limit"] = args.mag_limit
    return dataclasses.replace(settings, **changes)


def load_planet_rows(
    args: argparse.Namespace, settings: Settings, snapshot: ObserverSnapshot
) -> tuple[PlanetRecord, ...]:
    if args.fetch_planets:
        text = fetch_horizons_csv_sync(
            snapshot.latitude_deg, snapshot.longitude_deg, snapshot.local_datetime
        )
        return parse_planets(io.StringIO(text))
    if args.skyfield_planets:
        text = skyfield_planet_csv(
            snapshot.latitude_deg,
            snapshot.longitude_deg,
            local_to_utc(snapshot.local_datetime),
            settings.ephemeris_kernel,
        )
        return parse_planets(io.StringIO(text))
    return load_planets(settings.planet_catalog)


def write_dome_page(
    path: Path,
    snapshot: ObserverSnapshot,
    settings: Settings,
    catalog: StarCatalog,
    planets: tuple[PlanetRecord, ...],
    twinkle_seconds: float,
) -> Path:
    sky_data = compute_sky_data(snapshot, catalog, planets, settings.dome)
    cloud = LivePointCloud.from_sky_data(sky_data)
    modulator = TwinkleModulator(cloud)
    frames = max(1, round(twinkle_seconds / _FRAME_DT)) if twinkle_seconds > 0 else 0
    for _ in range(frames):
        modulator.advance(_FRAME_DT)

    fig = render_dome_figure(sky_data, cloud)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.write_html(path)
    logger.info("Saved dome page: %s (t=%.2fs, %d points)", path, modulator.time, len(cloud))
    return path


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        snapshot = build_snapshot(args.lat, args.lon, args.date, args.time, args.tz)
        settings = apply_overrides(Settings.from_env(), args)
    except (ObserverInputError, SettingsError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    catalog = load_star_catalog(settings.star_catalog, settings.magnitude_limit)
    segments = load_constellation_lines(settings.constellation_lines)
    planets = load_planet_rows(args, settings, snapshot)

    path = export_chart_jpeg(
        snapshot, catalog, settings.chart, segments, planets, settings.output_dir
    )
    print(f"Saved: {path}")

    if args.dome_html is not None:
        dome_path = write_dome_page(
            args.dome_html, snapshot, settings, catalog, planets, args.twinkle_seconds
        )
        print(f"Saved: {dome_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
