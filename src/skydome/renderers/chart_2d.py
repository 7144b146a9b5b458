"""2D star chart composer: zenith-centred azimuthal-equidistant raster.

Draw order: horizon ring -> constellation lines -> stars -> planets -> labels.
The returned buffer has row 0 at the top; ``renderers.static`` encodes it.
"""

import logging
import math
from collections.abc import Iterable
from pathlib import Path

from skydome.astrotime import derive_observer_time
from skydome.catalog import build_hd_index, select_planet_snapshots
from skydome.compute import (
    ChartGeometry,
    MissingPrerequisiteError,
    above_horizon,
    horizontal_position,
    planet_order_key,
    project_chart,
    project_chart_objects,
)
from skydome.config import ChartStyle
from skydome.labels import LabelCandidate, draw_labels, place_labels
from skydome.models import (
    ChartPoint,
    ChartResult,
    ConstellationSegment,
    ObserverSnapshot,
    ObserverTime,
    PlanetRecord,
    StarCatalog,
)
from skydome.raster import (
    draw_circle_outline,
    draw_line_thick,
    draw_soft_dot,
    new_buffer,
)
from skydome.renderers.static import save_chart_jpeg

logger = logging.getLogger(__name__)


def _project_segment_endpoints(
    segments: tuple[ConstellationSegment, ...],
    catalog: StarCatalog,
    time: ObserverTime,
    geometry: ChartGeometry,
) -> tuple[dict[int, tuple[int, int, float]], set[int]]:
    """Project every HD id used by a segment that is above the horizon.

    Returns:
        (hd -> (x, y, mag)) for projected endpoints, and the set of HD ids known
        to the catalog.
    """
    hd_index = build_hd_index(catalog.stars)
    needed = {s.hd_from for s in segments} | {s.hd_to for s in segments}

    projected: dict[int, tuple[int, int, float]] = {}
    for hd in sorted(needed):
        star = hd_index.get(hd)
        if star is None or not star.has_position:
            continue
        position = horizontal_position(star, time)
        if not above_horizon(position):
            continue
        point = project_chart(position, geometry)
        if not point.valid:
            continue
        mag = 99.0 if math.isnan(star.magnitude) else star.magnitude
        projected[hd] = (point.x, point.y, mag)

    logger.debug(
        "Constellation endpoints: needed=%d known=%d projected=%d",
        len(needed),
        len(needed & hd_index.keys()),
        len(projected),
    )
    return projected, set(hd_index)


def draw_constellation_lines(
    result: ChartResult,
    segments: tuple[ConstellationSegment, ...],
    catalog: StarCatalog,
    time: ObserverTime,
    geometry: ChartGeometry,
    style: ChartStyle,
) -> None:
    """Draw segments whose endpoints are both visible, bright, and close enough."""
    endpoints, known = _project_segment_endpoints(segments, catalog, time, geometry)
    max_len = style.max_constellation_line_length_frac * geometry.radius
    max_len2 = max_len * max_len
    skipped = {"missing_hd": 0, "not_projected": 0, "magnitude": 0, "too_long": 0}

    for seg in segments:
        if seg.hd_from not in known or seg.hd_to not in known:
            skipped["missing_hd"] += 1
            continue
        a = endpoints.get(seg.hd_from)
        b = endpoints.get(seg.hd_to)
        if a is None or b is None:
            # Usually one endpoint is below the horizon
            skipped["not_projected"] += 1
            continue
        if a[2] > style.constellation_line_mag_limit or b[2] > style.constellation_line_mag_limit:
            skipped["magnitude"] += 1
            continue
        dx = a[0] - b[0]
        dy = a[1] - b[1]
        if dx * dx + dy * dy > max_len2:
            skipped["too_long"] += 1
            continue

        draw_line_thick(
            result.buffer,
            a[0],
            a[1],
            b[0],
            b[1],
            style.constellation_line_color,
            style.constellation_line_thickness_px,
        )
        result.lines_drawn += 1

    result.lines_skipped = skipped
    logger.info("Constellation lines: drawn=%d skipped=%s", result.lines_drawn, skipped)


def build_chart(
    snapshot: ObserverSnapshot | None,
    catalog: StarCatalog | None,
    style: ChartStyle = ChartStyle(),
    segments: tuple[ConstellationSegment, ...] = (),
    planets: Iterable[PlanetRecord] = (),
) -> ChartResult:
    """Compose a 2D sky chart for an observer.

    Args:
        snapshot: Observer location and local time.
        catalog: Loaded star catalog; its visible subset is drawn.
        style: Resolution, colours, and feature switches.
        segments: Constellation line segments keyed by HD number.
        planets: Planet ephemeris rows; the row nearest the render time is used.

    Returns:
        ChartResult holding the composed buffer (row 0 at the top) and counts.

    Raises:
        MissingPrerequisiteError: If the snapshot or catalog is None. Nothing is
            drawn in that case.
    """
    if snapshot is None or catalog is None:
        raise MissingPrerequisiteError("Chart export needs an observer snapshot and a catalog")

    time = derive_observer_time(snapshot)
    geometry = ChartGeometry.for_size(style.width, style.height)
    result = ChartResult(buffer=new_buffer(style.width, style.height, style.background))

    if style.draw_horizon_circle:
        draw_circle_outline(
            result.buffer,
            geometry.cx,
            geometry.cy,
            round(geometry.radius),
            style.horizon_thickness_px,
            style.horizon_color,
        )

    if style.enable_constellation_lines and segments:
        draw_constellation_lines(result, segments, catalog, time, geometry, style)

    candidates: list[LabelCandidate] = []

    stars = project_chart_objects(
        catalog.visible,
        time,
        geometry,
        catalog.magnitude_limit,
        style.max_star_radius_px,
        style.min_star_radius_px,
        style.max_alpha,
        style.min_alpha,
    )
    for obj in stars:
        point: ChartPoint = obj.point
        if not point.valid:
            continue
        draw_soft_dot(result.buffer, point.x, point.y, obj.size, obj.alpha)
        result.stars_drawn += 1
        if obj.record.name and obj.magnitude <= style.max_label_magnitude:
            candidates.append(LabelCandidate(point.x, point.y, obj.magnitude, obj.record.name))

    if style.draw_planets:
        bodies = sorted(select_planet_snapshots(planets, time.utc_instant), key=planet_order_key)
        for obj in project_chart_objects(
            bodies,
            time,
            geometry,
            catalog.magnitude_limit,
            style.max_star_radius_px,
            style.min_star_radius_px,
            style.max_alpha,
            style.min_alpha,
        ):
            point = obj.point
            if not point.valid:
                continue
            draw_soft_dot(result.buffer, point.x, point.y, obj.size, obj.alpha)
            result.planets_drawn += 1
            if style.label_planets:
                candidates.append(LabelCandidate(point.x, point.y, obj.magnitude, obj.record.name))

    if style.enable_labels and candidates:
        placed = place_labels(
            candidates,
            style.width,
            style.height,
            style.label_font_scale,
            style.label_collision_avoidance,
        )
        result.labels_drawn = draw_labels(
            result.buffer, placed, style.label_font_scale, style.label_color
        )

    logger.info(
        "Chart composed: stars=%d planets=%d labels=%d lines=%d",
        result.stars_drawn,
        result.planets_drawn,
        result.labels_drawn,
        result.lines_drawn,
    )
    return result


def export_chart_jpeg(
    snapshot: ObserverSnapshot | None,
    catalog: StarCatalog | None,
    style: ChartStyle = ChartStyle(),
    segments: tuple[ConstellationSegment, ...] = (),
    planets: Iterable[PlanetRecord] = (),
    output_dir: Path | None = None,
) -> Path:
    """Compose a chart and save it as a JPEG in one call.

    Returns:
        Path to the saved file.

    Raises:
        MissingPrerequisiteError: If the snapshot or catalog is None; no file
            is written.
    """
    result = build_chart(snapshot, catalog, style, segments, planets)
    return save_chart_jpeg(result.buffer, snapshot, style.jpeg_quality, output_dir)
