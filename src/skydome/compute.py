"""Visibility/projection engine: horizon culling and dome/chart projection."""

import logging
import math
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from skydome.astrotime import (
    derive_observer_time,
    equatorial_to_horizontal,
    hour_angle_deg,
)
from skydome.catalog import select_planet_snapshots
from skydome.config import ChartStyle, DomeStyle
from skydome.models import (
    CelestialRecord,
    ChartPoint,
    DomePoint,
    HorizonPosition,
    ObserverSnapshot,
    ObserverTime,
    PlanetRecord,
    ProjectedObject,
    SkyData,
    StarCatalog,
)

logger = logging.getLogger(__name__)

# Altitudes at or below this are culled; absorbs float noise at the horizon
HORIZON_EPS_RAD = 1e-6
_HALF_PI = math.pi / 2.0

SIZE_EXPONENT = 1.7
ALPHA_EXPONENT = 1.3


class MissingPrerequisiteError(Exception):
    """Render requested without an observer snapshot or catalog."""


@dataclass(frozen=True)
class ChartGeometry:
    """Pixel placement of the horizon disc on a chart."""

    cx: int
    cy: int
    radius: float

    @classmethod
    def for_size(cls, width: int, height: int) -> "ChartGeometry":
        cx = width // 2
        cy = height // 2
        return cls(cx=cx, cy=cy, radius=float(min(cx, cy) - 6))


def _clamp01(value: float) -> float:
    return 0.0 if value < 0.0 else 1.0 if value > 1.0 else value


def _lerp(a: float, b: float, t: float) -> float:
    return a + (b - a) * t


def magnitude_visual(
    magnitude: float,
    magnitude_limit: float,
    max_size: float,
    min_size: float,
    max_alpha: float,
    min_alpha: float,
) -> tuple[float, float]:
    """Map apparent magnitude to (size, alpha). Brighter is larger and more opaque.

    ``t = clamp01(mag / limit)`` is eased with ``t**1.7`` for size and
    ``t**1.3`` for alpha; a linear ramp over-brightens faint objects. A missing
    magnitude maps to the faint end.
    """
    if math.isnan(magnitude) or magnitude_limit <= 0:
        t = 1.0
    else:
        t = _clamp01(magnitude / magnitude_limit)
    size = _lerp(max_size, min_size, t**SIZE_EXPONENT)
    alpha = _lerp(max_alpha, min_alpha, t**ALPHA_EXPONENT)
    return size, alpha


def horizontal_position(
    record: CelestialRecord, time: ObserverTime
) -> HorizonPosition:
    """Altitude/azimuth of a record for an observer time."""
    ha = math.radians(hour_angle_deg(time.lst_deg, record.ra_deg))
    alt, az = equatorial_to_horizontal(ha, math.radians(record.dec_deg), time.latitude_rad)
    return HorizonPosition(altitude_rad=alt, azimuth_rad=az)


def above_horizon(position: HorizonPosition) -> bool:
    return position.altitude_rad > HORIZON_EPS_RAD


def project_dome(position: HorizonPosition, radius: float) -> DomePoint:
    """Place a horizontal position on a dome of the given radius."""
    cos_alt = math.cos(position.altitude_rad)
    return DomePoint(
        x=radius * cos_alt * math.sin(position.azimuth_rad),
        y=radius * math.sin(position.altitude_rad),
        z=radius * cos_alt * math.cos(position.azimuth_rad),
    )


def project_chart(position: HorizonPosition, geometry: ChartGeometry) -> ChartPoint:
    """Zenith-centred azimuthal-equidistant projection to pixel coordinates.

    The zenith lands exactly on the centre; the horizon maps to
    ``geometry.radius``.
    """
    r01 = (_HALF_PI - position.altitude_rad) / _HALF_PI
    pr = r01 * geometry.radius
    x = geometry.cx + round(pr * math.sin(position.azimuth_rad))
    y = geometry.cy + round(pr * math.cos(position.azimuth_rad))

    dx = x - geometry.cx
    dy = y - geometry.cy
    valid = dx * dx + dy * dy <= geometry.radius * geometry.radius
    return ChartPoint(x=x, y=y, valid=valid)


def visible_positions(
    records: Iterable[CelestialRecord], time: ObserverTime
) -> Iterator[tuple[CelestialRecord, HorizonPosition]]:
    """Yield (record, position) for records above the horizon, in input order."""
    for record in records:
        if not record.has_position:
            continue
        position = horizontal_position(record, time)
        if above_horizon(position):
            yield record, position


def planet_order_key(planet: CelestialRecord) -> tuple[float, str]:
    mag = math.inf if math.isnan(planet.magnitude) else planet.magnitude
    return (mag, planet.name)


def _require(snapshot: ObserverSnapshot | None, catalog: StarCatalog | None) -> None:
    if snapshot is None:
        raise MissingPrerequisiteError("Observer snapshot is missing")
    if catalog is None:
        raise MissingPrerequisiteError("Star catalog is missing")


def project_dome_objects(
    records: Iterable[CelestialRecord],
    time: ObserverTime,
    magnitude_limit: float,
    style: DomeStyle,
) -> tuple[ProjectedObject, ...]:
    """Run the cull + dome projection + magnitude mapping over records."""
    projected: list[ProjectedObject] = []
    for record, position in visible_positions(records, time):
        size, alpha = magnitude_visual(
            record.magnitude,
            magnitude_limit,
            style.max_size,
            style.min_size,
            style.max_alpha,
            style.min_alpha,
        )
        projected.append(
            ProjectedObject(
                record=record,
                horizon=position,
                point=project_dome(position, style.sky_radius),
                magnitude=record.magnitude,
                size=size,
                alpha=alpha,
            )
        )
    return tuple(projected)


def compute_sky_data(
    snapshot: ObserverSnapshot | None,
    catalog: StarCatalog | None,
    planets: Iterable[PlanetRecord] = (),
    style: DomeStyle = DomeStyle(),
) -> SkyData:
    """Project the visible catalog (and planets) onto the sky dome.

    Args:
        snapshot: Observer location and local time.
        catalog: Loaded star catalog; its visible subset is projected.
        planets: Planet ephemeris rows; the row nearest the render time is used
            per body.
        style: Dome radius and size/alpha ranges.

    Returns:
        SkyData with above-horizon stars in VisibleSet order and planets
        ordered by magnitude then name.

    Raises:
        MissingPrerequisiteError: If the snapshot or catalog is None.
    """
    _require(snapshot, catalog)
    time = derive_observer_time(snapshot)

    stars = project_dome_objects(catalog.visible, time, catalog.magnitude_limit, style)
    bodies = sorted(select_planet_snapshots(planets, time.utc_instant), key=planet_order_key)
    planet_objects = project_dome_objects(bodies, time, catalog.magnitude_limit, style)

    logger.info(
        "Projected %d stars and %d planets above the horizon (LST %.3f deg)",
        len(stars),
        len(planet_objects),
        time.lst_deg,
    )
    return SkyData(
        snapshot=snapshot,
        time=time,
        stars=stars,
        planets=planet_objects,
        sky_radius=style.sky_radius,
        limiting_magnitude=catalog.magnitude_limit,
    )


def compute_chart_points(
    snapshot: ObserverSnapshot | None,
    catalog: StarCatalog | None,
    style: ChartStyle = ChartStyle(),
) -> tuple[ProjectedObject, ...]:
    """Project the visible catalog onto the chart described by ``style``.

    Points that round outside the horizon disc are kept with ``valid=False``.

    Raises:
        MissingPrerequisiteError: If the snapshot or catalog is None.
    """
    _require(snapshot, catalog)
    time = derive_observer_time(snapshot)
    geometry = ChartGeometry.for_size(style.width, style.height)
    return project_chart_objects(
        catalog.visible,
        time,
        geometry,
        catalog.magnitude_limit,
        style.max_star_radius_px,
        style.min_star_radius_px,
        style.max_alpha,
        style.min_alpha,
    )


def project_chart_objects(
    records: Iterable[CelestialRecord],
    time: ObserverTime,
    geometry: ChartGeometry,
    magnitude_limit: float,
    max_radius_px: float,
    min_radius_px: float,
    max_alpha: float,
    min_alpha: float,
) -> tuple[ProjectedObject, ...]:
    """Run the cull + chart projection + magnitude mapping over records."""
    projected: list[ProjectedObject] = []
    for record, position in visible_positions(records, time):
        radius, alpha = magnitude_visual(
            record.magnitude,
            magnitude_limit,
            max_radius_px,
            min_radius_px,
            max_alpha,
            min_alpha,
        )
        projected.append(
            ProjectedObject(
                record=record,
                horizon=position,
                point=project_chart(position, geometry),
                magnitude=record.magnitude,
                size=radius,
                alpha=alpha,
            )
        )
    return tuple(projected)
