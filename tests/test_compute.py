import math
from datetime import datetime, timedelta, timezone

import pytest

from skydome.astrotime import derive_observer_time
from skydome.catalog import load_planets
from skydome.compute import (
    ChartGeometry,
    MissingPrerequisiteError,
    compute_chart_points,
    compute_sky_data,
    horizontal_position,
    magnitude_visual,
    project_chart,
    project_dome,
    visible_positions,
)
from skydome.config import ChartStyle, DomeStyle
from skydome.models import CelestialRecord, HorizonPosition, ObserverSnapshot


def test_chart_geometry():
    geometry = ChartGeometry.for_size(2048, 1024)
    assert (geometry.cx, geometry.cy, geometry.radius) == (1024, 512, 506.0)


def test_zenith_projects_to_chart_centre():
    geometry = ChartGeometry.for_size(512, 512)
    point = project_chart(HorizonPosition(math.pi / 2, 1.234), geometry)
    assert (point.x, point.y, point.valid) == (256, 256, True)


def test_horizon_projects_to_chart_radius():
    geometry = ChartGeometry.for_size(512, 512)
    north = project_chart(HorizonPosition(0.0, 0.0), geometry)
    east = project_chart(HorizonPosition(0.0, math.pi / 2), geometry)
    assert (north.x, north.y, north.valid) == (256, 506, True)
    assert (east.x, east.y, east.valid) == (506, 256, True)


def test_star_at_zenith_lands_on_centre(new_york_snapshot):
    time = derive_observer_time(new_york_snapshot)
    record = CelestialRecord(1, time.lst_deg, new_york_snapshot.latitude_deg, 1.0, "Z")
    position = horizontal_position(record, time)
    assert position.altitude_rad == pytest.approx(math.pi / 2, abs=1e-6)
    point = project_chart(position, ChartGeometry.for_size(1024, 1024))
    assert (point.x, point.y) == (512, 512)


def test_dome_projection():
    horizon_north = project_dome(HorizonPosition(0.0, 0.0), 100.0)
    assert (horizon_north.x, horizon_north.y, horizon_north.z) == pytest.approx((0, 0, 100))
    zenith = project_dome(HorizonPosition(math.pi / 2, 0.0), 100.0)
    assert (zenith.x, zenith.y, zenith.z) == pytest.approx((0, 100, 0), abs=1e-9)
    east = project_dome(HorizonPosition(0.0, math.pi / 2), 50.0)
    assert (east.x, east.y, east.z) == pytest.approx((50, 0, 0), abs=1e-9)


def test_circumpolar_star_never_culled(catalog):
    polaris = next(s for s in catalog.stars if s.name == "Polaris")
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for minutes in range(0, 24 * 60, 20):
        snapshot = ObserverSnapshot(40.0, -74.0, start + timedelta(minutes=minutes))
        time = derive_observer_time(snapshot)
        visible = list(visible_positions([polaris], time))
        assert len(visible) == 1
        altitude = math.degrees(visible[0][1].altitude_rad)
        assert 39.0 < altitude < 41.0


def test_records_without_position_are_skipped(new_york_snapshot):
    time = derive_observer_time(new_york_snapshot)
    record = CelestialRecord(1, math.nan, 10.0, 1.0, "X")
    assert list(visible_positions([record], time)) == []


def test_magnitude_mapping_is_monotonic():
    previous = None
    for mag in (-1.5, 0.0, 0.5, 1.0, 2.0, 3.5, 5.0, 6.0, 7.0):
        size, alpha = magnitude_visual(mag, 6.0, 4.5, 0.7, 1.0, 0.15)
        if previous is not None:
            assert size <= previous[0]
            assert alpha <= previous[1]
        previous = (size, alpha)


def test_magnitude_mapping_end_points():
    assert magnitude_visual(0.0, 6.0, 4.5, 0.7, 1.0, 0.15) == (4.5, 1.0)
    assert magnitude_visual(6.0, 6.0, 4.5, 0.7, 1.0, 0.15) == pytest.approx((0.7, 0.15))
    assert magnitude_visual(math.nan, 6.0, 4.5, 0.7, 1.0, 0.15) == pytest.approx((0.7, 0.15))


def test_sky_data(catalog, new_york_snapshot, data_dir):
    planets = load_planets(data_dir / "planets.csv")
    sky = compute_sky_data(new_york_snapshot, catalog, planets)

    # Stars come back in VisibleSet order, only those above the horizon
    visible_order = [s.ident for s in catalog.visible]
    idents = [obj.record.ident for obj in sky.stars]
    assert idents == [i for i in visible_order if i in idents]
    assert all(obj.horizon.altitude_rad > 0 for obj in sky.stars + sky.planets)
    for obj in sky.stars:
        p = obj.point
        assert math.sqrt(p.x**2 + p.y**2 + p.z**2) == pytest.approx(sky.sky_radius)

    names = [obj.record.name for obj in sky.planets]
    assert len(names) == len(set(names))
    assert sky.limiting_magnitude == catalog.magnitude_limit


def test_projection_is_deterministic(catalog, new_york_snapshot):
    first = compute_sky_data(new_york_snapshot, catalog, style=DomeStyle(sky_radius=10.0))
    second = compute_sky_data(new_york_snapshot, catalog, style=DomeStyle(sky_radius=10.0))

    def summary(sky):
        return [(o.record.ident, o.point, o.size, o.alpha) for o in sky.stars]

    assert summary(first) == summary(second)
    assert first.time == second.time


def test_chart_points_flag_validity(catalog, new_york_snapshot):
    points = compute_chart_points(new_york_snapshot, catalog, ChartStyle(width=512, height=512))
    geometry = ChartGeometry.for_size(512, 512)
    for obj in points:
        dx = obj.point.x - geometry.cx
        dy = obj.point.y - geometry.cy
        assert obj.point.valid == (dx * dx + dy * dy <= geometry.radius**2)


def test_missing_prerequisites(catalog, new_york_snapshot):
    with pytest.raises(MissingPrerequisiteError):
        compute_sky_data(None, catalog)
    with pytest.raises(MissingPrerequisiteError):
        compute_sky_data(new_york_snapshot, None)
    with pytest.raises(MissingPrerequisiteError):
        compute_chart_points(None, catalog)


def test_chart_points_follow_style(catalog, new_york_snapshot):
    style = ChartStyle(width=300, height=200, max_star_radius_px=9.0, min_alpha=0.5)
    points = compute_chart_points(new_york_snapshot, catalog, style)
    assert points
    brightest = min(points, key=lambda obj: obj.record.magnitude)
    expected = magnitude_visual(
        brightest.record.magnitude, catalog.magnitude_limit, 9.0, 0.7, 1.0, 0.5
    )
    assert (brightest.size, brightest.alpha) == pytest.approx(expected)
    assert all(obj.alpha >= 0.5 for obj in points)


@pytest.mark.parametrize("latitude", [40.0, 1.0, 89.5])
def test_star_exactly_at_pole_stays_at_latitude(latitude):
    pole = CelestialRecord(1, 0.0, 90.0, 2.0, "Pole")
    start = datetime(2024, 3, 1, tzinfo=timezone.utc)
    for hours in range(0, 24, 3):
        snapshot = ObserverSnapshot(latitude, 12.5, start + timedelta(hours=hours))
        visible = list(visible_positions([pole], derive_observer_time(snapshot)))
        assert len(visible) == 1
        position = visible[0][1]
        assert math.degrees(position.altitude_rad) == pytest.approx(latitude, abs=1e-9)
        assert 0.0 <= position.azimuth_rad < 2 * math.pi
