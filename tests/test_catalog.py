import io
import math
from datetime import datetime, timezone

import pytest

from skydome.catalog import (
    build_hd_index,
    load_constellation_lines,
    load_planets,
    load_star_catalog,
    parse_float,
    parse_int,
    parse_planet_date,
    parse_star_catalog,
    select_planet_snapshots,
)


def test_short_rows_are_skipped(catalog, data_dir):
    lines = (data_dir / "stars.csv").read_text(encoding="utf-8").splitlines()
    full_rows = [line for line in lines[1:] if len(line.split(",")) >= 27]
    assert len(full_rows) == len(lines) - 2
    assert len(catalog.stars) == len(full_rows)
    assert 70002 not in {s.ident for s in catalog.stars}


def test_dropping_the_short_row_changes_nothing(catalog, data_dir):
    lines = (data_dir / "stars.csv").read_text(encoding="utf-8").splitlines()
    without = parse_star_catalog([line for line in lines if not line.startswith("70002,")])
    assert [s.ident for s in without.stars] == [s.ident for s in catalog.stars]


def test_star_fields(catalog):
    polaris = next(s for s in catalog.stars if s.name == "Polaris")
    assert polaris.ident == 11734
    assert polaris.hd == 8890
    assert polaris.ra_deg == pytest.approx(2.529750 * 15.0)
    assert polaris.dec_deg == pytest.approx(89.264109)
    assert polaris.magnitude == pytest.approx(1.97)
    assert polaris.bayer_flamsteed == "1Alp UMi"
    assert polaris.spectral_type == "F7:Ib-IIv SB"


def test_missing_values_are_nan_or_minus_one(catalog):
    unnamed = next(s for s in catalog.stars if s.ident == 70001)
    assert math.isnan(unnamed.magnitude)
    assert math.isnan(unnamed.distance_pc)
    assert unnamed.hd == -1
    assert unnamed.name == ""


def test_visible_subset_is_filtered_and_sorted(catalog):
    assert [s.ident for s in catalog.visible] == [
        32263,  # Sirius
        91262,  # Vega
        24378,  # Rigel
        27919,  # Betelgeuse
        26662,  # Bellatrix
        11734,  # Polaris
        50,
        100,
    ]
    assert all(s.magnitude <= catalog.magnitude_limit for s in catalog.visible)


def test_equal_magnitude_tie_broken_by_id(catalog):
    ties = [s.ident for s in catalog.visible if s.magnitude == 3.5]
    assert ties == [50, 100]


def test_magnitude_limit_is_configurable(data_dir):
    bright = load_star_catalog(data_dir / "stars.csv", magnitude_limit=1.0)
    assert [s.name for s in bright.visible] == ["Sirius", "Vega", "Rigel", "Betelgeuse"]


def test_missing_star_file_gives_empty_catalog(tmp_path, caplog):
    empty = load_star_catalog(tmp_path / "nope.csv")
    assert empty.stars == ()
    assert empty.visible == ()
    assert "not found" in caplog.text


def test_empty_star_text():
    assert parse_star_catalog(io.StringIO("")).stars == ()


def test_parse_helpers():
    assert parse_float(" 1.5 ") == 1.5
    assert math.isnan(parse_float(""))
    assert math.isnan(parse_float("abc"))
    assert parse_int("42") == 42
    assert parse_int("") == -1
    assert parse_int("4.2") == -1


def test_planet_dates():
    assert parse_planet_date("2024-Jun-01 00:00") == datetime(2024, 6, 1)
    assert parse_planet_date("A.D. 2024-Jun-01 06:30") == datetime(2024, 6, 1, 6, 30)
    assert parse_planet_date("2024-06-01") == datetime(2024, 6, 1)
    with pytest.raises(ValueError):
        parse_planet_date("yesterday")


def test_planets(data_dir):
    planets = load_planets(data_dir / "planets.csv")
    # The nine-field Mars row is dropped
    assert [p.name for p in planets] == ["Jupiter", "Jupiter", "Mars", "Moon"]
    jupiter = planets[0]
    assert jupiter.ra_deg == pytest.approx(56.012345)
    assert jupiter.dec_deg == pytest.approx(20.123456)
    assert jupiter.magnitude == pytest.approx(-2.05)
    assert jupiter.distance_au == pytest.approx(5.91)
    assert planets[3].x_rad == pytest.approx(-0.50620)


def test_missing_planet_file(tmp_path):
    assert load_planets(tmp_path / "nope.csv") == ()


def test_nearest_planet_snapshot(data_dir):
    planets = load_planets(data_dir / "planets.csv")
    late = select_planet_snapshots(planets, datetime(2024, 6, 1, 20, 0, tzinfo=timezone.utc))
    assert [p.name for p in late] == ["Jupiter", "Mars", "Moon"]
    assert late[0].date == datetime(2024, 6, 2)

    early = select_planet_snapshots(planets, datetime(2024, 6, 1, 3, 0))
    assert early[0].date == datetime(2024, 6, 1)


def test_constellation_lines(data_dir):
    segments = load_constellation_lines(data_dir / "constellation_lines.csv")
    assert [(s.constellation, s.hd_from, s.hd_to) for s in segments] == [
        ("ORI", 39801, 35468),
        ("ORI", 39801, 34085),
    ]


def test_bundled_constellation_lines_parse():
    from skydome.config import Settings

    segments = load_constellation_lines(Settings().constellation_lines)
    assert len(segments) > 10
    assert {s.constellation for s in segments} >= {"ORI", "UMA", "CAS", "CYG"}


def test_hd_index(catalog):
    index = build_hd_index(catalog.stars)
    assert index[39801].name == "Betelgeuse"
    assert -1 not in index
    assert 0 not in index
