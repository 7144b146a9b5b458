from datetime import datetime, timezone

import pytest

from skydome.astrotime import local_to_utc
from skydome.observer import (
    ObserverInputError,
    build_snapshot,
    parse_coordinate,
    parse_local_datetime,
    resolve_timezone,
)


@pytest.mark.parametrize(
    "text, kind, expected",
    [
        ("40.7128", "latitude", 40.7128),
        ("-74.006", "longitude", -74.006),
        ("40 42 46.08 N", "latitude", 40.7128),
        ("74°0'21.6\"W", "longitude", -74.006),
        ("40:42.8N", "latitude", 40 + 42.8 / 60),
        ("33 52 s", "latitude", -(33 + 52 / 60)),
        ("-33 52", "latitude", -(33 + 52 / 60)),
        ("151 12.5 E", "longitude", 151 + 12.5 / 60),
        ("90", "latitude", 90.0),
        ("-180", "longitude", -180.0),
    ],
)
def test_parse_coordinate(text, kind, expected):
    assert parse_coordinate(text, kind) == pytest.approx(expected)


@pytest.mark.parametrize(
    "text, kind",
    [
        ("", "latitude"),
        ("abc", "latitude"),
        ("91", "latitude"),
        ("-90.5", "latitude"),
        ("181", "longitude"),
        ("10 E", "latitude"),
        ("10 N", "longitude"),
        ("40 75 N", "latitude"),
    ],
)
def test_parse_coordinate_rejects(text, kind):
    with pytest.raises(ObserverInputError):
        parse_coordinate(text, kind)


def test_parse_coordinate_unknown_kind():
    with pytest.raises(ValueError):
        parse_coordinate("10", "altitude")


def test_parse_local_datetime():
    assert parse_local_datetime("2024-06-01", "22:00") == datetime(2024, 6, 1, 22, 0)
    assert parse_local_datetime(" 1900-01-01", "00:00 ") == datetime(1900, 1, 1)
    assert parse_local_datetime("2100-01-01", "00:00") == datetime(2100, 1, 1)


@pytest.mark.parametrize(
    "date_text, time_text",
    [
        ("1899-12-31", "23:59"),
        ("2100-01-01", "00:01"),
        ("2024/06/01", "22:00"),
        ("2024-06-01", "10pm"),
        ("2024-02-30", "12:00"),
    ],
)
def test_parse_local_datetime_rejects(date_text, time_text):
    with pytest.raises(ObserverInputError):
        parse_local_datetime(date_text, time_text)


def test_snapshot_without_zone_is_naive():
    snapshot = build_snapshot("40.7128", "-74.006", "2024-06-01", "22:00")
    assert snapshot.latitude_deg == pytest.approx(40.7128)
    assert snapshot.longitude_deg == pytest.approx(-74.006)
    assert snapshot.local_datetime == datetime(2024, 6, 1, 22, 0)
    assert snapshot.local_datetime.tzinfo is None


def test_snapshot_with_named_zone():
    snapshot = build_snapshot("40.7128", "-74.006", "2024-06-01", "22:00", "America/New_York")
    assert local_to_utc(snapshot.local_datetime) == datetime(
        2024, 6, 2, 2, 0, tzinfo=timezone.utc
    )


def test_snapshot_with_winter_zone():
    snapshot = build_snapshot("35.18", "129.07", "1995-01-15", "00:00", "Asia/Seoul")
    assert local_to_utc(snapshot.local_datetime) == datetime(
        1995, 1, 14, 15, 0, tzinfo=timezone.utc
    )


def test_snapshot_unknown_zone():
    with pytest.raises(ObserverInputError):
        build_snapshot("0", "0", "2024-06-01", "22:00", "Mars/Olympus_Mons")


def test_resolve_timezone():
    assert resolve_timezone(40.7128, -74.006) == "America/New_York"
    assert resolve_timezone(35.18, 129.07) == "Asia/Seoul"


def test_snapshot_with_auto_zone():
    snapshot = build_snapshot("35.18", "129.07", "2024-06-01", "21:00", "auto")
    assert local_to_utc(snapshot.local_datetime) == datetime(
        2024, 6, 1, 12, 0, tzinfo=timezone.utc
    )
