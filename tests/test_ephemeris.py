import asyncio
import io
import math
from datetime import datetime

import httpx
import pytest

from skydome.catalog import parse_planets
from skydome.config import Settings
from skydome.ephemeris import (
    CSV_HEADER,
    HORIZONS_API,
    fetch_horizons_csv,
    gnomonic_offset,
    horizons_url,
    parse_horizons_result,
    skyfield_planet_csv,
)

TARGET = datetime(2024, 6, 1)


def _planet_line(date, ra, dec, x_arcsec, y_arcsec, mag, dist):
    parts = [date, "", "", "55.1", "19.9", ra, dec, "0.1", "0.2", "10.5", "20.5"]
    parts += [x_arcsec, y_arcsec, "n.a.", mag, "1.2", dist, ""]
    return ", ".join(parts)


def _moon_line(date, ra, dec, mag, dist):
    parts = [date, "*", "m", ra, dec, "0.1", "0.2", "1.0", "2.0", mag, "0.5", dist, ""]
    return ", ".join(parts)


def _result(*lines):
    return "\n".join(
        [
            "*******************************************************************",
            "Ephemeris / API_USER",
            " Date__(UT)__HR:MN, , , R.A._(ICRF), DEC_(ICRF), ...",
            "$$SOE",
            *lines,
            "$$EOE",
            "Column meaning:",
            _planet_line("2024-Jun-01 00:00", "1", "1", "1", "1", "1", "1"),
        ]
    )


PLANET_RESULT = _result(
    _planet_line("2024-Jun-01 00:00", "56.01", "20.12", "3600", "-7200", "-2.05", "5.91"),
    _planet_line("2024-Jun-02 00:00", "56.25", "20.17", "3601", "-7201", "-2.04", "5.90"),
)
MOON_RESULT = _result(_moon_line("2024-Jun-01 00:00", "0.0", "45.0", "-9.8", "0.002571"))


def test_parse_planet_rows():
    rows = parse_horizons_result(PLANET_RESULT, "Jupiter", TARGET)
    assert len(rows) == 1
    fields = rows[0].split(",")
    assert fields[:6] == ["Jupiter", "2024-Jun-01 00:00", "56.01", "20.12", "3600", "-7200"]
    assert float(fields[6]) == pytest.approx(math.radians(1.0))
    assert float(fields[7]) == pytest.approx(math.radians(-2.0))
    assert fields[8:] == ["5.91", "-2.05"]


def test_parse_moon_rows():
    rows = parse_horizons_result(MOON_RESULT, "Moon", TARGET, is_moon=True)
    assert len(rows) == 1
    fields = rows[0].split(",")
    assert fields[:4] == ["Moon", "2024-Jun-01 00:00", "0.0", "45.0"]
    # RA 0 / Dec 45 is the tangent point
    assert float(fields[6]) == pytest.approx(0.0, abs=1e-12)
    assert float(fields[7]) == pytest.approx(0.0, abs=1e-12)
    assert fields[8:] == ["0.002571", "-9.8"]


def test_parse_skips_malformed_rows():
    broken = _result("2024-Jun-01 00:00, , , 1, 2", "garbage line without commas")
    assert parse_horizons_result(broken, "Mars", TARGET) == []


def test_gnomonic_offset():
    assert gnomonic_offset(0.0, 45.0) == pytest.approx((0.0, 0.0))
    x, y = gnomonic_offset(10.0, 45.0)
    assert x > 0
    x, y = gnomonic_offset(0.0, 50.0)
    assert x == pytest.approx(0.0, abs=1e-12)
    assert y == pytest.approx(math.tan(math.radians(5.0)))
    assert all(math.isnan(v) for v in gnomonic_offset(180.0, 45.0))


def test_horizons_url():
    url = horizons_url("599", "0,0,0@399", TARGET, datetime(2024, 6, 2), "1,2,3")
    assert url.startswith(HORIZONS_API + "?")
    assert "format=json" in url
    assert "599" in url


def _mock_horizons(request: httpx.Request) -> httpx.Response:
    command = request.url.params["COMMAND"].strip("'")
    assert request.url.params["START_TIME"] == "'2024-06-01 00:00'"
    assert request.url.params["STOP_TIME"] == "'2024-06-02 00:00'"
    if command == "499":
        return httpx.Response(503, text="busy")
    if command == "301":
        return httpx.Response(200, json={"result": MOON_RESULT})
    return httpx.Response(200, json={"result": PLANET_RESULT})


def test_fetch_horizons_csv_isolates_failures(caplog):
    async def run():
        transport = httpx.MockTransport(_mock_horizons)
        async with httpx.AsyncClient(transport=transport) as client:
            return await fetch_horizons_csv(40.7, -74.0, TARGET, client=client)

    text = asyncio.run(run())
    lines = text.splitlines()
    assert lines[0] == CSV_HEADER
    assert [line.split(",")[0] for line in lines[1:]] == [
        "Mercury",
        "Venus",
        "Jupiter",
        "Saturn",
        "Uranus",
        "Neptune",
        "Moon",
    ]
    assert "Mars" in caplog.text

    planets = parse_planets(io.StringIO(text))
    assert len(planets) == 7
    assert planets[-1].name == "Moon"
    assert planets[-1].magnitude == pytest.approx(-9.8)


def test_fetch_horizons_csv_handles_empty_result():
    def handler(request):
        return httpx.Response(200, json={"result": ""})

    async def run():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await fetch_horizons_csv(0.0, 0.0, TARGET, client=client)

    assert asyncio.run(run()) == CSV_HEADER + "\n"


@pytest.mark.skipif(
    not Settings().ephemeris_kernel.exists(), reason="JPL kernel not present in resources/"
)
def test_skyfield_planet_csv():
    text = skyfield_planet_csv(40.7, -74.0, datetime(2024, 6, 2, 2, 0), Settings().ephemeris_kernel)
    planets = parse_planets(io.StringIO(text))
    assert [p.name for p in planets] == [
        "Mercury",
        "Venus",
        "Mars",
        "Jupiter",
        "Saturn",
        "Uranus",
        "Neptune",
        "Moon",
    ]
    assert all(0.0 <= p.ra_deg < 360.0 for p in planets)
    assert planets[-1].magnitude < -5.0
