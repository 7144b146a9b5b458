"""Planet ephemeris sources: JPL Horizons over HTTP, or a local JPL kernel via skyfield.

Both produce the same ten-column CSV text that ``catalog.parse_planets`` reads.
"""

import asyncio
import io
import logging
import math
from datetime import datetime, timedelta, timezone
from pathlib import Path

import httpx
from skyfield.api import Loader, wgs84
from skyfield.magnitudelib import planetary_magnitude

logger = logging.getLogger(__name__)

CSV_HEADER = (
    "Body,Date,RA_deg (App),Dec_deg (App),"
    "X(Sat-Prim)_Arcsec,Y(Sat-Prim)_Arcsec,"
    "X(Sat-Prim)_Rad,Y(Sat-Prim)_Rad,Distance_AU,Mag"
)

HORIZONS_API = "https://ssd.jpl.nasa.gov/api/horizons.api"

# Horizons major-body command ids
PLANETS: dict[str, str] = {
    "Mercury": "199",
    "Venus": "299",
    "Mars": "499",
    "Jupiter": "599",
    "Saturn": "699",
    "Uranus": "799",
    "Neptune": "899",
}
MOON: dict[str, str] = {"Moon": "301"}

PLANET_QUANTITIES = "1,2,3,5,6,9,20"
MOON_QUANTITIES = "1,2,3,9,20"

ARCSEC_PER_RAD = 206264.806
# Tangent point for the Moon's gnomonic offsets
_TANGENT_RA_DEG = 0.0
_TANGENT_DEC_DEG = 45.0

# skyfield target names in de421-style kernels
SKYFIELD_TARGETS: dict[str, str] = {
    "Mercury": "mercury",
    "Venus": "venus",
    "Mars": "mars",
    "Jupiter": "jupiter barycenter",
    "Saturn": "saturn barycenter",
    "Uranus": "uranus barycenter",
    "Neptune": "neptune barycenter",
    "Moon": "moon",
}


def horizons_params(
    command: str,
    center: str,
    start: datetime,
    stop: datetime,
    quantities: str,
) -> dict[str, str]:
    """Query parameters for a daily observer-table request."""
    return {
        "format": "json",
        "COMMAND": f"'{command}'",
        "CENTER": f"'{center}'",
        "EPHEM_TYPE": "OBSERVER",
        "START_TIME": f"'{start:%Y-%m-%d %H:%M}'",
        "STOP_TIME": f"'{stop:%Y-%m-%d %H:%M}'",
        "STEP_SIZE": "'1 d'",
        "QUANTITIES": f"'{quantities}'",
        "ANG_FORMAT": "'DEG'",
        "REF_SYSTEM": "'ICRF'",
        "CSV_FORMAT": "'YES'",
    }


def horizons_url(
    command: str,
    center: str,
    start: datetime,
    stop: datetime,
    quantities: str,
) -> str:
    """Full request URL, handy for logging and debugging."""
    request = httpx.Request(
        "GET", HORIZONS_API, params=horizons_params(command, center, start, stop, quantities)
    )
    return str(request.url)


def gnomonic_offset(ra_deg: float, dec_deg: float) -> tuple[float, float]:
    """Tangent-plane (x, y) in radians about RA 0 deg, Dec 45 deg."""
    ra = math.radians(ra_deg)
    dec = math.radians(dec_deg)
    ra0 = math.radians(_TANGENT_RA_DEG)
    dec0 = math.radians(_TANGENT_DEC_DEG)

    d_ra = ra - ra0
    denom = math.sin(dec0) * math.sin(dec) + math.cos(dec0) * math.cos(dec) * math.cos(d_ra)
    if abs(denom) < 1e-12:
        return math.nan, math.nan
    x = math.cos(dec) * math.sin(d_ra) / denom
    y = (math.cos(dec0) * math.sin(dec) - math.sin(dec0) * math.cos(dec) * math.cos(d_ra)) / denom
    return x, y


def _format_row(fields: list[str]) -> str:
    return ",".join(fields)


def parse_horizons_result(
    result: str, body: str, target_date: datetime, is_moon: bool = False
) -> list[str]:
    """Extract CSV rows for one body from a Horizons ``result`` text block.

    Only rows between ``$$SOE`` and ``$$EOE`` dated on ``target_date``'s day are
    kept. Planet rows take RA/Dec from columns 5/6, satellite-primary offsets
    from 11/12, distance from 16 and magnitude from 14. Moon rows take RA/Dec
    from 3/4, compute gnomonic offsets, and read distance/magnitude from 11/9.

    Returns:
        CSV lines (without header) in the fixed ten-column schema.
    """
    rows: list[str] = []
    inside = False
    for line in result.splitlines():
        if "$$SOE" in line:
            inside = True
            continue
        if "$$EOE" in line:
            break
        if not inside or not line.strip():
            continue

        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 5:
            continue
        try:
            entry_date = datetime.strptime(parts[0], "%Y-%b-%d %H:%M")
        except ValueError:
            continue
        if entry_date.date() != target_date.date():
            continue

        try:
            if not is_moon:
                x_arcsec = float(parts[11])
                y_arcsec = float(parts[12])
                fields = [
                    body,
                    parts[0],
                    parts[5],
                    parts[6],
                    parts[11],
                    parts[12],
                    repr(math.radians(x_arcsec / 3600.0)),
                    repr(math.radians(y_arcsec / 3600.0)),
                    parts[16],
                    parts[14],
                ]
            else:
                x_rad, y_rad = gnomonic_offset(float(parts[3]), float(parts[4]))
                fields = [
                    body,
                    parts[0],
                    parts[3],
                    parts[4],
                    f"{x_rad * ARCSEC_PER_RAD:.3f}",
                    f"{y_rad * ARCSEC_PER_RAD:.3f}",
                    repr(x_rad),
                    repr(y_rad),
                    parts[11],
                    parts[9],
                ]
        except (ValueError, IndexError) as exc:
            logger.warning("Horizons row for %s skipped: %s", body, exc)
            continue
        rows.append(_format_row(fields))
    return rows


async def _fetch_body(
    client: httpx.AsyncClient,
    body: str,
    params: dict[str, str],
    target_date: datetime,
    is_moon: bool,
) -> list[str]:
    response = await client.get(HORIZONS_API, params=params)
    response.raise_for_status()
    result = response.json().get("result")
    if not result:
        logger.error("No ephemeris returned for %s", body)
        return []
    return parse_horizons_result(result, body, target_date, is_moon)


async def fetch_horizons_csv(
    latitude_deg: float,
    longitude_deg: float,
    local_dt: datetime,
    client: httpx.AsyncClient | None = None,
    altitude_km: float = 0.0,
) -> str:
    """Query Horizons for every planet and the Moon and build the planet CSV.

    One request per body is awaited in sequence. A body whose request fails is
    logged and left out; the remaining bodies are still fetched.

    Args:
        latitude_deg: Observer latitude.
        longitude_deg: Observer longitude, east-positive.
        local_dt: Start of the one-day window (its wall-clock is sent as-is).
        client: Optional shared client (tests pass one with a mock transport).
        altitude_km: Observer altitude for the topocentric centre.

    Returns:
        CSV text with the fixed header.
    """
    start = local_dt.replace(tzinfo=None)
    stop = start + timedelta(days=1)
    center = f"{latitude_deg},{longitude_deg},{altitude_km}@399"

    owns_client = client is None
    if client is None:
        client = httpx.AsyncClient(timeout=30)

    lines = [CSV_HEADER]
    requests = [(body, cmd, PLANET_QUANTITIES, False) for body, cmd in PLANETS.items()]
    requests += [(body, cmd, MOON_QUANTITIES, True) for body, cmd in MOON.items()]
    try:
        for body, command, quantities, is_moon in requests:
            logger.info("Querying Horizons for %s", body)
            params = horizons_params(command, center, start, stop, quantities)
            logger.debug("Url: %s", horizons_url(command, center, start, stop, quantities))
            try:
                lines += await _fetch_body(client, body, params, start, is_moon)
            except (httpx.HTTPError, ValueError) as exc:
                logger.error("Error querying %s: %s", body, exc)
    finally:
        if owns_client:
            await client.aclose()

    logger.info("Built ephemeris CSV with %d rows", len(lines) - 1)
    return "\n".join(lines) + "\n"


def fetch_horizons_csv_sync(
    latitude_deg: float, longitude_deg: float, local_dt: datetime
) -> str:
    """Blocking wrapper around ``fetch_horizons_csv`` for scripts."""
    return asyncio.run(fetch_horizons_csv(latitude_deg, longitude_deg, local_dt))


def _moon_magnitude(phase_angle_deg: float) -> float:
    # Allen's approximation for the Moon's V magnitude
    a = abs(phase_angle_deg)
    return -12.73 + 0.026 * a + 4.0e-9 * a**4


def skyfield_planet_csv(
    latitude_deg: float,
    longitude_deg: float,
    utc: datetime,
    kernel_path: Path,
) -> str:
    """Build the planet CSV offline from a local JPL kernel (e.g. de421.bsp).

    Args:
        latitude_deg: Observer latitude.
        longitude_deg: Observer longitude, east-positive.
        utc: Render instant (aware or naive UTC).
        kernel_path: Path to a ``.bsp`` file; loaded through skyfield's Loader
            so nothing is downloaded.

    Returns:
        CSV text with the fixed header, one row per body.
    """
    loader = Loader(str(kernel_path.parent))
    eph = loader(kernel_path.name)
    ts = loader.timescale(builtin=True)

    if utc.tzinfo is None:
        utc = utc.replace(tzinfo=timezone.utc)
    t = ts.from_datetime(utc)
    earth = eph["earth"]
    observer = earth + wgs84.latlon(latitude_degrees=latitude_deg, longitude_degrees=longitude_deg)

    out = io.StringIO()
    out.write(CSV_HEADER + "\n")
    date_str = f"{utc:%Y-%b-%d %H:%M}"
    for body, target_name in SKYFIELD_TARGETS.items():
        target = eph[target_name]
        apparent = observer.at(t).observe(target).apparent()
        ra, dec, distance = apparent.radec("date")
        ra_deg = ra.hours * 15.0
        dec_deg = dec.degrees

        geocentric = earth.at(t).observe(target)
        if body == "Moon":
            magnitude = _moon_magnitude(geocentric.phase_angle(eph["sun"]).degrees)
        else:
            try:
                magnitude = float(planetary_magnitude(geocentric))
            except (ValueError, KeyError):
                magnitude = math.nan

        x_rad, y_rad = gnomonic_offset(ra_deg, dec_deg)
        out.write(
            _format_row(
                [
                    body,
                    date_str,
                    f"{ra_deg:.6f}",
                    f"{dec_deg:.6f}",
                    f"{x_rad * ARCSEC_PER_RAD:.3f}",
                    f"{y_rad * ARCSEC_PER_RAD:.3f}",
                    repr(x_rad),
                    repr(y_rad),
                    f"{distance.au:.9f}",
                    f"{magnitude:.3f}",
                ]
            )
            + "\n"
        )
    return out.getvalue()
