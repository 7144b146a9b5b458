"""Catalog store: star, planet, and constellation-line loading.

Star rows follow the HYG v4 column layout. Numeric fields are parsed with
Python's locale-independent ``float``/``int``; failures become NaN (floats) or
-1 (integer ids) so absence stays distinguishable from a genuine zero.
"""

import csv
import logging
import math
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from skydome.models import (
    ConstellationSegment,
    PlanetRecord,
    StarCatalog,
    StarRecord,
)

logger = logging.getLogger(__name__)

DEFAULT_MAGNITUDE_LIMIT = 6.0
STAR_MIN_FIELDS = 27
PLANET_FIELDS = 10

_PLANET_DATE_FORMATS = (
    "%Y-%b-%d %H:%M",  # Horizons: 2024-Jun-01 00:00
    "%Y-%b-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
)


def parse_float(value: str) -> float:
    """Parse an invariant-format float, NaN when empty or malformed."""
    try:
        return float(value.strip())
    except ValueError:
        return math.nan


def parse_int(value: str) -> int:
    """Parse an integer id, -1 when empty or malformed."""
    try:
        return int(value.strip())
    except ValueError:
        return -1


def parse_planet_date(value: str) -> datetime:
    """Parse an ephemeris row date. Raises ValueError when no format matches."""
    value = value.strip().removeprefix("A.D. ")
    for fmt in _PLANET_DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return datetime.fromisoformat(value)


def _star_from_fields(fields: list[str]) -> StarRecord:
    ra_hours = parse_float(fields[7])
    return StarRecord(
        ident=parse_int(fields[0]),
        ra_deg=ra_hours * 15.0,
        dec_deg=parse_float(fields[8]),
        magnitude=parse_float(fields[13]),
        name=fields[6].strip(),
        hip=parse_int(fields[1]),
        hd=parse_int(fields[2]),
        hr=parse_int(fields[3]),
        gliese=fields[4].strip(),
        bayer_flamsteed=fields[5].strip(),
        ra_hours=ra_hours,
        distance_pc=parse_float(fields[9]),
        pm_ra=parse_float(fields[10]),
        pm_dec=parse_float(fields[11]),
        radial_velocity=parse_float(fields[12]),
        abs_magnitude=parse_float(fields[14]),
        spectral_type=fields[15].strip(),
        color_index=parse_float(fields[16]),
        x=parse_float(fields[17]),
        y=parse_float(fields[18]),
        z=parse_float(fields[19]),
        vx=parse_float(fields[20]),
        vy=parse_float(fields[21]),
        vz=parse_float(fields[22]),
        ra_rad=parse_float(fields[23]),
        dec_rad=parse_float(fields[24]),
        pm_ra_rad=parse_float(fields[25]),
        pm_dec_rad=parse_float(fields[26]),
    )


def visible_sort_key(star: StarRecord) -> tuple[float, int]:
    """Brightest first; catalog id breaks ties so iteration order is stable."""
    return (star.magnitude, star.ident)


def parse_star_catalog(
    lines: Iterable[str],
    magnitude_limit: float = DEFAULT_MAGNITUDE_LIMIT,
) -> StarCatalog:
    """Parse star CSV text (header first) into a StarCatalog.

    Rows with fewer than 27 fields, or that fail while being converted, are
    skipped with a warning. The visible subset is built and sorted in the same
    pass.

    Args:
        lines: CSV lines including the header row.
        magnitude_limit: Faintest magnitude kept in the visible subset.

    Returns:
        StarCatalog with every parsed star and the sorted visible subset.
    """
    reader = csv.reader(lines)
    header = next(reader, None)
    if header is None:
        logger.warning("Star catalog is empty")
        return StarCatalog(stars=(), visible=(), magnitude_limit=magnitude_limit)

    stars: list[StarRecord] = []
    visible: list[StarRecord] = []
    for row_number, fields in enumerate(reader, start=1):
        if not fields or all(not f.strip() for f in fields):
            continue
        if len(fields) < STAR_MIN_FIELDS:
            logger.warning(
                "Star catalog row %d skipped: %d fields, need %d",
                row_number,
                len(fields),
                STAR_MIN_FIELDS,
            )
            continue
        try:
            star = _star_from_fields(fields)
        except (ValueError, IndexError) as exc:
            logger.warning("Star catalog row %d skipped: %s", row_number, exc)
            continue

        stars.append(star)
        if not math.isnan(star.magnitude) and star.magnitude <= magnitude_limit:
            visible.append(star)

    visible.sort(key=visible_sort_key)
    logger.info(
        "Parsed %d star records, %d at magnitude <= %.1f",
        len(stars),
        len(visible),
        magnitude_limit,
    )
    return StarCatalog(
        stars=tuple(stars), visible=tuple(visible), magnitude_limit=magnitude_limit
    )


def load_star_catalog(
    path: Path, magnitude_limit: float = DEFAULT_MAGNITUDE_LIMIT
) -> StarCatalog:
    """Load a star catalog file. A missing file yields an empty catalog."""
    if not path.exists():
        logger.error("Star catalog not found: %s", path)
        return StarCatalog(stars=(), visible=(), magnitude_limit=magnitude_limit)
    with path.open(encoding="utf-8", newline="") as f:
        return parse_star_catalog(f, magnitude_limit)


def parse_planets(lines: Iterable[str]) -> tuple[PlanetRecord, ...]:
    """Parse planet ephemeris CSV text (header first).

    Each row carries exactly ten fields: body, date, RA (deg), Dec (deg),
    X/Y offset (arcsec), X/Y offset (rad), distance (AU), magnitude. Rows with
    NaN RA/Dec are kept; the projection engine skips them.
    """
    reader = csv.reader(lines)
    next(reader, None)

    planets: list[PlanetRecord] = []
    for row_number, fields in enumerate(reader, start=1):
        if not fields or all(not f.strip() for f in fields):
            continue
        if len(fields) != PLANET_FIELDS:
            logger.warning(
                "Planet row %d skipped: %d fields, need %d",
                row_number,
                len(fields),
                PLANET_FIELDS,
            )
            continue
        try:
            planet = PlanetRecord(
                ident=row_number,
                ra_deg=parse_float(fields[2]),
                dec_deg=parse_float(fields[3]),
                magnitude=parse_float(fields[9]),
                name=fields[0].strip(),
                date=parse_planet_date(fields[1]),
                x_arcsec=parse_float(fields[4]),
                y_arcsec=parse_float(fields[5]),
                x_rad=parse_float(fields[6]),
                y_rad=parse_float(fields[7]),
                distance_au=parse_float(fields[8]),
            )
        except ValueError as exc:
            logger.warning("Planet row %d skipped: %s", row_number, exc)
            continue
        planets.append(planet)

    logger.info("Loaded %d planet rows", len(planets))
    return tuple(planets)


def load_planets(path: Path) -> tuple[PlanetRecord, ...]:
    """Load a planet ephemeris CSV file. A missing file yields no planets."""
    if not path.exists():
        logger.error("Planet CSV not found: %s", path)
        return ()
    with path.open(encoding="utf-8", newline="") as f:
        return parse_planets(f)


def select_planet_snapshots(
    planets: Iterable[PlanetRecord], utc: datetime
) -> tuple[PlanetRecord, ...]:
    """Pick, for each body, the row dated nearest to a UTC instant.

    Returns:
        One record per body, ordered by body name.
    """
    target = utc.replace(tzinfo=None)
    best: dict[str, PlanetRecord] = {}
    for planet in planets:
        current = best.get(planet.name)
        if current is None or abs(planet.date - target) < abs(current.date - target):
            best[planet.name] = planet
    return tuple(best[name] for name in sorted(best))


def parse_constellation_lines(lines: Iterable[str]) -> tuple[ConstellationSegment, ...]:
    """Parse ``con,hd1,hd2`` rows into segments.

    ``#`` starts a comment anywhere on a line. A first line beginning with
    ``con`` is a header.
    """
    segments: list[ConstellationSegment] = []
    for index, raw in enumerate(lines):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        if index == 0 and line.lower().startswith("con"):
            continue
        line = line.split("#", 1)[0].strip()
        if not line:
            continue

        parts = [p.strip() for p in line.split(",")]
        if len(parts) < 3:
            logger.warning("Constellation line %d skipped: %r", index + 1, raw.rstrip())
            continue
        hd_from = parse_int(parts[1])
        hd_to = parse_int(parts[2])
        if hd_from <= 0 or hd_to <= 0:
            logger.warning("Constellation line %d skipped: bad HD id", index + 1)
            continue
        segments.append(
            ConstellationSegment(constellation=parts[0], hd_from=hd_from, hd_to=hd_to)
        )
    return tuple(segments)


def load_constellation_lines(path: Path) -> tuple[ConstellationSegment, ...]:
    """Load constellation segments. A missing file yields no segments."""
    if not path.exists():
        logger.error("Constellation CSV not found: %s", path)
        return ()
    with path.open(encoding="utf-8") as f:
        segments = parse_constellation_lines(f)
    logger.info("Loaded %d constellation segments from %s", len(segments), path.name)
    return segments


def build_hd_index(stars: Iterable[StarRecord]) -> dict[int, StarRecord]:
    """Map HD number to the first star carrying it. Ids <= 0 are ignored."""
    index: dict[int, StarRecord] = {}
    for star in stars:
        if star.hd > 0 and star.hd not in index:
            index[star.hd] = star
    return index
