"""Observer input: coordinate/date parsing, validation, and timezone resolution."""

import re
from datetime import datetime

import pytz
from timezonefinder import TimezoneFinder

from skydome.models import ObserverSnapshot

MIN_DATE = datetime(1900, 1, 1)
MAX_DATE = datetime(2100, 1, 1)

_LIMITS = {"latitude": 90.0, "longitude": 180.0}
_HEMISPHERES = {"latitude": "NS", "longitude": "EW"}

# "40 42 46.08 N", "74°0'21.6\"W", "40:42.8N", "-33 52"
_DMS = re.compile(
    r"""^\s*(?P<sign>[-+])?\s*
        (?P<deg>\d+(?:\.\d+)?)\s*[°d:]?\s*
        (?:(?P<min>\d+(?:\.\d+)?)\s*['′m:]?\s*)?
        (?:(?P<sec>\d+(?:\.\d+)?)\s*(?:"|″|''|s)?\s*)?
        (?P<hemi>[NSEWnsew])?\s*$""",
    re.VERBOSE,
)

_tf = TimezoneFinder()


class ObserverInputError(ValueError):
    """Raw observer input could not be turned into a snapshot."""


def parse_coordinate(text: str, kind: str) -> float:
    """Parse a latitude or longitude in decimal or degrees/minutes/hemisphere form.

    Args:
        text: ``"40.7128"``, ``"-74.006"``, ``"40 42.8 N"``, ``"74°0'21.6\\"W"``.
        kind: ``"latitude"`` or ``"longitude"``.

    Returns:
        Decimal degrees; south and west are negative.

    Raises:
        ObserverInputError: On unparseable text, a hemisphere letter that does not
            belong to ``kind``, or a value out of range.
    """
    if kind not in _LIMITS:
        raise ValueError(f"kind must be 'latitude' or 'longitude', got {kind!r}")
    raw = text.strip()
    if not raw:
        raise ObserverInputError(f"{kind.capitalize()} is empty.")

    try:
        value = float(raw)
    except ValueError:
        value = _parse_dms(raw, kind)

    limit = _LIMITS[kind]
    if not -limit <= value <= limit:
        raise ObserverInputError(
            f"{kind.capitalize()} must be a number between {-limit:g} and {limit:g}."
        )
    return value


def _parse_dms(raw: str, kind: str) -> float:
    match = _DMS.match(raw)
    if match is None:
        raise ObserverInputError(f"{kind.capitalize()} {raw!r} is not a coordinate.")

    minutes = float(match["min"] or 0.0)
    seconds = float(match["sec"] or 0.0)
    if minutes >= 60 or seconds >= 60:
        raise ObserverInputError(f"{kind.capitalize()} {raw!r} has minutes/seconds >= 60.")
    value = float(match["deg"]) + minutes / 60.0 + seconds / 3600.0

    hemi = (match["hemi"] or "").upper()
    if hemi and hemi not in _HEMISPHERES[kind]:
        raise ObserverInputError(f"Hemisphere {hemi!r} does not apply to a {kind}.")
    if match["sign"] == "-" or hemi in ("S", "W"):
        value = -value
    return value


def parse_local_datetime(date_text: str, time_text: str) -> datetime:
    """Parse ``yyyy-MM-dd`` and ``HH:mm`` into a naive wall-clock datetime.

    Raises:
        ObserverInputError: On bad formats or dates outside 1900-01-01..2100-01-01.
    """
    try:
        dt = datetime.strptime(f"{date_text.strip()} {time_text.strip()}", "%Y-%m-%d %H:%M")
    except ValueError as exc:
        raise ObserverInputError(
            "Date must be yyyy-MM-dd and time must be HH:mm."
        ) from exc
    if not MIN_DATE <= dt <= MAX_DATE:
        raise ObserverInputError("Date must be between 1900-01-01 and 2100-01-01.")
    return dt


def resolve_timezone(latitude_deg: float, longitude_deg: float) -> str:
    """IANA timezone name at a location.

    Raises:
        ObserverInputError: When no zone covers the location.
    """
    tz_str = _tf.timezone_at(lat=latitude_deg, lng=longitude_deg)
    if tz_str is None:
        raise ObserverInputError(
            f"Timezone not found: lat={latitude_deg}, lng={longitude_deg}"
        )
    return tz_str


def build_snapshot(
    latitude: str,
    longitude: str,
    date: str,
    time: str,
    tz: str | None = None,
) -> ObserverSnapshot:
    """Validate raw observer strings and build an ObserverSnapshot.

    Args:
        latitude: Latitude text (decimal or degrees/minutes/hemisphere).
        longitude: Longitude text, east-positive when decimal.
        date: ``yyyy-MM-dd``.
        time: ``HH:mm`` local wall-clock.
        tz: None keeps a naive wall-clock in the process's local zone;
            ``"auto"`` resolves the zone from the coordinates; anything else is
            an IANA zone name.

    Returns:
        ObserverSnapshot ready for rendering.

    Raises:
        ObserverInputError: On any invalid field.
    """
    lat = parse_coordinate(latitude, "latitude")
    lon = parse_coordinate(longitude, "longitude")
    local_dt = parse_local_datetime(date, time)

    if tz is not None:
        tz_name = resolve_timezone(lat, lon) if tz == "auto" else tz
        try:
            zone = pytz.timezone(tz_name)
        except pytz.UnknownTimeZoneError as exc:
            raise ObserverInputError(f"Unknown timezone: {tz_name}") from exc
        # Ambiguous/nonexistent wall-clock times resolve to standard time
        local_dt = zone.localize(local_dt, is_dst=False)

    return ObserverSnapshot(latitude_deg=lat, longitude_deg=lon, local_datetime=local_dt)
