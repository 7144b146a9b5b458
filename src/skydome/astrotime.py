"""Time and coordinate math: sidereal time and equatorial-to-horizontal transforms.

Every function here is pure. Angles are degrees unless the name says ``rad``.
"""

import math
from datetime import datetime, timezone

from skydome.models import ObserverSnapshot, ObserverTime

J2000_JD = 2451545.0
TWO_PI = 2.0 * math.pi


def normalize_degrees(deg: float) -> float:
    """Wrap an angle into [0, 360)."""
    deg = math.fmod(deg, 360.0)
    if deg < 0:
        deg += 360.0
    # fmod(-1e-17, 360) + 360 rounds to 360.0
    return 0.0 if deg >= 360.0 else deg


def normalize_radians(rad: float) -> float:
    """Wrap an angle into [0, 2pi)."""
    rad = math.fmod(rad, TWO_PI)
    if rad < 0:
        rad += TWO_PI
    return 0.0 if rad >= TWO_PI else rad


def local_to_utc(local_dt: datetime) -> datetime:
    """Convert an observer wall-clock time to an aware UTC datetime.

    A naive datetime is interpreted in the process's local timezone. An aware
    datetime is converted directly; one already in UTC passes through.
    """
    if local_dt.tzinfo is None:
        try:
            # astimezone() on a naive value applies the platform's local zone rules
            return local_dt.astimezone(timezone.utc)
        except (OverflowError, OSError):
            # Dates outside the platform's mktime range: use today's local offset
            offset = datetime.now().astimezone().utcoffset()
            return (local_dt - offset).replace(tzinfo=timezone.utc)
    return local_dt.astimezone(timezone.utc)


def julian_date(utc: datetime) -> float:
    """Julian Date of a UTC instant (Gregorian calendar, valid 1900-2100).

    Args:
        utc: Aware UTC datetime. Naive values are taken to already be UTC.

    Returns:
        Julian Date including the fractional day.
    """
    if utc.tzinfo is not None:
        utc = utc.astimezone(timezone.utc)

    year = utc.year
    month = utc.month
    day = utc.day + (
        utc.hour + (utc.minute + (utc.second + utc.microsecond / 1e6) / 60.0) / 60.0
    ) / 24.0

    if month <= 2:
        year -= 1
        month += 12

    a = year // 100
    b = 2 - a + a // 4

    return (
        math.floor(365.25 * (year + 4716))
        + math.floor(30.6001 * (month + 1))
        + day
        + b
        - 1524.5
    )


def greenwich_mean_sidereal_time_deg(jd: float) -> float:
    """GMST in degrees [0, 360) from the IAU cubic in centuries since J2000."""
    d = jd - J2000_JD
    t = d / 36525.0
    gmst = (
        280.46061837
        + 360.98564736629 * d
        + 0.000387933 * t * t
        - (t * t * t) / 38710000.0
    )
    return normalize_degrees(gmst)


def local_sidereal_time_deg(gmst_deg: float, longitude_deg_east: float) -> float:
    """LST in degrees [0, 360). Longitude is east-positive."""
    return normalize_degrees(gmst_deg + longitude_deg_east)


def hour_angle_deg(lst_deg: float, ra_deg: float) -> float:
    """Hour angle HA = LST - RA in degrees [0, 360)."""
    return normalize_degrees(lst_deg - ra_deg)


def equatorial_to_horizontal(
    ha_rad: float, dec_rad: float, lat_rad: float
) -> tuple[float, float]:
    """Convert hour angle/declination to altitude/azimuth for a latitude.

    Azimuth uses the atan2 form, which stays well-behaved near the poles and
    when cos(alt) approaches zero.

    Args:
        ha_rad: Hour angle in radians.
        dec_rad: Declination in radians.
        lat_rad: Observer latitude in radians.

    Returns:
        (altitude_rad, azimuth_rad) with altitude in [-pi/2, pi/2] and a
        north-based azimuth in [0, 2pi).
    """
    sin_lat = math.sin(lat_rad)
    cos_lat = math.cos(lat_rad)

    sin_alt = math.sin(dec_rad) * sin_lat + math.cos(dec_rad) * cos_lat * math.cos(ha_rad)
    alt = math.asin(max(-1.0, min(1.0, sin_alt)))

    # South-based; rotate by pi to measure from north
    az_south = math.atan2(
        math.sin(ha_rad),
        math.cos(ha_rad) * sin_lat - math.tan(dec_rad) * cos_lat,
    )
    return alt, normalize_radians(az_south + math.pi)


def derive_observer_time(snapshot: ObserverSnapshot) -> ObserverTime:
    """Compute the per-render time quantities for an observer snapshot."""
    utc = local_to_utc(snapshot.local_datetime)
    jd = julian_date(utc)
    gmst = greenwich_mean_sidereal_time_deg(jd)
    return ObserverTime(
        utc_instant=utc,
        julian_date=jd,
        gmst_deg=gmst,
        lst_deg=local_sidereal_time_deg(gmst, snapshot.longitude_deg),
        latitude_rad=math.radians(snapshot.latitude_deg),
    )
