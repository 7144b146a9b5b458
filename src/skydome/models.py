"""Data model definitions: explicit boundaries between input, catalog, compute, and render layers."""

import math
from dataclasses import dataclass
from datetime import datetime

import numpy as np


@dataclass(frozen=True)
class ObserverSnapshot:
    """Validated observer input. Read-only for the duration of a render."""

    latitude_deg: float  # [-90, 90]
    longitude_deg: float  # [-180, 180], east-positive
    local_datetime: datetime  # Naive = process-local wall clock; aware = converted as-is


@dataclass(frozen=True)
class ObserverTime:
    """Time quantities derived once per render from an ObserverSnapshot."""

    utc_instant: datetime  # tzinfo=UTC
    julian_date: float
    gmst_deg: float  # [0, 360)
    lst_deg: float  # [0, 360)
    latitude_rad: float


@dataclass(frozen=True)
class CelestialRecord:
    """Fields shared by every catalog entry."""

    ident: int  # Catalog primary key (-1 when unparseable)
    ra_deg: float  # Right ascension in degrees (NaN when missing)
    dec_deg: float  # Declination in degrees (NaN when missing)
    magnitude: float  # Apparent magnitude (NaN when missing)
    name: str  # Display name, empty when the object has none

    @property
    def has_position(self) -> bool:
        return not (math.isnan(self.ra_deg) or math.isnan(self.dec_deg))


@dataclass(frozen=True)
class StarRecord(CelestialRecord):
    """A single row of the star catalog."""

    hip: int  # Hipparcos catalogue number
    hd: int  # Henry Draper catalogue number
    hr: int  # Harvard Revised (Yale Bright Star) number
    gliese: str  # Gliese catalogue id
    bayer_flamsteed: str  # Bayer/Flamsteed designation
    ra_hours: float  # Right ascension as read from the catalog
    distance_pc: float  # Distance in parsecs
    pm_ra: float  # Proper motion in RA (mas/yr)
    pm_dec: float  # Proper motion in Dec (mas/yr)
    radial_velocity: float  # km/s
    abs_magnitude: float
    spectral_type: str
    color_index: float  # B-V
    x: float  # Cartesian position (parsecs)
    y: float
    z: float
    vx: float  # Cartesian velocity (parsecs/yr)
    vy: float
    vz: float
    ra_rad: float
    dec_rad: float
    pm_ra_rad: float
    pm_dec_rad: float


@dataclass(frozen=True)
class PlanetRecord(CelestialRecord):
    """A position/time snapshot for one solar-system body."""

    date: datetime  # Ephemeris row date (naive UTC)
    x_arcsec: float  # Tangent-plane offset components
    y_arcsec: float
    x_rad: float
    y_rad: float
    distance_au: float


@dataclass(frozen=True)
class StarCatalog:
    """Loaded star collection plus its precomputed visible subset."""

    stars: tuple[StarRecord, ...]
    visible: tuple[StarRecord, ...]  # mag <= magnitude_limit, sorted by (mag, ident)
    magnitude_limit: float


@dataclass(frozen=True)
class ConstellationSegment:
    """A single constellation line segment. A pair of HD numbers."""

    constellation: str  # IAU abbreviation ("ORI", "UMA", etc.)
    hd_from: int
    hd_to: int


@dataclass(frozen=True)
class HorizonPosition:
    """Horizontal coordinates of one record for one render."""

    altitude_rad: float  # [-pi/2, pi/2]
    azimuth_rad: float  # [0, 2pi), north-based, clockwise


@dataclass(frozen=True)
class DomePoint:
    """Position on the sky dome (y is up, z points north)."""

    x: float
    y: float
    z: float


@dataclass(frozen=True)
class ChartPoint:
    """Pixel coordinate on the 2D chart."""

    x: int
    y: int
    valid: bool  # False when outside the horizon disc


@dataclass(frozen=True)
class ProjectedObject:
    """One above-horizon record with its projection and visual attributes."""

    record: CelestialRecord
    horizon: HorizonPosition
    point: DomePoint | ChartPoint
    magnitude: float
    size: float  # Dome size or chart radius in pixels
    alpha: float


@dataclass(frozen=True)
class SkyData:
    """The sole input to the live dome renderers. Fully computed state."""

    snapshot: ObserverSnapshot
    time: ObserverTime
    stars: tuple[ProjectedObject, ...]  # VisibleSet order
    planets: tuple[ProjectedObject, ...]
    sky_radius: float
    limiting_magnitude: float


@dataclass
class ChartResult:
    """A composed chart buffer and what went into it."""

    buffer: np.ndarray  # (height, width, 3) uint8, row 0 at the top
    stars_drawn: int = 0
    planets_drawn: int = 0
    labels_drawn: int = 0
    lines_drawn: int = 0
    lines_skipped: dict[str, int] | None = None
