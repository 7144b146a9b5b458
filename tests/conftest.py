import math
from datetime import datetime, timezone
from pathlib import Path

import pytest

from skydome.catalog import load_star_catalog
from skydome.models import ObserverSnapshot, StarRecord

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def catalog():
    return load_star_catalog(DATA_DIR / "stars.csv")


@pytest.fixture
def new_york_snapshot() -> ObserverSnapshot:
    # 2024-06-01 22:00 EDT
    return ObserverSnapshot(
        latitude_deg=40.7128,
        longitude_deg=-74.006,
        local_datetime=datetime(2024, 6, 2, 2, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def make_star():
    """Factory for StarRecords with only the fields the renderers look at."""

    def _make(ident, ra_deg, dec_deg, magnitude, name="", hd=-1):
        nan = math.nan
        return StarRecord(
            ident=ident,
            ra_deg=ra_deg,
            dec_deg=dec_deg,
            magnitude=magnitude,
            name=name,
            hip=-1,
            hd=hd,
            hr=-1,
            gliese="",
            bayer_flamsteed="",
            ra_hours=ra_deg / 15.0,
            distance_pc=nan,
            pm_ra=nan,
            pm_dec=nan,
            radial_velocity=nan,
            abs_magnitude=nan,
            spectral_type="",
            color_index=nan,
            x=nan,
            y=nan,
            z=nan,
            vx=nan,
            vy=nan,
            vz=nan,
            ra_rad=math.radians(ra_deg),
            dec_rad=math.radians(dec_deg),
            pm_ra_rad=nan,
            pm_dec_rad=nan,
        )

    return _make
