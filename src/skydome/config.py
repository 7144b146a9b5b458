"""Render styles and file locations, with ``SKYDOME_*`` environment overrides."""

import os
from dataclasses import dataclass, field
from pathlib import Path

from skydome.catalog import DEFAULT_MAGNITUDE_LIMIT

_ROOT = Path(__file__).parent.parent.parent

Color = tuple[int, int, int]


class SettingsError(ValueError):
    """Raised when a ``SKYDOME_*`` environment variable cannot be parsed."""


def _env_value(name: str, default, cast):
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return cast(raw)
    except ValueError as exc:
        raise SettingsError(f"{name}={raw!r} is not a valid {cast.__name__}") from exc


@dataclass(frozen=True)
class ChartStyle:
    """Everything that shapes an exported 2D chart."""

    width: int = 2048
    height: int = 2048
    jpeg_quality: int = 92  # 1-100
    background: Color = (0, 0, 0)

    draw_horizon_circle: bool = True
    horizon_thickness_px: int = 2
    horizon_color: Color = (80, 80, 80)

    # Magnitude -> soft dot radius/brightness
    max_star_radius_px: float = 4.5  # brightest
    min_star_radius_px: float = 0.7  # dimmest
    max_alpha: float = 1.0
    min_alpha: float = 0.15

    draw_planets: bool = True

    enable_labels: bool = True
    max_label_magnitude: float = 2.5
    label_font_scale: int = 1
    label_color: Color = (200, 200, 200)
    label_collision_avoidance: bool = True
    label_planets: bool = True  # Planets are labelled regardless of magnitude

    enable_constellation_lines: bool = True
    constellation_line_color: Color = (80, 120, 200)
    constellation_line_thickness_px: int = 1
    constellation_line_mag_limit: float = 6.0  # Both endpoints must be this bright
    max_constellation_line_length_frac: float = 0.65  # Of the chart radius


@dataclass(frozen=True)
class DomeStyle:
    """Live 3D dome point sizes and opacities."""

    sky_radius: float = 100.0
    max_size: float = 4.5
    min_size: float = 0.5
    max_alpha: float = 1.0
    min_alpha: float = 0.15


@dataclass(frozen=True)
class Settings:
    """File locations and catalog limits."""

    star_catalog: Path = _ROOT / "resources" / "hyg_v42.csv"
    planet_catalog: Path = _ROOT / "resources" / "PlanetEphemerisData.csv"
    constellation_lines: Path = _ROOT / "resources" / "constellation_lines_hd.csv"
    ephemeris_kernel: Path = _ROOT / "resources" / "de421.bsp"
    output_dir: Path = _ROOT / "results"
    magnitude_limit: float = DEFAULT_MAGNITUDE_LIMIT
    chart: ChartStyle = field(default_factory=ChartStyle)
    dome: DomeStyle = field(default_factory=DomeStyle)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from ``SKYDOME_*`` environment variables.

        Unset variables keep their defaults. Call ``load_dotenv()`` first to
        pick values up from a ``.env`` file.

        Raises:
            SettingsError: If a numeric variable cannot be parsed.
        """
        defaults = cls()
        chart = ChartStyle(
            width=_env_value("SKYDOME_CHART_WIDTH", defaults.chart.width, int),
            height=_env_value("SKYDOME_CHART_HEIGHT", defaults.chart.height, int),
            jpeg_quality=_env_value("SKYDOME_JPEG_QUALITY", defaults.chart.jpeg_quality, int),
        )
        return cls(
            star_catalog=_env_value("SKYDOME_STAR_CATALOG", defaults.star_catalog, Path),
            planet_catalog=_env_value("SKYDOME_PLANET_CATALOG", defaults.planet_catalog, Path),
            constellation_lines=_env_value(
                "SKYDOME_CONSTELLATION_LINES", defaults.constellation_lines, Path
            ),
            ephemeris_kernel=_env_value(
                "SKYDOME_EPHEMERIS_KERNEL", defaults.ephemeris_kernel, Path
            ),
            output_dir=_env_value("SKYDOME_OUTPUT_DIR", defaults.output_dir, Path),
            magnitude_limit=_env_value(
                "SKYDOME_MAGNITUDE_LIMIT", defaults.magnitude_limit, float
            ),
            chart=chart,
        )
