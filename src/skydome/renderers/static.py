"""Matplotlib JPEG encoder for composed chart buffers."""

import logging
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np

from skydome.models import ObserverSnapshot
from skydome.raster import flip_vertical

logger = logging.getLogger(__name__)

_ROOT = Path(__file__).parent.parent.parent.parent


def chart_filename(snapshot: ObserverSnapshot) -> str:
    """Filename encoding the local render time and observer coordinates."""
    when_str = snapshot.local_datetime.strftime("%Y%m%d_%H%M")
    return (
        f"StarChart2D_{when_str}"
        f"_lat{snapshot.latitude_deg:.4f}_lon{snapshot.longitude_deg:.4f}.jpg"
    )


def encode_chart(buffer: np.ndarray, output_path: Path, quality: int = 92) -> Path:
    """Flip a top-down buffer once and write it as a bottom-left-origin JPEG.

    The buffer is modified in place and belongs to the caller's export call.

    Args:
        buffer: (height, width, 3) uint8 chart with row 0 at the top.
        output_path: Destination file.
        quality: JPEG quality, 1-100.

    Returns:
        Path to the written file.
    """
    flip_vertical(buffer)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.imsave(
        output_path,
        buffer,
        format="jpeg",
        origin="lower",
        pil_kwargs={"quality": int(quality)},
    )
    return output_path


def save_chart_jpeg(
    buffer: np.ndarray,
    snapshot: ObserverSnapshot,
    quality: int = 92,
    output_dir: Path | None = None,
) -> Path:
    """Save a composed chart under ``output_dir`` (``results/`` by default).

    Args:
        buffer: Composed chart buffer; flipped in place during encoding.
        snapshot: Observer whose time and coordinates name the file.
        quality: JPEG quality, 1-100.
        output_dir: Destination directory. ``results/`` under the project root
            if None.

    Returns:
        Path to the saved file.
    """
    if output_dir is None:
        output_dir = _ROOT / "results"
    path = encode_chart(buffer, output_dir / chart_filename(snapshot), quality)
    logger.info("Saved chart: %s", path)
    return path
