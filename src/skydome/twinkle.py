"""Per-frame twinkle for the live dome point cloud.

Presentation only: catalog and projection state are never touched. Every frame
recomputes sizes and alphas from the base values captured at the last rebuild,
so multipliers never compound.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
from perlin_numpy import generate_perlin_noise_2d

from skydome.models import SkyData

logger = logging.getLogger(__name__)

TIER_SMALL = 0
TIER_MEDIUM = 1
TIER_LARGE = 2

# Base-size thresholds for the brightness tiers
LARGE_SIZE = 3.0
MEDIUM_SIZE = 1.5


class PerlinTexture:
    """Tileable Perlin noise sampled bilinearly, values in [0, 1].

    One noise unit spans one lattice cell, so integer steps in x or y move to a
    new gradient cell (like sampling a continuous 2D Perlin function).
    """

    def __init__(self, size: int = 256, res: int = 8, seed: int = 0):
        state = np.random.get_state()
        np.random.seed(seed)
        try:
            noise = generate_perlin_noise_2d((size, size), (res, res), tileable=(True, True))
        finally:
            np.random.set_state(state)

        lo, hi = float(noise.min()), float(noise.max())
        self._texture = (noise - lo) / (hi - lo + 1e-9)
        self._size = size
        self._cell = size / res

    def sample(self, x: np.ndarray, y: np.ndarray) -> np.ndarray:
        size = self._size
        u = np.mod(np.asarray(x, dtype=np.float64) * self._cell, size)
        v = np.mod(np.asarray(y, dtype=np.float64) * self._cell, size)
        i0 = np.floor(u).astype(np.int64) % size
        j0 = np.floor(v).astype(np.int64) % size
        i1 = (i0 + 1) % size
        j1 = (j0 + 1) % size
        fu = u - np.floor(u)
        fv = v - np.floor(v)

        t = self._texture
        top = t[j0, i0] * (1.0 - fu) + t[j0, i1] * fu
        bottom = t[j1, i0] * (1.0 - fu) + t[j1, i1] * fu
        return np.clip(top * (1.0 - fv) + bottom * fv, 0.0, 1.0)


def _smoothstep(x: np.ndarray) -> np.ndarray:
    x = np.clip(x, 0.0, 1.0)
    return x * x * (3.0 - 2.0 * x)


def _lerp(a: float, b: float, t: np.ndarray) -> np.ndarray:
    return a + (b - a) * t


def brightness_tiers(base_sizes: np.ndarray) -> np.ndarray:
    tiers = np.full(base_sizes.shape, TIER_SMALL, dtype=np.int8)
    tiers[base_sizes >= MEDIUM_SIZE] = TIER_MEDIUM
    tiers[base_sizes >= LARGE_SIZE] = TIER_LARGE
    return tiers


@dataclass
class LivePointCloud:
    """Above-horizon stars as arrays, ready for a per-frame renderer."""

    names: list[str] = field(default_factory=list)
    magnitudes: np.ndarray = field(default_factory=lambda: np.zeros(0))
    positions: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    base_sizes: np.ndarray = field(default_factory=lambda: np.zeros(0))
    base_alphas: np.ndarray = field(default_factory=lambda: np.zeros(0))
    sizes: np.ndarray = field(default_factory=lambda: np.zeros(0))
    alphas: np.ndarray = field(default_factory=lambda: np.zeros(0))
    phases: np.ndarray = field(default_factory=lambda: np.zeros(0))
    speeds: np.ndarray = field(default_factory=lambda: np.zeros(0))
    tiers: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.int8))

    def __len__(self) -> int:
        return len(self.base_sizes)

    @classmethod
    def from_sky_data(
        cls, sky_data: SkyData, rng: np.random.Generator | None = None
    ) -> "LivePointCloud":
        cloud = cls()
        cloud.rebuild(sky_data, rng)
        return cloud

    def rebuild(self, sky_data: SkyData, rng: np.random.Generator | None = None) -> None:
        """Replace every array from a fresh projection pass.

        Phases and speeds are drawn once here and stay fixed until the next
        rebuild.
        """
        rng = rng if rng is not None else np.random.default_rng()
        stars = sky_data.stars
        n = len(stars)

        self.names = [obj.record.name for obj in stars]
        self.magnitudes = np.array([obj.magnitude for obj in stars], dtype=np.float64)
        self.positions = np.array(
            [(obj.point.x, obj.point.y, obj.point.z) for obj in stars], dtype=np.float64
        ).reshape(n, 3)
        self.base_sizes = np.array([obj.size for obj in stars], dtype=np.float64)
        self.base_alphas = np.array([obj.alpha for obj in stars], dtype=np.float64)
        self.sizes = self.base_sizes.copy()
        self.alphas = self.base_alphas.copy()
        self.phases = rng.uniform(0.0, 100.0, n)
        self.speeds = rng.uniform(0.6, 1.4, n)
        self.tiers = brightness_tiers(self.base_sizes)

        logger.debug(
            "Point cloud rebuilt: %d points (large=%d medium=%d small=%d)",
            n,
            int((self.tiers == TIER_LARGE).sum()),
            int((self.tiers == TIER_MEDIUM).sum()),
            int((self.tiers == TIER_SMALL).sum()),
        )


class TwinkleModulator:
    """Advances a clock and rewrites the cloud's current sizes/alphas.

    The caller's loop drives it with ``advance(dt)``; there is no internal
    timer. Rebuilds of the cloud must not interleave with ``advance``.
    """

    def __init__(self, cloud: LivePointCloud, noise: PerlinTexture | None = None, seed: int = 0):
        self.cloud = cloud
        self.noise = noise if noise is not None else PerlinTexture(seed=seed)
        self.time = 0.0

    def advance(self, dt: float) -> None:
        self.time += dt
        cloud = self.cloud
        n = len(cloud)
        if n == 0:
            return

        t = self.time
        size_mult = np.ones(n)
        alpha_mult = np.ones(n)

        large = cloud.tiers == TIER_LARGE
        if large.any():
            phase = cloud.phases[large]
            speed = cloud.speeds[large]
            noise = self.noise.sample(t * speed * 1.7 + phase, phase * 0.37)
            wave = 0.5 + 0.5 * np.sin(t * speed * 6.0 + phase * 2.0 * np.pi)
            v = np.clip(0.65 * noise + 0.35 * wave, 0.0, 1.0) ** 1.6
            size_mult[large] = _lerp(0.65, 1.35, v)
            alpha_mult[large] = _lerp(0.5, 1.0, v)

        medium = cloud.tiers == TIER_MEDIUM
        if medium.any():
            phase = cloud.phases[medium]
            speed = cloud.speeds[medium]
            v = _smoothstep(self.noise.sample(t * speed * 1.1 + phase, phase * 0.53 + 17.0))
            size_mult[medium] = _lerp(0.85, 1.15, v)
            alpha_mult[medium] = _lerp(0.7, 1.0, v)

        small = cloud.tiers == TIER_SMALL
        if small.any():
            phase = cloud.phases[small]
            speed = cloud.speeds[small]
            v = _smoothstep(
                _smoothstep(self.noise.sample(t * speed * 0.35 + phase, phase * 0.71 + 41.0))
            )
            alpha_mult[small] = _lerp(0.85, 1.0, v)

        cloud.sizes = cloud.base_sizes * size_mult
        cloud.alphas = np.clip(cloud.base_alphas * alpha_mult, 0.0, 1.0)
