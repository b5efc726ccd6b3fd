"""Gradient noise for terrain generation.

Provides a seeded permutation table, classic 2D gradient noise with a
quintic fade curve, and multi-octave (fractal) sampling over whole grids.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .config import NoiseParameters
from .exceptions import CapacityExceededError, InvalidParametersError

PERMUTATION_SIZE = 256
DEFAULT_SEED = 42

# Four diagonal and four axis-aligned directions
GRADIENTS = np.array(
    [
        [1.0, 1.0],
        [-1.0, 1.0],
        [1.0, -1.0],
        [-1.0, -1.0],
        [1.0, 0.0],
        [-1.0, 0.0],
        [0.0, 1.0],
        [0.0, -1.0],
    ],
    dtype=np.float64,
)


def fade(t: NDArray[np.float64]) -> NDArray[np.float64]:
    """Quintic fade curve 6t^5 - 15t^4 + 10t^3."""
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def lerp(a: NDArray[np.float64], b: NDArray[np.float64], t: NDArray[np.float64]) -> NDArray[np.float64]:
    """Linear interpolation from a to b."""
    return a + t * (b - a)


def validate_noise_parameters(params: NoiseParameters) -> None:
    """Reject noise parameters that cannot produce a finite field.

    Raises:
        InvalidParametersError: If any parameter is out of range.
    """
    if params.scale <= 0:
        raise InvalidParametersError(f"Noise scale must be positive, got {params.scale}")
    if params.octaves < 1:
        raise InvalidParametersError(f"Noise octaves must be >= 1, got {params.octaves}")
    if not 0 < params.persistence <= 1:
        raise InvalidParametersError(
            f"Noise persistence must be in (0, 1], got {params.persistence}"
        )
    if params.lacunarity <= 1:
        raise InvalidParametersError(
            f"Noise lacunarity must be > 1, got {params.lacunarity}"
        )


class PermutationTable:
    """Seeded lookup table of the bytes 0..255, stored twice.

    The duplicated half lets corner hashes index ``table[table[x] + y + 1]``
    without wrapping.
    """

    def __init__(self, seed: int = DEFAULT_SEED):
        self.values = np.empty(PERMUTATION_SIZE * 2, dtype=np.uint8)
        self._lookup = np.empty(PERMUTATION_SIZE * 2, dtype=np.int64)
        self.current_seed = seed
        self.seed(seed)

    def seed(self, value: int) -> None:
        """Rebuild the table from a seed. Identical seeds give identical tables."""
        rng = np.random.default_rng(value % 2**64)
        perm = rng.permutation(PERMUTATION_SIZE).astype(np.uint8)
        self.values[:PERMUTATION_SIZE] = perm
        self.values[PERMUTATION_SIZE:] = perm
        self._lookup[:] = self.values
        self.current_seed = value

    def __getitem__(self, index: ArrayLike) -> NDArray[np.int64]:
        return self._lookup[index]


class NoiseField:
    """Multi-octave gradient noise sampler.

    Output depends only on the permutation table, so two fields built
    from the same seed agree at every coordinate.
    """

    def __init__(self, seed: int = DEFAULT_SEED):
        self.table = PermutationTable(seed)

    @property
    def seed(self) -> int:
        return self.table.current_seed

    def set_seed(self, seed: int) -> None:
        self.table.seed(seed)

    def sample(self, x: ArrayLike, y: ArrayLike) -> float | NDArray[np.float64]:
        """Sample 2D gradient noise.

        Args:
            x: X coordinate(s).
            y: Y coordinate(s), broadcastable against x.

        Returns:
            Noise value(s) roughly in [-1, 1]. A float for scalar input.
        """
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        x_floor = np.floor(x)
        y_floor = np.floor(y)
        xi = x_floor.astype(np.int64) & (PERMUTATION_SIZE - 1)
        yi = y_floor.astype(np.int64) & (PERMUTATION_SIZE - 1)

        xf = x - x_floor
        yf = y - y_floor
        u = fade(xf)
        v = fade(yf)

        # Hash the four cell corners
        p = self.table
        aa = p[p[xi] + yi]
        ab = p[p[xi] + yi + 1]
        ba = p[p[xi + 1] + yi]
        bb = p[p[xi + 1] + yi + 1]

        dot_aa = _corner_dot(aa, xf, yf)
        dot_ab = _corner_dot(ab, xf, yf - 1.0)
        dot_ba = _corner_dot(ba, xf - 1.0, yf)
        dot_bb = _corner_dot(bb, xf - 1.0, yf - 1.0)

        x1 = lerp(dot_aa, dot_ba, u)
        x2 = lerp(dot_ab, dot_bb, u)
        result = lerp(x1, x2, v)

        if result.ndim == 0:
            return float(result)
        return result

    def sample_fractal(
        self,
        x: ArrayLike,
        y: ArrayLike,
        params: NoiseParameters,
    ) -> float | NDArray[np.float64]:
        """Sample fractal noise remapped to [0, 1].

        Sums ``params.octaves`` layers at frequency ``lacunarity**i`` and
        amplitude ``persistence**i``, with coordinates divided by
        ``params.scale``, then normalizes by the total amplitude.

        Args:
            x: X coordinate(s).
            y: Y coordinate(s).
            params: Noise parameters. The seed field is ignored here.

        Returns:
            Noise value(s) in [0, 1].

        Raises:
            InvalidParametersError: If params are out of range.
        """
        validate_noise_parameters(params)
        sx = np.asarray(x, dtype=np.float64) / params.scale
        sy = np.asarray(y, dtype=np.float64) / params.scale

        total = np.zeros(np.broadcast(sx, sy).shape, dtype=np.float64)
        frequency = 1.0
        amplitude = 1.0
        total_amplitude = 0.0

        for _ in range(params.octaves):
            total += self.sample(sx * frequency, sy * frequency) * amplitude
            total_amplitude += amplitude
            frequency *= params.lacunarity
            amplitude *= params.persistence

        if total_amplitude > 0:
            total /= total_amplitude
        else:
            total[...] = 0.0

        result = np.clip((total + 1.0) * 0.5, 0.0, 1.0)
        if result.ndim == 0:
            return float(result)
        return result

    def noise_map(
        self,
        width: int,
        height: int,
        params: NoiseParameters,
        out: NDArray[np.float32] | None = None,
    ) -> NDArray[np.float32]:
        """Fill a grid with fractal noise, one sample per cell.

        Args:
            width: Grid width in cells.
            height: Grid height in cells.
            params: Noise parameters.
            out: Optional flat scratch buffer to write into.

        Returns:
            Array of shape (height, width). A view into ``out`` when given.

        Raises:
            CapacityExceededError: If ``out`` is too small for the grid.
        """
        count = width * height
        if out is None:
            out = np.empty(count, dtype=np.float32)
        elif count > out.size:
            raise CapacityExceededError(
                f"Noise map {width}x{height} exceeds buffer capacity {out.size}"
            )

        ys, xs = np.mgrid[0:height, 0:width]
        values = self.sample_fractal(xs, ys, params)

        grid = out[:count].reshape(height, width)
        grid[...] = values
        return grid


def _corner_dot(
    corner_hash: NDArray[np.int64],
    dx: NDArray[np.float64],
    dy: NDArray[np.float64],
) -> NDArray[np.float64]:
    gradient = GRADIENTS[corner_hash & 7]
    return gradient[..., 0] * dx + gradient[..., 1] * dy
