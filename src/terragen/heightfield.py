"""Height field generation from fractal noise, with optional box smoothing."""

from dataclasses import dataclass

import numpy as np
import structlog
from numpy.typing import NDArray
from scipy import ndimage

from .config import TerrainGenerationOptions
from .exceptions import CapacityExceededError, InvalidParametersError
from .noise import NoiseField, validate_noise_parameters

logger = structlog.get_logger()

MAX_RESOLUTION = 1024

# Center plus four cardinal neighbors
BOX_KERNEL = np.array(
    [
        [0.0, 1.0, 0.0],
        [1.0, 1.0, 1.0],
        [0.0, 1.0, 0.0],
    ],
    dtype=np.float32,
)


@dataclass
class HeightField:
    """Grid of elevation samples in [0, 1] with its target world range."""

    width: int
    height: int
    data: NDArray[np.float32]  # shape (height, width)
    min_height: float
    max_height: float

    @property
    def buffer(self) -> NDArray[np.float32]:
        """Flat row-major view of the samples."""
        return self.data.reshape(-1)

    def world_heights(self) -> NDArray[np.float64]:
        """Samples mapped to [min_height, max_height]."""
        span = self.max_height - self.min_height
        return self.data.astype(np.float64) * span + self.min_height


class ScratchBuffers:
    """Reusable flat buffers sized for the largest supported grid.

    Buffers are allocated once and shared by every operation that is
    handed this instance. An instance must only serve one generation at
    a time; it has no locking.
    """

    def __init__(self, max_resolution: int = MAX_RESOLUTION):
        self.max_resolution = max_resolution
        capacity = max_resolution * max_resolution
        self.noise = np.zeros(capacity, dtype=np.float32)
        self.height = np.zeros(capacity, dtype=np.float32)
        self.temp = np.zeros(capacity, dtype=np.float32)

    @property
    def capacity(self) -> int:
        return self.noise.size

    def fits(self, width: int, height: int) -> bool:
        return width * height <= self.capacity

    def patch_buffer(self, resolution: int) -> NDArray[np.float32] | None:
        """Noise buffer for a square feature patch, or None if it is too small."""
        return self.noise if self.fits(resolution, resolution) else None

    def check_capacity(self, width: int, height: int) -> None:
        """Raise if a width x height grid does not fit in the buffers."""
        if not self.fits(width, height):
            raise CapacityExceededError(
                f"Grid {width}x{height} exceeds scratch capacity "
                f"{self.max_resolution}x{self.max_resolution}"
            )


def validate_generation_options(options: TerrainGenerationOptions) -> None:
    """Reject generation options before any work is done.

    Raises:
        InvalidParametersError: If any option is out of range.
    """
    if options.resolution < 2:
        raise InvalidParametersError(
            f"Resolution must be at least 2, got {options.resolution}"
        )
    if options.width <= 0 or options.depth <= 0:
        raise InvalidParametersError(
            f"Terrain extent must be positive, got {options.width}x{options.depth}"
        )
    if options.max_height < options.min_height:
        raise InvalidParametersError(
            f"max_height {options.max_height} is below min_height {options.min_height}"
        )
    if options.smooth_iterations < 0:
        raise InvalidParametersError(
            f"Smoothing iterations must be >= 0, got {options.smooth_iterations}"
        )
    validate_noise_parameters(options.noise)


class HeightFieldBuilder:
    """Builds height fields by sampling a noise field at every grid cell."""

    def __init__(
        self,
        noise_field: NoiseField | None = None,
        scratch: ScratchBuffers | None = None,
    ):
        self.noise_field = noise_field if noise_field is not None else NoiseField()
        self.scratch = scratch if scratch is not None else ScratchBuffers()

    def build(self, options: TerrainGenerationOptions) -> HeightField:
        """Generate a square height field.

        Reseeds the noise field when ``options.noise.seed`` is set, so a
        saved seed reproduces the same buffer exactly.

        Args:
            options: Terrain generation options.

        Returns:
            A HeightField owning its own copy of the samples.

        Raises:
            InvalidParametersError: If options are out of range.
            CapacityExceededError: If the resolution exceeds the scratch buffers.
        """
        validate_generation_options(options)
        resolution = options.resolution
        self.scratch.check_capacity(resolution, resolution)

        if options.noise.seed is not None:
            self.noise_field.set_seed(options.noise.seed)

        grid = self.noise_field.noise_map(
            resolution, resolution, options.noise, out=self.scratch.height
        )

        if options.smooth:
            self.smooth(grid, options.smooth_iterations)

        logger.debug(
            "height_field_built",
            resolution=resolution,
            seed=self.noise_field.seed,
            smoothed=options.smooth,
        )

        return HeightField(
            width=resolution,
            height=resolution,
            data=grid.copy(),
            min_height=options.min_height,
            max_height=options.max_height,
        )

    def smooth(self, field: NDArray[np.float32], iterations: int) -> NDArray[np.float32]:
        """Apply a 5-point box filter to interior cells, in place.

        Each pass averages a cell with its four cardinal neighbors, reading
        from a snapshot of the previous pass. The one-cell border is left
        untouched.

        Args:
            field: 2D field to smooth. Must not be a view of this builder's
                noise or temp scratch buffers.
            iterations: Number of passes.

        Returns:
            The same field, smoothed.
        """
        if iterations < 0:
            raise InvalidParametersError(f"Smoothing iterations must be >= 0, got {iterations}")

        height, width = field.shape
        if iterations == 0 or height < 3 or width < 3:
            return field

        self.scratch.check_capacity(width, height)
        count = width * height
        snapshot = self.scratch.temp[:count].reshape(height, width)
        summed = self.scratch.noise[:count].reshape(height, width)

        for _ in range(iterations):
            snapshot[...] = field
            ndimage.convolve(snapshot, BOX_KERNEL, output=summed, mode="nearest")
            field[1:-1, 1:-1] = summed[1:-1, 1:-1] / 5.0

        return field
