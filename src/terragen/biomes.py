"""Biome-specific height modulation."""

import math
from typing import Callable

import numpy as np
import structlog
from numpy.typing import NDArray

from .config import BiomeOptions, BiomeType, NoiseParameters
from .exceptions import InvalidParametersError
from .heightfield import ScratchBuffers
from .mesh import Mesh
from .noise import DEFAULT_SEED, NoiseField

logger = structlog.get_logger()

BIOME_NOISE_RESOLUTION = 256
BIOME_NOISE = NoiseParameters(scale=50.0, octaves=4, persistence=0.5, lacunarity=2.0)
BIOME_SEED_STRIDE = 100

HeightTransfer = Callable[[NDArray[np.float64], float], NDArray[np.float64]]


def _plains(noise: NDArray[np.float64], intensity: float) -> NDArray[np.float64]:
    # Rolling hills centered on zero
    return (noise - 0.5) * 0.5 * intensity


def _mountains(noise: NDArray[np.float64], intensity: float) -> NDArray[np.float64]:
    return np.power(noise, 1.5) * 2.0 * intensity


def _desert(noise: NDArray[np.float64], intensity: float) -> NDArray[np.float64]:
    # Dune ridges
    dunes = np.sin(noise * math.pi * 3.0) * 0.5 + 0.5
    return dunes * 0.7 * intensity


def _forest(noise: NDArray[np.float64], intensity: float) -> NDArray[np.float64]:
    return (noise * 0.3 + 0.2) * intensity


def _tundra(noise: NDArray[np.float64], intensity: float) -> NDArray[np.float64]:
    # Mostly flat with occasional frost heaves
    return (np.power(noise, 2.0) - 0.3) * 0.5 * intensity


def _swamp(noise: NDArray[np.float64], intensity: float) -> NDArray[np.float64]:
    pools = np.sin(noise * math.pi * 6.0) * 0.3
    return (pools - 0.2) * 0.4 * intensity


HEIGHT_TRANSFERS: dict[BiomeType, HeightTransfer] = {
    BiomeType.PLAINS: _plains,
    BiomeType.MOUNTAINS: _mountains,
    BiomeType.DESERT: _desert,
    BiomeType.FOREST: _forest,
    BiomeType.TUNDRA: _tundra,
    BiomeType.SWAMP: _swamp,
}


def biome_seed(base_seed: int, kind: BiomeType) -> int:
    """Noise seed for a biome, offset by its position in BiomeType."""
    return base_seed + list(BiomeType).index(kind) * BIOME_SEED_STRIDE


class BiomeTransformer:
    """Scales vertex heights by a biome-specific function of noise.

    The modulation is multiplicative, so vertices at height 0 are never
    changed whatever the intensity.
    """

    def __init__(self, seed: int = DEFAULT_SEED, scratch: ScratchBuffers | None = None):
        self.seed = seed
        self.scratch = scratch

    def height_modifiers(self, mesh: Mesh, options: BiomeOptions) -> NDArray[np.float64]:
        """Per-vertex height modifier before ``height_scale`` is applied."""
        resolution = BIOME_NOISE_RESOLUTION
        out = self.scratch.patch_buffer(resolution) if self.scratch is not None else None
        patch = NoiseField(biome_seed(self.seed, options.kind)).noise_map(
            resolution, resolution, BIOME_NOISE, out=out
        )

        # Stretch the patch over the mesh footprint
        min_x, max_x, min_z, max_z = mesh.bounds()
        span_x = max_x - min_x
        span_z = max_z - min_z
        u = (mesh.xs - min_x) / span_x if span_x > 0 else np.zeros(mesh.vertex_count)
        v = (mesh.zs - min_z) / span_z if span_z > 0 else np.zeros(mesh.vertex_count)
        col = np.clip(np.floor(u * (resolution - 1)).astype(np.int64), 0, resolution - 1)
        row = np.clip(np.floor(v * (resolution - 1)).astype(np.int64), 0, resolution - 1)

        noise = patch[row, col].astype(np.float64) * options.variation
        return HEIGHT_TRANSFERS[options.kind](noise, options.intensity)

    def apply(self, mesh: Mesh, options: BiomeOptions) -> None:
        """Apply ``height * (1 + modifier * height_scale)`` to every vertex.

        Raises:
            InvalidParametersError: If intensity or variation is outside [0, 1].
        """
        for name, value in (("intensity", options.intensity), ("variation", options.variation)):
            if not 0.0 <= value <= 1.0:
                raise InvalidParametersError(f"{name} must be in [0, 1], got {value}")

        modifiers = self.height_modifiers(mesh, options)
        heights = mesh.heights
        heights *= 1.0 + modifiers * options.height_scale

        mesh.recompute_normals()
        logger.debug(
            "biome_applied",
            mesh=mesh.name,
            biome=options.kind.value,
            intensity=options.intensity,
        )
