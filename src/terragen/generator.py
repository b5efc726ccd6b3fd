"""Main terrain generation orchestration."""

import time

import numpy as np
import structlog
from numpy.typing import NDArray

from .biomes import BiomeTransformer
from .config import (
    BiomeOptions,
    ErosionOptions,
    MountainOptions,
    RiverOptions,
    TerrainConfig,
    TerrainGenerationOptions,
)
from .erosion import apply_erosion
from .features import MountainStamper, RiverCarver
from .heightfield import MAX_RESOLUTION, HeightField, HeightFieldBuilder, ScratchBuffers
from .mesh import Mesh, MeshAssembler
from .noise import DEFAULT_SEED, NoiseField
from .validation import ValidationResult, validate_mesh

logger = structlog.get_logger()


def mesh_name(options: TerrainGenerationOptions) -> str:
    """Configured mesh name, or a timestamped default."""
    return options.name or f"terrain-{int(time.time() * 1000)}"


class TerrainGenerator:
    """Owns the noise field, scratch buffers and current seed for a terrain.

    Feature noise patches are derived from the current seed, which the
    most recent seeded height map sets. One call in flight per instance:
    operations share scratch buffers and take no locks.
    """

    def __init__(self, seed: int = DEFAULT_SEED, max_resolution: int = MAX_RESOLUTION):
        self.noise_field = NoiseField(seed)
        self.scratch = ScratchBuffers(max_resolution)
        self.builder = HeightFieldBuilder(self.noise_field, self.scratch)
        self.assembler = MeshAssembler()

    @property
    def current_seed(self) -> int:
        return self.noise_field.seed

    def set_seed(self, seed: int) -> None:
        self.noise_field.set_seed(seed)

    def generate_height_map(self, options: TerrainGenerationOptions) -> HeightField:
        return self.builder.build(options)

    def smooth_height_map(self, field: HeightField, iterations: int) -> HeightField:
        self.builder.smooth(field.data, iterations)
        return field

    def generate_terrain(self, options: TerrainGenerationOptions) -> Mesh:
        """Generate a height map and assemble it into a named mesh."""
        height_field = self.generate_height_map(options)
        return self.assembler.assemble(
            height_field, options.width, options.depth, name=mesh_name(options)
        )

    def generate_mountains(self, mesh: Mesh, options: MountainOptions) -> None:
        MountainStamper(self.current_seed, self.scratch).apply(mesh, options)

    def generate_river(self, mesh: Mesh, options: RiverOptions) -> None:
        RiverCarver().apply(mesh, options)

    def apply_erosion(self, mesh: Mesh, options: ErosionOptions) -> None:
        apply_erosion(mesh, options)

    def generate_biome(self, mesh: Mesh, options: BiomeOptions) -> None:
        BiomeTransformer(self.current_seed, self.scratch).apply(mesh, options)


class GenerationResult:
    """Result of a full pipeline run with its intermediate data."""

    def __init__(
        self,
        height_field: HeightField,
        mesh: Mesh,
        config: TerrainConfig,
        validation: ValidationResult,
    ):
        self.height_field = height_field
        self.mesh = mesh
        self.config = config
        self.validation = validation

    @property
    def heights(self) -> NDArray[np.float64]:
        return self.mesh.heights


def generate_world(
    config: TerrainConfig,
    generator: TerrainGenerator | None = None,
) -> GenerationResult:
    """Run the full pipeline described by a TerrainConfig.

    Stages: height field, mesh assembly, mountains, rivers, erosion,
    biome, validation.

    Args:
        config: Terrain pipeline configuration.
        generator: Generator to reuse. A fresh one is created if omitted.

    Returns:
        GenerationResult with the height field, final mesh and validation.
    """
    generator = generator if generator is not None else TerrainGenerator()
    options = config.generation
    start_time = time.perf_counter()

    logger.info(
        "terrain_generation_started",
        resolution=options.resolution,
        seed=options.noise.seed,
        mountains=len(config.mountains),
        rivers=len(config.rivers),
    )

    # Stage A: Base height field
    height_field = generator.generate_height_map(options)
    mesh = generator.assembler.assemble(
        height_field, options.width, options.depth, name=mesh_name(options)
    )

    # Stage B: Features
    for mountain in config.mountains:
        generator.generate_mountains(mesh, mountain)
    for river in config.rivers:
        generator.generate_river(mesh, river)

    # Stage C: Erosion
    if config.erosion is not None:
        generator.apply_erosion(mesh, config.erosion)

    # Stage D: Biome
    if config.biome is not None:
        generator.generate_biome(mesh, config.biome)

    validation = validate_mesh(mesh)

    logger.info(
        "terrain_generated",
        mesh=mesh.name,
        vertices=mesh.vertex_count,
        triangles=mesh.triangle_count,
        duration_s=round(time.perf_counter() - start_time, 3),
        valid=validation.passed,
    )
    return GenerationResult(height_field, mesh, config, validation)
