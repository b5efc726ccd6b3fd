"""Procedural terrain generation.

Builds height fields from seeded gradient noise, assembles them into
triangle meshes, and sculpts those meshes with mountains, rivers,
thermal and hydraulic erosion, and biome modulation.
"""

from .biomes import BiomeTransformer
from .config import (
    BiomeOptions,
    BiomeType,
    ErosionOptions,
    ErosionType,
    MountainOptions,
    NoiseParameters,
    Point2D,
    RiverOptions,
    TerrainConfig,
    TerrainGenerationOptions,
    load_config,
)
from .erosion import (
    DropletParameters,
    HydraulicErosion,
    ThermalErosion,
    apply_erosion,
    barycentric_coords,
)
from .exceptions import CapacityExceededError, InvalidParametersError, TerrainError
from .features import MountainStamper, RiverCarver, build_river_path, flatten_area
from .generator import GenerationResult, TerrainGenerator, generate_world
from .heightfield import MAX_RESOLUTION, HeightField, HeightFieldBuilder, ScratchBuffers
from .mesh import Mesh, MeshAssembler, compute_normals, create_ground
from .noise import NoiseField, PermutationTable
from .validation import ValidationResult, validate_height_field, validate_mesh

__all__ = [
    # Config
    "BiomeOptions",
    "BiomeType",
    "ErosionOptions",
    "ErosionType",
    "MountainOptions",
    "NoiseParameters",
    "Point2D",
    "RiverOptions",
    "TerrainConfig",
    "TerrainGenerationOptions",
    "load_config",
    # Noise
    "NoiseField",
    "PermutationTable",
    # Height fields
    "MAX_RESOLUTION",
    "HeightField",
    "HeightFieldBuilder",
    "ScratchBuffers",
    # Mesh
    "Mesh",
    "MeshAssembler",
    "compute_normals",
    "create_ground",
    # Features
    "MountainStamper",
    "RiverCarver",
    "build_river_path",
    "flatten_area",
    # Erosion
    "DropletParameters",
    "HydraulicErosion",
    "ThermalErosion",
    "apply_erosion",
    "barycentric_coords",
    # Biomes
    "BiomeTransformer",
    # Pipeline
    "GenerationResult",
    "TerrainGenerator",
    "generate_world",
    # Validation
    "ValidationResult",
    "validate_height_field",
    "validate_mesh",
    # Exceptions
    "TerrainError",
    "CapacityExceededError",
    "InvalidParametersError",
]
