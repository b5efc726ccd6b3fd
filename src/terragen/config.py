"""Terrain generation configuration models."""

import tomllib
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, Field


class ErosionType(str, Enum):
    """Types of erosion simulation."""

    HYDRAULIC = "hydraulic"
    THERMAL = "thermal"
    COMBINED = "combined"


class BiomeType(str, Enum):
    """Available biome types.

    Declaration order is significant: a biome's position in this enum
    derives the seed offset of its noise patch.
    """

    PLAINS = "plains"
    MOUNTAINS = "mountains"
    DESERT = "desert"
    FOREST = "forest"
    TUNDRA = "tundra"
    SWAMP = "swamp"


class Point2D(BaseModel):
    """A position on the ground plane."""

    x: float = Field(default=0.0, description="World X coordinate")
    z: float = Field(default=0.0, description="World Z coordinate")


class NoiseParameters(BaseModel):
    """Fractal noise parameters."""

    scale: float = Field(default=50.0, description="Sample coordinate divisor")
    octaves: int = Field(default=6, description="Number of noise layers")
    persistence: float = Field(default=0.5, description="Amplitude multiplier per octave")
    lacunarity: float = Field(default=2.0, description="Frequency multiplier per octave")
    seed: int | None = Field(default=None, description="Seed for reproducible noise")


class TerrainGenerationOptions(BaseModel):
    """Options for base terrain generation."""

    width: float = Field(default=100.0, description="Terrain width in world units")
    depth: float = Field(default=100.0, description="Terrain depth in world units")
    resolution: int = Field(default=128, description="Height field samples per side")
    min_height: float = Field(default=0.0, description="World height of a 0.0 sample")
    max_height: float = Field(default=10.0, description="World height of a 1.0 sample")
    noise: NoiseParameters = Field(default_factory=NoiseParameters)
    smooth: bool = Field(default=False, description="Box-smooth the height field")
    smooth_iterations: int = Field(default=2, description="Smoothing passes when smooth is set")
    name: str | None = Field(default=None, description="Name for the generated mesh")


class MountainOptions(BaseModel):
    """Options for stamping a mountain onto a mesh."""

    center: Point2D = Field(default_factory=Point2D)
    radius: float = Field(default=20.0, description="Radius of influence")
    peak_height: float = Field(default=10.0, description="Height added at the peak")
    roughness: float = Field(default=0.5, description="Noise contribution (0-1)")
    steepness: float = Field(default=0.5, description="Peak sharpness (0-1)")
    plateau_height: float | None = Field(
        default=None, description="Distance fraction beyond which the top is flat"
    )


class RiverOptions(BaseModel):
    """Options for carving a river channel."""

    start: Point2D = Field(default_factory=Point2D)
    end: Point2D | None = Field(default=None, description="End of the river")
    control_points: list[Point2D] = Field(
        default_factory=list, description="Ordered points between start and end"
    )
    width: float = Field(default=4.0, description="Channel half-width")
    depth: float = Field(default=2.0, description="Channel depth at the centerline")
    meandering: float = Field(default=0.3, description="Lateral meander factor (0-1)")
    tributaries: int = Field(default=0, description="Reserved, currently ignored")


class ErosionOptions(BaseModel):
    """Options for erosion simulation."""

    iterations: int = Field(default=10, description="Iterations or droplet count")
    strength: float = Field(default=0.5, description="Erosion strength (0-1)")
    kind: ErosionType = Field(default=ErosionType.THERMAL, description="Erosion model")
    thermal_talus_angle: float = Field(
        default=0.5, description="Stable slope as a fraction of a right angle"
    )
    droplet_lifetime: int = Field(default=30, description="Max steps per droplet")
    inertia: float = Field(default=0.3, description="Droplet direction inertia (0-1)")
    capacity: float = Field(default=4.0, description="Sediment capacity factor")
    seed: int | None = Field(default=None, description="Seed for droplet spawning")


class BiomeOptions(BaseModel):
    """Options for biome height modulation."""

    kind: BiomeType = Field(default=BiomeType.PLAINS, description="Biome type")
    intensity: float = Field(default=1.0, description="Biome strength (0-1)")
    height_scale: float = Field(default=1.0, description="Scale of the height modifier")
    variation: float = Field(default=0.5, description="Noise variation (0-1)")
    blend_distance: float | None = Field(
        default=None, description="Reserved, currently ignored"
    )


class TerrainConfig(BaseModel):
    """Complete terrain pipeline configuration."""

    generation: TerrainGenerationOptions = Field(default_factory=TerrainGenerationOptions)
    mountains: list[MountainOptions] = Field(default_factory=list)
    rivers: list[RiverOptions] = Field(default_factory=list)
    erosion: ErosionOptions | None = Field(default=None, description="Erosion pass")
    biome: BiomeOptions | None = Field(default=None, description="Biome pass")


def load_config(config_path: Path) -> TerrainConfig:
    """Load a terrain configuration from a TOML file.

    Args:
        config_path: Path to the TOML config file.

    Returns:
        Parsed TerrainConfig.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        tomllib.TOMLDecodeError: If TOML is malformed.
    """
    with open(config_path, "rb") as f:
        data = tomllib.load(f)
    return TerrainConfig.model_validate(data)
