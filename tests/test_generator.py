"""Tests for the TerrainGenerator facade and the full pipeline."""

import numpy as np
import pytest

from terragen.config import (
    BiomeOptions,
    BiomeType,
    ErosionOptions,
    ErosionType,
    MountainOptions,
    Point2D,
    RiverOptions,
    TerrainConfig,
    TerrainGenerationOptions,
)
from terragen.exceptions import CapacityExceededError
from terragen.generator import TerrainGenerator, generate_world, mesh_name


@pytest.fixture
def generator() -> TerrainGenerator:
    return TerrainGenerator(max_resolution=64)


class TestMeshName:
    """Tests for mesh naming."""

    def test_default_name(self) -> None:
        """Unnamed terrain gets a timestamped name."""
        assert mesh_name(TerrainGenerationOptions()).startswith("terrain-")

    def test_custom_name(self) -> None:
        """A configured name is used verbatim."""
        assert mesh_name(TerrainGenerationOptions(name="valley")) == "valley"


class TestTerrainGenerator:
    """Tests for TerrainGenerator operations."""

    def test_generate_terrain(
        self, generator: TerrainGenerator, small_options: TerrainGenerationOptions
    ) -> None:
        """generate_terrain returns a mesh over the configured footprint."""
        mesh = generator.generate_terrain(small_options)
        assert mesh.vertex_count == 17 * 17
        assert mesh.bounds() == (-16.0, 16.0, -16.0, 16.0)
        assert mesh.name.startswith("terrain-")

    def test_deterministic_across_instances(
        self, small_options: TerrainGenerationOptions
    ) -> None:
        """Two generators with the same seed produce identical meshes."""
        first = TerrainGenerator(max_resolution=32).generate_terrain(small_options)
        second = TerrainGenerator(seed=1, max_resolution=32).generate_terrain(small_options)
        np.testing.assert_array_equal(first.positions, second.positions)

    def test_seed_tracks_height_map(
        self, generator: TerrainGenerator, small_options: TerrainGenerationOptions
    ) -> None:
        """A seeded height map sets the generator's current seed."""
        generator.generate_height_map(small_options)
        assert generator.current_seed == 7

    def test_set_seed(self, generator: TerrainGenerator) -> None:
        """set_seed updates the current seed."""
        generator.set_seed(123)
        assert generator.current_seed == 123

    def test_unseeded_height_map_uses_current_seed(
        self, generator: TerrainGenerator, small_options: TerrainGenerationOptions
    ) -> None:
        """Without a seed in the options the current table is used."""
        unseeded = small_options.model_copy(
            update={"noise": small_options.noise.model_copy(update={"seed": None})}
        )
        generator.set_seed(7)
        np.testing.assert_array_equal(
            generator.generate_height_map(unseeded).data,
            generator.generate_height_map(small_options).data,
        )

    def test_capacity(self, small_options: TerrainGenerationOptions) -> None:
        """Resolutions beyond max_resolution are rejected."""
        with pytest.raises(CapacityExceededError):
            TerrainGenerator(max_resolution=16).generate_terrain(small_options)

    def test_smooth_height_map(
        self, generator: TerrainGenerator, small_options: TerrainGenerationOptions
    ) -> None:
        """Smoothing returns the same field with its interior changed."""
        field = generator.generate_height_map(small_options)
        before = field.data.copy()
        assert generator.smooth_height_map(field, 2) is field
        np.testing.assert_array_equal(field.data[0], before[0])
        assert not np.allclose(field.data[1:-1, 1:-1], before[1:-1, 1:-1])

    def test_generate_mountains(
        self, generator: TerrainGenerator, small_options: TerrainGenerationOptions
    ) -> None:
        """A mountain raises its center by at least the peak height."""
        mesh = generator.generate_terrain(small_options)
        center = int(np.flatnonzero((mesh.xs == 0.0) & (mesh.zs == 0.0))[0])
        before = mesh.heights[center]
        generator.generate_mountains(mesh, MountainOptions(radius=8.0, peak_height=5.0))
        assert mesh.heights[center] >= before + 5.0

    def test_generate_river(
        self, generator: TerrainGenerator, small_options: TerrainGenerationOptions
    ) -> None:
        """Rivers only ever lower the terrain."""
        mesh = generator.generate_terrain(small_options)
        before = mesh.heights.copy()
        generator.generate_river(
            mesh,
            RiverOptions(start=Point2D(x=-16.0, z=0.0), end=Point2D(x=16.0, z=0.0), depth=3.0),
        )
        assert np.all(mesh.heights <= before)
        assert np.any(mesh.heights < before)

    def test_apply_erosion(
        self, generator: TerrainGenerator, small_options: TerrainGenerationOptions
    ) -> None:
        """Erosion keeps the mesh finite."""
        mesh = generator.generate_terrain(small_options)
        generator.apply_erosion(
            mesh, ErosionOptions(kind=ErosionType.COMBINED, iterations=5, seed=2)
        )
        assert np.all(np.isfinite(mesh.positions))

    def test_generate_biome(
        self, generator: TerrainGenerator, small_options: TerrainGenerationOptions
    ) -> None:
        """Mountain biome never lowers positive terrain."""
        mesh = generator.generate_terrain(small_options)
        before = mesh.heights.copy()
        generator.generate_biome(mesh, BiomeOptions(kind=BiomeType.MOUNTAINS))
        assert np.all(mesh.heights >= before)


class TestGenerateWorld:
    """Tests for the full pipeline."""

    @pytest.fixture
    def config(self, small_options: TerrainGenerationOptions) -> TerrainConfig:
        return TerrainConfig(
            generation=small_options.model_copy(update={"name": "world", "smooth": True}),
            mountains=[MountainOptions(center=Point2D(x=4.0, z=4.0), radius=8.0, peak_height=5.0)],
            rivers=[
                RiverOptions(
                    start=Point2D(x=-16.0, z=-10.0), end=Point2D(x=16.0, z=10.0), width=3.0
                )
            ],
            erosion=ErosionOptions(kind=ErosionType.COMBINED, iterations=5, seed=1),
            biome=BiomeOptions(kind=BiomeType.FOREST),
        )

    def test_passes_validation(self, generator: TerrainGenerator, config: TerrainConfig) -> None:
        """A full run produces a valid mesh."""
        result = generate_world(config, generator)
        assert result.validation.passed, result.validation.errors
        assert result.mesh.name == "world"
        assert result.heights.size == 17 * 17
        assert result.height_field.width == 17

    def test_deterministic(self, config: TerrainConfig) -> None:
        """Identical configs give identical worlds."""
        first = generate_world(config, TerrainGenerator(max_resolution=32))
        second = generate_world(config, TerrainGenerator(max_resolution=32))
        np.testing.assert_array_equal(first.mesh.positions, second.mesh.positions)

    def test_base_only(self, generator: TerrainGenerator, small_options) -> None:
        """Config without features matches generate_terrain."""
        result = generate_world(TerrainConfig(generation=small_options), generator)
        mesh = TerrainGenerator(max_resolution=32).generate_terrain(small_options)
        np.testing.assert_array_equal(result.mesh.positions, mesh.positions)
