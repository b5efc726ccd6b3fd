"""Tests for biome height modulation."""

import numpy as np
import pytest

from terragen.biomes import BiomeTransformer, biome_seed
from terragen.config import BiomeOptions, BiomeType
from terragen.exceptions import InvalidParametersError
from terragen.mesh import Mesh


class TestBiomeSeed:
    """Tests for per-biome noise seeds."""

    @pytest.mark.parametrize(
        "kind, expected",
        [
            (BiomeType.PLAINS, 42),
            (BiomeType.MOUNTAINS, 142),
            (BiomeType.DESERT, 242),
            (BiomeType.SWAMP, 542),
        ],
    )
    def test_offset_by_declaration_order(self, kind: BiomeType, expected: int) -> None:
        """Seed offset is 100 per position in BiomeType."""
        assert biome_seed(42, kind) == expected


class TestBiomeTransformer:
    """Tests for BiomeTransformer.apply."""

    @pytest.mark.parametrize("kind", list(BiomeType))
    def test_zero_height_unaffected(self, zero_ground: Mesh, kind: BiomeType) -> None:
        """Multiplicative modulation cannot lift vertices at height 0."""
        BiomeTransformer(seed=4).apply(zero_ground, BiomeOptions(kind=kind, intensity=1.0))
        np.testing.assert_array_equal(zero_ground.heights, 0.0)

    def test_plains_bounds(self, flat_ground: Mesh) -> None:
        """Plains lower heights by at most a quarter at variation 0.5."""
        BiomeTransformer(seed=4).apply(
            flat_ground, BiomeOptions(kind=BiomeType.PLAINS, intensity=1.0, variation=0.5)
        )
        assert flat_ground.heights.min() >= 7.5 - 1e-9
        assert flat_ground.heights.max() <= 10.0 + 1e-9

    def test_mountains_only_raise(self, flat_ground: Mesh) -> None:
        """Mountain modulation is never negative."""
        BiomeTransformer(seed=4).apply(
            flat_ground, BiomeOptions(kind=BiomeType.MOUNTAINS, variation=1.0)
        )
        assert flat_ground.heights.min() >= 10.0

    def test_forest_modifier_range(self, flat_ground: Mesh) -> None:
        """Forest modifiers stay in [0.2, 0.5] at full variation."""
        modifiers = BiomeTransformer(seed=4).height_modifiers(
            flat_ground, BiomeOptions(kind=BiomeType.FOREST, variation=1.0)
        )
        assert modifiers.shape == (flat_ground.vertex_count,)
        assert modifiers.min() >= 0.2 - 1e-9
        assert modifiers.max() <= 0.5 + 1e-9

    @pytest.mark.parametrize("kind", [BiomeType.PLAINS, BiomeType.TUNDRA, BiomeType.SWAMP])
    def test_zero_intensity_is_noop(self, flat_ground: Mesh, kind: BiomeType) -> None:
        """Intensity 0 leaves heights unchanged."""
        BiomeTransformer(seed=4).apply(flat_ground, BiomeOptions(kind=kind, intensity=0.0))
        np.testing.assert_allclose(flat_ground.heights, 10.0)

    def test_zero_height_scale_is_noop(self, flat_ground: Mesh) -> None:
        """height_scale 0 leaves heights unchanged."""
        BiomeTransformer(seed=4).apply(
            flat_ground, BiomeOptions(kind=BiomeType.DESERT, height_scale=0.0)
        )
        np.testing.assert_array_equal(flat_ground.heights, 10.0)

    def test_deterministic(self, flat_ground: Mesh) -> None:
        """Same seed and options give identical heights."""
        other = flat_ground.copy()
        options = BiomeOptions(kind=BiomeType.DESERT, variation=1.0)
        BiomeTransformer(seed=12).apply(flat_ground, options)
        BiomeTransformer(seed=12).apply(other, options)
        np.testing.assert_array_equal(flat_ground.heights, other.heights)

    def test_biomes_differ(self, flat_ground: Mesh) -> None:
        """Different biomes produce different surfaces."""
        other = flat_ground.copy()
        BiomeTransformer(seed=12).apply(flat_ground, BiomeOptions(kind=BiomeType.FOREST))
        BiomeTransformer(seed=12).apply(other, BiomeOptions(kind=BiomeType.DESERT))
        assert not np.allclose(flat_ground.heights, other.heights)

    def test_normals_stay_unit(self, flat_ground: Mesh) -> None:
        """Normals are recomputed after modulation."""
        BiomeTransformer(seed=5).apply(
            flat_ground, BiomeOptions(kind=BiomeType.MOUNTAINS, variation=1.0)
        )
        lengths = np.linalg.norm(flat_ground.normals.reshape(-1, 3), axis=1)
        np.testing.assert_allclose(lengths, 1.0, atol=1e-4)

    @pytest.mark.parametrize("update", [{"intensity": 1.5}, {"variation": -0.2}])
    def test_invalid_options_rejected(self, flat_ground: Mesh, update: dict) -> None:
        """Intensity and variation must be in [0, 1]."""
        with pytest.raises(InvalidParametersError):
            BiomeTransformer().apply(flat_ground, BiomeOptions(**update))
