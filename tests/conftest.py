"""Shared test fixtures for terrain tests."""

import pytest

from terragen.config import NoiseParameters, TerrainGenerationOptions
from terragen.mesh import Mesh, create_ground


@pytest.fixture
def flat_ground() -> Mesh:
    """20x20 world-unit grid at height 10 with one vertex per world unit.

    Vertices sit on integer coordinates from -10 to 10 on both axes.
    """
    return create_ground(20.0, 20.0, subdivisions=20, height=10.0)


@pytest.fixture
def zero_ground() -> Mesh:
    """20x20 grid at height 0."""
    return create_ground(20.0, 20.0, subdivisions=20, height=0.0)


@pytest.fixture
def spike_mesh() -> Mesh:
    """3x3 vertex grid with unit spacing and a 10-unit spike in the center."""
    mesh = create_ground(2.0, 2.0, subdivisions=2, height=0.0)
    mesh.heights[4] = 10.0
    mesh.recompute_normals()
    return mesh


@pytest.fixture
def sloped_mesh() -> Mesh:
    """10x10 grid rising along X from height 2.5 to 7.5."""
    mesh = create_ground(10.0, 10.0, subdivisions=10, height=0.0)
    mesh.heights[:] = mesh.xs * 0.5 + 5.0
    mesh.recompute_normals()
    return mesh


@pytest.fixture
def small_options() -> TerrainGenerationOptions:
    """17x17 grid with a fixed seed."""
    return TerrainGenerationOptions(
        width=32.0,
        depth=32.0,
        resolution=17,
        min_height=0.0,
        max_height=8.0,
        noise=NoiseParameters(scale=6.0, octaves=3, persistence=0.5, lacunarity=2.0, seed=7),
    )

