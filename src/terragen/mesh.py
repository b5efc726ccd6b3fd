"""Triangle mesh assembly and normal computation."""

from dataclasses import dataclass

import numpy as np
import structlog
from numpy.typing import NDArray

from .exceptions import InvalidParametersError
from .heightfield import HeightField

logger = structlog.get_logger()

UP = np.array([0.0, 1.0, 0.0])


@dataclass
class Mesh:
    """Flat vertex buffers for a triangle mesh.

    ``positions`` and ``normals`` hold 3 floats per vertex, ``uvs`` holds 2,
    and ``indices`` holds 3 vertex indices per triangle.
    """

    positions: NDArray[np.float64]
    indices: NDArray[np.int64]
    uvs: NDArray[np.float64]
    normals: NDArray[np.float64]
    name: str = "terrain"

    def __post_init__(self) -> None:
        self.positions = np.ascontiguousarray(self.positions, dtype=np.float64).reshape(-1)
        self.indices = np.ascontiguousarray(self.indices, dtype=np.int64).reshape(-1)
        self.uvs = np.ascontiguousarray(self.uvs, dtype=np.float64).reshape(-1)
        self.normals = np.ascontiguousarray(self.normals, dtype=np.float64).reshape(-1)

        if self.positions.size % 3 != 0:
            raise InvalidParametersError("positions length must be a multiple of 3")
        if self.indices.size % 3 != 0:
            raise InvalidParametersError("indices length must be a multiple of 3")
        count = self.vertex_count
        if self.normals.size != self.positions.size:
            raise InvalidParametersError(
                f"normals length {self.normals.size} != positions length {self.positions.size}"
            )
        if self.uvs.size != 2 * count:
            raise InvalidParametersError(
                f"uvs length {self.uvs.size} != 2 x vertex count {count}"
            )
        if self.indices.size and (self.indices.min() < 0 or self.indices.max() >= count):
            raise InvalidParametersError("indices reference vertices outside the mesh")

    @property
    def vertex_count(self) -> int:
        return self.positions.size // 3

    @property
    def triangle_count(self) -> int:
        return self.indices.size // 3

    @property
    def vertices(self) -> NDArray[np.float64]:
        """(N, 3) view of positions."""
        return self.positions.reshape(-1, 3)

    @property
    def triangles(self) -> NDArray[np.int64]:
        """(T, 3) view of indices."""
        return self.indices.reshape(-1, 3)

    @property
    def xs(self) -> NDArray[np.float64]:
        return self.positions[0::3]

    @property
    def heights(self) -> NDArray[np.float64]:
        """Writable view of every vertex's Y coordinate."""
        return self.positions[1::3]

    @property
    def zs(self) -> NDArray[np.float64]:
        return self.positions[2::3]

    def bounds(self) -> tuple[float, float, float, float]:
        """Footprint on the ground plane as (min_x, max_x, min_z, max_z)."""
        if self.vertex_count == 0:
            return 0.0, 0.0, 0.0, 0.0
        xs, zs = self.xs, self.zs
        return float(xs.min()), float(xs.max()), float(zs.min()), float(zs.max())

    def recompute_normals(self) -> None:
        """Recompute smooth normals after the positions changed."""
        compute_normals(self.positions, self.indices, out=self.normals)

    def copy(self) -> "Mesh":
        return Mesh(
            positions=self.positions.copy(),
            indices=self.indices.copy(),
            uvs=self.uvs.copy(),
            normals=self.normals.copy(),
            name=self.name,
        )


def compute_normals(
    positions: NDArray[np.float64],
    indices: NDArray[np.int64],
    out: NDArray[np.float64] | None = None,
) -> NDArray[np.float64]:
    """Compute area-weighted smooth vertex normals.

    Each triangle's unnormalized face normal is added to its three
    vertices, then every vertex normal is normalized. Vertices with no
    usable contribution get (0, 1, 0).

    Args:
        positions: Flat vertex positions.
        indices: Flat triangle indices.
        out: Optional flat buffer to write the normals into.

    Returns:
        Flat normals array, the same object as ``out`` when given.
    """
    vertices = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
    triangles = np.asarray(indices, dtype=np.int64).reshape(-1, 3)

    accumulated = np.zeros_like(vertices)
    if triangles.size:
        a = vertices[triangles[:, 0]]
        b = vertices[triangles[:, 1]]
        c = vertices[triangles[:, 2]]
        # (c - a) x (b - a) points +Y for the grid winding used below
        face = np.cross(c - a, b - a)
        for corner in range(3):
            np.add.at(accumulated, triangles[:, corner], face)

    length = np.linalg.norm(accumulated, axis=1)
    valid = np.isfinite(length) & (length > 1e-12)
    accumulated[valid] /= length[valid, None]
    accumulated[~valid] = UP

    if out is None:
        return accumulated.reshape(-1)
    out[:] = accumulated.reshape(-1)
    return out


def grid_indices(columns: int, rows: int) -> NDArray[np.int64]:
    """Triangle indices for a columns x rows vertex grid.

    Each quad becomes (bottomLeft, bottomRight, topRight) and
    (bottomLeft, topRight, topLeft).
    """
    z, x = np.mgrid[0 : rows - 1, 0 : columns - 1]
    bottom_left = (z * columns + x).reshape(-1)
    bottom_right = bottom_left + 1
    top_left = bottom_left + columns
    top_right = top_left + 1
    quads = np.stack(
        [bottom_left, bottom_right, top_right, bottom_left, top_right, top_left],
        axis=1,
    )
    return quads.reshape(-1).astype(np.int64)


class MeshAssembler:
    """Converts height fields into centered regular grid meshes."""

    def assemble(
        self,
        height_field: HeightField,
        width: float,
        depth: float,
        name: str = "terrain",
    ) -> Mesh:
        """Build a mesh spanning width x depth world units, centered at the origin.

        Args:
            height_field: Samples in [0, 1], mapped to the field's height range.
            width: World extent along X.
            depth: World extent along Z.
            name: Mesh name.

        Returns:
            Mesh with positions, indices, uvs and normals.
        """
        columns, rows = height_field.width, height_field.height
        if columns < 2 or rows < 2:
            raise InvalidParametersError(
                f"Height field must be at least 2x2, got {columns}x{rows}"
            )
        if width <= 0 or depth <= 0:
            raise InvalidParametersError(f"Mesh extent must be positive, got {width}x{depth}")

        cell_width = width / (columns - 1)
        cell_depth = depth / (rows - 1)
        z, x = np.mgrid[0:rows, 0:columns]
        x = x.reshape(-1)
        z = z.reshape(-1)

        heights = np.clip(
            height_field.world_heights().reshape(-1),
            height_field.min_height,
            height_field.max_height,
        )

        vertices = np.empty((columns * rows, 3), dtype=np.float64)
        vertices[:, 0] = x * cell_width - width / 2
        vertices[:, 1] = heights
        vertices[:, 2] = z * cell_depth - depth / 2

        uvs = np.empty((columns * rows, 2), dtype=np.float64)
        uvs[:, 0] = x / (columns - 1)
        uvs[:, 1] = z / (rows - 1)

        indices = grid_indices(columns, rows)
        positions = vertices.reshape(-1)
        normals = compute_normals(positions, indices)

        logger.debug(
            "mesh_assembled",
            name=name,
            vertices=columns * rows,
            triangles=indices.size // 3,
        )
        return Mesh(positions=positions, indices=indices, uvs=uvs, normals=normals, name=name)


def create_ground(
    width: float,
    depth: float,
    subdivisions: int = 1,
    height: float = 0.0,
    name: str = "ground",
) -> Mesh:
    """Create a flat grid mesh with ``subdivisions`` quads per side."""
    if subdivisions < 1:
        raise InvalidParametersError(f"Subdivisions must be >= 1, got {subdivisions}")
    size = subdivisions + 1
    field = HeightField(
        width=size,
        height=size,
        data=np.zeros((size, size), dtype=np.float32),
        min_height=height,
        max_height=height,
    )
    return MeshAssembler().assemble(field, width, depth, name=name)
