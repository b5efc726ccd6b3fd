"""Erosion simulation on triangle meshes.

Thermal erosion moves material from the high to the low corner of any
triangle steeper than the talus angle. Hydraulic erosion drops rain
droplets that pick up sediment on steep ground and deposit it where they
slow down.
"""

import math
from dataclasses import dataclass

import numpy as np
import structlog
from numpy.typing import ArrayLike, NDArray

from .config import ErosionOptions, ErosionType
from .exceptions import InvalidParametersError
from .mesh import Mesh

logger = structlog.get_logger()

DEGENERATE_EPSILON = 1e-4
# Points on a shared edge must land in one of its triangles
BARYCENTRIC_TOLERANCE = 1e-9
EVAPORATION = 0.99
MAX_EROSION_PER_STEP = 0.1
SPEED_GAIN = 0.1


def _require_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise InvalidParametersError(f"{name} must be in [0, 1], got {value}")


def _require_iterations(iterations: int) -> None:
    if iterations < 0:
        raise InvalidParametersError(f"Iterations must be >= 0, got {iterations}")


def barycentric_coords(
    x: ArrayLike,
    z: ArrayLike,
    x1: ArrayLike,
    z1: ArrayLike,
    x2: ArrayLike,
    z2: ArrayLike,
    x3: ArrayLike,
    z3: ArrayLike,
) -> tuple[NDArray[np.float64], NDArray[np.float64], NDArray[np.float64]]:
    """Barycentric coordinates (u, v, w) of a point in a ground-plane triangle.

    Works element-wise on arrays. Near-zero-area triangles report (0, 0, 0).
    """
    x, z, x1, z1, x2, z2, x3, z3 = (
        np.asarray(value, dtype=np.float64) for value in (x, z, x1, z1, x2, z2, x3, z3)
    )
    denominator = (z2 - z3) * (x1 - x3) + (x3 - x2) * (z1 - z3)
    degenerate = np.abs(denominator) < DEGENERATE_EPSILON
    safe = np.where(degenerate, 1.0, denominator)

    u = ((z2 - z3) * (x - x3) + (x3 - x2) * (z - z3)) / safe
    v = ((z3 - z1) * (x - x3) + (x1 - x3) * (z - z3)) / safe
    w = 1.0 - u - v

    u = np.where(degenerate, 0.0, u)
    v = np.where(degenerate, 0.0, v)
    w = np.where(degenerate, 0.0, w)
    return u, v, w


class ThermalErosion:
    """Relaxes slopes steeper than the talus angle, one triangle at a time."""

    def apply(self, mesh: Mesh, iterations: int, strength: float, talus_angle: float) -> None:
        """Run thermal erosion in place.

        Every triangle in an iteration reads from the heights at the start
        of that iteration, so traversal order does not matter. A vertex
        shared by several triangles collects each triangle's transfer
        independently; mass is conserved per triangle, not globally.

        Args:
            mesh: Mesh to erode.
            iterations: Number of passes.
            strength: Fraction of the excess height moved per pass (0-1).
            talus_angle: Stable slope as a fraction of a right angle (0-1).
        """
        _require_iterations(iterations)
        _require_unit_interval("strength", strength)
        _require_unit_interval("talus_angle", talus_angle)

        max_ratio = math.tan(talus_angle * math.pi / 2.0)
        triangles = mesh.triangles
        rows = np.arange(len(triangles))
        xs, zs = mesh.xs, mesh.zs
        heights = mesh.heights
        snapshot = np.empty(mesh.vertex_count, dtype=np.float64)
        moved_total = 0.0

        for _ in range(iterations):
            snapshot[:] = heights
            corner_heights = snapshot[triangles]

            high = triangles[rows, np.argmax(corner_heights, axis=1)]
            low = triangles[rows, np.argmin(corner_heights, axis=1)]

            height_diff = snapshot[high] - snapshot[low]
            distance = np.hypot(xs[high] - xs[low], zs[high] - zs[low])
            excess = height_diff - distance * max_ratio
            moving = np.where(excess > 0.0, excess * strength, 0.0)

            np.subtract.at(snapshot, high, moving)
            np.add.at(snapshot, low, moving)
            heights[:] = snapshot
            moved_total += float(moving.sum())

        mesh.recompute_normals()
        logger.debug(
            "thermal_erosion_applied",
            mesh=mesh.name,
            iterations=iterations,
            material_moved=moved_total,
        )


@dataclass
class DropletParameters:
    """Per-droplet simulation parameters."""

    droplet_lifetime: int = 30
    inertia: float = 0.3
    capacity: float = 4.0


class HydraulicErosion:
    """Droplet-based hydraulic erosion.

    Droplets spawn uniformly over the mesh footprint, so results depend on
    the random generator; pass a seeded one for reproducible erosion.
    Slope is the magnitude of the true plane gradient of the triangle under
    the droplet, so capacities differ from a single-edge slope estimate.
    """

    def __init__(self, rng: np.random.Generator | None = None):
        self.rng = rng if rng is not None else np.random.default_rng()

    def apply(
        self,
        mesh: Mesh,
        iterations: int,
        strength: float,
        params: DropletParameters | None = None,
    ) -> None:
        """Simulate ``iterations`` droplets, then recompute normals once.

        Args:
            mesh: Mesh to erode in place.
            iterations: Number of droplets.
            strength: Erosion and deposition strength (0-1).
            params: Droplet lifetime, inertia and capacity factor.
        """
        params = params if params is not None else DropletParameters()
        _require_iterations(iterations)
        _require_unit_interval("strength", strength)
        _require_unit_interval("inertia", params.inertia)
        if params.droplet_lifetime < 0:
            raise InvalidParametersError(
                f"Droplet lifetime must be >= 0, got {params.droplet_lifetime}"
            )
        if params.capacity < 0:
            raise InvalidParametersError(f"Capacity must be >= 0, got {params.capacity}")

        triangles = mesh.triangles
        vertices = mesh.vertices
        # Ground-plane corners never move during hydraulic erosion
        corner_x = vertices[triangles, 0]
        corner_z = vertices[triangles, 2]
        heights = mesh.heights

        min_x, max_x, min_z, max_z = mesh.bounds()
        steps_taken = 0

        for _ in range(iterations):
            pos_x = min_x + self.rng.random() * (max_x - min_x)
            pos_z = min_z + self.rng.random() * (max_z - min_z)
            dir_x = 0.0
            dir_z = 0.0
            speed = 1.0
            water = 1.0
            sediment = 0.0

            for _ in range(params.droplet_lifetime):
                located = self._locate(pos_x, pos_z, corner_x, corner_z)
                if located is None:
                    # Droplet left the terrain
                    break
                tri, u, v, w = located
                i1, i2, i3 = triangles[tri]

                grad_x, grad_z = _plane_gradient(
                    corner_x[tri], corner_z[tri], heights[i1], heights[i2], heights[i3]
                )
                slope = math.hypot(grad_x, grad_z)

                if slope > 0.0:
                    # Blend previous direction with the downhill direction
                    dir_x = dir_x * params.inertia - grad_x / slope * (1.0 - params.inertia)
                    dir_z = dir_z * params.inertia - grad_z / slope * (1.0 - params.inertia)
                    dir_len = math.hypot(dir_x, dir_z)
                    if dir_len > 0.0:
                        dir_x /= dir_len
                        dir_z /= dir_len

                capacity = max(0.0, speed * slope * water * params.capacity)

                if sediment > capacity:
                    deposit = (sediment - capacity) * strength
                    sediment -= deposit
                    heights[i1] += deposit * u
                    heights[i2] += deposit * v
                    heights[i3] += deposit * w
                else:
                    erosion = min((capacity - sediment) * strength, MAX_EROSION_PER_STEP)
                    heights[i1] -= erosion * u
                    heights[i2] -= erosion * v
                    heights[i3] -= erosion * w
                    sediment += erosion

                pos_x += dir_x
                pos_z += dir_z
                water *= EVAPORATION
                speed = math.sqrt(speed * speed + slope * SPEED_GAIN)
                steps_taken += 1

        mesh.recompute_normals()
        logger.debug(
            "hydraulic_erosion_applied",
            mesh=mesh.name,
            droplets=iterations,
            steps=steps_taken,
        )

    @staticmethod
    def _locate(
        x: float,
        z: float,
        corner_x: NDArray[np.float64],
        corner_z: NDArray[np.float64],
    ) -> tuple[int, float, float, float] | None:
        """First non-degenerate triangle containing (x, z), with its coordinates."""
        u, v, w = barycentric_coords(
            x,
            z,
            corner_x[:, 0],
            corner_z[:, 0],
            corner_x[:, 1],
            corner_z[:, 1],
            corner_x[:, 2],
            corner_z[:, 2],
        )
        degenerate = (u == 0.0) & (v == 0.0) & (w == 0.0)
        inside = (
            ~degenerate
            & (u >= -BARYCENTRIC_TOLERANCE)
            & (v >= -BARYCENTRIC_TOLERANCE)
            & (w >= -BARYCENTRIC_TOLERANCE)
        )
        hits = np.flatnonzero(inside)
        if hits.size == 0:
            return None
        tri = int(hits[0])
        return tri, float(u[tri]), float(v[tri]), float(w[tri])


def _plane_gradient(
    xs: NDArray[np.float64],
    zs: NDArray[np.float64],
    h1: float,
    h2: float,
    h3: float,
) -> tuple[float, float]:
    """Gradient (dh/dx, dh/dz) of the plane through a triangle's corners."""
    e1_x, e1_z, e1_h = xs[1] - xs[0], zs[1] - zs[0], h2 - h1
    e2_x, e2_z, e2_h = xs[2] - xs[0], zs[2] - zs[0], h3 - h1
    det = e1_x * e2_z - e1_z * e2_x
    if det == 0.0:
        return 0.0, 0.0
    grad_x = (e1_h * e2_z - e2_h * e1_z) / det
    grad_z = (e2_h * e1_x - e1_h * e2_x) / det
    return float(grad_x), float(grad_z)


def apply_erosion(
    mesh: Mesh,
    options: ErosionOptions,
    rng: np.random.Generator | None = None,
) -> None:
    """Run the erosion model(s) selected by ``options.kind``.

    Combined erosion runs thermal first, then hydraulic. Droplets use
    ``rng`` when given, otherwise a generator seeded from ``options.seed``.
    """
    if options.kind in (ErosionType.THERMAL, ErosionType.COMBINED):
        ThermalErosion().apply(
            mesh, options.iterations, options.strength, options.thermal_talus_angle
        )

    if options.kind in (ErosionType.HYDRAULIC, ErosionType.COMBINED):
        if rng is None:
            rng = np.random.default_rng(options.seed)
        params = DropletParameters(
            droplet_lifetime=options.droplet_lifetime,
            inertia=options.inertia,
            capacity=options.capacity,
        )
        HydraulicErosion(rng).apply(mesh, options.iterations, options.strength, params)
