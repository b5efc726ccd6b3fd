"""Localized terrain features: mountains, river channels and flattened pads.

Every operation mutates a mesh's vertex heights in place and finishes by
recomputing its normals.
"""

import math

import numpy as np
import structlog
from numpy.typing import NDArray

from .config import MountainOptions, NoiseParameters, Point2D, RiverOptions
from .exceptions import InvalidParametersError
from .heightfield import ScratchBuffers
from .mesh import Mesh
from .noise import DEFAULT_SEED, NoiseField

logger = structlog.get_logger()

MOUNTAIN_NOISE_RESOLUTION = 128
MOUNTAIN_NOISE = NoiseParameters(scale=20.0, octaves=4, persistence=0.5, lacunarity=2.0)

# World units of river length per meander subdivision
RIVER_SEGMENT_LENGTH = 10.0
RIVER_BED_EXPONENT = 0.7


def _require_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise InvalidParametersError(f"{name} must be in [0, 1], got {value}")


def mountain_falloff(distance_factor: NDArray[np.float64], steepness: float) -> NDArray[np.float64]:
    """Height factor for a normalized distance from the peak.

    Args:
        distance_factor: 1 at the center, 0 at the radius.
        steepness: 0 for a gradual slope, 1 for a sharp peak.
    """
    return distance_factor ** (1.0 / (1.0 - steepness * 0.8))


class MountainStamper:
    """Raises a noisy, radially falling-off mountain onto a mesh."""

    def __init__(self, seed: int = DEFAULT_SEED, scratch: ScratchBuffers | None = None):
        self.seed = seed
        self.scratch = scratch

    def apply(self, mesh: Mesh, options: MountainOptions) -> None:
        """Stamp a mountain. Vertices at or beyond ``options.radius`` are untouched.

        Detail noise is looked up relative to ``options.center``, so the
        noise pattern moves with the mountain rather than staying fixed in
        world space.

        Raises:
            InvalidParametersError: If options are out of range.
        """
        if options.radius <= 0:
            raise InvalidParametersError(f"Mountain radius must be positive, got {options.radius}")
        _require_unit_interval("roughness", options.roughness)
        _require_unit_interval("steepness", options.steepness)
        if options.plateau_height is not None:
            _require_unit_interval("plateau_height", options.plateau_height)

        # Detail noise uses its own seed so it does not mirror the base terrain
        resolution = MOUNTAIN_NOISE_RESOLUTION
        out = self.scratch.patch_buffer(resolution) if self.scratch is not None else None
        patch = NoiseField(self.seed + 1).noise_map(resolution, resolution, MOUNTAIN_NOISE, out=out)

        radius = options.radius
        dx = mesh.xs - options.center.x
        dz = mesh.zs - options.center.z
        dist = np.hypot(dx, dz)
        inside = dist < radius

        if np.any(inside):
            distance_factor = 1.0 - dist[inside] / radius
            falloff = mountain_falloff(distance_factor, options.steepness)

            # The patch spans the mountain's bounding square
            col = np.floor((dx[inside] + radius) / (2.0 * radius) * resolution).astype(np.int64)
            row = np.floor((dz[inside] + radius) / (2.0 * radius) * resolution).astype(np.int64)
            col = np.clip(col, 0, resolution - 1)
            row = np.clip(row, 0, resolution - 1)
            noise = patch[row, col].astype(np.float64) * options.roughness

            lift = options.peak_height * falloff * (1.0 + noise)
            if options.plateau_height is not None:
                plateau = distance_factor > options.plateau_height
                lift = np.where(plateau, options.peak_height * (0.9 + noise * 0.1), lift)

            heights = mesh.heights
            heights[inside] += lift

        mesh.recompute_normals()
        logger.debug(
            "mountain_applied",
            mesh=mesh.name,
            center=(options.center.x, options.center.z),
            radius=radius,
            vertices_affected=int(np.count_nonzero(inside)),
        )


def distance_to_segment(
    px: NDArray[np.float64],
    pz: NDArray[np.float64],
    a: NDArray[np.float64],
    b: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Distance from points to the segment a-b on the ground plane.

    A zero-length segment is treated as the point ``a``.
    """
    ab_x = b[0] - a[0]
    ab_z = b[1] - a[1]
    length_sq = ab_x * ab_x + ab_z * ab_z

    if length_sq == 0.0:
        return np.hypot(px - a[0], pz - a[1])

    t = ((px - a[0]) * ab_x + (pz - a[1]) * ab_z) / length_sq
    t = np.clip(t, 0.0, 1.0)
    return np.hypot(px - (a[0] + t * ab_x), pz - (a[1] + t * ab_z))


def build_river_path(options: RiverOptions) -> NDArray[np.float64]:
    """Build the river polyline as an (N, 2) array of (x, z) points.

    Control points are used verbatim between start and end. Without them,
    a start-to-end line is subdivided every RIVER_SEGMENT_LENGTH units and
    offset sideways by a sine wave of amplitude ``width * meandering``.
    Without an end, the path is the start point alone.
    """
    start = np.array([options.start.x, options.start.z], dtype=np.float64)

    if options.control_points:
        points = [start]
        points.extend(np.array([p.x, p.z], dtype=np.float64) for p in options.control_points)
        if options.end is not None:
            points.append(np.array([options.end.x, options.end.z], dtype=np.float64))
        return np.vstack(points)

    if options.end is None:
        return start.reshape(1, 2)

    end = np.array([options.end.x, options.end.z], dtype=np.float64)
    direction = end - start
    length = float(np.hypot(direction[0], direction[1]))
    segments = max(2, math.floor(length / RIVER_SEGMENT_LENGTH))

    if length > 0:
        perpendicular = np.array([-direction[1], direction[0]]) / length
    else:
        perpendicular = np.zeros(2)

    t = np.arange(1, segments, dtype=np.float64) / segments
    offsets = np.sin(t * math.pi * 2.0) * options.width * options.meandering
    middle = start + t[:, None] * direction + offsets[:, None] * perpendicular

    return np.vstack([start, middle, end])


class RiverCarver:
    """Carves a river channel along a polyline."""

    def apply(self, mesh: Mesh, options: RiverOptions) -> None:
        """Lower vertices within ``options.width`` of the river path.

        Carved depth is ``depth * (1 - dist / width) ** 0.7``. Carved
        vertices are clamped so they never end below 0.

        Raises:
            InvalidParametersError: If width or depth is not positive.
        """
        if options.width <= 0:
            raise InvalidParametersError(f"River width must be positive, got {options.width}")
        if options.depth <= 0:
            raise InvalidParametersError(f"River depth must be positive, got {options.depth}")
        _require_unit_interval("meandering", options.meandering)

        path = build_river_path(options)
        xs, zs = mesh.xs, mesh.zs

        if len(path) == 1:
            min_dist = np.hypot(xs - path[0, 0], zs - path[0, 1])
        else:
            min_dist = np.full(mesh.vertex_count, np.inf)
            for a, b in zip(path[:-1], path[1:]):
                np.minimum(min_dist, distance_to_segment(xs, zs, a, b), out=min_dist)

        in_channel = min_dist < options.width
        if np.any(in_channel):
            depth_factor = 1.0 - min_dist[in_channel] / options.width
            bed_depth = options.depth * depth_factor**RIVER_BED_EXPONENT

            heights = mesh.heights
            heights[in_channel] = np.maximum(heights[in_channel] - bed_depth, 0.0)

        mesh.recompute_normals()
        logger.debug(
            "river_carved",
            mesh=mesh.name,
            path_points=len(path),
            vertices_affected=int(np.count_nonzero(in_channel)),
        )


def flatten_area(
    mesh: Mesh,
    center: Point2D,
    radius: float,
    target_height: float | None = None,
) -> float:
    """Level every vertex within ``radius`` of ``center``.

    Args:
        mesh: Mesh to modify in place.
        center: Center of the pad on the ground plane.
        radius: Pad radius.
        target_height: Height to level to. Defaults to the mean height of
            the affected vertices.

    Returns:
        The height the area was leveled to.
    """
    if radius <= 0:
        raise InvalidParametersError(f"Flatten radius must be positive, got {radius}")

    inside = np.hypot(mesh.xs - center.x, mesh.zs - center.z) < radius
    heights = mesh.heights

    if target_height is None:
        target_height = float(heights[inside].mean()) if np.any(inside) else 0.0

    heights[inside] = target_height
    mesh.recompute_normals()
    logger.debug(
        "area_flattened",
        mesh=mesh.name,
        center=(center.x, center.z),
        radius=radius,
        height=target_height,
    )
    return target_height
