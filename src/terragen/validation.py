"""Post-generation validation of height fields and meshes."""

import numpy as np
import structlog

from .heightfield import HeightField
from .mesh import Mesh

logger = structlog.get_logger()

NORMAL_TOLERANCE = 1e-4


class ValidationResult:
    """Result of terrain validation."""

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.warnings: list[str] = []
        self.passed = True

    def add_error(self, message: str) -> None:
        """Add validation error."""
        self.errors.append(message)
        self.passed = False

    def add_warning(self, message: str) -> None:
        """Add validation warning."""
        self.warnings.append(message)


def validate_height_field(field: HeightField) -> ValidationResult:
    """Check buffer size, finiteness and the [0, 1] sample range."""
    result = ValidationResult()

    if field.buffer.size != field.width * field.height:
        result.add_error(
            f"Buffer has {field.buffer.size} samples, expected {field.width * field.height}"
        )
    if not np.all(np.isfinite(field.data)):
        result.add_error("Height field contains non-finite samples")
    elif field.data.size and (field.data.min() < 0.0 or field.data.max() > 1.0):
        result.add_error(
            f"Samples outside [0, 1]: min {field.data.min():.4f}, max {field.data.max():.4f}"
        )
    if field.max_height < field.min_height:
        result.add_error("max_height is below min_height")

    _log_result("height_field", result)
    return result


def validate_mesh(mesh: Mesh) -> ValidationResult:
    """Check buffer alignment, index bounds and normal validity.

    Args:
        mesh: Mesh to check.

    Returns:
        ValidationResult with any errors/warnings.
    """
    result = ValidationResult()

    # Check 1: Buffer alignment
    _check_buffer_lengths(mesh, result)

    # Check 2: Indices reference existing vertices
    _check_indices(mesh, result)

    # Check 3: Finite positions
    if not np.all(np.isfinite(mesh.positions)):
        result.add_error("Mesh positions contain non-finite values")

    # Check 4: Unit-length finite normals
    _check_normals(mesh, result)

    if mesh.triangle_count == 0:
        result.add_warning("Mesh has no triangles")

    _log_result(mesh.name, result)
    return result


def _check_buffer_lengths(mesh: Mesh, result: ValidationResult) -> None:
    if mesh.positions.size % 3 != 0:
        result.add_error(f"positions length {mesh.positions.size} is not a multiple of 3")
    if mesh.normals.size != mesh.positions.size:
        result.add_error(
            f"normals length {mesh.normals.size} != positions length {mesh.positions.size}"
        )
    if mesh.uvs.size * 3 != mesh.positions.size * 2:
        result.add_error(
            f"uvs length {mesh.uvs.size} does not match {mesh.vertex_count} vertices"
        )


def _check_indices(mesh: Mesh, result: ValidationResult) -> None:
    if mesh.indices.size % 3 != 0:
        result.add_error(f"indices length {mesh.indices.size} is not a multiple of 3")
    if mesh.indices.size and (
        mesh.indices.min() < 0 or mesh.indices.max() >= mesh.vertex_count
    ):
        result.add_error("indices reference vertices outside the mesh")


def _check_normals(mesh: Mesh, result: ValidationResult) -> None:
    if mesh.normals.size % 3 != 0:
        return
    normals = mesh.normals.reshape(-1, 3)
    if not np.all(np.isfinite(normals)):
        result.add_error("Normals contain non-finite values")
        return
    lengths = np.linalg.norm(normals, axis=1)
    bad = np.count_nonzero(np.abs(lengths - 1.0) > NORMAL_TOLERANCE)
    if bad:
        result.add_error(f"{bad} normals are not unit length")


def _log_result(subject: str, result: ValidationResult) -> None:
    if result.passed:
        logger.debug("validation_passed", subject=subject, warnings=len(result.warnings))
    else:
        logger.warning("validation_failed", subject=subject, errors=result.errors)
    for warning in result.warnings:
        logger.warning("validation_warning", subject=subject, warning=warning)
