"""Custom exceptions for terrain generation."""


class TerrainError(Exception):
    """Base exception for terrain generation errors."""

    pass


class CapacityExceededError(TerrainError):
    """Raised when a request is larger than the preallocated scratch buffers."""

    pass


class InvalidParametersError(TerrainError, ValueError):
    """Raised when options are out of range or malformed."""

    pass
