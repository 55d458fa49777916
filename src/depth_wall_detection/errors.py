"""
Exceptions raised by the wall detection package.

Only malformed caller input is a hard failure. Empty point clouds, degenerate
samples and planes that miss the support threshold are reported through
``EstimationResult.status`` instead.
"""


class PlaneDetectionError(Exception):
    """Base class for plane detection errors."""


class InputShapeError(PlaneDetectionError, ValueError):
    """Depth buffer is missing or does not match the declared grid size."""

    def __init__(self, message: str, width: int = 0, height: int = 0, length: int = 0):
        super().__init__(message)
        self.width = width
        self.height = height
        self.length = length


class InvalidIntrinsicsError(PlaneDetectionError, ValueError):
    """Camera focal length cannot be used as a back-projection denominator."""
