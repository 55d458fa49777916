"""
Geometry Utilities for Wall Plane Detection

This module provides the pinhole camera model used to back-project relative
inverse depth into a point cloud, and the small set of plane computations the
RANSAC estimator is built from.
"""

import math
import numbers
import torch
import numpy as np
from typing import Tuple, Optional, Any
import logging
from dataclasses import dataclass

from .plane_models import PointCloud, PointCloudConfig, VerticalAxis
from ..errors import InputShapeError, InvalidIntrinsicsError

logger = logging.getLogger(__name__)


@dataclass
class CameraParameters:
    """Camera intrinsic parameters in pixel units."""

    fx: float  # Focal length in x
    fy: float  # Focal length in y
    cx: float  # Principal point x
    cy: float  # Principal point y

    @classmethod
    def from_matrix(cls, matrix: Any) -> "CameraParameters":
        """Build parameters from a 3x3 intrinsics matrix."""
        k = torch.as_tensor(matrix, dtype=torch.float32)
        return cls(fx=float(k[0, 0]), fy=float(k[1, 1]), cx=float(k[0, 2]), cy=float(k[1, 2]))

    def validate(self) -> bool:
        """Reject focal lengths that cannot be divided by."""
        for name in ("fx", "fy"):
            value = getattr(self, name)
            if value == 0 or not math.isfinite(value):
                raise InvalidIntrinsicsError(f"Camera {name} must be finite and non-zero, got {value}")
        return True

    def get_intrinsics_matrix(self) -> torch.Tensor:
        """Get 3x3 intrinsics matrix."""
        return torch.tensor([
            [self.fx, 0.0, self.cx],
            [0.0, self.fy, self.cy],
            [0.0, 0.0, 1.0]
        ], dtype=torch.float32)


class GeometryUtils:
    """Utility class for 3D plane geometry."""

    @staticmethod
    def plane_from_points(p1: torch.Tensor, p2: torch.Tensor, p3: torch.Tensor,
                          min_magnitude: float = 1e-6) -> Optional[Tuple[torch.Tensor, float]]:
        """
        Compute the plane through three points.

        Args:
            p1, p2, p3: Points (3,)
            min_magnitude: Cross product magnitude below which the points are
                treated as collinear or coincident

        Returns:
            Tuple of (unit normal, offset d) with ``normal . p + d = 0`` on the
            plane, or None for a degenerate triple
        """
        normal = torch.linalg.cross(p2 - p1, p3 - p1)
        magnitude = torch.linalg.norm(normal)

        if not torch.isfinite(magnitude) or magnitude < min_magnitude:
            return None

        normal = normal / magnitude
        d = -torch.dot(normal, p1)

        return normal, float(d)

    @staticmethod
    def point_to_plane_distance(points: torch.Tensor, plane_normal: torch.Tensor,
                                plane_offset: float) -> torch.Tensor:
        """
        Compute unsigned distance from points to a plane with a unit normal.

        Args:
            points: Points tensor (N, 3)
            plane_normal: Unit plane normal (3,)
            plane_offset: Plane offset d

        Returns:
            Distances (N,)
        """
        return torch.abs(torch.mv(points, plane_normal) + plane_offset)

    @staticmethod
    def count_inliers(points: torch.Tensor, plane_normal: torch.Tensor,
                      plane_offset: float, threshold: float) -> int:
        """Count points strictly closer than ``threshold`` to the plane."""
        distances = GeometryUtils.point_to_plane_distance(points, plane_normal, plane_offset)
        return int(torch.count_nonzero(distances < threshold).item())


class CameraProjection:
    """Back-projection of inverse-depth grids through a pinhole camera."""

    def __init__(self, camera_params: CameraParameters,
                 config: Optional[PointCloudConfig] = None):
        self.camera_params = camera_params
        self.config = config or PointCloudConfig()
        self.config.validate()

    @staticmethod
    def prepare_depth_grid(depth_grid: Any, width: int, height: int) -> torch.Tensor:
        """
        Check a caller buffer against the grid size and view it as a flat
        float32 tensor. The caller's buffer is never written to.

        Raises:
            InputShapeError: Missing buffer, non-positive size or length mismatch
        """
        if depth_grid is None:
            raise InputShapeError("Depth grid is missing", width, height)

        for size in (width, height):
            if isinstance(size, bool) or not isinstance(size, numbers.Integral):
                raise InputShapeError(f"Grid size must be integers, got {width!r}x{height!r}")

        if width <= 0 or height <= 0:
            raise InputShapeError(f"Grid size must be positive, got {width}x{height}", width, height)

        if isinstance(depth_grid, torch.Tensor):
            grid = depth_grid.detach().to(device="cpu", dtype=torch.float32)
        else:
            array = np.asarray(depth_grid, dtype=np.float32)
            if not array.flags.writeable:
                array = array.copy()
            grid = torch.from_numpy(array)

        if grid.dim() == 2 and tuple(grid.shape) != (height, width):
            raise InputShapeError(
                f"Depth grid shape {tuple(grid.shape)} does not match {height}x{width}",
                width, height, grid.numel()
            )
        if grid.dim() not in (1, 2) or grid.numel() != width * height:
            raise InputShapeError(
                f"Depth grid holds {grid.numel()} values, expected {width * height}",
                width, height, grid.numel()
            )

        return grid.reshape(-1)

    def inverse_depth_to_point_cloud(self, depth_grid: Any, width: int, height: int) -> PointCloud:
        """
        Convert a row-major relative inverse-depth grid to a point cloud.

        Args:
            depth_grid: Inverse depth values, flat (H*W,) or (H, W)
            width: Grid width in pixels
            height: Grid height in pixels

        Returns:
            Point cloud of the valid cells, in row-major order
        """
        self.camera_params.validate()
        inverse_depth = self.prepare_depth_grid(depth_grid, width, height)
        width, height = int(width), int(height)

        valid_mask = torch.isfinite(inverse_depth) & (inverse_depth > self.config.min_inverse_depth)
        pixel_indices = torch.nonzero(valid_mask, as_tuple=False).flatten()

        if len(pixel_indices) == 0:
            return PointCloud.empty(width, height)

        depth = 1.0 / inverse_depth[pixel_indices]

        # Tiny inverse depths blow up into huge, unstable Z values
        within_range = depth <= self.config.max_depth
        pixel_indices = pixel_indices[within_range]
        depth = depth[within_range]

        if len(pixel_indices) == 0:
            return PointCloud.empty(width, height)

        u = (pixel_indices % width).to(torch.float32)
        v = torch.div(pixel_indices, width, rounding_mode='floor').to(torch.float32)

        fx, fy = self.camera_params.fx, self.camera_params.fy
        cx, cy = self.camera_params.cx, self.camera_params.cy

        x_3d = (u - cx) * depth / fx
        y_3d = (v - cy) * depth / fy
        if self.config.vertical_axis == VerticalAxis.UP:
            y_3d = -y_3d

        points_3d = torch.stack([x_3d, y_3d, depth], dim=1)

        return PointCloud(points=points_3d, pixel_indices=pixel_indices, width=width, height=height)
