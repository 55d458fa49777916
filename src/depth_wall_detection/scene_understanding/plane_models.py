"""
Data Models and Configuration for Wall Plane Detection

This module defines the core data structures passed between the point cloud
builder and the RANSAC estimator, and the configuration dataclasses that tune
both stages, the wall classifier and the per-frame obstacle and free path
analysis.
"""

import math
import torch
import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any, Iterator
from enum import Enum


class PlaneType(Enum):
    """Plane type classification."""
    WALL = "wall"
    FLOOR = "floor"
    CEILING = "ceiling"
    UNKNOWN = "unknown"


class WallDirection(Enum):
    """Side of the camera a detected wall stands on."""
    NONE = "none"
    LEFT = "left"
    RIGHT = "right"
    FRONT = "front"


class VerticalAxis(str, Enum):
    """Direction of increasing Y in the back-projected point cloud."""
    UP = "up"      # Y negated after back-projection
    DOWN = "down"  # image convention, rows grow downwards


class EstimationStatus(Enum):
    """Outcome of a single estimation call."""
    PLANE_FOUND = "plane_found"
    INSUFFICIENT_DATA = "insufficient_data"
    NO_QUALIFYING_PLANE = "no_qualifying_plane"


class ObstacleProximity(Enum):
    """How close the nearest obstacle in the frame is."""
    NONE = "none"
    DETECTED = "detected"
    VERY_CLOSE = "very_close"


class FreePathDirection(Enum):
    """Direction of the clearest path in the lower half of the frame."""
    NONE = "none"
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"


@dataclass(frozen=True, eq=False)
class PointCloud:
    """
    Point cloud back-projected from one inverse-depth grid.

    ``points`` is an (N, 3) float32 tensor in row-major pixel order and
    ``pixel_indices`` holds the flat grid index each point came from, so a
    subset can always be mapped back onto the image.
    """

    points: torch.Tensor
    pixel_indices: torch.Tensor
    width: int
    height: int

    @classmethod
    def empty(cls, width: int, height: int) -> "PointCloud":
        return cls(
            points=torch.empty((0, 3), dtype=torch.float32),
            pixel_indices=torch.empty(0, dtype=torch.long),
            width=width,
            height=height
        )

    def __len__(self) -> int:
        return int(self.points.shape[0])

    @property
    def is_empty(self) -> bool:
        return len(self) == 0

    def select(self, mask: torch.Tensor) -> "PointCloud":
        """Return a new cloud holding the points where ``mask`` is true."""
        return PointCloud(
            points=self.points[mask],
            pixel_indices=self.pixel_indices[mask],
            width=self.width,
            height=self.height
        )

    def pixel_mask(self, indices: Optional[torch.Tensor] = None) -> torch.Tensor:
        """Boolean (height, width) mask of the pixels behind the given cloud indices."""
        mask = torch.zeros(self.width * self.height, dtype=torch.bool)
        pixels = self.pixel_indices if indices is None else self.pixel_indices[indices]
        mask[pixels] = True
        return mask.reshape(self.height, self.width)


@dataclass
class Plane:
    """
    Plane ``a*x + b*y + c*z + d = 0`` with a unit normal and its RANSAC support.
    """

    a: float
    b: float
    c: float
    d: float
    inlier_count: int

    # Flat pixel indices of the inliers, filled in by the estimator
    inlier_indices: Optional[torch.Tensor] = field(default=None, compare=False)

    # Filled in by the wall classifier
    plane_type: PlaneType = PlaneType.UNKNOWN
    wall_direction: WallDirection = WallDirection.NONE

    @property
    def normal(self) -> torch.Tensor:
        return torch.tensor([self.a, self.b, self.c], dtype=torch.float32)

    def distance_to_points(self, points: torch.Tensor) -> torch.Tensor:
        """Unsigned distance from (N, 3) points to the plane."""
        # Normal is unit length, so no division is needed
        return torch.abs(points @ self.normal + self.d)

    def is_valid(self, min_inliers: int = 0, tolerance: float = 1e-5) -> bool:
        """Check the finite unit-normal and minimum support invariants."""
        components = (self.a, self.b, self.c, self.d)
        if not all(math.isfinite(value) for value in components):
            return False

        norm = math.sqrt(self.a ** 2 + self.b ** 2 + self.c ** 2)
        return abs(norm - 1.0) <= tolerance and self.inlier_count >= min_inliers

    def to_array(self) -> np.ndarray:
        """Flat float32 record ``[a, b, c, d, inlier_count]``."""
        return np.array([self.a, self.b, self.c, self.d, self.inlier_count], dtype=np.float32)

    def to_dict(self) -> Dict[str, Any]:
        """Convert plane to dictionary representation."""
        return {
            'a': self.a,
            'b': self.b,
            'c': self.c,
            'd': self.d,
            'inlier_count': self.inlier_count,
            'plane_type': self.plane_type.value,
            'wall_direction': self.wall_direction.value
        }


@dataclass
class EstimationResult:
    """Zero or one plane plus diagnostics for one estimation call."""

    planes: List[Plane] = field(default_factory=list)
    status: EstimationStatus = EstimationStatus.INSUFFICIENT_DATA
    point_count: int = 0
    iterations: int = 0
    degenerate_samples: int = 0
    best_inlier_count: int = -1
    elapsed: float = 0.0

    def __len__(self) -> int:
        return len(self.planes)

    def __iter__(self) -> Iterator[Plane]:
        return iter(self.planes)

    @property
    def is_empty(self) -> bool:
        return not self.planes

    @property
    def best_plane(self) -> Optional[Plane]:
        return self.planes[0] if self.planes else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'planes': [plane.to_dict() for plane in self.planes],
            'status': self.status.value,
            'point_count': self.point_count,
            'iterations': self.iterations,
            'degenerate_samples': self.degenerate_samples,
            'best_inlier_count': self.best_inlier_count,
            'elapsed': self.elapsed
        }


@dataclass
class PointCloudConfig:
    """Configuration for back-projecting inverse depth into a point cloud."""

    min_inverse_depth: float = 1e-5  # Cells at or below this are invalid
    max_depth: float = 1000.0  # Relative depth ceiling
    vertical_axis: VerticalAxis = VerticalAxis.UP

    def validate(self) -> bool:
        """Validate configuration parameters."""
        if self.min_inverse_depth < 0:
            raise ValueError("Minimum inverse depth must be non-negative")

        if self.max_depth <= 0:
            raise ValueError("Maximum depth must be positive")

        if not isinstance(self.vertical_axis, VerticalAxis):
            self.vertical_axis = VerticalAxis(self.vertical_axis)

        return True


@dataclass
class PlaneDetectionConfig:
    """Configuration for RANSAC plane estimation."""

    # RANSAC parameters
    ransac_iterations: int = 200
    ransac_threshold: float = 0.05  # Relative units, same as the point cloud
    min_inliers: int = 1500

    # Caller's result capacity; at most one plane is ever produced
    max_planes: int = 1

    # Sampling
    max_sample_retries: int = 16
    min_normal_magnitude: float = 1e-6
    seed: Optional[int] = None

    def validate(self) -> bool:
        """Validate configuration parameters."""
        if self.ransac_iterations <= 0:
            raise ValueError("RANSAC iterations must be positive")

        if self.ransac_threshold <= 0:
            raise ValueError("RANSAC threshold must be positive")

        if self.min_inliers < 0:
            raise ValueError("Minimum inliers must be non-negative")

        if self.max_planes < 0:
            raise ValueError("Maximum planes must be non-negative")

        if self.max_sample_retries < 0:
            raise ValueError("Maximum sample retries must be non-negative")

        if self.min_normal_magnitude <= 0:
            raise ValueError("Minimum normal magnitude must be positive")

        return True


@dataclass
class WallClassificationConfig:
    """Configuration for labelling a detected plane as wall, floor or ceiling."""

    enabled: bool = True
    verticality_threshold: float = 0.2  # |b| / |(a, c)| below this is a wall
    horizontal_threshold: float = 0.8  # |b| above this is floor or ceiling
    direction_ratio: float = 1.5  # |a| > ratio * |c| is a side wall

    def validate(self) -> bool:
        """Validate configuration parameters."""
        if self.verticality_threshold <= 0:
            raise ValueError("Verticality threshold must be positive")

        if not 0 < self.horizontal_threshold <= 1:
            raise ValueError("Horizontal threshold must be in (0, 1]")

        if self.direction_ratio <= 0:
            raise ValueError("Direction ratio must be positive")

        return True


@dataclass
class ObstacleConfig:
    """Inverse-depth thresholds for obstacle proximity; higher means closer."""

    closeness_threshold: float = 0.75
    very_close_threshold: float = 0.9

    def validate(self) -> bool:
        """Validate configuration parameters."""
        if not math.isfinite(self.closeness_threshold) or not math.isfinite(self.very_close_threshold):
            raise ValueError("Obstacle thresholds must be finite")

        if self.very_close_threshold < self.closeness_threshold:
            raise ValueError("Very close threshold must not be below the closeness threshold")

        return True


@dataclass
class FreePathConfig:
    """Configuration for the free path estimate on the lower part of the frame."""

    farness_threshold: float = 0.25  # Inverse depth below this is free space
    roi_start_fraction: float = 0.5  # First row of the region, as a fraction of the height
    roi_width_fraction: float = 1.0  # Centred share of the width split into thirds
    min_support_fraction: float = 0.1  # Winning third must exceed this share of the region

    def validate(self) -> bool:
        """Validate configuration parameters."""
        if not math.isfinite(self.farness_threshold):
            raise ValueError("Farness threshold must be finite")

        if not 0 <= self.roi_start_fraction < 1:
            raise ValueError("Region start fraction must be in [0, 1)")

        if not 0 < self.roi_width_fraction <= 1:
            raise ValueError("Region width fraction must be in (0, 1]")

        if not 0 <= self.min_support_fraction < 1:
            raise ValueError("Minimum support fraction must be in [0, 1)")

        return True


@dataclass(eq=False)
class ObstacleReport:
    """Pixels closer than the closeness threshold and the closest value among them."""

    proximity: ObstacleProximity
    max_closeness: float
    pixel_indices: torch.Tensor

    def __len__(self) -> int:
        return int(self.pixel_indices.numel())


@dataclass(eq=False)
class FreePathReport:
    """Far-pixel counts per third of the free path region."""

    direction: FreePathDirection
    left_count: int
    center_count: int
    right_count: int
    considered: int
    pixel_indices: torch.Tensor

    def __len__(self) -> int:
        return int(self.pixel_indices.numel())


@dataclass
class DepthAnalysisResult:
    """
    Combined per-frame analysis: obstacle proximity, wall direction and free
    path direction. Equality compares only these three outcomes.
    """

    obstacle_proximity: ObstacleProximity = ObstacleProximity.NONE
    wall_direction: WallDirection = WallDirection.NONE
    free_path_direction: FreePathDirection = FreePathDirection.NONE

    obstacle: Optional[ObstacleReport] = field(default=None, compare=False)
    free_path: Optional[FreePathReport] = field(default=None, compare=False)
    estimation: Optional[EstimationResult] = field(default=None, compare=False)
    elapsed: float = field(default=0.0, compare=False)

    @property
    def wall_detected(self) -> bool:
        return self.wall_direction != WallDirection.NONE

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'obstacle_proximity': self.obstacle_proximity.value,
            'wall_direction': self.wall_direction.value,
            'free_path_direction': self.free_path_direction.value,
            'elapsed': self.elapsed
        }
        if self.obstacle is not None:
            result['max_closeness'] = self.obstacle.max_closeness
        if self.estimation is not None:
            result['estimation'] = self.estimation.to_dict()
        return result
