"""
RANSAC-based Plane Detection for Wall Surface Analysis

This module implements single-plane extraction from relative inverse-depth
maps: the grid is back-projected into a point cloud and RANSAC keeps the plane
with the largest inlier support found within a fixed iteration budget.
"""

import torch
from typing import Optional, Any
import logging
import time
from abc import ABC, abstractmethod

from .plane_models import (
    Plane, PointCloud, EstimationResult, EstimationStatus,
    PlaneDetectionConfig, PointCloudConfig, WallClassificationConfig
)
from .geometry_utils import GeometryUtils, CameraParameters, CameraProjection
from .sampling import RandomSource, TorchRandomSource, sample_distinct_triple
from .wall_classifier import WallClassifier

logger = logging.getLogger(__name__)


class BasePlaneEstimator(ABC):
    """Abstract base class for plane estimation algorithms."""

    @abstractmethod
    def estimate(self, point_cloud: PointCloud,
                 random_source: Optional[RandomSource] = None) -> EstimationResult:
        """Estimate the dominant plane of a point cloud."""
        pass


class RANSACPlaneEstimator(BasePlaneEstimator):
    """RANSAC estimator returning at most the single best-supported plane."""

    def __init__(self, config: PlaneDetectionConfig):
        """
        Initialize RANSAC plane estimator.

        Args:
            config: Plane detection configuration
        """
        self.config = config
        self.config.validate()

    def estimate(self, point_cloud: PointCloud,
                 random_source: Optional[RandomSource] = None) -> EstimationResult:
        """
        Fit the best plane to a point cloud.

        Every call runs exactly ``ransac_iterations`` iterations and owns its
        random source: the injected one, or a fresh ``TorchRandomSource``
        seeded from the configuration.

        Args:
            point_cloud: Cloud to fit
            random_source: Optional generator for the minimal samples

        Returns:
            Estimation result holding zero or one plane
        """
        start_time = time.time()
        config = self.config
        num_points = len(point_cloud)

        result = EstimationResult(point_count=num_points)

        if num_points < 3 or num_points < config.min_inliers:
            logger.warning(
                f"Point cloud size ({num_points}) is below 3 or min_inliers "
                f"({config.min_inliers}); cannot fit plane"
            )
            result.status = EstimationStatus.INSUFFICIENT_DATA
            result.elapsed = time.time() - start_time
            return result

        if random_source is None:
            random_source = TorchRandomSource(config.seed)

        points = point_cloud.points
        best_normal = None
        best_offset = 0.0
        best_inlier_count = -1

        for iteration in range(config.ransac_iterations):
            idx1, idx2, idx3 = sample_distinct_triple(
                random_source, num_points, config.max_sample_retries
            )

            plane_params = GeometryUtils.plane_from_points(
                points[idx1], points[idx2], points[idx3], config.min_normal_magnitude
            )
            if plane_params is None:
                result.degenerate_samples += 1
                continue

            normal, offset = plane_params
            inlier_count = GeometryUtils.count_inliers(points, normal, offset, config.ransac_threshold)

            # Strictly greater: the earliest plane wins ties
            if inlier_count > best_inlier_count:
                best_inlier_count = inlier_count
                best_normal = normal
                best_offset = offset

        result.iterations = config.ransac_iterations
        result.best_inlier_count = best_inlier_count

        if result.degenerate_samples:
            logger.debug(f"Skipped {result.degenerate_samples} degenerate samples")

        if best_normal is None or best_inlier_count < config.min_inliers:
            logger.debug(
                f"No significant plane found (max inliers {best_inlier_count} "
                f"< min required {config.min_inliers})"
            )
            result.status = EstimationStatus.NO_QUALIFYING_PLANE
        elif config.max_planes < 1:
            logger.warning(f"Result capacity is {config.max_planes}; dropping the detected plane")
            result.status = EstimationStatus.NO_QUALIFYING_PLANE
        else:
            result.planes.append(self._create_plane(point_cloud, best_normal, best_offset, best_inlier_count))
            result.status = EstimationStatus.PLANE_FOUND
            logger.debug(
                f"Best plane found with {best_inlier_count} inliers (>= min {config.min_inliers})"
            )

        result.elapsed = time.time() - start_time
        return result

    def _create_plane(self, point_cloud: PointCloud, normal: torch.Tensor,
                      offset: float, inlier_count: int) -> Plane:
        """Create Plane object with the pixel indices of its inliers."""
        a, b, c = (float(value) for value in normal)
        plane = Plane(a=a, b=b, c=c, d=offset, inlier_count=inlier_count)

        inlier_mask = plane.distance_to_points(point_cloud.points) < self.config.ransac_threshold
        plane.inlier_indices = point_cloud.pixel_indices[inlier_mask]
        return plane


class PlaneDetector:
    """Main interface: inverse-depth grid in, best plane out."""

    def __init__(self, config: Optional[PlaneDetectionConfig] = None,
                 point_cloud_config: Optional[PointCloudConfig] = None,
                 wall_config: Optional[WallClassificationConfig] = None):
        """Initialize plane detector with configuration."""
        self.config = config or PlaneDetectionConfig()
        self.point_cloud_config = point_cloud_config or PointCloudConfig()
        self.wall_config = wall_config or WallClassificationConfig()

        self.point_cloud_config.validate()
        self.estimator = RANSACPlaneEstimator(self.config)
        self.wall_classifier = WallClassifier(self.wall_config, self.point_cloud_config.vertical_axis)

        logger.info(
            f"PlaneDetector initialized with {self.config.ransac_iterations} iterations, "
            f"threshold {self.config.ransac_threshold}, min inliers {self.config.min_inliers}"
        )

    def build_point_cloud(self, depth_grid: Any, width: int, height: int,
                          camera_params: CameraParameters) -> PointCloud:
        """Back-project an inverse-depth grid with the configured conventions."""
        projection = CameraProjection(camera_params, self.point_cloud_config)
        return projection.inverse_depth_to_point_cloud(depth_grid, width, height)

    def detect_planes(self, depth_grid: Any, width: int, height: int,
                      camera_params: CameraParameters,
                      random_source: Optional[RandomSource] = None) -> EstimationResult:
        """
        Detect the dominant plane in an inverse-depth grid.

        Args:
            depth_grid: Row-major relative inverse depth, flat (H*W,) or (H, W)
            width: Grid width in pixels
            height: Grid height in pixels
            camera_params: Camera intrinsics in pixel units
            random_source: Optional generator for reproducible sampling

        Returns:
            Estimation result holding zero or one plane

        Raises:
            InputShapeError: Buffer does not match width x height
            InvalidIntrinsicsError: fx or fy cannot be divided by
        """
        logger.debug(
            f"Detecting planes on {width}x{height} grid with fx={camera_params.fx}, "
            f"fy={camera_params.fy}, cx={camera_params.cx}, cy={camera_params.cy}"
        )

        point_cloud = self.build_point_cloud(depth_grid, width, height, camera_params)
        logger.debug(f"Generated point cloud with {len(point_cloud)} points")

        result = self.estimator.estimate(point_cloud, random_source)

        if self.wall_config.enabled:
            for plane in result.planes:
                self.wall_classifier.annotate(plane)

        logger.debug(f"Detected {len(result)} planes in {result.elapsed:.3f}s")
        return result


def find_planes_ransac(depth_grid: Any, width: int, height: int,
                       fx: float, fy: float, cx: float, cy: float,
                       distance_threshold: float, min_inliers: int, max_iterations: int,
                       max_planes: int = 1, seed: Optional[int] = None,
                       random_source: Optional[RandomSource] = None) -> EstimationResult:
    """
    Detect the best plane with flat arguments, as called from a host bridge.

    Wall classification is left to the caller; use ``PlaneDetector`` for it.
    """
    config = PlaneDetectionConfig(
        ransac_iterations=max_iterations,
        ransac_threshold=distance_threshold,
        min_inliers=min_inliers,
        max_planes=max_planes,
        seed=seed
    )
    detector = PlaneDetector(config, wall_config=WallClassificationConfig(enabled=False))
    camera_params = CameraParameters(fx=fx, fy=fy, cx=cx, cy=cy)

    return detector.detect_planes(depth_grid, width, height, camera_params, random_source)
