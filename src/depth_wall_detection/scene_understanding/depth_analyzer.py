"""
Per-frame Depth Analysis

This module combines the three per-frame outcomes of one inverse-depth map:
how close the nearest obstacle is, which side a detected wall stands on, and
which third of the lower frame is the clearest path. Obstacle and free path
use thresholds on the raw relative inverse depth, so they need no camera
model; the wall comes from the RANSAC plane detector.
"""

import torch
from typing import Any, Optional
import logging
import time

from .plane_models import (
    ObstacleProximity, FreePathDirection, WallDirection, PlaneType,
    ObstacleConfig, FreePathConfig, ObstacleReport, FreePathReport,
    DepthAnalysisResult, EstimationResult
)
from .geometry_utils import CameraParameters, CameraProjection
from .plane_detector import PlaneDetector
from .sampling import RandomSource

logger = logging.getLogger(__name__)


class ObstacleDetector:
    """Obstacle proximity from the largest inverse depth in the frame."""

    def __init__(self, config: Optional[ObstacleConfig] = None):
        self.config = config or ObstacleConfig()
        self.config.validate()

    def detect(self, inverse_depth: torch.Tensor) -> ObstacleReport:
        """
        Find obstacle pixels in a flat inverse-depth grid.

        Only finite values above ``closeness_threshold`` count. The closest of
        them decides the proximity: ``VERY_CLOSE`` at or above
        ``very_close_threshold``, ``DETECTED`` otherwise.
        """
        obstacle_mask = torch.isfinite(inverse_depth) & (inverse_depth > self.config.closeness_threshold)
        pixel_indices = torch.nonzero(obstacle_mask, as_tuple=False).flatten()

        if len(pixel_indices) == 0:
            return ObstacleReport(ObstacleProximity.NONE, 0.0, pixel_indices)

        max_closeness = float(inverse_depth[pixel_indices].max())
        if max_closeness >= self.config.very_close_threshold:
            proximity = ObstacleProximity.VERY_CLOSE
        else:
            proximity = ObstacleProximity.DETECTED

        return ObstacleReport(proximity, max_closeness, pixel_indices)


class FreePathEstimator:
    """Clearest direction among the left, centre and right thirds of the lower frame."""

    def __init__(self, config: Optional[FreePathConfig] = None):
        self.config = config or FreePathConfig()
        self.config.validate()

    def estimate(self, inverse_depth: torch.Tensor, width: int, height: int) -> FreePathReport:
        """
        Count far pixels per third of the region of interest.

        The region spans rows from ``roi_start_fraction`` of the height to the
        bottom and the centred ``roi_width_fraction`` of the width. The side
        thirds are ``roi_width // 3`` columns wide, the centre takes the rest.
        Ties favour the centre, then the left.
        """
        config = self.config
        grid = inverse_depth.reshape(height, width)

        row_start = int(height * config.roi_start_fraction)
        roi_width = max(1, int(width * config.roi_width_fraction))
        col_start = (width - roi_width) // 2
        col_end = col_start + roi_width
        third = roi_width // 3

        far_mask = grid[row_start:, col_start:col_end] < config.farness_threshold
        considered = far_mask.numel()

        columns = torch.arange(col_start, col_end)
        left_columns = columns < col_start + third
        right_columns = columns >= col_end - third
        center_columns = ~(left_columns | right_columns)

        left = int(far_mask[:, left_columns].sum())
        center = int(far_mask[:, center_columns].sum())
        right = int(far_mask[:, right_columns].sum())

        support = considered * config.min_support_fraction
        if center >= left and center >= right and center > support:
            direction = FreePathDirection.CENTER
        elif left > center and left >= right and left > support:
            direction = FreePathDirection.LEFT
        elif right > center and right > left and right > support:
            direction = FreePathDirection.RIGHT
        else:
            direction = FreePathDirection.NONE

        rows, cols = torch.nonzero(far_mask, as_tuple=True)
        pixel_indices = (rows + row_start) * width + (cols + col_start)

        return FreePathReport(direction, left, center, right, considered, pixel_indices)


class DepthAnalyzer:
    """Main per-frame interface: inverse-depth grid in, combined analysis out."""

    def __init__(self, plane_detector: Optional[PlaneDetector] = None,
                 obstacle_config: Optional[ObstacleConfig] = None,
                 free_path_config: Optional[FreePathConfig] = None,
                 overlay_writer: Optional[Any] = None):
        """
        Args:
            plane_detector: Detector used for the wall; defaults to a
                ``PlaneDetector`` with default configuration
            obstacle_config: Obstacle proximity thresholds
            free_path_config: Free path region and thresholds
            overlay_writer: Optional ``OverlayWriter`` saving a debug image of
                every analysed frame
        """
        self.plane_detector = plane_detector or PlaneDetector()
        self.obstacle_detector = ObstacleDetector(obstacle_config)
        self.free_path_estimator = FreePathEstimator(free_path_config)
        self.overlay_writer = overlay_writer

    def analyze(self, depth_grid: Any, width: int, height: int,
                camera_params: CameraParameters,
                random_source: Optional[RandomSource] = None) -> DepthAnalysisResult:
        """
        Analyse one inverse-depth frame.

        Raises:
            InputShapeError: Buffer does not match width x height
            InvalidIntrinsicsError: fx or fy cannot be divided by
        """
        start_time = time.time()
        inverse_depth = CameraProjection.prepare_depth_grid(depth_grid, width, height)

        obstacle = self.obstacle_detector.detect(inverse_depth)
        estimation = self.plane_detector.detect_planes(
            inverse_depth, width, height, camera_params, random_source
        )
        free_path = self.free_path_estimator.estimate(inverse_depth, width, height)

        result = DepthAnalysisResult(
            obstacle_proximity=obstacle.proximity,
            wall_direction=self._wall_direction(estimation),
            free_path_direction=free_path.direction,
            obstacle=obstacle,
            free_path=free_path,
            estimation=estimation,
            elapsed=time.time() - start_time
        )

        logger.debug(
            f"Analysis: obstacle={result.obstacle_proximity.value} "
            f"(max {obstacle.max_closeness:.3f}), wall={result.wall_direction.value}, "
            f"path={result.free_path_direction.value} in {result.elapsed:.3f}s"
        )

        if self.overlay_writer is not None:
            self.overlay_writer.write(inverse_depth, width, height, result)

        return result

    def _wall_direction(self, estimation: EstimationResult) -> WallDirection:
        plane = estimation.best_plane
        if plane is None:
            return WallDirection.NONE

        plane_type, direction = self.plane_detector.wall_classifier.classify(plane)
        return direction if plane_type == PlaneType.WALL else WallDirection.NONE
