"""
Scene Understanding Module for Wall Detection

This module extracts the dominant planar surface from a relative inverse-depth
map produced by a monocular depth model, and combines it with obstacle and
free path analysis of the same frame.

Features:
- Pinhole back-projection of inverse depth into a point cloud
- RANSAC plane estimation with an injectable random source
- Wall, floor and ceiling classification of the detected plane
- Obstacle proximity and free path direction from inverse-depth thresholds
- Debug overlay rendering and saving
"""

from .plane_models import (
    Plane, PointCloud, EstimationResult, EstimationStatus,
    PlaneType, WallDirection, VerticalAxis, ObstacleProximity, FreePathDirection,
    PlaneDetectionConfig, PointCloudConfig, WallClassificationConfig,
    ObstacleConfig, FreePathConfig, ObstacleReport, FreePathReport, DepthAnalysisResult
)

from .plane_detector import (
    BasePlaneEstimator, RANSACPlaneEstimator, PlaneDetector, find_planes_ransac
)

from .geometry_utils import GeometryUtils, CameraParameters, CameraProjection

from .sampling import RandomSource, TorchRandomSource, sample_distinct_triple

from .wall_classifier import WallClassifier

from .depth_analyzer import ObstacleDetector, FreePathEstimator, DepthAnalyzer

from .visualization import PlaneVisualizer, OverlayWriter

__all__ = [
    # Core data models
    "Plane", "PointCloud", "EstimationResult", "EstimationStatus",
    "PlaneType", "WallDirection", "VerticalAxis",
    "PlaneDetectionConfig", "PointCloudConfig", "WallClassificationConfig",

    # Frame analysis models
    "ObstacleProximity", "FreePathDirection", "ObstacleConfig", "FreePathConfig",
    "ObstacleReport", "FreePathReport", "DepthAnalysisResult",

    # Plane detection
    "BasePlaneEstimator", "RANSACPlaneEstimator", "PlaneDetector", "find_planes_ransac",

    # Geometry utilities
    "GeometryUtils", "CameraParameters", "CameraProjection",

    # Sampling
    "RandomSource", "TorchRandomSource", "sample_distinct_triple",

    # Frame analysis
    "ObstacleDetector", "FreePathEstimator", "DepthAnalyzer",

    # Classification and visualization
    "WallClassifier", "PlaneVisualizer", "OverlayWriter",
]
