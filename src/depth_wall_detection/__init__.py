"""
Depth Wall Detection

Extracts the dominant planar surface, typically a wall, from the relative
inverse-depth map of a monocular depth model, using a RANSAC plane fit on the
back-projected point cloud.

Features:
- Pinhole back-projection with a configurable vertical axis convention
- RANSAC plane estimation with reproducible, injectable random sampling
- Wall / floor / ceiling classification and wall direction
- Obstacle proximity and free path direction per frame
- Hydra / OmegaConf configuration with device presets
- OpenCV debug overlays of plane, obstacle and free path pixels
"""

import logging

from .errors import PlaneDetectionError, InputShapeError, InvalidIntrinsicsError

from .scene_understanding import (
    # Main classes
    PlaneDetector,
    RANSACPlaneEstimator,
    CameraProjection,
    CameraParameters,
    WallClassifier,
    PlaneVisualizer,
    OverlayWriter,
    DepthAnalyzer,

    # Data models
    Plane,
    PointCloud,
    EstimationResult,
    EstimationStatus,
    PlaneType,
    WallDirection,
    VerticalAxis,
    ObstacleProximity,
    FreePathDirection,
    DepthAnalysisResult,

    # Configuration
    PlaneDetectionConfig,
    PointCloudConfig,
    WallClassificationConfig,
    ObstacleConfig,
    FreePathConfig,

    # Sampling
    RandomSource,
    TorchRandomSource,

    # Functions
    find_planes_ransac
)

from .config import AppConfig, ConfigManager

__all__ = [
    'PlaneDetectionError',
    'InputShapeError',
    'InvalidIntrinsicsError',
    'PlaneDetector',
    'RANSACPlaneEstimator',
    'CameraProjection',
    'CameraParameters',
    'WallClassifier',
    'PlaneVisualizer',
    'OverlayWriter',
    'DepthAnalyzer',
    'Plane',
    'PointCloud',
    'EstimationResult',
    'EstimationStatus',
    'PlaneType',
    'WallDirection',
    'VerticalAxis',
    'ObstacleProximity',
    'FreePathDirection',
    'DepthAnalysisResult',
    'PlaneDetectionConfig',
    'PointCloudConfig',
    'WallClassificationConfig',
    'ObstacleConfig',
    'FreePathConfig',
    'RandomSource',
    'TorchRandomSource',
    'find_planes_ransac',
    'AppConfig',
    'ConfigManager',
]

__version__ = "1.0.0"
__description__ = "RANSAC wall plane detection on monocular inverse-depth maps"

logging.getLogger(__name__).addHandler(logging.NullHandler())
