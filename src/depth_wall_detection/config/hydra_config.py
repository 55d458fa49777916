"""
Hydra Configuration Classes

This module defines the structured configuration of the wall detector and
registers it, with device and environment presets, in Hydra's ConfigStore.
"""

from typing import Optional
from dataclasses import dataclass, field
from enum import Enum
from hydra.core.config_store import ConfigStore

from ..scene_understanding.plane_models import (
    PlaneDetectionConfig, PointCloudConfig, WallClassificationConfig,
    ObstacleConfig, FreePathConfig
)
from ..scene_understanding.geometry_utils import CameraParameters


class Environment(str, Enum):
    """Environment types."""
    DEVELOPMENT = "development"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class CameraConfig:
    """Camera intrinsics in pixel units, supplied by an external calibration."""

    fx: float = 1137.1137
    fy: float = 1137.3837
    cx: float = 683.7822
    cy: float = 335.02698

    def to_camera_parameters(self) -> CameraParameters:
        return CameraParameters(fx=self.fx, fy=self.fy, cx=self.cx, cy=self.cy)


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: LogLevel = LogLevel.INFO
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


@dataclass
class AppConfig:
    """Main application configuration."""

    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = False

    # Application info
    name: str = "Depth Wall Detection"
    version: str = "1.0.0"

    # Configuration sections
    camera: CameraConfig = field(default_factory=CameraConfig)
    point_cloud: PointCloudConfig = field(default_factory=PointCloudConfig)
    ransac: PlaneDetectionConfig = field(default_factory=PlaneDetectionConfig)
    wall: WallClassificationConfig = field(default_factory=WallClassificationConfig)
    obstacle: ObstacleConfig = field(default_factory=ObstacleConfig)
    free_path: FreePathConfig = field(default_factory=FreePathConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # Debug overlay, written once per analysed frame when enabled
    overlay_downsample_factor: int = 4
    save_debug_overlay: bool = False
    debug_output_dir: Optional[str] = None


ENVIRONMENT_PRESETS = {
    Environment.DEVELOPMENT: {
        "environment": "DEVELOPMENT",
        "debug": True,
        "logging": {"level": "DEBUG"}
    },
    Environment.PRODUCTION: {
        "environment": "PRODUCTION",
        "debug": False,
        "save_debug_overlay": False,
        "logging": {"level": "INFO"}
    },
    Environment.TESTING: {
        "environment": "TESTING",
        "debug": False,
        "logging": {"level": "WARNING"},
        "ransac": {"seed": 0}
    },
}

DEVICE_PRESETS = {
    "android": {
        "ransac": {"ransac_threshold": 0.05, "min_inliers": 1500, "ransac_iterations": 200},
        "free_path": {"roi_width_fraction": 0.4, "min_support_fraction": 0.08}
    },
    "flutter": {
        "point_cloud": {"min_inverse_depth": 0.01},
        "ransac": {"ransac_threshold": 0.08, "min_inliers": 500, "ransac_iterations": 50}
    },
}


# Hydra configuration registration
def register_configs():
    """Register configurations with Hydra ConfigStore."""
    cs = ConfigStore.instance()

    # Main config
    cs.store(name="config", node=AppConfig)

    # Environment-specific configs
    for environment, preset in ENVIRONMENT_PRESETS.items():
        cs.store(group="environment", name=environment.value, node=preset)

    # Device tuning presets
    for device, preset in DEVICE_PRESETS.items():
        cs.store(group="device", name=device, node=preset)


# Register configurations on import
register_configs()
