"""
Configuration Manager

This module loads the detector configuration from structured defaults,
environment and device presets, an optional YAML file and dotlist overrides,
validates it, and builds detectors and analyzers from it.
"""

import os
import copy
import logging
from typing import Dict, List, Optional, Any, Union
from pathlib import Path
import yaml
from omegaconf import DictConfig, OmegaConf

from .hydra_config import AppConfig, Environment, ENVIRONMENT_PRESETS, DEVICE_PRESETS
from .validators import ConfigValidator, ValidationResult
from ..scene_understanding.plane_detector import PlaneDetector
from ..scene_understanding.depth_analyzer import DepthAnalyzer
from ..scene_understanding.visualization import OverlayWriter
from ..scene_understanding.geometry_utils import CameraParameters
from ..utils.logging_utils import setup_logging

logger = logging.getLogger(__name__)

ENVIRONMENT_VARIABLE = "DEPTH_WALL_ENVIRONMENT"

# Enum fields; OmegaConf converts strings to enums by member name
ENUM_KEYS = ("environment", "logging.level", "point_cloud.vertical_axis")


class ConfigManager:
    """Loads, validates and saves the wall detector configuration."""

    def __init__(self, apply_logging: bool = True):
        """
        Args:
            apply_logging: Configure the package logger from each loaded config
        """
        self.apply_logging = apply_logging
        self.validator = ConfigValidator()

        self._config: Optional[AppConfig] = None
        self._config_dict: Optional[DictConfig] = None
        self.last_validation: Optional[ValidationResult] = None

    def load_config(self, config_path: Optional[Union[str, Path]] = None,
                    overrides: Optional[List[str]] = None,
                    environment: Optional[Union[Environment, str]] = None,
                    device: Optional[str] = None) -> AppConfig:
        """
        Load configuration.

        Layers are merged in order: structured defaults, environment preset,
        device preset, YAML file, dotlist overrides.

        Args:
            config_path: Optional YAML file
            overrides: Dotlist overrides such as ``ransac.min_inliers=500``
            environment: Environment preset; falls back to the
                ``DEPTH_WALL_ENVIRONMENT`` variable
            device: Device tuning preset name

        Returns:
            Validated application configuration

        Raises:
            FileNotFoundError: ``config_path`` does not exist
            ValueError: Unknown preset or invalid configuration
        """
        config_dict = OmegaConf.structured(AppConfig)

        environment = environment or self._detect_environment()
        if environment:
            config_dict = OmegaConf.merge(config_dict, self._get_environment_overrides(environment))

        if device:
            if device not in DEVICE_PRESETS:
                raise ValueError(f"Unknown device preset: {device}")
            config_dict = OmegaConf.merge(config_dict, self._create_layer(DEVICE_PRESETS[device]))

        if config_path is not None:
            config_path = Path(config_path)
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")

            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
            config_dict = OmegaConf.merge(config_dict, self._create_layer(config_data))

        if overrides:
            dotlist = OmegaConf.to_container(OmegaConf.from_dotlist(list(overrides)))
            config_dict = OmegaConf.merge(config_dict, self._create_layer(dotlist))

        config = OmegaConf.to_object(config_dict)

        validation = self.validator.validate_config(config)
        self.last_validation = validation
        for warning in validation.warnings:
            logger.warning(f"Configuration warning: {warning}")
        if not validation.is_valid:
            raise ValueError(f"Invalid configuration: {'; '.join(validation.errors)}")

        self._config = config
        self._config_dict = config_dict

        if self.apply_logging:
            setup_logging(config.logging.level.value, config.logging.format)

        logger.info(f"Configuration loaded (environment={config.environment.value})")
        return config

    def save_config(self, config_path: Union[str, Path],
                    config: Optional[AppConfig] = None) -> Path:
        """Write a configuration to YAML."""
        config = config or self.get_config()
        config_dict = OmegaConf.structured(config)

        config_path = Path(config_path)
        config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(config_path, 'w') as f:
            yaml.dump(OmegaConf.to_container(config_dict, resolve=True, enum_to_str=True),
                      f, default_flow_style=False)

        logger.info(f"Configuration saved to {config_path}")
        return config_path

    def get_config(self) -> AppConfig:
        """Get the loaded configuration, loading defaults if needed."""
        if self._config is None:
            return self.load_config()
        return self._config

    def get_config_dict(self) -> Optional[DictConfig]:
        return self._config_dict

    def build_detector(self, config: Optional[AppConfig] = None) -> PlaneDetector:
        """Create a plane detector wired from the configuration."""
        config = config or self.get_config()
        return PlaneDetector(config.ransac, config.point_cloud, config.wall)

    def build_overlay_writer(self, config: Optional[AppConfig] = None) -> Optional[OverlayWriter]:
        """Create the debug overlay writer, or None when overlays are disabled."""
        config = config or self.get_config()
        if not config.save_debug_overlay:
            return None

        logger.info(f"Saving debug overlays to {config.debug_output_dir}")
        return OverlayWriter(config.debug_output_dir, config.overlay_downsample_factor)

    def build_analyzer(self, config: Optional[AppConfig] = None) -> DepthAnalyzer:
        """Create a per-frame depth analyzer wired from the configuration."""
        config = config or self.get_config()
        return DepthAnalyzer(
            self.build_detector(config),
            config.obstacle,
            config.free_path,
            overlay_writer=self.build_overlay_writer(config)
        )

    def get_camera_parameters(self, config: Optional[AppConfig] = None) -> CameraParameters:
        config = config or self.get_config()
        return config.camera.to_camera_parameters()

    def _detect_environment(self) -> Optional[Environment]:
        """Read the environment from the process environment."""
        env_var = os.getenv(ENVIRONMENT_VARIABLE, "").lower()
        if not env_var:
            return None

        try:
            return Environment(env_var)
        except ValueError:
            logger.warning(f"Invalid environment value: {env_var}")
            return None

    def _get_environment_overrides(self, environment: Union[Environment, str]) -> DictConfig:
        if isinstance(environment, str):
            environment = environment.lower()
        try:
            environment = Environment(environment)
        except ValueError:
            raise ValueError(f"Unknown environment: {environment}") from None
        return self._create_layer(ENVIRONMENT_PRESETS[environment])

    def _create_layer(self, data: Dict[str, Any]) -> DictConfig:
        """
        Build a merge layer, accepting enum values in any case.

        ``vertical_axis: down`` and ``environment: testing`` become the member
        names ``DOWN`` and ``TESTING``.
        """
        data = copy.deepcopy(data)
        for key in ENUM_KEYS:
            *parents, leaf = key.split('.')
            node = data
            for part in parents:
                node = node.get(part) if isinstance(node, dict) else None
            if isinstance(node, dict) and isinstance(node.get(leaf), str):
                node[leaf] = node[leaf].upper()
        return OmegaConf.create(data)

    def get_config_stats(self) -> Dict[str, Any]:
        """Summary of the loaded configuration."""
        config = self.get_config()
        return {
            'environment': config.environment.value,
            'ransac_iterations': config.ransac.ransac_iterations,
            'ransac_threshold': config.ransac.ransac_threshold,
            'min_inliers': config.ransac.min_inliers,
            'warnings': list(self.last_validation.warnings) if self.last_validation else []
        }
