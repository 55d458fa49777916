"""
Configuration Validators

This module validates a loaded configuration with per-key range rules and
cross-field checks before a detector is built from it.
"""

import math
from typing import Any, Callable, Dict, List
from dataclasses import dataclass

from .hydra_config import AppConfig, Environment


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[str]
    warnings: List[str]

    def add_error(self, error: str):
        """Add validation error."""
        self.errors.append(error)
        self.is_valid = False

    def add_warning(self, warning: str):
        """Add validation warning."""
        self.warnings.append(warning)


class ConfigValidator:
    """Configuration validator for the wall detector."""

    def __init__(self):
        self.validation_rules: Dict[str, Callable[[str, Any, ValidationResult], None]] = {
            # Camera rules
            'camera.fx': self._validate_non_zero_float,
            'camera.fy': self._validate_non_zero_float,
            'camera.cx': self._validate_finite_float,
            'camera.cy': self._validate_finite_float,

            # Point cloud rules
            'point_cloud.min_inverse_depth': self._validate_non_negative_float,
            'point_cloud.max_depth': self._validate_positive_float,

            # RANSAC rules
            'ransac.ransac_iterations': self._validate_positive_int,
            'ransac.ransac_threshold': self._validate_positive_float,
            'ransac.min_inliers': self._validate_non_negative_int,
            'ransac.max_planes': self._validate_non_negative_int,
            'ransac.max_sample_retries': self._validate_non_negative_int,
            'ransac.min_normal_magnitude': self._validate_positive_float,

            # Wall classification rules
            'wall.verticality_threshold': self._validate_positive_float,
            'wall.horizontal_threshold': self._validate_unit_interval,
            'wall.direction_ratio': self._validate_positive_float,

            # Obstacle and free path rules
            'obstacle.closeness_threshold': self._validate_finite_float,
            'obstacle.very_close_threshold': self._validate_finite_float,
            'free_path.farness_threshold': self._validate_finite_float,
            'free_path.roi_start_fraction': self._validate_fraction,
            'free_path.roi_width_fraction': self._validate_unit_interval,
            'free_path.min_support_fraction': self._validate_fraction,

            # Overlay rules
            'overlay_downsample_factor': self._validate_positive_int,
        }

    def validate_config(self, config: AppConfig) -> ValidationResult:
        """Validate complete configuration."""
        result = ValidationResult(is_valid=True, errors=[], warnings=[])

        # Field-specific validation
        for key, rule in self.validation_rules.items():
            rule(key, self._get_value(config, key), result)

        # Cross-field validation
        self._validate_dependencies(config, result)

        return result

    def _get_value(self, config: Any, key: str) -> Any:
        value = config
        for part in key.split('.'):
            value = getattr(value, part)
        return value

    def _validate_dependencies(self, config: AppConfig, result: ValidationResult):
        """Validate settings that depend on each other."""
        if config.ransac.max_planes == 0:
            result.add_warning("ransac.max_planes is 0; every detection will be empty")

        if config.ransac.max_planes > 1:
            result.add_warning("ransac.max_planes > 1; at most one plane is ever returned")

        if config.obstacle.very_close_threshold < config.obstacle.closeness_threshold:
            result.add_error("obstacle.very_close_threshold must not be below obstacle.closeness_threshold")

        if config.save_debug_overlay and not config.debug_output_dir:
            result.add_error("save_debug_overlay requires debug_output_dir")

        if config.environment == Environment.PRODUCTION and config.ransac.seed is not None:
            result.add_warning("Fixed RANSAC seed configured in production")

    # Rule implementations

    def _validate_positive_int(self, key: str, value: Any, result: ValidationResult):
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            result.add_error(f"{key} must be a positive integer, got {value!r}")

    def _validate_non_negative_int(self, key: str, value: Any, result: ValidationResult):
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            result.add_error(f"{key} must be a non-negative integer, got {value!r}")

    def _validate_finite_float(self, key: str, value: Any, result: ValidationResult):
        if not isinstance(value, (int, float)) or not math.isfinite(value):
            result.add_error(f"{key} must be a finite number, got {value!r}")
            return False
        return True

    def _validate_non_zero_float(self, key: str, value: Any, result: ValidationResult):
        if self._validate_finite_float(key, value, result) and value == 0:
            result.add_error(f"{key} must be non-zero")

    def _validate_positive_float(self, key: str, value: Any, result: ValidationResult):
        if self._validate_finite_float(key, value, result) and value <= 0:
            result.add_error(f"{key} must be positive, got {value!r}")

    def _validate_non_negative_float(self, key: str, value: Any, result: ValidationResult):
        if self._validate_finite_float(key, value, result) and value < 0:
            result.add_error(f"{key} must be non-negative, got {value!r}")

    def _validate_unit_interval(self, key: str, value: Any, result: ValidationResult):
        if self._validate_finite_float(key, value, result) and not 0 < value <= 1:
            result.add_error(f"{key} must be in (0, 1], got {value!r}")

    def _validate_fraction(self, key: str, value: Any, result: ValidationResult):
        if self._validate_finite_float(key, value, result) and not 0 <= value < 1:
            result.add_error(f"{key} must be in [0, 1), got {value!r}")
