"""
Configuration Management System

This module provides structured configuration with Hydra registration,
environment and device presets, YAML loading and validation.
"""

from .hydra_config import (
    AppConfig,
    CameraConfig,
    LoggingConfig,
    Environment,
    LogLevel,
    register_configs
)
from .validators import ConfigValidator, ValidationResult
from .config_manager import ConfigManager

__all__ = [
    'AppConfig',
    'CameraConfig',
    'LoggingConfig',
    'Environment',
    'LogLevel',
    'register_configs',
    'ConfigValidator',
    'ValidationResult',
    'ConfigManager'
]
