"""
Configuration loading and data models for the acne progression engine.
"""

from .loader import ConfigLoader, ConfigError, load_config
from .models import AcneSimConfig, EngineConfig, ParameterPreset

__all__ = [
    'ConfigLoader',
    'ConfigError',
    'load_config',
    'AcneSimConfig',
    'EngineConfig',
    'ParameterPreset',
]
