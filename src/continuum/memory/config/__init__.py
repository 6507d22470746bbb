"""
Memory Configuration Package

This package provides configuration management for the memory system: the
configuration models and their defaults, YAML loading, and validation.
"""

from continuum.memory.config.loader import (
    CONFIG_PATH_ENV_VAR,
    ConfigurationLoader,
    build_config,
    load_config,
)
from continuum.memory.config.settings import (
    BonusSettings,
    ContinuumConfig,
    IdentitySettings,
    MarkerSettings,
    ScoringWeights,
    TierSettings,
    default_config,
    parse_duration,
)
from continuum.memory.config.validation import validate_configuration

__all__ = [
    'BonusSettings',
    'CONFIG_PATH_ENV_VAR',
    'ConfigurationLoader',
    'ContinuumConfig',
    'IdentitySettings',
    'MarkerSettings',
    'ScoringWeights',
    'TierSettings',
    'build_config',
    'default_config',
    'load_config',
    'parse_duration',
    'validate_configuration',
]
