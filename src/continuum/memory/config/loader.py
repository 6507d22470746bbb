"""
Configuration Loader

This module loads Continuum configuration from YAML files, merges it over the
built-in defaults and validates the result. Any failure to read, parse or
validate a configuration surfaces as a ``ConfigurationError``.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import ValidationError as PydanticValidationError

from continuum.core.enums import MemoryTier
from continuum.core.exceptions import ConfigurationError
from continuum.memory.config.settings import ContinuumConfig, default_config
from continuum.memory.config.validation import validate_configuration

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV_VAR = "CONTINUUM_CONFIG_PATH"


class ConfigurationLoader:
    """
    Loader for Continuum configurations.

    The loader reads a YAML document, deep-merges it over the default
    configuration and validates the merged result. Nested mappings are merged
    key by key; lists (marker word-lists) replace the defaults wholesale.
    """

    def __init__(self, config_path: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration loader.

        Args:
            config_path: Path to a YAML configuration file. If None, the
                         ``CONTINUUM_CONFIG_PATH`` environment variable is used,
                         and when that is unset the defaults apply unchanged.
        """
        env_path = os.environ.get(CONFIG_PATH_ENV_VAR)
        resolved = config_path or env_path
        self.config_path: Optional[Path] = Path(resolved) if resolved else None
        self.loaded_files: List[str] = []

        logger.debug("Initialized ConfigurationLoader with config_path: %s", self.config_path)

    def load_config_file(self, path: Union[str, Path]) -> Dict[str, Any]:
        """
        Load a single YAML configuration file.

        Args:
            path: Location of the file

        Returns:
            The parsed configuration mapping (empty for an empty file).

        Raises:
            ConfigurationError: If the file cannot be read or parsed.
        """
        file_path = Path(path)

        try:
            with open(file_path, "r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle)
        except FileNotFoundError:
            logger.error("Configuration file not found: %s", file_path)
            raise ConfigurationError(f"Configuration file not found: {file_path}")
        except yaml.YAMLError as e:
            logger.error("Error parsing YAML in %s: %s", file_path, e)
            raise ConfigurationError(f"Error parsing YAML in {file_path}: {e}")
        except OSError as e:
            logger.error("Error reading configuration from %s: %s", file_path, e)
            raise ConfigurationError(f"Error reading configuration: {e}")

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigurationError(f"Invalid configuration format in {file_path}")

        # Allow the settings to be nested under a top-level ``continuum`` key.
        nested = data.get("continuum")
        if isinstance(nested, dict):
            data = nested

        self.loaded_files.append(str(file_path))
        logger.debug("Loaded configuration from %s", file_path)
        return data

    def load(self, overrides: Optional[Dict[str, Any]] = None) -> ContinuumConfig:
        """
        Build the effective configuration.

        Args:
            overrides: Optional mapping merged last, over file values.

        Returns:
            A validated ``ContinuumConfig``.

        Raises:
            ConfigurationError: If any source is invalid.
        """
        merged = default_config().model_dump()

        if self.config_path is not None:
            _deep_merge_dicts(merged, self.load_config_file(self.config_path))
        if overrides:
            _deep_merge_dicts(merged, overrides)

        config = build_config(merged)
        logger.info(
            "Loaded configuration%s",
            f" from {self.config_path}" if self.config_path else " (defaults)",
        )
        return config


def build_config(data: Dict[str, Any]) -> ContinuumConfig:
    """Validate a raw configuration mapping into a ``ContinuumConfig``."""

    try:
        config = ContinuumConfig.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(f"Invalid configuration: {problems}") from e

    return validate_configuration(config)


def _deep_merge_dicts(target: Dict[str, Any], source: Dict[str, Any]) -> None:
    """
    Deeply merge source dictionary into target dictionary.

    Tier keys are normalised so that ``t1``, ``immediate`` and ``MemoryTier.T1``
    address the same entry.

    Args:
        target: Target dictionary to merge into (modified in-place).
        source: Source dictionary to merge from.
    """
    for key, value in source.items():
        match = _matching_key(target, key)
        if match is not None and isinstance(target[match], dict) and isinstance(value, dict):
            _deep_merge_dicts(target[match], value)
        else:
            target[match if match is not None else key] = value


def _matching_key(target: Dict[Any, Any], key: Any) -> Any:
    if key in target:
        return key
    if not any(isinstance(existing, MemoryTier) for existing in target):
        return None

    try:
        tier = MemoryTier.from_string(key) if isinstance(key, str) else None
    except ValueError:
        return None
    if tier is not None and tier in target:
        return tier
    return None


def load_config(
    path: Optional[Union[str, Path]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> ContinuumConfig:
    """
    Load the effective configuration.

    This is a convenience wrapper around :class:`ConfigurationLoader`.

    Args:
        path: Optional YAML file path (falls back to ``CONTINUUM_CONFIG_PATH``).
        overrides: Optional mapping merged over the file values.

    Returns:
        A validated ``ContinuumConfig``.
    """
    return ConfigurationLoader(path).load(overrides)
