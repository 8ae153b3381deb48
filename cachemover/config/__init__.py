"""Configuration module for cachemover.

This module provides YAML configuration parsing and validation for
~/.cachemover.yaml.
"""

from cachemover.config.parser import (
    RunConfig,
    default_config_path,
    load_config,
    parse_config_data,
)
from cachemover.core.exceptions import ConfigError

__all__ = [
    "RunConfig",
    "default_config_path",
    "load_config",
    "parse_config_data",
    "ConfigError",
]
