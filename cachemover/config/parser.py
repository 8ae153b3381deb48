"""YAML configuration parser for cachemover.

The configuration file is optional. When present it supplies defaults for
the command line and can extend or trim the tool-chain registry:

    version: 1
    destination: D:\\
    environment_file: /etc/environment
    query_timeout: 30
    disabled: [conda]
    toolchains:
      - name: bun
        commands: [bun]
        variable: BUN_INSTALL_CACHE_DIR
        target: packages/bun
        legacy_paths: [~/.bun/install/cache]
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

import yaml

from cachemover.core.exceptions import ConfigError, RegistryError
from cachemover.toolchain.registry import ToolchainSpec, parse_toolchain

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = ".cachemover.yaml"

KNOWN_KEYS = {
    "version",
    "destination",
    "environment_file",
    "query_timeout",
    "disabled",
    "toolchains",
}


@dataclass
class RunConfig:
    """Settings loaded from the configuration file."""

    destination: Optional[str] = None
    environment_file: Optional[Path] = None
    query_timeout: Optional[float] = None
    disabled: List[str] = field(default_factory=list)
    toolchains: List[ToolchainSpec] = field(default_factory=list)
    source: Optional[Path] = None


def default_config_path() -> Path:
    """Per-user configuration file location (``~/.cachemover.yaml``)."""
    return Path.home() / DEFAULT_CONFIG_NAME


def load_config(config_path: Optional[Path] = None) -> RunConfig:
    """
    Load the configuration file.

    Args:
        config_path: Explicit path. If None, the per-user default is used
            when it exists; otherwise an empty RunConfig is returned.

    Returns:
        Parsed configuration

    Raises:
        ConfigError: If an explicit file is missing, or any file is invalid
    """
    if config_path is None:
        config_path = default_config_path()
        if not config_path.exists():
            logger.debug(f"Config file not found (optional): {config_path}")
            return RunConfig()
    elif not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    logger.debug(f"Loading configuration from {config_path}")
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}")
    except OSError as e:
        raise ConfigError(f"Cannot read {config_path}: {e}")

    config = parse_config_data(data or {})
    config.source = config_path
    return config


def parse_config_data(data: dict) -> RunConfig:
    """Validate a configuration mapping and convert it to RunConfig."""
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping at the top level")

    unknown = set(data) - KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown configuration key(s): {', '.join(sorted(unknown))}")

    if "version" in data and data["version"] != 1:
        raise ConfigError(f"Unsupported version: {data['version']} (expected 1)")

    config = RunConfig()

    if data.get("destination") is not None:
        config.destination = str(data["destination"])

    if data.get("environment_file") is not None:
        config.environment_file = Path(str(data["environment_file"])).expanduser()

    if data.get("query_timeout") is not None:
        timeout = data["query_timeout"]
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)):
            raise ConfigError(f"query_timeout must be a number, got: {timeout!r}")
        if timeout <= 0:
            raise ConfigError(f"query_timeout must be positive, got: {timeout}")
        config.query_timeout = float(timeout)

    disabled = data.get("disabled") or []
    if not isinstance(disabled, list) or not all(isinstance(n, str) for n in disabled):
        raise ConfigError("disabled must be a list of tool-chain names")
    config.disabled = list(disabled)

    toolchains = data.get("toolchains") or []
    if not isinstance(toolchains, list):
        raise ConfigError("toolchains must be a list of tool-chain definitions")
    for entry in toolchains:
        try:
            config.toolchains.append(parse_toolchain(entry))
        except RegistryError as e:
            raise ConfigError(f"Invalid tool-chain definition: {e}") from e

    return config
