"""
Core functionality for cachemover.

This package contains the foundational modules that other components depend on.
"""

from .platform import (
    PlatformInfo,
    detect_platform,
    clear_platform_cache,
    normalize_root,
)

from .environment import (
    EnvironmentStore,
    WindowsRegistryStore,
    EnvironmentFileStore,
    EnvironmentConfigurator,
    get_default_store,
)

from .exceptions import (
    CacheMoverError,
    RegistryError,
    ToolchainNotFoundError,
    ConfigError,
    DestinationError,
    EnvironmentStoreError,
)

__all__ = [
    "PlatformInfo",
    "detect_platform",
    "clear_platform_cache",
    "normalize_root",
    "EnvironmentStore",
    "WindowsRegistryStore",
    "EnvironmentFileStore",
    "EnvironmentConfigurator",
    "get_default_store",
    "CacheMoverError",
    "RegistryError",
    "ToolchainNotFoundError",
    "ConfigError",
    "DestinationError",
    "EnvironmentStoreError",
]
