"""
Centralized exception hierarchy for cachemover.

Component-level failures (a copy that breaks, a variable that cannot be
written) are caught where they happen and reported; the exceptions here
cover the conditions that callers are expected to handle explicitly.
"""


# ============================================================================
# Base Exceptions
# ============================================================================


class CacheMoverError(Exception):
    """Base exception for all cachemover errors."""

    pass


# ============================================================================
# Registry Exceptions
# ============================================================================


class RegistryError(CacheMoverError):
    """Raised when the tool-chain registry cannot be loaded or is malformed."""

    pass


class ToolchainNotFoundError(RegistryError):
    """Raised when a tool-chain name is not present in the registry."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool-chain: {name}")


# ============================================================================
# Configuration Exceptions
# ============================================================================


class ConfigError(CacheMoverError):
    """Configuration file parsing or validation error."""

    pass


class DestinationError(CacheMoverError):
    """Raised when no usable destination root can be obtained."""

    pass


# ============================================================================
# Environment Exceptions
# ============================================================================


class EnvironmentStoreError(CacheMoverError):
    """Raised when the persistent environment store cannot be read or written."""

    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"{name}: {message}")
