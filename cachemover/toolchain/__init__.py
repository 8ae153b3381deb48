"""
Tool-chain handling for cachemover.

This module provides functionality for:
- Tool-chain registry and lookup
- Installed tool-chain detection
- Legacy cache migration
- Post-run verification
"""

from cachemover.core.exceptions import RegistryError, ToolchainNotFoundError
from cachemover.toolchain.registry import (
    QuerySpec,
    ToolchainSpec,
    ToolchainRegistry,
    parse_toolchain,
)
from cachemover.toolchain.detector import ToolchainDetector
from cachemover.toolchain.migrator import (
    INTEGRITY_THRESHOLD,
    CacheMigrator,
    MigrationOutcome,
    MigrationRecord,
)
from cachemover.toolchain.verifier import (
    EnvStatus,
    OverallStatus,
    QueryStatus,
    ToolchainCheck,
    VerificationReport,
    Verifier,
    classify_value,
    parse_query_output,
)

__all__ = [
    "RegistryError",
    "ToolchainNotFoundError",
    "QuerySpec",
    "ToolchainSpec",
    "ToolchainRegistry",
    "parse_toolchain",
    "ToolchainDetector",
    "INTEGRITY_THRESHOLD",
    "CacheMigrator",
    "MigrationOutcome",
    "MigrationRecord",
    "EnvStatus",
    "OverallStatus",
    "QueryStatus",
    "ToolchainCheck",
    "VerificationReport",
    "Verifier",
    "classify_value",
    "parse_query_output",
]
