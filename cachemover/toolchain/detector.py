"""
Tool-chain detection.

A tool-chain counts as installed when any of its detection commands
resolves on the search path, or any of its detection paths (which may
contain wildcards) matches an existing filesystem entry. Probing never
raises: lookup errors mean "not found".
"""

import logging
from typing import Callable, Iterable, List, Optional

from cachemover.core.filesystem import find_executable, glob_exists
from cachemover.toolchain.registry import ToolchainSpec

logger = logging.getLogger(__name__)


class ToolchainDetector:
    """
    Detect installed tool-chains.

    The lookup functions are injectable so detection can be exercised
    without depending on the host's PATH.

    Example:
        >>> detector = ToolchainDetector()
        >>> installed = detector.detect(registry.list_toolchains())
    """

    def __init__(
        self,
        which: Optional[Callable[[str], object]] = None,
        path_exists: Optional[Callable[[str], bool]] = None,
    ):
        self._which = which or find_executable
        self._path_exists = path_exists or glob_exists

    def is_installed(self, spec: ToolchainSpec) -> bool:
        """
        Check whether a tool-chain is installed on this host.

        Returns:
            True as soon as one command or path probe succeeds; False if
            none does, including when both probe lists are empty
        """
        for command in spec.commands:
            if self._probe(self._which, command):
                logger.debug(f"{spec.name}: found command '{command}'")
                return True

        for pattern in spec.paths:
            if self._probe(self._path_exists, pattern):
                logger.debug(f"{spec.name}: found path '{pattern}'")
                return True

        return False

    def detect(self, specs: Iterable[ToolchainSpec]) -> List[ToolchainSpec]:
        """Return the installed subset of ``specs``, preserving order."""
        installed = [spec for spec in specs if self.is_installed(spec)]
        logger.debug(f"Detected {len(installed)} installed tool-chain(s)")
        return installed

    @staticmethod
    def _probe(func: Callable[[str], object], argument: str) -> bool:
        try:
            return bool(func(argument))
        except (OSError, ValueError) as e:
            logger.debug(f"Probe for '{argument}' failed, treating as absent: {e}")
            return False
