"""
Platform details needed to render tool-chain paths.

Features:
- Operating system detection ('windows', 'linux', 'macos')
- Current user name lookup (used by path templates)
- Destination root normalization (bare Windows drives such as ``D:``)

Usage:
    from cachemover.core.platform import detect_platform, normalize_root

    info = detect_platform()
    root = normalize_root("D:")   # D:\\ on Windows
"""

import functools
import getpass
import os
import platform
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Union

from cachemover.core.exceptions import DestinationError

_DRIVE_RE = re.compile(r"^([A-Za-z]):?[\\/]?$")


@dataclass(frozen=True)
class PlatformInfo:
    """
    Platform information relevant to cache relocation.

    Attributes:
        os: Operating system ('windows', 'linux', 'macos')
        user: Name of the user running the tool
    """

    os: str
    user: str

    @property
    def is_windows(self) -> bool:
        return self.os == "windows"

    def __str__(self) -> str:
        return f"{self.os} (user {self.user})"


@functools.lru_cache(maxsize=1)
def detect_platform() -> PlatformInfo:
    """
    Detect current platform information.

    This function is cached - it only runs detection once per process.
    """
    return PlatformInfo(os=_detect_os(), user=_detect_user())


def clear_platform_cache():
    """Clear the cached platform detection (used by tests)."""
    detect_platform.cache_clear()


def _detect_os() -> str:
    system = platform.system().lower()
    if system == "windows" or os.name == "nt":
        return "windows"
    if system == "darwin":
        return "macos"
    return "linux"


def _detect_user() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        # No passwd entry and no USER/USERNAME variable
        return os.environ.get("USERNAME") or os.environ.get("USER") or "user"


def normalize_root(value: Union[str, Path]) -> Path:
    """
    Normalize an operator-supplied destination root.

    A bare drive letter (``D``, ``D:``, ``D:\\``) becomes the drive's root
    directory on Windows. Other values, and every value on POSIX, are
    expanded (``~``) and made absolute.

    Args:
        value: Destination root as typed or configured

    Returns:
        Absolute destination root path

    Raises:
        DestinationError: If the value is empty or its volume does not exist

    Example:
        >>> normalize_root("D:")
        WindowsPath('D:/')
    """
    text = str(value).strip().strip('"').strip("'")
    if not text:
        raise DestinationError("Destination root must not be empty")

    match = _DRIVE_RE.match(text) if os.name == "nt" else None
    if match:
        root = Path(f"{match.group(1).upper()}:\\")
    else:
        root = Path(os.path.expanduser(text)).absolute()

    anchor = Path(root.anchor) if root.anchor else root
    if not anchor.exists():
        raise DestinationError(f"Destination volume does not exist: {anchor}")

    return root
