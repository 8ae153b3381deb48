"""
Persistent (machine-scope) environment variables.

Two stores are provided:
- WindowsRegistryStore: HKLM ``Session Manager\\Environment`` via ``winreg``,
  followed by a ``WM_SETTINGCHANGE`` broadcast so new processes see the change
- EnvironmentFileStore: a ``KEY="value"`` file such as ``/etc/environment``,
  read by PAM on login on most Linux distributions

Both require elevated privileges to write. A missing privilege surfaces as
an EnvironmentStoreError from ``set()``; EnvironmentConfigurator turns that
into a logged failure and lets the caller continue.
"""

import logging
import re
import sys
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterable, List, Optional, Union

from cachemover.core.exceptions import EnvironmentStoreError
from cachemover.core.filesystem import atomic_write

if sys.platform == "win32":
    import ctypes
    import winreg

logger = logging.getLogger(__name__)

DEFAULT_ENVIRONMENT_FILE = Path("/etc/environment")

_ASSIGNMENT_RE = re.compile(
    r"^\s*(?:export\s+)?([A-Za-z_][A-Za-z0-9_]*)\s*=\s*(.*?)\s*$"
)


class EnvironmentStore(ABC):
    """Read/write access to persistent environment variables."""

    #: Human-readable location, used in log and report messages
    location: str = ""

    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        """
        Read the persisted value of a variable.

        Returns:
            The value, or None if the variable is not set

        Raises:
            EnvironmentStoreError: If the store cannot be read
        """
        pass

    @abstractmethod
    def set(self, name: str, value: str) -> None:
        """
        Persist a variable value.

        Raises:
            EnvironmentStoreError: If the value cannot be written
        """
        pass


# ============================================================================
# Windows Registry
# ============================================================================


class WindowsRegistryStore(EnvironmentStore):
    """Machine-scope environment stored in the Windows registry."""

    ENVIRONMENT_KEY = r"SYSTEM\CurrentControlSet\Control\Session Manager\Environment"
    location = r"HKLM\SYSTEM\CurrentControlSet\Control\Session Manager\Environment"

    HWND_BROADCAST = 0xFFFF
    WM_SETTINGCHANGE = 0x001A
    SMTO_ABORTIFHUNG = 0x0002

    def __init__(self):
        if sys.platform != "win32":
            raise EnvironmentStoreError(
                "registry", "the Windows registry store is only available on Windows"
            )

    def get(self, name: str) -> Optional[str]:
        try:
            with winreg.OpenKey(winreg.HKEY_LOCAL_MACHINE, self.ENVIRONMENT_KEY) as key:
                value, _value_type = winreg.QueryValueEx(key, name)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise EnvironmentStoreError(
                name, f"cannot read {self.location}: {e}"
            ) from e
        return str(value) if value is not None else None

    def set(self, name: str, value: str) -> None:
        value_type = winreg.REG_EXPAND_SZ if "%" in value else winreg.REG_SZ
        try:
            with winreg.OpenKey(
                winreg.HKEY_LOCAL_MACHINE,
                self.ENVIRONMENT_KEY,
                0,
                winreg.KEY_SET_VALUE,
            ) as key:
                winreg.SetValueEx(key, name, 0, value_type, value)
        except PermissionError as e:
            raise EnvironmentStoreError(
                name,
                "access denied writing machine environment; "
                "re-run from an elevated (Administrator) shell",
            ) from e
        except OSError as e:
            raise EnvironmentStoreError(
                name, f"cannot write {self.location}: {e}"
            ) from e

        self._broadcast_change()

    def _broadcast_change(self) -> None:
        """Notify running applications (Explorer, new shells) of the change."""
        result = ctypes.c_ulong(0)
        sent = ctypes.windll.user32.SendMessageTimeoutW(  # type: ignore
            self.HWND_BROADCAST,
            self.WM_SETTINGCHANGE,
            0,
            "Environment",
            self.SMTO_ABORTIFHUNG,
            5000,
            ctypes.byref(result),
        )
        if not sent:
            logger.debug("WM_SETTINGCHANGE broadcast timed out")


# ============================================================================
# Environment File
# ============================================================================


class EnvironmentFileStore(EnvironmentStore):
    """
    Machine-scope environment kept in a ``KEY="value"`` file.

    Lines that are not assignments (comments, blanks) are preserved as-is.
    Later assignments of the same key win, as they do for PAM.

    Example:
        >>> store = EnvironmentFileStore(Path("/etc/environment"))
        >>> store.get("PATH")
        '/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin'
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_ENVIRONMENT_FILE):
        self.path = Path(path)
        self.location = str(self.path)

    def _read_lines(self, name: str) -> List[str]:
        if not self.path.exists():
            return []
        try:
            return self.path.read_text(encoding="utf-8").splitlines()
        except OSError as e:
            raise EnvironmentStoreError(name, f"cannot read {self.path}: {e}") from e

    def get(self, name: str) -> Optional[str]:
        value = None
        for line in self._read_lines(name):
            match = _ASSIGNMENT_RE.match(line)
            if match and match.group(1) == name:
                value = _unquote(match.group(2))
        return value

    def set(self, name: str, value: str) -> None:
        if "\n" in value or '"' in value:
            raise EnvironmentStoreError(
                name, "values containing quotes or newlines cannot be stored"
            )

        lines = self._read_lines(name)
        assignment = f'{name}="{value}"'
        replaced = False
        updated = []
        for line in lines:
            match = _ASSIGNMENT_RE.match(line)
            if match and match.group(1) == name:
                if not replaced:
                    updated.append(assignment)
                    replaced = True
                continue
            updated.append(line)
        if not replaced:
            updated.append(assignment)

        try:
            atomic_write(self.path, "\n".join(updated) + "\n")
        except PermissionError as e:
            raise EnvironmentStoreError(
                name,
                f"permission denied writing {self.path}; re-run with sudo",
            ) from e
        except OSError as e:
            raise EnvironmentStoreError(name, f"cannot write {self.path}: {e}") from e


def _unquote(raw: str) -> str:
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
        return raw[1:-1]
    return raw


def get_default_store(
    environment_file: Optional[Union[str, Path]] = None,
) -> EnvironmentStore:
    """
    Get the machine-scope store for the current platform.

    Args:
        environment_file: Override for the POSIX environment file. Ignored
            on Windows, where the registry is always used.
    """
    if sys.platform == "win32":
        return WindowsRegistryStore()
    return EnvironmentFileStore(environment_file or DEFAULT_ENVIRONMENT_FILE)


# ============================================================================
# Configurator
# ============================================================================


class EnvironmentConfigurator:
    """Sets persistent variables, skipping writes that would change nothing."""

    def __init__(self, store: EnvironmentStore):
        self.store = store

    def set_persistent(self, name: str, value: str, dry_run: bool = False) -> bool:
        """
        Persist ``name=value`` at machine scope.

        Args:
            name: Variable name
            value: Desired value
            dry_run: If True, only report the intended change

        Returns:
            True if the variable holds (or would hold) ``value`` afterwards
        """
        try:
            current = self.store.get(name)
        except EnvironmentStoreError as e:
            logger.error(f"Cannot read {name}: {e}")
            return False

        if current == value:
            logger.info(f"  {name} already set to {value}")
            return True

        if dry_run:
            logger.info(
                f"  [DRY RUN] Would set {name}={value} "
                f"(currently: {current or 'not set'})"
            )
            return True

        try:
            self.store.set(name, value)
        except (EnvironmentStoreError, OSError) as e:
            logger.error(
                f"  Failed to set {name}={value} in {self.store.location}: {e}"
            )
            return False

        logger.info(f"  Set {name}={value}")
        return True

    def has_prior_configuration(self, variables: Iterable[str]) -> bool:
        """Check whether any of ``variables`` is already persisted."""
        for name in variables:
            try:
                if self.store.get(name):
                    return True
            except EnvironmentStoreError as e:
                logger.debug(f"Ignoring unreadable variable {name}: {e}")
        return False

