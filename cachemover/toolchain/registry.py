"""
Tool-chain registry.

The registry is a declarative table (``cachemover/data/toolchains.json``)
describing, for every supported package manager, how to detect it, which
environment variable relocates its cache, where the relocated cache lives
under the destination root, and where the cache used to be.

Adding a tool-chain is a data change: append an entry to the JSON file or
to the ``toolchains`` list of the user configuration file.

Example:
    >>> registry = ToolchainRegistry()
    >>> npm = registry.get("npm")
    >>> npm.target_path(Path("/mnt/d"))
    PosixPath('/mnt/d/packages/npm')
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cachemover.core.exceptions import RegistryError, ToolchainNotFoundError
from cachemover.core.platform import detect_platform

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("name", "variable", "target")
OPTIONAL_KEYS = ("commands", "paths", "value", "legacy_paths", "query")


@dataclass(frozen=True)
class QuerySpec:
    """A command that reports the cache location a tool-chain actually uses."""

    command: Tuple[str, ...]
    """Argument vector to run"""

    label: str
    """Label expected at the start of the single response line (``label: path``)"""


@dataclass(frozen=True)
class ToolchainSpec:
    """Immutable description of one supported tool-chain."""

    name: str
    variable: str
    """Environment variable the tool-chain honors"""

    target: str
    """Target path template, relative to the destination root; may use {user}"""

    commands: Tuple[str, ...] = ()
    paths: Tuple[str, ...] = ()
    value: Optional[str] = None
    """Variable value template containing {path}, when the value is not a bare path"""

    legacy_paths: Tuple[str, ...] = ()
    query: Optional[QuerySpec] = None

    def target_path(self, root: Path, user: Optional[str] = None) -> Path:
        """Render the relocated cache directory under ``root``."""
        if user is None:
            user = detect_platform().user
        relative = self.target.format(user=user)
        return Path(root).joinpath(*Path(relative).parts)

    def expected_value(self, root: Path, user: Optional[str] = None) -> str:
        """Render the value the environment variable should hold."""
        path = str(self.target_path(root, user))
        if self.value:
            return self.value.format(path=path)
        return path


def parse_toolchain(data: Dict[str, Any]) -> ToolchainSpec:
    """
    Build a ToolchainSpec from a registry mapping.

    Raises:
        RegistryError: If required keys are missing or unknown keys are present
    """
    if not isinstance(data, dict):
        raise RegistryError(f"Tool-chain entry must be a mapping, got: {data!r}")

    name = data.get("name", "<unnamed>")
    missing = [key for key in REQUIRED_KEYS if not data.get(key)]
    if missing:
        raise RegistryError(
            f"Tool-chain '{name}' is missing required key(s): {', '.join(missing)}"
        )

    unknown = set(data) - set(REQUIRED_KEYS) - set(OPTIONAL_KEYS)
    if unknown:
        raise RegistryError(
            f"Tool-chain '{name}' has unknown key(s): {', '.join(sorted(unknown))}"
        )

    target = str(data["target"])
    if Path(target).is_absolute() or Path(target).drive:
        raise RegistryError(
            f"Tool-chain '{name}': target must be relative to the destination "
            f"root, got '{target}'"
        )

    value = data.get("value")
    if value is not None and "{path}" not in value:
        raise RegistryError(
            f"Tool-chain '{name}': value template must contain '{{path}}'"
        )

    try:
        target.format(user="user")
        if value is not None:
            value.format(path="path")
    except (KeyError, IndexError, ValueError) as e:
        raise RegistryError(
            f"Tool-chain '{name}': invalid placeholder in template ({e!r}); "
            f"only {{user}} (target) and {{path}} (value) are supported"
        ) from e

    query = None
    if data.get("query"):
        query_data = data["query"]
        try:
            query = QuerySpec(
                command=tuple(query_data["command"]), label=str(query_data["label"])
            )
        except (KeyError, TypeError) as e:
            raise RegistryError(
                f"Tool-chain '{name}': query needs 'command' and 'label' ({e})"
            ) from e

    return ToolchainSpec(
        name=str(name),
        variable=str(data["variable"]),
        target=target,
        commands=tuple(data.get("commands") or ()),
        paths=tuple(data.get("paths") or ()),
        value=value,
        legacy_paths=tuple(data.get("legacy_paths") or ()),
        query=query,
    )


class ToolchainRegistry:
    """
    Ordered, read-only collection of ToolchainSpec.

    Order only affects display; lookups are by name.
    """

    def __init__(
        self,
        data_path: Optional[Path] = None,
        toolchains: Optional[Iterable[ToolchainSpec]] = None,
    ):
        """
        Initialize registry.

        Args:
            data_path: Optional path to a registry JSON file.
                       If None, uses the embedded toolchains.json
            toolchains: Pre-built specs; when given, no file is read

        Raises:
            RegistryError: If the registry file cannot be loaded or parsed
        """
        if toolchains is not None:
            self._toolchains = tuple(toolchains)
            self.data_path = None
        else:
            self.data_path = data_path or self._get_default_data_path()
            self._toolchains = tuple(
                parse_toolchain(entry) for entry in self._load_entries()
            )

        self._check_unique_names()
        logger.debug(f"Loaded registry with {len(self._toolchains)} tool-chains")

    @staticmethod
    def _get_default_data_path() -> Path:
        return Path(__file__).parent.parent / "data" / "toolchains.json"

    def _load_entries(self) -> List[Dict[str, Any]]:
        if not self.data_path.exists():
            raise RegistryError(f"Registry file not found: {self.data_path}")

        try:
            with open(self.data_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise RegistryError(
                f"Invalid JSON in registry file: {e}\nFile: {self.data_path}"
            ) from e

        if not isinstance(data, dict) or "toolchains" not in data:
            raise RegistryError(
                f"Invalid registry structure: missing 'toolchains' key\n"
                f"File: {self.data_path}"
            )
        return data["toolchains"]

    def _check_unique_names(self):
        seen = set()
        for spec in self._toolchains:
            key = spec.name.lower()
            if key in seen:
                raise RegistryError(f"Duplicate tool-chain name: {spec.name}")
            seen.add(key)

    def list_toolchains(self) -> Tuple[ToolchainSpec, ...]:
        """All tool-chains, in registry order."""
        return self._toolchains

    def names(self) -> List[str]:
        return [spec.name for spec in self._toolchains]

    def get(self, name: str) -> ToolchainSpec:
        """
        Look up a tool-chain by name (case-insensitive).

        Raises:
            ToolchainNotFoundError: If no tool-chain has that name
        """
        for spec in self._toolchains:
            if spec.name.lower() == name.lower():
                return spec
        raise ToolchainNotFoundError(name)

    def with_overrides(
        self,
        entries: Iterable[ToolchainSpec] = (),
        disabled: Iterable[str] = (),
    ) -> "ToolchainRegistry":
        """
        Create a registry with entries replaced, appended, or removed.

        Entries whose name matches an existing tool-chain replace it in
        place; other entries are appended. Disabled names are dropped.
        """
        overrides = {spec.name.lower(): spec for spec in entries}
        disabled_names = {name.lower() for name in disabled}

        merged = []
        for spec in self._toolchains:
            key = spec.name.lower()
            merged.append(overrides.pop(key, spec))
        merged.extend(overrides.values())

        return ToolchainRegistry(
            toolchains=[s for s in merged if s.name.lower() not in disabled_names]
        )

    def select(self, names: Iterable[str]) -> "ToolchainRegistry":
        """
        Restrict the registry to ``names``, keeping registry order.

        Raises:
            ToolchainNotFoundError: If a name is unknown
        """
        wanted = {self.get(name).name for name in names}
        return ToolchainRegistry(
            toolchains=[s for s in self._toolchains if s.name in wanted]
        )

    def __len__(self) -> int:
        return len(self._toolchains)

    def __iter__(self):
        return iter(self._toolchains)
