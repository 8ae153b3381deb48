"""
Verification of relocated caches.

For each installed tool-chain the verifier compares the persisted
environment variable with the value it should hold, checks that the
relocated cache directory exists, and, for tool-chains that can report
their effective cache location, asks the tool-chain itself.

A value that differs from the expected one but starts with the destination
root still counts as passed and is flagged with ``drift``. This absorbs
trailing separators and case differences, but it also accepts a variable
pointed at the wrong subfolder of the root.
"""

import logging
import os
import subprocess
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from cachemover.core.environment import EnvironmentStore
from cachemover.core.exceptions import EnvironmentStoreError
from cachemover.core.filesystem import directory_size
from cachemover.toolchain.registry import ToolchainSpec

logger = logging.getLogger(__name__)

DEFAULT_QUERY_TIMEOUT = 30


class EnvStatus(Enum):
    """State of a tool-chain's persisted environment variable."""

    PASSED = "passed"
    WRONG_TARGET = "wrong-target"
    NOT_SET = "not-set"


class QueryStatus(Enum):
    """Agreement between the tool-chain's own report and the expected path."""

    OK = "ok"
    PENDING_RESTART = "pending-restart"  # Tool still sees the old location
    UNKNOWN = "unknown"  # Query failed or answered something unparseable


class OverallStatus(Enum):
    PASS = "PASS"
    WARN = "WARN"
    FAIL = "FAIL"


@dataclass
class ToolchainCheck:
    """Verification result for one tool-chain."""

    name: str
    variable: str
    expected: str
    actual: Optional[str]
    env_status: EnvStatus
    target_path: Path
    target_exists: bool
    target_size: int = 0
    drift: bool = False
    query_status: Optional[QueryStatus] = None
    query_detail: Optional[str] = None


@dataclass
class VerificationReport:
    """Aggregated verification results for one run."""

    root: Path
    checks: List[ToolchainCheck] = field(default_factory=list)

    def count(self, status: EnvStatus) -> int:
        return sum(1 for check in self.checks if check.env_status == status)

    @property
    def missing_directories(self) -> List[ToolchainCheck]:
        return [check for check in self.checks if not check.target_exists]

    @property
    def overall(self) -> OverallStatus:
        """
        Derive the overall status (first match wins).

        Any NOT_SET is a failure. Otherwise a wrong target, a missing
        target directory or a pending restart is a warning.
        """
        if self.count(EnvStatus.NOT_SET):
            return OverallStatus.FAIL
        if (
            self.count(EnvStatus.WRONG_TARGET)
            or self.missing_directories
            or any(
                check.query_status == QueryStatus.PENDING_RESTART
                for check in self.checks
            )
        ):
            return OverallStatus.WARN
        return OverallStatus.PASS


def _normalize(value: str) -> str:
    return os.path.normcase(value)


def classify_value(actual: Optional[str], expected: str, root: Path) -> EnvStatus:
    """
    Classify a persisted value against its expected value.

    Args:
        actual: Persisted value (None or empty when not set)
        expected: Value the variable should hold
        root: Destination root of the run

    Returns:
        PASSED for an exact match or any value under ``root``,
        WRONG_TARGET for other values, NOT_SET when absent
    """
    if not actual:
        return EnvStatus.NOT_SET
    if actual == expected:
        return EnvStatus.PASSED
    if _normalize(actual).startswith(_normalize(str(root))):
        return EnvStatus.PASSED
    return EnvStatus.WRONG_TARGET


def parse_query_output(output: str, label: str) -> Optional[str]:
    """
    Extract the path from a ``label: path`` response.

    The response must contain exactly one non-empty line and that line must
    start with ``label:``. Anything else returns None.

    Example:
        >>> parse_query_output("global-packages: /mnt/d/nuget/", "global-packages")
        '/mnt/d/nuget/'
    """
    lines = [line.strip() for line in output.splitlines() if line.strip()]
    if len(lines) != 1:
        return None
    prefix = f"{label}:"
    if not lines[0].startswith(prefix):
        return None
    path = lines[0][len(prefix) :].strip()
    return path or None


class Verifier:
    """
    Re-check persisted configuration and on-disk state.

    Args:
        store: Persistent environment store to read
        runner: Callable with ``subprocess.run`` semantics (injectable for tests)
        query_timeout: Seconds to wait for a tool-chain query command
    """

    def __init__(
        self,
        store: EnvironmentStore,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        query_timeout: float = DEFAULT_QUERY_TIMEOUT,
    ):
        self.store = store
        self.runner = runner
        self.query_timeout = query_timeout

    def verify(self, specs: List[ToolchainSpec], root: Path) -> VerificationReport:
        """
        Verify every tool-chain in ``specs`` against destination ``root``.

        Never raises for per-tool-chain problems; they end up in the report.
        """
        report = VerificationReport(root=root)
        for spec in specs:
            report.checks.append(self.check(spec, root))
        logger.debug(f"Verification finished: {report.overall.value}")
        return report

    def check(self, spec: ToolchainSpec, root: Path) -> ToolchainCheck:
        """Verify a single tool-chain."""
        expected = spec.expected_value(root)
        target = spec.target_path(root)

        try:
            actual = self.store.get(spec.variable)
        except EnvironmentStoreError as e:
            logger.error(f"Cannot read {spec.variable}: {e}")
            actual = None

        status = classify_value(actual, expected, root)
        check = ToolchainCheck(
            name=spec.name,
            variable=spec.variable,
            expected=expected,
            actual=actual,
            env_status=status,
            target_path=target,
            target_exists=target.is_dir(),
            drift=status == EnvStatus.PASSED and actual != expected,
        )

        if check.target_exists:
            try:
                check.target_size = directory_size(target)
            except OSError as e:
                logger.warning(f"Cannot compute size of {target}: {e}")

        if spec.query is not None:
            check.query_status, check.query_detail = self.query(spec, root)

        return check

    def query(self, spec: ToolchainSpec, root: Path) -> Tuple[QueryStatus, str]:
        """
        Ask the tool-chain where its cache is.

        Returns:
            (status, detail) where detail is the reported path, or the
            reason the query could not be evaluated
        """
        if spec.query is None:
            return QueryStatus.UNKNOWN, "no query command defined"

        command = list(spec.query.command)
        logger.debug(f"Running: {' '.join(command)}")
        try:
            result = self.runner(
                command,
                capture_output=True,
                text=True,
                timeout=self.query_timeout,
            )
        except FileNotFoundError:
            return QueryStatus.UNKNOWN, f"'{command[0]}' not found in PATH"
        except subprocess.TimeoutExpired:
            return (
                QueryStatus.UNKNOWN,
                f"'{' '.join(command)}' timed out after {self.query_timeout}s",
            )
        except OSError as e:
            return QueryStatus.UNKNOWN, f"'{' '.join(command)}' failed: {e}"

        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            return (
                QueryStatus.UNKNOWN,
                f"'{' '.join(command)}' exited with {result.returncode}"
                + (f": {stderr}" if stderr else ""),
            )

        reported = parse_query_output(result.stdout or "", spec.query.label)
        if reported is None:
            return (
                QueryStatus.UNKNOWN,
                f"unexpected output from '{' '.join(command)}'",
            )

        target = str(spec.target_path(root))
        if classify_value(reported, target, root) == EnvStatus.PASSED:
            return QueryStatus.OK, reported
        return QueryStatus.PENDING_RESTART, reported
