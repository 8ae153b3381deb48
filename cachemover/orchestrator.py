"""
Run orchestration for cachemover.

A run moves through a small state machine:

    Initial -> DetectPriorConfig -> {VerifyOnly, Configure, Quit}

Configure mode processes each detected tool-chain in turn (create the
target directory, set the variable, migrate the first existing legacy
cache), then offers to delete the migrated legacy directories. Both
Configure and VerifyOnly end with verification, except for a dry run
of Configure mode, which has nothing to verify.

Every stage returns its results; the orchestrator owns them and hands
them to the reporter. Per-tool-chain failures never stop the run.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

from cachemover.core.environment import EnvironmentConfigurator
from cachemover.core.filesystem import FilesystemError, safe_rmtree
from cachemover.toolchain.detector import ToolchainDetector
from cachemover.toolchain.migrator import (
    CacheMigrator,
    MigrationOutcome,
    MigrationRecord,
)
from cachemover.toolchain.registry import ToolchainRegistry, ToolchainSpec
from cachemover.toolchain.verifier import VerificationReport, Verifier

logger = logging.getLogger(__name__)


class RunMode(Enum):
    """What the run does after detection."""

    VERIFY_ONLY = "verify"
    CONFIGURE = "configure"
    QUIT = "quit"


_MODE_ANSWERS = {
    "r": RunMode.CONFIGURE,
    "reconfigure": RunMode.CONFIGURE,
    "c": RunMode.CONFIGURE,
    "configure": RunMode.CONFIGURE,
    "v": RunMode.VERIFY_ONLY,
    "verify": RunMode.VERIFY_ONLY,
    "q": RunMode.QUIT,
    "quit": RunMode.QUIT,
}


def resolve_mode(answer: Optional[str]) -> RunMode:
    """
    Map a free-text answer to a run mode.

    Unrecognized (or missing) answers fall back to VERIFY_ONLY, the mode
    that changes nothing.
    """
    if answer is None:
        return RunMode.VERIFY_ONLY
    return _MODE_ANSWERS.get(answer.strip().lower(), RunMode.VERIFY_ONLY)


@dataclass
class ToolchainOutcome:
    """What happened to one tool-chain in Configure mode."""

    name: str
    target: Path
    variable_set: bool = False
    source: Optional[Path] = None
    migration: Optional[MigrationOutcome] = None
    errors: List[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        return bool(self.errors)


@dataclass
class ConfigureResult:
    """Results of Configure mode."""

    outcomes: List[ToolchainOutcome] = field(default_factory=list)
    migrations: List[MigrationRecord] = field(default_factory=list)
    """Legacy caches actually copied (never filled in a dry run)"""

    @property
    def configured(self) -> List[str]:
        return [o.name for o in self.outcomes if not o.failed]

    @property
    def failed(self) -> List[str]:
        return [o.name for o in self.outcomes if o.failed]

    @property
    def size_mismatches(self) -> List[str]:
        return [
            o.name for o in self.outcomes if o.migration and o.migration.size_mismatch
        ]


@dataclass
class RunResult:
    """Everything a run produced."""

    mode: RunMode
    detected: List[str] = field(default_factory=list)
    configure: Optional[ConfigureResult] = None
    verification: Optional[VerificationReport] = None
    deleted: List[Path] = field(default_factory=list)


class MigrationOrchestrator:
    """
    Drive detection, configuration, migration and verification.

    Args:
        registry: Tool-chains to consider
        detector: Installed-tool-chain detector
        migrator: Cache copier
        configurator: Persistent environment writer
        verifier: Post-run verifier
        prompter: Interactive decisions (mode choice, deletion confirmation)
        reporter: Console output
    """

    def __init__(
        self,
        registry: ToolchainRegistry,
        detector: ToolchainDetector,
        migrator: CacheMigrator,
        configurator: EnvironmentConfigurator,
        verifier: Verifier,
        prompter,
        reporter,
    ):
        self.registry = registry
        self.detector = detector
        self.migrator = migrator
        self.configurator = configurator
        self.verifier = verifier
        self.prompter = prompter
        self.reporter = reporter

    def determine_mode(
        self, verify_only: bool = False, mode: Optional[RunMode] = None
    ) -> RunMode:
        """
        Decide the run mode.

        An explicit mode (or ``verify_only``) wins. Otherwise the operator
        is asked when a previous configuration exists; a first run
        configures.
        """
        if verify_only:
            return RunMode.VERIFY_ONLY
        if mode is not None:
            return mode

        variables = [spec.variable for spec in self.registry]
        if self.configurator.has_prior_configuration(variables):
            logger.debug("Existing configuration found, asking for run mode")
            return self.prompter.choose_mode()
        return RunMode.CONFIGURE

    def run(
        self,
        root: Path,
        dry_run: bool = False,
        verify_only: bool = False,
        mode: Optional[RunMode] = None,
    ) -> RunResult:
        """
        Execute one run against destination ``root``.

        The run itself never fails; exit status is decided by the caller
        from the returned RunResult.
        """
        run_mode = self.determine_mode(verify_only=verify_only, mode=mode)
        result = RunResult(mode=run_mode)

        if run_mode == RunMode.QUIT:
            self.reporter.quit()
            return result

        installed = self.detector.detect(self.registry.list_toolchains())
        result.detected = [spec.name for spec in installed]
        self.reporter.detection(self.registry.list_toolchains(), installed)
        if not installed:
            return result

        if run_mode == RunMode.CONFIGURE:
            result.configure = self.configure(installed, root, dry_run)
            self.reporter.configure_summary(result.configure, dry_run)

            if result.configure.migrations and not dry_run:
                result.deleted = self.offer_deletion(result.configure.migrations)

        if dry_run and run_mode != RunMode.VERIFY_ONLY:
            logger.debug("Dry run of configure mode, skipping verification")
            return result

        result.verification = self.verifier.verify(installed, root)
        self.reporter.verification(result.verification)
        return result

    def configure(
        self, specs: List[ToolchainSpec], root: Path, dry_run: bool = False
    ) -> ConfigureResult:
        """Configure every tool-chain in ``specs``; failures do not stop the loop."""
        result = ConfigureResult()
        self.reporter.configure_start(root, dry_run)

        for spec in specs:
            outcome = self._configure_one(spec, root, dry_run)
            result.outcomes.append(outcome)
            migration = outcome.migration
            if migration and migration.copied and not dry_run:
                result.migrations.append(
                    MigrationRecord(
                        toolchain=spec.name,
                        source=outcome.source,
                        size=migration.source_size,
                        size_mismatch=migration.size_mismatch,
                    )
                )

        return result

    def _configure_one(
        self, spec: ToolchainSpec, root: Path, dry_run: bool
    ) -> ToolchainOutcome:
        target = spec.target_path(root)
        outcome = ToolchainOutcome(name=spec.name, target=target)
        self.reporter.toolchain_start(spec, target)

        if dry_run:
            logger.info(f"  [DRY RUN] Would create {target}")
        else:
            try:
                target.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                outcome.errors.append(f"Cannot create {target}: {e}")
                logger.error(f"  Cannot create {target}: {e}")
                return outcome

        value = spec.expected_value(root)
        outcome.variable_set = self.configurator.set_persistent(
            spec.variable, value, dry_run=dry_run
        )
        if not outcome.variable_set:
            outcome.errors.append(f"Could not set {spec.variable}={value}")

        source = self.migrator.find_legacy_source(spec)
        if source is None:
            logger.debug(f"  No legacy cache found for {spec.name}")
            return outcome

        outcome.source = source
        outcome.migration = self.migrator.migrate(source, target, dry_run=dry_run)
        if outcome.migration.error:
            outcome.errors.append(outcome.migration.error)
        return outcome

    def offer_deletion(self, records: List[MigrationRecord]) -> List[Path]:
        """
        Offer to delete migrated legacy caches.

        Only the records the operator confirms are deleted. Each deletion is
        independent; a failure is reported and the rest continue.

        Returns:
            Paths that were deleted
        """
        selected = self.prompter.confirm_delete(records)
        if not selected:
            self.reporter.deletion_declined(records)
            return []

        deleted = []
        failed = []
        for record in selected:
            try:
                safe_rmtree(record.source)
                deleted.append(record.source)
                logger.info(f"  Deleted {record.source}")
            except (FilesystemError, ValueError, OSError) as e:
                failed.append(record.source)
                logger.error(f"  Failed to delete {record.source}: {e}")

        self.reporter.deletion_summary(deleted, failed)
        kept = [record for record in records if record not in selected]
        if kept:
            self.reporter.deletion_declined(kept)
        return deleted
