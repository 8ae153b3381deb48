"""
Console reporting for cachemover runs.

The reporter only renders; it never decides. Every method receives the
results it shows.
"""

from pathlib import Path
from typing import List, Optional, Sequence

from cachemover.cli.utils import print_box, safe_print
from cachemover.core.filesystem import format_size
from cachemover.orchestrator import ConfigureResult
from cachemover.toolchain.migrator import MigrationRecord
from cachemover.toolchain.registry import ToolchainSpec
from cachemover.toolchain.verifier import (
    EnvStatus,
    OverallStatus,
    QueryStatus,
    VerificationReport,
)

_ENV_MARKERS = {
    EnvStatus.PASSED: "✅",
    EnvStatus.WRONG_TARGET: "⚠️ ",
    EnvStatus.NOT_SET: "❌",
}

_OVERALL_MARKERS = {
    OverallStatus.PASS: "✅",
    OverallStatus.WARN: "⚠️ ",
    OverallStatus.FAIL: "❌",
}


class ConsoleReporter:
    """Render run progress and results on stdout."""

    def __init__(self, quiet: bool = False):
        self.quiet = quiet

    def _print(self, message: str = ""):
        if not self.quiet:
            safe_print(message)

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def quit(self):
        self._print("Nothing changed. Bye.")

    def detection(
        self, specs: Sequence[ToolchainSpec], installed: Sequence[ToolchainSpec]
    ):
        if not installed:
            self._print("No supported package managers detected; nothing to do.")
            return
        names = ", ".join(spec.name for spec in installed)
        self._print(
            f"Detected {len(installed)} of {len(specs)} package managers: {names}"
        )

    def toolchain_list(
        self,
        specs: Sequence[ToolchainSpec],
        installed: Sequence[ToolchainSpec],
        root: Optional[Path] = None,
    ):
        """Show the registry with detection state (``--list``)."""
        installed_names = {spec.name for spec in installed}
        for spec in specs:
            marker = "✅" if spec.name in installed_names else "  "
            line = f"{marker} {spec.name:<10} {spec.variable}"
            if root is not None:
                line += f" = {spec.expected_value(root)}"
            safe_print(line)

    # ------------------------------------------------------------------
    # Configure mode
    # ------------------------------------------------------------------

    def configure_start(self, root: Path, dry_run: bool):
        title = f"Relocating package caches to {root}"
        if dry_run:
            title += " (dry run, nothing will be changed)"
        self._print()
        if not self.quiet:
            print_box(title)

    def toolchain_start(self, spec: ToolchainSpec, target: Path):
        self._print(f"\n➜ {spec.name}: {target}")

    def configure_summary(self, result: ConfigureResult, dry_run: bool):
        self._print()
        verb = "Would configure" if dry_run else "Configured"
        self._print(f"{verb} {len(result.configured)} package manager(s)")

        if result.migrations:
            total = sum(record.size for record in result.migrations)
            self._print(
                f"Migrated {len(result.migrations)} cache(s), {format_size(total)}"
            )

        for name in result.size_mismatches:
            safe_print(
                f"⚠️  {name}: copied cache is smaller than the original; "
                f"check it before deleting the old cache"
            )

        for outcome in result.outcomes:
            for error in outcome.errors:
                safe_print(f"❌ {outcome.name}: {error}")

        if result.failed:
            safe_print(
                "💡 Setting machine-wide variables needs an elevated shell "
                "(Administrator on Windows, sudo elsewhere); re-run to retry "
                "the failed package managers."
            )

    def deletion_declined(self, records: List[MigrationRecord]):
        self._print("Old caches kept. They can be deleted by hand later:")
        for record in records:
            self._print(f"  {record.source}")

    def deletion_summary(self, deleted: List[Path], failed: List[Path]):
        if deleted:
            self._print(f"Deleted {len(deleted)} old cache folder(s)")
        for path in failed:
            safe_print(f"❌ Could not delete {path}; remove it manually")

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verification(self, report: VerificationReport):
        self._print()
        if not self.quiet:
            print_box(f"Verification ({report.root})")

        for check in report.checks:
            marker = _ENV_MARKERS[check.env_status]
            if check.env_status == EnvStatus.NOT_SET:
                detail = "not set"
            elif check.env_status == EnvStatus.WRONG_TARGET:
                detail = f"{check.actual} (expected under {report.root})"
            else:
                detail = check.actual or ""
                if check.drift:
                    detail += f" (differs from {check.expected})"
            self._print(f"{marker} {check.name:<10} {check.variable} = {detail}")

            if check.target_exists:
                self._print(
                    f"     directory {check.target_path} "
                    f"({format_size(check.target_size)})"
                )
            else:
                self._print(f"  ⚠️  directory {check.target_path} does not exist")

            if check.query_status == QueryStatus.OK:
                self._print(f"     {check.name} reports {check.query_detail}")
            elif check.query_status == QueryStatus.PENDING_RESTART:
                self._print(
                    f"  ⚠️  {check.name} still reports {check.query_detail}; "
                    f"open a new shell or restart to pick up the new value"
                )
            elif check.query_status == QueryStatus.UNKNOWN:
                self._print(
                    f"  ⚠️  could not ask {check.name}: {check.query_detail}"
                )

        overall = report.overall
        passed = report.count(EnvStatus.PASSED)
        safe_print(
            f"\n{_OVERALL_MARKERS[overall]} Overall: {overall.value} "
            f"({passed}/{len(report.checks)} variables configured)"
        )
        if overall == OverallStatus.FAIL:
            safe_print(
                "💡 Re-run in configure mode from an elevated shell to set "
                "the missing variables."
            )
