"""
Cache migration with a size-based integrity check.

A legacy cache directory is copied into its new location and the copy is
accepted when the destination tree holds at least 99% of the source's
bytes. A smaller copy is still reported as copied, with ``size_mismatch``
set, so the operator can decide what to do; nothing is retried or rolled
back automatically.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from cachemover.core.filesystem import (
    FilesystemError,
    directory_size,
    first_existing_directory,
    format_size,
    is_relative_to,
    recursive_copy,
)
from cachemover.toolchain.registry import ToolchainSpec

logger = logging.getLogger(__name__)

INTEGRITY_THRESHOLD = 0.99


@dataclass
class MigrationOutcome:
    """Result of one migrate() call."""

    copied: bool
    size_mismatch: bool = False
    source_size: int = 0
    destination_size: int = 0
    error: Optional[str] = None


@dataclass
class MigrationRecord:
    """A legacy cache that was copied during this run."""

    toolchain: str
    source: Path
    size: int
    size_mismatch: bool = False


class CacheMigrator:
    """Copy legacy cache directories to their relocated target."""

    def __init__(self, threshold: float = INTEGRITY_THRESHOLD):
        self.threshold = threshold

    def find_legacy_source(self, spec: ToolchainSpec) -> Optional[Path]:
        """First existing legacy cache directory of ``spec``, if any."""
        return first_existing_directory(spec.legacy_paths)

    def migrate(
        self,
        source: Union[str, Path],
        destination: Union[str, Path],
        dry_run: bool = False,
    ) -> MigrationOutcome:
        """
        Copy ``source`` into ``destination``.

        Args:
            source: Legacy cache directory
            destination: New cache directory (created if missing)
            dry_run: If True, only report the intended copy

        Returns:
            MigrationOutcome; ``copied`` is False when there was nothing to
            copy or the copy failed (``error`` is set in the latter case)
        """
        source = Path(source)
        destination = Path(destination)

        if not source.exists():
            logger.debug(f"  No cache at {source}, nothing to migrate")
            return MigrationOutcome(copied=False)

        resolved_source = source.resolve()
        resolved_destination = destination.resolve()
        if resolved_source == resolved_destination:
            logger.debug(f"  Cache already at {destination}, nothing to migrate")
            return MigrationOutcome(copied=False)
        if is_relative_to(resolved_destination, resolved_source) or is_relative_to(
            resolved_source, resolved_destination
        ):
            message = (
                f"Cannot copy {source} to {destination}: one contains the other; "
                f"choose a destination root outside {source}"
            )
            logger.error(f"  Migration failed: {message}")
            return MigrationOutcome(copied=False, error=message)

        try:
            source_size = directory_size(source)
        except OSError as e:
            message = f"Cannot read {source}: {e}"
            logger.error(f"  Migration failed: {message}")
            return MigrationOutcome(copied=False, error=message)

        if source_size == 0:
            logger.debug(f"  Cache at {source} is empty, nothing to migrate")
            return MigrationOutcome(copied=False)

        if dry_run:
            logger.info(
                f"  [DRY RUN] Would copy {format_size(source_size)} "
                f"from {source} to {destination}"
            )
            return MigrationOutcome(copied=True, source_size=source_size)

        logger.info(
            f"  Copying {format_size(source_size)} from {source} to {destination}..."
        )
        try:
            destination.mkdir(parents=True, exist_ok=True)
            copied_files = recursive_copy(
                source,
                destination,
                progress_callback=lambda path: logger.debug(f"    {path}"),
                symlinks=True,
            )
            logger.debug(f"  Copied {copied_files} file(s)")
            destination_size = directory_size(destination)
        except (OSError, FilesystemError) as e:
            message = f"Copy from {source} to {destination} failed: {e}"
            logger.error(f"  {message}")
            return MigrationOutcome(
                copied=False, source_size=source_size, error=message
            )

        outcome = MigrationOutcome(
            copied=True,
            source_size=source_size,
            destination_size=destination_size,
        )
        if destination_size >= source_size * self.threshold:
            logger.info(f"  Verified copy: {format_size(destination_size)}")
        else:
            outcome.size_mismatch = True
            logger.warning(
                f"  Size mismatch after copy: source {format_size(source_size)}, "
                f"destination {format_size(destination_size)}; "
                f"check {destination} before deleting {source}"
            )
        return outcome
