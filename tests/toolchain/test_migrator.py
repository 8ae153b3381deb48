"""
Tests for cache migration.
"""

import logging
import os
import pytest
from unittest.mock import patch

from cachemover.core.filesystem import directory_size
from cachemover.toolchain.migrator import (
    INTEGRITY_THRESHOLD,
    CacheMigrator,
    MigrationOutcome,
)
from tests.fixtures.directories import SAMPLE_CACHE_SIZE, populate_cache


@pytest.fixture
def migrator():
    return CacheMigrator()


class TestFindLegacySource:
    """Tests for CacheMigrator.find_legacy_source."""

    def test_first_existing(self, migrator, npm_spec, legacy_npm_cache):
        """Test that the first existing legacy path is chosen."""
        assert migrator.find_legacy_source(npm_spec) == legacy_npm_cache

    def test_earlier_path_wins(self, migrator, npm_spec, legacy_npm_cache, tmp_path):
        """Test that only the first existing path is used."""
        earlier = tmp_path / "missing" / "npm-cache"
        earlier.mkdir(parents=True)
        assert migrator.find_legacy_source(npm_spec) == earlier

    def test_none(self, migrator, npm_spec):
        """Test a tool-chain without a legacy cache."""
        assert migrator.find_legacy_source(npm_spec) is None


class TestMigrate:
    """Tests for CacheMigrator.migrate."""

    def test_copy(self, migrator, legacy_npm_cache, destination_root):
        """Test a full copy."""
        target = destination_root / "packages" / "npm"

        outcome = migrator.migrate(legacy_npm_cache, target)

        assert outcome == MigrationOutcome(
            copied=True,
            size_mismatch=False,
            source_size=SAMPLE_CACHE_SIZE,
            destination_size=SAMPLE_CACHE_SIZE,
        )
        assert directory_size(target) == SAMPLE_CACHE_SIZE
        assert legacy_npm_cache.exists()

    def test_copy_into_existing_destination(
        self, migrator, legacy_npm_cache, destination_root
    ):
        """Test that files already at the destination are overwritten."""
        target = destination_root / "packages" / "npm"
        stale = target / "_logs" / "debug.log"
        stale.parent.mkdir(parents=True)
        stale.write_bytes(b"stale")

        outcome = migrator.migrate(legacy_npm_cache, target)

        assert outcome.copied
        assert stale.stat().st_size == 52

    def test_missing_source(self, migrator, tmp_path):
        """Test that a missing source is skipped without error."""
        outcome = migrator.migrate(tmp_path / "missing", tmp_path / "dest")

        assert outcome == MigrationOutcome(copied=False)
        assert not (tmp_path / "dest").exists()

    def test_empty_source(self, migrator, tmp_path):
        """Test that an empty source is not migrated."""
        (tmp_path / "empty").mkdir()

        outcome = migrator.migrate(tmp_path / "empty", tmp_path / "dest")

        assert not outcome.copied
        assert outcome.error is None
        assert not (tmp_path / "dest").exists()

    def test_dry_run(self, migrator, legacy_npm_cache, destination_root, caplog):
        """Test that a dry run touches nothing."""
        target = destination_root / "packages" / "npm"

        with caplog.at_level(logging.INFO):
            outcome = migrator.migrate(legacy_npm_cache, target, dry_run=True)

        assert outcome.copied
        assert outcome.source_size == SAMPLE_CACHE_SIZE
        assert not target.exists()
        assert list(destination_root.iterdir()) == []
        assert "[DRY RUN] Would copy" in caplog.text

    def test_unreadable_source(self, migrator, legacy_npm_cache, tmp_path):
        """Test that an unreadable source is an error, not a crash."""
        with patch(
            "cachemover.toolchain.migrator.directory_size",
            side_effect=PermissionError("Permission denied"),
        ):
            outcome = migrator.migrate(legacy_npm_cache, tmp_path / "dest")

        assert not outcome.copied
        assert "Permission denied" in outcome.error
        assert not (tmp_path / "dest").exists()

    def test_copy_failure(self, migrator, legacy_npm_cache, tmp_path):
        """Test that a failing copy is reported, not raised."""
        with patch(
            "cachemover.toolchain.migrator.recursive_copy",
            side_effect=OSError("No space left on device"),
        ):
            outcome = migrator.migrate(legacy_npm_cache, tmp_path / "dest")

        assert not outcome.copied
        assert outcome.source_size == SAMPLE_CACHE_SIZE
        assert "No space left" in outcome.error

    def test_size_mismatch(self, migrator, legacy_npm_cache, tmp_path, caplog):
        """Test that a short copy is still copied but flagged."""
        sizes = [SAMPLE_CACHE_SIZE, SAMPLE_CACHE_SIZE // 2]
        with patch(
            "cachemover.toolchain.migrator.directory_size", side_effect=sizes
        ):
            with caplog.at_level(logging.WARNING):
                outcome = migrator.migrate(legacy_npm_cache, tmp_path / "dest")

        assert outcome.copied
        assert outcome.size_mismatch
        assert outcome.destination_size == SAMPLE_CACHE_SIZE // 2
        assert "Size mismatch" in caplog.text

    @pytest.mark.parametrize(
        "destination_size,mismatch",
        [(991, False), (989, True), (1000, False), (1200, False)],
    )
    def test_threshold_boundary(
        self, migrator, legacy_npm_cache, tmp_path, destination_size, mismatch
    ):
        """Test the 99% acceptance boundary."""
        with patch(
            "cachemover.toolchain.migrator.directory_size",
            side_effect=[1000, destination_size],
        ):
            outcome = migrator.migrate(legacy_npm_cache, tmp_path / "dest")

        assert outcome.copied
        assert outcome.size_mismatch is mismatch

    def test_custom_threshold(self, legacy_npm_cache, tmp_path):
        """Test a stricter threshold."""
        migrator = CacheMigrator(threshold=1.0)
        with patch(
            "cachemover.toolchain.migrator.directory_size", side_effect=[1000, 999]
        ):
            outcome = migrator.migrate(legacy_npm_cache, tmp_path / "dest")
        assert outcome.size_mismatch

    def test_destination_inside_source(self, migrator, tmp_path):
        """Test that a target nested in the legacy cache is refused."""
        source = populate_cache(tmp_path / ".gradle")
        target = source / "packages" / "gradle"

        outcome = migrator.migrate(source, target)

        assert not outcome.copied
        assert "one contains the other" in outcome.error
        assert not (source / "packages").exists()

    def test_source_inside_destination(self, migrator, tmp_path):
        """Test that a legacy cache nested in the target is refused."""
        target = tmp_path / "packages" / "npm"
        source = populate_cache(target / "legacy")

        outcome = migrator.migrate(source, target)

        assert not outcome.copied
        assert "choose a destination root outside" in outcome.error

    def test_source_is_destination(self, migrator, legacy_npm_cache):
        """Test that a cache already in place is left alone."""
        outcome = migrator.migrate(legacy_npm_cache, legacy_npm_cache)

        assert outcome == MigrationOutcome(copied=False)

    def test_nesting_refused_in_dry_run(self, migrator, tmp_path):
        """Test that a dry run reports the same nesting error."""
        source = populate_cache(tmp_path / ".gradle")

        outcome = migrator.migrate(source, source / "packages", dry_run=True)

        assert not outcome.copied
        assert outcome.error is not None

    @pytest.mark.posix
    def test_cache_with_symlinks(self, migrator, tmp_path, destination_root):
        """Test that links in a cache are copied as links and sizes agree."""
        source = populate_cache(tmp_path / "pkgs")
        os.symlink(tmp_path / "gone", source / "dangling")
        os.symlink("_logs/debug.log", source / "latest.log")
        target = destination_root / "packages" / "conda"

        outcome = migrator.migrate(source, target)

        assert outcome.copied
        assert not outcome.size_mismatch
        assert outcome.source_size == outcome.destination_size == SAMPLE_CACHE_SIZE
        assert (target / "dangling").is_symlink()
        assert (target / "latest.log").is_symlink()

    def test_progress_logged_at_debug(
        self, migrator, legacy_npm_cache, tmp_path, caplog
    ):
        """Test that each copied file is logged at debug level."""
        with caplog.at_level(logging.DEBUG, logger="cachemover.toolchain.migrator"):
            migrator.migrate(legacy_npm_cache, tmp_path / "dest")

        assert "Copied 3 file(s)" in caplog.text
        assert "debug.log" in caplog.text

    def test_default_threshold(self):
        """Test the default acceptance ratio."""
        assert INTEGRITY_THRESHOLD == 0.99
        assert CacheMigrator().threshold == INTEGRITY_THRESHOLD
