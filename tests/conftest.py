"""
Pytest configuration and shared fixtures for cachemover tests.
"""

import pytest
from pathlib import Path

# Import test fixtures to make them available to all tests
# These imports register the fixtures with pytest's fixture discovery system
# ruff: noqa: F401
from tests.fixtures.toolchains import (
    npm_spec,
    nuget_spec,
    maven_spec,
)
from tests.fixtures.directories import (
    destination_root,
    legacy_npm_cache,
)
from tests.mocks import MemoryEnvironmentStore

from cachemover.core.platform import clear_platform_cache


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "windows: marks tests that only run on Windows"
    )
    config.addinivalue_line(
        "markers", "posix: marks tests that only run on Linux/macOS"
    )


def pytest_collection_modifyitems(config, items):
    """Skip platform-specific tests on the other platform."""
    import sys

    is_windows = sys.platform == "win32"
    skip_windows = pytest.mark.skip(reason="Windows-only test")
    skip_posix = pytest.mark.skip(reason="POSIX-only test")
    for item in items:
        if "windows" in item.keywords and not is_windows:
            item.add_marker(skip_windows)
        if "posix" in item.keywords and is_windows:
            item.add_marker(skip_posix)


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture(autouse=True)
def reset_platform_cache():
    """Drop cached platform detection between tests."""
    clear_platform_cache()
    yield
    clear_platform_cache()


@pytest.fixture
def memory_store() -> MemoryEnvironmentStore:
    """Empty in-memory persistent environment."""
    return MemoryEnvironmentStore()


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = tmp_path / "home"
    fake_home.mkdir(exist_ok=True)

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))

    return fake_home
