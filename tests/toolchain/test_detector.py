"""
Tests for cachemover.toolchain.detector module.
"""

import pytest
from unittest.mock import Mock

from cachemover.toolchain.detector import ToolchainDetector
from cachemover.toolchain.registry import ToolchainSpec


@pytest.fixture
def spec():
    """Spec with two commands and two detection paths."""
    return ToolchainSpec(
        name="pip",
        commands=("pip", "pip3"),
        paths=("/opt/python3*", "/usr/bin/python3*"),
        variable="PIP_CACHE_DIR",
        target="packages/pip",
    )


class TestIsInstalled:
    """Tests for ToolchainDetector.is_installed."""

    def test_first_command_short_circuits(self, spec):
        """Test that later probes are skipped once one succeeds."""
        which = Mock(return_value="/usr/bin/pip")
        path_exists = Mock(return_value=True)
        detector = ToolchainDetector(which=which, path_exists=path_exists)

        assert detector.is_installed(spec)
        which.assert_called_once_with("pip")
        path_exists.assert_not_called()

    def test_second_command(self, spec):
        """Test that any command counts."""
        which = Mock(side_effect=[None, "/usr/bin/pip3"])
        detector = ToolchainDetector(which=which, path_exists=Mock(return_value=False))
        assert detector.is_installed(spec)

    def test_path_fallback(self, spec):
        """Test that paths are probed when no command resolves."""
        path_exists = Mock(side_effect=[False, True])
        detector = ToolchainDetector(
            which=Mock(return_value=None), path_exists=path_exists
        )

        assert detector.is_installed(spec)
        assert path_exists.call_count == 2

    def test_nothing_found(self, spec):
        """Test a tool-chain that is not installed."""
        detector = ToolchainDetector(
            which=Mock(return_value=None), path_exists=Mock(return_value=False)
        )
        assert not detector.is_installed(spec)

    def test_empty_probe_lists(self):
        """Test that a spec without probes is never installed."""
        which = Mock(return_value="/bin/anything")
        path_exists = Mock(return_value=True)
        detector = ToolchainDetector(which=which, path_exists=path_exists)
        spec = ToolchainSpec(name="ghost", variable="GHOST", target="packages/ghost")

        assert not detector.is_installed(spec)
        which.assert_not_called()
        path_exists.assert_not_called()

    @pytest.mark.parametrize("error", [OSError("denied"), ValueError("bad name")])
    def test_probe_errors_mean_absent(self, spec, error):
        """Test that probe errors never escape and count as not found."""
        detector = ToolchainDetector(
            which=Mock(side_effect=error), path_exists=Mock(side_effect=error)
        )
        assert not detector.is_installed(spec)

    def test_probe_error_then_success(self, spec):
        """Test that one failing probe does not hide a later match."""
        which = Mock(side_effect=[OSError("denied"), "/usr/bin/pip3"])
        detector = ToolchainDetector(which=which, path_exists=Mock(return_value=False))
        assert detector.is_installed(spec)


class TestDetect:
    """Tests for ToolchainDetector.detect."""

    def test_installed_subset_in_order(self):
        """Test that detect keeps registry order."""
        specs = [
            ToolchainSpec(name=n, commands=(n,), variable="V", target=f"p/{n}")
            for n in ("npm", "yarn", "go", "cargo")
        ]
        installed = {"go", "npm"}
        detector = ToolchainDetector(
            which=lambda name: name in installed, path_exists=lambda p: False
        )

        assert [s.name for s in detector.detect(specs)] == ["npm", "go"]

    def test_real_paths(self, tmp_path):
        """Test path detection against the real filesystem."""
        (tmp_path / "dotnet").mkdir()
        spec = ToolchainSpec(
            name="nuget",
            commands=("cachemover-no-such-command",),
            paths=(str(tmp_path / "missing"), str(tmp_path / "dot*")),
            variable="NUGET_PACKAGES",
            target="packages/nuget",
        )
        assert ToolchainDetector().detect([spec]) == [spec]
