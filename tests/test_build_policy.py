"""Tests for build policy - command construction."""

import os
from pathlib import Path

import pytest

from buildrun.build import policy as policy_module
from buildrun.build.policy import (
    DEBUG_VARIANT_FLAG,
    OUTPUT_ON_FAILURE_FLAG,
    BuildPolicy,
    ExternalCommand,
    available_processors,
)
from buildrun.build.state import Mode
from buildrun.config import OrchestratorConfig


class TestExternalCommand:
    """Tests for ExternalCommand."""

    def test_argv(self):
        """Test argv is program followed by args."""
        cmd = ExternalCommand("make", ("-j8",), Path("/tmp/build"))
        assert cmd.argv == ("make", "-j8")

    def test_str(self):
        """Test string form for logging."""
        assert str(ExternalCommand("cmake", ("..", DEBUG_VARIANT_FLAG))) == (
            "cmake .. -DCMAKE_BUILD_TYPE=Debug"
        )

    def test_frozen(self):
        """Test commands are immutable."""
        cmd = ExternalCommand("ctest")
        with pytest.raises(AttributeError):
            cmd.program = "other"  # type: ignore[misc]


class TestAvailableProcessors:
    """Tests for available_processors."""

    def test_positive(self):
        """Test the count is at least one."""
        assert available_processors() >= 1

    def test_uses_affinity_when_present(self, monkeypatch):
        """Test that the affinity mask wins over the raw CPU count."""
        monkeypatch.setattr(os, "sched_getaffinity", lambda pid: {0, 1, 2}, raising=False)
        monkeypatch.setattr(os, "cpu_count", lambda: 64)
        assert available_processors() == 3

    def test_falls_back_to_cpu_count(self, monkeypatch):
        """Test cpu_count is used without sched_getaffinity."""
        monkeypatch.delattr(os, "sched_getaffinity", raising=False)
        monkeypatch.setattr(os, "cpu_count", lambda: 6)
        assert available_processors() == 6

    def test_unknown_cpu_count(self, monkeypatch):
        """Test that an undeterminable count becomes 1."""
        monkeypatch.delattr(os, "sched_getaffinity", raising=False)
        monkeypatch.setattr(os, "cpu_count", lambda: None)
        assert available_processors() == 1


class TestBuildPolicy:
    """Tests for BuildPolicy command construction."""

    @pytest.fixture
    def layout(self, tmp_path):
        return tmp_path, tmp_path / "build"

    def test_configure_default(self, layout):
        """Test configure targets the project root without extra options."""
        root, build = layout
        cmd = BuildPolicy(OrchestratorConfig()).configure_command(Mode.DEFAULT, root, build)

        assert cmd.program == "cmake"
        assert cmd.args == ("..",)
        assert cmd.cwd == build

    def test_configure_debug(self, layout):
        """Test configure in debug mode adds the debug variant flag."""
        root, build = layout
        cmd = BuildPolicy(OrchestratorConfig()).configure_command(Mode.DEBUG, root, build)

        assert cmd.args == ("..", DEBUG_VARIANT_FLAG)

    def test_configure_test_mode_has_no_debug_flag(self, layout):
        """Test that test mode configures a regular build."""
        root, build = layout
        cmd = BuildPolicy(OrchestratorConfig()).configure_command(Mode.TEST, root, build)

        assert DEBUG_VARIANT_FLAG not in cmd.args

    def test_compile_with_config_jobs(self, layout):
        """Test compile uses the configured job count."""
        _, build = layout
        cmd = BuildPolicy(OrchestratorConfig(jobs=5)).compile_command(build)

        assert cmd.argv == ("make", "-j5")

    def test_compile_with_host_jobs(self, layout, monkeypatch):
        """Test compile falls back to the host processor count."""
        _, build = layout
        monkeypatch.setattr(policy_module, "available_processors", lambda: 16)
        cmd = BuildPolicy(OrchestratorConfig()).compile_command(build)

        assert cmd.argv == ("make", "-j16")

    def test_test_command(self, layout):
        """Test the test runner asks for output on failure."""
        _, build = layout
        cmd = BuildPolicy(OrchestratorConfig()).test_command(build)

        assert cmd.argv == ("ctest", OUTPUT_ON_FAILURE_FLAG)
        assert cmd.cwd == build
