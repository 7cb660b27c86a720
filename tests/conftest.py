"""Pytest fixtures for buildrun tests."""

import os
import sys
from pathlib import Path

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from buildrun.build.runner import RunOutput  # noqa: E402
from buildrun.config import OrchestratorConfig  # noqa: E402


class FakeRunner:
    """Records every command instead of running it.

    ``exit_codes`` maps a program name to the status it should report.
    """

    def __init__(self, exit_codes=None):
        self.exit_codes = dict(exit_codes or {})
        self.commands = []
        self.cwds = []

    @property
    def programs(self):
        return [c.program for c in self.commands]

    def run(self, command):
        self.commands.append(command)
        self.cwds.append(Path.cwd().resolve())
        return RunOutput(self.exit_codes.get(command.program, 0))


@pytest.fixture
def fake_runner():
    """Subprocess layer that records commands and succeeds by default."""
    return FakeRunner()


@pytest.fixture
def config():
    """Default configuration with a fixed job count."""
    return OrchestratorConfig(jobs=4)


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A project root that is also the current working directory."""
    (tmp_path / "CMakeLists.txt").write_text("project(sample)\n")
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep host BUILDRUN_* settings out of the tests."""
    for name in list(os.environ):
        if name.startswith("BUILDRUN_"):
            monkeypatch.delenv(name)
