"""Shared fixtures for the test suite."""

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest
import yaml

from beszelapp.core.shell import ShellRunner
from beszelapp.models.result import CommandResult


class FakeRunner(ShellRunner):
    """ShellRunner that records calls instead of launching processes."""

    def __init__(self, handler: Optional[Callable[[str, List[str]], CommandResult]] = None):
        self.calls: List[Tuple[str, List[str], Optional[Dict[str, str]]]] = []
        self.handler = handler or (lambda path, args: CommandResult(0, "", ""))

    def run(self, launch_path, args, env=None, base_env=None):
        self.calls.append((launch_path, list(args), dict(env) if env else None))
        return self.handler(launch_path, list(args))

    def paths_called(self) -> List[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def fake_runner_factory():
    return FakeRunner


@pytest.fixture
def settings_file(tmp_path: Path) -> Path:
    """Settings file pointing the env and log files into tmp_path."""
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "version": "1.0",
        "settings": {
            "env_path": str(tmp_path / "beszel" / "beszel-agent.env"),
            "log_path": str(tmp_path / "beszel-agent.log"),
        },
    }))
    return path
