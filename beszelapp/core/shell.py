"""Process runner for invoking external executables."""

import logging
import os
import subprocess
from typing import Dict, List, Mapping, Optional, Sequence

from ..models.result import CommandResult
from ..utils.constants import LAUNCH_FAILED_EXIT_CODE, LOGIN_SHELL, LOGIN_SHELL_PATH

logger = logging.getLogger(__name__)


def merge_environment(base: Mapping[str, str], overrides: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Return base environment updated with overrides (overrides win).

    Args:
        base: Environment inherited by the child process
        overrides: Variables to set on top of base

    Returns:
        New environment dictionary
    """
    environment = dict(base)
    if overrides:
        environment.update(overrides)
    return environment


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return ""


class ShellRunner:
    """Runs executables synchronously and captures their output."""

    def run(
        self,
        launch_path: str,
        args: Sequence[str],
        env: Optional[Mapping[str, str]] = None,
        base_env: Optional[Mapping[str, str]] = None,
    ) -> CommandResult:
        """Run an executable and wait for it to finish.

        There is no timeout: a child that never exits blocks the caller.

        Args:
            launch_path: Path to the executable
            args: Arguments passed to the executable
            env: Environment overrides applied on top of base_env
            base_env: Inherited environment, defaults to os.environ

        Returns:
            CommandResult; exit code -1 if the process could not be launched
        """
        cmd: List[str] = [launch_path, *args]
        environment = merge_environment(os.environ if base_env is None else base_env, env)
        logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, env=environment)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to launch {launch_path}: {e}")
            return CommandResult(
                exit_code=LAUNCH_FAILED_EXIT_CODE,
                stdout="",
                stderr=f"Failed to run: {' '.join(cmd)}\n{e}",
            )

        if result.returncode != 0:
            logger.debug(f"{launch_path} exited with code {result.returncode}")

        return CommandResult(
            exit_code=result.returncode,
            stdout=_decode(result.stdout),
            stderr=_decode(result.stderr),
        )

    def login_shell(self, command: str) -> CommandResult:
        """Run a command through a bash login shell with a Homebrew-aware PATH.

        Args:
            command: Shell command line

        Returns:
            CommandResult of the shell
        """
        return self.run(LOGIN_SHELL, ["-lc", command], env={"PATH": LOGIN_SHELL_PATH})
