"""Homebrew discovery and service management via `brew services`."""

import json
import logging
from typing import Callable, List, Optional, Sequence

from ..models.result import CommandResult
from ..models.service import ServiceStatus
from ..utils.constants import BREW_NOT_FOUND_EXIT_CODE, KNOWN_BREW_PATHS, SERVICE_NAME, TAP_NAME
from .shell import ShellRunner

logger = logging.getLogger(__name__)

BREW_NOT_FOUND_MESSAGE = (
    "Homebrew not found. Install Homebrew (https://brew.sh) "
    "or make sure brew is on the login shell PATH."
)


class BrewLocator:
    """Finds a working brew executable."""

    def __init__(self, runner: Optional[ShellRunner] = None, known_paths: Optional[Sequence[str]] = None):
        """Initialize the locator.

        Args:
            runner: ShellRunner used for probing
            known_paths: Install locations tried before the shell lookup
        """
        self.runner = runner or ShellRunner()
        self.known_paths = list(KNOWN_BREW_PATHS if known_paths is None else known_paths)

    def detect(self) -> Optional[str]:
        """Locate brew.

        Returns:
            Path of the first candidate that answers `--version`, None if not found
        """
        strategies: List[Callable[[], Optional[str]]] = [
            self._from_known_paths,
            self._from_shell_lookup,
        ]
        for strategy in strategies:
            path = strategy()
            if path:
                logger.debug(f"Using brew at {path}")
                return path

        logger.info("Homebrew not found")
        return None

    def _is_usable(self, path: str) -> bool:
        return self.runner.run(path, ["--version"]).exit_code == 0

    def _from_known_paths(self) -> Optional[str]:
        for path in self.known_paths:
            if self._is_usable(path):
                return path
        return None

    def _from_shell_lookup(self) -> Optional[str]:
        result = self.runner.login_shell("command -v brew")
        candidate = result.stdout.strip()
        if candidate and self._is_usable(candidate):
            return candidate
        return None


class ServiceManager:
    """Manages the agent service via brew commands."""

    def __init__(
        self,
        service_name: str = SERVICE_NAME,
        tap_name: str = TAP_NAME,
        locator: Optional[BrewLocator] = None,
        runner: Optional[ShellRunner] = None,
    ):
        """Initialize the service manager.

        Args:
            service_name: Formula and service name of the agent
            tap_name: Tap that provides the formula
            locator: BrewLocator, built from runner if omitted
            runner: ShellRunner used for brew invocations
        """
        self.service_name = service_name
        self.tap_name = tap_name
        self.runner = runner or ShellRunner()
        self.locator = locator or BrewLocator(self.runner)

    def brew(self, args: Sequence[str]) -> CommandResult:
        """Run brew with the given arguments.

        brew is located again on every call. When it cannot be found nothing
        is launched and exit code 127 is returned.

        Args:
            args: brew arguments, e.g. ["services", "start", "beszel-agent"]

        Returns:
            CommandResult of the brew invocation
        """
        brew_path = self.locator.detect()
        if brew_path is None:
            return CommandResult(
                exit_code=BREW_NOT_FOUND_EXIT_CODE,
                stdout="",
                stderr=BREW_NOT_FOUND_MESSAGE,
            )

        result = self.runner.run(brew_path, list(args))
        if result.ok:
            logger.info(f"brew {' '.join(args)} succeeded")
        else:
            logger.error(f"brew {' '.join(args)} failed with exit code {result.exit_code}")
        return result

    def tap(self) -> CommandResult:
        return self.brew(["tap", self.tap_name])

    def install(self) -> List[CommandResult]:
        """Tap, install and start the agent.

        All three steps run regardless of earlier failures.

        Returns:
            Results of the tap, install and start commands in order
        """
        return [
            self.tap(),
            self.brew(["install", self.service_name]),
            self.start(),
        ]

    def upgrade(self) -> CommandResult:
        return self.brew(["upgrade", self.service_name])

    def start(self) -> CommandResult:
        return self._service_action("start")

    def stop(self) -> CommandResult:
        return self._service_action("stop")

    def restart(self) -> CommandResult:
        return self._service_action("restart")

    def info(self) -> CommandResult:
        return self._service_action("info")

    def info_json(self) -> CommandResult:
        return self.brew(["services", "info", self.service_name, "--json"])

    def get_service_status(self) -> ServiceStatus:
        """Get the current status of the agent service.

        Returns:
            ServiceStatus enum value, UNKNOWN if it cannot be determined
        """
        return self.parse_service_status(self.info_json())

    @staticmethod
    def parse_service_status(result: CommandResult) -> ServiceStatus:
        """Map `brew services info --json` output to a ServiceStatus.

        Args:
            result: Result of the info command

        Returns:
            ServiceStatus enum value, UNKNOWN if it cannot be determined
        """
        if not result.ok:
            return ServiceStatus.UNKNOWN

        try:
            data = json.loads(result.stdout)
        except ValueError as e:
            logger.error(f"Could not parse brew services output: {e}")
            return ServiceStatus.UNKNOWN

        # brew prints a list with one entry per requested service
        if isinstance(data, list):
            data = data[0] if data else {}
        if not isinstance(data, dict):
            return ServiceStatus.UNKNOWN

        return ServiceStatus.from_string(str(data.get("status", "")))

    def _service_action(self, action: str) -> CommandResult:
        return self.brew(["services", action, self.service_name])
