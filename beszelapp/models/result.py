"""Result of running an external command."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of a finished (or failed to start) process.

    Attributes:
        exit_code: Process exit status, -1 if it could not be launched
        stdout: Captured standard output
        stderr: Captured standard error
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.exit_code == 0

    @property
    def combined(self) -> str:
        """Trimmed stdout and stderr joined by a newline, skipping empty ones."""
        out = self.stdout.strip()
        err = self.stderr.strip()
        if not out:
            return err
        if not err:
            return out
        return f"{out}\n{err}"
