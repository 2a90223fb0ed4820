"""Read and write the agent's KEY=VALUE environment file."""

import logging
import os
import re
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from ..models.env import ParsedEnv
from ..utils.constants import (
    AGENT_ENV_FILE,
    DEFAULT_LISTEN,
    ENV_HUB_URL,
    ENV_KEY,
    ENV_LISTEN,
    ENV_TOKEN,
    PRESERVED_LINES_HEADER,
    PRESERVED_VARS_HEADER,
    WELL_KNOWN_KEYS,
)

logger = logging.getLogger(__name__)

_QUOTES = ('"', "'")
_ESCAPED_CHAR = re.compile(r'\\(["\\])')


def _unquote(value: str) -> str:
    """Strip one layer of matching quotes, decoding escapes inside double quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        inner = value[1:-1]
        if value[0] == '"':
            inner = _ESCAPED_CHAR.sub(r"\1", inner)
        return inner
    return value


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def parse_env(text: str) -> ParsedEnv:
    """Parse env file contents.

    Blank lines are dropped, the separator comments written by
    EnvFile.write are dropped, comments and lines without a usable key go to
    extra_lines verbatim, everything else becomes a key/value pair.

    Args:
        text: File contents

    Returns:
        ParsedEnv with values and extra lines
    """
    parsed = ParsedEnv()

    for line in text.splitlines():
        trimmed = line.strip()
        if not trimmed:
            continue
        if trimmed in (PRESERVED_LINES_HEADER, PRESERVED_VARS_HEADER):
            continue
        if trimmed.startswith("#") or "=" not in trimmed:
            parsed.extra_lines.append(line)
            continue

        key, _, value = trimmed.partition("=")
        key = key.strip()
        if not key:
            parsed.extra_lines.append(line)
            continue

        parsed.values[key] = _unquote(value.strip())

    return parsed


class EnvFile:
    """The env file read by the agent service."""

    def __init__(self, path: Union[str, Path] = AGENT_ENV_FILE):
        """Initialize the env file.

        Args:
            path: Location of the env file
        """
        self.path = Path(path).expanduser()

    def read(self) -> ParsedEnv:
        """Read and parse the env file.

        Returns:
            ParsedEnv; empty if the file is missing or not valid UTF-8

        Raises:
            OSError: If the file exists but cannot be read
        """
        if not self.path.exists():
            logger.info(f"Env file not found at {self.path}")
            return ParsedEnv()

        try:
            text = self.path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            logger.warning(f"Env file {self.path} is not valid UTF-8, ignoring it")
            return ParsedEnv()

        parsed = parse_env(text)
        logger.debug(f"Read {len(parsed.values)} values and {len(parsed.extra_lines)} extra lines from {self.path}")
        return parsed

    @staticmethod
    def render(key: str, token: str, hub_url: str, listen: str, preserve: Optional[ParsedEnv] = None) -> str:
        """Render env file contents.

        Args:
            key: KEY value
            token: TOKEN value
            hub_url: HUB_URL value
            listen: LISTEN value, the default port if empty
            preserve: Previously read contents to carry over

        Returns:
            File contents ending with a single newline
        """
        preserve = preserve or ParsedEnv()
        lines: List[str] = []

        def add(name: str, value: str, quoted: bool):
            value = value.strip()
            if not value:
                return
            lines.append(f"{name}={_quote(value) if quoted else value}")

        add(ENV_KEY, key, quoted=True)
        add(ENV_LISTEN, listen.strip() or DEFAULT_LISTEN, quoted=False)
        add(ENV_TOKEN, token, quoted=True)
        add(ENV_HUB_URL, hub_url, quoted=True)

        if preserve.extra_lines:
            lines.append("")
            lines.append(PRESERVED_LINES_HEADER)
            lines.extend(preserve.extra_lines)

        unknown = {k: v for k, v in preserve.values.items() if k not in WELL_KNOWN_KEYS}
        if unknown:
            lines.append("")
            lines.append(PRESERVED_VARS_HEADER)
            lines.extend(f"{k}={unknown[k]}" for k in sorted(unknown))

        return "\n".join(lines) + "\n"

    def write(self, key: str, token: str, hub_url: str, listen: str, preserve: Optional[ParsedEnv] = None):
        """Write the env file, replacing it atomically.

        Args:
            key: KEY value
            token: TOKEN value
            hub_url: HUB_URL value
            listen: LISTEN value, the default port if empty
            preserve: ParsedEnv from the last read; its extra lines and
                unrecognised keys are written back

        Raises:
            OSError: If the directory or file cannot be written
            ValueError: If a value cannot be encoded as UTF-8
        """
        content = self.render(key, token, hub_url, listen, preserve)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        # Write to temp file first (atomic write)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            tmp_path.chmod(0o600)
            os.replace(tmp_path, self.path)
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise

        logger.info(f"Saved env to {self.path}")
