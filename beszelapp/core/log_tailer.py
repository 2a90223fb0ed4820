"""Read the end of the agent log file."""

import logging
import os
from pathlib import Path
from typing import Union

from ..utils.constants import AGENT_LOG_FILE, DEFAULT_LOG_MAX_BYTES

logger = logging.getLogger(__name__)

NOT_UTF8_PLACEHOLDER = "(log is not UTF-8)"


def _skip_partial_character(data: bytes) -> bytes:
    # A cut through a multi-byte character leaves at most 3 continuation bytes
    start = 0
    while start < min(3, len(data)) and (data[start] & 0xC0) == 0x80:
        start += 1
    return data[start:]


def tail_log(path: Union[str, Path] = AGENT_LOG_FILE, max_bytes: int = DEFAULT_LOG_MAX_BYTES) -> str:
    """Return up to max_bytes from the end of a log file as text.

    Problems are reported as placeholder text instead of exceptions.

    Args:
        path: Log file location
        max_bytes: Maximum number of trailing bytes to read

    Returns:
        Log text, or a message describing why it could not be read
    """
    path = Path(path).expanduser()
    if not path.exists():
        return f"Log file not found: {path}"

    try:
        f = open(path, "rb")
    except OSError as e:
        logger.error(f"Unable to open log file {path}: {e}")
        return f"Unable to open log file: {path}"

    with f:
        try:
            f.seek(0, os.SEEK_END)
            size = f.tell()
            offset = max(0, size - max(0, max_bytes))
            f.seek(offset, os.SEEK_SET)
            data = f.read()
        except OSError as e:
            logger.error(f"Failed reading log {path}: {e}")
            return f"Failed reading log: {e}"

    if offset > 0:
        data = _skip_partial_character(data)

    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return NOT_UTF8_PLACEHOLDER
