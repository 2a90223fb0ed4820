"""Data model for the agent environment file."""

from dataclasses import dataclass, field
from typing import Dict, List


@dataclass
class ParsedEnv:
    """Contents of an env file as read from disk.

    Attributes:
        values: Key/value pairs, quotes already removed
        extra_lines: Comments and lines that are not a usable KEY=VALUE pair,
            verbatim and in file order
    """

    values: Dict[str, str] = field(default_factory=dict)
    extra_lines: List[str] = field(default_factory=list)

    def get(self, key: str, default: str = "") -> str:
        return self.values.get(key, default)

    def is_empty(self) -> bool:
        return not self.values and not self.extra_lines
