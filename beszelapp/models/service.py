"""Data models for Homebrew-managed services."""

from enum import Enum


class ServiceStatus(Enum):
    """Enumeration of the states reported by `brew services info`."""

    STARTED = "started"
    STOPPED = "stopped"
    SCHEDULED = "scheduled"
    ERROR = "error"
    NONE = "none"
    UNKNOWN = "unknown"

    @classmethod
    def from_string(cls, status_str: str) -> 'ServiceStatus':
        """Convert a string to ServiceStatus enum.

        Args:
            status_str: Status string from brew services

        Returns:
            ServiceStatus enum value
        """
        try:
            return cls(status_str.strip().lower())
        except (AttributeError, ValueError):
            return cls.UNKNOWN

    @property
    def is_running(self) -> bool:
        return self is ServiceStatus.STARTED
