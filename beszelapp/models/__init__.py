"""Data models for the agent env file, command results and service state."""

from .env import ParsedEnv
from .result import CommandResult
from .service import ServiceStatus

__all__ = ["ParsedEnv", "CommandResult", "ServiceStatus"]
