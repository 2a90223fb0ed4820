"""Core functionality for managing the agent."""

from .brew import BrewLocator, ServiceManager
from .config_manager import ConfigManager
from .env_file import EnvFile, parse_env
from .log_tailer import tail_log
from .shell import ShellRunner, merge_environment

__all__ = [
    "BrewLocator",
    "ServiceManager",
    "ConfigManager",
    "EnvFile",
    "parse_env",
    "tail_log",
    "ShellRunner",
    "merge_environment",
]
