"""Utility functions and constants."""

from .constants import *

__all__ = ["APP_NAME", "CONFIG_DIR", "CONFIG_FILE", "SERVICE_NAME", "TAP_NAME", "WELL_KNOWN_KEYS"]
