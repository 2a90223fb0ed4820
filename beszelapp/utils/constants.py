"""Application constants and configuration."""

from pathlib import Path

# Application metadata
APP_NAME = "Beszel Agent Manager"
APP_VERSION = "1.0.0"

# Paths
CONFIG_DIR = Path.home() / ".config" / "beszelapp"
CONFIG_FILE = CONFIG_DIR / "config.yaml"
LOG_FILE = CONFIG_DIR / "app.log"

# Files owned by the agent
AGENT_ENV_FILE = Path.home() / ".config" / "beszel" / "beszel-agent.env"
AGENT_LOG_FILE = Path.home() / ".cache" / "beszel" / "beszel-agent.log"

# Homebrew
SERVICE_NAME = "beszel-agent"
TAP_NAME = "henrygd/beszel"
KNOWN_BREW_PATHS = [
    "/opt/homebrew/bin/brew",  # Apple Silicon
    "/usr/local/bin/brew",     # Intel
]
LOGIN_SHELL = "/bin/bash"
LOGIN_SHELL_PATH = "/opt/homebrew/bin:/usr/local/bin:/usr/bin:/bin:/usr/sbin:/sbin"
BREW_NOT_FOUND_EXIT_CODE = 127
LAUNCH_FAILED_EXIT_CODE = -1

# Env file keys
ENV_KEY = "KEY"
ENV_TOKEN = "TOKEN"
ENV_HUB_URL = "HUB_URL"
ENV_LISTEN = "LISTEN"
WELL_KNOWN_KEYS = (ENV_KEY, ENV_TOKEN, ENV_HUB_URL, ENV_LISTEN)
DEFAULT_LISTEN = "45876"
PRESERVED_LINES_HEADER = "# ---- preserved lines ----"
PRESERVED_VARS_HEADER = "# ---- preserved env vars ----"

# Log tail
DEFAULT_LOG_MAX_BYTES = 200_000
