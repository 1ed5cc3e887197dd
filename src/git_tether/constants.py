import os
from pathlib import Path

"""Global constants and default path definitions for Git Tether.

This module defines the filesystem layout (adhering to XDG standards where
applicable), application identifiers, and the defaults applied to every
repository declaration that leaves a field unset.
"""

# --- Identity ---
APP_NAME = "git-tether"
"""str: The human-readable application name, also used as the logger name."""

SCRIPT_PREFIX = "git-tether-"
"""str: Filename prefix of the temporary helper scripts."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "git-tether"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "daemon.log"
"""Path: The default file path for the daemon process logs."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/git-tether"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

CONFIG_ENV_VAR = "GIT_TETHER_CONFIG"
"""str: Environment variable overriding the configuration file path."""

# --- Repository Defaults ---
DEFAULT_BRANCH = "master"
"""str: Branch checked out when a repository does not name one."""

DEFAULT_INTERVAL = 3600
"""int: Seconds between two sync attempts of the same repository."""

SUPPORTED_SCHEMES = ("https://", "http://", "ssh://")
"""tuple[str, ...]: URL prefixes accepted without rewriting."""

KEYSCAN_TYPES = ("rsa", "dsa", "ecdsa", "ed25519")
"""
tuple[str, ...]: Host key types collected by ssh-keyscan. Each type is scanned
separately so a client that dropped one of them still seeds the others.
"""
