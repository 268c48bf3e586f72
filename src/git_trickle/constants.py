import os
from pathlib import Path

"""Global constants and path definitions for Git Trickle.

This module defines the filesystem layout (adhering to XDG standards where applicable),
application identifiers, and the default branch and scheduling values used across
the application.
"""

# --- Identity ---
APP_NAME = "git-trickle"
"""str: The human-readable application name."""

# --- Paths ---
_XDG_STATE = os.environ.get("XDG_STATE_HOME")
_BASE_STATE = Path(_XDG_STATE) if _XDG_STATE else Path.home() / ".local/state"

STATE_DIR = _BASE_STATE / "git-trickle"
"""Path: The directory for runtime state data (logs)."""

LOG_FILE = STATE_DIR / "trickle.log"
"""Path: The default file path for the transfer loop logs."""

# --- Configuration Paths ---
CONFIG_DIR: Path = Path.home() / ".config/git-trickle"
"""Path: The directory for user configuration files."""

CONFIG_FILE: Path = CONFIG_DIR / "config.toml"
"""Path: The main configuration file path."""

LOCAL_CONFIG_NAME = "trickle.toml"
"""str: The repository-local configuration file name."""

# --- Defaults ---
DEFAULT_WORK_BRANCH = "feature"
DEFAULT_STAGING_BRANCH = "staging"
DEFAULT_REMOTE = "origin"

DEFAULT_MIN_DELAY = 45 * 60
"""int: Lower bound (inclusive) of the inter-cycle delay, in seconds."""

DEFAULT_MAX_DELAY = 80 * 60
"""int: Upper bound (exclusive) of the inter-cycle delay, in seconds."""

LEDGER_SUFFIX = "_transferred_commits.txt"
"""str: Suffix appended to the staging branch name to form the ledger file name."""

# --- Git / Logic Constants ---
GIT_LOCK_FILES = [
    "MERGE_HEAD",
    "REBASE_HEAD",
    "CHERRY_PICK_HEAD",
    "rebase-merge",
    "rebase-apply",
]
"""
list[str]: Git internal files indicating an
active operation (merge/rebase/cherry-pick) that blocks transfers.
"""
