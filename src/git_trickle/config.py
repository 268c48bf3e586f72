import logging
import re
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from .constants import (
    APP_NAME,
    CONFIG_FILE,
    DEFAULT_MAX_DELAY,
    DEFAULT_MIN_DELAY,
    DEFAULT_REMOTE,
    DEFAULT_STAGING_BRANCH,
    DEFAULT_WORK_BRANCH,
    LOCAL_CONFIG_NAME,
)

logger = logging.getLogger(APP_NAME)


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '1hr', '45m') to seconds."""
    if isinstance(value, int):
        return value
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


@dataclass
class CoreConfig:
    """Branch and remote settings.

    Attributes:
        remote_name (str): The remote the staging branch is pushed to.
        work_branch (str): The private branch commits are taken from.
        staging_branch (str): The shared branch commits are copied onto.
        strategy_option (str): The `-X` option used when cherry-picking.
    """

    remote_name: str = DEFAULT_REMOTE
    work_branch: str = DEFAULT_WORK_BRANCH
    staging_branch: str = DEFAULT_STAGING_BRANCH
    strategy_option: str = "theirs"


@dataclass
class ScheduleConfig:
    """Inter-cycle delay bounds, in seconds.

    Attributes:
        min_delay (int): Inclusive lower bound.
        max_delay (int): Exclusive upper bound.
    """

    min_delay: int = DEFAULT_MIN_DELAY
    max_delay: int = DEFAULT_MAX_DELAY


@dataclass
class LedgerConfig:
    """Ledger location.

    Attributes:
        directory (str): Where ledger files live, relative to the process cwd.
    """

    directory: str = "."


@dataclass
class LimitsConfig:
    """Resource limitation settings.

    Attributes:
        max_log_size (int): Max bytes for log files before rotation.
    """

    max_log_size: int = 5 * 1024 * 1024


@dataclass
class NotifyConfig:
    """Desktop notification settings.

    Attributes:
        on_conflict (bool): Whether to raise a notification when a transfer halts.
    """

    on_conflict: bool = True


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        core (CoreConfig): Branch and remote settings.
        schedule (ScheduleConfig): Delay bounds.
        ledger (LedgerConfig): Ledger location.
        limits (LimitsConfig): Resource limits.
        notify (NotifyConfig): Notification settings.
    """

    core: CoreConfig = field(default_factory=CoreConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)

    @classmethod
    def load(cls, repo_path: Path | None = None) -> "Config":
        """Loads and merges configuration from defaults, global, and local sources.

        Args:
            repo_path (Path | None): The repository root to search for local config.

        Returns:
            Config: The fully merged configuration object.
        """
        instance = cls()
        if CONFIG_FILE.exists():
            instance._merge_from_file(CONFIG_FILE)

        if repo_path:
            local_toml = repo_path / LOCAL_CONFIG_NAME
            pyproject = repo_path / "pyproject.toml"

            if local_toml.exists():
                instance._merge_from_file(local_toml)
            elif pyproject.exists():
                instance._merge_from_file(pyproject, section="tool.trickle")

        return instance

    def _merge_from_file(self, path: Path, section: str | None = None) -> None:
        """Parses a TOML file and merges it into the current instance.

        Args:
            path (Path): Path to the TOML file.
            section (str | None): Dot-separated section path (e.g., 'tool.trickle').
        """
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)

            if section:
                for key in section.split("."):
                    data = data.get(key, {})

            if not data:
                return

            for name in ("core", "schedule", "ledger", "limits", "notify"):
                if name in data:
                    updated = self._update_dataclass(
                        name, getattr(self, name), data[name]
                    )
                    setattr(self, name, updated)

        except tomllib.TOMLDecodeError as e:
            logger.error(f"Config syntax error in {path}: {e}")
        except OSError as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    @staticmethod
    def _update_dataclass(section_name: str, instance: Any, updates: dict) -> Any:
        """Updates a dataclass, warning on invalid keys and parsing human-readable formats."""
        valid_keys = instance.__dataclass_fields__.keys()
        filtered_updates = {}

        # 1. Catch and warn about typos / unknown keys
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [{section_name}]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        # 2. Process valid keys
        for k, v in updates.items():
            if k not in valid_keys:
                continue

            try:
                if k == "max_log_size":
                    filtered_updates[k] = parse_size(v)
                elif k in ["min_delay", "max_delay"]:
                    filtered_updates[k] = parse_time(v)
                else:
                    filtered_updates[k] = v
            except ValueError as e:
                logger.warning(
                    f"Config error in [{section_name}].{k}: {e}. Falling back to default."
                )

        return replace(instance, **filtered_updates)
