import logging
import os
from pathlib import Path

from .constants import APP_NAME, LEDGER_SUFFIX

logger = logging.getLogger(APP_NAME)


class LedgerError(Exception):
    """The ledger file could not be created, read or written."""


def ledger_path_for(directory: Path, staging_branch: str) -> Path:
    """Builds the ledger file path for a staging branch.

    Args:
        directory (Path): The directory holding ledger files.
        staging_branch (str): The staging branch name. Slashes become underscores
                              so namespaced branches map to a single file.

    Returns:
        Path: e.g. `<directory>/staging_transferred_commits.txt`.
    """
    return directory / f"{staging_branch.replace('/', '_')}{LEDGER_SUFFIX}"


class TransferLedger:
    """Append-only record of commits already transferred to a staging branch.

    One identifier per line. Entries are only ever appended; membership is an
    exact match against the trimmed lines read by `load`.

    Attributes:
        path (Path): The ledger file.
    """

    def __init__(self, path: Path):
        self.path = path
        self._entries: set[str] = set()

    def ensure_exists(self) -> None:
        """Creates an empty ledger if none exists.

        Raises:
            LedgerError: If the file cannot be created or is not accessible.
        """
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.touch(exist_ok=True)
        except OSError as e:
            raise LedgerError(f"Cannot access ledger {self.path}: {e}") from e

    def load(self) -> set[str]:
        """Reads the whole ledger into memory.

        Returns:
            set[str]: The recorded commit identifiers.

        Raises:
            LedgerError: If the file cannot be read.
        """
        self._entries = set(self.entries())
        return set(self._entries)

    def entries(self) -> list[str]:
        """Returns recorded identifiers in the order they were appended."""
        try:
            with open(self.path, "r") as f:
                return [line.strip() for line in f if line.strip()]
        except FileNotFoundError:
            return []
        except OSError as e:
            raise LedgerError(f"Cannot read ledger {self.path}: {e}") from e

    def contains(self, commit: str) -> bool:
        """True if `commit` was recorded (as of the last `load` or `append`)."""
        return commit.strip() in self._entries

    def append(self, commit: str) -> None:
        """Records a transferred commit durably.

        Args:
            commit (str): The commit identifier.

        Raises:
            LedgerError: If the write fails.
        """
        commit = commit.strip()
        try:
            with open(self.path, "a") as f:
                f.write(commit + "\n")
                f.flush()
                os.fsync(f.fileno())  # Force write to disk.
        except OSError as e:
            raise LedgerError(f"Cannot write ledger {self.path}: {e}") from e

        self._entries.add(commit)
        logger.debug(f"LEDGER {self.path.name}: recorded {commit}")
