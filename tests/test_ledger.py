"""Tests for the transfer ledger."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_trickle.ledger import LedgerError, TransferLedger, ledger_path_for


def test_ledger_path_for_uses_branch_name(tmp_path: Path) -> None:
    """Verifies the per-branch file naming, flattening namespaced branches."""
    assert ledger_path_for(tmp_path, "staging") == (
        tmp_path / "staging_transferred_commits.txt"
    )
    assert ledger_path_for(tmp_path, "team/staging") == (
        tmp_path / "team_staging_transferred_commits.txt"
    )


def test_ensure_exists_creates_empty_file(tmp_path: Path) -> None:
    """Verifies that a missing ledger (and its directory) is created empty."""
    ledger = TransferLedger(tmp_path / "nested" / "staging_transferred_commits.txt")

    ledger.ensure_exists()

    assert ledger.path.exists()
    assert ledger.path.read_text() == ""
    assert ledger.load() == set()


def test_ensure_exists_keeps_existing_entries(tmp_path: Path) -> None:
    """Verifies that an existing ledger is never truncated."""
    path = tmp_path / "staging_transferred_commits.txt"
    path.write_text("abc\n")
    ledger = TransferLedger(path)

    ledger.ensure_exists()

    assert ledger.load() == {"abc"}


def test_ensure_exists_raises_on_access_error(
    tmp_path: Path, mocker: MagicMock
) -> None:
    """Verifies that errors other than a missing file are fatal."""
    mocker.patch.object(Path, "touch", side_effect=PermissionError("denied"))
    ledger = TransferLedger(tmp_path / "staging_transferred_commits.txt")

    with pytest.raises(LedgerError, match="denied"):
        ledger.ensure_exists()


def test_append_writes_one_line_and_updates_membership(tmp_path: Path) -> None:
    """Verifies that append persists a newline-terminated entry."""
    ledger = TransferLedger(tmp_path / "staging_transferred_commits.txt")
    ledger.ensure_exists()
    ledger.load()

    ledger.append("1111")
    ledger.append("2222")

    assert ledger.path.read_text() == "1111\n2222\n"
    assert ledger.contains("2222")
    assert ledger.entries() == ["1111", "2222"]


def test_contains_is_exact_line_match(tmp_path: Path) -> None:
    """Verifies that a prefix of a recorded id is not treated as recorded."""
    path = tmp_path / "staging_transferred_commits.txt"
    path.write_text("abcdef0123\n  9999  \n\n")
    ledger = TransferLedger(path)
    ledger.load()

    assert ledger.contains("abcdef0123")
    assert ledger.contains("9999")
    assert not ledger.contains("abcdef")
    assert not ledger.contains("")


def test_append_raises_ledger_error(tmp_path: Path) -> None:
    """Verifies that a write failure surfaces as LedgerError."""
    # A directory in place of the file makes open() fail.
    path = tmp_path / "staging_transferred_commits.txt"
    path.mkdir()
    ledger = TransferLedger(path)

    with pytest.raises(LedgerError):
        ledger.append("abc")
