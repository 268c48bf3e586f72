"""Tests for the Command Line Interface (CLI) module."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from git_trickle import cli
from git_trickle.config import Config
from git_trickle.engine import ConflictError, CycleReport, TransferOutcome


@pytest.fixture
def repo_dir(tmp_path: Path, mocker: MagicMock) -> Path:
    """A directory that passes the GitRepo check, with logging setup stubbed."""
    (tmp_path / ".git").mkdir()
    mocker.patch("git_trickle.cli.setup_logging")
    mocker.patch("git_trickle.cli.Config.load", return_value=Config())
    return tmp_path


def test_apply_overrides_converts_minutes() -> None:
    """Verifies that CLI flags override config and delays are given in minutes."""
    args = cli.build_parser().parse_args(
        [
            "--work-branch",
            "wip",
            "--staging-branch",
            "shared",
            "--min-delay",
            "1",
            "--max-delay",
            "2",
            "--ledger-dir",
            "/tmp/ledgers",
        ]
    )

    conf = cli.apply_overrides(Config(), args)

    assert conf.core.work_branch == "wip"
    assert conf.core.staging_branch == "shared"
    assert conf.schedule.min_delay == 60
    assert conf.schedule.max_delay == 120
    assert conf.ledger.directory == "/tmp/ledgers"


def test_defaults_leave_config_untouched() -> None:
    """Verifies that omitted flags keep configured values."""
    args = cli.build_parser().parse_args([])
    conf = Config()
    conf.core.work_branch = "from-file"

    cli.apply_overrides(conf, args)

    assert args.repo == "."
    assert args.command is None
    assert conf.core.work_branch == "from-file"
    assert conf.schedule.max_delay == 80 * 60


def test_build_engine_places_ledger(tmp_path: Path) -> None:
    """Verifies the ledger path and wiring derived from configuration."""
    (tmp_path / ".git").mkdir()
    conf = Config()
    conf.ledger.directory = str(tmp_path / "ledgers")
    conf.notify.on_conflict = False

    engine = cli.build_engine(conf, cli.GitRepo(tmp_path))

    assert engine.ledger.path == tmp_path / "ledgers" / "staging_transferred_commits.txt"
    assert engine.notifier is None
    assert engine.work_branch == "feature"


def test_main_rejects_non_repository(tmp_path: Path, mocker: MagicMock) -> None:
    """Verifies exit code 2 for a path that is not a git repository."""
    mocker.patch("git_trickle.cli.setup_logging")

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--repo", str(tmp_path), "once"])

    assert exc_info.value.code == 2


def test_main_rejects_empty_delay_range(repo_dir: Path) -> None:
    """Verifies that max-delay <= min-delay fails fast with exit code 2."""
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--repo", str(repo_dir), "--min-delay", "5", "--max-delay", "5"])

    assert exc_info.value.code == 2


def test_main_once_runs_single_cycle(
    repo_dir: Path, mocker: MagicMock, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that `once` runs exactly one cycle and reports it."""
    run_cycle = mocker.patch(
        "git_trickle.cli.TransferEngine.run_cycle",
        return_value=CycleReport(TransferOutcome.APPLIED, "abc123"),
    )

    cli.main(["--repo", str(repo_dir), "once"])

    run_cycle.assert_called_once()
    assert "TRANSFERRED: abc123" in capsys.readouterr().out


def test_main_exits_nonzero_on_conflict(
    repo_dir: Path, mocker: MagicMock, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that a conflict terminates the process with exit code 1."""
    mocker.patch("git_trickle.cli.install_signal_handlers")
    mocker.patch(
        "git_trickle.cli.TransferEngine.run_cycle",
        side_effect=ConflictError("abc123", "Cherry-pick failed", ["a.txt"]),
    )

    with pytest.raises(SystemExit) as exc_info:
        cli.main(["--repo", str(repo_dir), "run"])

    assert exc_info.value.code == 1
    err = capsys.readouterr().err
    assert "CONFLICT" in err
    assert "a.txt" in err


def test_show_status_marks_next_commit(
    repo_dir: Path, mocker: MagicMock, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that status lists the backlog with ledger state."""
    conf = Config()
    conf.ledger.directory = str(repo_dir)
    engine = cli.build_engine(conf, cli.GitRepo(repo_dir))
    engine.ledger.path.write_text("aaaaaaaaaaaaaaaa\n")
    mocker.patch.object(
        engine, "backlog", return_value=["aaaaaaaaaaaaaaaa", "bbbbbbbbbbbbbbbb"]
    )
    mocker.patch.object(engine.repo, "commit_subject", return_value="msg")

    cli.show_status(engine)

    out = capsys.readouterr().out
    assert "transferred" in out
    assert "next" in out
    assert "bbbbbbbbbbbb" in out


def test_show_ledger_lists_entries(
    tmp_path: Path, capsys: pytest.CaptureFixture
) -> None:
    """Verifies that the ledger command prints entries in order."""
    ledger = cli.TransferLedger(tmp_path / "staging_transferred_commits.txt")
    cli.show_ledger(ledger)
    assert "Ledger empty" in capsys.readouterr().out

    ledger.path.write_text("one\ntwo\n")
    cli.show_ledger(ledger)
    assert capsys.readouterr().out.split() == ["one", "two"]
