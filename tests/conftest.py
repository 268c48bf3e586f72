"""Shared fixtures: an in-memory stand-in for a git checkout."""

from pathlib import Path

import pytest

from git_trickle.git_wrapper import ApplyResult, ApplyStatus
from git_trickle.runner import CommandResult

OK = CommandResult(returncode=0)


class FakeRepo:
    """Simulates the git operations the transfer engine relies on.

    Work commits are opaque ids listed oldest first. Cherry-picking records the
    original id on the staging branch; picking it again yields an empty pick.
    """

    def __init__(self, path: Path, work: list[str]):
        self.path = path
        self.work = list(work)
        self.head = "feature"
        self.staging: list[str] = []
        self.remote_staging: list[str] = []
        self.conflicts: set[str] = set()
        self.failing_checkouts: set[str] = set()
        self.push_ok = True
        self.marker: str | None = None
        self.locked = False
        self.dates: list[str] = []
        self.calls: list[tuple] = []

    def fetch(self, remote: str | None = None) -> CommandResult:
        self.calls.append(("fetch", remote))
        return OK

    def checkout(self, branch: str) -> CommandResult:
        self.calls.append(("checkout", branch))
        if branch in self.failing_checkouts:
            return CommandResult(returncode=1, stderr="error: pathspec")
        self.head = branch
        return OK

    def log_range(self, exclude: str, include: str) -> list[str]:
        self.calls.append(("log", exclude, include))
        # Picked commits get new hashes, so every work commit stays in range.
        return list(reversed(self.work))

    def commit_subject(self, commit: str) -> str:
        return f"subject of {commit}"

    def cherry_pick(self, commit: str, strategy_option: str = "theirs") -> ApplyResult:
        self.calls.append(("cherry-pick", commit, strategy_option))
        assert self.head == "staging", "cherry-pick must target the staging branch"
        if commit in self.conflicts:
            self.marker = "CHERRY_PICK_HEAD"
            return ApplyResult(ApplyStatus.CONFLICT, commit, ["notes.txt"])
        if commit in self.staging:
            self.marker = "CHERRY_PICK_HEAD"
            return ApplyResult(ApplyStatus.EMPTY, commit)
        self.staging.append(commit)
        return ApplyResult(ApplyStatus.APPLIED, commit)

    def cherry_pick_skip(self) -> CommandResult:
        self.calls.append(("cherry-pick-skip",))
        self.marker = None
        return OK

    def amend_date(self, date: str) -> CommandResult:
        self.calls.append(("amend", date))
        self.dates.append(date)
        return OK

    def push(self, remote: str, branch: str) -> CommandResult:
        self.calls.append(("push", remote, branch))
        if not self.push_ok:
            return CommandResult(returncode=1, stderr="fatal: unable to access")
        self.remote_staging = list(self.staging)
        return OK

    def in_progress_operation(self) -> str | None:
        return self.marker

    def is_index_locked(self) -> bool:
        return self.locked

    def ops(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


@pytest.fixture
def fake_repo_cls() -> type[FakeRepo]:
    """Exposes the fake repository class to tests that build several instances."""
    return FakeRepo


@pytest.fixture
def fake_repo(tmp_path: Path) -> FakeRepo:
    """A fake checkout with three work commits and an empty staging branch."""
    return FakeRepo(tmp_path / "repo", ["c1", "c2", "c3"])
