from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .constants import GIT_LOCK_FILES
from .runner import CommandResult, run_command


class ApplyStatus(Enum):
    """How a cherry-pick ended."""

    APPLIED = "applied"
    EMPTY = "empty"
    CONFLICT = "conflict"
    FAILED = "failed"
    LAUNCH_FAILURE = "launch-failure"


@dataclass
class ApplyResult:
    """The classified outcome of applying one commit.

    Attributes:
        status (ApplyStatus): The classification.
        commit (str): The commit that was picked.
        details (list[str]): Unmerged paths on conflict, or diagnostic lines.
    """

    status: ApplyStatus
    commit: str
    details: list[str] = field(default_factory=list)


class GitRepo:
    """A wrapper around the Git command-line interface for a specific repository.

    Every call goes through `run_command`, so no method raises on a failed git
    invocation. Methods either return the `CommandResult` for the caller to
    inspect or interpret it into a domain value.

    Attributes:
        path (Path): The file system path to the repository root.
    """

    def __init__(self, path: Path):
        """Initializes the GitRepo instance.

        Args:
            path (Path): The path to the repository root directory.

        Raises:
            ValueError: If the specified path does not contain a .git directory.
        """
        self.path = path
        if not (self.path / ".git").exists():
            raise ValueError(f"Not a git repository: {self.path}")

    @property
    def git_dir(self) -> Path:
        return self.path / ".git"

    def _run(self, args: list[str], env: dict | None = None) -> CommandResult:
        """Executes a Git command within the repository context.

        Args:
            args (list[str]): A list of arguments to pass to the git command.
            env (Optional[dict], optional): Environment overrides. Defaults to None.

        Returns:
            CommandResult: The captured result; never raises for git failures.
        """
        return run_command(self.path, env, "git", *args)

    def fetch(self, remote: str | None = None) -> CommandResult:
        """Fetches remote updates (all configured remotes if none is given)."""
        cmd = ["fetch"]
        if remote:
            cmd.append(remote)
        return self._run(cmd)

    def checkout(self, branch: str) -> CommandResult:
        """Checks out a branch.

        Args:
            branch (str): The target branch name.

        Returns:
            CommandResult: The captured result.
        """
        return self._run(["checkout", branch])

    def log_range(self, exclude: str, include: str) -> list[str]:
        """Lists commits reachable from `include` but not from `exclude`.

        Args:
            exclude (str): The branch whose history is excluded (e.g. 'staging').
            include (str): The branch whose history is listed (e.g. 'feature').

        Returns:
            list[str]: Full commit hashes in git's output order (newest first).
        """
        res = self._run(["log", "--pretty=format:%H", f"{exclude}..{include}"])
        return [line.strip() for line in res.stdout.splitlines() if line.strip()]

    def commit_subject(self, commit: str) -> str:
        """Returns the first line of a commit's message."""
        return self._run(["log", "-1", "--format=%s", commit]).stdout.strip()

    def unmerged_paths(self) -> list[str]:
        """Lists paths with unresolved merge conflicts."""
        output = self._run(["diff", "--name-only", "--diff-filter=U"]).stdout
        return [line for line in output.splitlines() if line.strip()]

    def has_staged_changes(self) -> bool:
        """True if the index differs from HEAD."""
        # `diff --quiet` exits 1 when there are differences.
        return self._run(["diff", "--cached", "--quiet"]).returncode == 1

    def in_progress_operation(self) -> str | None:
        """Detects an unfinished merge, rebase or cherry-pick.

        Returns:
            str | None: The name of the first marker found, or None if the
            repository is idle.
        """
        for marker in GIT_LOCK_FILES:
            if (self.git_dir / marker).exists():
                return marker
        return None

    def is_index_locked(self) -> bool:
        return (self.git_dir / "index.lock").exists()

    def cherry_pick(self, commit: str, strategy_option: str = "theirs") -> ApplyResult:
        """Cherry-picks a commit onto the current branch and classifies the result.

        Textual overlaps are resolved with `-X<strategy_option>`; structural
        conflicts (delete/modify, rename/rename) still stop the pick.
        Commits that were empty at the source are kept; a pick that only becomes
        empty because staging already has the change stops and reports EMPTY.

        Args:
            commit (str): The commit hash to apply.
            strategy_option (str, optional): The merge strategy option.
                                             Defaults to 'theirs'.

        Returns:
            ApplyResult: APPLIED, EMPTY, CONFLICT, FAILED or LAUNCH_FAILURE.
        """
        cmd = ["cherry-pick", "--allow-empty"]
        if strategy_option:
            cmd.append(f"-X{strategy_option}")
        cmd.append(commit)
        res = self._run(cmd)

        if res.launch_error:
            return ApplyResult(ApplyStatus.LAUNCH_FAILURE, commit, [res.launch_error])
        if res.ok:
            return ApplyResult(ApplyStatus.APPLIED, commit)

        if (self.git_dir / "CHERRY_PICK_HEAD").exists():
            unmerged = self.unmerged_paths()
            if unmerged:
                return ApplyResult(ApplyStatus.CONFLICT, commit, unmerged)
            if not self.has_staged_changes():
                # The change is already on this branch.
                return ApplyResult(ApplyStatus.EMPTY, commit)
            return ApplyResult(
                ApplyStatus.CONFLICT, commit, res.output.strip().splitlines()
            )

        return ApplyResult(ApplyStatus.FAILED, commit, res.output.strip().splitlines())

    def cherry_pick_skip(self) -> CommandResult:
        """Drops the current (empty) pick and ends the cherry-pick sequence."""
        return self._run(["cherry-pick", "--skip"])

    def amend_date(self, date: str) -> CommandResult:
        """Rewrites the HEAD commit's date, keeping its message and content.

        Empty commits are amended as well.

        Args:
            date (str): An ISO-8601 timestamp understood by git.
        """
        return self._run(
            ["commit", "--amend", "--allow-empty", "--no-edit", "--date", date]
        )

    def push(self, remote: str, branch: str) -> CommandResult:
        """Pushes a branch, setting its upstream.

        Args:
            remote (str): The remote name (e.g. 'origin').
            branch (str): The local branch to publish.
        """
        return self._run(["push", "--set-upstream", remote, branch])
