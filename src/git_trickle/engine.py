"""The commit transfer state machine.

One call to `TransferEngine.run_cycle` syncs the repository, computes the
backlog of work-branch commits missing from staging, and moves at most one of
them (the oldest not yet in the ledger) onto the staging branch.
"""

import datetime
import logging
from collections.abc import Callable
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from .constants import APP_NAME, DEFAULT_REMOTE
from .git_wrapper import ApplyResult, ApplyStatus, GitRepo
from .ledger import TransferLedger
from .runner import CommandResult
from .system import Notifier

logger = logging.getLogger(APP_NAME)


class TransferOutcome(Enum):
    """Result of a single transfer cycle."""

    APPLIED = "applied"
    RECONCILED = "reconciled"
    ALREADY_TRANSFERRED = "already-transferred"
    NO_BACKLOG = "no-backlog"
    PUSH_FAILED = "push-failed"
    CHECKOUT_FAILED = "checkout-failed"
    REPO_LOCKED = "repo-locked"


@dataclass
class CycleReport:
    """What a cycle did.

    Attributes:
        outcome (TransferOutcome): How the cycle ended.
        commit (str | None): The commit selected for transfer, if any.
        skipped (list[str]): Backlog commits passed over because they were ledgered.
    """

    outcome: TransferOutcome
    commit: str | None = None
    skipped: list[str] = field(default_factory=list)


class ApplyError(Exception):
    """A commit could not be applied to the staging branch."""

    def __init__(self, commit: str, message: str, details: list[str] | None = None):
        super().__init__(message)
        self.commit = commit
        self.details = details or []


class ConflictError(ApplyError):
    """A cherry-pick stopped on conflicts that need manual resolution."""


class RepoBusyError(Exception):
    """The checkout has an unfinished merge, rebase or cherry-pick."""


@contextmanager
def staging_checkout(
    repo: GitRepo, staging_branch: str, work_branch: str
) -> Iterator[CommandResult]:
    """Checks out the staging branch for the duration of the block.

    The work branch is restored on every exit path, except when a cherry-pick is
    still in progress: that state is left on staging for manual resolution.

    Args:
        repo (GitRepo): The repository.
        staging_branch (str): The branch to check out.
        work_branch (str): The branch to return to.

    Yields:
        CommandResult: The result of the staging checkout, for the caller to check.
    """
    res = repo.checkout(staging_branch)
    try:
        yield res
    finally:
        if repo.in_progress_operation():
            logger.warning(
                f"Leaving {repo.path.name} on '{staging_branch}' with an "
                "unfinished cherry-pick."
            )
        else:
            restore = repo.checkout(work_branch)
            if not restore.ok:
                logger.error(f"Could not return to '{work_branch}'.")


def _local_now() -> datetime.datetime:
    return datetime.datetime.now().astimezone()


class TransferEngine:
    """Moves commits from a work branch to a staging branch, one per cycle.

    Attributes:
        repo (GitRepo): The repository the branches live in.
        ledger (TransferLedger): The record of already transferred commits.
        work_branch (str): Source branch.
        staging_branch (str): Destination branch.
        remote (str): The remote the staging branch is pushed to.
        strategy_option (str): The `-X` option for cherry-picks.
    """

    def __init__(
        self,
        repo: GitRepo,
        ledger: TransferLedger,
        work_branch: str,
        staging_branch: str,
        remote: str = DEFAULT_REMOTE,
        strategy_option: str = "theirs",
        notifier: Notifier | None = None,
        clock: Callable[[], datetime.datetime] = _local_now,
    ):
        self.repo = repo
        self.ledger = ledger
        self.work_branch = work_branch
        self.staging_branch = staging_branch
        self.remote = remote
        self.strategy_option = strategy_option
        self.notifier = notifier
        self.clock = clock

    def sync(self) -> None:
        """Fetches remote updates and checks out the work branch.

        Failures are logged by the runner; the cycle carries on regardless.
        """
        self.repo.fetch(self.remote)
        self.repo.checkout(self.work_branch)

    def backlog(self) -> list[str]:
        """Returns work-branch commits missing from staging, oldest first."""
        newest_first = self.repo.log_range(self.staging_branch, self.work_branch)
        return list(reversed(newest_first))

    def run_cycle(self) -> CycleReport:
        """Runs one transfer cycle.

        Returns:
            CycleReport: The outcome of the cycle.

        Raises:
            RepoBusyError: If a previous operation is still unresolved.
            ConflictError: If the selected commit conflicts with staging.
            ApplyError: If the selected commit could not be applied otherwise.
            LedgerError: If the ledger cannot be accessed.
        """
        name = self.repo.path.name
        if op := self.repo.in_progress_operation():
            raise RepoBusyError(
                f"{name}: {op} present. Finish or abort the operation, "
                "then restart the transfer."
            )
        if self.repo.is_index_locked():
            logger.info(f"SKIPPED {name}: index.lock present.")
            return CycleReport(TransferOutcome.REPO_LOCKED)

        self.sync()

        backlog = self.backlog()
        if not backlog:
            logger.info("No new commits to transfer.")
            return CycleReport(TransferOutcome.NO_BACKLOG)

        self.ledger.ensure_exists()
        self.ledger.load()

        skipped = []
        selected = None
        for commit in backlog:
            if self.ledger.contains(commit):
                logger.info(f"Skipping previously transferred commit: {commit}")
                skipped.append(commit)
                continue
            selected = commit
            break

        if selected is None:
            logger.info("All pending commits were already transferred.")
            return CycleReport(TransferOutcome.ALREADY_TRANSFERRED, skipped=skipped)

        outcome = self._transfer(selected)
        if outcome in (TransferOutcome.APPLIED, TransferOutcome.RECONCILED):
            self.ledger.append(selected)
            logger.info(f"Transferred commit: {selected} ({outcome.value})")

        return CycleReport(outcome, selected, skipped)

    def _transfer(self, commit: str) -> TransferOutcome:
        with staging_checkout(self.repo, self.staging_branch, self.work_branch) as co:
            if not co.ok:
                logger.error(
                    f"Could not check out '{self.staging_branch}'. Nothing applied."
                )
                return TransferOutcome.CHECKOUT_FAILED

            result = self.repo.cherry_pick(commit, self.strategy_option)

            if result.status == ApplyStatus.EMPTY:
                # Applied by an earlier run that stopped before the ledger write.
                logger.info(f"{commit} is already on '{self.staging_branch}'.")
                skip = self.repo.cherry_pick_skip()
                if not skip.ok:
                    logger.warning(
                        f"Could not skip the empty pick of {commit}; "
                        "the next cycle will stop until it is cleared."
                    )
                return self._publish(TransferOutcome.RECONCILED)

            if result.status != ApplyStatus.APPLIED:
                self._halt(result)

            self.repo.amend_date(self.clock().isoformat(timespec="seconds"))
            return self._publish(TransferOutcome.APPLIED)

    def _publish(self, outcome: TransferOutcome) -> TransferOutcome:
        res = self.repo.push(self.remote, self.staging_branch)
        if not res.ok:
            logger.warning(
                f"Push of '{self.staging_branch}' failed; will retry next cycle."
            )
            return TransferOutcome.PUSH_FAILED
        return outcome

    def _halt(self, result: ApplyResult) -> None:
        if result.status == ApplyStatus.CONFLICT:
            message = (
                f"Cherry-pick of {result.commit} onto '{self.staging_branch}' "
                "failed, please resolve conflicts manually."
            )
            error: ApplyError = ConflictError(result.commit, message, result.details)
        else:
            message = f"Could not apply {result.commit} ({result.status.value})."
            error = ApplyError(result.commit, message, result.details)

        logger.critical(message)
        for line in result.details:
            logger.critical(f"   {line}")
        if self.notifier:
            paths = result.details if result.status == ApplyStatus.CONFLICT else []
            self.notifier.notify_halt(result.commit, self.staging_branch, paths)
        raise error
