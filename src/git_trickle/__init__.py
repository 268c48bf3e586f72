"""Git Trickle: paced, one-commit-at-a-time replication between branches.

This package provides the command-line interface, the transfer loop, and the
commit transfer engine that copies commits from a private work branch onto a
shared staging branch, recording each transferred commit in a durable ledger.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    engine,
    git_wrapper,
    ledger,
    runner,
    system,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "engine",
    "git_wrapper",
    "ledger",
    "runner",
    "system",
]
