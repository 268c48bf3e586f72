import argparse
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from .config import Config
from .constants import APP_NAME, LOG_FILE
from .daemon import TransferLoop, install_signal_handlers, setup_logging
from .engine import (
    ApplyError,
    ConflictError,
    CycleReport,
    RepoBusyError,
    TransferEngine,
    TransferOutcome,
)
from .git_wrapper import GitRepo
from .ledger import LedgerError, TransferLedger, ledger_path_for
from .system import get_notifier

console = Console()
err_console = Console(stderr=True)


def build_parser() -> argparse.ArgumentParser:
    """Builds the argument parser for the `git-trickle` command."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Replicate commits from a work branch to a staging branch, "
        "one at a time.",
    )
    parser.add_argument("--repo", default=".", help="Path to the git repository")
    parser.add_argument("--work-branch", help="Name of the working branch")
    parser.add_argument("--staging-branch", help="Name of the staging branch")
    parser.add_argument(
        "--min-delay", type=int, help="Minimum delay between commits in minutes"
    )
    parser.add_argument(
        "--max-delay", type=int, help="Maximum delay between commits in minutes"
    )
    parser.add_argument("--remote", help="Remote to push the staging branch to")
    parser.add_argument("--ledger-dir", help="Directory holding ledger files")
    parser.add_argument(
        "--log-file",
        nargs="?",
        const=str(LOG_FILE),
        help=f"Also log to a rotating file (default path: {LOG_FILE})",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Log every git command"
    )

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Transfer commits forever (default)")
    subparsers.add_parser("once", help="Run a single transfer cycle")
    subparsers.add_parser("status", help="Show pending commits and ledger state")
    subparsers.add_parser("ledger", help="List transferred commits")
    subparsers.add_parser("config", help="Show the effective configuration")
    return parser


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    """Layers command-line flags on top of the loaded configuration.

    Args:
        config (Config): The configuration loaded from files.
        args (argparse.Namespace): Parsed arguments.

    Returns:
        Config: The same instance, updated.
    """
    if args.work_branch:
        config.core.work_branch = args.work_branch
    if args.staging_branch:
        config.core.staging_branch = args.staging_branch
    if args.remote:
        config.core.remote_name = args.remote
    if args.min_delay is not None:
        config.schedule.min_delay = args.min_delay * 60
    if args.max_delay is not None:
        config.schedule.max_delay = args.max_delay * 60
    if args.ledger_dir:
        config.ledger.directory = args.ledger_dir
    return config


def build_engine(config: Config, repo: GitRepo) -> TransferEngine:
    """Wires the engine from configuration."""
    ledger = TransferLedger(
        ledger_path_for(Path(config.ledger.directory), config.core.staging_branch)
    )
    return TransferEngine(
        repo,
        ledger,
        work_branch=config.core.work_branch,
        staging_branch=config.core.staging_branch,
        remote=config.core.remote_name,
        strategy_option=config.core.strategy_option,
        notifier=get_notifier() if config.notify.on_conflict else None,
    )


def show_status(engine: TransferEngine) -> None:
    """Displays the backlog, oldest first, marking ledgered commits and the next pick."""
    backlog = engine.backlog()
    recorded = set(engine.ledger.entries())

    console.print(
        f"[bold]{engine.work_branch}[/bold] -> [bold]{engine.staging_branch}[/bold]"
        f"  (ledger: {engine.ledger.path})"
    )
    if not backlog:
        console.print("[green]Nothing to transfer.[/green]")
        return

    table = Table(show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Commit", style="cyan")
    table.add_column("Subject")
    table.add_column("State")

    next_marked = False
    for i, commit in enumerate(backlog, start=1):
        if commit in recorded:
            state = "[dim]transferred[/dim]"
        elif not next_marked:
            state = "[bold green]next[/bold green]"
            next_marked = True
        else:
            state = "[yellow]pending[/yellow]"
        table.add_row(str(i), commit[:12], engine.repo.commit_subject(commit), state)

    console.print(table)


def show_ledger(ledger: TransferLedger) -> None:
    entries = ledger.entries()
    if not entries:
        console.print(f"[dim]Ledger empty: {ledger.path}[/dim]")
        return
    for commit in entries:
        console.print(commit)


def show_config(config: Config) -> None:
    """Displays the effective configuration after all layers are merged."""
    table = Table(title="Git Trickle Configuration", show_lines=True)
    table.add_column("Section", style="cyan", justify="right")
    table.add_column("Key", style="green")
    table.add_column("Value", style="yellow")

    for section in ("core", "schedule", "ledger", "limits", "notify"):
        values = vars(getattr(config, section))
        first = True
        for key, value in values.items():
            table.add_row(section if first else "", key, repr(value))
            first = False

    console.print(table)


def _report(report: CycleReport) -> None:
    if report.outcome == TransferOutcome.APPLIED:
        console.print(f"[bold green]TRANSFERRED:[/bold green] {report.commit}")
    elif report.outcome == TransferOutcome.RECONCILED:
        console.print(f"[bold green]RECONCILED:[/bold green] {report.commit}")
    elif report.outcome in (
        TransferOutcome.PUSH_FAILED,
        TransferOutcome.CHECKOUT_FAILED,
        TransferOutcome.REPO_LOCKED,
    ):
        console.print(f"[bold yellow]{report.outcome.value.upper()}[/bold yellow]")
    else:
        console.print(f"[dim]{report.outcome.value}[/dim]")


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the Git Trickle CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    repo_path = Path(args.repo).resolve()
    config = apply_overrides(Config.load(repo_path), args)

    if args.command == "config":
        show_config(config)
        return

    setup_logging(
        verbose=args.verbose,
        log_file=Path(args.log_file) if args.log_file else None,
        max_bytes=config.limits.max_log_size,
    )

    try:
        repo = GitRepo(repo_path)
    except ValueError as e:
        err_console.print(f"[bold red]ERROR:[/bold red] {e}")
        sys.exit(2)

    engine = build_engine(config, repo)

    try:
        if args.command == "status":
            show_status(engine)
            return
        elif args.command == "ledger":
            show_ledger(engine.ledger)
            return

        try:
            loop = TransferLoop(
                engine, config.schedule.min_delay, config.schedule.max_delay
            )
        except ValueError as e:
            err_console.print(f"[bold red]ERROR:[/bold red] {e}")
            sys.exit(2)

        if args.command == "once":
            _report(loop.run_once())
            return

        install_signal_handlers(loop.stop_event)
        loop.run_forever()

    except ConflictError as e:
        err_console.print(f"[bold red]CONFLICT:[/bold red] {e}")
        for path in e.details:
            err_console.print(f"   • {path}")
        err_console.print(
            "   Resolve, then run 'git cherry-pick --continue' "
            "(or '--abort') and restart."
        )
        sys.exit(1)
    except (ApplyError, RepoBusyError, LedgerError) as e:
        err_console.print(f"[bold red]FATAL:[/bold red] {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
