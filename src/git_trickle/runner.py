import logging
import os
import subprocess
from dataclasses import dataclass, field
from pathlib import Path

from .constants import APP_NAME

logger = logging.getLogger(APP_NAME)


@dataclass
class CommandResult:
    """The captured outcome of an external command.

    Attributes:
        args (list[str]): The full command line that was issued.
        stdout (str): Captured standard output (possibly empty).
        stderr (str): Captured standard error (possibly empty).
        returncode (int | None): The exit status, or None if the command never ran.
        launch_error (str | None): Why the command could not be started, if it wasn't.
    """

    args: list[str] = field(default_factory=list)
    stdout: str = ""
    stderr: str = ""
    returncode: int | None = None
    launch_error: str | None = None

    @property
    def ok(self) -> bool:
        """True if the command launched and exited with status 0."""
        return self.launch_error is None and self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for diagnostics."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


def run_command(
    cwd: Path | str, env: dict[str, str] | None, name: str, *args: str
) -> CommandResult:
    """Runs an external command synchronously and captures its output.

    The child inherits the current environment merged with `env`. Failures never
    raise: a nonzero exit or a launch error is logged and reported on the result
    so the caller can decide what it means.

    Args:
        cwd (Path | str): The working directory for the command.
        env (dict[str, str] | None): Environment overrides.
        name (str): The executable to run (e.g. 'git').
        *args (str): Arguments passed to the executable.

    Returns:
        CommandResult: The captured result.
    """
    cmd = [name, *args]
    logger.debug(f"RUN {' '.join(cmd)}")

    merged_env = os.environ.copy()
    if env:
        merged_env.update(env)

    try:
        res = subprocess.run(
            cmd,
            cwd=cwd,
            env=merged_env,
            capture_output=True,
            encoding="utf-8",
            errors="replace",
            check=False,
        )
    except OSError as e:
        logger.warning(f"Could not launch '{name}': {e}")
        return CommandResult(args=cmd, launch_error=str(e))

    result = CommandResult(
        args=cmd, stdout=res.stdout, stderr=res.stderr, returncode=res.returncode
    )
    if res.returncode != 0:
        logger.warning(
            f"Command '{' '.join(cmd)}' exited with {res.returncode}: "
            f"{res.stderr.strip()}"
        )
    return result
