"""Desktop alerts raised when a transfer stops for manual attention."""

import sys

from .runner import run_command

HALT_TITLE = "git-trickle halted"
MAX_LISTED_PATHS = 3


def describe_halt(commit: str, staging_branch: str, paths: list[str]) -> str:
    """Builds the one-line alert body for a halted transfer.

    Args:
        commit (str): The commit that could not be applied.
        staging_branch (str): The branch it was being applied to.
        paths (list[str]): Conflicting paths, if the halt was a conflict.

    Returns:
        str: e.g. "3f2a9c1d0b7e stopped on 'staging': notes.txt, a.py (+2 more)".
    """
    text = f"{commit[:12]} stopped on '{staging_branch}'"
    if not paths:
        return text + "."
    listed = ", ".join(paths[:MAX_LISTED_PATHS])
    hidden = len(paths) - MAX_LISTED_PATHS
    if hidden > 0:
        listed += f" (+{hidden} more)"
    return f"{text}: {listed}"


class Notifier:
    """Sends halt alerts to the desktop. The base class stays silent."""

    def notify_halt(self, commit: str, staging_branch: str, paths: list[str]) -> None:
        """Alerts the user that `commit` needs manual resolution on `staging_branch`."""
        self.send(HALT_TITLE, describe_halt(commit, staging_branch, paths))

    def send(self, title: str, body: str) -> None:
        pass


class OsascriptNotifier(Notifier):
    """macOS alerts through AppleScript."""

    def send(self, title: str, body: str) -> None:
        # Double quotes would end the AppleScript string literal.
        title, body = title.replace('"', "'"), body.replace('"', "'")
        script = f'display notification "{body}" with title "{title}"'
        run_command(".", None, "osascript", "-e", script)


class NotifySendNotifier(Notifier):
    """Linux alerts through libnotify's `notify-send`."""

    def send(self, title: str, body: str) -> None:
        run_command(".", None, "notify-send", "--app-name=git-trickle", title, body)


def get_notifier() -> Notifier:
    """Returns the alert backend for the running platform."""
    if sys.platform == "darwin":
        return OsascriptNotifier()
    if sys.platform.startswith("linux"):
        return NotifySendNotifier()
    return Notifier()
