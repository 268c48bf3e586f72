import logging
import random
import signal
import sys
import threading
import time
from logging.handlers import RotatingFileHandler
from pathlib import Path
from types import FrameType

from .constants import APP_NAME
from .engine import CycleReport, TransferEngine

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)


class TransferLoop:
    """Drives the transfer engine repeatedly with a randomized pause between cycles.

    Attributes:
        engine (TransferEngine): The engine run once per cycle.
        min_delay (int): Inclusive lower bound of the pause, in seconds.
        max_delay (int): Exclusive upper bound of the pause, in seconds.
        stop_event (threading.Event): Set to stop the loop; also wakes a pending sleep.
    """

    def __init__(
        self,
        engine: TransferEngine,
        min_delay: int,
        max_delay: int,
        stop_event: threading.Event | None = None,
        rng: random.Random | None = None,
    ):
        """Initializes the loop.

        Args:
            engine (TransferEngine): The engine to drive.
            min_delay (int): Minimum pause in seconds.
            max_delay (int): Maximum pause in seconds (exclusive).
            stop_event (threading.Event | None): Cancellation signal.
            rng (random.Random | None): Source of randomness. Defaults to a
                generator seeded from the current time.

        Raises:
            ValueError: If the delay range is empty or negative.
        """
        if min_delay < 0:
            raise ValueError(f"min delay must not be negative (got {min_delay}s)")
        if max_delay <= min_delay:
            raise ValueError(
                f"max delay ({max_delay}s) must be greater than min delay "
                f"({min_delay}s)"
            )
        self.engine = engine
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.stop_event = stop_event or threading.Event()
        self.rng = rng or random.Random(time.time_ns())

    def next_delay(self) -> int:
        """Draws the next pause, in whole seconds, from [min_delay, max_delay)."""
        return self.rng.randrange(self.min_delay, self.max_delay)

    def run_once(self) -> CycleReport:
        """Runs a single transfer cycle."""
        return self.engine.run_cycle()

    def run_forever(self) -> None:
        """Runs cycles until the stop event is set.

        Fatal engine errors (conflicts, ledger access) propagate to the caller.
        """
        while not self.stop_event.is_set():
            self.run_once()

            delay = self.next_delay()
            logger.info(f"Sleeping for {delay // 60}m{delay % 60:02d}s")
            if self.stop_event.wait(delay):
                break

        logger.info("Transfer loop stopped.")


def install_signal_handlers(stop_event: threading.Event) -> None:
    """Sets the stop event on SIGINT/SIGTERM so the loop exits promptly.

    Args:
        stop_event (threading.Event): The event the loop waits on.
    """

    def handler(signum: int, _frame: FrameType | None) -> None:
        logger.info(f"Received signal {signum}, stopping after the current step.")
        stop_event.set()

    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)


def setup_logging(
    verbose: bool = False, log_file: Path | None = None, max_bytes: int = 5 * 1024**2
) -> None:
    """Configures the logging subsystem.

    Args:
        verbose (bool): If True, log at DEBUG (includes every git command issued).
        log_file (Path | None): If given, also log to this file with rotation.
        max_bytes (int): Size at which the log file is rotated.
    """
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Progress goes to stdout.
    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=5,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
