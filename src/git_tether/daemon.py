import enum
import logging
import signal
import sys
import threading
from collections.abc import Callable
from logging.handlers import RotatingFileHandler
from pathlib import Path
from types import FrameType

from . import ops
from .config import Config, LogConfig
from .constants import APP_NAME
from .errors import SyncError
from .hooks import StartupRegistry
from .repo import Repo, SyncState

logger = logging.getLogger(APP_NAME)
logger.setLevel(logging.INFO)


class SchedulerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class RepoScheduler:
    """Runs one repository's sync attempts on a fixed interval.

    A sync attempt never overlaps another attempt of the same repository: a
    tick that fires while the previous pull is still running is dropped, not
    queued. Failed attempts are logged and retried by the next tick.

    Attributes:
        repo (Repo): The repository being kept in sync.
        state (SyncState): Outcome of the most recent attempt.
    """

    def __init__(
        self,
        repo: Repo,
        pull: Callable[[], object] | None = None,
        log: logging.Logger | None = None,
    ):
        """Initializes the scheduler.

        Args:
            repo (Repo): The prepared repository descriptor.
            pull (Callable[[], object] | None, optional): The sync attempt.
                Defaults to `ops.pull` on this repository and state.
            log (logging.Logger | None, optional): Where to report outcomes.
                Defaults to the package logger.
        """
        self.repo = repo
        self.state = SyncState()
        self._pull = pull or (lambda: ops.pull(self.repo, self.state))
        self._log = log or logger
        self._gate = threading.Lock()
        self._stop = threading.Event()
        self._timer: threading.Thread | None = None

    @property
    def status(self) -> SchedulerState:
        if self._stop.is_set():
            return SchedulerState.STOPPED
        if self._gate.locked():
            return SchedulerState.RUNNING
        return SchedulerState.IDLE

    def run_once(self) -> None:
        """Runs one attempt synchronously, raising its error.

        Raises:
            SyncError: If the attempt fails.
            RuntimeError: If an attempt is already running.
        """
        if not self._gate.acquire(blocking=False):
            raise RuntimeError(f"Sync of {self.repo.name} already in progress")
        try:
            self._pull()
        finally:
            self._gate.release()

    def tick(self) -> bool:
        """Runs one scheduled attempt unless the previous one is still in flight.

        Returns:
            bool: True if the attempt ran, False if the tick was dropped.
        """
        if not self._gate.acquire(blocking=False):
            self._log.info(f"SKIPPED {self.repo.name}: Previous sync still running.")
            return False
        try:
            self._pull()
        except SyncError as e:
            self._log.error(f"SYNC ERROR {self.repo.name}: {e}")
        except Exception:
            self._log.exception(f"LOOP ERROR {self.repo.name}")
        finally:
            self._gate.release()
        return True

    def _loop(self) -> None:
        while not self._stop.wait(self.repo.interval):
            # Each tick gets its own worker so a slow pull never delays the timer.
            threading.Thread(
                target=self.tick, name=f"{APP_NAME}-sync-{self.repo.name}", daemon=True
            ).start()

    def start(self) -> None:
        """Syncs once right away, then arms the repeating timer.

        The timer is armed even when the first attempt fails, so the
        repository recovers on its own once the remote is reachable.

        Raises:
            SyncError: If the first attempt fails.
        """
        try:
            self.run_once()
        finally:
            self._arm()

    def _arm(self) -> None:
        if self._timer is not None or self._stop.is_set():
            return
        self._timer = threading.Thread(
            target=self._loop, name=f"{APP_NAME}-timer-{self.repo.name}", daemon=True
        )
        self._timer.start()
        self._log.info(
            f"SCHEDULED {self.repo.name}: {self.repo.url} every {self.repo.interval}s"
        )

    def stop(self) -> None:
        """Stops the timer. An attempt already in flight is left to finish."""
        self._stop.set()


def setup(
    repos: list[Repo],
    registry: StartupRegistry,
    log: logging.Logger | None = None,
) -> list[RepoScheduler]:
    """Creates a scheduler per repository and registers their startup callbacks.

    Callbacks are collected first and registered together once every
    scheduler exists, so none of them fires while the group is being built.

    Args:
        repos (list[Repo]): The prepared descriptors of one configuration.
        registry (StartupRegistry): Where to register the startup callbacks.
        log (logging.Logger | None, optional): Logger handed to each scheduler.

    Returns:
        list[RepoScheduler]: The schedulers, in declaration order.
    """
    schedulers = [RepoScheduler(repo, log=log) for repo in repos]
    startup_funcs = [s.start for s in schedulers]
    for func in startup_funcs:
        registry.on_startup(func)
    return schedulers


def setup_logging(interactive: bool, settings: LogConfig | None = None) -> None:
    """Configures the logging subsystem.

    Args:
        interactive (bool): If True, logs to stdout. If False, logs to stderr and
                            to a rotating log file.
        settings (LogConfig | None, optional): Log file, size and level.
    """
    settings = settings or LogConfig()
    formatter = logging.Formatter(
        "[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S"
    )
    logger.setLevel(getattr(logging, settings.level, logging.INFO))

    # Always log to a stream (captured by systemd/launchd in daemon mode).
    stream_handler = logging.StreamHandler(
        sys.stderr if not interactive else sys.stdout
    )
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if not interactive:
        try:
            Path(settings.file).parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                settings.file,
                maxBytes=settings.max_size,
                backupCount=5,
            )
        except OSError as e:
            logger.warning(f"Could not open log file {settings.file}: {e}")
            return
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)


def main(config_path: Path | str | None = None) -> int:
    """Runs the sync engine in the foreground until SIGINT or SIGTERM.

    Args:
        config_path (Path | str | None, optional): The configuration file.

    Returns:
        int: The process exit status.
    """
    config = Config.load(config_path)
    setup_logging(interactive=False, settings=config.log)

    registry = StartupRegistry()
    schedulers = setup(config.repos, registry)
    if not schedulers:
        logger.warning("No repositories configured. Nothing to do.")
        return 0

    stop_event = threading.Event()

    def stop_handler(signum: int, _frame: FrameType | None) -> None:
        logger.info(f"Received signal {signum}, shutting down.")
        stop_event.set()

    signal.signal(signal.SIGINT, stop_handler)
    signal.signal(signal.SIGTERM, stop_handler)

    try:
        registry.run()
    except Exception:
        for s in schedulers:
            s.stop()
        raise

    logger.info(f"READY: Keeping {len(schedulers)} repositories in sync.")
    stop_event.wait()

    for s in schedulers:
        s.stop()
    return 0
