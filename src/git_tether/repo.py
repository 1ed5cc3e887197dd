import datetime
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .constants import APP_NAME, DEFAULT_BRANCH, DEFAULT_INTERVAL
from .errors import ConfigurationError
from .git_wrapper import GitRepo, is_working_tree

logger = logging.getLogger(APP_NAME)


@dataclass(frozen=True)
class Repo:
    """A validated sync target.

    Built once from configuration and never modified afterwards. Two
    descriptors are the same target when they share a local path.

    Attributes:
        url (str): Scheme-qualified remote address.
        host (str): Hostname portion of the url.
        path (Path): Absolute directory the repository is cloned into.
        branch (str): Branch to clone and pull.
        key_path (str): Private key file; empty for unauthenticated remotes.
        interval (float): Seconds between two sync attempts.
        clone_args (tuple[str, ...]): Extra arguments for `git clone`.
        pull_args (tuple[str, ...]): Extra arguments for `git pull`.
        port (int | None): Explicit port of the remote, if any.
    """

    url: str
    host: str
    path: Path
    branch: str = DEFAULT_BRANCH
    key_path: str = ""
    interval: float = DEFAULT_INTERVAL
    clone_args: tuple[str, ...] = ()
    pull_args: tuple[str, ...] = ()
    port: int | None = field(default=None, compare=False)

    @property
    def name(self) -> str:
        return self.path.name or str(self.path)

    @property
    def uses_key(self) -> bool:
        return bool(self.key_path)

    def prepare(self) -> None:
        """Makes sure the local path can receive a clone or a pull.

        A missing or empty directory is created. An existing working tree is
        accepted only when its origin is this repository.

        Raises:
            ConfigurationError: If the path holds another repository or
                                unrelated files.
        """
        if not self.path.exists() or (
            self.path.is_dir() and not any(self.path.iterdir())
        ):
            try:
                self.path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigurationError(f"Cannot create {self.path}: {e}") from e
            return

        if not self.path.is_dir():
            raise ConfigurationError(f"Cannot git clone into {self.path}, not a directory")

        if not is_working_tree(self.path):
            raise ConfigurationError(
                f"Cannot git clone into {self.path}, directory not empty"
            )

        try:
            origin = GitRepo(self.path).origin_url()
        except Exception as e:
            raise ConfigurationError(
                f"Cannot retrieve repo url for {self.path}: {e}"
            ) from e

        if _strip_git(origin) != _strip_git(self.url):
            raise ConfigurationError(f"Another git repo '{origin}' exists at {self.path}")

        logger.debug(f"Reusing existing clone of {self.url} at {self.path}")


def _strip_git(url: str) -> str:
    return url.removesuffix(".git")


@dataclass
class SyncState:
    """Outcome of the most recent sync attempt of one repository.

    Attributes:
        last_attempt (datetime.datetime | None): When the last attempt started (UTC).
        last_success (bool | None): Whether it succeeded; None before any attempt.
        last_error (str | None): Error detail of a failed attempt.
        last_commit (str | None): HEAD after the last successful attempt.
        runs (int): Number of attempts so far.
    """

    last_attempt: datetime.datetime | None = None
    last_success: bool | None = None
    last_error: str | None = None
    last_commit: str | None = None
    runs: int = 0
