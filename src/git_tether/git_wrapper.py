import logging
import subprocess
from pathlib import Path

from .constants import APP_NAME
from .errors import ProcessSpawnFailed, SyncFailed

logger = logging.getLogger(APP_NAME)


def is_working_tree(path: Path) -> bool:
    """Checks whether a directory already holds a git working tree.

    Args:
        path (Path): The directory to inspect.

    Returns:
        bool: True if the directory contains a `.git` entry.
    """
    return (path / ".git").exists()


def run(
    args: list[str], cwd: Path | None = None, env: dict | None = None
) -> str:
    """Executes an external command and returns its combined output.

    Args:
        args (list[str]): The full command line, executable first.
        cwd (Path | None, optional): The working directory. Defaults to None.
        env (dict | None, optional): Environment variables for the subprocess.
                                     Defaults to the ambient environment.

    Returns:
        str: Combined stdout and stderr of the command.

    Raises:
        ProcessSpawnFailed: If the executable is missing or cannot be started.
        SyncFailed: If the command exits with a non-zero status.
    """
    try:
        res = subprocess.run(
            args,
            cwd=cwd,
            env=env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
        )
    except OSError as e:
        raise ProcessSpawnFailed(f"Could not start {args[0]}: {e}") from e

    if res.returncode != 0:
        raise SyncFailed(res.returncode, res.stdout or "")
    return res.stdout or ""


class GitRepo:
    """A wrapper around the git command-line interface for one local directory.

    Attributes:
        path (Path): The file system path to the working tree.
    """

    def __init__(self, path: Path):
        self.path = path

    def _run(self, args: list[str], env: dict | None = None) -> str:
        """Executes a git command within the working tree."""
        return run(["git", *args], cwd=self.path, env=env).strip()

    def head(self) -> str | None:
        """Resolves HEAD to a full SHA-1 hash.

        Returns:
            str | None: The commit hash, or None if it could not be resolved.
        """
        try:
            return self._run(["rev-parse", "HEAD"]) or None
        except Exception as e:
            logger.debug(f"rev-parse HEAD failed in {self.path}: {e}")
            return None

    def origin_url(self) -> str:
        """Reads the URL of the `origin` remote.

        Returns:
            str: The configured fetch URL.

        Raises:
            SyncFailed: If no origin remote is configured.
        """
        return self._run(["config", "--get", "remote.origin.url"])
