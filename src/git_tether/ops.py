import datetime
import logging
from dataclasses import dataclass
from pathlib import Path

from . import git_wrapper, scripts
from .constants import APP_NAME
from .errors import WorkTreeUnavailable
from .git_wrapper import GitRepo
from .repo import Repo, SyncState

logger = logging.getLogger(APP_NAME)


@dataclass
class SyncResult:
    """Summary of one successful sync attempt.

    Attributes:
        cloned (bool): True if the attempt was the initial clone.
        before (str | None): HEAD before the attempt.
        after (str | None): HEAD after the attempt.
        output (str): Combined output of the git process.
    """

    cloned: bool
    before: str | None
    after: str | None
    output: str

    @property
    def changed(self) -> bool:
        return self.cloned or self.before != self.after


def build_command(repo: Repo, clone: bool) -> tuple[list[str], Path]:
    """Constructs the git arguments and working directory for one attempt.

    Args:
        repo (Repo): The repository to sync.
        clone (bool): Whether to clone instead of pull.

    Returns:
        tuple[list[str], Path]: The git arguments (without the `git` executable)
        and the directory to run them in.
    """
    if clone:
        params = ["clone", "-b", repo.branch, *repo.clone_args, repo.url, str(repo.path)]
        return params, repo.path.parent
    params = ["pull", *repo.pull_args, "origin", repo.branch]
    return params, repo.path


def _ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WorkTreeUnavailable(f"Cannot create {path}: {e}") from e


def _execute(repo: Repo, params: list[str], cwd: Path) -> str:
    """Runs git directly, or through the ssh helper scripts when a key is set."""
    if not repo.uses_key:
        return git_wrapper.run(["git", *params], cwd=cwd)

    with scripts.bootstrap(repo, params) as script:
        return git_wrapper.run([str(script)], cwd=cwd)


def pull(repo: Repo, state: SyncState | None = None) -> SyncResult:
    """Performs one clone-or-pull cycle for a repository.

    The first attempt against an empty path clones; every later attempt pulls.
    Errors are not retried here, the next scheduled tick is the retry.

    Args:
        repo (Repo): The repository to sync.
        state (SyncState | None, optional): Updated with the outcome, whether
                                            the attempt succeeds or fails.

    Returns:
        SyncResult: What the attempt did.

    Raises:
        WorkTreeUnavailable: If the directory to clone in cannot be created.
        ScriptPreparationFailed: If the ssh helper scripts cannot be written.
        ProcessSpawnFailed: If git (or the helper script) cannot be started.
        SyncFailed: If git exits with a non-zero status.
    """
    started = datetime.datetime.now(datetime.timezone.utc)
    clone = not git_wrapper.is_working_tree(repo.path)
    local = GitRepo(repo.path)
    before = None if clone else local.head()
    params, cwd = build_command(repo, clone)

    error: Exception | None = None
    result: SyncResult | None = None
    try:
        if clone:
            # git clone refuses an existing, non-empty target but accepts an empty one.
            _ensure_dir(cwd)
        output = _execute(repo, params, cwd)
        result = SyncResult(cloned=clone, before=before, after=local.head(), output=output)
    except Exception as e:
        error = e
        raise
    finally:
        if state is not None:
            state.last_attempt = started
            state.runs += 1
            state.last_success = error is None
            state.last_error = str(error) if error else None
            if result is not None:
                state.last_commit = result.after

    if result.cloned:
        logger.info(f"CLONED {repo.name}: {repo.url} ({repo.branch}) at {_short(result.after)}")
    elif result.changed:
        logger.info(
            f"UPDATED {repo.name}: {_short(result.before)} -> {_short(result.after)}"
        )
    else:
        logger.info(f"UP TO DATE {repo.name}: {_short(result.after)}")
    return result


def _short(sha: str | None) -> str:
    return sha[:8] if sha else "unknown"
