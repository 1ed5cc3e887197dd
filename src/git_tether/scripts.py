"""Helper shell scripts for key-authenticated SSH remotes.

Two scripts are generated per sync attempt. The git wrapper points GIT_SSH at
a throwaway ssh command that carries the repository key; the known-hosts
script seeds ``~/.ssh/known_hosts`` with the remote's host keys and then calls
the wrapper, so a host that was never seen before is trusted without an
interactive prompt.
"""

import logging
import os
import shlex
import tempfile
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from . import system
from .constants import APP_NAME, KEYSCAN_TYPES, SCRIPT_PREFIX
from .errors import ScriptPreparationFailed
from .repo import Repo

logger = logging.getLogger(APP_NAME)


def git_wrapper_script(tmp_dir: str, shell: str) -> str:
    """Renders the git wrapper that can specify an ssh key file.

    Usage of the rendered script: ``git.sh -i ssh-key-file git-command``.
    The generated ssh sub-wrapper is removed by an exit trap.

    Args:
        tmp_dir (str): Directory holding the ssh sub-wrapper.
        shell (str): Interpreter named in the sub-wrapper's shebang.

    Returns:
        str: The script content.
    """
    wrapper = f"{shlex.quote(tmp_dir.rstrip('/') or '/')}/.git_ssh.$$"
    return f"""#!/bin/sh

if [ $# -eq 0 ]; then
    echo "Git wrapper script that can specify an ssh-key file
Usage:
    git.sh -i ssh-key-file git-command
    " >&2
    exit 1
fi

GIT_SSH_WRAPPER={wrapper}

# remove the ssh sub-wrapper on exit
trap 'rm -f "$GIT_SSH_WRAPPER"' 0

if [ "$1" = "-i" ]; then
    # the key travels in the environment, never inside the sub-wrapper's source
    GIT_TETHER_SSH_KEY=$2; shift; shift
    export GIT_TETHER_SSH_KEY
    printf '#!/usr/bin/env %s\\nexec ssh -i "$GIT_TETHER_SSH_KEY" -o BatchMode=yes "$@"\\n' \\
        {shlex.quote(shell)} > "$GIT_SSH_WRAPPER"
    chmod +x "$GIT_SSH_WRAPPER"
    GIT_SSH=$GIT_SSH_WRAPPER
    export GIT_SSH
fi

# in case the git command is repeated
[ "$1" = "git" ] && shift

git "$@"
"""


def known_hosts_script(
    host: str,
    git_ssh_path: Path | str,
    key_path: str,
    params: Sequence[str],
    port: int | None = None,
) -> str:
    """Renders the script that trusts a host and then runs git through the wrapper.

    New host keys are staged in a private temporary file and only lines missing
    from ``known_hosts`` are appended, so concurrent runs against the same
    store at worst append a harmless duplicate.

    Args:
        host (str): The remote host to scan.
        git_ssh_path (Path | str): Path of the rendered git wrapper script.
        key_path (str): Private key handed to the wrapper.
        params (Sequence[str]): The git command and its arguments.
        port (int | None, optional): Non-default ssh port of the host.

    Returns:
        str: The script content.
    """
    port_opt = f"-p {port} " if port else ""
    key_types = " ".join(KEYSCAN_TYPES)
    git_params = " ".join(shlex.quote(p) for p in params)
    return f"""#!/bin/sh

mkdir -p ~/.ssh
touch ~/.ssh/known_hosts
STAGING=$(mktemp) || exit 1
trap 'rm -f "$STAGING"' 0

for key_type in {key_types}; do
    ssh-keyscan {port_opt}-t "$key_type" {shlex.quote(host)} 2>/dev/null
done | sort -u > "$STAGING"

while read -r line; do
    [ -n "$line" ] || continue
    grep -qxF -- "$line" ~/.ssh/known_hosts || echo "$line" >> ~/.ssh/known_hosts
done < "$STAGING"

{shlex.quote(str(git_ssh_path))} -i {shlex.quote(key_path)} {git_params}
"""


def write_script_file(content: str, tmp_dir: str | None = None) -> Path:
    """Writes content to a fresh temporary file and makes it executable.

    The file is closed before returning so it can be executed right away.

    Args:
        content (str): The script content.
        tmp_dir (str | None, optional): Target directory. Defaults to the
                                        system temporary directory.

    Returns:
        Path: The path of the executable script.

    Raises:
        ScriptPreparationFailed: If the file cannot be created, written or chmod-ed.
    """
    try:
        fd, name = tempfile.mkstemp(prefix=SCRIPT_PREFIX, suffix=".sh", dir=tmp_dir)
    except OSError as e:
        raise ScriptPreparationFailed(f"Could not create script file: {e}") from e

    path = Path(name)
    try:
        with os.fdopen(fd, "w") as f:
            f.write(content)
        os.chmod(path, 0o755)
    except OSError as e:
        path.unlink(missing_ok=True)
        raise ScriptPreparationFailed(f"Could not prepare script {path}: {e}") from e
    return path


@contextmanager
def bootstrap(
    repo: Repo, params: Sequence[str], tmp_dir: str | None = None
) -> Iterator[Path]:
    """Context manager that prepares both helper scripts for one sync attempt.

    Args:
        repo (Repo): The key-authenticated repository.
        params (Sequence[str]): The git command and its arguments.
        tmp_dir (str | None, optional): Directory for the scripts. Defaults to
                                        the platform temporary directory.

    Yields:
        Path: The known-hosts script, ready to execute.
    """
    strategy = system.get_system()
    tmp_dir = tmp_dir or strategy.temp_dir()
    created: list[Path] = []
    try:
        git_ssh = write_script_file(git_wrapper_script(tmp_dir, strategy.shell()), tmp_dir)
        created.append(git_ssh)

        script = write_script_file(
            known_hosts_script(repo.host, git_ssh, repo.key_path, params, repo.port),
            tmp_dir,
        )
        created.append(script)
        logger.debug(f"Prepared ssh helper scripts for {repo.name}: {git_ssh}, {script}")
        yield script
    finally:
        for path in created:
            path.unlink(missing_ok=True)
