"""Git Tether: keep local directories in sync with remote git repositories.

This package provides the sync engine (url validation, ssh trust bootstrap,
clone-or-pull executor and per-repository scheduler) together with the
configuration loader and the command-line host that runs it.
"""

from . import (
    cli,
    config,
    constants,
    daemon,
    errors,
    git_wrapper,
    hooks,
    ops,
    repo,
    scripts,
    system,
    urls,
)

__all__ = [
    "cli",
    "config",
    "constants",
    "daemon",
    "errors",
    "git_wrapper",
    "hooks",
    "ops",
    "repo",
    "scripts",
    "system",
    "urls",
]
