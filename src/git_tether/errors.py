"""Exception hierarchy for Git Tether.

Configuration errors are fatal at startup. Sync errors belong to a single
attempt of a single repository and are retried by the next scheduled tick.
"""


class GitTetherError(Exception):
    """Base class for every error raised by this package."""


class ConfigurationError(GitTetherError):
    """A repository declaration is malformed or cannot be used on this host."""


class InvalidURL(ConfigurationError):
    """The repository address could not be parsed."""


class InvalidURLScheme(InvalidURL):
    """The repository address names a scheme other than https, http or ssh.

    Attributes:
        scheme (str): The offending scheme, as written by the user.
    """

    def __init__(self, scheme: str):
        self.scheme = scheme
        super().__init__(
            f"Invalid url scheme '{scheme}'. If url contains port, scheme is required"
        )


class SyncError(GitTetherError):
    """Base class for failures of a single sync attempt."""


class ScriptPreparationFailed(SyncError):
    """A temporary helper script could not be created, written or chmod-ed."""


class WorkTreeUnavailable(SyncError):
    """The directory the clone runs in could not be created."""


class ProcessSpawnFailed(SyncError):
    """The external process could not be started."""


class SyncFailed(SyncError):
    """The external process exited with a non-zero status.

    Attributes:
        returncode (int): The exit status of the process.
        output (str): Combined stdout and stderr of the process.
    """

    def __init__(self, returncode: int, output: str):
        self.returncode = returncode
        self.output = output
        detail = output.strip() or "no output"
        super().__init__(f"exit status {returncode}: {detail}")
