import logging
import os
import re
import shlex
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from . import system
from .constants import (
    APP_NAME,
    CONFIG_ENV_VAR,
    CONFIG_FILE,
    DEFAULT_BRANCH,
    DEFAULT_INTERVAL,
    LOG_FILE,
)
from .errors import ConfigurationError
from .repo import Repo
from .urls import parse_url

logger = logging.getLogger(APP_NAME)

REPO_KEYS = {
    "url",
    "repo",
    "path",
    "branch",
    "key",
    "interval",
    "clone_args",
    "pull_args",
}
"""set[str]: Keys accepted inside a [[repo]] table. 'repo' is an alias of 'url'."""


def parse_size(value: int | str) -> int:
    """Converts human-readable size strings (e.g., '100MB') to bytes."""
    if isinstance(value, int):
        return value
    match = re.match(r"^(\d+(?:\.\d+)?)\s*([kmg]b?)$", str(value).strip().lower())
    if not match:
        raise ValueError(f"Invalid size format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {
        "k": 1024,
        "kb": 1024,
        "m": 1024**2,
        "mb": 1024**2,
        "g": 1024**3,
        "gb": 1024**3,
    }
    return int(num * multiplier[unit])


def parse_time(value: int | str) -> int:
    """Converts human-readable time strings (e.g., '1hr', '30m') to seconds.

    Bare digits count as seconds. Booleans are rejected.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid time format '{value}'")
    if isinstance(value, int):
        return value
    if str(value).strip().isdigit():
        return int(str(value).strip())
    match = re.match(
        r"^(\d+(?:\.\d+)?)\s*(s|sec|m|min|h|hr)s?$", str(value).strip().lower()
    )
    if not match:
        raise ValueError(f"Invalid time format '{value}'")
    num, unit = float(match.group(1)), match.group(2)
    multiplier = {"s": 1, "sec": 1, "m": 60, "min": 60, "h": 3600, "hr": 3600}
    return int(num * multiplier[unit])


def resolve_config_path(path: Path | str | None = None) -> Path:
    """Picks the configuration file: explicit argument, environment, default."""
    if path:
        return Path(path).expanduser()
    if env_path := os.environ.get(CONFIG_ENV_VAR):
        return Path(env_path).expanduser()
    return CONFIG_FILE


@dataclass
class LogConfig:
    """Logging settings.

    Attributes:
        file (Path): Log file used in daemon mode.
        max_size (int): Max bytes for the log file before rotation.
        level (str): Minimum level name (e.g. 'INFO', 'DEBUG').
    """

    file: Path = LOG_FILE
    max_size: int = 5 * 1024 * 1024
    level: str = "INFO"


@dataclass
class Config:
    """Global configuration aggregator.

    Attributes:
        root (Path): Base directory for relative repository paths.
        log (LogConfig): Logging settings.
        repos (list[Repo]): Validated repository descriptors.
        source (Path | None): The file this configuration was read from.
    """

    root: Path = field(default_factory=Path.cwd)
    log: LogConfig = field(default_factory=LogConfig)
    repos: list[Repo] = field(default_factory=list)
    source: Path | None = None

    @classmethod
    def load(cls, path: Path | str | None = None, prepare: bool = True) -> "Config":
        """Reads, validates and (optionally) prepares a configuration file.

        Args:
            path (Path | str | None): The TOML file. Defaults to the resolved
                                      configuration path.
            prepare (bool, optional): Whether to prepare each repository's local
                                      directory. Defaults to True.

        Returns:
            Config: The validated configuration.

        Raises:
            ConfigurationError: If the file is missing, is not valid TOML, or
                                declares an unusable repository.
        """
        source = resolve_config_path(path)
        if not source.exists():
            raise ConfigurationError(f"Config file not found: {source}")

        try:
            with open(source, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(f"Config syntax error in {source}: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read {source}: {e}") from e

        return cls.from_dict(data, source=source, prepare=prepare)

    @classmethod
    def from_dict(
        cls, data: dict[str, Any], source: Path | None = None, prepare: bool = True
    ) -> "Config":
        """Builds a configuration from already parsed TOML data."""
        unknown = set(data) - {"root", "log", "repo"}
        if unknown:
            logger.warning(
                f"Unknown config keys: {', '.join(sorted(unknown))}. Ignoring."
            )

        instance = cls(source=source)
        if "root" in data:
            instance.root = Path(str(data["root"])).expanduser().resolve()
        if "log" in data:
            instance.log = cls._update_log(instance.log, data["log"])

        instance.repos = parse_repos(data.get("repo", []), instance.root, prepare=prepare)
        return instance

    @staticmethod
    def _update_log(instance: LogConfig, updates: Any) -> LogConfig:
        """Updates the log settings, warning on invalid keys and values."""
        if not isinstance(updates, dict):
            logger.warning("Config section [log] must be a table. Ignoring.")
            return instance

        valid_keys = instance.__dataclass_fields__.keys()
        invalid_keys = set(updates.keys()) - set(valid_keys)
        if invalid_keys:
            logger.warning(
                f"Unknown config keys in [log]: {', '.join(sorted(invalid_keys))}. Ignoring."
            )

        filtered_updates: dict[str, Any] = {}
        for k, v in updates.items():
            if k not in valid_keys:
                continue
            try:
                if k == "max_size":
                    filtered_updates[k] = parse_size(v)
                elif k == "file":
                    filtered_updates[k] = Path(str(v)).expanduser()
                else:
                    filtered_updates[k] = str(v).upper()
            except ValueError as e:
                logger.warning(f"Config error in [log].{k}: {e}. Falling back to default.")

        return replace(instance, **filtered_updates)


def _resolve_path(value: str | None, root: Path) -> Path:
    if not value:
        return root
    path = Path(value).expanduser()
    if path.is_absolute():
        return Path(os.path.normpath(path))
    return Path(os.path.normpath(root / path))


def _parse_interval(value: Any, label: str) -> int:
    try:
        interval = parse_time(value)
    except (TypeError, ValueError) as e:
        logger.warning(f"Config error in {label}.interval: {e}. Falling back to default.")
        return DEFAULT_INTERVAL
    if interval <= 0:
        logger.warning(
            f"Config error in {label}.interval: must be positive. Falling back to default."
        )
        return DEFAULT_INTERVAL
    return interval


def _parse_args(value: Any, label: str) -> tuple[str, ...]:
    if isinstance(value, str):
        return tuple(shlex.split(value))
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise ConfigurationError(f"{label} must be a string or a list of strings")


def _string(entry: dict[str, Any], key: str, label: str, default: str = "") -> str:
    value = entry.get(key, default)
    if not isinstance(value, str):
        raise ConfigurationError(f"{label}.{key} must be a string")
    return value


def parse_repo(entry: dict[str, Any], root: Path, label: str = "repo") -> Repo:
    """Validates one raw repository declaration into a descriptor.

    Args:
        entry (dict[str, Any]): The raw [[repo]] table.
        root (Path): Base directory for a relative `path` or `key`.
        label (str, optional): Name used in error messages.

    Returns:
        Repo: The validated, not yet prepared, descriptor.

    Raises:
        ConfigurationError: If a key is unknown, the url is missing, a field
                            has the wrong type, or key authentication is not
                            supported on this platform.
        InvalidURL: If the url cannot be parsed.
    """
    if not isinstance(entry, dict):
        raise ConfigurationError(f"{label} must be a table")

    invalid_keys = set(entry) - REPO_KEYS
    if invalid_keys:
        raise ConfigurationError(
            f"Unknown keys in {label}: {', '.join(sorted(invalid_keys))}"
        )

    raw_url = _string(entry, "url", label) or _string(entry, "repo", label)
    if not raw_url:
        raise ConfigurationError(f"{label} has no url")

    key_path = _string(entry, "key", label)
    if key_path:
        if not system.get_system().supports_key_auth():
            raise ConfigurationError("ssh authentication not yet supported on Windows")
        key_path = str(_resolve_path(key_path, root))

    parsed = parse_url(raw_url, bool(key_path))

    return Repo(
        url=parsed.url,
        host=parsed.hostname,
        port=parsed.port,
        path=_resolve_path(_string(entry, "path", label), root),
        branch=_string(entry, "branch", label, DEFAULT_BRANCH) or DEFAULT_BRANCH,
        key_path=key_path,
        interval=_parse_interval(entry.get("interval", DEFAULT_INTERVAL), label),
        clone_args=_parse_args(entry.get("clone_args", []), f"{label}.clone_args"),
        pull_args=_parse_args(entry.get("pull_args", []), f"{label}.pull_args"),
    )


def parse_repos(entries: Any, root: Path, prepare: bool = True) -> list[Repo]:
    """Validates every repository declaration of one configuration.

    Nothing is scheduled here. Any error aborts the whole configuration, so no
    repository starts when one of its siblings is broken.

    Args:
        entries (Any): The raw list of [[repo]] tables.
        root (Path): Base directory for relative paths.
        prepare (bool, optional): Whether to prepare each local directory.

    Returns:
        list[Repo]: The descriptors, in declaration order.

    Raises:
        ConfigurationError: If any declaration is invalid or two share a path.
    """
    if not isinstance(entries, list):
        raise ConfigurationError("'repo' must be an array of tables ([[repo]])")

    repos: list[Repo] = []
    seen: dict[Path, str] = {}
    for i, entry in enumerate(entries, start=1):
        label = f"repo #{i}"
        repo = parse_repo(entry, root, label)
        if repo.path in seen:
            raise ConfigurationError(
                f"{label} clones into {repo.path}, already used by {seen[repo.path]}"
            )
        seen[repo.path] = label
        repos.append(repo)

    if prepare:
        for repo in repos:
            repo.prepare()
    return repos
