import argparse
import sys

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from . import daemon, ops
from .config import Config, resolve_config_path
from .constants import APP_NAME, CONFIG_ENV_VAR
from .errors import ConfigurationError, SyncError
from .repo import SyncState

console = Console()
err_console = Console(stderr=True)

SAMPLE_CONFIG = """\
# Git Tether Configuration

# Base directory for relative repository paths (default: current directory).
# root = "/srv/www"

[log]
# file = "~/.local/state/git-tether/daemon.log"
# max_size = "5MB"
# level = "INFO"

[[repo]]
url = "github.com/example/site.git"
path = "site"
# branch = "master"
# key = "~/.ssh/deploy_key"
# interval = "1h"
# clone_args = ["--depth", "1"]
# pull_args = ["--ff-only"]
"""


def _load(config_path: str | None, prepare: bool = True) -> Config:
    """Loads the configuration, exiting with a readable error on failure."""
    try:
        return Config.load(config_path, prepare=prepare)
    except ConfigurationError as e:
        err_console.print(f"[bold red]CONFIG ERROR:[/bold red] {escape(str(e))}")
        sys.exit(1)


def run_daemon(config_path: str | None) -> None:
    """Runs the engine in the foreground until interrupted."""
    try:
        code = daemon.main(config_path)
    except ConfigurationError as e:
        err_console.print(f"[bold red]CONFIG ERROR:[/bold red] {escape(str(e))}")
        sys.exit(1)
    except SyncError as e:
        err_console.print(f"[bold red]STARTUP FAILED:[/bold red] {escape(str(e))}")
        sys.exit(1)
    sys.exit(code)


def sync_now(config_path: str | None) -> None:
    """Syncs every configured repository once and reports the outcomes."""
    config = _load(config_path)
    daemon.setup_logging(interactive=True, settings=config.log)

    table = Table(title="Sync Results")
    table.add_column("Repository", style="cyan")
    table.add_column("Result")
    table.add_column("Commit", style="dim")

    failed = 0
    for repo in config.repos:
        state = SyncState()
        try:
            with console.status(f"[bold blue]Syncing {repo.name}...[/bold blue]"):
                result = ops.pull(repo, state)
        except SyncError as e:
            failed += 1
            table.add_row(repo.name, f"[red]FAILED[/red] {escape(str(e))}", "-")
            continue
        outcome = "Cloned" if result.cloned else "Updated" if result.changed else "Up to date"
        table.add_row(repo.name, f"[green]{outcome}[/green]", (result.after or "-")[:8])

    console.print(table)
    if failed:
        sys.exit(1)


def check_config(config_path: str | None) -> None:
    """Validates the configuration and lists the resulting repositories."""
    config = _load(config_path, prepare=False)

    table = Table(title=f"Repositories ({config.source})")
    table.add_column("Path", style="cyan")
    table.add_column("URL")
    table.add_column("Branch")
    table.add_column("Auth")
    table.add_column("Interval", justify="right")

    for repo in config.repos:
        auth = f"ssh key {repo.key_path}" if repo.uses_key else "none"
        table.add_row(
            escape(str(repo.path)), escape(repo.url), repo.branch, escape(auth), f"{repo.interval}s"
        )

    console.print(table)
    console.print(f"[bold green]OK:[/bold green] {len(config.repos)} repositories valid.")


def show_config(config_path: str | None) -> None:
    """Prints the resolved configuration path and a sample configuration."""
    path = resolve_config_path(config_path)
    exists = "exists" if path.exists() else "[yellow]missing[/yellow]"
    console.print(f"Config file: [cyan]{path}[/cyan] ({exists})")
    console.print(f"Override with --config or ${CONFIG_ENV_VAR}.\n")
    console.print(Panel(Text(SAMPLE_CONFIG), title="Sample config.toml", expand=False))


def main(argv: list[str] | None = None) -> None:
    """Entry point of the `git-tether` command."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Keep local directories in sync with remote git repositories.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"Path to config.toml (default: ${CONFIG_ENV_VAR} or ~/.config/{APP_NAME})",
    )
    subparsers = parser.add_subparsers(dest="command", title="Commands")
    subparsers.add_parser("run", help="Run the sync daemon in the foreground")
    subparsers.add_parser("now", help="Sync every repository once")
    subparsers.add_parser("check", help="Validate the configuration")
    subparsers.add_parser("config", help="Show config location and a sample")

    args = parser.parse_args(argv)

    if args.command == "run":
        run_daemon(args.config)
    elif args.command == "now":
        sync_now(args.config)
    elif args.command == "check":
        check_config(args.config)
    elif args.command == "config":
        show_config(args.config)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
