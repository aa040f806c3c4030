import argparse
import datetime
import logging
import subprocess
import sys
from pathlib import Path

from rich.console import Console
from rich.table import Table

from . import daemon
from .capture import NoteCapture
from .config import Config
from .constants import APP_NAME, CONFIG_FILE, LOG_FILE
from .git_wrapper import GitError, GitRepo
from .notes import MessageReceived, resolve_timezone
from .report import acknowledgment, describe
from .sync import RepositoryHandle, SyncStatus

logger = logging.getLogger(APP_NAME)
console = Console()


def _require(config: Config, *keys: str) -> None:
    """Exits with status 1 if any of the given required settings are missing."""
    missing = [k for k in config.missing() if not keys or k in keys]
    if missing:
        console.print(
            f"[bold red]ERROR:[/bold red] Missing settings: {', '.join(missing)}"
        )
        console.print(f"   Set them in [cyan]{CONFIG_FILE}[/cyan], .env or the environment.")
        sys.exit(1)


def run_bot(config: Config) -> None:
    """Starts the long-running bot."""
    _require(config)
    daemon.main(config)


def init_repo(config: Config) -> None:
    """Clones or reconciles the vault once and reports the result."""
    _require(config, "repo.remote_url")
    daemon.setup_logging(interactive=True)
    manager = daemon.build_manager(config)

    with console.status("Preparing vault working copy...", spinner="dots"):
        ready = manager.ensure_ready()

    if ready:
        console.print(
            f"[bold green]✔ Vault ready at[/bold green] {manager.handle.path}"
        )
    else:
        console.print(
            "[bold yellow]WARNING:[/bold yellow] Vault not synced; "
            "see the log output above."
        )


def capture_note(config: Config, text: str, author: str) -> SyncStatus:
    """Captures a note from the command line and publishes it."""
    _require(config, "repo.remote_url")
    daemon.setup_logging(interactive=True)
    manager = daemon.build_manager(config)
    capture = NoteCapture(manager, resolve_timezone(config.notes.timezone))
    event = MessageReceived(
        author=author,
        channel_id=0,
        content=text,
        created_at=datetime.datetime.now(datetime.timezone.utc),
        channel_name="cli",
    )

    with console.status("Saving note...", spinner="dots"):
        result = capture.handle(event)

    style = "green" if result.ok else "yellow"
    console.print(
        f"{acknowledgment(result.status)} [bold {style}]{describe(result.status)}"
        f"[/bold {style}] {result.path or ''}"
    )
    return result.status


def show_status(config: Config) -> None:
    """Displays the working copy location, remote and drift."""
    handle = RepositoryHandle.from_config(config)

    table = Table(title="Memo Bot Vault", show_header=False)
    table.add_column("Key", style="bold cyan")
    table.add_column("Value")
    table.add_row("Path", str(handle.path))
    table.add_row("Remote", f"{handle.remote_name} → {handle.display_url or '-'}")
    table.add_row("Inbox", handle.inbox_dir)

    try:
        repo = GitRepo(handle.path)
    except ValueError:
        table.add_row("State", "[red]Not cloned[/red]")
        console.print(table)
        return

    try:
        table.add_row("Branch", repo.current_branch() or "(detached)")
        table.add_row("Last Commit", repo.get_last_commit_time())
        drift = repo.status_porcelain()
    except GitError as e:
        table.add_row("State", f"[red]{e}[/red]")
        console.print(table)
        return

    if drift:
        table.add_row("Drift", f"[yellow]{len(drift)} uncommitted change(s)[/yellow]")
    else:
        table.add_row("Drift", "[green]Clean[/green]")
    console.print(table)


def show_config(config: Config) -> None:
    """Prints the effective configuration with tokens masked."""
    for section, values in config.as_dict().items():
        console.print(f"[bold cyan]\\[{section}][/bold cyan]")
        for key, value in values.items():
            console.print(f"  {key} = {value!r}")


def tail_log() -> None:
    """Follows the daemon log file in real-time."""
    if not LOG_FILE.exists():
        console.print(f"[red]No log file found yet at {LOG_FILE}.[/red]")
        return

    console.print(f"Tailing [bold cyan]{LOG_FILE}[/bold cyan] (Ctrl+C to stop)...")
    try:
        subprocess.run(["tail", "-n", "1000", "-f", str(LOG_FILE)])
    except KeyboardInterrupt:
        console.print("\nStopped.", style="dim")


def main(argv: list[str] | None = None) -> None:
    """Command line entry point."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Save Discord messages as notes in a git-synced vault.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"TOML config file (default: {CONFIG_FILE})",
    )
    subparsers = parser.add_subparsers(dest="command", title="Commands")

    subparsers.add_parser("run", help="Start the bot (default)")
    subparsers.add_parser("init", help="Clone or reconcile the vault once")
    note_parser = subparsers.add_parser("note", help="Save and publish a note")
    note_parser.add_argument("text", help="Note body")
    note_parser.add_argument("--author", default="cli", help="Sender name")
    subparsers.add_parser("status", help="Show vault working copy status")
    subparsers.add_parser("log", help="Tail the bot log file")
    config_parser = subparsers.add_parser("config", help="Show effective config")
    config_parser.add_argument(
        "--list", "-l", action="store_true", help="List all settings (default)"
    )

    args = parser.parse_args(argv)
    config = Config.load(args.config)

    if args.command == "init":
        init_repo(config)
        return
    elif args.command == "note":
        status = capture_note(config, args.text, args.author)
        if status is SyncStatus.FATAL_LOCAL_ERROR:
            sys.exit(1)
        return
    elif args.command == "status":
        show_status(config)
        return
    elif args.command == "log":
        tail_log()
        return
    elif args.command == "config":
        show_config(config)
        return

    # Default Action
    run_bot(config)


if __name__ == "__main__":
    main()
