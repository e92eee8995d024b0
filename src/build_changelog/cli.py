import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import hook
from .config import Settings, load_config
from .constants import APP_NAME, CONFIG_FILE_NAME, LOG_FILE
from .git_wrapper import GitRepo
from .logs import LogSinkError, close_log, mask_credentials, open_log

console = Console()
err_console = Console(stderr=True)


def run_hook(source: Path, config_path: Path | None, log_file: Path) -> int:
    """Performs one snapshot run.

    Args:
        source (Path): The project directory to snapshot.
        config_path (Path | None): The configuration file, or None for the default.
        log_file (Path): The log file to (re)create.

    Returns:
        int: The process exit status.
    """
    try:
        log = open_log(log_file)
    except LogSinkError as e:
        err_console.print(f"[bold red]FATAL:[/bold red] {escape(str(e))}")
        return 1

    try:
        hook.run(source, log, config_path=config_path)
    except (hook.HookAbort, LogSinkError) as e:
        log.critical(str(e))
        err_console.print(f"[bold red]FATAL:[/bold red] {escape(str(e))}")
        return 1
    finally:
        close_log(log)
    return 0


def show_status(source: Path, config_path: Path | None) -> None:
    """Prints the hook configuration and changelog repository state."""
    # Status is read-only; discard diagnostics rather than truncating the run log.
    quiet = logging.getLogger(f"{APP_NAME}.status")
    if not quiet.handlers:
        quiet.addHandler(logging.NullHandler())
    quiet.propagate = False

    source = source.resolve()
    settings = Settings.load(source, quiet)
    config = load_config(quiet, config_path)
    dest = source / settings.changelog_dir
    repo = GitRepo(dest)

    table = Table(title="build-changelog", show_header=False, box=None)
    table.add_column(style="bold")
    table.add_column()

    if config is None:
        table.add_row(
            "Config:", f"[yellow]{CONFIG_FILE_NAME} missing or invalid[/yellow]"
        )
    else:
        names = f"{config.participant_id} / {config.project}"
        table.add_row("Config:", f"[green]OK[/green] ({escape(names)})")

    if not repo.is_repo():
        table.add_row(
            "Changelog:", f"[yellow]Not initialized[/yellow] ({escape(str(dest))})"
        )
    else:
        table.add_row("Changelog:", escape(str(dest)))
        url = repo.remote_url(settings.remote_name)
        table.add_row(
            "Remote:",
            escape(mask_credentials(url)) if url else "[red]Not configured[/red]",
        )
        last = repo.last_commit()
        table.add_row("Last Commit:", escape(last) if last else "[dim]None[/dim]")

    console.print(table)


def show_log(log_file: Path) -> None:
    """Prints the log of the last run."""
    if not log_file.exists():
        console.print(f"[yellow]No log found at {escape(str(log_file))}.[/yellow]")
        return
    console.print(
        log_file.read_text(encoding="utf-8", errors="replace"),
        end="",
        markup=False,
        highlight=False,
    )


def _option_parsers(
    top_level: bool,
) -> tuple[argparse.ArgumentParser, argparse.ArgumentParser]:
    """Builds the shared option groups.

    Subcommands repeat the options so they may follow the subcommand name, but
    with suppressed defaults, so they never overwrite values given before it.

    Returns:
        tuple[ArgumentParser, ArgumentParser]: The source/config options and
        the log file option.
    """

    def default(value: object) -> object:
        return value if top_level else argparse.SUPPRESS

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--source",
        type=Path,
        default=default(Path.cwd()),
        help="Project directory to snapshot (default: current directory)",
    )
    common.add_argument(
        "--config",
        type=Path,
        default=default(None),
        help=f"Configuration file (default: ./{CONFIG_FILE_NAME})",
    )

    log_opts = argparse.ArgumentParser(add_help=False)
    log_opts.add_argument(
        "--log-file",
        type=Path,
        default=default(LOG_FILE),
        help=f"Log file (default: {LOG_FILE})",
    )
    return common, log_opts


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the build-changelog CLI."""
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Record a snapshot of the project in its changelog repository.",
        parents=list(_option_parsers(top_level=True)),
    )

    common, log_opts = _option_parsers(top_level=False)
    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser(
        "run", parents=[common, log_opts], help="Snapshot, commit and push (default)"
    )
    subparsers.add_parser(
        "status", parents=[common], help="Show configuration and changelog state"
    )
    subparsers.add_parser("log", parents=[log_opts], help="Show the last run's log")

    args = parser.parse_args(argv)

    if args.command == "status":
        show_status(args.source, args.config)
        return
    elif args.command == "log":
        show_log(args.log_file)
        return

    # Default Action ('run', also when no subcommand is given)
    sys.exit(run_hook(args.source, args.config, args.log_file))


if __name__ == "__main__":
    main()
