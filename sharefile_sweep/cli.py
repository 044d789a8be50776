"""CLI interface for sharefile-sweep using Click."""

import sys
from typing import Optional

import click

from . import __version__
from .checkpoint import CheckpointStore
from .config import DEFAULT_CONFIG_PATH, DEFAULT_WORK_DIR, build_client, load_settings
from .errors import SweepError
from .executor import ConfirmationPolicy
from .log import configure_logging
from .models import DeletionRequest
from .orchestrator import run_sweep
from .report import print_progress, print_summary


def _colorize(text: str, color: str) -> str:
    """Colorize text using ANSI codes when stderr is a terminal."""
    colors = {
        "red": "\033[91m",
        "yellow": "\033[93m",
        "reset": "\033[0m",
    }
    if not sys.stderr.isatty():
        return text
    return f"{colors.get(color, '')}{text}{colors['reset']}"


def _print_error(message: str):
    """Print a fatal error to stderr."""
    click.echo(_colorize(f"❌ {message}", "red"), err=True)


def _confirm_deletion(request: DeletionRequest) -> bool:
    """Ask the operator before each deletion."""
    return click.confirm(f"Proceed to {request.describe()}?", default=False, err=True)


def _choose_policy(dry_run: bool, yes: bool) -> ConfirmationPolicy:
    if dry_run:
        return ConfirmationPolicy.dry_run()
    if yes:
        return ConfirmationPolicy.auto_confirm()
    return ConfirmationPolicy.prompt(_confirm_deletion)


@click.command()
@click.option("--admin", "admin", required=True,
              help="Id or email of the user who inherits items and groups")
@click.option("--config", "config_path", type=click.Path(dir_okay=False),
              default=str(DEFAULT_CONFIG_PATH), show_default=True,
              help="JSON config file with connection settings")
@click.option("--work-dir", type=click.Path(file_okay=False),
              default=str(DEFAULT_WORK_DIR), show_default=True,
              help="Directory holding the employee/client checkpoint CSVs")
@click.option("--dry-run", is_flag=True, help="Report what would be deleted, delete nothing")
@click.option("--yes", "-y", is_flag=True, help="Delete without asking per user")
@click.option("--resume", is_flag=True,
              help="Skip discovery and delete from the existing checkpoints")
@click.option("--workers", type=click.IntRange(1, 16), default=None,
              help="Concurrent user detail fetches during discovery")
@click.option("--json", "json_output", is_flag=True, help="Print the summary as JSON")
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
@click.version_option(version=__version__)
def main(admin: str, config_path: str, work_dir: str, dry_run: bool, yes: bool,
         resume: bool, workers: Optional[int], json_output: bool, verbose: bool):
    """Delete disabled ShareFile Employee and Client users.

    Disabled users are checkpointed to CSV first, then deleted with their
    items and group memberships reassigned to the --admin user.

    Examples:

    \b
      sharefile-sweep --admin it-admin@example.com --dry-run
      sharefile-sweep --admin it-admin@example.com --yes --json
      sharefile-sweep --admin a1b2c3d4-0000 --resume
    """
    if not admin.strip():
        _print_error("--admin must not be empty")
        sys.exit(1)

    try:
        settings = load_settings(
            config_path,
            workers=workers,
            log_level="DEBUG" if verbose else None,
        )
    except SweepError as e:
        _print_error(str(e))
        sys.exit(1)

    configure_logging(settings.log_level, json_logs=settings.json_logs)

    show_progress = not json_output and sys.stderr.isatty()
    try:
        client = build_client(settings)
        summary = run_sweep(
            client,
            admin,
            CheckpointStore(work_dir),
            _choose_policy(dry_run, yes),
            workers=settings.workers,
            resume=resume,
            observer=print_progress if show_progress else None,
        )
    except SweepError as e:
        _print_error(str(e))
        sys.exit(1)

    # Per-user failures and aborted partitions are reported, not fatal
    print_summary(summary, json_output=json_output, version=__version__)
    sys.exit(0)


if __name__ == "__main__":
    main()
