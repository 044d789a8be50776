"""Formats sweep summaries as colored terminal output or structured JSON.

Two output modes are supported:

- **Terminal** — ANSI-colored output grouped by partition, listing each
  deletion outcome, followed by a totals line and a verdict.
- **JSON** — Machine-readable output with ``summary``, ``partitions`` and
  ``outcomes`` keys, suitable for scheduled runs and log shipping.

Progress events are rendered on stderr so they never mix with the report.
"""

import json
import sys
from typing import Dict, List

from .models import PARTITIONS, DeletionOutcome, ProgressEvent
from .orchestrator import RunSummary


def _colorize(text: str, color: str) -> str:
    """Apply ANSI color codes.  Returns plain text when stdout is not a TTY."""
    colors = {
        "red": "\033[91m",
        "green": "\033[92m",
        "yellow": "\033[93m",
        "bold": "\033[1m",
        "dim": "\033[2m",
        "reset": "\033[0m",
    }
    if not sys.stdout.isatty():
        return text
    return f"{colors.get(color, '')}{text}{colors['reset']}"


# Maps DeletionOutcome status to (display label, ANSI color)
_STATUS_SYMBOLS = {
    DeletionOutcome.SUCCEEDED: ("DEL ", "green"),
    DeletionOutcome.FAILED: ("FAIL", "red"),
    DeletionOutcome.SKIPPED: ("SKIP", "dim"),
}


def print_progress(event: ProgressEvent):
    """Write a one-line progress update to stderr."""
    verb = "Checking" if event.phase == ProgressEvent.DISCOVER else "Deleting"
    end = "\n" if event.index == event.total else "\r"
    sys.stderr.write(f"  {verb} {event.partition.value} users {event.index}/{event.total}{end}")
    sys.stderr.flush()


def print_summary(summary: RunSummary, json_output: bool = False, version: str = ""):
    """Print the run summary in terminal or JSON format."""
    if json_output:
        _print_json(summary, version=version)
    else:
        _print_terminal(summary, version=version)


def _group_by_partition(outcomes: List[DeletionOutcome]) -> Dict[str, List[DeletionOutcome]]:
    grouped: Dict[str, List[DeletionOutcome]] = {}
    for outcome in outcomes:
        grouped.setdefault(outcome.partition.value, []).append(outcome)
    return grouped


def _print_terminal(summary: RunSummary, version: str = ""):
    """Render the summary as ANSI-colored terminal output."""
    print()
    print(_colorize("ShareFile Disabled User Sweep", "bold"))
    print(_colorize("=" * 50, "dim"))
    meta_parts = []
    if version:
        meta_parts.append(f"sharefile-sweep {version}")
    meta_parts.append("mode: dry run" if summary.dry_run else "mode: live")
    if summary.resumed:
        meta_parts.append("resumed from checkpoints")
    print(_colorize("  " + "  |  ".join(meta_parts), "dim"))
    print(f"  Reassign to: {summary.admin.email or summary.admin.id} ({summary.admin.id})")

    grouped = _group_by_partition(summary.outcomes)
    for partition in PARTITIONS:
        print()
        header = f"  {partition.value}: {summary.discovered.get(partition, 0)} disabled"
        print(_colorize(header, "bold"))
        print(_colorize("  " + "-" * 40, "dim"))
        if partition in summary.aborted:
            print(f"  [{_colorize('ABRT', 'red')}] discovery aborted, checkpoint not written")
            print(f"         {_colorize(summary.aborted[partition], 'dim')}")
            continue
        for outcome in grouped.get(partition.value, []):
            symbol, color = _STATUS_SYMBOLS.get(outcome.status, ("??? ", "dim"))
            email = outcome.request.record.email
            label = f"{outcome.request.user_id} <{email}>" if email else outcome.request.user_id
            print(f"  [{_colorize(symbol, color)}] {label}")
            if outcome.reason:
                print(f"         {_colorize(outcome.reason, 'dim')}")

    succeeded = summary.count(DeletionOutcome.SUCCEEDED)
    failed = summary.count(DeletionOutcome.FAILED)
    skipped = summary.count(DeletionOutcome.SKIPPED)

    print()
    print(_colorize("=" * 50, "dim"))
    parts = [f"{summary.total_disabled} disabled"]
    if succeeded:
        parts.append(_colorize(f"{succeeded} deleted", "green"))
    if failed:
        parts.append(_colorize(f"{failed} failed", "red"))
    if skipped:
        parts.append(_colorize(f"{skipped} skipped", "dim"))
    if summary.aborted:
        parts.append(_colorize(f"{len(summary.aborted)} partition(s) aborted", "red"))
    print("  " + ", ".join(parts))

    print()
    if not summary.deletion_phase:
        print(_colorize("  Result: No disabled users to delete.", "bold"))
    elif summary.dry_run:
        print(_colorize("  Result: Dry run, nothing was deleted.", "bold"))
    elif summary.aborted:
        # --resume would replay an aborted partition's older checkpoint
        print(_colorize(
            f"  Result: {len(summary.aborted)} partition(s) aborted, {failed} deletion(s) "
            "failed; re-run the full sweep, not --resume.", "dim",
        ))
    elif failed:
        print(_colorize(
            f"  Result: {failed} deletion(s) failed; re-run with --resume to retry.", "dim",
        ))
    else:
        print(_colorize("  Result: All confirmed deletions succeeded.", "bold"))
    print()


def _print_json(summary: RunSummary, version: str = ""):
    """Render the summary as structured JSON."""
    output = {"sharefile_sweep_version": version}
    output.update(summary.to_dict())
    print(json.dumps(output, indent=2))
