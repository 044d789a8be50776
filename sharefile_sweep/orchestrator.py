"""Orchestrates the discovery -> checkpoint -> resolve -> delete sweep.

``run_sweep()`` resolves the administrator, discovers and checkpoints the
disabled users of each partition, then deletes every checkpointed user with
reassignment to the administrator, and returns a ``RunSummary``.

Failure handling per phase:
- Admin resolution: any failure is fatal; nothing is fetched or deleted.
- Discovery: a directory error aborts that partition only, and its
  checkpoint is not written.  A checkpoint write error is fatal.
- Deletion: each record fails or succeeds on its own.

With ``resume=True`` discovery is skipped and the existing checkpoints are
consumed, which is how an interrupted deletion phase is picked up again.
Already-deleted users then fail with "not found", which is reported but
not fatal.
"""

from typing import Any, Callable, Dict, List, Optional

import structlog

from .admin import resolve_admin
from .checkpoint import CheckpointStore
from .directory import discover_disabled
from .errors import DirectoryError
from .executor import ConfirmationPolicy, execute_batch
from .http_client import DirectoryClient
from .models import (
    PARTITIONS,
    AdminIdentity,
    DeletionOutcome,
    DeletionRequest,
    Partition,
    ProgressEvent,
)

logger = structlog.get_logger(__name__)


class RunSummary:
    """Counters and outcomes of one sweep run.

    Attributes:
        admin:          The resolved reassignment target.
        dry_run:        True if no remote mutation was allowed.
        resumed:        True if discovery was skipped in favour of existing checkpoints.
        discovered:     Disabled users checkpointed (or reloaded) per partition.
        aborted:        Partitions whose discovery failed, with the error text.
        outcomes:       One DeletionOutcome per executed request, in order.
        deletion_phase: Whether the deletion phase was entered at all.
    """

    def __init__(self, admin: AdminIdentity, dry_run: bool = False, resumed: bool = False):
        self.admin = admin
        self.dry_run = dry_run
        self.resumed = resumed
        self.discovered: Dict[Partition, int] = {}
        self.aborted: Dict[Partition, str] = {}
        self.outcomes: List[DeletionOutcome] = []
        self.deletion_phase = False

    @property
    def total_disabled(self) -> int:
        return sum(self.discovered.values())

    def count(self, status: str, partition: Optional[Partition] = None) -> int:
        return sum(
            1 for o in self.outcomes
            if o.status == status and (partition is None or o.partition == partition)
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for JSON output."""
        partitions: Dict[str, Any] = {}
        for partition in PARTITIONS:
            entry: Dict[str, Any] = {
                "disabled": self.discovered.get(partition, 0),
            }
            for status in DeletionOutcome.STATUSES:
                entry[status] = self.count(status, partition)
            if partition in self.aborted:
                entry["aborted"] = self.aborted[partition]
            partitions[partition.value] = entry
        return {
            "admin": self.admin.to_dict(),
            "dry_run": self.dry_run,
            "resumed": self.resumed,
            "deletion_phase": self.deletion_phase,
            "summary": {
                "disabled": self.total_disabled,
                "succeeded": self.count(DeletionOutcome.SUCCEEDED),
                "failed": self.count(DeletionOutcome.FAILED),
                "skipped": self.count(DeletionOutcome.SKIPPED),
                "aborted_partitions": len(self.aborted),
            },
            "partitions": partitions,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


def run_sweep(
    client: DirectoryClient,
    admin_identifier: str,
    store: CheckpointStore,
    policy: ConfirmationPolicy,
    workers: int = 1,
    resume: bool = False,
    observer: Optional[Callable[[ProgressEvent], None]] = None,
) -> RunSummary:
    """Run the full sweep and return its summary.

    Raises:
        AdminNotFound:            the administrator identifier matched nothing.
        DirectoryError:           listing failed while resolving the administrator.
        CheckpointDirectoryError: a checkpoint could not be written.
        CheckpointMissing:        resume mode and a partition was never checkpointed.
        CheckpointCorrupt:        resume mode and a checkpoint could not be parsed.
    """
    # Phase 1: resolve the reassignment target before touching anything else
    admin = resolve_admin(client, admin_identifier)
    summary = RunSummary(admin, dry_run=policy.is_dry_run, resumed=resume)

    # Phase 2: discovery and checkpointing, or reload when resuming
    if resume:
        pending = {partition: store.read(partition) for partition in PARTITIONS}
        for partition, records in pending.items():
            summary.discovered[partition] = len(records)
        logger.info("checkpoints_reloaded",
                    **{p.slug: len(r) for p, r in pending.items()})
    else:
        store.ensure_directory()
        pending = {}
        for partition in PARTITIONS:
            try:
                disabled = discover_disabled(client, partition, workers=workers,
                                             observer=observer)
            except DirectoryError as exc:
                summary.aborted[partition] = str(exc)
                logger.warning("partition_aborted", partition=partition.value,
                               error=str(exc), status_code=exc.status_code)
                continue
            written = store.write(partition, disabled)
            summary.discovered[partition] = len(written)
            pending[partition] = None  # read back below

    # Phase 3: nothing to delete
    if summary.total_disabled == 0:
        logger.info("no_disabled_users", aborted=[p.value for p in summary.aborted])
        return summary

    # Phase 4: deletion, one independent outcome per checkpointed user
    summary.deletion_phase = True
    for partition in PARTITIONS:
        if partition not in pending:
            continue
        records = pending[partition]
        if records is None:
            records = store.read(partition)
        requests = [DeletionRequest(record, admin) for record in records]
        for outcome in execute_batch(client, requests, policy, observer=observer):
            summary.outcomes.append(outcome)

    logger.info(
        "sweep_finished",
        disabled=summary.total_disabled,
        succeeded=summary.count(DeletionOutcome.SUCCEEDED),
        failed=summary.count(DeletionOutcome.FAILED),
        skipped=summary.count(DeletionOutcome.SKIPPED),
        dry_run=summary.dry_run,
    )
    return summary
