"""Guarded delete-with-reassignment of checkpointed users.

Each request is gated by a ``ConfirmationPolicy`` and executed in isolation:
a failed delete is classified into a FAILED outcome and the batch moves on
to the next record.  Disabled status is not re-checked here; deletion acts
on the checkpoint as it was recorded.
"""

from typing import Callable, Iterable, Iterator, Optional

import structlog

from .errors import DirectoryError
from .http_client import DirectoryClient
from .models import DeletionOutcome, DeletionRequest, ProgressEvent

logger = structlog.get_logger(__name__)

ConfirmCallback = Callable[[DeletionRequest], bool]


class ConfirmationPolicy:
    """How each deletion is gated.

    - ``DRY_RUN``: never mutate; every request is SKIPPED with the action
      it would have taken as the reason.
    - ``AUTO_CONFIRM``: delete without asking (batch mode).
    - ``PROMPT``: call ``confirm(request)`` once per record; False skips it.
    """

    DRY_RUN = "dry-run"
    AUTO_CONFIRM = "auto-confirm"
    PROMPT = "prompt"

    def __init__(self, mode: str, confirm: Optional[ConfirmCallback] = None):
        if mode not in (self.DRY_RUN, self.AUTO_CONFIRM, self.PROMPT):
            raise ValueError(f"Unknown confirmation mode: {mode}")
        if mode == self.PROMPT and confirm is None:
            raise ValueError("PROMPT mode requires a confirm callback")
        self.mode = mode
        self.confirm = confirm

    @classmethod
    def dry_run(cls) -> "ConfirmationPolicy":
        return cls(cls.DRY_RUN)

    @classmethod
    def auto_confirm(cls) -> "ConfirmationPolicy":
        return cls(cls.AUTO_CONFIRM)

    @classmethod
    def prompt(cls, confirm: ConfirmCallback) -> "ConfirmationPolicy":
        return cls(cls.PROMPT, confirm)

    @property
    def is_dry_run(self) -> bool:
        return self.mode == self.DRY_RUN

    def allows(self, request: DeletionRequest) -> bool:
        if self.mode == self.AUTO_CONFIRM:
            return True
        return bool(self.confirm(request))


def classify_failure(exc: DirectoryError) -> str:
    """Turn a directory error into a short, stable failure reason."""
    if exc.status_code is None:
        return f"transport error: {exc}"
    if exc.status_code == 404:
        return f"not found (already deleted?): {exc}"
    return f"rejected (HTTP {exc.status_code}): {exc}"


def execute(
    client: DirectoryClient,
    request: DeletionRequest,
    policy: ConfirmationPolicy,
) -> DeletionOutcome:
    """Execute (or simulate) one deletion and return its outcome."""
    log = logger.bind(user_id=request.user_id, partition=request.record.partition.value)

    if request.user_id == request.items_reassign_to:
        log.warning("delete_skipped_admin", reason="user is the reassignment target")
        return DeletionOutcome(request, DeletionOutcome.SKIPPED,
                               "is the reassignment target")

    if policy.is_dry_run:
        log.info("delete_dry_run", action=request.describe())
        return DeletionOutcome(request, DeletionOutcome.SKIPPED,
                               f"dry run: would {request.describe()}")

    if not policy.allows(request):
        log.info("delete_declined")
        return DeletionOutcome(request, DeletionOutcome.SKIPPED, "declined")

    try:
        client.delete_user(
            request.user_id,
            items_reassign_to=request.items_reassign_to,
            groups_reassign_to=request.groups_reassign_to,
            completely=request.completely,
        )
    except DirectoryError as exc:
        reason = classify_failure(exc)
        log.warning("delete_failed", status_code=exc.status_code, reason=reason)
        return DeletionOutcome(request, DeletionOutcome.FAILED, reason)

    log.info("user_deleted", reassigned_to=request.items_reassign_to)
    return DeletionOutcome(request, DeletionOutcome.SUCCEEDED)


def execute_batch(
    client: DirectoryClient,
    requests: Iterable[DeletionRequest],
    policy: ConfirmationPolicy,
    observer: Optional[Callable[[ProgressEvent], None]] = None,
) -> Iterator[DeletionOutcome]:
    """Yield one outcome per request; a failure never stops the batch."""
    requests = list(requests)
    total = len(requests)
    for index, request in enumerate(requests, start=1):
        if observer is not None:
            observer(ProgressEvent(ProgressEvent.DELETE, request.record.partition, index, total))
        yield execute(client, request, policy)
