"""Value types passed between the sweep phases.

``Account`` is what the enumerator produces from a user detail payload.
``CheckpointRecord`` is the durable projection written to CSV.
``AdminIdentity`` is the resolved reassignment target.
``DeletionRequest`` and ``DeletionOutcome`` describe one delete and its result.
"""

from enum import Enum
from typing import Any, Dict, Optional

from .errors import DirectoryError


class Partition(str, Enum):
    """The two account categories of a ShareFile account."""

    EMPLOYEE = "Employee"
    CLIENT = "Client"

    @property
    def endpoint(self) -> str:
        """OData path listing the partition's users."""
        return f"/Accounts/{self.value}s"

    @property
    def slug(self) -> str:
        return self.value.lower()


# Fixed iteration order for discovery, admin resolution and deletion
PARTITIONS = (Partition.EMPLOYEE, Partition.CLIENT)


class Account:
    """A directory user as seen at fetch time.

    Attributes:
        id:         Stable ShareFile user id.
        full_name:  Display name (``FullName``, or first + last name).
        email:      Primary email; not unique across partitions.
        partition:  Partition the user was listed under.
        disabled:   ``Security.IsDisabled`` from the expanded detail payload.
    """

    def __init__(self, id: str, full_name: str, email: str,
                 partition: Partition, disabled: bool = False):
        self.id = id
        self.full_name = full_name
        self.email = email
        self.partition = partition
        self.disabled = disabled

    @classmethod
    def from_api(cls, data: Dict[str, Any], partition: Partition) -> "Account":
        """Build an Account from a ``Users(id)?$expand=Security`` payload.

        Raises:
            DirectoryError: the payload carries no ``Id``.
        """
        user_id = data.get("Id")
        if not user_id:
            raise DirectoryError(f"{partition.value} user payload without Id")
        full_name = data.get("FullName")
        if not full_name:
            parts = [data.get("FirstName") or "", data.get("LastName") or ""]
            full_name = " ".join(p for p in parts if p)
        security = data.get("Security") or {}
        return cls(
            id=user_id,
            full_name=full_name or "",
            email=data.get("Email") or "",
            partition=partition,
            disabled=bool(security.get("IsDisabled", False)),
        )

    def __repr__(self) -> str:
        flag = " disabled" if self.disabled else ""
        return f"<Account {self.partition.value}:{self.id} {self.email}{flag}>"


class CheckpointRecord:
    """One row of a partition checkpoint."""

    FIELDS = ("UserId", "FullName", "Email", "UserType")

    def __init__(self, user_id: str, full_name: str, email: str, partition: Partition):
        self.user_id = user_id
        self.full_name = full_name
        self.email = email
        self.partition = partition

    @classmethod
    def from_account(cls, account: Account) -> "CheckpointRecord":
        return cls(account.id, account.full_name, account.email, account.partition)

    @classmethod
    def from_row(cls, row: Dict[str, str]) -> "CheckpointRecord":
        return cls(row["UserId"], row.get("FullName") or "", row.get("Email") or "",
                   Partition(row["UserType"]))

    def to_row(self) -> Dict[str, str]:
        return {
            "UserId": self.user_id,
            "FullName": self.full_name,
            "Email": self.email,
            "UserType": self.partition.value,
        }

    def __repr__(self) -> str:
        return f"<CheckpointRecord {self.partition.value}:{self.user_id}>"


class AdminIdentity:
    """The account that inherits items and groups of deleted users."""

    def __init__(self, id: str, email: str, partition: Optional[Partition] = None):
        self.id = id
        self.email = email
        self.partition = partition

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"id": self.id, "email": self.email}
        if self.partition is not None:
            d["partition"] = self.partition.value
        return d


class DeletionRequest:
    """A single delete-with-reassignment call, never persisted.

    Partial deletion is not supported, so ``completely`` is always True.
    """

    def __init__(self, record: CheckpointRecord, admin: AdminIdentity):
        self.record = record
        self.user_id = record.user_id
        self.items_reassign_to = admin.id
        self.groups_reassign_to = admin.id
        self.completely = True

    def describe(self) -> str:
        """Human-readable form of the call this request issues."""
        return (
            f"delete {self.record.partition.value} user {self.user_id} "
            f"({self.record.email or 'no email'}), reassign items and groups "
            f"to {self.items_reassign_to}"
        )


class DeletionOutcome:
    """Result of executing one DeletionRequest.

    Attributes:
        request: The request that was executed (or simulated).
        status:  One of SUCCEEDED, FAILED, SKIPPED.
        reason:  Failure classification, skip reason, or the would-be
                 action in dry-run mode.
    """

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"

    STATUSES = (SUCCEEDED, FAILED, SKIPPED)

    def __init__(self, request: DeletionRequest, status: str, reason: str = ""):
        self.request = request
        self.status = status
        self.reason = reason

    @property
    def partition(self) -> Partition:
        return self.request.record.partition

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict for JSON output.  Omits an empty reason."""
        d: Dict[str, Any] = {
            "user_id": self.request.user_id,
            "email": self.request.record.email,
            "partition": self.partition.value,
            "status": self.status,
        }
        if self.reason:
            d["reason"] = self.reason
        return d

    def __repr__(self) -> str:
        return f"<DeletionOutcome {self.request.user_id} {self.status}>"


class ProgressEvent:
    """Emitted to an observer as each account is fetched or deleted."""

    DISCOVER = "discover"
    DELETE = "delete"

    def __init__(self, phase: str, partition: Partition, index: int, total: int):
        self.phase = phase
        self.partition = partition
        self.index = index
        self.total = total

    def __repr__(self) -> str:
        return f"<ProgressEvent {self.phase} {self.partition.value} {self.index}/{self.total}>"
