"""Resolve the administrator who inherits deleted users' items and groups."""

import structlog

from .errors import AdminNotFound
from .http_client import DirectoryClient
from .models import PARTITIONS, AdminIdentity

logger = structlog.get_logger(__name__)


def resolve_admin(client: DirectoryClient, identifier: str) -> AdminIdentity:
    """Find the first account whose id or email equals ``identifier``.

    Partitions are searched Employee first, then Client, each in listing
    order.  Matching is exact and case-sensitive, and an id match gets no
    priority over an email match: whichever comes first wins.  Only the
    lightweight listings are read; no detail fetch is issued.

    Raises:
        AdminNotFound: nothing matched in either partition.
        DirectoryError: a listing call failed.
    """
    for partition in PARTITIONS:
        for ref in client.list_accounts(partition):
            user_id = ref.get("Id")
            # An entry without an id cannot be a reassignment target
            if user_id and identifier in (user_id, ref.get("Email")):
                admin = AdminIdentity(user_id, ref.get("Email") or "", partition)
                logger.info("admin_resolved", identifier=identifier,
                            admin_id=admin.id, partition=partition.value)
                return admin
    raise AdminNotFound(identifier)
