"""Directory enumeration and the disabled-status filter.

``enumerate_accounts`` lists a partition's user references and then fetches
each user's detail with security attributes expanded.  Any fetch failure
raises ``DirectoryError`` and aborts the whole partition: a partial disabled
set must never be checkpointed as if it were complete.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterator, List, Optional

import structlog

from .errors import DirectoryError
from .http_client import DirectoryClient
from .models import Account, Partition, ProgressEvent

logger = structlog.get_logger(__name__)

# Upper bound on concurrent detail fetches, to stay within API rate limits
MAX_WORKERS = 16

Observer = Callable[[ProgressEvent], None]


def is_disabled(account: Account) -> bool:
    """True if the account's security attributes mark it deactivated."""
    return account.disabled


def enumerate_accounts(
    client: DirectoryClient,
    partition: Partition,
    workers: int = 1,
    observer: Optional[Observer] = None,
) -> Iterator[Account]:
    """Yield every account in ``partition`` with its detail fetched.

    Accounts are yielded in listing order even when ``workers > 1``; the
    pool only overlaps the network round trips.

    Raises:
        DirectoryError: the listing or any single detail fetch failed, or a
            listing entry or detail payload has no ``Id``.
    """
    refs = client.list_accounts(partition)
    total = len(refs)
    ids = [ref.get("Id") for ref in refs]
    if not all(ids):
        raise DirectoryError(f"{partition.endpoint}: listing entry without Id")
    logger.debug("partition_listed", partition=partition.value, count=total)

    workers = max(1, min(workers, MAX_WORKERS))
    if workers == 1 or total <= 1:
        details = map(client.get_user, ids)
        for index, data in enumerate(details, start=1):
            yield _to_account(data, partition, index, total, observer)
        return

    with ThreadPoolExecutor(max_workers=workers) as pool:
        # map() re-raises the first failing fetch when its result is reached
        for index, data in enumerate(pool.map(client.get_user, ids), start=1):
            yield _to_account(data, partition, index, total, observer)


def _to_account(data, partition, index, total, observer) -> Account:
    account = Account.from_api(data, partition)
    if observer is not None:
        observer(ProgressEvent(ProgressEvent.DISCOVER, partition, index, total))
    return account


def discover_disabled(
    client: DirectoryClient,
    partition: Partition,
    workers: int = 1,
    observer: Optional[Observer] = None,
) -> List[Account]:
    """Return the complete disabled set for one partition.

    The enumeration is fully drained before returning so callers either get
    every disabled account or an exception, never a prefix.
    """
    disabled = [
        account
        for account in enumerate_accounts(client, partition, workers=workers, observer=observer)
        if is_disabled(account)
    ]
    logger.info("partition_discovered", partition=partition.value, disabled=len(disabled))
    return disabled
