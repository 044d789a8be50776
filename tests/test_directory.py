"""Tests for directory enumeration and the disabled-status filter."""

import pytest
from sharefile_sweep.directory import discover_disabled, enumerate_accounts, is_disabled
from sharefile_sweep.errors import DirectoryError
from sharefile_sweep.models import Account, Partition, ProgressEvent
from tests.fake_directory import FakeDirectoryClient, sample_directory


def test_is_disabled_reads_security_flag():
    enabled = Account.from_api({"Id": "A", "Security": {"IsDisabled": False}}, Partition.CLIENT)
    disabled = Account.from_api({"Id": "B", "Security": {"IsDisabled": True}}, Partition.CLIENT)
    assert not is_disabled(enabled)
    assert is_disabled(disabled)


def test_missing_security_counts_as_enabled():
    account = Account.from_api({"Id": "A", "Email": "a@x.com"}, Partition.EMPLOYEE)
    assert not is_disabled(account)


def test_full_name_falls_back_to_first_and_last():
    account = Account.from_api(
        {"Id": "A", "FirstName": "Ada", "LastName": "Lovelace"}, Partition.EMPLOYEE,
    )
    assert account.full_name == "Ada Lovelace"


def test_enumerate_fetches_detail_per_account():
    fake = sample_directory()
    accounts = list(enumerate_accounts(fake, Partition.EMPLOYEE))
    assert [a.id for a in accounts] == ["E1", "E2", "E3", "E9"]
    assert all(a.partition == Partition.EMPLOYEE for a in accounts)
    assert [c[1] for c in fake.calls_to("get_user")] == ["E1", "E2", "E3", "E9"]


def test_enumerate_is_lazy():
    fake = sample_directory()
    it = enumerate_accounts(fake, Partition.EMPLOYEE)
    assert fake.calls == []
    next(it)
    assert len(fake.calls_to("get_user")) == 1


def test_discover_excludes_enabled_accounts():
    fake = sample_directory()
    assert [a.id for a in discover_disabled(fake, Partition.EMPLOYEE)] == ["E1", "E3"]
    assert [a.id for a in discover_disabled(fake, Partition.CLIENT)] == ["C2"]


def test_fetch_failure_aborts_partition():
    fake = sample_directory()
    fake.detail_errors["E2"] = 500
    with pytest.raises(DirectoryError):
        discover_disabled(fake, Partition.EMPLOYEE)


@pytest.mark.parametrize("workers", [2, 8])
def test_concurrent_fetch_preserves_listing_order(workers):
    fake = FakeDirectoryClient()
    for i in range(20):
        fake.add(f"E{i:02d}", Partition.EMPLOYEE, disabled=i % 3 == 0)
    ids = [a.id for a in enumerate_accounts(fake, Partition.EMPLOYEE, workers=workers)]
    assert ids == [f"E{i:02d}" for i in range(20)]
    disabled = discover_disabled(fake, Partition.EMPLOYEE, workers=workers)
    assert [a.id for a in disabled] == [f"E{i:02d}" for i in range(0, 20, 3)]


def test_concurrent_fetch_failure_aborts_partition():
    fake = FakeDirectoryClient()
    for i in range(10):
        fake.add(f"E{i}", Partition.EMPLOYEE, disabled=True)
    fake.detail_errors["E7"] = None
    with pytest.raises(DirectoryError):
        discover_disabled(fake, Partition.EMPLOYEE, workers=4)


def test_progress_events():
    fake = sample_directory()
    events = []
    discover_disabled(fake, Partition.CLIENT, observer=events.append)
    assert [(e.phase, e.partition, e.index, e.total) for e in events] == [
        (ProgressEvent.DISCOVER, Partition.CLIENT, 1, 2),
        (ProgressEvent.DISCOVER, Partition.CLIENT, 2, 2),
    ]


def test_detail_payload_without_id_is_a_directory_error():
    with pytest.raises(DirectoryError, match="Client user payload without Id"):
        Account.from_api({"Email": "a@x.com", "Security": {"IsDisabled": True}}, Partition.CLIENT)


def test_listing_entry_without_id_aborts_partition():
    fake = sample_directory()
    del fake.accounts[Partition.EMPLOYEE][1]["Id"]
    with pytest.raises(DirectoryError, match="/Accounts/Employees: listing entry without Id"):
        discover_disabled(fake, Partition.EMPLOYEE)
    assert fake.calls_to("get_user") == []


@pytest.mark.parametrize("workers", [1, 4])
def test_detail_without_id_aborts_partition(workers):
    fake = sample_directory()
    fake.detail_payloads["E3"] = {"Email": "e3@example.com", "Security": {"IsDisabled": True}}
    with pytest.raises(DirectoryError):
        discover_disabled(fake, Partition.EMPLOYEE, workers=workers)
