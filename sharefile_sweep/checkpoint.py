"""Durable per-partition checkpoints of discovered disabled accounts.

Each partition gets one CSV file (``employee.csv``, ``client.csv``) with the
columns ``UserId, FullName, Email, UserType``.  A write replaces the whole
file through a temporary file and ``os.replace``, so a reader sees either
the previous checkpoint or the new one, never a partial file.  Checkpoints
are left in place after deletion as an audit trail.
"""

import csv
import os
import tempfile
from pathlib import Path
from typing import Iterable, List, Set, Union

import structlog

from .errors import CheckpointCorrupt, CheckpointDirectoryError, CheckpointMissing
from .models import Account, CheckpointRecord, Partition

logger = structlog.get_logger(__name__)


class CheckpointStore:
    """Reads and writes partition checkpoints under ``directory``."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory).expanduser()

    def path_for(self, partition: Partition) -> Path:
        return self.directory / f"{partition.slug}.csv"

    def exists(self, partition: Partition) -> bool:
        return self.path_for(partition).is_file()

    def ensure_directory(self):
        """Create the checkpoint directory.  Fatal if it cannot be created."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CheckpointDirectoryError(
                f"Cannot create checkpoint directory {self.directory}: {exc}"
            ) from exc

    def write(self, partition: Partition, accounts: Iterable[Account]) -> List[CheckpointRecord]:
        """Replace the partition's checkpoint with ``accounts``.

        Duplicate ids keep their first occurrence.  Returns the records
        actually written.
        """
        records: List[CheckpointRecord] = []
        seen: Set[str] = set()
        for account in accounts:
            if account.id in seen:
                continue
            seen.add(account.id)
            records.append(CheckpointRecord.from_account(account))

        self.ensure_directory()
        target = self.path_for(partition)
        try:
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{partition.slug}.", suffix=".tmp", dir=str(self.directory),
            )
            try:
                with os.fdopen(fd, "w", newline="", encoding="utf-8") as fh:
                    writer = csv.DictWriter(fh, fieldnames=CheckpointRecord.FIELDS)
                    writer.writeheader()
                    for record in records:
                        writer.writerow(record.to_row())
                os.replace(tmp_name, target)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise CheckpointDirectoryError(f"Cannot write checkpoint {target}: {exc}") from exc

        logger.info("checkpoint_written", partition=partition.value,
                    path=str(target), records=len(records))
        return records

    def read(self, partition: Partition) -> List[CheckpointRecord]:
        """Load the partition's checkpoint.

        Returns an empty list when the checkpoint exists but holds no rows.
        A byte order mark, as added by spreadsheet tools that re-save the
        file, is accepted.

        Raises:
            CheckpointMissing: discovery never wrote a checkpoint here.
            CheckpointCorrupt: the header, a row, or the encoding is wrong.
        """
        path = self.path_for(partition)
        try:
            with open(path, newline="", encoding="utf-8-sig") as fh:
                reader = csv.DictReader(fh)
                if reader.fieldnames is None:
                    raise CheckpointCorrupt(path, "missing header row")
                missing = [f for f in CheckpointRecord.FIELDS if f not in reader.fieldnames]
                if missing:
                    raise CheckpointCorrupt(path, f"missing columns {', '.join(missing)}")
                records = [self._parse_row(path, partition, line, row)
                           for line, row in enumerate(reader, start=2)]
        except FileNotFoundError:
            raise CheckpointMissing(partition, path) from None
        except (UnicodeDecodeError, csv.Error) as exc:
            raise CheckpointCorrupt(path, str(exc)) from exc
        logger.debug("checkpoint_read", partition=partition.value,
                     path=str(path), records=len(records))
        return records

    @staticmethod
    def _parse_row(path: Path, partition: Partition, line: int, row) -> CheckpointRecord:
        if not row.get("UserId"):
            raise CheckpointCorrupt(path, f"line {line}: empty UserId")
        try:
            record = CheckpointRecord.from_row(row)
        except ValueError:
            raise CheckpointCorrupt(
                path, f"line {line}: unknown UserType {row.get('UserType')!r}",
            ) from None
        if record.partition != partition:
            raise CheckpointCorrupt(
                path, f"line {line}: {record.partition.value} row in {partition.value} checkpoint",
            )
        return record
