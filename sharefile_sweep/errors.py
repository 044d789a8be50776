"""Exception hierarchy for the sweep pipeline.

Fatal conditions (``ClientInitError``, ``ConfigError``, ``AdminNotFound``,
``CheckpointDirectoryError``, ``CheckpointCorrupt``, ``CheckpointMissing`` in
resume mode) abort the run.  ``DirectoryError`` is raised by the directory
client for any remote failure; callers decide whether it aborts a partition
or fails one record.
"""

from typing import Optional


class SweepError(Exception):
    """Base class for all errors raised by sharefile-sweep."""


class ConfigError(SweepError):
    """Configuration could not be loaded or is incomplete."""


class ClientInitError(SweepError):
    """The directory client session could not be established."""


class DirectoryError(SweepError):
    """A call to the remote directory failed.

    ``status_code`` is the HTTP status when the server answered, or ``None``
    for transport failures (connection refused, timeout, bad JSON).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class AdminNotFound(SweepError):
    """No account in any partition matches the administrator identifier."""

    def __init__(self, identifier: str):
        super().__init__(f"No Employee or Client account matches '{identifier}'")
        self.identifier = identifier


class CheckpointMissing(SweepError):
    """No checkpoint has ever been written for the partition."""

    def __init__(self, partition, path):
        super().__init__(f"No checkpoint for {partition.value} at {path}")
        self.partition = partition
        self.path = path


class CheckpointDirectoryError(SweepError):
    """The checkpoint directory could not be created or written."""


class CheckpointCorrupt(SweepError):
    """A checkpoint file exists but cannot be parsed as one."""

    def __init__(self, path, detail: str):
        super().__init__(f"Checkpoint {path} is unreadable: {detail}")
        self.path = path
        self.detail = detail
