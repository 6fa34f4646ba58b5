"""Error taxonomy for the sync core.

Local errors are fatal to the call that caused them. Remote errors never
reach callers of the write path; they are turned into queued retries.
"""

from __future__ import annotations


class SyncError(Exception):
    """Base class for every error raised by habit-sync."""


class LocalWriteError(SyncError):
    """The local store rejected a read or write."""


class RemoteError(SyncError):
    """A remote store call did not complete."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteTransientError(RemoteError):
    """Network failure, timeout or server-side error. Worth retrying."""


class RemoteRejectedError(RemoteError):
    """The remote refused the request (permission, validation, ...).

    Replay currently treats this like a transient error: the entry stays queued.
    """


class MergeStepError(SyncError):
    """A single upload, import or delete failed during a sign-in merge."""

    def __init__(
        self,
        step: str,
        message: str,
        *,
        local_id: int | None = None,
        remote_key: str | None = None,
    ) -> None:
        super().__init__(f"{step}: {message}")
        self.step = step
        self.local_id = local_id
        self.remote_key = remote_key
