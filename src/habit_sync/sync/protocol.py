"""Result types and enums shared by the sync orchestrators."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

# Invoked once per call with (success, message). May be sync or async.
CompletionCallback = Callable[[bool, str], Awaitable[None] | None]


class MergeStrategy(StrEnum):
    """How to reconcile local and remote records at sign-in."""

    KEEP_LOCAL = "keep_local"
    KEEP_CLOUD = "keep_cloud"
    MERGE_BOTH = "merge_both"


class SyncPhase(StrEnum):
    """Sync session state."""

    IDLE = "idle"
    DRAINING_QUEUE = "draining_queue"
    PULLING = "pulling"


@dataclass(frozen=True)
class DrainResult:
    """Outcome of one pass over the sync queue."""

    processed: int = 0
    failed: int = 0
    first_error: BaseException | None = None

    @property
    def remaining(self) -> int:
        return self.failed


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a sync session, push or drain."""

    success: bool
    message: str
    processed: int = 0
    failed: int = 0
    pulled: int = 0
    changed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "processed": self.processed,
            "failed": self.failed,
            "pulled": self.pulled,
            "changed": self.changed,
        }


@dataclass(frozen=True)
class MergeCheck:
    """Whether a sign-in needs the user to choose a merge strategy."""

    needed: bool
    local_unsynced_count: int
    remote_count: int
    remote_reachable: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "needed": self.needed,
            "local_unsynced_count": self.local_unsynced_count,
            "remote_count": self.remote_count,
            "remote_reachable": self.remote_reachable,
        }


@dataclass(frozen=True)
class MergeReport:
    """Outcome of a sign-in merge.

    Merges are not transactional: counts reflect the sub-steps that
    completed even when ``errors`` is non-empty.
    """

    strategy: MergeStrategy
    success: bool
    message: str
    uploaded: int = 0
    imported: int = 0
    deleted_remote: int = 0
    deleted_local: int = 0
    errors: tuple[Exception, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": str(self.strategy),
            "success": self.success,
            "message": self.message,
            "uploaded": self.uploaded,
            "imported": self.imported,
            "deleted_remote": self.deleted_remote,
            "deleted_local": self.deleted_local,
            "errors": [str(e) for e in self.errors],
        }


async def notify(callback: CompletionCallback | None, success: bool, message: str) -> None:
    """Invoke a completion callback, logging rather than raising its errors."""
    if callback is None:
        return
    try:
        result = callback(success, message)
        if inspect.isawaitable(result):
            await result
    except Exception:
        logger.error("Completion callback failed", exc_info=True)


@dataclass(frozen=True)
class SignInResult:
    """Everything that happened while signing in."""

    account_id: str
    check: MergeCheck
    merge: MergeReport | None
    sync: SyncResult

    @property
    def success(self) -> bool:
        merged_ok = self.merge is None or self.merge.success
        return merged_ok and self.sync.success

    def to_dict(self) -> dict[str, Any]:
        return {
            "account_id": self.account_id,
            "check": self.check.to_dict(),
            "merge": self.merge.to_dict() if self.merge else None,
            "sync": self.sync.to_dict(),
        }
