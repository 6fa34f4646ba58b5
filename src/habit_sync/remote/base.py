"""Abstract base class for account-scoped remote document stores."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

Document = dict[str, Any]


class RemoteStore(ABC):
    """
    Per-account collection of habit documents addressed by opaque keys.

    Every call may fail. Implementations raise RemoteTransientError for
    network failures, timeouts and server faults, and RemoteRejectedError
    when the remote refuses the request.
    """

    async def open(self) -> None:  # noqa: B027
        """Acquire connections. No-op by default."""

    async def close(self) -> None:  # noqa: B027
        """Release connections. No-op by default."""

    @abstractmethod
    async def list_all(self, account_id: str) -> list[tuple[str, Document]]:
        """Return every ``(key, fields)`` pair in the account's collection."""
        ...

    @abstractmethod
    async def get(self, account_id: str, key: str) -> Document | None:
        """Fetch one document, or None if the key does not exist."""
        ...

    @abstractmethod
    async def create(self, account_id: str, fields: Document) -> str:
        """
        Store a new document.

        Returns:
            The remote key assigned to the document
        """
        ...

    @abstractmethod
    async def set(self, account_id: str, key: str, fields: Document) -> None:
        """Create or overwrite the document at ``key``."""
        ...

    @abstractmethod
    async def delete(self, account_id: str, key: str) -> None:
        """Delete the document at ``key``. Deleting a missing key succeeds."""
        ...
