"""In-memory remote document store for development and testing."""

from __future__ import annotations

import copy
import secrets
import string
from collections import defaultdict

from habit_sync.errors import RemoteTransientError
from habit_sync.remote.base import Document, RemoteStore

_KEY_ALPHABET = string.ascii_letters + string.digits
KEY_LENGTH = 20


def generate_key() -> str:
    """Generate a random 20-character document key."""
    return "".join(secrets.choice(_KEY_ALPHABET) for _ in range(KEY_LENGTH))


class InMemoryRemoteStore(RemoteStore):
    """Dict-backed remote store.

    ``reachable`` can be flipped to simulate an outage: every call then
    raises RemoteTransientError.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = defaultdict(dict)
        self.reachable = True

    def _check(self) -> None:
        if not self.reachable:
            raise RemoteTransientError("Remote store unreachable")

    def documents(self, account_id: str) -> dict[str, Document]:
        """Direct view of an account's documents (copies)."""
        return copy.deepcopy(self._collections.get(account_id, {}))

    async def list_all(self, account_id: str) -> list[tuple[str, Document]]:
        self._check()
        return [(k, copy.deepcopy(v)) for k, v in self._collections[account_id].items()]

    async def get(self, account_id: str, key: str) -> Document | None:
        self._check()
        doc = self._collections[account_id].get(key)
        return copy.deepcopy(doc) if doc is not None else None

    async def create(self, account_id: str, fields: Document) -> str:
        self._check()
        collection = self._collections[account_id]
        key = generate_key()
        while key in collection:
            key = generate_key()
        collection[key] = copy.deepcopy(fields)
        return key

    async def set(self, account_id: str, key: str, fields: Document) -> None:
        self._check()
        self._collections[account_id][key] = copy.deepcopy(fields)

    async def delete(self, account_id: str, key: str) -> None:
        self._check()
        self._collections[account_id].pop(key, None)
