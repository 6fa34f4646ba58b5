"""Record - the synchronized habit entity."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from typing import Any

# Document keys the sync layer interprets. Everything else is carried opaquely.
DOC_NAME = "name"
DOC_DELETED = "deleted"
DOC_LAST_SYNCED_AT = "lastSyncedAt"
RESERVED_DOC_KEYS = frozenset({DOC_NAME, DOC_DELETED, DOC_LAST_SYNCED_AT})


@dataclass(frozen=True)
class Record:
    """
    A habit as seen by the sync layer.

    Only ``name`` (conflict-matching key) and ``deleted`` (tombstone) are
    interpreted. Schedules, flags, categories and the like live in
    ``fields`` and are round-tripped untouched.

    Attributes:
        local_id: Row id in the local store, 0 until first inserted
        name: Display name, matched case-insensitively during merges
        fields: Opaque domain fields
        deleted: Soft-delete tombstone
        remote_key: Remote document key, None until first remote write
        last_synced_at: Epoch ms of the last successful remote write, 0 if never
    """

    name: str
    fields: dict[str, Any] = field(default_factory=dict)
    local_id: int = 0
    deleted: bool = False
    remote_key: str | None = None
    last_synced_at: int = 0

    @classmethod
    def create(cls, name: str, **fields: Any) -> Record:
        """Build a fresh, never-synced record."""
        return cls(name=name, fields=dict(fields))

    @property
    def is_synced(self) -> bool:
        """True once the record has a remote document."""
        return bool(self.remote_key)

    @property
    def match_key(self) -> str:
        """Case-insensitive name used to pair local and remote records."""
        return self.name.lower()

    def with_local_id(self, local_id: int) -> Record:
        return replace(self, local_id=local_id)

    def with_sync_status(self, remote_key: str | None, synced_at: int) -> Record:
        """Return a copy stamped with a remote key and sync time."""
        return replace(self, remote_key=remote_key, last_synced_at=synced_at)

    def with_deleted(self, deleted: bool) -> Record:
        return replace(self, deleted=deleted)

    def with_content_of(self, other: Record) -> Record:
        """Adopt another record's content while keeping this record's local id."""
        return replace(other, local_id=self.local_id)

    # ── Remote documents ─────────────────────────────────────────────────

    def to_document(self, synced_at: int | None = None) -> dict[str, Any]:
        """Serialize to the remote document shape.

        Args:
            synced_at: Timestamp to stamp into the document instead of the
                record's current ``last_synced_at``.
        """
        doc = dict(self.fields)
        doc[DOC_NAME] = self.name
        doc[DOC_DELETED] = self.deleted
        doc[DOC_LAST_SYNCED_AT] = self.last_synced_at if synced_at is None else synced_at
        return doc

    @classmethod
    def from_document(cls, key: str, doc: dict[str, Any], local_id: int = 0) -> Record:
        """Reconstruct a record from a remote document."""
        return cls(
            name=str(doc.get(DOC_NAME) or ""),
            fields={k: v for k, v in doc.items() if k not in RESERVED_DOC_KEYS},
            local_id=local_id,
            deleted=bool(doc.get(DOC_DELETED, False)),
            remote_key=key,
            last_synced_at=int(doc.get(DOC_LAST_SYNCED_AT) or 0),
        )

    # ── Queue snapshots ──────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {
            "local_id": self.local_id,
            "name": self.name,
            "fields": self.fields,
            "deleted": self.deleted,
            "remote_key": self.remote_key,
            "last_synced_at": self.last_synced_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Record:
        return cls(
            name=data.get("name", ""),
            fields=dict(data.get("fields") or {}),
            local_id=int(data.get("local_id") or 0),
            deleted=bool(data.get("deleted", False)),
            remote_key=data.get("remote_key") or None,
            last_synced_at=int(data.get("last_synced_at") or 0),
        )

    def to_snapshot(self) -> str:
        """Serialize the full record state for a queue entry."""
        return json.dumps(self.to_dict(), sort_keys=True)

    @classmethod
    def from_snapshot(cls, snapshot: str) -> Record:
        """Inverse of :meth:`to_snapshot`."""
        return cls.from_dict(json.loads(snapshot))
