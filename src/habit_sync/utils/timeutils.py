"""Time helpers.

Sync timestamps are integer milliseconds since the Unix epoch so they
survive JSON, SQLite and the remote document store without conversion.
"""

from __future__ import annotations

import time
from datetime import UTC, datetime


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def format_ms(timestamp: int) -> str:
    """Render an epoch-millisecond timestamp as ISO 8601, or ``"never"`` for 0."""
    if timestamp <= 0:
        return "never"
    return datetime.fromtimestamp(timestamp / 1000, UTC).isoformat(timespec="seconds")
