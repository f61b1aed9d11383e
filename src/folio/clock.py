from __future__ import annotations

from datetime import UTC, datetime


class SystemClock:
    """Wall-clock time in UTC. Implements the Clock protocol."""

    def now(self) -> datetime:
        return datetime.now(UTC)
