"""
In-memory implementations of storage interfaces for testing.

These implementations store everything in dictionaries, making tests
fast and isolated from actual database infrastructure.
"""

from __future__ import annotations

from datetime import datetime, timezone

from geowalk.db.interfaces import PositionStoreError
from geowalk.models import AuditRecord, Coordinate


class InMemoryPositionStore:
    """
    In-memory implementation of PositionStore.

    With a ``spawn_point``, unknown actors are created there on first
    lookup; without one they are reported as missing.
    """

    def __init__(self, spawn_point: Coordinate | None = None) -> None:
        self.spawn_point = spawn_point
        self._positions: dict[str, Coordinate] = {}
        self._updated_at: dict[str, datetime] = {}

    def place(self, actor_id: str, coordinate: Coordinate) -> None:
        """Put an actor on the map (setup helper, bypasses the pipeline)."""
        if not actor_id:
            raise ValueError("actor_id must not be empty")
        self._positions[actor_id] = coordinate
        self._updated_at[actor_id] = datetime.now(timezone.utc)

    async def get_current(self, actor_id: str) -> Coordinate | None:
        """Get the actor's current position."""
        position = self._positions.get(actor_id)
        if position is None and self.spawn_point is not None and actor_id:
            self.place(actor_id, self.spawn_point)
            position = self.spawn_point
        return position

    async def set_current(self, actor_id: str, coordinate: Coordinate) -> None:
        """Move an existing actor."""
        if actor_id not in self._positions:
            raise PositionStoreError(f"actor {actor_id!r} not found")
        self._positions[actor_id] = coordinate
        self._updated_at[actor_id] = datetime.now(timezone.utc)

    def updated_at(self, actor_id: str) -> datetime | None:
        """When the actor last moved."""
        return self._updated_at.get(actor_id)

    def __contains__(self, actor_id: object) -> bool:
        return actor_id in self._positions


class InMemoryAuditLog:
    """In-memory implementation of AuditLog."""

    def __init__(self) -> None:
        self._records: list[AuditRecord] = []

    async def append(self, record: AuditRecord) -> None:
        """Append a record to the log."""
        self._records.append(record)

    async def records_for(self, actor_id: str, limit: int = 50) -> list[AuditRecord]:
        """Get an actor's most recent records, newest first."""
        records = [r for r in reversed(self._records) if r.actor_id == actor_id]
        return records[:limit]

    @property
    def records(self) -> list[AuditRecord]:
        """All records in append order."""
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)
