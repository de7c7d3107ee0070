"""
Storage interface definitions for geowalk.

Uses Protocol classes to define the contract for persistence.
Implementations can use real databases or in-memory stores for testing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from geowalk.models import AuditRecord, Coordinate


class PositionStoreError(Exception):
    """The position store could not complete an operation."""


class PositionStore(Protocol):
    """
    Interface for actor positions.

    The only state the movement pipeline mutates.
    """

    async def get_current(self, actor_id: str) -> Coordinate | None:
        """Get the actor's current position, or None if the actor is unknown."""
        ...

    async def set_current(self, actor_id: str, coordinate: Coordinate) -> None:
        """
        Move the actor to a new position.

        Raises:
            PositionStoreError: If the update could not be applied
        """
        ...


class AuditLog(Protocol):
    """
    Interface for the movement audit trail.

    Append-only: records are never updated or deleted.
    """

    async def append(self, record: AuditRecord) -> None:
        """Append a record to the log."""
        ...

    async def records_for(self, actor_id: str, limit: int = 50) -> list[AuditRecord]:
        """Get an actor's most recent records, newest first."""
        ...
