"""
Storage layer for geowalk.

Provides interfaces and implementations for:
- PositionStore: where each actor currently is
- AuditLog: append-only record of every movement attempt

Implementations:
- InMemory*: For testing and local play (no external dependencies)
"""

from __future__ import annotations

from geowalk.db.interfaces import AuditLog, PositionStore, PositionStoreError
from geowalk.db.memory import InMemoryAuditLog, InMemoryPositionStore

__all__ = [
    # Protocol interfaces
    "AuditLog",
    "PositionStore",
    "PositionStoreError",
    # In-memory implementations
    "InMemoryAuditLog",
    "InMemoryPositionStore",
]
