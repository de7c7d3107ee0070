"""
Audit records for geowalk.

One immutable record per orchestrated movement attempt, successful or not,
so repeated abuse stays forensically visible.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from geowalk.models.command import MovementCommand
from geowalk.models.errors import ErrorCode


class AuditRecord(BaseModel):
    """Append-only record of one movement attempt."""

    model_config = {"frozen": True}

    id: UUID = Field(default_factory=uuid4)

    # Who and from where
    actor_id: str
    session_id: str = ""
    origin_ip: str = ""

    # What was asked
    original_text: str
    parsed_command: MovementCommand | None = None

    # When
    parsed_at: datetime
    executed_at: datetime | None = None

    # Outcome
    success: bool
    error_code: ErrorCode | None = None
    error_message: str | None = None


def create_audit_record(
    actor_id: str,
    original_text: str,
    success: bool,
    session_id: str = "",
    origin_ip: str = "",
    command: MovementCommand | None = None,
    error_code: ErrorCode | None = None,
    error_message: str | None = None,
    now: datetime | None = None,
) -> AuditRecord:
    """
    Build an audit record.

    ``executed_at`` is set at creation time iff the attempt succeeded; the
    record is never touched again afterwards.
    """
    timestamp = now or datetime.now(timezone.utc)
    return AuditRecord(
        actor_id=actor_id,
        session_id=session_id,
        origin_ip=origin_ip,
        original_text=original_text,
        parsed_command=command.model_copy(deep=True) if command else None,
        parsed_at=timestamp,
        executed_at=timestamp if success else None,
        success=success,
        error_code=error_code,
        error_message=error_message,
    )
