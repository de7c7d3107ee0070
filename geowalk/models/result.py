"""
Pipeline result models for geowalk.

Every call to the pipeline returns a MovementResult; failures carry a
stable ErrorCode string that callers translate into user-facing text.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from geowalk.models.audit import AuditRecord
from geowalk.models.command import MovementCommand
from geowalk.models.errors import ErrorCode
from geowalk.models.geo import Coordinate


class MovementResult(BaseModel):
    """Uniform result of one movement attempt."""

    success: bool
    message: str

    command: MovementCommand | None = None
    new_position: Coordinate | None = None
    estimated_seconds: int | None = None

    # Error info
    error_code: ErrorCode | None = None

    # Rate limiting
    rate_limited: bool = False
    retry_after_seconds: float | None = Field(
        default=None, description="Seconds until the movement window resets"
    )
    remaining_quota: int | None = Field(
        default=None, description="Movements left in the current window"
    )

    # Daily AI usage
    usage_warning: str | None = None

    audit: AuditRecord

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation for transport."""
        return self.model_dump(mode="json")
