"""
Exceptions raised inside the movement pipeline's components.

Each carries the ErrorCode the orchestrator reports; nothing here ever
reaches a pipeline caller.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from geowalk.models.errors import ErrorCode

if TYPE_CHECKING:
    from geowalk.models.command import MovementCommand


class MovementError(Exception):
    """Base class for movement failures.

    ``command`` holds the parsed command when the failure happened after
    extraction, so the audit trail can record what was attempted.
    """

    code: ErrorCode = ErrorCode.PARSE_ERROR

    def __init__(
        self,
        message: str,
        code: ErrorCode | None = None,
        command: MovementCommand | None = None,
    ) -> None:
        super().__init__(message)
        if code is not None:
            self.code = code
        self.command = command


class NotAMovementCommandError(MovementError):
    """The text contains no movement vocabulary at all."""

    code = ErrorCode.NOT_A_MOVEMENT_COMMAND


class ExtractionError(MovementError):
    """Movement vocabulary was present but no command could be extracted."""

    code = ErrorCode.PARSE_ERROR


class CommandRejectedError(MovementError):
    """A parsed command failed validation (bounds, distance, confidence)."""
