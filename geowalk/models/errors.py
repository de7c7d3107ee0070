"""Stable error kinds reported by the movement pipeline."""

from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Error kind carried by every unsuccessful MovementResult."""

    NOT_A_MOVEMENT_COMMAND = "NOT_A_MOVEMENT_COMMAND"
    PARSE_ERROR = "PARSE_ERROR"
    OUT_OF_BOUNDS = "OUT_OF_BOUNDS"
    DISTANCE_TOO_LARGE = "DISTANCE_TOO_LARGE"
    LOW_CONFIDENCE = "LOW_CONFIDENCE"
    SECURITY_VIOLATION = "SECURITY_VIOLATION"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    EXECUTION_ERROR = "EXECUTION_ERROR"
    RATE_LIMITED = "RATE_LIMITED"
