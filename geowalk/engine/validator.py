"""
Command validation for geowalk.

Enforces the geofence, the single-hop ceiling and the confidence floor,
then computes the ETA. Validation never mutates its input; it returns a
finalized copy with ``safety_checked`` set.
"""

from __future__ import annotations

from dataclasses import dataclass

from geowalk.engine.errors import CommandRejectedError
from geowalk.geo.geometry import haversine_distance, project
from geowalk.models.command import (
    SPEED_METERS_PER_SECOND,
    MovementCommand,
    MovementKind,
)
from geowalk.models.errors import ErrorCode
from geowalk.models.geo import TAIWAN_BOUNDS, Bounds, Coordinate

# Taiwan is roughly 400 km end to end, so one hop may cross the whole region.
DEFAULT_MAX_HOP_METERS = 500_000.0
DEFAULT_MIN_CONFIDENCE = 0.3


@dataclass
class CommandValidator:
    """Validates and enriches parsed movement commands."""

    bounds: Bounds = TAIWAN_BOUNDS
    max_hop_meters: float = DEFAULT_MAX_HOP_METERS
    min_confidence: float = DEFAULT_MIN_CONFIDENCE

    def validate(
        self, command: MovementCommand, current_position: Coordinate | None
    ) -> MovementCommand:
        """
        Validate a command against the current position.

        Args:
            command: Command produced by the extractor
            current_position: Actor's position, if known

        Returns:
            A copy of the command with destination, ETA and
            ``safety_checked`` filled in

        Raises:
            CommandRejectedError: With OUT_OF_BOUNDS, LOW_CONFIDENCE,
                DISTANCE_TOO_LARGE, or PARSE_ERROR when no destination
                can be determined
        """
        destination = command.destination

        # Direction moves depend on where the actor is right now
        if command.kind == MovementKind.DIRECTION_MOVE:
            if current_position is None or command.direction is None:
                raise CommandRejectedError(
                    "direction move needs a current position", ErrorCode.PARSE_ERROR
                )
            destination = project(current_position, command.direction, command.distance_meters)

        if destination is None:
            raise CommandRejectedError("no valid destination", ErrorCode.PARSE_ERROR)

        attempted = command.model_copy(update={"destination": destination})

        if not self.bounds.contains(destination):
            raise CommandRejectedError(
                f"destination ({destination}) is outside the supported region",
                ErrorCode.OUT_OF_BOUNDS,
                command=attempted,
            )

        if command.confidence < self.min_confidence:
            raise CommandRejectedError(
                f"command confidence too low: {command.confidence:.0%} "
                f"(min: {self.min_confidence:.0%})",
                ErrorCode.LOW_CONFIDENCE,
                command=attempted,
            )

        hop = None
        estimated_seconds = 0
        if current_position is not None:
            hop = haversine_distance(current_position, destination)
            if hop > self.max_hop_meters:
                raise CommandRejectedError(
                    f"movement distance too large: {hop:.2f} meters "
                    f"(max: {self.max_hop_meters:.0f} meters)",
                    ErrorCode.DISTANCE_TOO_LARGE,
                    command=attempted,
                )
            estimated_seconds = int(hop / SPEED_METERS_PER_SECOND[command.speed])

        return command.model_copy(
            update={
                "destination": destination,
                "hop_distance_meters": hop,
                "estimated_seconds": estimated_seconds,
                "safety_checked": True,
            }
        )
