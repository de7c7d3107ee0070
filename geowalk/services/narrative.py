"""
Movement narration for geowalk.

Narration is best-effort: the pipeline falls back to the template
generator whenever the LLM is unavailable, slow or out of quota.
"""

from __future__ import annotations

from typing import Protocol

from geowalk.models import Coordinate, Direction, MovementCommand, MovementKind
from geowalk.services.llm import LLMService

_DIRECTION_PHRASES = {
    Direction.FORWARD: "forward",
    Direction.BACKWARD: "back",
    Direction.LEFT: "to the left",
    Direction.RIGHT: "to the right",
}


class NarrativeGenerator(Protocol):
    """Interface for movement narration."""

    async def describe(
        self,
        command: MovementCommand,
        origin: Coordinate | None = None,
    ) -> str:
        """Describe an executed movement to the player."""
        ...


def _format_eta(seconds: int) -> str:
    if seconds < 60:
        return f"{seconds} s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes} min {seconds} s" if seconds else f"{minutes} min"
    hours, minutes = divmod(minutes, 60)
    return f"{hours} h {minutes} min"


class TemplateNarrativeGenerator:
    """Template-based narration; never fails."""

    async def describe(
        self,
        command: MovementCommand,
        origin: Coordinate | None = None,
    ) -> str:
        return self.render(command)

    def render(self, command: MovementCommand) -> str:
        """Synchronous rendering, usable as a last-resort fallback."""
        if command.kind == MovementKind.DIRECTION_MOVE and command.direction is not None:
            heading = _DIRECTION_PHRASES.get(command.direction, command.direction.value)
            action = f"Heading {heading} for {command.distance_meters:.0f} m"
        elif command.place_name:
            action = f"On the way to {command.place_name}"
        else:
            action = f"On the way to {command.destination}"

        return f"{action}. Estimated arrival in {_format_eta(command.estimated_seconds)}."


class LLMNarrativeGenerator:
    """LLM-backed narration."""

    def __init__(self, llm: LLMService) -> None:
        self.llm = llm

    @property
    def is_available(self) -> bool:
        return self.llm.is_available

    async def describe(
        self,
        command: MovementCommand,
        origin: Coordinate | None = None,
    ) -> str:
        """
        Describe the movement with the LLM.

        Raises:
            RuntimeError: If the LLM returned nothing usable
        """
        text = (await self.llm.describe_movement(command, origin)).strip()
        if not text:
            raise RuntimeError("LLM returned an empty narration")
        return text
