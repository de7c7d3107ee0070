"""
Tests for movement narration.
"""

from __future__ import annotations

import pytest

from geowalk.models import Coordinate, Direction, MovementCommand, MovementKind
from geowalk.services.llm import LLMService, MockLLMProvider
from geowalk.services.narrative import LLMNarrativeGenerator, TemplateNarrativeGenerator


def make_command(**overrides) -> MovementCommand:
    fields = {
        "kind": MovementKind.ABSOLUTE_MOVE,
        "destination": Coordinate(latitude=22.9999, longitude=120.2270),
        "original_text": "go to Tainan",
        "confidence": 0.9,
        "safety_checked": True,
        "estimated_seconds": 45,
    }
    fields.update(overrides)
    return MovementCommand(**fields)


class TestTemplateNarrativeGenerator:
    """Tests for template narration."""

    def test_direction(self) -> None:
        command = make_command(
            kind=MovementKind.DIRECTION_MOVE,
            direction=Direction.NORTH,
            distance_meters=200,
            estimated_seconds=80,
        )
        text = TemplateNarrativeGenerator().render(command)
        assert text == "Heading north for 200 m. Estimated arrival in 1 min 20 s."

    def test_relative_direction(self) -> None:
        command = make_command(
            kind=MovementKind.DIRECTION_MOVE,
            direction=Direction.LEFT,
            distance_meters=15,
            estimated_seconds=6,
        )
        text = TemplateNarrativeGenerator().render(command)
        assert text == "Heading to the left for 15 m. Estimated arrival in 6 s."

    def test_place_name(self) -> None:
        command = make_command(place_name="Tainan", estimated_seconds=120)
        text = TemplateNarrativeGenerator().render(command)
        assert text == "On the way to Tainan. Estimated arrival in 2 min."

    def test_coordinate(self) -> None:
        text = TemplateNarrativeGenerator().render(make_command(estimated_seconds=7500))
        assert text == "On the way to 22.999900, 120.227000. Estimated arrival in 2 h 5 min."

    @pytest.mark.asyncio
    async def test_describe_matches_render(self) -> None:
        generator = TemplateNarrativeGenerator()
        command = make_command()
        assert await generator.describe(command) == generator.render(command)


class TestLLMNarrativeGenerator:
    """Tests for LLM narration."""

    @pytest.mark.asyncio
    async def test_strips_response(self) -> None:
        provider = MockLLMProvider()
        provider.complete = _returning("  Off to Tainan we go!  \n")  # type: ignore[method-assign]
        generator = LLMNarrativeGenerator(LLMService(provider=provider))

        assert await generator.describe(make_command()) == "Off to Tainan we go!"

    @pytest.mark.asyncio
    async def test_empty_response_raises(self) -> None:
        provider = MockLLMProvider()
        provider.complete = _returning("   ")  # type: ignore[method-assign]
        generator = LLMNarrativeGenerator(LLMService(provider=provider))

        with pytest.raises(RuntimeError, match="empty"):
            await generator.describe(make_command())

    def test_is_available(self) -> None:
        generator = LLMNarrativeGenerator(LLMService(provider=MockLLMProvider()))
        assert generator.is_available is True


def _returning(text: str):
    async def complete(messages, max_tokens=256, temperature=0.7) -> str:
        return text

    return complete
