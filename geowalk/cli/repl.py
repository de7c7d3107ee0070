"""
Interactive REPL for geowalk.

Provides a text-based interface for steering an avatar around the map.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from uuid import uuid4

from geowalk.db.memory import InMemoryAuditLog, InMemoryPositionStore
from geowalk.engine import MovementPipeline, PipelineConfig
from geowalk.geo.geocoding import create_geocoder
from geowalk.models import TAIPEI_SPAWN_POINT, Coordinate, MovementResult
from geowalk.services.llm import create_llm_service
from geowalk.services.narrative import LLMNarrativeGenerator, NarrativeGenerator

logger = logging.getLogger(__name__)


@dataclass
class WalkState:
    """Current state of the REPL session."""

    pipeline: MovementPipeline
    positions: InMemoryPositionStore
    actor_id: str = "walker"
    session_id: str = field(default_factory=lambda: str(uuid4()))
    running: bool = True


@dataclass
class Command:
    """A special REPL command."""

    name: str
    aliases: list[str]
    description: str
    handler: Callable[[WalkState, list[str]], str | None]


class MovementREPL:
    """
    Interactive REPL for geowalk.

    Slash commands are handled locally; anything else is sent to the
    movement pipeline.
    """

    def __init__(self, *, as_json: bool = False) -> None:
        self.as_json = as_json
        self.commands: dict[str, Command] = {}
        self._register_commands()

    def _register_commands(self) -> None:
        """Register all special commands."""
        commands = [
            Command(
                name="quit",
                aliases=["exit", "q"],
                description="Exit",
                handler=self._cmd_quit,
            ),
            Command(
                name="help",
                aliases=["?", "h"],
                description="Show available commands",
                handler=self._cmd_help,
            ),
            Command(
                name="stats",
                aliases=["limits"],
                description="Show movement and AI-usage statistics",
                handler=self._cmd_stats,
            ),
        ]

        for cmd in commands:
            self.commands[cmd.name] = cmd
            for alias in cmd.aliases:
                self.commands[alias] = cmd

    def _cmd_quit(self, state: WalkState, args: list[str]) -> str | None:
        """Handle quit command."""
        state.running = False
        return "Bye! Your avatar will wait right here."

    def _cmd_help(self, state: WalkState, args: list[str]) -> str | None:
        """Handle help command."""
        lines = [
            "Available Commands:",
            "-" * 40,
        ]

        seen = set()
        for cmd in self.commands.values():
            if cmd.name not in seen:
                aliases = f" ({', '.join(cmd.aliases)})" if cmd.aliases else ""
                lines.append(f"  /{cmd.name}{aliases} - {cmd.description}")
                seen.add(cmd.name)
        lines.append("  /where - Show your current position")
        lines.append("  /history [n] - Show your last movement attempts")

        lines.extend(
            [
                "",
                "Tips:",
                "  - Type a movement in English or Chinese",
                "  - Examples: 'move 200 meters north', 'go to Tainan', '往東走50公尺'",
                "  - Coordinates ('25.0330, 121.5654') and map links work too",
            ]
        )

        return "\n".join(lines)

    def _cmd_stats(self, state: WalkState, args: list[str]) -> str | None:
        """Handle stats command."""
        stats = state.pipeline.movement_stats(state.actor_id)
        return "\n".join(f"  {key}: {value}" for key, value in stats.items())

    def _is_command(self, text: str) -> bool:
        return text.startswith("/")

    def _parse_command(self, text: str) -> tuple[str, list[str]]:
        parts = text[1:].split()
        if not parts:
            return "", []
        return parts[0].lower(), parts[1:]

    async def _process_input(self, text: str, state: WalkState) -> str:
        """Process user input and return response."""
        text = text.strip()

        if not text:
            return ""

        if self._is_command(text):
            cmd_name, args = self._parse_command(text)
            if cmd_name in self.commands:
                result = self.commands[cmd_name].handler(state, args)
                return result or ""
            # Async commands touch the stores
            if cmd_name == "where":
                return await self._where(state)
            if cmd_name == "history":
                return await self._history(state, args)
            return f"Unknown command: /{cmd_name}. Type /help for a list."

        result = await state.pipeline.execute(
            state.actor_id, text, session_id=state.session_id, origin_ip="local"
        )
        return self._format_result(result)

    async def _where(self, state: WalkState) -> str:
        position = await state.positions.get_current(state.actor_id)
        if position is None:
            return "You are nowhere yet."
        return f"You are at {position}."

    async def _history(self, state: WalkState, args: list[str]) -> str:
        limit = int(args[0]) if args and args[0].isdigit() else 10
        records = await state.pipeline.history(state.actor_id, limit=limit)
        if not records:
            return "No movements yet."
        lines = []
        for record in records:
            outcome = "ok" if record.success else record.error_code.value if record.error_code else "failed"
            lines.append(f"  {record.parsed_at:%H:%M:%S} [{outcome}] {record.original_text}")
        return "\n".join(lines)

    def _format_result(self, result: MovementResult) -> str:
        if self.as_json:
            return json.dumps(result.to_dict(), ensure_ascii=False, indent=2)

        lines = [result.message]
        if result.success and result.new_position is not None:
            lines.append(f"Now at {result.new_position}.")
        if result.usage_warning:
            lines.append(result.usage_warning)
        return "\n".join(lines)

    def _print_banner(self) -> None:
        print("=" * 50)
        print("  geowalk - walk Taiwan from your keyboard")
        print("  Type /help for commands, /quit to exit")
        print("=" * 50)
        print()

    async def run(self, state: WalkState) -> None:
        """Run the interactive REPL."""
        self._print_banner()
        print(await self._where(state))
        print()

        while state.running:
            try:
                user_input = input("> ").strip()

                if not user_input:
                    continue

                response = await self._process_input(user_input, state)

                if response:
                    print()
                    print(response)
                    print()

            except KeyboardInterrupt:
                print("\n")
                state.running = False
            except EOFError:
                print("\n")
                state.running = False

        print("Happy trails!")


def create_state(
    actor_id: str = "walker",
    start: Coordinate = TAIPEI_SPAWN_POINT,
    geocoder_type: str = "static",
    narrator_type: str = "template",
) -> WalkState:
    """
    Wire a pipeline over in-memory stores for local play.

    Args:
        actor_id: Actor to steer
        start: Starting position
        geocoder_type: "static", "google" or "nominatim"
        narrator_type: "template" or "llm"
    """
    positions = InMemoryPositionStore()
    positions.place(actor_id, start)

    narrator: NarrativeGenerator | None = None
    if narrator_type == "llm":
        llm = LLMNarrativeGenerator(create_llm_service())
        if llm.is_available:
            narrator = llm
        else:
            logger.warning("OPENROUTER_API_KEY not set; using template narration")

    pipeline = MovementPipeline.create(
        positions=positions,
        audit_log=InMemoryAuditLog(),
        geocoder=create_geocoder(geocoder_type),
        config=PipelineConfig.from_env(),
        narrator=narrator,
    )
    return WalkState(pipeline=pipeline, positions=positions, actor_id=actor_id)


def run_repl(
    actor_id: str = "walker",
    start: Coordinate = TAIPEI_SPAWN_POINT,
    geocoder_type: str = "static",
    narrator_type: str = "template",
    as_json: bool = False,
) -> None:
    """
    Run the geowalk REPL.

    Args:
        actor_id: Actor to steer
        start: Starting position
        geocoder_type: Place-name resolver to use
        narrator_type: Narration style
        as_json: Print raw results instead of messages
    """
    state = create_state(actor_id, start, geocoder_type, narrator_type)
    repl = MovementREPL(as_json=as_json)
    asyncio.run(repl.run(state))


def main(argv: list[str] | None = None) -> None:
    import argparse

    parser = argparse.ArgumentParser(description="geowalk movement REPL")
    parser.add_argument("--actor", default="walker", help="Actor id")
    parser.add_argument("--lat", type=float, default=TAIPEI_SPAWN_POINT.latitude, help="Start latitude")
    parser.add_argument("--lng", type=float, default=TAIPEI_SPAWN_POINT.longitude, help="Start longitude")
    parser.add_argument(
        "--geocoder",
        choices=["static", "google", "nominatim"],
        default="static",
        help="Place-name resolver",
    )
    parser.add_argument(
        "--narrator",
        choices=["template", "llm"],
        default="template",
        help="Movement narration",
    )
    parser.add_argument("--json", action="store_true", help="Print raw JSON results")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    run_repl(
        actor_id=args.actor,
        start=Coordinate(latitude=args.lat, longitude=args.lng),
        geocoder_type=args.geocoder,
        narrator_type=args.narrator,
        as_json=args.json,
    )


if __name__ == "__main__":
    main()
