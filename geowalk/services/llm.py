"""
LLM Service for geowalk.

Provides BYOK (Bring Your Own Key) LLM integration via OpenRouter.
OpenRouter supports 100+ models through an OpenAI-compatible API.
Used only for the best-effort narration of executed movements.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from openai import AsyncOpenAI

if TYPE_CHECKING:
    from geowalk.models import Coordinate, MovementCommand

logger = logging.getLogger(__name__)


class LLMProvider(Protocol):
    """
    Interface for LLM providers.

    Supports any OpenAI-compatible API (OpenRouter, OpenAI, Ollama, etc.)
    """

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 256,
        temperature: float = 0.7,
    ) -> str:
        """
        Generate a completion from messages.

        Args:
            messages: List of {"role": "user"|"assistant"|"system", "content": str}
            max_tokens: Maximum tokens in response
            temperature: Randomness (0.0 = deterministic, 1.0 = creative)

        Returns:
            Generated text response
        """
        ...

    @property
    def model_name(self) -> str:
        """The model being used."""
        ...

    @property
    def is_available(self) -> bool:
        """Whether the provider is configured and ready."""
        ...


@dataclass
class OpenRouterProvider:
    """
    OpenRouter LLM provider using OpenAI-compatible API.

    Configuration via environment variables:
        OPENROUTER_API_KEY: Your OpenRouter API key (required)
        OPENROUTER_MODEL: Model to use (default: anthropic/claude-3-haiku)
        LLM_BASE_URL: Custom base URL (default: OpenRouter)
        OPENROUTER_SITE_URL: Your site URL for rankings (optional)
        OPENROUTER_SITE_NAME: Your site name (optional)
    """

    api_key: str | None = None
    model: str = "anthropic/claude-3-haiku"
    base_url: str = "https://openrouter.ai/api/v1"
    site_url: str | None = None
    site_name: str = "geowalk"
    max_attempts: int = 3

    _client: AsyncOpenAI | None = field(init=False, default=None)

    def __post_init__(self) -> None:
        """Initialize from environment if not provided."""
        if self.api_key is None:
            self.api_key = os.getenv("OPENROUTER_API_KEY")

        if os.getenv("OPENROUTER_MODEL"):
            self.model = os.getenv("OPENROUTER_MODEL", self.model)

        if os.getenv("LLM_BASE_URL"):
            self.base_url = os.getenv("LLM_BASE_URL", self.base_url)

        if os.getenv("OPENROUTER_SITE_URL"):
            self.site_url = os.getenv("OPENROUTER_SITE_URL")

        if os.getenv("OPENROUTER_SITE_NAME"):
            self.site_name = os.getenv("OPENROUTER_SITE_NAME", self.site_name)

        if self.api_key:
            headers = {"X-Title": self.site_name}
            if self.site_url:
                headers["HTTP-Referer"] = self.site_url

            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                default_headers=headers,
            )

    @property
    def model_name(self) -> str:
        """The model being used."""
        return self.model

    @property
    def is_available(self) -> bool:
        """Whether the provider is configured and ready."""
        return self._client is not None

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 256,
        temperature: float = 0.7,
    ) -> str:
        """
        Generate a completion from messages.

        Retries empty responses and transient failures with exponential
        backoff; returns whatever the last attempt produced.

        Raises:
            RuntimeError: If provider is not configured (no API key)
        """
        if self._client is None:
            raise RuntimeError(
                "OpenRouter provider not configured. Set OPENROUTER_API_KEY environment variable."
            )

        content = ""
        for attempt in range(self.max_attempts):
            try:
                response = await self._client.chat.completions.create(
                    model=self.model,
                    messages=messages,  # type: ignore[arg-type]
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
                content = response.choices[0].message.content or ""
                if content.strip():
                    return content
            except Exception as e:
                # Rate limits (429), timeouts, etc.
                logger.warning("LLM completion attempt %d failed: %s", attempt + 1, e)

            if attempt < self.max_attempts - 1:
                await asyncio.sleep(2.0**attempt)

        return content


@dataclass
class MockLLMProvider:
    """
    Mock LLM provider for testing and offline play.

    Returns template-based responses without making API calls.
    """

    model: str = "mock"
    responses: dict[str, str] = field(default_factory=dict)
    call_count: int = 0

    @property
    def model_name(self) -> str:
        """The model being used."""
        return self.model

    @property
    def is_available(self) -> bool:
        """Mock provider is always available."""
        return True

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 256,
        temperature: float = 0.7,
    ) -> str:
        """Return a mock response."""
        self.call_count += 1
        if messages:
            last_user_msg = next(
                (m["content"] for m in reversed(messages) if m["role"] == "user"),
                "",
            )
            if last_user_msg in self.responses:
                return self.responses[last_user_msg]

        return "[Mock LLM response]"

    def set_response(self, trigger: str, response: str) -> None:
        """Set a custom response for a specific input."""
        self.responses[trigger] = response


@dataclass
class LLMService:
    """
    High-level LLM service for movement narration.

    Handles prompt construction for the provider.
    """

    provider: LLMProvider
    language: str = "English"

    @property
    def is_available(self) -> bool:
        """Whether LLM features are available."""
        return self.provider.is_available

    async def describe_movement(
        self,
        command: MovementCommand,
        origin: Coordinate | None = None,
    ) -> str:
        """
        Generate a short confirmation for an executed movement.

        Args:
            command: The validated command that was executed
            origin: Where the actor started, if known

        Returns:
            One or two friendly sentences
        """
        destination = command.destination
        place = f" ({command.place_name})" if command.place_name else ""

        system_prompt = f"""You are the assistant of a map exploration game.
The player steers a small avatar across Taiwan by giving movement commands.
Confirm each command in a warm, playful tone, in {self.language}.
Keep responses to 1-2 sentences. Do not invent places or distances."""

        user_prompt = f"""The player said: "{command.original_text}"

Parsed command:
- Kind: {command.kind.value}
- Target: {destination}{place}
- Start: {origin if origin else "unknown"}
- Distance: {f"{command.hop_distance_meters:.0f} m" if command.hop_distance_meters is not None else "unknown"}
- Estimated time: {command.estimated_seconds} s at {command.speed.value} pace
- Confidence: {command.confidence:.0%}

Tell the player the move is understood and under way:"""

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

        return await self.provider.complete(
            messages=messages,
            max_tokens=128,
            temperature=0.8,
        )


def create_llm_service(
    provider_type: str = "openrouter",
    **kwargs,
) -> LLMService:
    """
    Factory function to create an LLM service.

    Args:
        provider_type: Type of provider ("openrouter", "mock")
        **kwargs: Provider-specific configuration

    Returns:
        Configured LLMService

    Example:
        # Auto-configure from environment
        service = create_llm_service()

        # Mock for testing
        service = create_llm_service(provider_type="mock")
    """
    if provider_type == "mock":
        provider = MockLLMProvider(**kwargs)
    elif provider_type == "openrouter":
        provider = OpenRouterProvider(**kwargs)
    else:
        raise ValueError(f"Unknown provider type: {provider_type}")

    return LLMService(provider=provider)
