"""
Service layer for geowalk.

External services used by the movement pipeline: LLM access and
movement narration.
"""

from __future__ import annotations

from geowalk.services.llm import (
    LLMProvider,
    LLMService,
    MockLLMProvider,
    OpenRouterProvider,
    create_llm_service,
)
from geowalk.services.narrative import (
    LLMNarrativeGenerator,
    NarrativeGenerator,
    TemplateNarrativeGenerator,
)

__all__ = [
    # LLM
    "LLMProvider",
    "LLMService",
    "MockLLMProvider",
    "OpenRouterProvider",
    "create_llm_service",
    # Narration
    "LLMNarrativeGenerator",
    "NarrativeGenerator",
    "TemplateNarrativeGenerator",
]
