"""Narrative layer - natural-language posts for material alerts."""

from flashwatch_relay.narrative.generator import NarrativeGenerator
from flashwatch_relay.narrative.prompt import SYSTEM_PROMPT, build_context

__all__ = [
    "SYSTEM_PROMPT",
    "NarrativeGenerator",
    "build_context",
]
