"""AI Agents package."""

from familysync.agents.chore_agent import (
    ChoreAssistant,
    ChoreAssistantError,
    ChoreSuggestion,
    extract_svg,
    parse_suggestions,
)

__all__ = [
    "ChoreAssistant",
    "ChoreAssistantError",
    "ChoreSuggestion",
    "extract_svg",
    "parse_suggestions",
]
