"""
AI Chore Assistant for FamilySync

DESIGN DECISION: The assistant is decoration, never a dependency.
1. It has no access to the family state
2. It never writes anything itself
3. Every failure degrades to an empty result ("" or [])

CRITICAL BOUNDARIES:

1. ICON GENERATION:
   - CAN: Draw a small SVG icon for a chore title
   - CANNOT: Change the chore it draws for
   - Only called when a chore title is new or changed

2. CHORE SUGGESTIONS:
   - CAN: Propose up to 3 age-appropriate chores with point values
   - CANNOT: Create chores; a parent picks a suggestion and saves it
"""

import json
import re
from typing import Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field, ValidationError

from familysync.config import get_settings
from familysync.config.settings import GeminiSettings

MAX_SUGGESTIONS = 3

_SVG_PATTERN = re.compile(r"<svg\b.*?</svg>", re.DOTALL | re.IGNORECASE)

logger = structlog.get_logger(__name__)


class ChoreAssistantError(Exception):
    """The model gave no usable answer."""
    pass


class ChoreSuggestion(BaseModel):
    """One AI-proposed chore a parent can accept."""

    title: str = Field(..., min_length=1, max_length=200)
    points: int = Field(..., ge=10, le=500)
    description: str = ""


def extract_svg(text: str) -> str:
    """
    Pull the first <svg>...</svg> element out of a model answer.

    Raises:
        ChoreAssistantError: If the answer holds no SVG
    """
    match = _SVG_PATTERN.search(text or "")
    if not match:
        raise ChoreAssistantError("No SVG element in response")
    return match.group(0)


def parse_suggestions(text: str) -> list[ChoreSuggestion]:
    """
    Parse the JSON array the model returns into suggestions.

    Items that do not validate are skipped. Points outside 10-500 are
    clamped rather than dropped.

    Raises:
        ChoreAssistantError: If the answer holds no JSON array
    """
    start = (text or "").find("[")
    end = (text or "").rfind("]") + 1
    if start < 0 or end <= start:
        raise ChoreAssistantError("No JSON array in response")
    try:
        items = json.loads(text[start:end])
    except json.JSONDecodeError as e:
        raise ChoreAssistantError(f"Invalid JSON: {e}") from e

    suggestions = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            points = min(max(int(item.get("points", 10)), 10), 500)
            suggestions.append(ChoreSuggestion(
                title=str(item.get("title", "")).strip(),
                points=points,
                description=str(item.get("description") or ""),
            ))
        except (TypeError, ValueError, ValidationError):
            continue
        if len(suggestions) == MAX_SUGGESTIONS:
            break
    return suggestions


class ChoreAssistant:
    """
    Gemini-backed helper for the chore editor.

    RESPONSIBILITIES:
    - Generate an SVG icon for a chore title
    - Suggest chores for a free-text context ("7 year old, likes animals")

    When no API key is configured every call returns an empty result
    without touching the network.
    """

    def __init__(self, settings: Optional[GeminiSettings] = None):
        self._settings = settings or get_settings().gemini
        self._model = None
        if self._settings.is_configured:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def is_enabled(self) -> bool:
        return self._model is not None

    async def _ask(self, prompt: str) -> str:
        if self._model is None:
            raise ChoreAssistantError("Gemini API key not configured")
        response = await self._model.generate_content_async(prompt)
        text = (response.text or "").strip()
        if not text:
            raise ChoreAssistantError("Empty response")
        return text

    async def generate_icon(self, title: str) -> str:
        """
        Draw a simple icon for a chore title.

        Returns SVG markup, or "" when the assistant is disabled or fails.
        """
        if not title.strip() or not self.is_enabled:
            return ""

        prompt = f"""Draw a simple, friendly icon for a kids' chore called "{title}".

Requirements:
- A single <svg> element, viewBox="0 0 24 24", width="24" height="24"
- Line style: fill="none" stroke="currentColor" stroke-width="2"
- No text, no scripts, no external references

Respond with ONLY the SVG markup."""

        try:
            return extract_svg(await self._ask(prompt))
        except ChoreAssistantError as e:
            logger.warning("icon_generation_failed", title=title, error=str(e))
        except Exception as e:
            logger.error("icon_generation_failed", title=title, error=str(e))
        return ""

    async def suggest_chores(self, context: str) -> list[ChoreSuggestion]:
        """
        Suggest up to 3 household chores suitable for kids.

        Returns [] when the assistant is disabled or fails.
        """
        if not self.is_enabled:
            return []

        prompt = f"""Generate a list of {MAX_SUGGESTIONS} household chores suitable for kids based on this context: "{context}".
Assign realistic reward points (scale 10-500) based on difficulty.

Respond with ONLY a JSON array in this exact format:
[{{"title": "chore title", "points": 50, "description": "short description"}}]"""

        try:
            return parse_suggestions(await self._ask(prompt))
        except ChoreAssistantError as e:
            logger.warning("chore_suggestion_failed", error=str(e))
        except Exception as e:
            logger.error("chore_suggestion_failed", error=str(e))
        return []
