"""Starter prompt suggestions requested from the remote model."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pydantic import TypeAdapter, ValidationError

from .models import Suggestion
from .session import extract_chunk_text

LOGGER = logging.getLogger(__name__)

SUGGESTION_COUNT = 4
MAX_SUGGESTION_WORDS = 10

SUGGESTION_PROMPT = (
    "Generate 4 short, intriguing, and diverse questions or tasks a user might ask "
    "a coding AI assistant. Topics can include Python, Web Development, Data Science, "
    "or General Tech. Keep them under 10 words. Return a JSON array with 'icon' "
    "(emoji) and 'text' keys."
)

FALLBACK_SUGGESTIONS: tuple[Suggestion, ...] = (
    Suggestion(icon="🐍", text="Write a Python script for web scraping"),
    Suggestion(icon="🎨", text="Explain CSS Grid vs Flexbox"),
    Suggestion(icon="🐛", text="Debug this React useEffect hook"),
    Suggestion(icon="📊", text="Visualize data with Matplotlib"),
)

_SUGGESTION_LIST = TypeAdapter(list[Suggestion])
SUGGESTION_SCHEMA: dict[str, Any] = _SUGGESTION_LIST.json_schema()


def _shorten(suggestion: Suggestion, max_words: int) -> Suggestion:
    words = suggestion.text.split()
    if len(words) <= max_words:
        return suggestion
    return Suggestion(icon=suggestion.icon, text=" ".join(words[:max_words]))


class SuggestionProvider:
    """Ask the model for starter prompts; never fails, never touches chat state."""

    def __init__(
        self,
        client: Any,
        model: str,
        *,
        count: int = SUGGESTION_COUNT,
        max_words: int = MAX_SUGGESTION_WORDS,
    ) -> None:
        self._client = client
        self.model = model
        self.count = count
        self.max_words = max_words

    def fallback(self) -> list[Suggestion]:
        return list(FALLBACK_SUGGESTIONS[: self.count])

    async def _request(self) -> list[Suggestion]:
        response = await self._client.chat(
            model=self.model,
            messages=[{"role": "user", "content": SUGGESTION_PROMPT}],
            format=SUGGESTION_SCHEMA,
            stream=False,
        )
        text = extract_chunk_text(response).strip()
        if not text:
            raise ValueError("Empty response")
        items = [
            item
            for item in _SUGGESTION_LIST.validate_json(text)
            if item.text.strip() and item.icon.strip()
        ]
        if len(items) < self.count:
            raise ValueError(f"Expected {self.count} suggestions, got {len(items)}")
        return [_shorten(item, self.max_words) for item in items[: self.count]]

    async def fetch_suggestions(self) -> list[Suggestion]:
        """Return exactly ``count`` suggestions, falling back on any failure."""
        try:
            return await self._request()
        except asyncio.CancelledError:
            raise
        except (ValidationError, ValueError) as exc:
            reason = str(exc)
        except Exception as exc:  # noqa: BLE001 - advisory path must never fail.
            reason = f"{exc.__class__.__name__}: {exc}"
        LOGGER.warning(
            "suggestions.fallback",
            extra={"event": "suggestions.fallback", "reason": reason},
        )
        return self.fallback()
