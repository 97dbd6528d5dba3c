"""
Leada Coaching Core — Routine Suggestions.

The coach proposes habits inside its replies using a tagged block:

    [ROUTINE_VORSCHLAG]
    Titel: Wöchentliche 1:1-Gespräche
    Beschreibung: Jede Woche ein Einzelgespräch mit jedem Teammitglied
    Frequenz: wöchentlich
    Ziel: 1
    [/ROUTINE_VORSCHLAG]

`parse_routine_suggestions()` removes the blocks from the visible text and
returns them as structured suggestions the user can accept.
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass

from leada.data.models import RoutineFrequency

logger = logging.getLogger(__name__)

_BLOCK = re.compile(
    r"\[ROUTINE_VORSCHLAG\](.*?)\[/ROUTINE_VORSCHLAG\]", re.DOTALL | re.IGNORECASE,
)
_FIELD = re.compile(r"^\s*[-*]?\s*\**(\w+)\**\s*:\s*(.+?)\s*$", re.MULTILINE)
_NUMBER = re.compile(r"\d+")

_FREQUENCY_ALIASES: dict[str, RoutineFrequency] = {
    "täglich": RoutineFrequency.DAILY,
    "taeglich": RoutineFrequency.DAILY,
    "daily": RoutineFrequency.DAILY,
    "wöchentlich": RoutineFrequency.WEEKLY,
    "woechentlich": RoutineFrequency.WEEKLY,
    "weekly": RoutineFrequency.WEEKLY,
    "monatlich": RoutineFrequency.MONTHLY,
    "monthly": RoutineFrequency.MONTHLY,
}


@dataclass
class RoutineSuggestion:
    title: str
    description: str | None
    frequency: str
    target: int | None = None

    def to_metadata(self) -> dict:
        return asdict(self)

    @classmethod
    def from_metadata(cls, data: dict) -> "RoutineSuggestion":
        return cls(
            title=data["title"],
            description=data.get("description"),
            frequency=normalize_frequency(data.get("frequency", "")),
            target=data.get("target"),
        )


def normalize_frequency(value: str) -> str:
    """German or English frequency word → RoutineFrequency value; custom otherwise."""
    word = value.strip().lower().split(" ")[0] if value.strip() else ""
    return _FREQUENCY_ALIASES.get(word, RoutineFrequency.CUSTOM).value


def _parse_block(body: str) -> RoutineSuggestion | None:
    fields = {name.lower(): value for name, value in _FIELD.findall(body)}
    title = fields.get("titel") or fields.get("title")
    if not title:
        return None

    target = None
    raw_target = fields.get("ziel") or fields.get("target")
    if raw_target:
        match = _NUMBER.search(raw_target)
        if match:
            target = int(match.group())

    return RoutineSuggestion(
        title=title,
        description=fields.get("beschreibung") or fields.get("description"),
        frequency=normalize_frequency(fields.get("frequenz") or fields.get("frequency") or ""),
        target=target,
    )


def parse_routine_suggestions(text: str) -> tuple[str, list[RoutineSuggestion]]:
    """Split a reply into (text without blocks, suggestions).

    Blocks without a title are dropped from the text but yield no suggestion.
    """
    suggestions: list[RoutineSuggestion] = []
    for body in _BLOCK.findall(text):
        suggestion = _parse_block(body)
        if suggestion is None:
            logger.warning("Ignoring routine suggestion block without a title")
            continue
        suggestions.append(suggestion)

    cleaned = _BLOCK.sub("", text)
    cleaned = re.sub(r"\n{3,}", "\n\n", cleaned).strip()
    return cleaned, suggestions
