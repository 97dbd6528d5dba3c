"""
Leada Coaching Core — Language Style Analysis.

Heuristic read of how a user writes (sentence length, vocabulary, tone) so
the coach can mirror it. Recomputed per request from the last few user
messages; never persisted.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

RECENT_MESSAGES = 5

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_ACADEMIC = re.compile(
    r"konzeptuell|methodisch|systematisch|analytisch|evaluieren|implementieren|operationalisieren",
    re.IGNORECASE,
)
_CASUAL = re.compile(r"okay|cool|super|genau|klar|hey|hallo", re.IGNORECASE)
_FORMAL_GREETING = re.compile(
    r"sehr geehrte|mit freundlichen grüßen|hochachtungsvoll", re.IGNORECASE,
)


@dataclass
class LanguageStyle:
    avg_sentence_length: float
    complexity: str        # "einfach" | "mittel" | "komplex"
    formality: str         # "locker" | "professionell" | "akademisch"
    description: str


def analyze_language_style(user_messages: list[str]) -> LanguageStyle | None:
    """Analyze the last five messages. Returns None for an empty list."""
    if not user_messages:
        return None

    text = " ".join(user_messages[-RECENT_MESSAGES:])
    sentences = [s for s in _SENTENCE_SPLIT.split(text) if s.strip()]
    words = text.split()

    avg_sentence_length = len(words) / len(sentences) if sentences else 0.0
    avg_word_length = sum(len(w) for w in words) / (len(words) or 1)

    if avg_sentence_length < 10 and avg_word_length < 5:
        complexity = "einfach"
    elif avg_sentence_length > 20 or avg_word_length > 7:
        complexity = "komplex"
    else:
        complexity = "mittel"

    if _ACADEMIC.search(text):
        formality = "akademisch"
    elif _CASUAL.search(text) and not _FORMAL_GREETING.search(text):
        formality = "locker"
    else:
        formality = "professionell"

    return LanguageStyle(
        avg_sentence_length=avg_sentence_length,
        complexity=complexity,
        formality=formality,
        description=_describe(complexity, formality, avg_sentence_length),
    )


def _describe(complexity: str, formality: str, avg_sentence_length: float) -> str:
    if avg_sentence_length < 10:
        length = "Nutzer verwendet kurze, prägnante Sätze"
    elif avg_sentence_length > 20:
        length = "Nutzer verwendet lange, ausführliche Sätze"
    else:
        length = "Nutzer verwendet mittellange Sätze"

    vocabulary = {
        "einfach": "mit einfacher, direkter Sprache",
        "komplex": "mit komplexer, differenzierter Sprache",
    }.get(complexity, "mit ausgewogener Sprache")

    tone = {
        "locker": "Lockerer, informeller Ton bevorzugt.",
        "akademisch": "Akademischer, fachlicher Ton bevorzugt.",
    }.get(formality, "Professioneller, ausgewogener Ton bevorzugt.")

    return f"{length} {vocabulary}. {tone}"
