"""
Leada Coaching Core — Completion Gateway.

Wraps the LLM for every coaching task: the chat reply itself, chat titles,
fact-sheet summaries and generated learning units. Every helper converts
an LLM failure into its fallback value; none of them raises.
"""

from __future__ import annotations

import logging
import re

from leada.core.context import UserContext, render_context_prompt
from leada.core.llm import ChatMessage, complete, complete_chat
from leada.core.prompts import get_system_prompt
from leada.data.models import LearningPackage

logger = logging.getLogger(__name__)

FALLBACK_REPLY = "Entschuldigung, ich konnte keine Antwort generieren."
FALLBACK_TITLE = "Coaching-Gespräch"
FALLBACK_UNIT = "Entschuldigung, ich konnte keine Einheit generieren."

TITLE_SOURCE_MESSAGES = 4

_TITLE_SYSTEM = (
    "Du bist ein Assistent, der prägnante Titel für Coaching-Gespräche erstellt. "
    "Antworte NUR mit dem Titel, maximal 2-4 Wörter, ohne Anführungszeichen oder "
    "Erklärungen. Der Titel sollte das Hauptthema des Gesprächs widerspiegeln, z.B. "
    '"Zeitmanagement", "Konflikte im Team", "Feedback geben", "Delegation".'
)

SUMMARY_SYSTEM = (
    "Du bist ein Leadership-Coach, der prägnante, motivierende Zusammenfassungen "
    "schreibt. Antworte nur mit dem Zusammenfassungstext, ohne Überschrift und "
    "ohne Emojis."
)

_QUOTES = re.compile(r"[\"“”„«»]")


def build_messages(
    messages: list[ChatMessage],
    system_prompt: str | None = None,
    context: UserContext | None = None,
) -> list[ChatMessage]:
    """System instructions, then the context section, then the conversation."""
    ordered: list[ChatMessage] = [
        {"role": "system", "content": system_prompt or get_system_prompt()},
    ]
    if context is not None:
        ordered.append({"role": "system", "content": render_context_prompt(context)})
    ordered.extend(
        {"role": m["role"], "content": m["content"]}
        for m in messages
        if m.get("role") in ("user", "assistant")
    )
    return ordered


async def chat_completion(
    messages: list[ChatMessage],
    system_prompt: str | None = None,
    context: UserContext | None = None,
) -> str:
    """Generate the coach's reply to the conversation so far.

    Args:
        messages: History plus the new user turn, oldest first.
        system_prompt: Combined prompt hierarchy; the plain coach prompt if None.
        context: Aggregated user context rendered as a second system message.

    Returns:
        The reply text, or "" when the LLM call fails.
    """
    from leada.config import settings

    try:
        reply = await complete_chat(
            build_messages(messages, system_prompt, context),
            max_tokens=settings.CHAT_MAX_TOKENS,
            temperature=settings.CHAT_TEMPERATURE,
        )
    except Exception as exc:
        logger.error("Chat completion failed: %s", exc)
        return ""
    return (reply or "").strip()


async def generate_chat_title(messages: list[ChatMessage]) -> str:
    """Short thematic title from the first few messages of a chat."""
    transcript = "\n".join(
        f"{m['role']}: {m['content']}" for m in messages[:TITLE_SOURCE_MESSAGES]
    )
    try:
        raw = await complete(
            _TITLE_SYSTEM,
            f"Erstelle einen kurzen, prägnanten Titel für folgendes Gespräch:\n\n{transcript}",
            max_tokens=20,
            temperature=0.5,
        )
    except Exception as exc:
        logger.warning("Title generation failed: %s", exc)
        return FALLBACK_TITLE

    title = _QUOTES.sub("", (raw or "").strip()).strip()
    return title or FALLBACK_TITLE


async def summarize(
    facts: str,
    instruction: str,
    system: str = SUMMARY_SYSTEM,
    max_tokens: int = 200,
) -> str:
    """Turn a fact sheet into short prose. Returns "" on failure."""
    try:
        text = await complete(
            system, f"{instruction}\n\n{facts}", max_tokens=max_tokens, temperature=0.7,
        )
    except Exception as exc:
        logger.error("Summary generation failed: %s", exc)
        return ""
    return (text or "").strip()


async def generate_package_unit(
    package: LearningPackage,
    day: int,
    unit: int,
    context: UserContext | None = None,
) -> str:
    """Write one learning unit for a package, personalized by the context."""
    context_prompt = f"\n{render_context_prompt(context)}\n" if context is not None else ""
    system = f"""Du bist Leada, ein KI-gestützter Leadership-Coach.

Du generierst gerade Einheit {unit} von Tag {day}/{package.duration} für das Themenpaket "{package.title}".

RICHTLINIEN für Themenpaket-Einheiten:
- Jede Einheit umfasst 300-400 Wörter
- Beginne mit einer kurzen, motivierenden Einleitung zum heutigen Impuls
- Stelle den Kerninhalt praxisnah und konkret dar, mit Beispielen aus dem Führungsalltag
- Baue auf den vorherigen Tagen auf (Tag {day} von {package.duration})
- Dies ist Einheit {unit} von {package.units_per_day} für heute
- Verwende keine Emojis

STRUKTUR:
1. Begrüßung & Kontext (z.B. "Willkommen zu Tag {day}...")
2. Kerninhalt mit praktischen Tipps
3. Reflexionsfrage oder Umsetzungsaufgabe
{context_prompt}
Passe den Inhalt an das Profil des Nutzers an, wenn vorhanden."""

    try:
        text = await complete(
            system,
            f'Generiere jetzt die Einheit {unit} für Tag {day} des Themenpakets "{package.title}".',
            max_tokens=800,
            temperature=0.7,
        )
    except Exception as exc:
        logger.error("Unit generation failed for '%s' day %d/%d: %s", package.title, day, unit, exc)
        return FALLBACK_UNIT
    return (text or "").strip() or FALLBACK_UNIT
