"""
Leada Coaching Core — Prompt Hierarchy.

Three instruction levels are stacked into one system prompt:

1. System prompt: coach persona and hard constraints (word limit,
   language, no emoji). Always first and verbatim.
2. Corporate prompt: optional company-wide guidelines.
3. Individual prompt: optional per-user preferences.

Lower levels are appended under labeled headings with a disclaimer that
they may specialize but not override the levels above. Nothing checks
that they actually comply; that is left to the model's instruction
following.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from leada.data.db import CompanyDB, UserDB
from leada.data.errors import NotFoundError

logger = logging.getLogger(__name__)

ROUTINE_BLOCK_EXAMPLE = """[ROUTINE_VORSCHLAG]
Titel: Wöchentliche 1:1-Gespräche
Beschreibung: Jede Woche ein 30-minütiges Einzelgespräch mit jedem Teammitglied
Frequenz: wöchentlich
Ziel: 1
[/ROUTINE_VORSCHLAG]"""

BASE_SYSTEM_PROMPT = f"""# Leada Coach

**Rolle & Mission**
Du bist *Leada*, ein KI-gestützter Lern- und Umsetzungs-Coach für Führungskräfte.
Du hilfst Nutzer:innen dabei, durch Microlearning-Themenpakete neue Kompetenzen
zu erwerben, konkrete Alltagssituationen mit praxisnahen Tipps zu meistern und
Routinen zu setzen, zu verfolgen und zu reflektieren.

## Harte Regeln (gelten immer)
* Antworte mit höchstens 300 Wörtern. Lerneinheiten dürfen bis zu 400 Wörter haben.
* Antworte ausschließlich in der eingestellten Sprache des Nutzers.
* Verwende keine Emojis.
* Erfinde keine Fakten über den Nutzer. Nutze nur den bereitgestellten Kontext.

## Kernprinzipien
1. **Themenpakete**: 14 Tage, zwei Micro-Learning-Einheiten pro Tag. Jede Einheit
   endet mit einer Reflexions- oder Umsetzungsaufgabe.
2. **Personalisierung**: Beziehe Rolle, Teamgröße, Branche, Führungserfahrung und
   Ziele aus dem Nutzerprofil ein. Stelle bekannte Fragen nie zweimal.
3. **Dokumente**: Wenn hochgeladene Dokumente im Kontext stehen, nutze sie aktiv
   und erwähne kurz, worauf du dich beziehst.
4. **Ad-hoc-Coaching**: Gib 3-5 konkrete Handlungsschritte und schließe mit einer
   Reflexionsfrage.
5. **Stil**: Klar, professionell, freundlich und motivierend. Passe Satzlänge und
   Formalität behutsam an den Nutzer an, ohne ihn zu imitieren.

## Routine-Vorschläge
Wenn eine Aktivität sich als wiederkehrende Gewohnheit eignet und wirklich zum
Kontext passt, schlage sie als Routine vor. Verwende genau dieses Format
(Frequenz: täglich, wöchentlich, monatlich oder individuell; Ziel ist optional):

{ROUTINE_BLOCK_EXAMPLE}
"""


def get_system_prompt(language: str = "Deutsch") -> str:
    """Base prompt with the language rule in front."""
    return (
        "**WICHTIGSTE REGEL - SPRACHEINSTELLUNG:**\n"
        f"Der Nutzer kommuniziert bevorzugt auf: {language}\n"
        f"**Du MUSST ALLE deine Antworten ausschließlich auf {language} verfassen.**\n\n"
        "---\n\n"
        + BASE_SYSTEM_PROMPT
    )


def get_onboarding_prompt(language: str = "Deutsch") -> str:
    """System prompt for the onboarding chat."""
    return f"""# Leada Onboarding-Coach

**WICHTIGSTE REGEL - SPRACHEINSTELLUNG:**
Der Nutzer kommuniziert bevorzugt auf: {language}
**Du MUSST ALLE deine Antworten ausschließlich auf {language} verfassen.**

---

Du bist der Onboarding-Coach von Leada. Begrüße neue Nutzer warmherzig,
erfasse schrittweise ihr Profil und stelle nebenbei die Funktionen vor.

## Informationen, die du im Gespräch erfragst
- Vorname
- Rolle/Position
- Branche
- Teamgröße (direkte Mitarbeiter)
- Führungserfahrung in Jahren
- Aktuelle Ziele und Herausforderungen (3-5 Punkte)

Stelle höchstens 2-3 Fragen pro Nachricht und reagiere auf die Antworten.

## Funktionen, die du vorstellst
- Themenpakete: 14-tägige Lernprogramme mit zwei kurzen Einheiten pro Tag
- Ad-hoc-Beratung: neue Chats für konkrete Situationen aus dem Arbeitsalltag
- Profil-Reflexion: Chat für persönliche Entwicklung und Zielverfolgung
- KI-Briefing und Dashboard: Zusammenfassungen und Fortschrittsübersicht

Halte deine Nachrichten kurz, verwende keine Emojis und schließe mit einem
konkreten nächsten Schritt ab.
"""


_CORPORATE_HEADER = (
    "\n\n---\n\n## UNTERNEHMENSKONTEXT\n\n"
    "**WICHTIG**: Die folgenden unternehmensweiten Richtlinien ergänzen die obigen "
    "System-Prinzipien. Sie können spezialisieren und Kontext hinzufügen, aber NICHT "
    "die System-Constraints überschreiben (z.B. Wortlimit, Spracheinstellung, "
    "No-Emoji-Regel).\n\n"
)

_INDIVIDUAL_HEADER = (
    "\n\n---\n\n## INDIVIDUELLE PRÄFERENZEN\n\n"
    "**WICHTIG**: Die folgenden individuellen Präferenzen ergänzen die System- und "
    "Unternehmens-Richtlinien. Sie können weiter spezialisieren, aber NICHT die "
    "übergeordneten Constraints überschreiben.\n\n"
)


@dataclass
class PromptHierarchy:
    system_prompt: str
    corporate_prompt: str | None
    individual_prompt: str | None
    combined_prompt: str


def _present(text: str | None) -> str | None:
    if text is None or not text.strip():
        return None
    return text


def build_prompt_hierarchy(
    system_prompt: str,
    corporate_prompt: str | None = None,
    individual_prompt: str | None = None,
) -> str:
    """Combine the three levels into one instruction string.

    `system_prompt` is always a verbatim prefix of the result; the corporate
    section (if any) precedes the individual section (if any). Blank
    overrides count as absent.
    """
    combined = system_prompt

    corporate_prompt = _present(corporate_prompt)
    if corporate_prompt is not None:
        combined += _CORPORATE_HEADER + corporate_prompt

    individual_prompt = _present(individual_prompt)
    if individual_prompt is not None:
        combined += _INDIVIDUAL_HEADER + individual_prompt

    return combined


def get_user_prompt_hierarchy(
    user_id: str,
    user_db: UserDB,
    company_db: CompanyDB,
    language: str | None = None,
    base_prompt: str | None = None,
) -> PromptHierarchy:
    """Load a user's corporate and individual overrides and combine them.

    Args:
        language: Overrides the profile's preferred language.
        base_prompt: Level-1 prompt to use instead of the coach prompt
            (e.g. the onboarding prompt).

    Raises:
        NotFoundError: the user does not exist.
    """
    user = user_db.get_user(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")

    profile = user_db.get_profile(user_id)
    if language is None:
        language = profile.preferred_language if profile else "Deutsch"

    system_prompt = base_prompt if base_prompt is not None else get_system_prompt(language)

    corporate_prompt = None
    if user.company_id:
        company = company_db.get_company(user.company_id)
        if company is not None:
            corporate_prompt = _present(company.corporate_prompt)

    individual_prompt = _present(profile.individual_prompt) if profile else None

    logger.debug(
        "Prompt hierarchy for %s: corporate=%s, individual=%s",
        user_id, corporate_prompt is not None, individual_prompt is not None,
    )
    return PromptHierarchy(
        system_prompt=system_prompt,
        corporate_prompt=corporate_prompt,
        individual_prompt=individual_prompt,
        combined_prompt=build_prompt_hierarchy(
            system_prompt, corporate_prompt, individual_prompt,
        ),
    )
