"""
Leada Coaching Core — Profile Extraction & Merge.

After each chat turn the user/assistant message pair is sent to the LLM,
which answers with a JSON patch of newly disclosed profile facts. The patch
is parsed tolerantly (prose around the JSON, nulls, wrong types) and merged
into the stored profile. Extraction never raises: anything unusable counts
as "no new information".
"""

from __future__ import annotations

import dataclasses
import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from leada.core.context import profile_facts
from leada.core.llm import complete
from leada.data.models import Profile

logger = logging.getLogger(__name__)

_EXTRACTION_SYSTEM = """Du bist ein Informations-Extraktions-Assistent. Deine Aufgabe ist es, Profilinformationen aus Konversationen zu extrahieren.

Analysiere die folgenden Nachrichten und extrahiere ALLE neu erwähnten Profilinformationen des Nutzers.

REGELN:
- Extrahiere NUR explizit erwähnte Informationen
- Keine Vermutungen oder Interpretationen
- Wenn keine neuen Informationen vorhanden sind, setze alle Felder auf null

PROFILINFORMATIONEN ZUM EXTRAHIEREN:
- age: Alter (nur Zahl)
- gender: Geschlecht
- role: Berufliche Rolle/Position (z.B. "Teamleiter", "Abteilungsleiter", "CEO")
- industry: Branche (z.B. "IT", "Gesundheitswesen", "Automotive")
- teamSize: Teamgröße (nur Zahl)
- leadershipYears: Jahre Führungserfahrung (nur Zahl)
- goals: Ziele als Array (z.B. ["Bessere Delegation", "Konfliktlösung verbessern"])

AKTUELLES PROFIL:
{current_profile}

Antworte NUR mit einem JSON-Objekt im folgenden Format (keine zusätzlichen Erklärungen):
{{
  "age": number | null,
  "gender": string | null,
  "role": string | null,
  "industry": string | null,
  "teamSize": number | null,
  "leadershipYears": number | null,
  "goals": string[] | null,
  "hasNewInfo": boolean
}}

Setze hasNewInfo auf true, wenn mindestens eine neue Information gefunden wurde.
Wenn eine Information bereits im aktuellen Profil vorhanden ist, erwähne sie NICHT erneut."""


def _positive_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value > 0:
        return value
    return None


def _non_empty_str(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


class ExtractedProfileInfo(BaseModel):
    """Profile facts found in one exchange. Unusable values become None."""

    model_config = ConfigDict(populate_by_name=True)

    age: int | None = None
    gender: str | None = None
    role: str | None = None
    industry: str | None = None
    team_size: int | None = Field(default=None, alias="teamSize")
    leadership_years: int | None = Field(default=None, alias="leadershipYears")
    goals: list[str] = Field(default_factory=list)
    has_new_info: bool = Field(default=False, alias="hasNewInfo")

    @field_validator("age", "team_size", "leadership_years", mode="before")
    @classmethod
    def parse_number(cls, v: Any) -> int | None:
        return _positive_int(v)

    @field_validator("gender", "role", "industry", mode="before")
    @classmethod
    def parse_text(cls, v: Any) -> str | None:
        return _non_empty_str(v)

    @field_validator("goals", mode="before")
    @classmethod
    def parse_goals(cls, v: Any) -> list[str]:
        if not isinstance(v, list):
            return []
        return [g for g in (_non_empty_str(item) for item in v) if g]

    @field_validator("has_new_info", mode="before")
    @classmethod
    def parse_flag(cls, v: Any) -> bool:
        return v is True


NO_NEW_INFO = ExtractedProfileInfo()


def extract_json_object(raw: str) -> dict | None:
    """Find and parse the first balanced `{...}` object in `raw`.

    Brace matching skips braces inside JSON strings, so prose before or
    after the object (and code fences) is ignored. Returns None when no
    candidate parses to a dict.
    """
    start = raw.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(raw)):
            ch = raw[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    try:
                        parsed = json.loads(raw[start:i + 1])
                    except json.JSONDecodeError:
                        break
                    if isinstance(parsed, dict):
                        return parsed
                    break
        start = raw.find("{", start + 1)
    return None


def parse_extraction(raw: str) -> ExtractedProfileInfo:
    """Parse an LLM answer into ExtractedProfileInfo; garbage → no new info."""
    data = extract_json_object(raw or "")
    if data is None:
        logger.info("Profile extraction: no JSON object in response")
        return NO_NEW_INFO
    try:
        return ExtractedProfileInfo.model_validate(data)
    except ValidationError as exc:
        logger.warning("Profile extraction: invalid payload: %s", exc)
        return NO_NEW_INFO


async def extract_profile_information(
    user_message: str,
    assistant_message: str,
    current_profile: Profile | None = None,
) -> ExtractedProfileInfo:
    """Ask the LLM which profile facts the exchange disclosed. Never raises."""
    facts = profile_facts(current_profile)
    system = _EXTRACTION_SYSTEM.format(
        current_profile=(
            json.dumps(facts, ensure_ascii=False, indent=2)
            if facts else "Noch kein Profil vorhanden"
        ),
    )
    try:
        raw = await complete(
            system,
            f"USER: {user_message}\n\nASSISTENT: {assistant_message}",
            max_tokens=300,
            temperature=0.1,
        )
    except Exception as exc:
        logger.error("Profile extraction failed: %s", exc)
        return NO_NEW_INFO

    extracted = parse_extraction(raw)
    if extracted.has_new_info:
        logger.info(
            "Profile extraction found: %s",
            ", ".join(sorted(extracted.model_dump(exclude_defaults=True))),
        )
    return extracted


def merge_profile_info(profile: Profile, extracted: ExtractedProfileInfo) -> Profile:
    """Merge an extraction into a profile.

    Unchanged (same object) when `has_new_info` is false. Non-null scalars
    overwrite the stored value unconditionally. Goals are the existing goals
    followed by new ones not already present (exact string match).
    """
    if not extracted.has_new_info:
        return profile

    changes: dict[str, Any] = {}
    for name in ("age", "gender", "role", "industry", "team_size", "leadership_years"):
        value = getattr(extracted, name)
        if value is not None:
            changes[name] = value

    goals = list(profile.goals)
    for goal in extracted.goals:
        if goal not in goals:
            goals.append(goal)
    if goals != profile.goals:
        changes["goals"] = goals

    if not changes:
        return profile
    return dataclasses.replace(profile, **changes)


def is_profile_complete(profile: Profile | None) -> bool:
    """Deliberately low bar that gates onboarding: role OR team size known."""
    if profile is None:
        return False
    return bool(profile.role) or profile.team_size is not None
