"""
Leada Coaching Core — Learning-Package Recommendations.

Combines the profile, topics mined from recent chat messages and the
user's package progress into one prompt and lets the LLM pick five
catalog titles. Resolution from titles back to ids is tolerant, and any
gap is backfilled, so the result always has five distinct ids whenever
the catalog has at least five packages.
"""

from __future__ import annotations

import logging
import re

from leada.core.context import profile_facts
from leada.core.llm import complete
from leada.data.activity_db import ChatDB, PackageDB
from leada.data.cache_store import CACHE_TTL, CacheStore
from leada.data.db import UserDB
from leada.data.models import LearningPackage, ProgressStatus

logger = logging.getLogger(__name__)

RECOMMENDATION_COUNT = 5
TOPIC_SOURCE_MESSAGES = 50
CACHE_KEY = "recommendations"

_LIST_MARKER = re.compile(r"^\s*(?:[-*•]+|\d+[.)]|#+)\s*")
_WRAPPING = "\"'“”„`*"

_RECOMMENDER_SYSTEM = (
    "Du bist ein Experte für Führungskräfteentwicklung und Lernpfad-Empfehlungen."
)
_TOPICS_SYSTEM = "Du bist ein Experte für die Analyse von Führungsthemen."


def clean_title_line(line: str) -> str:
    """Strip list markers, quotes and emphasis around a returned title."""
    line = _LIST_MARKER.sub("", line.strip())
    return line.strip(_WRAPPING + " ").strip()


def resolve_titles(lines: list[str], catalog: list[LearningPackage]) -> list[str]:
    """Map LLM lines to distinct package ids, in line order.

    Case-insensitive exact match first, then containment (the line
    contains a catalog title, or a longer title contains the line).
    Unresolvable lines are skipped.
    """
    resolved: list[str] = []
    by_title = {p.title.lower(): p for p in catalog}

    for raw in lines:
        line = clean_title_line(raw).lower()
        if not line:
            continue
        match = by_title.get(line)
        if match is None:
            match = next((p for p in catalog if p.title.lower() in line), None)
        if match is None and len(line) >= 4:
            match = next((p for p in catalog if line in p.title.lower()), None)
        if match is not None and match.id not in resolved:
            resolved.append(match.id)
        if len(resolved) == RECOMMENDATION_COUNT:
            break
    return resolved


def backfill(
    chosen: list[str], catalog: list[LearningPackage], started_ids: set[str],
) -> list[str]:
    """Fill up to five ids with packages not yet chosen, unstarted ones first."""
    result = list(chosen[:RECOMMENDATION_COUNT])
    remaining = [p for p in catalog if p.id not in result]
    remaining.sort(key=lambda p: p.id in started_ids)
    for package in remaining:
        if len(result) >= RECOMMENDATION_COUNT:
            break
        result.append(package.id)
    return result


class RecommendationService:
    def __init__(
        self,
        user_db: UserDB,
        chat_db: ChatDB,
        package_db: PackageDB,
        cache: CacheStore,
    ) -> None:
        self._users = user_db
        self._chats = chat_db
        self._packages = package_db
        self._cache = cache

    async def extract_chat_topics(self, user_id: str) -> list[str]:
        """5-7 topics from the user's last 50 messages; [] when unavailable."""
        messages = self._chats.user_messages(user_id, limit=TOPIC_SOURCE_MESSAGES)
        if not messages:
            return []

        prompt = (
            "Analysiere die folgenden Nutzer-Nachrichten und extrahiere die 5-7 wichtigsten "
            "diskutierten Themen und Herausforderungen. Gib nur die Themen als "
            "komma-separierte Liste zurück, ohne Nummerierung oder Erklärungen.\n\n"
            "Nachrichten:\n" + "\n".join(m.content for m in messages) + "\n\nThemen:"
        )
        try:
            raw = await complete(_TOPICS_SYSTEM, prompt, max_tokens=100, temperature=0.3)
        except Exception as exc:
            logger.error("Topic extraction failed for %s: %s", user_id, exc)
            return []
        return [t.strip() for t in (raw or "").split(",") if t.strip()]

    def _build_prompt(
        self,
        user_id: str,
        topics: list[str],
        catalog: list[LearningPackage],
        active_titles: list[str],
        completed_titles: list[str],
    ) -> str:
        facts = profile_facts(self._users.get_profile(user_id))
        profile_lines = []
        if "role" in facts:
            profile_lines.append(f"Rolle: {facts['role']}")
        if "industry" in facts:
            profile_lines.append(f"Branche: {facts['industry']}")
        if "team_size" in facts:
            profile_lines.append(f"Teamgröße: {facts['team_size']}")
        if "leadership_years" in facts:
            profile_lines.append(f"Führungserfahrung: {facts['leadership_years']} Jahre")
        if "goals" in facts:
            profile_lines.append(f"Ziele: {', '.join(facts['goals'])}")

        sections = [
            "Analysiere das folgende Nutzerprofil und empfehle die 5 passendsten "
            "Themenpakete aus der unten stehenden Liste.",
            "## NUTZERPROFIL:\n" + ("\n".join(profile_lines) or "Keine Angaben"),
        ]
        if topics:
            sections.append("## DISKUTIERTE THEMEN:\n" + ", ".join(topics))
        if active_titles:
            sections.append("## AKTIVE THEMENPAKETE:\n" + ", ".join(active_titles))
        if completed_titles:
            sections.append("## ABGESCHLOSSENE THEMENPAKETE:\n" + ", ".join(completed_titles))
        sections.append("## VERFÜGBARE THEMENPAKETE:\n" + "\n".join(
            f"- {p.title} ({p.category or 'Allgemein'}): {p.description}" for p in catalog
        ))
        sections.append(
            "## AUFGABE:\n"
            "Wähle die 5 Themenpakete aus, die am besten zu diesem Nutzer passen. Berücksichtige:\n"
            "1. Die aktuelle Rolle und Erfahrung\n"
            "2. Diskutierte Herausforderungen in Chats\n"
            "3. Noch nicht gestartete Themenpakete (vermeide aktive/abgeschlossene)\n"
            "4. Logische Progression (vom Grundlegenden zum Fortgeschrittenen)\n"
            "5. Vielfalt der Kategorien\n\n"
            "Gib NUR die exakten Titel der 5 empfohlenen Themenpakete zurück, jeweils in "
            "einer neuen Zeile. Keine Nummerierung, keine Erklärungen."
        )
        return "\n\n".join(sections)

    async def _rank(self, user_id: str) -> list[str] | None:
        """LLM-ranked, backfilled ids; None if the catalog is empty or the LLM fails."""
        catalog = self._packages.list_packages()
        if not catalog:
            return None

        progress = self._packages.list_progress(user_id)
        titles = {p.id: p.title for p in catalog}
        active = [titles[r.package_id] for r in progress
                  if r.status == ProgressStatus.ACTIVE.value and r.package_id in titles]
        completed = [titles[r.package_id] for r in progress
                     if r.status == ProgressStatus.COMPLETED.value and r.package_id in titles]
        started = {r.package_id for r in progress}

        topics = await self.extract_chat_topics(user_id)
        prompt = self._build_prompt(user_id, topics, catalog, active, completed)
        try:
            raw = await complete(_RECOMMENDER_SYSTEM, prompt, max_tokens=200, temperature=0.5)
        except Exception as exc:
            logger.error("Recommendation ranking failed for %s: %s", user_id, exc)
            return None

        chosen = resolve_titles((raw or "").splitlines(), catalog)
        if len(chosen) < RECOMMENDATION_COUNT:
            logger.info(
                "Resolved %d of %d recommended titles for %s, backfilling",
                len(chosen), RECOMMENDATION_COUNT, user_id,
            )
        return backfill(chosen, catalog, started)

    def _fallback(self, user_id: str) -> list[str]:
        catalog = self._packages.list_packages()
        started = {r.package_id for r in self._packages.list_progress(user_id)}
        return backfill([], catalog, started)

    async def recommend(self, user_id: str) -> list[str]:
        """Five distinct package ids (all ids when the catalog is smaller). Uncached."""
        ranked = await self._rank(user_id)
        return ranked if ranked is not None else self._fallback(user_id)

    async def get_recommendations(self, user_id: str) -> list[str]:
        """`recommend()` through the Cache Store (24 h). Fallback lists are not cached."""

        async def compute() -> list[str] | None:
            return await self._rank(user_id)

        ranked = await self._cache.get_or_compute(
            user_id, CACHE_KEY, compute, CACHE_TTL.RECOMMENDATIONS,
        )
        return ranked if ranked is not None else self._fallback(user_id)
