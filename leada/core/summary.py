"""
Leada Coaching Core — Per-User Summaries.

Rolls a user's activity over a reporting period into a fact sheet and lets
the LLM turn it into a few sentences for the dashboard. Results go through
the Cache Store with a period-dependent TTL; a failed generation returns a
fixed fallback sentence that is not cached.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable

from leada.core.completion import summarize
from leada.core.context import profile_facts
from leada.core.periods import PERIOD_LABELS, Period, parse_period, period_start, ttl_for_period
from leada.data.activity_db import ChatDB, PackageDB, RoutineDB
from leada.data.cache_store import CACHE_TTL, CacheStore
from leada.data.db import UserDB
from leada.data.models import ChatType, MessageRole, ProgressStatus, RoutineStatus

logger = logging.getLogger(__name__)

DASHBOARD_KEY_PREFIX = "dashboard_summary_"
PROFILE_SUMMARY_KEY = "profile_summary"

FALLBACK_ACTIVITY_SUMMARY = "Aktivitätszusammenfassung konnte nicht generiert werden."
FALLBACK_PROFILE_SUMMARY = "Profil-Zusammenfassung konnte nicht generiert werden."

_ACTIVITY_SYSTEM = (
    "Du bist ein Experte für prägnante Aktivitätszusammenfassungen. "
    "Deine Antworten sind immer sehr kurz und präzise."
)
_PROFILE_SYSTEM = (
    "Du bist ein Experte für personalisierte Coaching-Zusammenfassungen. Deine "
    "Aufgabe ist es, präzise und einfühlsame Zusammenfassungen zu erstellen."
)


@dataclass
class PackageProgressStat:
    title: str
    current_day: int
    duration: int
    status: str
    progress_percent: int


@dataclass
class DashboardStats:
    period: str
    chat_sessions: int
    user_messages: int
    routine_completions: int
    active_packages: list[PackageProgressStat] = field(default_factory=list)


def _dumps(value) -> str:
    return json.dumps(value, ensure_ascii=False)


class SummaryService:
    """Dashboard and profile summaries for one user at a time."""

    def __init__(
        self,
        user_db: UserDB,
        chat_db: ChatDB,
        package_db: PackageDB,
        routine_db: RoutineDB,
        cache: CacheStore,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._users = user_db
        self._chats = chat_db
        self._packages = package_db
        self._routines = routine_db
        self._cache = cache
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # -- activity summary ---------------------------------------------------

    async def generate_activity_summary(self, user_id: str, period: str | Period) -> str:
        """At most ~40 words about the user's activity in the period.

        Raises:
            ValueError: unknown period.
        """
        period = parse_period(period)

        async def compute() -> str | None:
            return await self._compute_activity_summary(user_id, period)

        summary = await self._cache.get_or_compute(
            user_id, f"{DASHBOARD_KEY_PREFIX}{period.value}", compute, ttl_for_period(period),
        )
        return summary or FALLBACK_ACTIVITY_SUMMARY

    def activity_facts(self, user_id: str, period: Period) -> dict:
        start = period_start(period, self._clock())

        sessions = self._chats.list_sessions(user_id, since=start)
        package_progress = []
        for record in self._packages.list_progress(user_id, accessed_since=start):
            package = self._packages.get_package(record.package_id)
            if package is not None:
                package_progress.append(
                    {"title": package.title, "daysCompleted": record.current_day}
                )

        routine_completions = []
        for routine in self._routines.list_routines(user_id):
            count = len(self._routines.list_entries(
                routine.id, since=start.date().isoformat(), completed=True,
            ))
            if count:
                routine_completions.append({
                    "title": routine.title,
                    "completedCount": count,
                    "target": routine.target or 0,
                })

        topics = [
            s.title for s in sessions
            if s.title and s.chat_type == ChatType.GENERAL.value
        ][:10]

        return {
            "period": period.value,
            "chatSessions": len(sessions),
            "packageProgress": package_progress,
            "routineCompletions": routine_completions,
            "recentTopics": topics,
        }

    async def _compute_activity_summary(self, user_id: str, period: Period) -> str | None:
        facts = self.activity_facts(user_id, period)
        fact_sheet = (
            "Aktivitätsdaten:\n"
            f"- Chat-Sessions: {facts['chatSessions']}\n"
            f"- Themenpaket-Fortschritte: {_dumps(facts['packageProgress'])}\n"
            f"- Routine-Durchführungen: {_dumps(facts['routineCompletions'])}\n"
            f"- Themen: {', '.join(facts['recentTopics'])}"
        )
        instruction = (
            "Erstelle eine sehr knappe Zusammenfassung der Nutzer-Aktivitäten für den "
            f"Zeitraum: {PERIOD_LABELS[period]}.\n"
            "WICHTIG: Erstelle genau 1-3 kurze Sätze, maximal 40 Wörter insgesamt. "
            "Fokus auf: Schwerpunkte, Frequenz, Herausforderungen."
        )
        summary = await summarize(fact_sheet, instruction, system=_ACTIVITY_SYSTEM, max_tokens=120)
        if not summary:
            logger.warning("Activity summary for %s (%s) unavailable", user_id, period.value)
            return None
        return summary

    # -- profile summary ----------------------------------------------------

    async def generate_profile_summary(self, user_id: str) -> str:
        """At most ~100 words on the user's current situation. Cached 12 h."""

        async def compute() -> str | None:
            return await self._compute_profile_summary(user_id)

        summary = await self._cache.get_or_compute(
            user_id, PROFILE_SUMMARY_KEY, compute, CACHE_TTL.PROFILE_SUMMARY,
        )
        return summary or FALLBACK_PROFILE_SUMMARY

    def profile_summary_facts(self, user_id: str) -> dict:
        profile = self._users.get_profile(user_id)

        packages = []
        for record in self._packages.list_progress(user_id)[:5]:
            package = self._packages.get_package(record.package_id)
            if package is not None:
                packages.append({
                    "title": package.title,
                    "status": record.status,
                    "currentDay": record.current_day,
                    "totalDays": package.duration,
                })

        sessions = self._chats.list_sessions(user_id)[:10]

        month_ago = (self._clock() - timedelta(days=30)).date().isoformat()
        routines = []
        for routine in self._routines.list_routines(user_id, status=RoutineStatus.ACTIVE.value):
            done = len(self._routines.list_entries(routine.id, since=month_ago, completed=True))
            routines.append({
                "title": routine.title,
                "frequency": routine.frequency,
                "completionRate": round(done / routine.target * 100) if routine.target else done,
            })

        return {
            "profile": profile_facts(profile),
            "packages": packages,
            "chatActivity": {
                "totalSessions": len(sessions),
                "recentTopics": [s.title for s in sessions if s.title][:5],
            },
            "routines": routines,
        }

    async def _compute_profile_summary(self, user_id: str) -> str | None:
        facts = self.profile_summary_facts(user_id)
        fact_sheet = (
            "Nutzerdaten:\n"
            f"- Profil: {_dumps(facts['profile'])}\n"
            f"- Themenpakete: {_dumps(facts['packages'])}\n"
            f"- Chat-Aktivität: {_dumps(facts['chatActivity'])}\n"
            f"- Routinen: {_dumps(facts['routines'])}"
        )
        instruction = (
            "Erstelle eine präzise, personalisierte Zusammenfassung der aktuellen Situation "
            "eines Nutzers basierend auf den folgenden Daten. Schreibe zusammenhängenden "
            "Fließtext mit maximal 100 Wörtern. Fokus auf die aktuelle Situation, "
            "Schwerpunkte und Entwicklung."
        )
        summary = await summarize(fact_sheet, instruction, system=_PROFILE_SYSTEM, max_tokens=250)
        if not summary:
            logger.warning("Profile summary for %s unavailable", user_id)
            return None
        return summary

    # -- dashboard counters -------------------------------------------------

    def dashboard_stats(self, user_id: str, period: str | Period) -> DashboardStats:
        """Uncached counters shown next to the activity summary."""
        period = parse_period(period)
        start = period_start(period, self._clock())

        active_packages = []
        for record in self._packages.list_progress(user_id, status=ProgressStatus.ACTIVE.value):
            package = self._packages.get_package(record.package_id)
            if package is None:
                continue
            active_packages.append(PackageProgressStat(
                title=package.title,
                current_day=record.current_day,
                duration=package.duration,
                status=record.status,
                progress_percent=round(record.current_day / package.duration * 100),
            ))

        routine_completions = sum(
            len(self._routines.list_entries(r.id, since=start.date().isoformat(), completed=True))
            for r in self._routines.list_routines(user_id)
        )

        return DashboardStats(
            period=period.value,
            chat_sessions=len(self._chats.list_sessions(user_id, since=start)),
            user_messages=self._chats.count_messages(
                user_id, since=start, role=MessageRole.USER.value,
            ),
            routine_completions=routine_completions,
            active_packages=active_packages,
        )

    # -- invalidation -------------------------------------------------------

    def invalidate_dashboard_summaries(self, user_id: str) -> None:
        self._cache.delete_by_prefix(user_id, DASHBOARD_KEY_PREFIX)

    def invalidate_profile_summary(self, user_id: str) -> None:
        self._cache.delete(user_id, PROFILE_SUMMARY_KEY)
        logger.info("Invalidated profile summary for user %s", user_id)
