"""
Leada Coaching Core — Company Analytics.

Aggregates the activity of every user in a company over a reporting
period: user engagement, learning-package popularity, chat volume and
routine adoption. Both the metrics and the LLM summary of them are cached
per company with the period's TTL.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from leada.core.completion import summarize
from leada.core.periods import PERIOD_LABELS, Period, parse_period, period_start, ttl_for_period
from leada.data.activity_db import ChatDB, PackageDB, RoutineDB
from leada.data.cache_store import CacheStore
from leada.data.db import UserDB
from leada.data.models import ChatType, ProgressStatus, RoutineStatus

logger = logging.getLogger(__name__)

TOP_N = 10
FALLBACK_COMPANY_SUMMARY = "Zusammenfassung konnte nicht generiert werden."

_COMPANY_SYSTEM = (
    "Du bist ein Experte für die Analyse von Unternehmens-Lerndaten. "
    "Deine Antworten sind präzise und datenfokussiert."
)


def _top(stats: dict[str, dict], value_fn: Callable[[dict], int], value_key: str) -> list[dict]:
    ranked = [
        {"title": title, "user_count": len(s["users"]), value_key: value_fn(s)}
        for title, s in stats.items()
    ]
    ranked.sort(key=lambda item: item["user_count"], reverse=True)
    return ranked[:TOP_N]


class CompanyAnalyticsService:
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

    def compute_company_analytics(self, company_id: str, period: str | Period) -> dict[str, Any]:
        """Uncached metrics for a company over the period.

        Raises:
            ValueError: unknown period.
        """
        period = parse_period(period)
        start = period_start(period, self._clock())
        start_iso = start.isoformat(timespec="seconds")
        start_date = start.date().isoformat()

        users = self._users.list_users(company_id)
        user_ids = [u.id for u in users]

        # Active = union of users with chat activity and users with package activity
        chat_active: set[str] = set()
        package_active: set[str] = set()
        sessions = []
        total_messages = 0
        for uid in user_ids:
            user_sessions = self._chats.list_sessions(uid, since=start)
            if user_sessions:
                chat_active.add(uid)
            sessions.extend(user_sessions)
            total_messages += self._chats.count_messages(uid, since=start)
            if self._packages.list_progress(uid, accessed_since=start):
                package_active.add(uid)

        # Packages
        all_progress = [p for uid in user_ids for p in self._packages.list_progress(uid)]
        package_stats: dict[str, dict] = {}
        for record in all_progress:
            if not record.last_accessed_at or record.last_accessed_at < start_iso:
                continue
            package = self._packages.get_package(record.package_id)
            if package is None:
                continue
            s = package_stats.setdefault(package.title, {"users": set(), "total": 0.0, "count": 0})
            s["users"].add(record.user_id)
            s["total"] += record.current_day / package.duration * 100
            s["count"] += 1

        # Routines
        all_routines = [r for uid in user_ids for r in self._routines.list_routines(uid)]
        routine_stats: dict[str, dict] = {}
        for routine in all_routines:
            completions = len(self._routines.list_entries(
                routine.id, since=start_date, completed=True,
            ))
            s = routine_stats.setdefault(
                routine.title, {"users": set(), "completions": 0, "targets": 0},
            )
            if completions:
                s["users"].add(routine.user_id)
            s["completions"] += completions
            s["targets"] += routine.target or 0
        routine_stats = {t: s for t, s in routine_stats.items() if s["users"]}

        topics = [
            s.title for s in sessions if s.title and s.chat_type == ChatType.GENERAL.value
        ][:20]

        return {
            "period": period.value,
            "user_metrics": {
                "total_users": len(users),
                "active_users": len(chat_active | package_active),
                "new_users": sum(1 for u in users if u.created_at >= start_iso),
            },
            "package_metrics": {
                "total_progress": len(all_progress),
                "active_progress": sum(
                    1 for p in all_progress if p.status == ProgressStatus.ACTIVE.value
                ),
                "completed_progress": sum(
                    1 for p in all_progress if p.status == ProgressStatus.COMPLETED.value
                ),
                "popular_packages": _top(
                    package_stats, lambda s: round(s["total"] / s["count"]), "avg_completion",
                ),
            },
            "chat_metrics": {
                "total_sessions": len(sessions),
                "total_messages": total_messages,
                "avg_messages_per_session": (
                    round(total_messages / len(sessions)) if sessions else 0
                ),
                "top_topics": topics,
            },
            "routine_metrics": {
                "total_routines": len(all_routines),
                "active_routines": sum(
                    1 for r in all_routines if r.status == RoutineStatus.ACTIVE.value
                ),
                "popular_routines": _top(
                    routine_stats,
                    lambda s: round(s["completions"] / s["targets"] * 100) if s["targets"] else 0,
                    "avg_completion_rate",
                ),
            },
        }

    async def get_company_analytics(self, company_id: str, period: str | Period) -> dict[str, Any]:
        period = parse_period(period)

        async def compute() -> dict[str, Any]:
            return self.compute_company_analytics(company_id, period)

        return await self._cache.get_or_compute(
            company_id, f"company_analytics_{period.value}", compute, ttl_for_period(period),
        )

    async def generate_company_analytics_summary(
        self, company_id: str, period: str | Period,
    ) -> str:
        """Three to five sentences (at most ~80 words) about the company's activity."""
        period = parse_period(period)

        async def compute() -> str | None:
            analytics = await self.get_company_analytics(company_id, period)
            return await self._summarize(analytics, period)

        summary = await self._cache.get_or_compute(
            company_id, f"company_summary_{period.value}", compute, ttl_for_period(period),
        )
        return summary or FALLBACK_COMPANY_SUMMARY

    async def _summarize(self, analytics: dict[str, Any], period: Period) -> str | None:
        users = analytics["user_metrics"]
        packages = analytics["package_metrics"]
        chat = analytics["chat_metrics"]
        popular = ", ".join(
            f"{p['title']} ({p['user_count']} Nutzer)" for p in packages["popular_packages"][:3]
        )
        fact_sheet = (
            "Daten:\n"
            f"- Nutzer: {users['total_users']} gesamt, {users['active_users']} aktiv, "
            f"{users['new_users']} neu\n"
            f"- Themenpakete: {packages['active_progress']} aktiv, "
            f"{packages['completed_progress']} abgeschlossen\n"
            f"- Beliebteste Themenpakete: {popular}\n"
            f"- Chat-Aktivität: {chat['total_sessions']} Sessions, "
            f"{chat['total_messages']} Nachrichten\n"
            f"- Routinen: {analytics['routine_metrics']['active_routines']} aktiv"
        )
        instruction = (
            "Erstelle eine prägnante Zusammenfassung der Unternehmens-Aktivitäten für den "
            f"Zeitraum: {PERIOD_LABELS[period]}.\n"
            "WICHTIG: Erstelle 3-5 kurze Sätze, maximal 80 Wörter insgesamt. "
            "Fokus auf: Engagement-Level, beliebte Themen, Trends."
        )
        summary = await summarize(fact_sheet, instruction, system=_COMPANY_SYSTEM, max_tokens=200)
        return summary or None

    def list_company_users(self, company_id: str) -> list[dict[str, Any]]:
        """Admin overview: one row per company user, newest first."""
        rows = []
        for user in self._users.list_users(company_id):
            profile = self._users.get_profile(user.id)
            progress = self._packages.list_progress(user.id)
            sessions = self._chats.list_sessions(user.id)
            last_active = max((s.updated_at for s in sessions), default=None)
            rows.append({
                "id": user.id,
                "email": user.email,
                "first_name": profile.first_name if profile else None,
                "created_at": user.created_at,
                "last_active": last_active,
                "package_count": len(progress),
                "completed_package_count": sum(
                    1 for p in progress if p.status == ProgressStatus.COMPLETED.value
                ),
                "chat_session_count": len(sessions),
            })
        return rows
