"""
Leada Coaching Core — Weekly Reports.

A weekly report snapshots the last seven days of one user: leadership
topics mentioned in their own messages, progress of active learning
packages, completions of active routines and package suggestions derived
from the topics. Reports are stored and never recomputed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable

from leada.data.activity_db import ChatDB, PackageDB, ReportDB, RoutineDB
from leada.data.errors import NotFoundError
from leada.data.models import (
    ProgressStatus,
    ReportPackageProgress,
    ReportRoutineProgress,
    RoutineStatus,
    WeeklyReport,
)

logger = logging.getLogger(__name__)

REPORT_DAYS = 7
DEFAULT_ROUTINE_TARGET = 7

# Tracked topics in report order
TOPIC_KEYWORDS = ("Feedback", "Konflikt", "Zeitmanagement", "Team", "Führung")

# Catalog titles suggested for a topic
TOPIC_RECOMMENDATIONS = {
    "Feedback": "Konstruktives Feedback geben",
    "Konflikt": "Konflikte im Team lösen",
    "Zeitmanagement": "Effektives Zeitmanagement",
}


def find_topics(messages: list[str]) -> list[str]:
    """Tracked keywords that occur (case-insensitively) in any message."""
    lowered = [m.lower() for m in messages]
    return [kw for kw in TOPIC_KEYWORDS if any(kw.lower() in m for m in lowered)]


def _percent(part: int, whole: int | None) -> int:
    if not whole or whole <= 0:
        return 0
    return round(part / whole * 100)


class ReportService:
    def __init__(
        self,
        report_db: ReportDB,
        chat_db: ChatDB,
        package_db: PackageDB,
        routine_db: RoutineDB,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._reports = report_db
        self._chats = chat_db
        self._packages = package_db
        self._routines = routine_db
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _package_progress(self, user_id: str) -> list[ReportPackageProgress]:
        result = []
        for record in self._packages.list_progress(user_id, status=ProgressStatus.ACTIVE.value):
            package = self._packages.get_package(record.package_id)
            if package is None:
                logger.warning(
                    "Progress %s points to missing package %s", record.id, record.package_id,
                )
                continue
            result.append(ReportPackageProgress(
                title=package.title,
                current_day=record.current_day,
                total_days=package.duration,
                progress=_percent(record.current_day, package.duration),
            ))
        return result

    def _routine_progress(self, user_id: str, since: str) -> list[ReportRoutineProgress]:
        result = []
        for routine in self._routines.list_routines(user_id, status=RoutineStatus.ACTIVE.value):
            done = len(self._routines.list_entries(routine.id, since=since, completed=True))
            result.append(ReportRoutineProgress(
                title=routine.title,
                completed_days=done,
                target_days=routine.target or DEFAULT_ROUTINE_TARGET,
                progress=_percent(done, routine.target),
            ))
        return result

    def generate_weekly_report(self, user_id: str) -> WeeklyReport:
        """Build and store the report for the seven days up to now."""
        now = self._clock()
        week_start = now - timedelta(days=REPORT_DAYS)

        messages = self._chats.user_messages(user_id, since=week_start)
        topics = find_topics([m.content for m in messages])
        recommendations = [
            TOPIC_RECOMMENDATIONS[t] for t in topics if t in TOPIC_RECOMMENDATIONS
        ]

        report = self._reports.add_report(
            user_id,
            week_start,
            now,
            topics,
            self._package_progress(user_id),
            self._routine_progress(user_id, week_start.date().isoformat()),
            recommendations,
        )
        logger.info(
            "Weekly report for %s: %d topics from %d messages",
            user_id, len(topics), len(messages),
        )
        return report

    def list_reports(self, user_id: str) -> list[WeeklyReport]:
        return self._reports.list_reports(user_id)

    def latest_report(self, user_id: str) -> WeeklyReport:
        report = self._reports.latest_report(user_id)
        if report is None:
            raise NotFoundError(f"No weekly report for user {user_id}")
        return report
