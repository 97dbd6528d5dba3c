"""Routine management: CRUD, daily check-ins and completion stats."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from leada.core.routine_suggestions import RoutineSuggestion
from leada.data.activity_db import RoutineDB
from leada.data.errors import NotFoundError
from leada.data.models import Routine, RoutineEntry, RoutineFrequency, RoutineStatus

logger = logging.getLogger(__name__)

RECENT_ENTRIES = 30

_EDITABLE = {"title", "description", "frequency", "target", "status"}


@dataclass
class RoutineStats:
    last_week: int
    last_month: int
    total: int


def _validate(frequency: str | None = None, status: str | None = None, target=None) -> None:
    if frequency is not None and frequency not in {f.value for f in RoutineFrequency}:
        raise ValueError(f"Unknown routine frequency: {frequency!r}")
    if status is not None and status not in {s.value for s in RoutineStatus}:
        raise ValueError(f"Unknown routine status: {status!r}")
    if target is not None and (not isinstance(target, int) or target < 1):
        raise ValueError(f"Routine target must be a positive integer, got {target!r}")


class RoutineService:
    def __init__(
        self, routine_db: RoutineDB, clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._routines = routine_db
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def _owned(self, user_id: str, routine_id: str) -> Routine:
        routine = self._routines.get_routine(routine_id, user_id=user_id)
        if routine is None:
            raise NotFoundError(f"Routine {routine_id} not found")
        return routine

    def list_routines(self, user_id: str, status: str | None = None) -> list[Routine]:
        """Routines with their most recent entries attached."""
        routines = self._routines.list_routines(user_id, status=status)
        for routine in routines:
            routine.entries = self._routines.list_entries(routine.id)[:RECENT_ENTRIES]
        return routines

    def create_routine(
        self,
        user_id: str,
        title: str,
        description: str | None = None,
        frequency: str = RoutineFrequency.DAILY.value,
        target: int | None = None,
    ) -> Routine:
        title = title.strip()
        if not title:
            raise ValueError("Routine title must not be empty")
        _validate(frequency=frequency, target=target)
        return self._routines.add_routine(user_id, title, description, frequency, target)

    def accept_suggestion(self, user_id: str, suggestion: RoutineSuggestion) -> Routine:
        """Turn a coach-proposed routine into a stored one."""
        routine = self.create_routine(
            user_id,
            suggestion.title,
            suggestion.description,
            suggestion.frequency,
            suggestion.target,
        )
        logger.info("User %s accepted routine suggestion '%s'", user_id, routine.title)
        return routine

    def update_routine(self, user_id: str, routine_id: str, /, **changes) -> Routine:
        """Apply field changes; unknown or non-editable fields raise ValueError."""
        unknown = set(changes) - _EDITABLE
        if unknown:
            raise ValueError(f"Cannot update routine fields: {', '.join(sorted(unknown))}")
        _validate(
            frequency=changes.get("frequency"),
            status=changes.get("status"),
            target=changes.get("target"),
        )
        routine = self._owned(user_id, routine_id)
        for name, value in changes.items():
            setattr(routine, name, value)
        return self._routines.save_routine(routine)

    def delete_routine(self, user_id: str, routine_id: str) -> None:
        if not self._routines.delete_routine(routine_id, user_id):
            raise NotFoundError(f"Routine {routine_id} not found")

    def log_entry(
        self,
        user_id: str,
        routine_id: str,
        entry_date: str | date,
        completed: bool = True,
        note: str | None = None,
    ) -> RoutineEntry:
        """Record a check-in. `entry_date` is a date or an ISO `YYYY-MM-DD` string."""
        self._owned(user_id, routine_id)
        if isinstance(entry_date, str):
            entry_date = date.fromisoformat(entry_date[:10])
        return self._routines.add_entry(routine_id, entry_date.isoformat(), completed, note)

    def routine_stats(self, user_id: str, routine_id: str) -> RoutineStats:
        """Completed check-ins in the last 7 days, last 30 days and overall."""
        self._owned(user_id, routine_id)
        today = self._clock().date()
        completed = self._routines.list_entries(routine_id, completed=True)
        week_ago = (today - timedelta(days=7)).isoformat()
        month_ago = (today - timedelta(days=30)).isoformat()
        return RoutineStats(
            last_week=sum(1 for e in completed if e.date >= week_ago),
            last_month=sum(1 for e in completed if e.date >= month_ago),
            total=len(completed),
        )
