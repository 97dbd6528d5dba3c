"""Direct profile edits by the user, with summary invalidation."""

from __future__ import annotations

import logging

from leada.core.summary import SummaryService
from leada.data.db import UserDB
from leada.data.errors import NotFoundError
from leada.data.models import Profile

logger = logging.getLogger(__name__)

_TEXT_FIELDS = {"first_name", "gender", "role", "industry", "preferred_language"}
_EDITABLE = _TEXT_FIELDS | {"age", "team_size", "leadership_years", "goals"}

MIN_AGE = 18
MAX_AGE = 100


def _check_int(name: str, value, minimum: int, maximum: int | None = None) -> None:
    if value is None:
        return
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    if value < minimum or (maximum is not None and value > maximum):
        raise ValueError(f"{name} out of range: {value}")


def _validate(changes: dict) -> None:
    unknown = set(changes) - _EDITABLE
    if unknown:
        raise ValueError(f"Cannot update profile fields: {', '.join(sorted(unknown))}")
    _check_int("age", changes.get("age"), MIN_AGE, MAX_AGE)
    _check_int("team_size", changes.get("team_size"), 0)
    _check_int("leadership_years", changes.get("leadership_years"), 0)
    for name in _TEXT_FIELDS & set(changes):
        if changes[name] is not None and not isinstance(changes[name], str):
            raise ValueError(f"{name} must be a string")
    goals = changes.get("goals")
    if goals is not None and (
        not isinstance(goals, list) or not all(isinstance(g, str) for g in goals)
    ):
        raise ValueError("goals must be a list of strings")


class ProfileService:
    def __init__(self, user_db: UserDB, summaries: SummaryService | None = None) -> None:
        self._users = user_db
        self._summaries = summaries

    def _invalidate(self, user_id: str) -> None:
        if self._summaries is not None:
            self._summaries.invalidate_profile_summary(user_id)
            self._summaries.invalidate_dashboard_summaries(user_id)

    def get_profile(self, user_id: str) -> Profile:
        profile = self._users.get_profile(user_id)
        if profile is None:
            raise NotFoundError(f"Profile for user {user_id} not found")
        return profile

    def update_profile(self, user_id: str, /, **changes) -> Profile:
        """Overwrite the given fields. Goals replace the stored list."""
        _validate(changes)
        profile = self.get_profile(user_id)
        for name, value in changes.items():
            if name in _TEXT_FIELDS and isinstance(value, str):
                value = value.strip() or None
            setattr(profile, name, value)
        if not profile.preferred_language:
            from leada.config import settings

            profile.preferred_language = settings.DEFAULT_LANGUAGE
        if profile.goals is None:
            profile.goals = []

        self._users.save_profile(profile)
        self._invalidate(user_id)
        logger.info("Profile of %s updated: %s", user_id, ", ".join(sorted(changes)))
        return profile

    def set_individual_prompt(self, user_id: str, individual_prompt: str | None) -> None:
        """Set or clear (blank / None) the user's own prompt layer."""
        self.get_profile(user_id)
        text = (individual_prompt or "").strip() or None
        self._users.set_individual_prompt(user_id, text)
        self._invalidate(user_id)

    def complete_onboarding(self, user_id: str) -> None:
        self.get_profile(user_id)
        self._users.mark_onboarding_complete(user_id)
        self._invalidate(user_id)
