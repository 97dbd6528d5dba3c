"""
Leada Coaching Core — Context Aggregator.

Assembles everything known about a user into one structured context for a
completion call: profile facts, active learning packages, active routines
with this week's completions, uploaded document text and the inferred
language style. Pure read; nothing is cached because it feeds live chat
turns.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from leada.core.language_style import RECENT_MESSAGES, LanguageStyle, analyze_language_style
from leada.data.activity_db import ChatDB, PackageDB, RoutineDB
from leada.data.db import CompanyDB, DocumentDB, UserDB
from leada.data.errors import NotFoundError
from leada.data.models import (
    DocumentCategory,
    MessageRole,
    Profile,
    ProgressStatus,
    RoutineStatus,
)

logger = logging.getLogger(__name__)

ROUTINE_WINDOW_DAYS = 7

# Per document; stored text stays complete
MAX_DOCUMENT_CHARS = 8000

# Profile field -> label used in the prompt section, in display order
_PROFILE_LABELS: dict[str, str] = {
    "first_name": "Vorname",
    "age": "Alter",
    "gender": "Geschlecht",
    "role": "Rolle",
    "industry": "Branche",
    "team_size": "Teamgröße",
    "leadership_years": "Führungserfahrung (Jahre)",
    "goals": "Ziele",
}


@dataclass
class PackageContext:
    title: str
    current_day: int
    total_days: int


@dataclass
class RoutineContext:
    title: str
    completed_this_week: int
    target: int | None


@dataclass
class UserContext:
    profile: dict[str, Any] = field(default_factory=dict)
    active_packages: list[PackageContext] = field(default_factory=list)
    active_routines: list[RoutineContext] = field(default_factory=list)
    documents_text: str = ""
    language_style: LanguageStyle | None = None
    onboarding_complete: bool = False


def profile_facts(profile: Profile | None) -> dict[str, Any]:
    """Profile projection with every null or empty field left out."""
    if profile is None:
        return {}
    facts: dict[str, Any] = {}
    for name in _PROFILE_LABELS:
        value = getattr(profile, name)
        if value is None or value == "" or value == []:
            continue
        facts[name] = list(value) if isinstance(value, list) else value
    return facts


def render_context_prompt(context: UserContext) -> str:
    """Render the context as the prompt section sent after the system prompt."""
    parts = ["# Nutzerprofil"]
    for name, label in _PROFILE_LABELS.items():
        if name not in context.profile:
            continue
        value = context.profile[name]
        if isinstance(value, list):
            value = ", ".join(value)
        parts.append(f"- {label}: {value}")
    parts.append(f"- Onboarding abgeschlossen: {'ja' if context.onboarding_complete else 'nein'}")

    if context.active_packages:
        parts.append("\n# Aktive Themenpakete")
        for pkg in context.active_packages:
            parts.append(f"- {pkg.title} (Tag {pkg.current_day}/{pkg.total_days})")

    if context.active_routines:
        parts.append("\n# Aktive Routinen")
        for routine in context.active_routines:
            target = routine.target if routine.target is not None else 0
            parts.append(
                f"- {routine.title} ({routine.completed_this_week}/{target} diese Woche)"
            )

    if context.language_style is not None:
        parts.append("\n# Sprachstil des Nutzers")
        parts.append(context.language_style.description)

    if context.documents_text:
        parts.append("\n# Hochgeladene Dokumente")
        parts.append(context.documents_text)

    return "\n".join(parts)


class ContextAggregator:
    """Read-only aggregation over the user's current state."""

    def __init__(
        self,
        user_db: UserDB,
        company_db: CompanyDB,
        chat_db: ChatDB,
        package_db: PackageDB,
        routine_db: RoutineDB,
        document_db: DocumentDB,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._users = user_db
        self._companies = company_db
        self._chats = chat_db
        self._packages = package_db
        self._routines = routine_db
        self._documents = document_db
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def build_context(self, user_id: str, session_id: str | None = None) -> UserContext:
        """Build the context for one completion call.

        Raises:
            NotFoundError: the user does not exist.
        """
        user = self._users.get_user(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")

        profile = self._users.get_profile(user_id)
        context = UserContext(
            profile=profile_facts(profile),
            active_packages=self._active_packages(user_id),
            active_routines=self._active_routines(user_id),
            documents_text=self._documents_text(user_id, user.company_id),
            language_style=self._language_style(session_id),
            onboarding_complete=bool(profile and profile.onboarding_complete),
        )
        logger.debug(
            "Context for %s: %d profile facts, %d packages, %d routines, %d doc chars",
            user_id, len(context.profile), len(context.active_packages),
            len(context.active_routines), len(context.documents_text),
        )
        return context

    def _active_packages(self, user_id: str) -> list[PackageContext]:
        result: list[PackageContext] = []
        for record in self._packages.list_progress(user_id, status=ProgressStatus.ACTIVE.value):
            package = self._packages.get_package(record.package_id)
            if package is None:
                logger.warning("Progress %s points at missing package %s", record.id, record.package_id)
                continue
            result.append(PackageContext(
                title=package.title,
                current_day=record.current_day,
                total_days=package.duration,
            ))
        return result

    def _active_routines(self, user_id: str) -> list[RoutineContext]:
        since = (self._clock() - timedelta(days=ROUTINE_WINDOW_DAYS)).date().isoformat()
        result: list[RoutineContext] = []
        for routine in self._routines.list_routines(user_id, status=RoutineStatus.ACTIVE.value):
            entries = self._routines.list_entries(routine.id, since=since, completed=True)
            result.append(RoutineContext(
                title=routine.title,
                completed_this_week=len(entries),
                target=routine.target,
            ))
        return result

    @staticmethod
    def _document_section(filename: str, text: str) -> str:
        if len(text) > MAX_DOCUMENT_CHARS:
            text = text[:MAX_DOCUMENT_CHARS].rstrip() + " [...]"
        return f"### {filename}\n{text}"

    def _documents_text(self, user_id: str, company_id: str | None) -> str:
        sections: list[str] = []

        personal = self._documents.list_for_user(user_id, DocumentCategory.PERSONAL.value)
        if personal:
            sections.append("## Persönliche Dokumente")
            sections.extend(
                self._document_section(doc.filename, doc.extracted_text) for doc in personal
            )

        if company_id:
            company_docs = self._documents.list_company_documents(company_id)
            if company_docs:
                sections.append("## Unternehmensdokumente")
                sections.extend(
                    self._document_section(doc.filename, doc.extracted_text)
                    for doc in company_docs
                )

        return "\n\n".join(sections)

    def _language_style(self, session_id: str | None) -> LanguageStyle | None:
        if session_id is None:
            return None
        messages = self._chats.recent_messages(
            session_id, role=MessageRole.USER.value, limit=RECENT_MESSAGES,
        )
        return analyze_language_style([m.content for m in messages])
