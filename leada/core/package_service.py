"""
Leada Coaching Core — Learning-Package Lifecycle.

Per-user progress through a package ("Themenpaket"):

    not_started --start--> active --pause--> paused --resume--> active
                           active --advance past last unit / complete--> completed

Starting creates the package's own chat session. Restarting an active or
paused package resets it to day 1 and keeps its chat. Completed is terminal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from leada.core.completion import generate_package_unit
from leada.core.context import ContextAggregator
from leada.core.summary import SummaryService
from leada.data.activity_db import ChatDB, PackageDB
from leada.data.db import utc_now_iso
from leada.data.errors import InvalidTransitionError, NotFoundError
from leada.data.models import ChatType, LearningPackage, ProgressRecord, ProgressStatus

logger = logging.getLogger(__name__)


@dataclass
class CatalogEntry:
    package: LearningPackage
    status: str = ProgressStatus.NOT_STARTED.value
    current_day: int = 0
    current_unit: int = 0
    chat_session_id: str | None = None


class PackageService:
    def __init__(
        self,
        package_db: PackageDB,
        chat_db: ChatDB,
        summaries: SummaryService | None = None,
        context_aggregator: ContextAggregator | None = None,
    ) -> None:
        self._packages = package_db
        self._chats = chat_db
        self._summaries = summaries
        self._context = context_aggregator

    def _package(self, package_id: str) -> LearningPackage:
        package = self._packages.get_package(package_id)
        if package is None:
            raise NotFoundError(f"Package {package_id} not found")
        return package

    def _progress(self, user_id: str, package_id: str) -> ProgressRecord:
        record = self._packages.get_progress(user_id, package_id)
        if record is None:
            raise NotFoundError(f"User {user_id} has not started package {package_id}")
        return record

    def _invalidate(self, user_id: str) -> None:
        if self._summaries is not None:
            self._summaries.invalidate_dashboard_summaries(user_id)

    def _transition(self, record: ProgressRecord, expected: str, target: str) -> ProgressRecord:
        if record.status != expected:
            raise InvalidTransitionError(
                f"Cannot move package progress from {record.status} to {target}"
            )
        record.status = target
        record.last_accessed_at = utc_now_iso()
        return self._packages.save_progress(record)

    # -- catalog ------------------------------------------------------------

    def catalog(self, user_id: str) -> list[CatalogEntry]:
        """All packages with the user's status; unstarted ones report not_started."""
        progress = {r.package_id: r for r in self._packages.list_progress(user_id)}
        entries = []
        for package in self._packages.list_packages():
            record = progress.get(package.id)
            if record is None:
                entries.append(CatalogEntry(package=package))
                continue
            entries.append(CatalogEntry(
                package=package,
                status=record.status,
                current_day=record.current_day,
                current_unit=record.current_unit,
                chat_session_id=record.chat_session_id,
            ))
        return entries

    # -- lifecycle ----------------------------------------------------------

    def start(self, user_id: str, package_id: str) -> ProgressRecord:
        """Start (or restart) a package for the user.

        Raises:
            NotFoundError: unknown package.
            InvalidTransitionError: the package is already completed.
            ConflictError: a concurrent start created the record first.
        """
        package = self._package(package_id)
        record = self._packages.get_progress(user_id, package_id)

        if record is None:
            # Progress row first: a concurrent start fails with ConflictError here
            record = self._packages.create_progress(user_id, package_id)
            session = self._chats.create_session(
                user_id, ChatType.PACKAGE.value, f"Themenpaket: {package.title}",
            )
            record.chat_session_id = session.id
            self._packages.save_progress(record)
            logger.info("User %s started package '%s'", user_id, package.title)
        else:
            if record.status == ProgressStatus.COMPLETED.value:
                raise InvalidTransitionError(f"Package '{package.title}' is already completed")
            chat = (
                self._chats.get_session(record.chat_session_id, user_id, with_messages=False)
                if record.chat_session_id else None
            )
            if chat is None:
                chat = self._chats.create_session(
                    user_id, ChatType.PACKAGE.value, f"Themenpaket: {package.title}",
                )
            now = utc_now_iso()
            record.status = ProgressStatus.ACTIVE.value
            record.current_day = 1
            record.current_unit = 1
            record.started_at = now
            record.last_accessed_at = now
            record.chat_session_id = chat.id
            self._packages.save_progress(record)
            logger.info("User %s restarted package '%s'", user_id, package.title)

        self._invalidate(user_id)
        return record

    def pause(self, user_id: str, package_id: str) -> ProgressRecord:
        return self._transition(
            self._progress(user_id, package_id),
            ProgressStatus.ACTIVE.value, ProgressStatus.PAUSED.value,
        )

    def resume(self, user_id: str, package_id: str) -> ProgressRecord:
        return self._transition(
            self._progress(user_id, package_id),
            ProgressStatus.PAUSED.value, ProgressStatus.ACTIVE.value,
        )

    def complete(self, user_id: str, package_id: str) -> ProgressRecord:
        record = self._progress(user_id, package_id)
        if record.status != ProgressStatus.ACTIVE.value:
            raise InvalidTransitionError(f"Cannot complete a {record.status} package")
        record.completed_at = utc_now_iso()
        record = self._transition(
            record, ProgressStatus.ACTIVE.value, ProgressStatus.COMPLETED.value,
        )
        self._invalidate(user_id)
        return record

    def advance(self, user_id: str, package_id: str) -> ProgressRecord:
        """Move to the next unit, rolling over to the next day.

        Finishing the last unit of the last day completes the package;
        `current_day` stays at the package duration.
        """
        package = self._package(package_id)
        record = self._progress(user_id, package_id)
        if record.status != ProgressStatus.ACTIVE.value:
            raise InvalidTransitionError(f"Cannot advance a {record.status} package")

        now = utc_now_iso()
        record.last_accessed_at = now
        if record.current_unit < package.units_per_day:
            record.current_unit += 1
        elif record.current_day < package.duration:
            record.current_day += 1
            record.current_unit = 1
        else:
            record.status = ProgressStatus.COMPLETED.value
            record.completed_at = now
            logger.info("User %s completed package '%s'", user_id, package.title)
            self._packages.save_progress(record)
            self._invalidate(user_id)
            return record
        return self._packages.save_progress(record)

    # -- content ------------------------------------------------------------

    async def next_unit(self, user_id: str, package_id: str) -> str:
        """Text of the user's current unit: the stored one, else generated."""
        package = self._package(package_id)
        record = self._progress(user_id, package_id)
        if record.status != ProgressStatus.ACTIVE.value:
            raise InvalidTransitionError(f"Package '{package.title}' is {record.status}")

        record.last_accessed_at = utc_now_iso()
        self._packages.save_progress(record)

        stored = self._packages.get_unit(package_id, record.current_day, record.current_unit)
        if stored is not None:
            text = f"## {stored.title}\n\n{stored.content}"
            if stored.reflection_prompt:
                text += f"\n\n**Reflexion:** {stored.reflection_prompt}"
            return text

        context = self._context.build_context(user_id) if self._context is not None else None
        return await generate_package_unit(
            package, record.current_day, record.current_unit, context,
        )
