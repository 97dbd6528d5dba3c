"""
Leada Coaching Core — Activity Database.

Everything a user *does*: chat sessions and their messages, learning-package
progress, routines with their check-in entries and the weekly reports
built from all of it.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from dataclasses import asdict
from datetime import datetime

from leada.data.db import SQLiteDB, new_id, utc_now_iso
from leada.data.errors import ConflictError, InvalidTransitionError, NotFoundError
from leada.data.models import (
    ChatSession,
    ChatType,
    LearningPackage,
    LearningUnit,
    Message,
    ProgressRecord,
    ProgressStatus,
    ReportPackageProgress,
    ReportRoutineProgress,
    Routine,
    RoutineEntry,
    RoutineFrequency,
    RoutineStatus,
    WeeklyReport,
)

logger = logging.getLogger(__name__)

# not_started is implied by a missing row, never stored
_STORED_STATUSES = {
    ProgressStatus.ACTIVE.value,
    ProgressStatus.PAUSED.value,
    ProgressStatus.COMPLETED.value,
}


def _iso(value: datetime) -> str:
    return value.isoformat(timespec="seconds")


class ChatDB(SQLiteDB):
    """SQLite-backed storage for chat sessions and their ordered messages."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS chat_sessions (
                    id          TEXT PRIMARY KEY,
                    user_id     TEXT NOT NULL,
                    title       TEXT,
                    chat_type   TEXT NOT NULL DEFAULT 'general',
                    is_pinned   INTEGER NOT NULL DEFAULT 0,
                    created_at  TEXT NOT NULL,
                    updated_at  TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS messages (
                    seq         INTEGER PRIMARY KEY AUTOINCREMENT,
                    id          TEXT NOT NULL UNIQUE,
                    session_id  TEXT NOT NULL,
                    role        TEXT NOT NULL,
                    content     TEXT NOT NULL,
                    metadata    TEXT,
                    created_at  TEXT NOT NULL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_messages_session ON messages(session_id)"
            )
        logger.debug("Chat tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_session(row: sqlite3.Row) -> ChatSession:
        return ChatSession(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            chat_type=row["chat_type"],
            is_pinned=bool(row["is_pinned"]),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_message(row: sqlite3.Row) -> Message:
        return Message(
            id=row["id"],
            session_id=row["session_id"],
            role=row["role"],
            content=row["content"],
            metadata=json.loads(row["metadata"]) if row["metadata"] else None,
            created_at=row["created_at"],
        )

    # -- sessions -----------------------------------------------------------

    def create_session(
        self, user_id: str, chat_type: str = ChatType.GENERAL.value, title: str | None = None,
    ) -> ChatSession:
        now = utc_now_iso()
        session = ChatSession(
            id=new_id(),
            user_id=user_id,
            title=title,
            chat_type=chat_type,
            created_at=now,
            updated_at=now,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO chat_sessions
                    (id, user_id, title, chat_type, is_pinned, created_at, updated_at)
                VALUES (?, ?, ?, ?, 0, ?, ?)
                """,
                (session.id, user_id, title, chat_type, now, now),
            )
        logger.info("Chat session %s created (%s) for user %s", session.id, chat_type, user_id)
        return session

    def get_session(
        self, session_id: str, user_id: str | None = None, with_messages: bool = True,
    ) -> ChatSession | None:
        """Fetch a session, optionally scoped to its owner, with messages in order."""
        query = "SELECT * FROM chat_sessions WHERE id = ?"
        params: list = [session_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        session = self._row_to_session(row)
        if with_messages:
            session.messages = self.list_messages(session_id)
        return session

    def find_session_by_type(self, user_id: str, chat_type: str) -> ChatSession | None:
        """Oldest session of a given type — used for the singleton chats."""
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT * FROM chat_sessions
                WHERE user_id = ? AND chat_type = ?
                ORDER BY created_at, rowid
                LIMIT 1
                """,
                (user_id, chat_type),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    def list_sessions(
        self,
        user_id: str | None = None,
        since: datetime | None = None,
        chat_type: str | None = None,
    ) -> list[ChatSession]:
        """Sessions (without messages), pinned first, most recently updated first.

        `since` filters on `updated_at`, i.e. sessions with activity in the window.
        """
        conditions: list[str] = []
        params: list = []
        if user_id is not None:
            conditions.append("user_id = ?")
            params.append(user_id)
        if since is not None:
            conditions.append("updated_at >= ?")
            params.append(_iso(since))
        if chat_type is not None:
            conditions.append("chat_type = ?")
            params.append(chat_type)

        query = "SELECT * FROM chat_sessions"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY is_pinned DESC, updated_at DESC, rowid DESC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_session(r) for r in rows]

    def set_title(self, session_id: str, title: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE chat_sessions SET title = ? WHERE id = ?", (title, session_id),
            )

    def set_pinned(self, session_id: str, is_pinned: bool) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE chat_sessions SET is_pinned = ? WHERE id = ?",
                (int(is_pinned), session_id),
            )

    def delete_session(self, session_id: str, user_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM chat_sessions WHERE id = ? AND user_id = ?",
                (session_id, user_id),
            )
            if cursor.rowcount > 0:
                conn.execute("DELETE FROM messages WHERE session_id = ?", (session_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Chat session %s deleted", session_id)
        return deleted

    # -- messages -----------------------------------------------------------

    def add_message(
        self, session_id: str, role: str, content: str, metadata: dict | None = None,
    ) -> Message:
        """Append a message and bump the session's `updated_at`."""
        message = Message(
            id=new_id(),
            session_id=session_id,
            role=role,
            content=content,
            metadata=metadata,
            created_at=utc_now_iso(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO messages (id, session_id, role, content, metadata, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id, session_id, role, content,
                    json.dumps(metadata, ensure_ascii=False) if metadata else None,
                    message.created_at,
                ),
            )
            conn.execute(
                "UPDATE chat_sessions SET updated_at = ? WHERE id = ?",
                (message.created_at, session_id),
            )
        return message

    def list_messages(self, session_id: str) -> list[Message]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM messages WHERE session_id = ? ORDER BY seq",
                (session_id,),
            ).fetchall()
        return [self._row_to_message(r) for r in rows]

    def recent_messages(
        self, session_id: str, role: str | None = None, limit: int = 5,
    ) -> list[Message]:
        """The last `limit` messages of a session, returned oldest first."""
        query = "SELECT * FROM messages WHERE session_id = ?"
        params: list = [session_id]
        if role is not None:
            query += " AND role = ?"
            params.append(role)
        query += " ORDER BY seq DESC LIMIT ?"
        params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_message(r) for r in reversed(rows)]

    def user_messages(
        self,
        user_id: str | None = None,
        since: datetime | None = None,
        limit: int | None = None,
    ) -> list[Message]:
        """User-authored messages across sessions, newest first.

        With `user_id=None` the messages of every user are returned.
        """
        conditions = ["m.role = 'user'"]
        params: list = []
        if user_id is not None:
            conditions.append("s.user_id = ?")
            params.append(user_id)
        if since is not None:
            conditions.append("m.created_at >= ?")
            params.append(_iso(since))

        query = (
            "SELECT m.* FROM messages m JOIN chat_sessions s ON s.id = m.session_id "
            "WHERE " + " AND ".join(conditions) + " ORDER BY m.seq DESC"
        )
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_message(r) for r in rows]

    def count_messages(
        self, user_id: str, since: datetime | None = None, role: str | None = None,
    ) -> int:
        query = (
            "SELECT COUNT(*) AS n FROM messages m "
            "JOIN chat_sessions s ON s.id = m.session_id WHERE s.user_id = ?"
        )
        params: list = [user_id]
        if since is not None:
            query += " AND m.created_at >= ?"
            params.append(_iso(since))
        if role is not None:
            query += " AND m.role = ?"
            params.append(role)
        with self._connect() as conn:
            return conn.execute(query, params).fetchone()["n"]


class PackageDB(SQLiteDB):
    """SQLite-backed storage for learning packages, their units and user progress."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS learning_packages (
                    id             TEXT PRIMARY KEY,
                    title          TEXT NOT NULL,
                    description    TEXT NOT NULL,
                    category       TEXT,
                    duration       INTEGER NOT NULL DEFAULT 14,
                    units_per_day  INTEGER NOT NULL DEFAULT 2,
                    created_at     TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS learning_units (
                    id                 TEXT PRIMARY KEY,
                    package_id         TEXT NOT NULL,
                    day                INTEGER NOT NULL,
                    unit               INTEGER NOT NULL,
                    title              TEXT NOT NULL,
                    content            TEXT NOT NULL,
                    reflection_prompt  TEXT,
                    sort_order         INTEGER NOT NULL DEFAULT 0,
                    UNIQUE (package_id, day, unit)
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS package_progress (
                    id                TEXT PRIMARY KEY,
                    user_id           TEXT NOT NULL,
                    package_id        TEXT NOT NULL,
                    status            TEXT NOT NULL,
                    current_day       INTEGER NOT NULL DEFAULT 1,
                    current_unit      INTEGER NOT NULL DEFAULT 1,
                    started_at        TEXT,
                    last_accessed_at  TEXT,
                    completed_at      TEXT,
                    chat_session_id   TEXT,
                    UNIQUE (user_id, package_id)
                )
            """)
        logger.debug("Package tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_package(row: sqlite3.Row) -> LearningPackage:
        return LearningPackage(
            id=row["id"],
            title=row["title"],
            description=row["description"],
            category=row["category"],
            duration=row["duration"],
            units_per_day=row["units_per_day"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_unit(row: sqlite3.Row) -> LearningUnit:
        return LearningUnit(
            id=row["id"],
            package_id=row["package_id"],
            day=row["day"],
            unit=row["unit"],
            title=row["title"],
            content=row["content"],
            reflection_prompt=row["reflection_prompt"],
            order=row["sort_order"],
        )

    @staticmethod
    def _row_to_progress(row: sqlite3.Row) -> ProgressRecord:
        return ProgressRecord(
            id=row["id"],
            user_id=row["user_id"],
            package_id=row["package_id"],
            status=row["status"],
            current_day=row["current_day"],
            current_unit=row["current_unit"],
            started_at=row["started_at"],
            last_accessed_at=row["last_accessed_at"],
            completed_at=row["completed_at"],
            chat_session_id=row["chat_session_id"],
        )

    # -- packages -----------------------------------------------------------

    def add_package(
        self,
        title: str,
        description: str,
        category: str | None = None,
        duration: int = 14,
        units_per_day: int = 2,
    ) -> LearningPackage:
        if duration < 1 or units_per_day < 1:
            raise ValueError("duration and units_per_day must be positive")
        package = LearningPackage(
            id=new_id(),
            title=title,
            description=description,
            category=category,
            duration=duration,
            units_per_day=units_per_day,
            created_at=utc_now_iso(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO learning_packages
                    (id, title, description, category, duration, units_per_day, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    package.id, title, description, category, duration,
                    units_per_day, package.created_at,
                ),
            )
        logger.info("Learning package added: %s '%s'", package.id, title)
        return package

    def get_package(self, package_id: str) -> LearningPackage | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM learning_packages WHERE id = ?", (package_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_package(row)

    def get_package_by_title(self, title: str) -> LearningPackage | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM learning_packages WHERE title = ?", (title,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_package(row)

    def list_packages(self) -> list[LearningPackage]:
        """All packages in catalog order (oldest first)."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM learning_packages ORDER BY created_at, rowid"
            ).fetchall()
        return [self._row_to_package(r) for r in rows]

    # -- units --------------------------------------------------------------

    def add_unit(
        self,
        package_id: str,
        day: int,
        unit: int,
        title: str,
        content: str,
        reflection_prompt: str | None = None,
        order: int | None = None,
    ) -> LearningUnit:
        learning_unit = LearningUnit(
            id=new_id(),
            package_id=package_id,
            day=day,
            unit=unit,
            title=title,
            content=content,
            reflection_prompt=reflection_prompt,
            order=order if order is not None else day * 100 + unit,
        )
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO learning_units
                        (id, package_id, day, unit, title, content,
                         reflection_prompt, sort_order)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        learning_unit.id, package_id, day, unit, title, content,
                        reflection_prompt, learning_unit.order,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise ConflictError(
                f"Unit day {day}/unit {unit} already exists for package {package_id}"
            ) from exc
        return learning_unit

    def get_unit(self, package_id: str, day: int, unit: int) -> LearningUnit | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM learning_units WHERE package_id = ? AND day = ? AND unit = ?",
                (package_id, day, unit),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_unit(row)

    def list_units(self, package_id: str) -> list[LearningUnit]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM learning_units WHERE package_id = ? ORDER BY sort_order",
                (package_id,),
            ).fetchall()
        return [self._row_to_unit(r) for r in rows]

    # -- progress -----------------------------------------------------------

    @staticmethod
    def _check_progress(record: ProgressRecord, package: LearningPackage) -> None:
        if record.status not in _STORED_STATUSES:
            raise ValueError(f"Unknown progress status: {record.status!r}")
        if not 1 <= record.current_day <= package.duration:
            raise ValueError(
                f"current_day {record.current_day} outside 1..{package.duration} "
                f"for package {package.id}"
            )
        if not 1 <= record.current_unit <= package.units_per_day:
            raise ValueError(
                f"current_unit {record.current_unit} outside 1..{package.units_per_day} "
                f"for package {package.id}"
            )
        if record.status == ProgressStatus.COMPLETED.value and not record.completed_at:
            raise ValueError("A completed progress record needs completed_at")

    def create_progress(
        self,
        user_id: str,
        package_id: str,
        status: str = ProgressStatus.ACTIVE.value,
        chat_session_id: str | None = None,
    ) -> ProgressRecord:
        """Insert the (user, package) progress row at day 1, unit 1.

        A record created as completed is stamped with `completed_at`.

        Raises:
            NotFoundError: unknown package.
            ValueError: unknown status.
            ConflictError: a record for this pair already exists.
        """
        package = self.get_package(package_id)
        if package is None:
            raise NotFoundError(f"Package {package_id} not found")

        now = utc_now_iso()
        record = ProgressRecord(
            id=new_id(),
            user_id=user_id,
            package_id=package_id,
            status=status,
            started_at=now,
            last_accessed_at=now,
            completed_at=now if status == ProgressStatus.COMPLETED.value else None,
            chat_session_id=chat_session_id,
        )
        self._check_progress(record, package)
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO package_progress
                        (id, user_id, package_id, status, current_day, current_unit,
                         started_at, last_accessed_at, completed_at, chat_session_id)
                    VALUES (?, ?, ?, ?, 1, 1, ?, ?, ?, ?)
                    """,
                    (
                        record.id, user_id, package_id, status, now, now,
                        record.completed_at, chat_session_id,
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise ConflictError(
                f"Progress for user {user_id} and package {package_id} already exists"
            ) from exc
        logger.info("Progress %s created: user %s, package %s", record.id, user_id, package_id)
        return record

    def get_progress(self, user_id: str, package_id: str) -> ProgressRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM package_progress WHERE user_id = ? AND package_id = ?",
                (user_id, package_id),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_progress(row)

    def list_progress(
        self,
        user_id: str | None = None,
        status: str | None = None,
        accessed_since: datetime | None = None,
    ) -> list[ProgressRecord]:
        """Progress rows, most recently accessed first."""
        conditions: list[str] = []
        params: list = []
        if user_id is not None:
            conditions.append("user_id = ?")
            params.append(user_id)
        if status is not None:
            conditions.append("status = ?")
            params.append(status)
        if accessed_since is not None:
            conditions.append("last_accessed_at >= ?")
            params.append(_iso(accessed_since))

        query = "SELECT * FROM package_progress"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY last_accessed_at DESC, rowid DESC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_progress(r) for r in rows]

    def save_progress(self, record: ProgressRecord) -> ProgressRecord:
        """Write the mutable progress fields back.

        Raises:
            NotFoundError: the record or its package does not exist.
            ValueError: day/unit out of the package's range, unknown status,
                or completed without `completed_at`.
            InvalidTransitionError: the stored record is completed and the
                new status is not.
        """
        package = self.get_package(record.package_id)
        if package is None:
            raise NotFoundError(f"Package {record.package_id} not found")
        self._check_progress(record, package)

        with self._connect() as conn:
            row = conn.execute(
                "SELECT status FROM package_progress WHERE id = ?", (record.id,),
            ).fetchone()
            if row is None:
                raise NotFoundError(f"Progress record {record.id} not found")
            if (
                row["status"] == ProgressStatus.COMPLETED.value
                and record.status != ProgressStatus.COMPLETED.value
            ):
                raise InvalidTransitionError(
                    f"Progress {record.id} is completed and cannot become {record.status}"
                )
            conn.execute(
                """
                UPDATE package_progress SET
                    status = ?, current_day = ?, current_unit = ?, started_at = ?,
                    last_accessed_at = ?, completed_at = ?, chat_session_id = ?
                WHERE id = ?
                """,
                (
                    record.status, record.current_day, record.current_unit,
                    record.started_at, record.last_accessed_at, record.completed_at,
                    record.chat_session_id, record.id,
                ),
            )
        logger.debug(
            "Progress %s saved: %s day %d unit %d",
            record.id, record.status, record.current_day, record.current_unit,
        )
        return record


class RoutineDB(SQLiteDB):
    """SQLite-backed storage for routines and their dated check-in entries."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS routines (
                    id           TEXT PRIMARY KEY,
                    user_id      TEXT NOT NULL,
                    title        TEXT NOT NULL,
                    description  TEXT,
                    frequency    TEXT NOT NULL DEFAULT 'daily',
                    target       INTEGER,
                    status       TEXT NOT NULL DEFAULT 'active',
                    created_at   TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS routine_entries (
                    id          TEXT PRIMARY KEY,
                    routine_id  TEXT NOT NULL,
                    date        TEXT NOT NULL,
                    completed   INTEGER NOT NULL,
                    note        TEXT,
                    created_at  TEXT NOT NULL
                )
            """)
        logger.debug("Routine tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_routine(row: sqlite3.Row) -> Routine:
        return Routine(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            frequency=row["frequency"],
            target=row["target"],
            status=row["status"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> RoutineEntry:
        return RoutineEntry(
            id=row["id"],
            routine_id=row["routine_id"],
            date=row["date"],
            completed=bool(row["completed"]),
            note=row["note"],
            created_at=row["created_at"],
        )

    def add_routine(
        self,
        user_id: str,
        title: str,
        description: str | None = None,
        frequency: str = RoutineFrequency.DAILY.value,
        target: int | None = None,
    ) -> Routine:
        routine = Routine(
            id=new_id(),
            user_id=user_id,
            title=title,
            description=description,
            frequency=frequency,
            target=target,
            status=RoutineStatus.ACTIVE.value,
            created_at=utc_now_iso(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO routines
                    (id, user_id, title, description, frequency, target, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    routine.id, user_id, title, description, frequency, target,
                    routine.status, routine.created_at,
                ),
            )
        logger.info("Routine added: %s '%s' (%s)", routine.id, title, frequency)
        return routine

    def get_routine(
        self, routine_id: str, user_id: str | None = None, with_entries: bool = False,
    ) -> Routine | None:
        query = "SELECT * FROM routines WHERE id = ?"
        params: list = [routine_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        routine = self._row_to_routine(row)
        if with_entries:
            routine.entries = self.list_entries(routine_id)
        return routine

    def list_routines(
        self, user_id: str | None = None, status: str | None = None,
    ) -> list[Routine]:
        conditions: list[str] = []
        params: list = []
        if user_id is not None:
            conditions.append("user_id = ?")
            params.append(user_id)
        if status is not None:
            conditions.append("status = ?")
            params.append(status)

        query = "SELECT * FROM routines"
        if conditions:
            query += " WHERE " + " AND ".join(conditions)
        query += " ORDER BY created_at DESC, rowid DESC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_routine(r) for r in rows]

    def save_routine(self, routine: Routine) -> Routine:
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE routines SET
                    title = ?, description = ?, frequency = ?, target = ?, status = ?
                WHERE id = ?
                """,
                (
                    routine.title, routine.description, routine.frequency,
                    routine.target, routine.status, routine.id,
                ),
            )
        return routine

    def delete_routine(self, routine_id: str, user_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM routines WHERE id = ? AND user_id = ?", (routine_id, user_id),
            )
            if cursor.rowcount > 0:
                conn.execute("DELETE FROM routine_entries WHERE routine_id = ?", (routine_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Routine %s deleted", routine_id)
        return deleted

    # -- entries ------------------------------------------------------------

    def add_entry(
        self, routine_id: str, date: str, completed: bool = True, note: str | None = None,
    ) -> RoutineEntry:
        entry = RoutineEntry(
            id=new_id(),
            routine_id=routine_id,
            date=date,
            completed=completed,
            note=note,
            created_at=utc_now_iso(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO routine_entries (id, routine_id, date, completed, note, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (entry.id, routine_id, date, int(completed), note, entry.created_at),
            )
        return entry

    def list_entries(
        self,
        routine_id: str,
        since: str | None = None,
        completed: bool | None = None,
    ) -> list[RoutineEntry]:
        """Entries newest date first. `since` is an inclusive `YYYY-MM-DD` bound."""
        query = "SELECT * FROM routine_entries WHERE routine_id = ?"
        params: list = [routine_id]
        if since is not None:
            query += " AND date >= ?"
            params.append(since)
        if completed is not None:
            query += " AND completed = ?"
            params.append(int(completed))
        query += " ORDER BY date DESC, rowid DESC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_entry(r) for r in rows]


class ReportDB(SQLiteDB):
    """SQLite-backed storage for weekly reports."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS weekly_reports (
                    id               TEXT PRIMARY KEY,
                    user_id          TEXT NOT NULL,
                    week_start       TEXT NOT NULL,
                    week_end         TEXT NOT NULL,
                    topics           TEXT NOT NULL,
                    progress         TEXT NOT NULL,
                    recommendations  TEXT NOT NULL,
                    created_at       TEXT NOT NULL
                )
            """)
        logger.debug("Report table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_report(row: sqlite3.Row) -> WeeklyReport:
        progress = json.loads(row["progress"])
        return WeeklyReport(
            id=row["id"],
            user_id=row["user_id"],
            week_start=row["week_start"],
            week_end=row["week_end"],
            topics=json.loads(row["topics"]),
            packages=[ReportPackageProgress(**p) for p in progress.get("packages", [])],
            routines=[ReportRoutineProgress(**r) for r in progress.get("routines", [])],
            recommendations=json.loads(row["recommendations"]),
            created_at=row["created_at"],
        )

    def add_report(
        self,
        user_id: str,
        week_start: datetime,
        week_end: datetime,
        topics: list[str],
        packages: list[ReportPackageProgress],
        routines: list[ReportRoutineProgress],
        recommendations: list[str],
    ) -> WeeklyReport:
        report = WeeklyReport(
            id=new_id(),
            user_id=user_id,
            week_start=_iso(week_start),
            week_end=_iso(week_end),
            topics=list(topics),
            packages=list(packages),
            routines=list(routines),
            recommendations=list(recommendations),
            created_at=utc_now_iso(),
        )
        progress = {
            "packages": [asdict(p) for p in report.packages],
            "routines": [asdict(r) for r in report.routines],
        }
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO weekly_reports
                    (id, user_id, week_start, week_end, topics, progress,
                     recommendations, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    report.id, user_id, report.week_start, report.week_end,
                    json.dumps(report.topics, ensure_ascii=False),
                    json.dumps(progress, ensure_ascii=False),
                    json.dumps(report.recommendations, ensure_ascii=False),
                    report.created_at,
                ),
            )
        logger.info("Weekly report %s stored for user %s", report.id, user_id)
        return report

    def list_reports(self, user_id: str) -> list[WeeklyReport]:
        """The user's reports, newest week first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM weekly_reports WHERE user_id = ? "
                "ORDER BY week_start DESC, rowid DESC",
                (user_id,),
            ).fetchall()
        return [self._row_to_report(r) for r in rows]

    def latest_report(self, user_id: str) -> WeeklyReport | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM weekly_reports WHERE user_id = ? "
                "ORDER BY week_start DESC, rowid DESC LIMIT 1",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_report(row)
