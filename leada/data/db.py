"""
Leada Coaching Core — Account Database.

Users (with their profiles), companies, uploaded documents and the admin
audit log persist in SQLite. Every class opens a fresh connection per
operation and owns the tables it creates.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from leada.data.errors import ConflictError
from leada.data.models import AuditLogEntry, Company, Document, Profile, User

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    """Current UTC time as ISO-8601 string (seconds precision)."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def new_id() -> str:
    return uuid.uuid4().hex


class SQLiteDB:
    """Base for the SQLite-backed stores: path resolution and connections."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from leada.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        raise NotImplementedError


class UserDB(SQLiteDB):
    """SQLite-backed storage for users and their one-to-one profiles."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id                TEXT PRIMARY KEY,
                    email             TEXT NOT NULL UNIQUE,
                    company_id        TEXT,
                    auth_provider     TEXT NOT NULL DEFAULT 'local',
                    is_company_admin  INTEGER NOT NULL DEFAULT 0,
                    created_at        TEXT NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS profiles (
                    user_id              TEXT PRIMARY KEY,
                    first_name           TEXT,
                    age                  INTEGER,
                    gender               TEXT,
                    role                 TEXT,
                    industry             TEXT,
                    team_size            INTEGER,
                    leadership_years     INTEGER,
                    goals                TEXT NOT NULL DEFAULT '[]',
                    preferred_language   TEXT NOT NULL DEFAULT 'Deutsch',
                    individual_prompt    TEXT,
                    onboarding_complete  INTEGER NOT NULL DEFAULT 0
                )
            """)
        logger.debug("Users/profiles tables initialized at %s", self._db_path)

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            email=row["email"],
            company_id=row["company_id"],
            auth_provider=row["auth_provider"],
            is_company_admin=bool(row["is_company_admin"]),
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_profile(row: sqlite3.Row) -> Profile:
        try:
            goals = json.loads(row["goals"] or "[]")
        except json.JSONDecodeError:
            logger.warning("Corrupt goals column for user %s", row["user_id"])
            goals = []
        return Profile(
            user_id=row["user_id"],
            first_name=row["first_name"],
            age=row["age"],
            gender=row["gender"],
            role=row["role"],
            industry=row["industry"],
            team_size=row["team_size"],
            leadership_years=row["leadership_years"],
            goals=[g for g in goals if isinstance(g, str)],
            preferred_language=row["preferred_language"],
            individual_prompt=row["individual_prompt"],
            onboarding_complete=bool(row["onboarding_complete"]),
        )

    def add_user(
        self,
        email: str,
        company_id: str | None = None,
        auth_provider: str = "local",
        first_name: str | None = None,
        preferred_language: str = "Deutsch",
        is_company_admin: bool = False,
    ) -> User:
        """Insert a new user together with an empty profile."""
        user = User(
            id=new_id(),
            email=email.strip().lower(),
            company_id=company_id,
            auth_provider=auth_provider,
            is_company_admin=is_company_admin,
            created_at=utc_now_iso(),
        )
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO users
                        (id, email, company_id, auth_provider, is_company_admin, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        user.id, user.email, company_id, auth_provider,
                        int(is_company_admin), user.created_at,
                    ),
                )
                conn.execute(
                    """
                    INSERT INTO profiles (user_id, first_name, preferred_language)
                    VALUES (?, ?, ?)
                    """,
                    (user.id, first_name, preferred_language),
                )
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"User with email {user.email!r} already exists") from exc

        logger.info("User added: %s <%s>", user.id, user.email)
        return user

    def get_user(self, user_id: str) -> User | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def get_user_by_email(self, email: str) -> User | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM users WHERE email = ?", (email.strip().lower(),),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def list_users(self, company_id: str | None = None) -> list[User]:
        """All users, newest first, optionally scoped to a company."""
        query = "SELECT * FROM users"
        params: list = []
        if company_id is not None:
            query += " WHERE company_id = ?"
            params.append(company_id)
        query += " ORDER BY created_at DESC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_user(r) for r in rows]

    def count_users(self) -> int:
        with self._connect() as conn:
            row = conn.execute("SELECT COUNT(*) AS n FROM users").fetchone()
        return row["n"]

    def set_company(
        self, user_id: str, company_id: str | None, is_company_admin: bool = False,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE users SET company_id = ?, is_company_admin = ? WHERE id = ?",
                (company_id, int(is_company_admin), user_id),
            )
        logger.info("User %s assigned to company %s", user_id, company_id)

    def delete_user(self, user_id: str) -> bool:
        """Delete a user and, with it, the profile."""
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            conn.execute("DELETE FROM profiles WHERE user_id = ?", (user_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("User %s deleted", user_id)
        return deleted

    # -- profiles -----------------------------------------------------------

    def get_profile(self, user_id: str) -> Profile | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM profiles WHERE user_id = ?", (user_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_profile(row)

    def save_profile(self, profile: Profile) -> Profile:
        """Write every profile field back (profile must already exist)."""
        with self._connect() as conn:
            conn.execute(
                """
                UPDATE profiles SET
                    first_name = ?, age = ?, gender = ?, role = ?, industry = ?,
                    team_size = ?, leadership_years = ?, goals = ?,
                    preferred_language = ?, individual_prompt = ?,
                    onboarding_complete = ?
                WHERE user_id = ?
                """,
                (
                    profile.first_name, profile.age, profile.gender, profile.role,
                    profile.industry, profile.team_size, profile.leadership_years,
                    json.dumps(profile.goals, ensure_ascii=False),
                    profile.preferred_language, profile.individual_prompt,
                    int(profile.onboarding_complete), profile.user_id,
                ),
            )
        logger.debug("Profile saved for user %s", profile.user_id)
        return profile

    def set_individual_prompt(self, user_id: str, individual_prompt: str | None) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE profiles SET individual_prompt = ? WHERE user_id = ?",
                (individual_prompt, user_id),
            )

    def mark_onboarding_complete(self, user_id: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE profiles SET onboarding_complete = 1 WHERE user_id = ?",
                (user_id,),
            )
        logger.info("Onboarding complete for user %s", user_id)


class CompanyDB(SQLiteDB):
    """SQLite-backed storage for companies (tenants)."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS companies (
                    id                TEXT PRIMARY KEY,
                    name              TEXT NOT NULL,
                    logo_url          TEXT,
                    accent_color      TEXT,
                    corporate_prompt  TEXT,
                    created_at        TEXT NOT NULL
                )
            """)
        logger.debug("Companies table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_company(row: sqlite3.Row) -> Company:
        return Company(
            id=row["id"],
            name=row["name"],
            logo_url=row["logo_url"],
            accent_color=row["accent_color"],
            corporate_prompt=row["corporate_prompt"],
            created_at=row["created_at"],
        )

    def add_company(
        self,
        name: str,
        logo_url: str | None = None,
        accent_color: str | None = None,
        corporate_prompt: str | None = None,
    ) -> Company:
        company = Company(
            id=new_id(),
            name=name.strip(),
            logo_url=logo_url,
            accent_color=accent_color,
            corporate_prompt=corporate_prompt,
            created_at=utc_now_iso(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO companies
                    (id, name, logo_url, accent_color, corporate_prompt, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    company.id, company.name, logo_url, accent_color,
                    corporate_prompt, company.created_at,
                ),
            )
        logger.info("Company added: %s '%s'", company.id, company.name)
        return company

    def get_company(self, company_id: str) -> Company | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM companies WHERE id = ?", (company_id,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_company(row)

    def list_companies(self) -> list[Company]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM companies ORDER BY name").fetchall()
        return [self._row_to_company(r) for r in rows]

    def update_branding(
        self, company_id: str, logo_url: str | None, accent_color: str | None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE companies SET logo_url = ?, accent_color = ? WHERE id = ?",
                (logo_url, accent_color, company_id),
            )

    def set_corporate_prompt(self, company_id: str, corporate_prompt: str | None) -> None:
        with self._connect() as conn:
            conn.execute(
                "UPDATE companies SET corporate_prompt = ? WHERE id = ?",
                (corporate_prompt, company_id),
            )
        logger.info("Corporate prompt updated for company %s", company_id)


class DocumentDB(SQLiteDB):
    """SQLite-backed storage for uploaded documents (extracted text only)."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    id              TEXT PRIMARY KEY,
                    user_id         TEXT NOT NULL,
                    company_id      TEXT,
                    filename        TEXT NOT NULL,
                    file_type       TEXT NOT NULL,
                    file_size       INTEGER NOT NULL,
                    category        TEXT NOT NULL,
                    extracted_text  TEXT NOT NULL DEFAULT '',
                    metadata        TEXT NOT NULL DEFAULT '{}',
                    uploaded_at     TEXT NOT NULL
                )
            """)
        logger.debug("Documents table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_document(row: sqlite3.Row) -> Document:
        try:
            metadata = json.loads(row["metadata"] or "{}")
        except json.JSONDecodeError:
            metadata = {}
        return Document(
            id=row["id"],
            user_id=row["user_id"],
            company_id=row["company_id"],
            filename=row["filename"],
            file_type=row["file_type"],
            file_size=row["file_size"],
            category=row["category"],
            extracted_text=row["extracted_text"],
            metadata=metadata,
            uploaded_at=row["uploaded_at"],
        )

    def add_document(
        self,
        user_id: str,
        filename: str,
        file_type: str,
        file_size: int,
        category: str,
        extracted_text: str,
        metadata: dict | None = None,
        company_id: str | None = None,
    ) -> Document:
        document = Document(
            id=new_id(),
            user_id=user_id,
            company_id=company_id,
            filename=filename,
            file_type=file_type,
            file_size=file_size,
            category=category,
            extracted_text=extracted_text,
            metadata=metadata or {},
            uploaded_at=utc_now_iso(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO documents
                    (id, user_id, company_id, filename, file_type, file_size,
                     category, extracted_text, metadata, uploaded_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    document.id, user_id, company_id, filename, file_type, file_size,
                    category, extracted_text,
                    json.dumps(document.metadata, ensure_ascii=False),
                    document.uploaded_at,
                ),
            )
        logger.info("Document stored: %s '%s' (%s)", document.id, filename, category)
        return document

    def get_document(self, document_id: str, user_id: str | None = None) -> Document | None:
        query = "SELECT * FROM documents WHERE id = ?"
        params: list = [document_id]
        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)
        with self._connect() as conn:
            row = conn.execute(query, params).fetchone()
        if row is None:
            return None
        return self._row_to_document(row)

    def list_for_user(self, user_id: str, category: str | None = None) -> list[Document]:
        """Documents uploaded by a user, newest first."""
        query = "SELECT * FROM documents WHERE user_id = ?"
        params: list = [user_id]
        if category is not None:
            query += " AND category = ?"
            params.append(category)
        query += " ORDER BY uploaded_at DESC"
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_document(r) for r in rows]

    def list_company_documents(self, company_id: str) -> list[Document]:
        """Company-category documents shared across a company, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM documents
                WHERE company_id = ? AND category = 'company'
                ORDER BY uploaded_at DESC
                """,
                (company_id,),
            ).fetchall()
        return [self._row_to_document(r) for r in rows]

    def delete_document(self, document_id: str, user_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "DELETE FROM documents WHERE id = ? AND user_id = ?",
                (document_id, user_id),
            )
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Document %s deleted", document_id)
        return deleted


class AuditDB(SQLiteDB):
    """Append-only admin audit log. No update or delete operations exist."""

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS audit_log (
                    id          TEXT PRIMARY KEY,
                    actor_id    TEXT NOT NULL,
                    action      TEXT NOT NULL,
                    target_id   TEXT,
                    details     TEXT,
                    ip_address  TEXT,
                    created_at  TEXT NOT NULL
                )
            """)
        logger.debug("Audit log table initialized at %s", self._db_path)

    @staticmethod
    def _row_to_entry(row: sqlite3.Row) -> AuditLogEntry:
        details = json.loads(row["details"]) if row["details"] else None
        return AuditLogEntry(
            id=row["id"],
            actor_id=row["actor_id"],
            action=row["action"],
            target_id=row["target_id"],
            details=details,
            ip_address=row["ip_address"],
            created_at=row["created_at"],
        )

    def add_entry(
        self,
        actor_id: str,
        action: str,
        target_id: str | None = None,
        details: dict | None = None,
        ip_address: str | None = None,
    ) -> AuditLogEntry:
        entry = AuditLogEntry(
            id=new_id(),
            actor_id=actor_id,
            action=action,
            target_id=target_id,
            details=details,
            ip_address=ip_address,
            created_at=utc_now_iso(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO audit_log
                    (id, actor_id, action, target_id, details, ip_address, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    entry.id, actor_id, action, target_id,
                    json.dumps(details, ensure_ascii=False) if details is not None else None,
                    ip_address, entry.created_at,
                ),
            )
        return entry

    def list_entries(
        self,
        actor_id: str | None = None,
        action: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[AuditLogEntry], int]:
        """Return (page of entries newest first, total matching count)."""
        conditions: list[str] = []
        params: list = []
        if actor_id is not None:
            conditions.append("actor_id = ?")
            params.append(actor_id)
        if action is not None:
            conditions.append("action = ?")
            params.append(action)

        where = (" WHERE " + " AND ".join(conditions)) if conditions else ""
        with self._connect() as conn:
            total = conn.execute(
                f"SELECT COUNT(*) AS n FROM audit_log{where}", params,
            ).fetchone()["n"]
            rows = conn.execute(
                f"SELECT * FROM audit_log{where} ORDER BY created_at DESC, rowid DESC "
                "LIMIT ? OFFSET ?",
                [*params, limit, offset],
            ).fetchall()
        return [self._row_to_entry(r) for r in rows], total
