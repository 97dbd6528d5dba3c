"""
Leada Coaching Core — Data Models.

Row-shaped records for everything the coaching core reads and writes.
JSON-in-column fields (goals, metadata, details) are already decoded here;
serialization happens only inside the DB classes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ChatType(str, Enum):
    GENERAL = "general"
    ONBOARDING = "onboarding"
    PROFILE_REFLECTION = "profile-reflection"
    KI_BRIEFING = "ki-briefing"
    PACKAGE = "themenpaket"


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class ProgressStatus(str, Enum):
    NOT_STARTED = "not_started"
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class RoutineFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    CUSTOM = "custom"


class RoutineStatus(str, Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class DocumentCategory(str, Enum):
    PERSONAL = "personal"
    COMPANY = "company"


@dataclass
class User:
    """A registered user, optionally belonging to a company."""

    id: str
    email: str
    company_id: str | None = None
    auth_provider: str = "local"
    is_company_admin: bool = False
    created_at: str = ""


@dataclass
class Profile:
    """Personalization facts about a user.

    Filled incrementally — partly by the user, mostly by profile extraction
    from chat turns.
    """

    user_id: str
    first_name: str | None = None
    age: int | None = None
    gender: str | None = None
    role: str | None = None
    industry: str | None = None
    team_size: int | None = None
    leadership_years: int | None = None
    goals: list[str] = field(default_factory=list)
    preferred_language: str = "Deutsch"
    individual_prompt: str | None = None   # level-3 prompt override
    onboarding_complete: bool = False


@dataclass
class Company:
    """A tenant: owns users, company documents and an optional corporate prompt."""

    id: str
    name: str
    logo_url: str | None = None
    accent_color: str | None = None        # e.g. "#1e40af"
    corporate_prompt: str | None = None    # level-2 prompt override
    created_at: str = ""


@dataclass
class Message:
    id: str
    session_id: str
    role: str                              # MessageRole value
    content: str
    metadata: dict | None = None
    created_at: str = ""


@dataclass
class ChatSession:
    id: str
    user_id: str
    title: str | None = None
    chat_type: str = ChatType.GENERAL.value
    is_pinned: bool = False
    created_at: str = ""
    updated_at: str = ""
    messages: list[Message] = field(default_factory=list)


@dataclass
class LearningPackage:
    """A fixed-duration curriculum ("Themenpaket")."""

    id: str
    title: str
    description: str
    category: str | None = None
    duration: int = 14                     # days
    units_per_day: int = 2
    created_at: str = ""


@dataclass
class LearningUnit:
    id: str
    package_id: str
    day: int
    unit: int
    title: str
    content: str
    reflection_prompt: str | None = None
    order: int = 0


@dataclass
class ProgressRecord:
    """Per-user, per-package progress. Unique per (user_id, package_id)."""

    id: str
    user_id: str
    package_id: str
    status: str = ProgressStatus.ACTIVE.value
    current_day: int = 1
    current_unit: int = 1
    started_at: str | None = None
    last_accessed_at: str | None = None
    completed_at: str | None = None
    chat_session_id: str | None = None


@dataclass
class RoutineEntry:
    id: str
    routine_id: str
    date: str                              # ISO date YYYY-MM-DD
    completed: bool
    note: str | None = None
    created_at: str = ""


@dataclass
class Routine:
    id: str
    user_id: str
    title: str
    description: str | None = None
    frequency: str = RoutineFrequency.DAILY.value
    target: int | None = None
    status: str = RoutineStatus.ACTIVE.value
    created_at: str = ""
    entries: list[RoutineEntry] = field(default_factory=list)


@dataclass
class ReportPackageProgress:
    title: str
    current_day: int
    total_days: int
    progress: int                          # percent of days reached


@dataclass
class ReportRoutineProgress:
    title: str
    completed_days: int
    target_days: int
    progress: int                          # percent of target, 0 without a target


@dataclass
class WeeklyReport:
    """Snapshot of one user's last seven days. Immutable once stored."""

    id: str
    user_id: str
    week_start: str
    week_end: str
    topics: list[str] = field(default_factory=list)
    packages: list[ReportPackageProgress] = field(default_factory=list)
    routines: list[ReportRoutineProgress] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)
    created_at: str = ""


@dataclass
class Document:
    """An uploaded file reduced to its extracted text. Immutable once stored."""

    id: str
    user_id: str
    filename: str
    file_type: str                         # "pdf" | "docx" | "doc" | "txt"
    file_size: int                         # bytes
    category: str                          # DocumentCategory value
    extracted_text: str = ""
    metadata: dict = field(default_factory=dict)
    company_id: str | None = None
    uploaded_at: str = ""


@dataclass
class CacheEntry:
    subject_id: str
    cache_key: str
    data: str                              # JSON payload
    expires_at: str
    updated_at: str


@dataclass
class AuditLogEntry:
    """Append-only record of an admin action."""

    id: str
    actor_id: str
    action: str
    target_id: str | None = None
    details: dict | None = None
    ip_address: str | None = None
    created_at: str = ""
