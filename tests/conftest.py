"""Shared test fixtures and configuration.

Sets up fake environment variables so leada.config doesn't sys.exit(),
and provides temp-file databases sharing one SQLite file.
"""

import os

# Patch env vars BEFORE any leada imports
os.environ.setdefault("LLM_API_KEY", "fake-llm-key-for-tests")
os.environ.setdefault("LLM_PROVIDER", "gemini")
os.environ.setdefault("DATABASE_PATH", ":memory:")

from datetime import datetime, timedelta, timezone

import pytest


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_leada.db")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def user_db(db_path):
    from leada.data.db import UserDB
    return UserDB(db_path=db_path)


@pytest.fixture
def company_db(db_path):
    from leada.data.db import CompanyDB
    return CompanyDB(db_path=db_path)


@pytest.fixture
def document_db(db_path):
    from leada.data.db import DocumentDB
    return DocumentDB(db_path=db_path)


@pytest.fixture
def audit_db(db_path):
    from leada.data.db import AuditDB
    return AuditDB(db_path=db_path)


@pytest.fixture
def chat_db(db_path):
    from leada.data.activity_db import ChatDB
    return ChatDB(db_path=db_path)


@pytest.fixture
def package_db(db_path):
    from leada.data.activity_db import PackageDB
    return PackageDB(db_path=db_path)


@pytest.fixture
def routine_db(db_path):
    from leada.data.activity_db import RoutineDB
    return RoutineDB(db_path=db_path)


@pytest.fixture
def report_db(db_path):
    from leada.data.activity_db import ReportDB
    return ReportDB(db_path=db_path)


@pytest.fixture
def cache(db_path, clock):
    """CacheStore whose notion of "now" is the fake clock."""
    from leada.data.cache_store import CacheStore
    return CacheStore(db_path=db_path, clock=clock)


@pytest.fixture
def user(user_db):
    return user_db.add_user("anna@example.com", first_name="Anna")


@pytest.fixture
def context_aggregator(user_db, company_db, chat_db, package_db, routine_db, document_db):
    from leada.core.context import ContextAggregator
    return ContextAggregator(user_db, company_db, chat_db, package_db, routine_db, document_db)


@pytest.fixture
def summary_service(user_db, chat_db, package_db, routine_db, cache):
    from leada.core.summary import SummaryService
    return SummaryService(user_db, chat_db, package_db, routine_db, cache)

