"""Tests for leada.core.analytics — company analytics (LLM mocked)."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, patch

import pytest

from leada.core.analytics import FALLBACK_COMPANY_SUMMARY, CompanyAnalyticsService
from leada.data.db import utc_now_iso


@pytest.fixture
def analytics(user_db, chat_db, package_db, routine_db, cache):
    return CompanyAnalyticsService(user_db, chat_db, package_db, routine_db, cache)


@pytest.fixture
def company_setup(user_db, company_db, chat_db, package_db, routine_db):
    company = company_db.add_company("Acme")
    anna = user_db.add_user("anna@example.com", company_id=company.id)
    ben = user_db.add_user("ben@example.com", company_id=company.id)
    user_db.add_user("carla@example.com", company_id=company.id)
    user_db.add_user("outsider@example.com")

    session = chat_db.create_session(anna.id, title="Feedback geben")
    chat_db.add_message(session.id, "user", "Wie gebe ich Feedback?")
    chat_db.add_message(session.id, "assistant", "So ...")

    package = package_db.add_package("Feedback", "d", duration=10)
    record = package_db.create_progress(ben.id, package.id)
    record.current_day = 5
    package_db.save_progress(record)
    done = package_db.create_progress(anna.id, package.id)
    done.status = "completed"
    done.completed_at = utc_now_iso()
    done.current_day = 10
    package_db.save_progress(done)

    routine = routine_db.add_routine(anna.id, "Journaling", target=4)
    routine_db.add_entry(routine.id, datetime.now(timezone.utc).date().isoformat())
    routine_db.add_routine(ben.id, "Unbenutzt", target=2)
    return company, anna, ben


class TestComputeCompanyAnalytics:
    def test_metrics(self, analytics, company_setup):
        company, anna, ben = company_setup
        result = analytics.compute_company_analytics(company.id, "month")

        assert result["period"] == "month"
        users = result["user_metrics"]
        assert users["total_users"] == 3
        # anna chatted, ben accessed a package, carla did nothing
        assert users["active_users"] == 2
        assert users["new_users"] == 3

        packages = result["package_metrics"]
        assert packages["total_progress"] == 2
        assert packages["active_progress"] == 1
        assert packages["completed_progress"] == 1
        assert packages["popular_packages"] == [
            {"title": "Feedback", "user_count": 2, "avg_completion": 75},
        ]

        chat = result["chat_metrics"]
        assert chat["total_sessions"] == 1
        assert chat["total_messages"] == 2
        assert chat["avg_messages_per_session"] == 2
        assert chat["top_topics"] == ["Feedback geben"]

        routines = result["routine_metrics"]
        assert routines["total_routines"] == 2
        assert routines["active_routines"] == 2
        assert routines["popular_routines"] == [
            {"title": "Journaling", "user_count": 1, "avg_completion_rate": 25},
        ]

    def test_empty_company(self, analytics, company_db):
        company = company_db.add_company("Leer")
        result = analytics.compute_company_analytics(company.id, "week")
        assert result["user_metrics"] == {"total_users": 0, "active_users": 0, "new_users": 0}
        assert result["chat_metrics"]["avg_messages_per_session"] == 0

    def test_unknown_period(self, analytics, company_db):
        with pytest.raises(ValueError):
            analytics.compute_company_analytics("c1", "quarter")

    def test_list_company_users(self, analytics, company_setup):
        company, anna, ben = company_setup
        rows = {r["email"]: r for r in analytics.list_company_users(company.id)}
        assert set(rows) == {"anna@example.com", "ben@example.com", "carla@example.com"}
        assert rows["anna@example.com"]["completed_package_count"] == 1
        assert rows["anna@example.com"]["chat_session_count"] == 1
        assert rows["carla@example.com"]["last_active"] is None


class TestCachedAnalytics:
    @pytest.mark.asyncio
    async def test_analytics_cached_per_period(self, analytics, cache, company_setup):
        company, _, _ = company_setup
        first = await analytics.get_company_analytics(company.id, "week")
        await cache.flush()
        assert cache.get(company.id, "company_analytics_week") == first
        assert cache.get(company.id, "company_analytics_month") is None

    @pytest.mark.asyncio
    async def test_summary_cached_and_fallback(self, analytics, cache, company_setup):
        company, _, _ = company_setup
        with patch("leada.core.analytics.summarize", AsyncMock(return_value="Hohes Engagement.")):
            assert await analytics.generate_company_analytics_summary(company.id, "week") == (
                "Hohes Engagement."
            )
        await cache.flush()
        assert cache.get(company.id, "company_summary_week") == "Hohes Engagement."

        with patch("leada.core.analytics.summarize", AsyncMock(return_value="")):
            result = await analytics.generate_company_analytics_summary(company.id, "month")
        await cache.flush()
        assert result == FALLBACK_COMPANY_SUMMARY
        assert cache.get(company.id, "company_summary_month") is None
