"""Tests for leada.core.context — the Context Aggregator."""

from datetime import datetime, timedelta, timezone

import pytest

from leada.core.context import (
    MAX_DOCUMENT_CHARS,
    ContextAggregator,
    PackageContext,
    UserContext,
    profile_facts,
    render_context_prompt,
)
from leada.data.errors import NotFoundError
from leada.data.models import Profile


class TestProfileFacts:
    def test_omits_empty_fields(self):
        profile = Profile(user_id="u1", first_name="Anna", role="", team_size=5, goals=[])
        assert profile_facts(profile) == {"first_name": "Anna", "team_size": 5}

    def test_none_profile(self):
        assert profile_facts(None) == {}


class TestRenderContextPrompt:
    def test_sections(self):
        context = UserContext(
            profile={"first_name": "Anna", "goals": ["Delegieren", "Feedback"]},
            active_packages=[PackageContext("Effektiv delegieren", 3, 14)],
            documents_text="## Persönliche Dokumente\n\n### cv.txt\nText",
            onboarding_complete=True,
        )
        rendered = render_context_prompt(context)
        assert "- Vorname: Anna" in rendered
        assert "- Ziele: Delegieren, Feedback" in rendered
        assert "- Onboarding abgeschlossen: ja" in rendered
        assert "- Effektiv delegieren (Tag 3/14)" in rendered
        assert "# Hochgeladene Dokumente" in rendered
        assert "# Aktive Routinen" not in rendered


class TestContextAggregator:
    def test_unknown_user_raises(self, context_aggregator):
        with pytest.raises(NotFoundError):
            context_aggregator.build_context("missing")

    def test_collects_profile_packages_routines(
        self, context_aggregator, user_db, package_db, routine_db, user,
    ):
        profile = user_db.get_profile(user.id)
        profile.role = "Teamleiterin"
        user_db.save_profile(profile)

        active = package_db.add_package("Aktiv", "a")
        paused = package_db.add_package("Pausiert", "p")
        package_db.create_progress(user.id, active.id)
        package_db.create_progress(user.id, paused.id, status="paused")

        routine = routine_db.add_routine(user.id, "Journaling", target=5)
        today = datetime.now(timezone.utc).date()
        routine_db.add_entry(routine.id, today.isoformat())
        routine_db.add_entry(routine.id, (today - timedelta(days=1)).isoformat())
        routine_db.add_entry(routine.id, (today - timedelta(days=20)).isoformat())
        routine_db.add_entry(routine.id, today.isoformat(), completed=False)

        context = context_aggregator.build_context(user.id)
        assert context.profile == {"first_name": "Anna", "role": "Teamleiterin"}
        assert [p.title for p in context.active_packages] == ["Aktiv"]
        assert context.active_routines[0].completed_this_week == 2
        assert context.active_routines[0].target == 5
        assert context.language_style is None
        assert context.onboarding_complete is False

    def test_documents_personal_and_company(
        self, context_aggregator, user_db, company_db, document_db,
    ):
        company = company_db.add_company("Acme")
        anna = user_db.add_user("anna@example.com", company_id=company.id)
        ben = user_db.add_user("ben@example.com", company_id=company.id)
        document_db.add_document(anna.id, "notizen.txt", "txt", 5, "personal", "Privat")
        document_db.add_document(
            ben.id, "leitbild.txt", "txt", 5, "company", "Leitbild", company_id=company.id,
        )

        text = context_aggregator.build_context(anna.id).documents_text
        assert "## Persönliche Dokumente" in text
        assert "### notizen.txt\nPrivat" in text
        assert "## Unternehmensdokumente" in text
        assert "### leitbild.txt\nLeitbild" in text
        assert text.index("Persönliche") < text.index("Unternehmensdokumente")

        assert "notizen.txt" not in context_aggregator.build_context(ben.id).documents_text

    def test_long_document_trimmed_in_context_only(
        self, context_aggregator, document_db, user,
    ):
        body = "Wort " * (MAX_DOCUMENT_CHARS // 5 + 100)
        doc = document_db.add_document(user.id, "lang.txt", "txt", len(body), "personal", body)

        text = context_aggregator.build_context(user.id).documents_text
        section = text.split("### lang.txt\n", 1)[1]
        assert section.endswith(" [...]")
        assert len(section) <= MAX_DOCUMENT_CHARS + len(" [...]")
        assert document_db.get_document(doc.id).extracted_text == body

    def test_language_style_from_session(self, context_aggregator, chat_db, user):
        session = chat_db.create_session(user.id)
        chat_db.add_message(session.id, "user", "Hey, okay.")
        context = context_aggregator.build_context(user.id, session.id)
        assert context.language_style is not None
        assert context.language_style.formality == "locker"
