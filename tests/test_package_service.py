"""Tests for leada.core.package_service — learning-package lifecycle."""

from unittest.mock import AsyncMock, patch

import pytest

from leada.core.package_service import InvalidTransitionError, PackageService
from leada.data.errors import ConflictError, NotFoundError
from leada.data.models import ChatType, ProgressStatus


@pytest.fixture
def packages(package_db, chat_db, summary_service, context_aggregator):
    return PackageService(package_db, chat_db, summary_service, context_aggregator)


@pytest.fixture
def package(package_db):
    return package_db.add_package("Effektiv delegieren", "d", duration=2, units_per_day=2)


class TestCatalog:
    def test_status_defaults_to_not_started(self, packages, package, package_db, user):
        other = package_db.add_package("Feedback", "f")
        packages.start(user.id, package.id)
        entries = {e.package.id: e for e in packages.catalog(user.id)}
        assert entries[package.id].status == ProgressStatus.ACTIVE.value
        assert entries[package.id].current_day == 1
        assert entries[other.id].status == ProgressStatus.NOT_STARTED.value


class TestStart:
    def test_start_creates_progress_and_package_chat(self, packages, package, chat_db, user):
        record = packages.start(user.id, package.id)
        assert record.status == "active"
        assert (record.current_day, record.current_unit) == (1, 1)
        chat = chat_db.get_session(record.chat_session_id, user.id)
        assert chat.chat_type == ChatType.PACKAGE.value
        assert chat.title == "Themenpaket: Effektiv delegieren"

    def test_restart_resets_and_reuses_chat(self, packages, package, package_db, user):
        first = packages.start(user.id, package.id)
        packages.advance(user.id, package.id)
        packages.pause(user.id, package.id)
        again = packages.start(user.id, package.id)
        assert again.id == first.id
        assert again.chat_session_id == first.chat_session_id
        stored = package_db.get_progress(user.id, package.id)
        assert (stored.status, stored.current_day, stored.current_unit) == ("active", 1, 1)
        assert len(package_db.list_progress(user.id)) == 1

    def test_start_completed_package_rejected(self, packages, package, user):
        packages.start(user.id, package.id)
        packages.complete(user.id, package.id)
        with pytest.raises(InvalidTransitionError):
            packages.start(user.id, package.id)

    def test_concurrent_start_leaves_no_orphan_chat(
        self, packages, package, package_db, chat_db, user,
    ):
        packages.start(user.id, package.id)
        # second request read no record before the first one wrote it
        with patch.object(package_db, "get_progress", return_value=None):
            with pytest.raises(ConflictError):
                packages.start(user.id, package.id)
        assert len(chat_db.list_sessions(user.id, chat_type=ChatType.PACKAGE.value)) == 1

    def test_unknown_package(self, packages, user):
        with pytest.raises(NotFoundError):
            packages.start(user.id, "missing")

    def test_start_invalidates_dashboard(self, packages, package, cache, user):
        cache.set(user.id, "dashboard_summary_week", "alt", 60)
        packages.start(user.id, package.id)
        assert cache.get(user.id, "dashboard_summary_week") is None


class TestTransitions:
    def test_pause_resume(self, packages, package, user):
        packages.start(user.id, package.id)
        assert packages.pause(user.id, package.id).status == "paused"
        with pytest.raises(InvalidTransitionError):
            packages.pause(user.id, package.id)
        assert packages.resume(user.id, package.id).status == "active"
        with pytest.raises(InvalidTransitionError):
            packages.resume(user.id, package.id)

    def test_paused_cannot_complete(self, packages, package, user):
        packages.start(user.id, package.id)
        packages.pause(user.id, package.id)
        with pytest.raises(InvalidTransitionError):
            packages.complete(user.id, package.id)

    def test_complete_sets_completed_at(self, packages, package, package_db, user):
        packages.start(user.id, package.id)
        record = packages.complete(user.id, package.id)
        assert record.status == "completed"
        assert package_db.get_progress(user.id, package.id).completed_at is not None

    def test_not_started(self, packages, package, user):
        with pytest.raises(NotFoundError):
            packages.pause(user.id, package.id)


class TestAdvance:
    def test_units_roll_over_and_complete(self, packages, package, user):
        packages.start(user.id, package.id)
        steps = [packages.advance(user.id, package.id) for _ in range(3)]
        assert [(r.current_day, r.current_unit) for r in steps] == [(1, 2), (2, 1), (2, 2)]
        assert steps[-1].status == "active"

        final = packages.advance(user.id, package.id)
        assert final.status == "completed"
        assert final.current_day == package.duration
        assert final.completed_at is not None

        with pytest.raises(InvalidTransitionError):
            packages.advance(user.id, package.id)

    def test_paused_cannot_advance(self, packages, package, user):
        packages.start(user.id, package.id)
        packages.pause(user.id, package.id)
        with pytest.raises(InvalidTransitionError):
            packages.advance(user.id, package.id)


class TestNextUnit:
    @pytest.mark.asyncio
    async def test_stored_unit_preferred(self, packages, package, package_db, user):
        package_db.add_unit(package.id, 1, 1, "Warum delegieren?", "Inhalt", "Was gibst du ab?")
        packages.start(user.id, package.id)
        mock = AsyncMock()
        with patch("leada.core.completion.complete", mock):
            text = await packages.next_unit(user.id, package.id)
        assert text.startswith("## Warum delegieren?\n\nInhalt")
        assert "Was gibst du ab?" in text
        mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_generated_when_missing(self, packages, package, user):
        packages.start(user.id, package.id)
        packages.advance(user.id, package.id)
        mock = AsyncMock(return_value="Einheit 2 ...")
        with patch("leada.core.completion.complete", mock):
            text = await packages.next_unit(user.id, package.id)
        assert text == "Einheit 2 ..."
        assert "Einheit 2 von Tag 1/2" in mock.call_args.args[0]
        assert "# Nutzerprofil" in mock.call_args.args[0]
