"""Tests for leada.core.recommendations (LLM mocked)."""

from unittest.mock import AsyncMock, patch

import pytest

from leada.core.recommendations import (
    CACHE_KEY,
    RECOMMENDATION_COUNT,
    RecommendationService,
    backfill,
    clean_title_line,
    resolve_titles,
)
from leada.data.models import LearningPackage
from leada.data.seed import seed_catalog


def _catalog(*titles):
    return [LearningPackage(id=f"p{i}", title=t, description="") for i, t in enumerate(titles)]


@pytest.fixture
def service(user_db, chat_db, package_db, cache):
    return RecommendationService(user_db, chat_db, package_db, cache)


@pytest.fixture
def catalog(package_db):
    return seed_catalog(package_db)


class TestTitleResolution:
    @pytest.mark.parametrize("line, expected", [
        ("1. Effektiv delegieren", "Effektiv delegieren"),
        ("- **Effektiv delegieren**", "Effektiv delegieren"),
        ('"Effektiv delegieren"', "Effektiv delegieren"),
        ("  ", ""),
    ])
    def test_clean_title_line(self, line, expected):
        assert clean_title_line(line) == expected

    def test_exact_then_containment(self):
        catalog = _catalog("Feedback geben", "Konflikte lösen", "Zeitmanagement")
        lines = [
            "feedback geben",
            "Themenpaket: Konflikte lösen (empfohlen)",
            "Zeitmanage",
            "Feedback geben",
            "Unbekannt",
        ]
        assert resolve_titles(lines, catalog) == ["p0", "p1", "p2"]

    def test_short_fragments_do_not_match(self):
        assert resolve_titles(["Zei"], _catalog("Zeitmanagement")) == []

    def test_backfill_prefers_unstarted(self):
        catalog = _catalog("A", "B", "C", "D", "E", "F", "G")
        result = backfill(["p6"], catalog, started_ids={"p0", "p1"})
        assert result == ["p6", "p2", "p3", "p4", "p5"]

    def test_backfill_small_catalog(self):
        assert backfill([], _catalog("A", "B"), set()) == ["p0", "p1"]


class TestRecommend:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("line_count", [0, 3, 7])
    async def test_always_five_distinct_ids(self, service, catalog, user, line_count):
        lines = "\n".join(p.title for p in catalog[:line_count])
        with patch("leada.core.recommendations.complete", AsyncMock(return_value=lines)):
            ids = await service.recommend(user.id)
        assert len(ids) == RECOMMENDATION_COUNT
        assert len(set(ids)) == RECOMMENDATION_COUNT
        assert set(ids) <= {p.id for p in catalog}
        assert ids[:min(line_count, 5)] == [p.id for p in catalog[:min(line_count, 5)]]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reply", [
        "???\n1.\n\n- \n**",
        "{dup}\n{dup}\n{dup}\n{dup}\n{dup}\n{dup}",
        "Hier sind meine Empfehlungen:\n1. {dup}\n2. ???\n3. {dup} (nochmal)\n...",
        "Ich kann dazu nichts sagen.",
    ])
    async def test_always_five_distinct_ids_for_malformed_replies(
        self, service, catalog, user, reply,
    ):
        text = reply.format(dup=catalog[2].title)
        with patch("leada.core.recommendations.complete", AsyncMock(return_value=text)):
            ids = await service.recommend(user.id)
        assert len(ids) == RECOMMENDATION_COUNT
        assert len(set(ids)) == RECOMMENDATION_COUNT
        assert set(ids) <= {p.id for p in catalog}
        if catalog[2].title in text:
            assert ids[0] == catalog[2].id

    @pytest.mark.asyncio
    async def test_llm_failure_falls_back_to_unstarted(self, service, catalog, package_db, user):
        package_db.create_progress(user.id, catalog[0].id)
        with patch("leada.core.recommendations.complete", AsyncMock(side_effect=RuntimeError)):
            ids = await service.recommend(user.id)
        assert ids == [p.id for p in catalog[1:6]]

    @pytest.mark.asyncio
    async def test_empty_catalog(self, service, user):
        with patch("leada.core.recommendations.complete", AsyncMock(return_value="x")):
            assert await service.recommend(user.id) == []

    @pytest.mark.asyncio
    async def test_prompt_contains_profile_and_topics(self, service, catalog, user_db, chat_db, user):
        profile = user_db.get_profile(user.id)
        profile.role = "Teamleiterin"
        user_db.save_profile(profile)
        session = chat_db.create_session(user.id)
        chat_db.add_message(session.id, "user", "Mein Team streitet ständig.")

        mock = AsyncMock(side_effect=["Konflikte, Teamdynamik", catalog[1].title])
        with patch("leada.core.recommendations.complete", mock):
            ids = await service.recommend(user.id)
        assert ids[0] == catalog[1].id
        prompt = mock.call_args_list[1].args[1]
        assert "Rolle: Teamleiterin" in prompt
        assert "## DISKUTIERTE THEMEN:\nKonflikte, Teamdynamik" in prompt


class TestGetRecommendations:
    @pytest.mark.asyncio
    async def test_cached_for_a_day(self, service, catalog, cache, clock, user):
        mock = AsyncMock(return_value="")
        with patch("leada.core.recommendations.complete", mock):
            first = await service.get_recommendations(user.id)
            await cache.flush()
            second = await service.get_recommendations(user.id)
        assert first == second
        assert cache.get(user.id, CACHE_KEY) == first
        clock.advance(hours=24, minutes=1)
        assert cache.get(user.id, CACHE_KEY) is None

    @pytest.mark.asyncio
    async def test_fallback_not_cached(self, service, catalog, cache, user):
        with patch("leada.core.recommendations.complete", AsyncMock(side_effect=RuntimeError)):
            ids = await service.get_recommendations(user.id)
        await cache.flush()
        assert len(ids) == RECOMMENDATION_COUNT
        assert cache.get(user.id, CACHE_KEY) is None
