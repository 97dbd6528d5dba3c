"""Tests for leada.core.profile_extraction — tolerant parsing and merge."""

from unittest.mock import AsyncMock, patch

import pytest

from leada.core.profile_extraction import (
    ExtractedProfileInfo,
    extract_json_object,
    extract_profile_information,
    is_profile_complete,
    merge_profile_info,
    parse_extraction,
)
from leada.data.models import Profile


class TestExtractJsonObject:
    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == {"a": 1}

    def test_prose_and_code_fence_around(self):
        raw = 'Hier ist das Ergebnis:\n```json\n{"role": "CTO", "goals": ["x"]}\n```\nFertig.'
        assert extract_json_object(raw) == {"role": "CTO", "goals": ["x"]}

    def test_braces_inside_strings(self):
        raw = 'x {"role": "Leiter {IT}", "n": {"k": "}"}} y'
        assert extract_json_object(raw) == {"role": "Leiter {IT}", "n": {"k": "}"}}

    def test_skips_unparsable_candidate(self):
        assert extract_json_object('{kein json} dann {"age": 40}') == {"age": 40}

    def test_nothing_found(self):
        assert extract_json_object("keine Daten") is None
        assert extract_json_object("") is None


class TestParseExtraction:
    def test_aliases_and_types(self):
        info = parse_extraction(
            '{"age": 41, "teamSize": 12.0, "leadershipYears": "fünf", "role": " CTO ", '
            '"gender": 3, "goals": ["Delegation", 7, ""], "hasNewInfo": true}'
        )
        assert info.age == 41
        assert info.team_size == 12
        assert info.leadership_years is None
        assert info.role == "CTO"
        assert info.gender is None
        assert info.goals == ["Delegation"]
        assert info.has_new_info is True

    def test_has_new_info_must_be_literal_true(self):
        assert parse_extraction('{"role": "CTO", "hasNewInfo": "true"}').has_new_info is False

    def test_garbage_is_no_new_info(self):
        assert parse_extraction("Sorry, I cannot help.").has_new_info is False
        assert parse_extraction('{"goals": "nicht eine Liste", "hasNewInfo": true}').goals == []


class TestExtractProfileInformation:
    @pytest.mark.asyncio
    async def test_calls_llm_with_low_temperature(self):
        mock = AsyncMock(return_value='{"role": "Teamleiter", "hasNewInfo": true}')
        with patch("leada.core.profile_extraction.complete", mock):
            info = await extract_profile_information("Ich leite ein Team.", "Schön!")
        assert info.role == "Teamleiter"
        assert mock.call_args.kwargs["temperature"] == 0.1
        assert "Noch kein Profil vorhanden" in mock.call_args.args[0]

    @pytest.mark.asyncio
    async def test_llm_failure_never_raises(self):
        with patch("leada.core.profile_extraction.complete", AsyncMock(side_effect=RuntimeError)):
            info = await extract_profile_information("a", "b", Profile(user_id="u1"))
        assert info.has_new_info is False


class TestMergeProfileInfo:
    def test_no_new_info_returns_same_object(self):
        profile = Profile(user_id="u1", role="CTO")
        extracted = ExtractedProfileInfo(role="CEO", has_new_info=False)
        assert merge_profile_info(profile, extracted) is profile

    def test_scalars_overwrite_and_goals_append(self):
        profile = Profile(user_id="u1", role="Teamleiter", age=35, goals=["Delegation"])
        extracted = ExtractedProfileInfo(
            role="Abteilungsleiter", team_size=20, goals=["Delegation", "Feedback"],
            has_new_info=True,
        )
        merged = merge_profile_info(profile, extracted)
        assert merged.role == "Abteilungsleiter"
        assert merged.team_size == 20
        assert merged.age == 35
        assert merged.goals == ["Delegation", "Feedback"]
        # Original untouched
        assert profile.role == "Teamleiter"

    def test_merge_is_monotonic(self):
        profile = Profile(user_id="u1", role="CTO", industry="IT", goals=["A", "B"])
        merged = merge_profile_info(
            profile, ExtractedProfileInfo(goals=["C"], has_new_info=True),
        )
        assert merged.role == "CTO"
        assert merged.industry == "IT"
        assert set(profile.goals) <= set(merged.goals)

    def test_nothing_applicable_returns_same_object(self):
        profile = Profile(user_id="u1", goals=["A"])
        extracted = ExtractedProfileInfo(goals=["A"], has_new_info=True)
        assert merge_profile_info(profile, extracted) is profile


class TestIsProfileComplete:
    def test_role_or_team_size(self):
        assert is_profile_complete(Profile(user_id="u1", role="CTO")) is True
        assert is_profile_complete(Profile(user_id="u1", team_size=4)) is True
        assert is_profile_complete(Profile(user_id="u1", first_name="Anna", goals=["x"])) is False
        assert is_profile_complete(None) is False
