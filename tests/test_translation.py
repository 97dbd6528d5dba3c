"""Tests for leada.core.translation — UI string translation (LLM mocked)."""

from unittest.mock import AsyncMock, patch

import pytest

from leada.core.translation import (
    BASE_UI_STRINGS,
    CACHE_SUBJECT,
    COMMON_LANGUAGES,
    Translator,
    translate_strings,
)

SOURCE = {"common.save": "Speichern", "common.cancel": "Abbrechen"}


class TestTranslateStrings:
    @pytest.mark.asyncio
    async def test_source_language_needs_no_llm(self):
        mock = AsyncMock()
        with patch("leada.core.translation.complete", mock):
            result = await translate_strings(SOURCE, "Deutsch")
        assert result == SOURCE
        mock.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_partial_translation_keeps_source_for_missing_keys(self):
        raw = 'Sure!\n{"common.save": "Save", "unknown.key": "Nope", "common.cancel": 5}'
        with patch("leada.core.translation.complete", AsyncMock(return_value=raw)):
            result = await translate_strings(SOURCE, "English")
        assert result == {"common.save": "Save", "common.cancel": "Abbrechen"}

    @pytest.mark.asyncio
    async def test_unparsable_response_returns_source(self):
        with patch("leada.core.translation.complete", AsyncMock(return_value="no json")):
            assert await translate_strings(SOURCE, "English") == SOURCE

    @pytest.mark.asyncio
    async def test_llm_failure_returns_source(self):
        with patch("leada.core.translation.complete", AsyncMock(side_effect=RuntimeError)):
            assert await translate_strings(SOURCE, "English") == SOURCE


class TestTranslator:
    @pytest.mark.asyncio
    async def test_translation_is_cached_per_language(self, cache):
        translator = Translator(cache, SOURCE)
        mock = AsyncMock(return_value='{"common.save": "Save", "common.cancel": "Cancel"}')
        with patch("leada.core.translation.complete", mock):
            first = await translator.get_ui_strings("English")
            await cache.flush()
            second = await translator.get_ui_strings(" english ")
        assert first == second == {"common.save": "Save", "common.cancel": "Cancel"}
        mock.assert_awaited_once()
        assert cache.get(CACHE_SUBJECT, "english") == first

    @pytest.mark.asyncio
    async def test_failed_translation_is_not_cached(self, cache):
        translator = Translator(cache, SOURCE)
        with patch("leada.core.translation.complete", AsyncMock(side_effect=RuntimeError)):
            assert await translator.get_ui_strings("English") == SOURCE
        await cache.flush()
        assert cache.get(CACHE_SUBJECT, "english") is None

    @pytest.mark.asyncio
    async def test_get_string_and_clear(self, cache):
        translator = Translator(cache, SOURCE)
        with patch("leada.core.translation.complete", AsyncMock(return_value='{"common.save": "Save"}')):
            assert await translator.get_string("common.save", "English") == "Save"
            assert await translator.get_string("missing.key", "English") == "missing.key"
        await cache.flush()
        translator.clear("English")
        assert cache.get(CACHE_SUBJECT, "english") is None

    @pytest.mark.asyncio
    async def test_default_source_is_base_strings(self, cache):
        assert await Translator(cache).get_ui_strings("German") == BASE_UI_STRINGS


def test_common_languages_have_names():
    assert all({"code", "name", "native_name"} <= set(lang) for lang in COMMON_LANGUAGES)
    assert any(lang["name"] == "Deutsch" for lang in COMMON_LANGUAGES)
