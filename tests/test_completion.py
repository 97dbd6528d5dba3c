"""Tests for leada.core.completion — the Completion Gateway (LLM mocked)."""

from unittest.mock import AsyncMock, patch

import pytest

from leada.core.completion import (
    FALLBACK_REPLY,
    FALLBACK_TITLE,
    FALLBACK_UNIT,
    build_messages,
    chat_completion,
    generate_chat_title,
    generate_package_unit,
    summarize,
)
from leada.core.context import UserContext
from leada.data.models import LearningPackage


class TestBuildMessages:
    def test_order_system_context_history(self):
        context = UserContext(profile={"first_name": "Anna"})
        messages = build_messages(
            [
                {"role": "system", "content": "dropped"},
                {"role": "user", "content": "Hallo"},
                {"role": "assistant", "content": "Hi"},
                {"role": "user", "content": "Frage"},
            ],
            system_prompt="SYS",
            context=context,
        )
        assert messages[0] == {"role": "system", "content": "SYS"}
        assert messages[1]["role"] == "system"
        assert "- Vorname: Anna" in messages[1]["content"]
        assert [m["content"] for m in messages[2:]] == ["Hallo", "Hi", "Frage"]

    def test_default_system_prompt_without_context(self):
        messages = build_messages([{"role": "user", "content": "Hallo"}])
        assert len(messages) == 2
        assert "Leada" in messages[0]["content"]


class TestChatCompletion:
    @pytest.mark.asyncio
    async def test_returns_stripped_reply(self):
        mock = AsyncMock(return_value="  Antwort  ")
        with patch("leada.core.completion.complete_chat", mock):
            reply = await chat_completion([{"role": "user", "content": "Hallo"}], "SYS")
        assert reply == "Antwort"
        sent = mock.call_args.args[0]
        assert sent[0]["content"] == "SYS"
        assert mock.call_args.kwargs["max_tokens"] == 600

    @pytest.mark.asyncio
    async def test_failure_returns_empty(self):
        with patch("leada.core.completion.complete_chat", AsyncMock(side_effect=RuntimeError("down"))):
            assert await chat_completion([{"role": "user", "content": "Hallo"}]) == ""

    def test_fallback_reply_is_german_apology(self):
        assert FALLBACK_REPLY.startswith("Entschuldigung")


class TestGenerateChatTitle:
    @pytest.mark.asyncio
    async def test_strips_quotes(self):
        with patch("leada.core.completion.complete", AsyncMock(return_value='"Konflikte im Team"')):
            title = await generate_chat_title([{"role": "user", "content": "Streit im Team"}])
        assert title == "Konflikte im Team"

    @pytest.mark.asyncio
    async def test_uses_first_four_messages(self):
        mock = AsyncMock(return_value="Delegation")
        history = [{"role": "user", "content": f"nachricht-{i}"} for i in range(6)]
        with patch("leada.core.completion.complete", mock):
            await generate_chat_title(history)
        prompt = mock.call_args.args[1]
        assert "nachricht-3" in prompt
        assert "nachricht-4" not in prompt

    @pytest.mark.asyncio
    async def test_failure_and_empty_fall_back(self):
        with patch("leada.core.completion.complete", AsyncMock(side_effect=RuntimeError)):
            assert await generate_chat_title([]) == FALLBACK_TITLE
        with patch("leada.core.completion.complete", AsyncMock(return_value='""')):
            assert await generate_chat_title([]) == FALLBACK_TITLE


class TestSummarize:
    @pytest.mark.asyncio
    async def test_success_and_failure(self):
        with patch("leada.core.completion.complete", AsyncMock(return_value=" Kurz. ")):
            assert await summarize("facts", "instruction") == "Kurz."
        with patch("leada.core.completion.complete", AsyncMock(side_effect=RuntimeError)):
            assert await summarize("facts", "instruction") == ""


class TestGeneratePackageUnit:
    @pytest.mark.asyncio
    async def test_prompt_mentions_day_and_unit(self):
        package = LearningPackage(id="p1", title="Effektiv delegieren", description="d")
        mock = AsyncMock(return_value="Willkommen zu Tag 2 ...")
        with patch("leada.core.completion.complete", mock):
            text = await generate_package_unit(package, 2, 1)
        assert text == "Willkommen zu Tag 2 ..."
        system = mock.call_args.args[0]
        assert "Einheit 1 von Tag 2/14" in system

    @pytest.mark.asyncio
    async def test_failure_returns_fallback(self):
        package = LearningPackage(id="p1", title="X", description="d")
        with patch("leada.core.completion.complete", AsyncMock(side_effect=RuntimeError)):
            assert await generate_package_unit(package, 1, 1) == FALLBACK_UNIT
