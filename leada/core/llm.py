"""
Leada Coaching Core — LLM Provider Abstraction.

Two public functions route to the configured provider:
`complete_chat()` for role-tagged message lists and `complete()` for a
single system + user prompt. Provider is selected at first call via the
LLM_PROVIDER env var. Supports: gemini, anthropic, openai (default), cohere.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

# {"role": "system" | "user" | "assistant", "content": str}
ChatMessage = dict[str, str]

# Type alias for provider implementations
_ProviderFn = Callable[[str, str, list[ChatMessage], int, float], Awaitable[str]]

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _split_system(messages: list[ChatMessage]) -> tuple[str, list[ChatMessage]]:
    """Separate system messages (joined) from the conversation turns."""
    system_parts = [m["content"] for m in messages if m.get("role") == "system"]
    turns = [m for m in messages if m.get("role") != "system"]
    return "\n\n".join(system_parts), turns


# ---------------------------------------------------------------------------
# Provider implementations
# ---------------------------------------------------------------------------


async def _complete_gemini(
    api_key: str, model: str, messages: list[ChatMessage], max_tokens: int, temperature: float,
) -> str:
    import google.generativeai as genai

    system, turns = _split_system(messages)
    genai.configure(api_key=api_key)
    gm = genai.GenerativeModel(
        model_name=model,
        system_instruction=system or None,
    )
    contents = [
        {"role": "model" if m["role"] == "assistant" else "user", "parts": [m["content"]]}
        for m in turns
    ]
    response = await gm.generate_content_async(
        contents,
        generation_config=genai.types.GenerationConfig(
            max_output_tokens=max_tokens,
            temperature=temperature,
        ),
    )
    return response.text


async def _complete_anthropic(
    api_key: str, model: str, messages: list[ChatMessage], max_tokens: int, temperature: float,
) -> str:
    import anthropic

    system, turns = _split_system(messages)
    client = anthropic.AsyncAnthropic(api_key=api_key)
    response = await client.messages.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        system=system,
        messages=[{"role": m["role"], "content": m["content"]} for m in turns],
    )
    return response.content[0].text


async def _complete_openai(
    api_key: str, model: str, messages: list[ChatMessage], max_tokens: int, temperature: float,
) -> str:
    from openai import AsyncOpenAI

    client = AsyncOpenAI(api_key=api_key)
    response = await client.chat.completions.create(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        messages=messages,
    )
    return response.choices[0].message.content or ""


async def _complete_cohere(
    api_key: str, model: str, messages: list[ChatMessage], max_tokens: int, temperature: float,
) -> str:
    import cohere

    client = cohere.AsyncClientV2(api_key=api_key)
    response = await client.chat(
        model=model,
        max_tokens=max_tokens,
        temperature=temperature,
        messages=messages,
    )
    return response.message.content[0].text


# ---------------------------------------------------------------------------
# Provider selection (runs once at first call)
# ---------------------------------------------------------------------------

_PROVIDERS: dict[str, tuple[_ProviderFn, str]] = {
    "gemini":    (_complete_gemini,    "gemini-2.0-flash"),
    "anthropic": (_complete_anthropic, "claude-haiku-4-5-20251001"),
    "openai":    (_complete_openai,    "gpt-4o-mini"),
    "cohere":    (_complete_cohere,    "command-a-03-2025"),
}


def _select_provider() -> tuple[_ProviderFn, str, str]:
    """Read settings and return (provider_fn, model, api_key)."""
    from leada.config import settings

    provider_name = settings.LLM_PROVIDER.lower()
    if provider_name not in _PROVIDERS:
        raise ValueError(
            f"Unknown LLM_PROVIDER={provider_name!r}. "
            f"Supported: {', '.join(_PROVIDERS)}"
        )

    fn, default_model = _PROVIDERS[provider_name]
    model = settings.LLM_MODEL or default_model
    api_key = settings.LLM_API_KEY

    logger.info("LLM provider: %s, model: %s", provider_name, model)
    return fn, model, api_key


# Lazy singleton — populated on first call to complete_chat()
_provider_fn: _ProviderFn | None = None
_model: str = ""
_api_key: str = ""


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def complete_chat(
    messages: list[ChatMessage], max_tokens: int = 600, temperature: float = 0.7,
) -> str:
    """Send an ordered, role-tagged message list to the configured provider.

    Raises on API errors — callers should handle exceptions.
    """
    global _provider_fn, _model, _api_key

    if _provider_fn is None:
        _provider_fn, _model, _api_key = _select_provider()

    return await _provider_fn(_api_key, _model, messages, max_tokens, temperature)


async def complete(
    system: str, user_message: str, max_tokens: int = 256, temperature: float = 0.7,
) -> str:
    """Single-turn shortcut: one system prompt and one user message."""
    return await complete_chat(
        [
            {"role": "system", "content": system},
            {"role": "user", "content": user_message},
        ],
        max_tokens=max_tokens,
        temperature=temperature,
    )
