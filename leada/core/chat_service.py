"""
Leada Coaching Core — Chat Turns.

Orchestrates one coaching turn end to end:

1. Validate and store the user's message.
2. Build the prompt hierarchy (onboarding prompt for onboarding chats)
   and the user context, then ask the Completion Gateway for a reply.
3. Move routine suggestions out of the reply text into message metadata.
4. Title untitled general chats.
5. Extract profile facts from the exchange, merge them, invalidate the
   summaries that depend on the profile and finish onboarding once the
   profile is complete enough.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from leada.core.completion import FALLBACK_REPLY, chat_completion, generate_chat_title
from leada.core.context import ContextAggregator
from leada.core.profile_extraction import (
    extract_profile_information,
    is_profile_complete,
    merge_profile_info,
)
from leada.core.prompts import get_onboarding_prompt, get_user_prompt_hierarchy
from leada.core.routine_suggestions import RoutineSuggestion, parse_routine_suggestions
from leada.core.summary import SummaryService
from leada.data.activity_db import ChatDB
from leada.data.db import CompanyDB, UserDB
from leada.data.errors import NotFoundError
from leada.data.models import ChatSession, ChatType, Message, MessageRole, Profile

logger = logging.getLogger(__name__)

ROUTINE_SUGGESTION_KEY = "routine_suggestion"

# Chat types a user has at most one of, with their fixed titles
SINGLETON_CHATS: dict[str, str] = {
    ChatType.ONBOARDING.value: "Onboarding",
    ChatType.PROFILE_REFLECTION.value: "Profil-Reflexion",
    ChatType.KI_BRIEFING.value: "KI-Briefing",
}


@dataclass
class ChatTurn:
    user_message: Message
    assistant_message: Message
    routine_suggestions: list[RoutineSuggestion] = field(default_factory=list)
    profile_updated: bool = False


def validate_message(content: str) -> str:
    """Trimmed message text.

    Raises:
        ValueError: empty after trimming, or longer than MAX_MESSAGE_LENGTH.
    """
    from leada.config import settings

    text = (content or "").strip()
    if not text:
        raise ValueError("Message must not be empty")
    if len(text) > settings.MAX_MESSAGE_LENGTH:
        raise ValueError(
            f"Message exceeds {settings.MAX_MESSAGE_LENGTH} characters ({len(text)})"
        )
    return text


class ChatService:
    def __init__(
        self,
        user_db: UserDB,
        company_db: CompanyDB,
        chat_db: ChatDB,
        context_aggregator: ContextAggregator,
        summaries: SummaryService | None = None,
    ) -> None:
        self._users = user_db
        self._companies = company_db
        self._chats = chat_db
        self._context = context_aggregator
        self._summaries = summaries

    # -- sessions -----------------------------------------------------------

    def create_chat(self, user_id: str, title: str | None = None) -> ChatSession:
        return self._chats.create_session(user_id, ChatType.GENERAL.value, title)

    def get_or_create_chat(self, user_id: str, chat_type: str) -> ChatSession:
        """The user's single chat of a singleton type, created on first use."""
        if chat_type not in SINGLETON_CHATS:
            raise ValueError(f"{chat_type!r} is not a singleton chat type")
        session = self._chats.find_session_by_type(user_id, chat_type)
        if session is not None:
            return session
        return self._chats.create_session(user_id, chat_type, SINGLETON_CHATS[chat_type])

    def get_chat(self, user_id: str, session_id: str) -> ChatSession:
        session = self._chats.get_session(session_id, user_id=user_id)
        if session is None:
            raise NotFoundError(f"Chat session {session_id} not found")
        return session

    def list_chats(self, user_id: str, chat_type: str | None = None) -> list[ChatSession]:
        return self._chats.list_sessions(user_id, chat_type=chat_type)

    def pin_chat(self, user_id: str, session_id: str, is_pinned: bool = True) -> None:
        self.get_chat(user_id, session_id)
        self._chats.set_pinned(session_id, is_pinned)

    def delete_chat(self, user_id: str, session_id: str) -> None:
        if not self._chats.delete_session(session_id, user_id):
            raise NotFoundError(f"Chat session {session_id} not found")

    # -- turns --------------------------------------------------------------

    async def send_message(self, user_id: str, session_id: str, content: str) -> ChatTurn:
        """Run one chat turn and return both stored messages.

        Raises:
            ValueError: invalid message text.
            NotFoundError: unknown session (or not the user's).
        """
        text = validate_message(content)
        session = self.get_chat(user_id, session_id)

        history = [
            {"role": m.role, "content": m.content}
            for m in session.messages
            if m.role in (MessageRole.USER.value, MessageRole.ASSISTANT.value)
        ]
        user_message = self._chats.add_message(session_id, MessageRole.USER.value, text)
        history.append({"role": MessageRole.USER.value, "content": text})

        profile = self._users.get_profile(user_id)
        base_prompt = None
        if session.chat_type == ChatType.ONBOARDING.value:
            base_prompt = get_onboarding_prompt(
                profile.preferred_language if profile else "Deutsch",
            )
        hierarchy = get_user_prompt_hierarchy(
            user_id, self._users, self._companies, base_prompt=base_prompt,
        )
        context = self._context.build_context(user_id, session_id)

        reply = await chat_completion(history, hierarchy.combined_prompt, context)
        failed = not reply
        if failed:
            logger.warning("Chat turn in %s fell back to the apology reply", session_id)
            reply = FALLBACK_REPLY

        reply, suggestions = parse_routine_suggestions(reply)
        metadata = None
        if suggestions:
            metadata = {ROUTINE_SUGGESTION_KEY: suggestions[0].to_metadata()}
        assistant_message = self._chats.add_message(
            session_id, MessageRole.ASSISTANT.value, reply, metadata,
        )

        if session.chat_type == ChatType.GENERAL.value and not session.title:
            history.append({"role": MessageRole.ASSISTANT.value, "content": reply})
            title = await generate_chat_title(history)
            self._chats.set_title(session_id, title)
            logger.info("Chat %s titled '%s'", session_id, title)

        profile_updated = False
        if not failed and profile is not None:
            profile_updated = await self._update_profile(user_id, profile, text, reply)

        return ChatTurn(
            user_message=user_message,
            assistant_message=assistant_message,
            routine_suggestions=suggestions,
            profile_updated=profile_updated,
        )

    async def _update_profile(
        self, user_id: str, profile: Profile, user_text: str, reply: str,
    ) -> bool:
        extracted = await extract_profile_information(user_text, reply, profile)
        merged = merge_profile_info(profile, extracted)
        changed = merged is not profile
        if changed:
            self._users.save_profile(merged)
            if self._summaries is not None:
                self._summaries.invalidate_profile_summary(user_id)
                self._summaries.invalidate_dashboard_summaries(user_id)

        if not merged.onboarding_complete and is_profile_complete(merged):
            self._users.mark_onboarding_complete(user_id)
            logger.info("Onboarding complete for user %s", user_id)
        return changed
