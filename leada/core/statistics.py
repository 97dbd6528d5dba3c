"""
Leada Coaching Core — Admin Statistics.

Platform-wide numbers for the admin dashboard: registered users, users
active in the last 30 days and a word-frequency list for a topic cloud.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from leada.data.activity_db import ChatDB
from leada.data.db import UserDB

logger = logging.getLogger(__name__)

ACTIVE_WINDOW_DAYS = 30
TOPIC_WINDOW_DAYS = 90
MIN_WORD_LENGTH = 4

STOP_WORDS = frozenset({
    "der", "die", "das", "den", "dem", "des", "ein", "eine", "einer", "eines", "einem", "einen",
    "und", "oder", "aber", "wenn", "weil", "dass", "dann", "also", "ich", "du", "er", "sie", "es",
    "wir", "ihr", "mein", "dein", "sein", "unser", "euer", "ist", "sind", "war", "waren",
    "bin", "bist", "hat", "haben", "hatte", "hatten", "wird", "werden", "wurde", "wurden",
    "von", "zu", "bei", "mit", "für", "auf", "in", "an", "um", "über", "unter", "durch",
    "wie", "was", "wo", "wann", "warum", "welche", "welcher", "welches", "diese", "dieser", "dieses",
    "nicht", "nur", "noch", "mehr", "sehr", "können", "möchten", "sollten", "würde", "würden",
    "habe", "hast", "kann", "kannst", "muss", "müssen", "soll", "sollen", "will", "wollen",
})

_NON_WORD = re.compile(r"[^\w\s]")


@dataclass
class TopicCount:
    text: str
    value: int


def topic_words(text: str) -> list[str]:
    """Lower-cased words of at least four letters, minus stop words and numbers."""
    words = _NON_WORD.sub(" ", text.lower()).split()
    return [
        w for w in words
        if len(w) >= MIN_WORD_LENGTH and w not in STOP_WORDS and not w.isdigit()
    ]


class StatisticsService:
    def __init__(
        self,
        user_db: UserDB,
        chat_db: ChatDB,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._users = user_db
        self._chats = chat_db
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def total_users(self) -> int:
        return self._users.count_users()

    def active_users(self) -> int:
        """Distinct users with a chat session updated in the last 30 days."""
        since = self._clock() - timedelta(days=ACTIVE_WINDOW_DAYS)
        return len({s.user_id for s in self._chats.list_sessions(since=since)})

    def topics(self, limit: int = 50) -> list[TopicCount]:
        """Most frequent words in user messages of the last 90 days."""
        since = self._clock() - timedelta(days=TOPIC_WINDOW_DAYS)
        counts: Counter[str] = Counter()
        for message in self._chats.user_messages(since=since):
            counts.update(topic_words(message.content))
        logger.debug("Topic cloud: %d distinct words", len(counts))
        return [TopicCount(text=w, value=n) for w, n in counts.most_common(limit)]
