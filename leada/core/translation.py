"""
Leada Coaching Core — UI Translation.

The UI ships in German. Any other language the user picks is produced by
the LLM on first request and kept in the Cache Store for a week. A failed
or unparseable translation falls back to the German strings and is not
cached.
"""

from __future__ import annotations

import json
import logging

from leada.core.llm import complete
from leada.core.profile_extraction import extract_json_object
from leada.data.cache_store import CACHE_TTL, CacheStore

logger = logging.getLogger(__name__)

CACHE_SUBJECT = "ui-translations"

SOURCE_LANGUAGES = {"deutsch", "german"}

BASE_UI_STRINGS: dict[str, str] = {
    # Navigation
    "nav.dashboard": "Dashboard",
    "nav.chat": "Chat",
    "nav.themenpakete": "Themenpakete",
    "nav.profile": "Profil",
    "nav.myArea": "Mein Bereich",
    "nav.myCompany": "Mein Unternehmen",
    "nav.logout": "Logout",
    # Common
    "common.loading": "Lädt...",
    "common.save": "Speichern",
    "common.cancel": "Abbrechen",
    "common.delete": "Löschen",
    "common.edit": "Bearbeiten",
    "common.send": "Senden",
    "common.sending": "Sendet...",
    "common.continue": "Weiter",
    "common.back": "Zurück",
    "common.close": "Schließen",
    # Auth
    "auth.login": "Anmelden",
    "auth.register": "Registrieren",
    "auth.email": "E-Mail",
    "auth.password": "Passwort",
    "auth.confirmPassword": "Passwort bestätigen",
    "auth.forgotPassword": "Passwort vergessen?",
    "auth.noAccount": "Noch kein Konto?",
    "auth.hasAccount": "Bereits ein Konto?",
    "auth.language": "Sprache",
    "auth.selectLanguage": "Sprache wählen",
    "auth.customLanguage": "Oder eigene Sprache eingeben",
    # Dashboard
    "dashboard.greeting.morning": "Guten Morgen",
    "dashboard.greeting.day": "Guten Tag",
    "dashboard.greeting.evening": "Guten Abend",
    "dashboard.welcome": "Willkommen zurück bei Leada Chat",
    "dashboard.period": "Zeitraum",
    "dashboard.period.week": "Letzte 7 Tage",
    "dashboard.period.month": "Letzter Monat",
    "dashboard.period.3months": "Letzte 3 Monate",
    "dashboard.period.6months": "Letzte 6 Monate",
    "dashboard.period.all": "Seit Beginn",
    "dashboard.activity": "Ihre Aktivität",
    "dashboard.kiBriefing": "KI-Briefing",
    "dashboard.newChat": "Neuer Chat",
    "dashboard.newChat.desc": "Starten Sie ein Gespräch mit Ihrem KI-Coach",
    "dashboard.themenpakete.title": "Themenpakete",
    "dashboard.themenpakete.desc": "Entdecken Sie neue Lernthemen",
    "dashboard.profile.title": "Mein Profil",
    "dashboard.profile.desc": "Reflexion & Entwicklung",
    "dashboard.activeThemenpakete": "Aktive Themenpakete",
    "dashboard.stats": "Statistik",
    "dashboard.stats.sessions": "Chat-Sessions",
    "dashboard.stats.messages": "Nachrichten",
    "dashboard.stats.themenpakete": "Aktive Themenpakete",
    "dashboard.stats.routines": "Routine-Durchführungen",
    "dashboard.viewAll": "Alle anzeigen",
    "dashboard.noThemenpakete": (
        "Noch keine aktiven Themenpakete. Starten Sie eines aus der Bibliothek!"
    ),
    # Chat
    "chat.newChat": "Neuer Chat",
    "chat.noChats": "Noch keine Chats vorhanden",
    "chat.welcome": "Willkommen bei Leada Chat",
    "chat.welcome.desc": "Ihr KI-gestützter Coaching-Partner für Führungskräfte",
    "chat.startChat": "Chat starten",
    "chat.yourMessage": "Ihre Nachricht...",
    "chat.delete": "Löschen",
    "chat.deleteConfirm": "Möchten Sie diese Chat-Session wirklich löschen?",
    "chat.pinned": "Fixiert",
    "chat.greeting": "Wie kann ich Ihnen heute helfen?",
    "chat.greeting.withName": "Hallo {name}! Wie kann ich Ihnen heute helfen?",
    # Profile
    "profile.title": "Mein Profil",
    "profile.subtitle": "Ihre persönliche Entwicklung im Überblick",
    "profile.currentSituation": "Ihre aktuelle Situation",
    "profile.loadingSummary": "Lädt Zusammenfassung...",
    "profile.noSummary": (
        "Noch keine Zusammenfassung verfügbar. Nutzen Sie Leada Chat aktiv, um Ihre "
        "persönliche Zusammenfassung zu generieren."
    ),
    "profile.reflectionChat": "Reflexions-Chat",
    "profile.reflectionChat.desc": "Reflektieren Sie Ihre Entwicklung, Herausforderungen und Ziele",
    "profile.fullscreen": "Vollbild öffnen",
    "profile.welcome": "Willkommen in Ihrem Reflexions-Chat! Hier können Sie:",
    "profile.welcome.item1": "Ihre persönliche Entwicklung reflektieren",
    "profile.welcome.item2": "Herausforderungen besprechen",
    "profile.welcome.item3": "Ziele identifizieren und planen",
    "profile.welcome.item4": "Konkrete Entwicklungsvorschläge erhalten",
    # Themenpakete
    "themenpakete.title": "Themenpakete",
    "themenpakete.day": "Tag",
    "themenpakete.unit": "Einheit",
    "themenpakete.start": "Starten",
    "themenpakete.continue": "Fortsetzen",
    "themenpakete.pause": "Pausieren",
    "themenpakete.completed": "Abgeschlossen",
    # Theme
    "theme.light": "Hell",
    "theme.dark": "Dunkel",
    "theme.system": "System",
    # Errors
    "error.generic": "Ein Fehler ist aufgetreten",
    "error.network": "Netzwerkfehler. Bitte versuchen Sie es erneut.",
    "error.auth": "Authentifizierung fehlgeschlagen",
}

COMMON_LANGUAGES: list[dict[str, str]] = [
    {"code": "de", "name": "Deutsch", "native_name": "Deutsch"},
    {"code": "en", "name": "English", "native_name": "English"},
    {"code": "es", "name": "Español", "native_name": "Español"},
    {"code": "fr", "name": "Français", "native_name": "Français"},
    {"code": "it", "name": "Italiano", "native_name": "Italiano"},
    {"code": "pt", "name": "Português", "native_name": "Português"},
    {"code": "nl", "name": "Nederlands", "native_name": "Nederlands"},
    {"code": "pl", "name": "Polski", "native_name": "Polski"},
    {"code": "ru", "name": "Русский", "native_name": "Русский"},
    {"code": "zh", "name": "中文", "native_name": "中文"},
    {"code": "ja", "name": "日本語", "native_name": "日本語"},
    {"code": "ar", "name": "العربية", "native_name": "العربية"},
    {"code": "tr", "name": "Türkçe", "native_name": "Türkçe"},
]

_TRANSLATOR_SYSTEM = """You are a professional translator. Translate the provided UI strings from German to {language}.

RULES:
1. Preserve all JSON keys exactly as they are (do not translate keys, only values)
2. Maintain the same JSON structure
3. Keep placeholders like {{name}} unchanged
4. Use natural, native expressions appropriate for the target language
5. Use a formal, polite tone suitable for professional coaching
6. Return ONLY the JSON object, no explanations

If the target language is a dialect (e.g. "Schwäbisch", "Bayerisch"), translate accordingly while keeping it understandable."""


def is_source_language(language: str) -> bool:
    return language.strip().lower() in SOURCE_LANGUAGES


async def _request_translation(
    source: dict[str, str], target_language: str,
) -> dict[str, str] | None:
    """One LLM round trip. None when the call or the parse fails."""
    try:
        raw = await complete(
            _TRANSLATOR_SYSTEM.format(language=target_language),
            f"Translate these UI strings to {target_language}:\n\n"
            + json.dumps(source, ensure_ascii=False, indent=2),
            max_tokens=4000,
            temperature=0.3,
        )
    except Exception as exc:
        logger.error("Translation to %s failed: %s", target_language, exc)
        return None

    parsed = extract_json_object(raw or "")
    if parsed is None:
        logger.error("Could not parse translation response for %s", target_language)
        return None

    translated = {
        key: value
        for key, value in parsed.items()
        if key in source and isinstance(value, str) and value.strip()
    }
    missing = len(source) - len(translated)
    if missing:
        logger.warning("Translation to %s is missing %d strings", target_language, missing)
    # Untranslated keys keep their source text
    return {**source, **translated}


async def translate_strings(source: dict[str, str], target_language: str) -> dict[str, str]:
    """Translate string values to `target_language`, keeping keys.

    The source language itself and any failure return a copy of `source`.
    """
    if is_source_language(target_language):
        return dict(source)
    translated = await _request_translation(source, target_language)
    return translated if translated is not None else dict(source)


class Translator:
    """UI string translation backed by an explicit Cache Store instance."""

    def __init__(self, cache: CacheStore, source: dict[str, str] | None = None) -> None:
        self._cache = cache
        self._source = source if source is not None else BASE_UI_STRINGS

    async def get_ui_strings(self, language: str) -> dict[str, str]:
        if is_source_language(language):
            return dict(self._source)

        cache_key = language.strip().lower()

        async def compute() -> dict[str, str] | None:
            logger.info("Translating UI strings to %s", language)
            return await _request_translation(self._source, language)

        translated = await self._cache.get_or_compute(
            CACHE_SUBJECT, cache_key, compute, CACHE_TTL.TRANSLATION,
        )
        if translated is None:
            return dict(self._source)
        return translated

    async def get_string(self, key: str, language: str) -> str:
        strings = await self.get_ui_strings(language)
        return strings.get(key) or self._source.get(key) or key

    def clear(self, language: str | None = None) -> None:
        """Drop one cached language, or all of them."""
        self._cache.delete(
            CACHE_SUBJECT, language.strip().lower() if language is not None else None,
        )
