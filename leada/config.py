"""
Leada Coaching Core — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from leada/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # LLM — provider-agnostic (gemini, anthropic, openai, cohere)
    LLM_PROVIDER: str = "openai"
    LLM_MODEL: str = ""          # empty → smart default per provider
    LLM_API_KEY: str

    # Chat completion tuning
    CHAT_MAX_TOKENS: int = 600
    CHAT_TEMPERATURE: float = 0.7
    MAX_MESSAGE_LENGTH: int = 2000

    # Language used for prompts when the profile has none
    DEFAULT_LANGUAGE: str = "Deutsch"

    # SQLite
    DATABASE_PATH: str = "data/leada.db"

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("CHAT_MAX_TOKENS", "MAX_MESSAGE_LENGTH", mode="before")
    @classmethod
    def parse_int(cls, v: str | int) -> int:
        return int(v)

    @field_validator("CHAT_TEMPERATURE", mode="before")
    @classmethod
    def parse_temperature(cls, v: str | float) -> float:
        value = float(v)
        if not 0.0 <= value <= 2.0:
            raise ValueError(f"CHAT_TEMPERATURE out of range: {value}")
        return value

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def parse_log_level(cls, v: str) -> str:
        return str(v).strip().upper() or "INFO"


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    llm_api_key = os.getenv("LLM_API_KEY", "")

    if not llm_api_key or llm_api_key.startswith("your-"):
        print("ERROR: LLM_API_KEY is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        LLM_PROVIDER=os.getenv("LLM_PROVIDER", "openai"),
        LLM_MODEL=os.getenv("LLM_MODEL", ""),
        LLM_API_KEY=llm_api_key,
        CHAT_MAX_TOKENS=os.getenv("CHAT_MAX_TOKENS", "600"),
        CHAT_TEMPERATURE=os.getenv("CHAT_TEMPERATURE", "0.7"),
        MAX_MESSAGE_LENGTH=os.getenv("MAX_MESSAGE_LENGTH", "2000"),
        DEFAULT_LANGUAGE=os.getenv("DEFAULT_LANGUAGE", "Deutsch"),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/leada.db"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton — imported by all other modules as:
#   from leada.config import settings
settings = _load_settings()
