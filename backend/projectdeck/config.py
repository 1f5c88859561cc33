"""
Application configuration loaded from environment variables.

All settings use the ``DECK_`` prefix and may also come from a local ``.env``
file. The speech provider key is additionally read from ``OPENAI_API_KEY``.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """ProjectDeck server and client configuration."""

    model_config = SettingsConfigDict(env_prefix="DECK_", env_file=".env", extra="ignore")

    # General
    debug: bool = False
    log_json: bool = False

    # Database (the "Projects" table)
    database_url: str = "sqlite+aiosqlite:///./projectdeck.db"

    # Speech synthesis provider
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("DECK_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    tts_base_url: str = "https://api.openai.com/v1"
    tts_model: str = "gpt-4o-mini-tts"
    tts_voice: str = "alloy"
    tts_format: str = "mp3"
    tts_max_chars: int = 1500
    tts_timeout_seconds: float = 60.0

    # Client side
    api_url: str = "http://localhost:8000"
    autosave_delay_seconds: float = 1.0
    player_command: list[str] = ["ffplay", "-nodisp", "-autoexit", "-loglevel", "quiet", "{path}"]


@lru_cache
def get_settings() -> Settings:
    return Settings()
