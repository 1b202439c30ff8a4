"""
Dealflow – Application configuration.
Reads environment variables from a .env file via pydantic-settings.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── App ──
    APP_NAME: str = "Investment DAO Bot"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # ── Database ──
    DATABASE_URL: str = "sqlite+aiosqlite:///./dealflow.db"

    # ── Telegram ──
    TELEGRAM_BOT_TOKEN: str = ""
    TELEGRAM_API_BASE: str = "https://api.telegram.org"
    TELEGRAM_WEBHOOK_SECRET: str = ""
    POLL_TIMEOUT_SECONDS: int = 30

    # ── Narrative generator (OpenAI-compatible) ──
    OPENAI_API_KEY: str = ""
    OPENAI_API_BASE: str = "https://api.openai.com/v1"
    OPENAI_MODEL: str = "gpt-4o-mini"
    LLM_TIMEOUT_SECONDS: float = 30.0

    # ── Roles & distribution ──
    ADMIN_USERNAME: str = ""
    # Comma-separated, e.g. "-123456789, -987654321"
    GROUP_CHAT_IDS: str = ""

    # ── Lifecycle policy ──
    SCORE_THRESHOLD: float = 7.0
    SCORE_GATE_ENABLED: bool = True
    ONE_VOTE_PER_MEMBER: bool = True

    @property
    def group_chat_ids(self) -> List[int]:
        """Distribution channels a founder pitch is broadcast to."""
        return [int(part.strip()) for part in self.GROUP_CHAT_IDS.split(",") if part.strip()]


settings = Settings()
