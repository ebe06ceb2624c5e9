"""Application settings loaded from environment variables."""

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_PROMPT = (
    "You are Bache, a friendly chat companion. Never tell anyone you are a bot; "
    "talk simply and warmly, like a curious kid. Your creator is Sobhan."
)


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """Bache configuration. All values come from environment variables."""

    # Platform
    chat_platform: Literal["telegram", "http", "cli"] = Field(default="cli")

    # Telegram
    telegram_bot_token: str = Field(default="")
    allowed_user_ids: str = Field(default="")

    # HTTP front-end
    http_host: str = Field(default="0.0.0.0")
    http_port: int = Field(default=8080)

    # Database
    database_path: Path = Field(default=Path("data/bache.db"))

    # Turso (hosted libSQL): when set, overrides local database_path
    turso_database_url: str = Field(default="")
    turso_auth_token: str = Field(default="")

    # Lexicon (YAML override of the built-in word tables)
    lexicon_path: Path | None = Field(default=None)

    # Conversation
    system_prompt: str = Field(default=DEFAULT_SYSTEM_PROMPT)
    short_term_capacity: int = Field(default=5, ge=1)
    knowledge_max_results: int = Field(default=3, ge=1)

    # Markov model
    markov_order: int = Field(default=2, ge=1)
    markov_sampling: Literal["greedy", "weighted"] = Field(default="weighted")
    markov_start: Literal["first", "random"] = Field(default="first")
    markov_max_steps: int = Field(default=50, ge=1)
    markov_max_tokens: int = Field(default=15, ge=3)

    # Semantic fallback
    similarity_threshold: float = Field(default=0.3, ge=0.2, le=0.4)

    # Learned vocabulary for the generic fallback template
    vocabulary_min_words: int = Field(default=5, ge=0)
    vocabulary_capacity: int = Field(default=500, ge=1)

    # Response ranking
    ranking_capacity: int = Field(default=50, ge=1)

    # Web search
    search_enabled: bool = Field(default=True)
    search_timeout: float = Field(default=5.0, gt=0)
    duckduckgo_api_url: str = Field(default="https://api.duckduckgo.com/")
    wikipedia_api_url: str = Field(default="https://fa.wikipedia.org/w/api.php")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    def get_allowed_user_ids(self) -> set[int]:
        """Parse ALLOWED_USER_IDS into a set of ints."""
        if not self.allowed_user_ids.strip():
            return set()
        return {int(uid.strip()) for uid in self.allowed_user_ids.split(",") if uid.strip()}


settings = Settings()
