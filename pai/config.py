"""Process settings loaded from environment variables."""

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """PAI process configuration. All values come from ``PAI_*`` environment variables.

    Provider API keys are *not* here: they live in the user settings
    document (see ``pai.user_settings``) so the desktop UI can edit them.
    """

    # Storage
    data_dir: Path = Field(default=Path("data"))
    settings_path: Path = Field(default=Path("data/settings.json"))

    # Chat
    default_model: str = Field(default="claude-sonnet-4-20250514")
    request_timeout: float = Field(default=120.0, gt=0)

    # Context building
    context_memory_limit: int = Field(default=5, ge=0)
    context_recent_messages: int = Field(default=10, ge=0)

    # Memory extraction
    memory_extraction_enabled: bool = Field(default=True)
    extraction_scan_window: int = Field(default=10, ge=0)
    extraction_message_threshold: int = Field(default=5, ge=0)
    extraction_min_message_length: int = Field(default=50, ge=0)
    extraction_history_size: int = Field(default=5, gt=0)
    auto_extract_interval: int = Field(default=5, gt=0)
    extraction_max_tokens: int = Field(default=1024, gt=0)
    anthropic_extraction_model: str = Field(default="claude-3-haiku-20240307")
    openai_extraction_model: str = Field(default="gpt-4o-mini")

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="PAI_", env_file=_env_file(), env_file_encoding="utf-8"
    )

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

    @property
    def memory_dir(self) -> Path:
        return self.data_dir / "memory"

    @property
    def prd_dir(self) -> Path:
        return self.data_dir / "prd"

    @property
    def sessions_dir(self) -> Path:
        return self.data_dir / "sessions"

    @property
    def messages_dir(self) -> Path:
        return self.data_dir / "messages"

    @property
    def skills_dir(self) -> Path:
        return self.data_dir / "skills"


settings = Settings()
