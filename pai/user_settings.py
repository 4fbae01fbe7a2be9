"""The user-editable settings document (provider keys, default model).

Read verbatim from a single JSON file at startup and written back
verbatim on save. There is no schema versioning: unknown keys in the file
are kept as-is so older and newer builds can share it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pai.config import settings
from pai.llm.models import ApiKeys
from pai.storage import read_text, write_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class UserSettings(BaseModel):
    """Flat key/value settings shown in the desktop settings panel."""

    model_config = ConfigDict(extra="allow")

    anthropic_api_key: str = ""
    openai_api_key: str = ""
    google_api_key: str = ""
    xai_api_key: str = ""
    perplexity_api_key: str = ""
    elevenlabs_api_key: str = ""
    default_model: str = Field(default_factory=lambda: settings.default_model)
    voice_enabled: bool = False

    def api_keys(self) -> ApiKeys:
        """Copy the provider keys into an immutable snapshot."""
        return ApiKeys(
            anthropic=self.anthropic_api_key,
            openai=self.openai_api_key,
            google=self.google_api_key,
            xai=self.xai_api_key,
            perplexity=self.perplexity_api_key,
        )


class UserSettingsStore:
    """Loads and saves ``UserSettings`` at a fixed path."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> UserSettings:
        """Read the settings file. Missing or invalid files yield defaults."""
        if not self._path.is_file():
            return UserSettings()
        text = read_text(self._path)
        if text is None:
            return UserSettings()
        try:
            return UserSettings.model_validate_json(text)
        except ValidationError:
            logger.warning("Settings file %s is invalid; using defaults", self._path)
            return UserSettings()

    def save(self, user_settings: UserSettings) -> None:
        write_text(self._path, user_settings.model_dump_json(indent=2))
