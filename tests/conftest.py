"""Shared test fixtures."""

import pytest

from pai.config import Settings
from pai.llm.models import ApiKeys
from pai.state import AppState
from pai.user_settings import UserSettings


@pytest.fixture
def config(tmp_path) -> Settings:
    """Settings rooted in a temporary data directory."""
    return Settings(data_dir=tmp_path / "data", settings_path=tmp_path / "data" / "settings.json")


@pytest.fixture
def state(config: Settings) -> AppState:
    """An empty AppState wired to the temporary data directory."""
    return AppState.from_settings(config)


@pytest.fixture
async def keyed_state(state: AppState) -> AppState:
    """AppState with an Anthropic and an OpenAI key configured."""
    await state.save_settings(
        UserSettings(anthropic_api_key="sk-ant-test", openai_api_key="sk-openai-test")
    )
    return state


@pytest.fixture
def keys() -> ApiKeys:
    return ApiKeys(anthropic="sk-ant-test")
