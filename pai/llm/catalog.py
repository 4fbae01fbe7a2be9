"""Live model catalog across every configured provider."""

import logging

from pai.llm.models import ApiKeys, ModelInfo
from pai.llm.providers import get_adapter

logger = logging.getLogger(__name__)

PLACEHOLDER_MODELS: tuple[ModelInfo, ...] = (
    ModelInfo(
        id="claude-sonnet-4-20250514",
        name="Claude Sonnet 4 (configure API key first)",
        provider="Anthropic",
    ),
    ModelInfo(
        id="gpt-4o",
        name="GPT-4o (configure API key first)",
        provider="OpenAI",
    ),
)


async def get_models(keys: ApiKeys) -> list[ModelInfo]:
    """List models from each configured provider, one provider at a time.

    Never raises. A provider that fails is logged and skipped; if nothing
    comes back at all the placeholder catalog is returned so the UI can
    tell the user to configure a key.
    """
    models: list[ModelInfo] = []
    for provider in keys.configured():
        adapter = get_adapter(provider)
        try:
            models.extend(await adapter.list_models(keys.for_provider(provider)))
        except Exception as exc:
            logger.warning("Failed to fetch %s models: %s", adapter.label, exc)

    if not models:
        return [m.model_copy() for m in PLACEHOLDER_MODELS]
    return models
