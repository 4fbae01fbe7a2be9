"""Provider routing and the request/response types shared by every adapter."""

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel


class Provider(StrEnum):
    """The closed set of language-model backends."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GOOGLE = "google"
    XAI = "xai"
    PERPLEXITY = "perplexity"


# Checked in order; the first matching prefix wins.
_PREFIX_ROUTES: tuple[tuple[str, Provider], ...] = (
    ("claude-", Provider.ANTHROPIC),
    ("gpt-", Provider.OPENAI),
    ("o1", Provider.OPENAI),
    ("o3", Provider.OPENAI),
    ("gemini-", Provider.GOOGLE),
    ("grok-", Provider.XAI),
    ("perplexity-", Provider.PERPLEXITY),
)


def resolve_provider(model: str) -> Provider:
    """Route a model id to its provider by prefix. Unknown ids go to Anthropic."""
    for prefix, provider in _PREFIX_ROUTES:
        if model.startswith(prefix):
            return provider
    return Provider.ANTHROPIC


@dataclass(frozen=True)
class ChatRequest:
    """A single flattened user turn, before provider translation."""

    model: str
    user_message: str
    system_prompt: str | None = None
    max_tokens: int = 4096


@dataclass(frozen=True)
class ApiKeys:
    """Snapshot of provider keys, copied out of the settings under lock."""

    anthropic: str = ""
    openai: str = ""
    google: str = ""
    xai: str = ""
    perplexity: str = ""

    def for_provider(self, provider: Provider) -> str:
        return getattr(self, provider.value)

    def configured(self) -> list[Provider]:
        """Providers with a non-empty key, in catalog order."""
        return [p for p in Provider if self.for_provider(p).strip()]


class ModelInfo(BaseModel):
    """A provider-reported model descriptor. Fetched live, never persisted."""

    id: str
    name: str
    provider: str
