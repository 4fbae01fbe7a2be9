"""Per-provider request translation, dispatch and response parsing.

Each backend is one ``ProviderAdapter`` subclass. The adapter owns the
provider's asymmetries: where the API key goes, whether the system prompt
is honored, how the model id is rewritten, and where the reply text lives
in the response. ``complete()`` is the only entry point callers need:

    adapter = get_adapter(resolve_provider(model))
    text = await adapter.complete(ChatRequest(model=model, user_message=msg), api_key)

Anthropic goes through the ``anthropic`` SDK; OpenAI, xAI and Perplexity
share the ``openai`` SDK (the latter two via ``base_url``); Google has no
SDK here and is called with ``httpx`` directly.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar

import anthropic
import httpx
import openai
from pydantic import BaseModel, ValidationError

from pai.config import settings
from pai.llm.errors import (
    ChatError,
    EmptyResponseError,
    ProviderHTTPError,
    ProviderNotConfiguredError,
    ProviderTransportError,
)
from pai.llm.models import ChatRequest, ModelInfo, Provider

logger = logging.getLogger(__name__)


class ProviderAdapter(ABC):
    """Translate a ``ChatRequest`` for one provider and extract its reply."""

    provider: ClassVar[Provider]
    label: ClassVar[str]
    honors_system_prompt: ClassVar[bool] = True

    def ensure_configured(self, api_key: str) -> None:
        if not api_key or not api_key.strip():
            raise ProviderNotConfiguredError(self.label)

    @abstractmethod
    def translate_request(self, request: ChatRequest) -> dict[str, Any]:
        """Build the provider's request body."""

    @abstractmethod
    def parse_response(self, response: Any) -> str:
        """Extract the reply text, raising ``EmptyResponseError`` if there is none."""

    @abstractmethod
    async def send(self, request: ChatRequest, payload: dict[str, Any], api_key: str) -> Any:
        """Issue the request and return the decoded response."""

    @abstractmethod
    async def list_models(self, api_key: str) -> list[ModelInfo]:
        """Query the provider's model catalog."""

    async def complete(self, request: ChatRequest, api_key: str) -> str:
        """Send one single-turn request and return the reply text."""
        self.ensure_configured(api_key)
        if request.system_prompt and not self.honors_system_prompt:
            logger.debug("%s ignores the system prompt; dropping it", self.label)
        payload = self.translate_request(request)
        logger.info("Dispatching to %s (model=%s)", self.label, payload.get("model", request.model))
        response = await self.send(request, payload, api_key)
        return self.parse_response(response)


# -- Anthropic ---------------------------------------------------------------


class AnthropicAdapter(ProviderAdapter):
    provider = Provider.ANTHROPIC
    label = "Anthropic"

    MODEL_FAMILIES: ClassVar[tuple[str, ...]] = ("claude-", "sonnet", "haiku", "opus")

    def _client(self, api_key: str) -> anthropic.AsyncAnthropic:
        return anthropic.AsyncAnthropic(
            api_key=api_key, timeout=settings.request_timeout, max_retries=0
        )

    def translate_request(self, request: ChatRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": request.model,
            "max_tokens": request.max_tokens,
            "messages": [{"role": "user", "content": request.user_message}],
        }
        if request.system_prompt is not None:
            payload["system"] = request.system_prompt
        return payload

    def parse_response(self, response: Any) -> str:
        if not response.content:
            raise EmptyResponseError(self.label)
        text = getattr(response.content[0], "text", None)
        if text is None:
            raise EmptyResponseError(self.label)
        return text

    async def send(self, request: ChatRequest, payload: dict[str, Any], api_key: str) -> Any:
        client = self._client(api_key)
        try:
            return await client.messages.create(**payload)
        except anthropic.APIStatusError as exc:
            raise ProviderHTTPError(self.label, exc.status_code, exc.response.text) from exc
        except anthropic.APIConnectionError as exc:
            raise ProviderTransportError(self.label, str(exc)) from exc
        except anthropic.APIResponseValidationError as exc:
            raise EmptyResponseError(self.label) from exc
        except anthropic.APIError as exc:
            raise ChatError(self.label, str(exc)) from exc

    async def list_models(self, api_key: str) -> list[ModelInfo]:
        client = self._client(api_key)
        page = await client.models.list(limit=100)
        models = [
            ModelInfo(id=m.id, name=m.display_name, provider=self.label)
            for m in page.data
            if m.id and m.display_name and any(f in m.id for f in self.MODEL_FAMILIES)
        ]
        if not models:
            msg = f"Failed to fetch {self.label} models - please check your API key"
            raise ValueError(msg)
        return models


# -- OpenAI-shaped (OpenAI, xAI, Perplexity) ---------------------------------


class OpenAICompatibleAdapter(ProviderAdapter):
    """Bearer-token chat-completions API, system prompt as a leading message."""

    base_url: ClassVar[str | None] = None

    def _client(self, api_key: str) -> openai.AsyncOpenAI:
        return openai.AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=settings.request_timeout,
            max_retries=0,
        )

    def translate_request(self, request: ChatRequest) -> dict[str, Any]:
        messages = []
        if request.system_prompt is not None:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": request.user_message})
        return {
            "model": request.model,
            "messages": messages,
            "max_tokens": request.max_tokens,
        }

    def parse_response(self, response: Any) -> str:
        if not response.choices:
            raise EmptyResponseError(self.label)
        content = response.choices[0].message.content
        if content is None:
            raise EmptyResponseError(self.label)
        return content

    async def send(self, request: ChatRequest, payload: dict[str, Any], api_key: str) -> Any:
        client = self._client(api_key)
        try:
            return await client.chat.completions.create(**payload)
        except openai.APIStatusError as exc:
            raise ProviderHTTPError(self.label, exc.status_code, exc.response.text) from exc
        except openai.APIConnectionError as exc:
            raise ProviderTransportError(self.label, str(exc)) from exc
        except openai.APIResponseValidationError as exc:
            raise EmptyResponseError(self.label) from exc
        except openai.APIError as exc:
            raise ChatError(self.label, str(exc)) from exc

    async def _fetch_catalog(self, api_key: str) -> list[Any]:
        client = self._client(api_key)
        page = await client.models.list()
        return list(page.data)


class OpenAIAdapter(OpenAICompatibleAdapter):
    provider = Provider.OPENAI
    label = "OpenAI"

    MODEL_FAMILIES: ClassVar[tuple[str, ...]] = ("gpt-4o", "gpt-4", "gpt-3.5", "o1", "o3", "o4")

    @staticmethod
    def sort_priority(model_id: str) -> int:
        """Lower sorts first: 4o, then o1, o3, plain 4, everything else."""
        if "4o" in model_id:
            return 0
        if "o1" in model_id:
            return 1
        if "o3" in model_id:
            return 2
        if "4" in model_id:
            return 3
        return 4

    async def list_models(self, api_key: str) -> list[ModelInfo]:
        models = [
            ModelInfo(
                id=m.id,
                name=getattr(m, "human_name", None) or m.id,
                provider=self.label,
            )
            for m in await self._fetch_catalog(api_key)
            if any(f in m.id for f in self.MODEL_FAMILIES)
        ]
        models.sort(key=lambda m: self.sort_priority(m.id))
        return models


class XAIAdapter(OpenAICompatibleAdapter):
    provider = Provider.XAI
    label = "xAI"
    base_url = "https://api.x.ai/v1"

    async def list_models(self, api_key: str) -> list[ModelInfo]:
        models = [
            ModelInfo(
                id=m.id,
                name=getattr(m, "human_name", None) or m.id,
                provider=self.label,
            )
            for m in await self._fetch_catalog(api_key)
            if m.id
        ]
        if not models:
            msg = f"Failed to fetch {self.label} models - please check your API key"
            raise ValueError(msg)
        return models


class PerplexityAdapter(OpenAICompatibleAdapter):
    provider = Provider.PERPLEXITY
    label = "Perplexity"
    base_url = "https://api.perplexity.ai"
    honors_system_prompt = False

    @staticmethod
    def canonical_model(model: str) -> str:
        """``perplexity-small`` -> ``llama-3.1-sonar-small-128k-online``."""
        return f"llama-3.1-sonar-{model.removeprefix('perplexity-')}-128k-online"

    def translate_request(self, request: ChatRequest) -> dict[str, Any]:
        return {
            "model": self.canonical_model(request.model),
            "messages": [{"role": "user", "content": request.user_message}],
            "max_tokens": request.max_tokens,
        }

    async def list_models(self, api_key: str) -> list[ModelInfo]:
        models = []
        for m in await self._fetch_catalog(api_key):
            name = getattr(m, "name", None)
            if m.id and name:
                models.append(ModelInfo(id=m.id, name=name, provider=self.label))
        if not models:
            msg = f"Failed to fetch {self.label} models - please check your API key"
            raise ValueError(msg)
        return models


# -- Google ------------------------------------------------------------------


class _GeminiPart(BaseModel):
    text: str | None = None


class _GeminiContent(BaseModel):
    parts: list[_GeminiPart] = []


class _GeminiCandidate(BaseModel):
    content: _GeminiContent | None = None


class GeminiResponse(BaseModel):
    """The subset of a ``generateContent`` response we read."""

    candidates: list[_GeminiCandidate] = []


class GoogleAdapter(ProviderAdapter):
    provider = Provider.GOOGLE
    label = "Google"
    honors_system_prompt = False

    GENERATE_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"
    MODELS_URL = "https://generativelanguage.googleapis.com/v1/models"
    TEMPERATURE = 0.9

    def translate_request(self, request: ChatRequest) -> dict[str, Any]:
        return {
            "contents": [{"parts": [{"text": request.user_message}]}],
            "generationConfig": {
                "maxOutputTokens": request.max_tokens,
                "temperature": self.TEMPERATURE,
            },
        }

    def parse_response(self, response: Any) -> str:
        try:
            parsed = GeminiResponse.model_validate(response)
        except ValidationError as exc:
            raise EmptyResponseError(self.label) from exc
        if not parsed.candidates:
            raise EmptyResponseError(self.label)
        content = parsed.candidates[0].content
        if content is None or not content.parts or content.parts[0].text is None:
            raise EmptyResponseError(self.label)
        return content.parts[0].text

    async def send(self, request: ChatRequest, payload: dict[str, Any], api_key: str) -> Any:
        # The model id travels in the URL and the key as a query parameter.
        url = self.GENERATE_URL.format(model=request.model)
        try:
            async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
                resp = await client.post(url, params={"key": api_key}, json=payload)
        except httpx.HTTPError as exc:
            raise ProviderTransportError(self.label, str(exc)) from exc

        if not resp.is_success:
            raise ProviderHTTPError(self.label, resp.status_code, resp.text)
        try:
            return resp.json()
        except ValueError as exc:
            raise EmptyResponseError(self.label) from exc

    async def list_models(self, api_key: str) -> list[ModelInfo]:
        async with httpx.AsyncClient(timeout=settings.request_timeout) as client:
            resp = await client.get(self.MODELS_URL, params={"key": api_key})
        resp.raise_for_status()

        models = []
        for entry in resp.json().get("models", []):
            name = entry.get("name")
            if not name or "gemini" not in name:
                continue
            model_id = name.replace("models/", "")
            models.append(
                ModelInfo(id=model_id, name=model_id.replace("-", " "), provider=self.label)
            )
        if not models:
            msg = f"Failed to fetch {self.label} models - please check your API key"
            raise ValueError(msg)
        return models


# -- Registry ----------------------------------------------------------------

ADAPTERS: dict[Provider, ProviderAdapter] = {
    Provider.ANTHROPIC: AnthropicAdapter(),
    Provider.OPENAI: OpenAIAdapter(),
    Provider.GOOGLE: GoogleAdapter(),
    Provider.XAI: XAIAdapter(),
    Provider.PERPLEXITY: PerplexityAdapter(),
}


def get_adapter(provider: Provider) -> ProviderAdapter:
    return ADAPTERS[provider]
