"""Tests for provider adapters: translation, parsing and error mapping."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import anthropic
import httpx
import openai
import pytest

from pai.llm.errors import (
    ChatError,
    EmptyResponseError,
    ProviderHTTPError,
    ProviderNotConfiguredError,
    ProviderTransportError,
)
from pai.llm.models import ChatRequest, Provider
from pai.llm.providers import (
    AnthropicAdapter,
    GoogleAdapter,
    OpenAIAdapter,
    PerplexityAdapter,
    XAIAdapter,
    get_adapter,
)

ANTHROPIC_REQ = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
OPENAI_REQ = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
GEMINI_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-pro:generateContent"


def _anthropic_client(**create_kwargs) -> MagicMock:
    client = MagicMock()
    client.messages.create = AsyncMock(**create_kwargs)
    return client


def _openai_client(**create_kwargs) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(**create_kwargs)
    return client


def _openai_reply(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _mock_httpx_client(mock_client_cls: MagicMock, response: httpx.Response) -> AsyncMock:
    """Wire up an AsyncClient context-manager mock that returns *response*."""
    mock_client = AsyncMock()
    mock_client.post.return_value = response
    mock_client.get.return_value = response
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


# -- Registry ----------------------------------------------------------------


def test_every_provider_has_an_adapter() -> None:
    for provider in Provider:
        assert get_adapter(provider).provider is provider


# -- Configuration check -----------------------------------------------------


@pytest.mark.parametrize("key", ["", "   "])
async def test_missing_key_raises_before_network(key: str) -> None:
    adapter = AnthropicAdapter()
    with patch.object(AnthropicAdapter, "_client") as mock_client:
        with pytest.raises(ProviderNotConfiguredError, match="Anthropic API key not configured"):
            await adapter.complete(ChatRequest(model="claude-x", user_message="hi"), key)
    mock_client.assert_not_called()


# -- Anthropic ---------------------------------------------------------------


class TestAnthropic:
    def test_translate_includes_system_when_given(self) -> None:
        payload = AnthropicAdapter().translate_request(
            ChatRequest(model="claude-x", user_message="hi", system_prompt="be brief")
        )
        assert payload["system"] == "be brief"
        assert payload["messages"] == [{"role": "user", "content": "hi"}]
        assert payload["max_tokens"] == 4096

    def test_translate_omits_absent_system(self) -> None:
        payload = AnthropicAdapter().translate_request(
            ChatRequest(model="claude-x", user_message="hi")
        )
        assert "system" not in payload

    async def test_complete_returns_first_text_block(self) -> None:
        reply = SimpleNamespace(content=[SimpleNamespace(type="text", text="Hello!")])
        client = _anthropic_client(return_value=reply)
        with patch.object(AnthropicAdapter, "_client", return_value=client):
            text = await AnthropicAdapter().complete(
                ChatRequest(model="claude-x", user_message="hi"), "sk-ant"
            )
        assert text == "Hello!"
        _, kwargs = client.messages.create.call_args
        assert kwargs["model"] == "claude-x"

    def test_parse_empty_content(self) -> None:
        with pytest.raises(EmptyResponseError, match="Empty response from Anthropic"):
            AnthropicAdapter().parse_response(SimpleNamespace(content=[]))

    def test_parse_non_text_block(self) -> None:
        with pytest.raises(EmptyResponseError):
            AnthropicAdapter().parse_response(
                SimpleNamespace(content=[SimpleNamespace(type="tool_use")])
            )

    async def test_status_error_maps_to_http_error(self) -> None:
        response = httpx.Response(401, text="invalid x-api-key", request=ANTHROPIC_REQ)
        exc = anthropic.APIStatusError("unauthorized", response=response, body=None)
        client = _anthropic_client(side_effect=exc)
        with patch.object(AnthropicAdapter, "_client", return_value=client):
            with pytest.raises(ProviderHTTPError) as info:
                await AnthropicAdapter().complete(
                    ChatRequest(model="claude-x", user_message="hi"), "sk-ant"
                )
        assert info.value.status_code == 401
        assert "invalid x-api-key" in str(info.value)

    async def test_connection_error_maps_to_transport(self) -> None:
        exc = anthropic.APIConnectionError(request=ANTHROPIC_REQ)
        client = _anthropic_client(side_effect=exc)
        with patch.object(AnthropicAdapter, "_client", return_value=client):
            with pytest.raises(ProviderTransportError):
                await AnthropicAdapter().complete(
                    ChatRequest(model="claude-x", user_message="hi"), "sk-ant"
                )

    async def test_list_models_filters_families(self) -> None:
        page = SimpleNamespace(
            data=[
                SimpleNamespace(id="claude-3-opus", display_name="Claude 3 Opus"),
                SimpleNamespace(id="embedding-x", display_name="Embedding"),
            ]
        )
        client = MagicMock()
        client.models.list = AsyncMock(return_value=page)
        with patch.object(AnthropicAdapter, "_client", return_value=client):
            models = await AnthropicAdapter().list_models("sk-ant")
        assert [m.id for m in models] == ["claude-3-opus"]
        assert models[0].provider == "Anthropic"

    async def test_list_models_empty_raises(self) -> None:
        client = MagicMock()
        client.models.list = AsyncMock(return_value=SimpleNamespace(data=[]))
        with patch.object(AnthropicAdapter, "_client", return_value=client):
            with pytest.raises(ValueError, match="please check your API key"):
                await AnthropicAdapter().list_models("sk-ant")


# -- OpenAI-shaped -----------------------------------------------------------


class TestOpenAI:
    def test_system_prompt_is_leading_message(self) -> None:
        payload = OpenAIAdapter().translate_request(
            ChatRequest(model="gpt-4o", user_message="hi", system_prompt="sys")
        )
        assert payload["messages"] == [
            {"role": "system", "content": "sys"},
            {"role": "user", "content": "hi"},
        ]

    async def test_complete_reads_first_choice(self) -> None:
        client = _openai_client(return_value=_openai_reply("Hi there"))
        with patch.object(OpenAIAdapter, "_client", return_value=client):
            text = await OpenAIAdapter().complete(
                ChatRequest(model="gpt-4o", user_message="hi"), "sk-openai"
            )
        assert text == "Hi there"

    def test_null_content_is_empty(self) -> None:
        with pytest.raises(EmptyResponseError, match="Empty response from OpenAI"):
            OpenAIAdapter().parse_response(_openai_reply(None))

    async def test_status_error_maps_to_http_error(self) -> None:
        response = httpx.Response(429, text="rate limited", request=OPENAI_REQ)
        exc = openai.APIStatusError("slow down", response=response, body=None)
        client = _openai_client(side_effect=exc)
        with patch.object(OpenAIAdapter, "_client", return_value=client):
            with pytest.raises(ProviderHTTPError, match=r"OpenAI API error \(429\)"):
                await OpenAIAdapter().complete(
                    ChatRequest(model="gpt-4o", user_message="hi"), "sk-openai"
                )

    async def test_http_error_is_a_chat_error(self) -> None:
        exc = openai.APIConnectionError(request=OPENAI_REQ)
        client = _openai_client(side_effect=exc)
        with patch.object(OpenAIAdapter, "_client", return_value=client):
            with pytest.raises(ChatError) as info:
                await OpenAIAdapter().complete(
                    ChatRequest(model="gpt-4o", user_message="hi"), "sk-openai"
                )
        assert info.value.provider == "OpenAI"

    def test_sort_priority(self) -> None:
        ids = ["gpt-3.5-turbo", "gpt-4", "o3-mini", "o1-preview", "gpt-4o"]
        ordered = sorted(ids, key=OpenAIAdapter.sort_priority)
        assert ordered == ["gpt-4o", "o1-preview", "o3-mini", "gpt-4", "gpt-3.5-turbo"]

    async def test_list_models_filters_and_sorts(self) -> None:
        data = [
            SimpleNamespace(id="gpt-4"),
            SimpleNamespace(id="whisper-1"),
            SimpleNamespace(id="gpt-4o-mini"),
        ]
        with patch.object(OpenAIAdapter, "_fetch_catalog", AsyncMock(return_value=data)):
            models = await OpenAIAdapter().list_models("sk-openai")
        assert [m.id for m in models] == ["gpt-4o-mini", "gpt-4"]
        assert models[0].name == "gpt-4o-mini"


class TestXAI:
    def test_uses_xai_base_url(self) -> None:
        assert XAIAdapter.base_url == "https://api.x.ai/v1"

    async def test_list_models_empty_raises(self) -> None:
        with patch.object(XAIAdapter, "_fetch_catalog", AsyncMock(return_value=[])):
            with pytest.raises(ValueError, match="xAI"):
                await XAIAdapter().list_models("xai-key")


class TestPerplexity:
    def test_canonical_model(self) -> None:
        assert (
            PerplexityAdapter.canonical_model("perplexity-small")
            == "llama-3.1-sonar-small-128k-online"
        )

    def test_system_prompt_dropped(self) -> None:
        payload = PerplexityAdapter().translate_request(
            ChatRequest(model="perplexity-large", user_message="hi", system_prompt="sys")
        )
        assert payload["model"] == "llama-3.1-sonar-large-128k-online"
        assert payload["messages"] == [{"role": "user", "content": "hi"}]

    async def test_list_models_requires_name(self) -> None:
        data = [
            SimpleNamespace(id="sonar", name="Sonar"),
            SimpleNamespace(id="sonar-pro"),
        ]
        with patch.object(PerplexityAdapter, "_fetch_catalog", AsyncMock(return_value=data)):
            models = await PerplexityAdapter().list_models("pplx")
        assert [m.id for m in models] == ["sonar"]


# -- Google ------------------------------------------------------------------


class TestGoogle:
    def test_translate_has_no_system_prompt(self) -> None:
        payload = GoogleAdapter().translate_request(
            ChatRequest(model="gemini-pro", user_message="hi", system_prompt="sys")
        )
        assert payload["contents"] == [{"parts": [{"text": "hi"}]}]
        assert payload["generationConfig"] == {"maxOutputTokens": 4096, "temperature": 0.9}
        assert "sys" not in str(payload)

    async def test_complete_posts_with_key_param(self) -> None:
        resp = httpx.Response(
            200,
            json={"candidates": [{"content": {"parts": [{"text": "Bonjour"}]}}]},
            request=httpx.Request("POST", GEMINI_URL),
        )
        with patch("pai.llm.providers.httpx.AsyncClient") as mock_cls:
            client = _mock_httpx_client(mock_cls, resp)
            text = await GoogleAdapter().complete(
                ChatRequest(model="gemini-pro", user_message="hi"), "g-key"
            )

        assert text == "Bonjour"
        args, kwargs = client.post.call_args
        assert args[0] == GEMINI_URL
        assert kwargs["params"] == {"key": "g-key"}

    async def test_non_success_status(self) -> None:
        resp = httpx.Response(
            400, text="API key not valid", request=httpx.Request("POST", GEMINI_URL)
        )
        with patch("pai.llm.providers.httpx.AsyncClient") as mock_cls:
            _mock_httpx_client(mock_cls, resp)
            with pytest.raises(ProviderHTTPError) as info:
                await GoogleAdapter().complete(
                    ChatRequest(model="gemini-pro", user_message="hi"), "g-key"
                )
        assert info.value.status_code == 400
        assert info.value.body == "API key not valid"

    async def test_transport_failure(self) -> None:
        with patch("pai.llm.providers.httpx.AsyncClient") as mock_cls:
            client = _mock_httpx_client(mock_cls, httpx.Response(200))
            client.post.side_effect = httpx.ConnectError("refused")
            with pytest.raises(ProviderTransportError):
                await GoogleAdapter().complete(
                    ChatRequest(model="gemini-pro", user_message="hi"), "g-key"
                )

    @pytest.mark.parametrize(
        "body",
        [
            {},
            {"candidates": []},
            {"candidates": [{"content": {"parts": []}}]},
            {"candidates": [{}]},
        ],
    )
    def test_parse_empty(self, body: dict) -> None:
        with pytest.raises(EmptyResponseError, match="Empty response from Google"):
            GoogleAdapter().parse_response(body)

    async def test_list_models(self) -> None:
        resp = httpx.Response(
            200,
            json={
                "models": [
                    {"name": "models/gemini-1.5-pro"},
                    {"name": "models/embedding-001"},
                ]
            },
            request=httpx.Request("GET", GoogleAdapter.MODELS_URL),
        )
        with patch("pai.llm.providers.httpx.AsyncClient") as mock_cls:
            _mock_httpx_client(mock_cls, resp)
            models = await GoogleAdapter().list_models("g-key")

        assert len(models) == 1
        assert models[0].id == "gemini-1.5-pro"
        assert models[0].name == "gemini 1.5 pro"
