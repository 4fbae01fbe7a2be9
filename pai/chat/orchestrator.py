"""One chat turn: resolve the model, add context, dispatch, record."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pai.chat.context import build_context, compose_message
from pai.chat.messages import ChatMessage
from pai.llm.models import ChatRequest, resolve_provider
from pai.llm.providers import get_adapter

if TYPE_CHECKING:
    from pai.state import AppState

logger = logging.getLogger(__name__)


async def chat(
    state: AppState,
    message: str,
    model: str | None = None,
    system_prompt: str | None = None,
) -> str:
    """Send *message* to the model and return its reply.

    The user's message is always appended to the log. The assistant's
    reply is appended only on success; on failure a ``ChatError`` is raised
    and nothing else has happened.

    Memory extraction and session bookkeeping are not done here; the
    caller decides whether to run them after the turn.
    """
    default_model, keys = await state.chat_config()
    model = model or default_model
    provider = resolve_provider(model)

    async with state.messages_lock, state.memories_lock:
        context = build_context(state.messages, state.memories)

    user_message = ChatMessage(role="user", content=message)
    request = ChatRequest(
        model=model,
        user_message=compose_message(context, message),
        system_prompt=system_prompt,
    )

    try:
        reply = await get_adapter(provider).complete(request, keys.for_provider(provider))
    except Exception as exc:
        logger.warning("Chat via %s failed: %s", provider.value, exc)
        await state.add_message(user_message)
        raise

    await state.add_message(user_message, ChatMessage(role="assistant", content=reply))
    return reply
