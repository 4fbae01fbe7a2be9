"""Automatic ("unconscious") memory extraction.

After an exchange, ``HookEngine.check_and_extract()`` looks at the recent
conversation and decides whether to ask a small, cheap model to distill
something worth remembering into a ``MemoryItem``:

1. Trigger keywords: the newest messages are scanned for a keyword such
   as "remember" or "截止日期". A matching message is sent on its own.
2. Long user turn: once the conversation has enough messages and the
   newest one is a long user message, the last few messages are sent
   together and the model may answer "nothing worth remembering".

Extraction never raises. Any failure, from a missing key to a reply that
isn't JSON, yields None and at most a log line.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pai.config import settings
from pai.llm.models import ApiKeys, ChatRequest, Provider
from pai.llm.providers import get_adapter
from pai.memory.models import MemoryItem, MemoryType

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pai.chat.messages import ChatMessage
    from pai.state import AppState

logger = logging.getLogger(__name__)

TRIGGER_KEYWORDS: tuple[str, ...] = (
    "记住", "remember",
    "memorize",
    "重要", "important",
    "别忘了", "don't forget",
    "提醒我", "remind me",
    "学习", "learn",
    "项目", "project",
    "任务", "task",
    "会议", "meeting",
    "截止日期", "deadline",
    "人名", "name",
    "电话", "phone",
    "邮箱", "email",
    "地址", "address",
)  # fmt: skip

EXTRACTED_CONFIDENCE = 0.8

SINGLE_MESSAGE_PROMPT = """Analyze the following text and extract important information as a memory item.
Return a JSON object with these fields:
- title: A short descriptive title (max 50 characters)
- content: The main content to remember
- memory_type: One of WORK, LEARNING, RELATIONSHIP, or general
- tags: Array of relevant tags

Text to analyze:
{text}

Respond with ONLY valid JSON, no other text."""

CONVERSATION_PROMPT = """Analyze the following conversation and extract any important information that should be remembered.
Look for:
- User preferences or requirements
- Project or task details
- Important dates or deadlines
- Contact information
- Learning or knowledge gained
- Relationship details

Conversation:
{conversation}

Respond with a JSON object with these fields:
- title: A short descriptive title (max 50 characters)
- content: The important information to remember
- memory_type: One of WORK, LEARNING, RELATIONSHIP, or general
- tags: Array of relevant tags

If nothing important found, respond with: {{"title": "", "content": "", "memory_type": "general", "tags": []}}"""


# -- Prompt building ---------------------------------------------------------


def build_single_message_prompt(text: str) -> str:
    return SINGLE_MESSAGE_PROMPT.format(text=text)


def build_conversation_prompt(messages: Sequence[ChatMessage]) -> str:
    """Render *messages* oldest first as ``role: content`` paragraphs."""
    conversation = "\n\n".join(f"{m.role}: {m.content}" for m in messages)
    return CONVERSATION_PROMPT.format(conversation=conversation)


def find_trigger_keyword(text: str) -> str | None:
    lowered = text.lower()
    for keyword in TRIGGER_KEYWORDS:
        if keyword.lower() in lowered:
            return keyword
    return None


# -- Parsing -----------------------------------------------------------------


def _load_json(text: str) -> Any:
    try:
        return json.loads(text.strip())
    except json.JSONDecodeError:
        # Try to extract JSON from markdown fences
        if "```" in text:
            start = text.find("{")
            end = text.rfind("}") + 1
            if start >= 0 and end > start:
                try:
                    return json.loads(text[start:end])
                except json.JSONDecodeError:
                    pass
    logger.warning("Failed to parse extraction JSON")
    return None


def parse_memory_response(text: str) -> MemoryItem | None:
    """Turn the extraction model's reply into a ``MemoryItem``.

    Requires ``title``, ``content`` and ``memory_type`` strings and a
    ``tags`` array; returns None if any is missing. Empty strings are
    allowed through so callers can read an empty title as "nothing found".
    """
    data = _load_json(text)
    if not isinstance(data, dict):
        return None

    title = data.get("title")
    content = data.get("content")
    memory_type = data.get("memory_type")
    tags = data.get("tags")
    if not isinstance(title, str) or not isinstance(content, str):
        return None
    if not isinstance(memory_type, str) or not isinstance(tags, list):
        return None

    return MemoryItem.create(
        title=title,
        content=content,
        memory_type=MemoryType.parse(memory_type),
        tags=[t for t in tags if isinstance(t, str)],
        confidence=EXTRACTED_CONFIDENCE,
    )


# -- Engine ------------------------------------------------------------------


class HookEngine:
    """Decides when to extract a memory and runs the extraction call."""

    def __init__(
        self,
        *,
        scan_window: int | None = None,
        message_threshold: int | None = None,
        min_message_length: int | None = None,
        history_size: int | None = None,
        auto_extract_interval: int | None = None,
    ) -> None:
        def _pick(value: int | None, default: int) -> int:
            return default if value is None else value

        self.scan_window = _pick(scan_window, settings.extraction_scan_window)
        self.message_threshold = _pick(message_threshold, settings.extraction_message_threshold)
        self.min_message_length = _pick(
            min_message_length, settings.extraction_min_message_length
        )
        self.history_size = _pick(history_size, settings.extraction_history_size)
        self.auto_extract_interval = _pick(auto_extract_interval, settings.auto_extract_interval)
        if self.auto_extract_interval <= 0:
            msg = f"auto_extract_interval must be positive, got {self.auto_extract_interval}"
            raise ValueError(msg)

    def should_auto_extract(self, message_count: int) -> bool:
        """Cadence check for callers: true on every ``auto_extract_interval``-th message."""
        return message_count > 0 and message_count % self.auto_extract_interval == 0

    async def check_and_extract(
        self, messages: Sequence[ChatMessage], keys: ApiKeys
    ) -> MemoryItem | None:
        """Apply the trigger rules to *messages*. Never raises."""
        try:
            return await self._check_and_extract(messages, keys)
        except Exception:
            logger.exception("Memory extraction failed (non-fatal)")
            return None

    async def _check_and_extract(
        self, messages: Sequence[ChatMessage], keys: ApiKeys
    ) -> MemoryItem | None:
        recent = list(messages)[-self.scan_window :] if self.scan_window > 0 else []

        for message in reversed(recent):
            keyword = find_trigger_keyword(message.content)
            if keyword is None:
                continue
            logger.info("Extraction triggered by keyword %r", keyword)
            memory = await self._extract_from_text(message.content, keys)
            if memory is not None:
                return memory

        if len(messages) >= self.message_threshold and recent:
            last = recent[-1]
            if last.role == "user" and len(last.content) > self.min_message_length:
                logger.info("Extraction triggered by a long user message")
                return await self._extract_from_conversation(messages, keys)

        return None

    async def _extract_from_text(self, text: str, keys: ApiKeys) -> MemoryItem | None:
        reply = await self._call_model(build_single_message_prompt(text), keys)
        if reply is None:
            return None
        memory = parse_memory_response(reply)
        if memory is None or not memory.is_valid:
            return None
        return memory

    async def _extract_from_conversation(
        self, messages: Sequence[ChatMessage], keys: ApiKeys
    ) -> MemoryItem | None:
        if self.history_size <= 0:
            return None
        window = list(messages)[-self.history_size :]
        reply = await self._call_model(build_conversation_prompt(window), keys)
        if reply is None:
            return None
        memory = parse_memory_response(reply)
        # An empty title is the model saying there is nothing to remember.
        if memory is None or not memory.title or not memory.is_valid:
            return None
        return memory

    async def _call_model(self, prompt: str, keys: ApiKeys) -> str | None:
        """Send *prompt* to Anthropic if configured, else OpenAI, else give up."""
        if keys.anthropic.strip():
            provider, model = Provider.ANTHROPIC, settings.anthropic_extraction_model
        elif keys.openai.strip():
            provider, model = Provider.OPENAI, settings.openai_extraction_model
        else:
            logger.debug("No Anthropic or OpenAI key; skipping extraction")
            return None

        request = ChatRequest(
            model=model, user_message=prompt, max_tokens=settings.extraction_max_tokens
        )
        return await get_adapter(provider).complete(request, keys.for_provider(provider))


async def extract_and_save(state: AppState, engine: HookEngine | None = None) -> MemoryItem | None:
    """Run the hook engine over the current conversation and save its result.

    Snapshots messages and keys under their locks, calls the model with no
    lock held, then saves through the state. Best-effort: returns None on
    any failure.
    """
    if not settings.memory_extraction_enabled:
        return None

    engine = engine or HookEngine()
    _, keys = await state.chat_config()
    messages = await state.get_messages()

    memory = await engine.check_and_extract(messages, keys)
    if memory is None:
        return None

    try:
        await state.save_memory(memory)
    except Exception:
        logger.exception("Failed to save extracted memory (non-fatal)")
        return None
    logger.info("Extracted memory %s: %s", memory.id, memory.title)
    return memory
