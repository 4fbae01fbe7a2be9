"""Context block assembly from remembered records and recent conversation.

Relevance is literal keyword matching only. The keyword string derived
from the user's latest message is matched as one substring against each
record's title, tags and entities.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from pai.config import settings

if TYPE_CHECKING:
    from collections.abc import Sequence

    from pai.chat.messages import ChatMessage
    from pai.memory.models import MemoryItem

ENGLISH_STOP_WORDS = frozenset(
    """
    the a an is are was were be been being have has had do does did will would
    could should may might must shall can need dare ought used to of in for on
    with at by from as into through during before after above below between
    under again further then once here there when where why how all each few
    more most other some such no nor not only own same so than too very just
    and but if or because until while this that these those what which who
    whom i you he she it we they me him her us them my your his its our their
    mine yours hers ours theirs
    """.split()
)

CHINESE_STOP_WORDS = frozenset(
    ["请", "帮我", "给我", "我想", "你能", "可以", "这个", "那个", "什么", "怎么", "如何", "为什么"]
)

STOP_WORDS = ENGLISH_STOP_WORDS | CHINESE_STOP_WORDS

# Longest first so "为什么" is removed before "什么".
_CHINESE_STOP_PATTERN = re.compile(
    "|".join(re.escape(w) for w in sorted(CHINESE_STOP_WORDS, key=len, reverse=True))
)
_NON_ALNUM = re.compile(r"[^\w]|_")

MIN_KEYWORD_BYTES = 3


def _tokens(text: str) -> list[str]:
    return [t for t in _NON_ALNUM.split(text.lower()) if t]


def extract_keywords(text: str) -> str:
    """Derive the space-joined keyword string for *text*.

    Lower-cases, splits on anything that isn't a letter or digit, strips
    Chinese function words (which run together with content words since
    Chinese has no spaces), and drops stop words and tokens shorter than
    three UTF-8 bytes. A CJK character is three bytes, so a one-character
    Chinese word is kept while ``is`` or ``of`` are not.
    """
    keywords = []
    for token in _tokens(text):
        if not token.isascii():
            token = _CHINESE_STOP_PATTERN.sub("", token)
        if len(token.encode("utf-8")) < MIN_KEYWORD_BYTES:
            continue
        if token in STOP_WORDS:
            continue
        keywords.append(token)
    return " ".join(keywords)


def _latest_user_message(messages: Sequence[ChatMessage]) -> str | None:
    for message in reversed(messages):
        if message.role == "user":
            return message.content
    return None


def _matches(item: MemoryItem, query: str) -> bool:
    return (
        query in item.title.lower()
        or any(query in tag.lower() for tag in item.tags)
        or any(query in entity.lower() for entity in item.entities)
    )


def build_context(
    messages: Sequence[ChatMessage],
    memories: Sequence[MemoryItem],
    *,
    memory_limit: int | None = None,
    recent_limit: int | None = None,
) -> str:
    """Build the context block to put in front of the next user message.

    Keywords come from the most recent ``user`` message in *messages*; the
    incoming turn is not in the log yet and does not drive retrieval. With
    records in the store, up to *memory_limit* matching records are
    rendered; with an empty store the last *recent_limit* messages are
    rendered instead. Returns an empty string when there is nothing to add.
    """
    memory_limit = settings.context_memory_limit if memory_limit is None else memory_limit
    recent_limit = settings.context_recent_messages if recent_limit is None else recent_limit

    if memories:
        source = _latest_user_message(messages)
        query = extract_keywords(source) if source else ""
        if not query:
            return ""
        relevant = [m for m in memories if _matches(m, query)][:memory_limit]
        if not relevant:
            return ""
        blocks = "".join(f"### {m.title}\n{m.content}\n\n" for m in relevant)
        return f"## Relevant Memories\n{blocks}"

    if messages:
        recent = list(messages)[-recent_limit:] if recent_limit > 0 else []
        lines = "".join(f"{m.role}: {m.content}\n" for m in recent)
        return f"## Recent Conversation\n{lines}"

    return ""


def compose_message(context: str, message: str) -> str:
    """Prefix *message* with *context*, or return it unchanged when there is none."""
    if not context:
        return message
    return f"{context}\n\nUser: {message}"
