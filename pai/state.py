"""Application state: in-memory mirrors, their locks, and the durable stores.

One ``AppState`` is built at startup and passed to every operation. The
stores on disk are the source of truth; the lists held here are mirrors
kept in sync by write-through (disk first, then the mirror).

Locking rules: each mirror has its own ``asyncio.Lock``, held only long
enough to read or mutate the list. No lock is ever held across file I/O
or a network call. When two are needed they are taken in the order
settings, messages, memories.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pai.chat.messages import ChatMessage, MessageLog
from pai.config import Settings, settings
from pai.memory.models import MemoryItem, MemoryType, Prd, RelationshipNote, WorkItem
from pai.memory.notes import PrdStore, RelationshipLog, WorkItemStore
from pai.memory.store import MemoryStore
from pai.sessions import SessionStore
from pai.user_settings import UserSettings, UserSettingsStore

if TYPE_CHECKING:
    from pai.llm.models import ApiKeys

logger = logging.getLogger(__name__)


@dataclass
class AppState:
    memory_store: MemoryStore
    message_log: MessageLog
    settings_store: UserSettingsStore
    sessions: SessionStore
    relationships: RelationshipLog
    work_items: WorkItemStore
    prds: PrdStore

    user_settings: UserSettings = field(default_factory=UserSettings)
    memories: list[MemoryItem] = field(default_factory=list)
    messages: list[ChatMessage] = field(default_factory=list)

    settings_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    messages_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    memories_lock: asyncio.Lock = field(default_factory=asyncio.Lock)

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> AppState:
        """Wire every store under the configured data directory."""
        config = config or settings
        memory_store = MemoryStore(config.memory_dir)
        return cls(
            memory_store=memory_store,
            message_log=MessageLog(config.messages_dir),
            settings_store=UserSettingsStore(config.settings_path),
            sessions=SessionStore(config.sessions_dir),
            relationships=RelationshipLog(memory_store.partition_dir(MemoryType.RELATIONSHIP)),
            work_items=WorkItemStore(memory_store.partition_dir(MemoryType.WORK)),
            prds=PrdStore(config.prd_dir),
        )

    async def load(self) -> None:
        """Populate every mirror from disk."""
        user_settings = self.settings_store.load()
        messages = self.message_log.load_all()
        async with self.settings_lock:
            self.user_settings = user_settings
        async with self.messages_lock:
            self.messages = messages
        memories = await self.load_memories_from_disk()
        logger.info(
            "Loaded settings (%d provider keys), %d memories, %d messages",
            len(user_settings.api_keys().configured()),
            len(memories),
            len(messages),
        )

    # -- Settings ------------------------------------------------------------

    async def get_settings(self) -> UserSettings:
        async with self.settings_lock:
            return self.user_settings.model_copy()

    async def save_settings(self, user_settings: UserSettings) -> None:
        self.settings_store.save(user_settings)
        async with self.settings_lock:
            self.user_settings = user_settings

    async def chat_config(self) -> tuple[str, ApiKeys]:
        """Default model and key snapshot, copied out under the lock."""
        async with self.settings_lock:
            return self.user_settings.default_model, self.user_settings.api_keys()

    # -- Messages ------------------------------------------------------------

    async def get_messages(self) -> list[ChatMessage]:
        async with self.messages_lock:
            return list(self.messages)

    async def add_message(self, *messages: ChatMessage) -> None:
        for message in messages:
            self.message_log.append(message)
        async with self.messages_lock:
            self.messages.extend(messages)

    async def clear_messages(self) -> None:
        self.message_log.clear()
        async with self.messages_lock:
            self.messages.clear()

    # -- Memories ------------------------------------------------------------

    async def get_memories(self) -> list[MemoryItem]:
        async with self.memories_lock:
            return list(self.memories)

    async def save_memory(self, item: MemoryItem) -> None:
        self.memory_store.save(item)
        async with self.memories_lock:
            self.memories.append(item)

    async def load_memories_from_disk(self) -> list[MemoryItem]:
        memories = self.memory_store.load_all()
        async with self.memories_lock:
            self.memories = list(memories)
        return memories

    async def delete_memory(self, memory_id: str) -> None:
        """Delete from disk if present, and from the mirror regardless."""
        self.memory_store.delete(memory_id)
        async with self.memories_lock:
            self.memories = [m for m in self.memories if m.id != memory_id]

    def search_memories(
        self, query: str, memory_type: MemoryType | None = None
    ) -> list[MemoryItem]:
        return self.memory_store.search(query, memory_type)

    # -- Relationship notes, work items, PRDs --------------------------------

    def save_relationship_note(self, note: RelationshipNote) -> None:
        self.relationships.append(note)

    def get_relationship_notes(self) -> list[RelationshipNote]:
        return self.relationships.load_all()

    def save_work_item(self, item: WorkItem) -> None:
        self.work_items.save(item)

    def get_work_items(self) -> list[WorkItem]:
        return self.work_items.load_all()

    def complete_work_item(self, item_id: str) -> int:
        return self.work_items.complete(item_id)

    def save_prd(self, prd_id: str, content: str) -> None:
        self.prds.save(prd_id, content)

    def get_prds(self) -> list[Prd]:
        return self.prds.load_all()

    def get_prd(self, prd_id: str) -> Prd | None:
        return self.prds.get(prd_id)
