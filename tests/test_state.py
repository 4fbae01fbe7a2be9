"""Tests for AppState write-through and loading."""

from pai.chat.messages import ChatMessage
from pai.memory.models import MemoryItem, MemoryType, RelationshipNote, WorkItem
from pai.state import AppState
from pai.user_settings import UserSettings


async def test_load_empty_data_dir(state: AppState) -> None:
    await state.load()
    assert await state.get_messages() == []
    assert await state.get_memories() == []
    assert (await state.get_settings()).api_keys().configured() == []


async def test_load_restores_everything(config) -> None:
    first = AppState.from_settings(config)
    await first.save_settings(UserSettings(anthropic_api_key="a", default_model="gpt-4o"))
    await first.add_message(ChatMessage(role="user", content="hi", timestamp=1))
    await first.save_memory(MemoryItem(id="work-1", title="T", content="C", memory_type="WORK"))

    second = AppState.from_settings(config)
    await second.load()

    default_model, keys = await second.chat_config()
    assert default_model == "gpt-4o"
    assert keys.anthropic == "a"
    assert [m.content for m in await second.get_messages()] == ["hi"]
    assert [m.id for m in await second.get_memories()] == ["work-1"]


async def test_get_messages_is_a_copy(state: AppState) -> None:
    await state.add_message(ChatMessage(role="user", content="hi"))
    snapshot = await state.get_messages()
    snapshot.clear()
    assert len(await state.get_messages()) == 1


async def test_clear_messages(state: AppState) -> None:
    await state.add_message(ChatMessage(role="user", content="hi"))
    await state.clear_messages()
    assert await state.get_messages() == []
    assert state.message_log.load_all() == []


async def test_delete_memory_updates_mirror(state: AppState) -> None:
    item = MemoryItem(id="learning-1", title="T", content="C", memory_type=MemoryType.LEARNING)
    await state.save_memory(item)
    await state.delete_memory("learning-1")
    assert await state.get_memories() == []
    assert state.memory_store.load_all() == []


async def test_delete_unknown_memory_is_noop(state: AppState) -> None:
    await state.delete_memory("missing")
    assert await state.get_memories() == []


async def test_reload_memories_picks_up_disk_changes(state: AppState) -> None:
    await state.save_memory(MemoryItem(id="general-1", title="T", content="C"))
    state.memory_store.delete("general-1")
    assert await state.load_memories_from_disk() == []


def test_side_stores_live_under_memory_partitions(state: AppState) -> None:
    state.save_work_item(WorkItem(id="w1", title="Ship", created_at=1))
    state.save_relationship_note(RelationshipNote(note_type="call", entity="Ann", content="c"))

    assert (state.memory_store.root / "WORK" / "w1" / "META.yaml").is_file()
    assert [w.id for w in state.get_work_items()] == ["w1"]
    assert [n.entity for n in state.get_relationship_notes()] == ["Ann"]
    # Side-store files are not mistaken for memory records.
    assert state.memory_store.load_all() == []


def test_prds(state: AppState) -> None:
    state.save_prd("login", "# Login")
    assert [p.id for p in state.get_prds()] == ["login"]


def test_complete_work_item(state: AppState) -> None:
    state.save_work_item(WorkItem(id="w1", title="Ship", created_at=1))
    completed_at = state.complete_work_item("w1")
    assert state.get_work_items()[0].completed_at == completed_at
